"""Pydantic schemas for the online prediction API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class PredictRequest(BaseModel):
    """Single (userId, movieId) query for the `/predict` endpoint."""

    userId: float = Field(..., description="userId as it appears in the training ratings file")
    movieId: float = Field(..., description="movieId as it appears in the training ratings file")


class PredictResponse(BaseModel):
    userId: float
    movieId: float
    score: float
    recommend: bool


class RecommendRequest(BaseModel):
    """Top-k request for a known user."""

    userId: float = Field(..., description="userId as it appears in the training ratings file")
    k: int = Field(10, ge=1, le=100, description="Number of movies to return (1..100)")
    exclude: list[float] = Field(default_factory=list, description="movieIds to leave out (e.g. already seen)")


class RecommendationItem(BaseModel):
    movieId: float
    score: float
    recommend: bool


class RecommendResponse(BaseModel):
    userId: float
    k: int
    results: list[RecommendationItem]
