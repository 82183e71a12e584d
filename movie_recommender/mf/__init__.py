"""Matrix-factorization collaborative filtering over MovieLens-style ratings.

Core idea:
- Encode raw (userId, movieId) keys into dense indices, frozen after training
- Learn user and movie latent factors with per-record SGD
- Score a (user, movie) pair as the dot product of their factors and
  recommend it when the rounded score is above 3.5
"""
