"""Game domain services: rounds, guess arbitration and the leaderboard.

This package contains pure(ish) domain logic that should be imported by
HTTP routes and socket handlers, keeping transport concerns separated
from core game mechanics.
"""
