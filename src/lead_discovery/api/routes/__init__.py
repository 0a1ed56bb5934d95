"""API route handlers."""

from . import (
    goals,
    health,
    queries,
)

__all__ = [
    "goals",
    "health",
    "queries",
]
