"""
MergeMates — ORM model registry.

Importing every model here ensures that Alembic (and any other tool that
inspects ``Base.metadata``) discovers all tables automatically.
"""

from mergemates.models.user import User
from mergemates.models.match import Match, Swipe

__all__ = [
    "User",
    "Match",
    "Swipe",
]
