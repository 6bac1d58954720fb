"""Repository implementations for infrastructure layer."""

from .user_repository import DuplicateUserError, InsertOutcome, UserRepository

__all__ = [
    "DuplicateUserError",
    "InsertOutcome",
    "UserRepository",
]
