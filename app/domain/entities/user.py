"""Domain entity representing a user."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """Core attributes describing a managed user.

    ``phone`` and ``dni`` are unique among users that are not soft deleted.
    """

    id: int | None
    name: str
    email: str | None
    phone: str
    dni: str
    created_at: datetime | None
    updated_at: datetime | None
    deleted: bool = False
    deleted_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        """Return ``True`` while the user has not been soft deleted."""

        return not self.deleted


__all__ = ["User"]
