"""Aggregate application use cases."""

from .user_imports import import_users, preview_user_import
from .users import create_user, mass_delete_users

__all__ = [
    "create_user",
    "import_users",
    "mass_delete_users",
    "preview_user_import",
]
