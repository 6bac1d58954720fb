"""Use cases for managing users."""

from .create_user import create_user
from .delete_user import delete_user
from .get_user import get_user
from .list_users import list_users
from .mass_delete_users import MassDeleteSummary, mass_delete_users
from .update_user import update_user
from .validators import UserValidationError, validate_user_data

__all__ = [
    "MassDeleteSummary",
    "UserValidationError",
    "create_user",
    "delete_user",
    "get_user",
    "list_users",
    "mass_delete_users",
    "update_user",
    "validate_user_data",
]
