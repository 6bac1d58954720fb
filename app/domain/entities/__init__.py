"""Domain entities exposed by the application."""

from .user import User
from .user_import import (
    IMPORT_FIELDS,
    BatchSummary,
    FileInfo,
    ImportErrorType,
    NormalizedRow,
    RawRow,
    RowVerdict,
)

__all__ = [
    "BatchSummary",
    "FileInfo",
    "IMPORT_FIELDS",
    "ImportErrorType",
    "NormalizedRow",
    "RawRow",
    "RowVerdict",
    "User",
]
