from .user import UserCreate, UserRead, UserUpdate
from .user_import import (
    FileInfoRead,
    ImportPreviewResponse,
    ImportResponse,
    ImportRolledBackResponse,
    ImportStorageFaultResponse,
    ImportRowRead,
    ImportSummaryRead,
    MassDeleteRequest,
    MassDeleteResponse,
    MassDeleteSummaryRead,
    ProcessingInfoRead,
    RowErrorRead,
    SheetInfoRead,
    ValidationSummaryRead,
)

__all__ = [
    "FileInfoRead",
    "ImportPreviewResponse",
    "ImportResponse",
    "ImportRolledBackResponse",
    "ImportStorageFaultResponse",
    "ImportRowRead",
    "ImportSummaryRead",
    "MassDeleteRequest",
    "MassDeleteResponse",
    "MassDeleteSummaryRead",
    "ProcessingInfoRead",
    "RowErrorRead",
    "SheetInfoRead",
    "UserCreate",
    "UserRead",
    "UserUpdate",
    "ValidationSummaryRead",
]
