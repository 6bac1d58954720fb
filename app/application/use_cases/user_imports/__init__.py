"""Use cases for importing users in bulk from CSV or Excel files."""

from .batch_commit import CommitResult, commit_rows
from .csv_template import TEMPLATE_FILENAME, build_csv_template
from .errors import (
    CommitError,
    DecodeError,
    EncodingUndetectableError,
    FileTooLargeError,
    ImportRolledBackError,
    MalformedStructureError,
    StorageFaultError,
    UnsupportedFormatError,
)
from .file_decoder import DecodedFile, decode_upload, list_sheet_names
from .import_users import ImportResult, import_users
from .preview_import import ImportPreview, preview_user_import
from .row_validation import ValidationReport, validate_rows

__all__ = [
    "CommitError",
    "CommitResult",
    "DecodeError",
    "DecodedFile",
    "EncodingUndetectableError",
    "FileTooLargeError",
    "ImportPreview",
    "ImportResult",
    "ImportRolledBackError",
    "MalformedStructureError",
    "StorageFaultError",
    "TEMPLATE_FILENAME",
    "UnsupportedFormatError",
    "ValidationReport",
    "build_csv_template",
    "commit_rows",
    "decode_upload",
    "import_users",
    "list_sheet_names",
    "preview_user_import",
    "validate_rows",
]
