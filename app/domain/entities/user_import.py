"""Domain entities describing a bulk user import."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

IMPORT_FIELDS: tuple[str, ...] = ("name", "phone", "dni")


class ImportErrorType(str, Enum):
    """Category assigned to a rejected import row."""

    REQUIRED_FIELD = "required_field"
    INVALID_FORMAT = "invalid_format"
    INVALID_CHECKSUM = "invalid_checksum"
    DUPLICATE_IN_FILE = "duplicate_in_file"
    DUPLICATE_IN_DATABASE = "duplicate_in_database"


@dataclass(frozen=True)
class RawRow:
    """A decoded data row exactly as found in the source file.

    ``row_number`` follows spreadsheet numbering: the header is row 1.
    """

    row_number: int
    values: Mapping[str, str]

    def get(self, column: str) -> str:
        """Return the value stored under ``column`` ignoring header case."""

        wanted = column.strip().lower()
        for key, value in self.values.items():
            if str(key).strip().lower() == wanted:
                return value
        return ""

    def is_blank(self) -> bool:
        return all(not str(value).strip() for value in self.values.values())


@dataclass(frozen=True)
class NormalizedRow:
    """Canonical user fields derived from a :class:`RawRow`."""

    row_number: int
    name: str
    phone: str
    dni: str

    def as_dict(self) -> dict[str, str | int]:
        return {
            "row": self.row_number,
            "name": self.name,
            "phone": self.phone,
            "dni": self.dni,
        }


@dataclass(frozen=True)
class RowVerdict:
    """Outcome of validating (or committing) one import row."""

    row_number: int
    row: NormalizedRow | None
    field: str | None = None
    error_type: ImportErrorType | None = None
    message: str | None = None

    @property
    def valid(self) -> bool:
        return self.error_type is None

    @classmethod
    def accepted(cls, row: NormalizedRow) -> "RowVerdict":
        return cls(row_number=row.row_number, row=row)

    @classmethod
    def rejected(
        cls,
        row_number: int,
        field: str,
        error_type: ImportErrorType,
        message: str,
        *,
        row: NormalizedRow | None = None,
    ) -> "RowVerdict":
        return cls(
            row_number=row_number,
            row=row,
            field=field,
            error_type=error_type,
            message=message,
        )


@dataclass
class BatchSummary:
    """Aggregate result of previewing or importing a file."""

    total_rows: int = 0
    valid_rows: int = 0
    invalid_rows: int = 0
    created_count: int = 0
    failed_count: int = 0
    batches_processed: int = 0
    errors: list[RowVerdict] = field(default_factory=list)


@dataclass(frozen=True)
class FileInfo:
    """Metadata detected while decoding an uploaded file."""

    file_type: str
    detected_encoding: str | None = None
    detected_delimiter: str | None = None
    detected_quote: str | None = None
    available_sheets: tuple[str, ...] = ()
    selected_sheet: str | None = None
    chunks_processed: int = 0
    total_rows: int = 0


__all__ = [
    "BatchSummary",
    "FileInfo",
    "IMPORT_FIELDS",
    "ImportErrorType",
    "NormalizedRow",
    "RawRow",
    "RowVerdict",
]
