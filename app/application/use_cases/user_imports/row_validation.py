"""Validate decoded import rows against field rules and known identifiers."""

from __future__ import annotations

from collections.abc import Iterable, Set
from dataclasses import dataclass, field

from app.domain.entities import (
    BatchSummary,
    ImportErrorType,
    NormalizedRow,
    RawRow,
    RowVerdict,
)

from ..users.normalization import normalize_row
from ..users.validators import (
    DNI_CHECKSUM_MESSAGE,
    DNI_FORMAT_MESSAGE,
    DNI_REQUIRED_MESSAGE,
    NAME_FORMAT_MESSAGE,
    NAME_REQUIRED_MESSAGE,
    PHONE_FORMAT_MESSAGE,
    PHONE_REQUIRED_MESSAGE,
    is_letter_dni,
    validate_dni,
    validate_name,
    validate_phone,
)

PHONE_DUPLICATE_IN_FILE_MESSAGE = "El teléfono está duplicado en el archivo"
DNI_DUPLICATE_IN_FILE_MESSAGE = "El DNI está duplicado en el archivo"
PHONE_DUPLICATE_IN_DATABASE_MESSAGE = "El teléfono ya está registrado"
DNI_DUPLICATE_IN_DATABASE_MESSAGE = "El DNI ya está registrado"


@dataclass
class ValidationReport:
    """Per-row verdicts for a decoded file plus the aggregated summary."""

    verdicts: list[RowVerdict] = field(default_factory=list)
    summary: BatchSummary = field(default_factory=BatchSummary)

    @property
    def valid_rows(self) -> list[NormalizedRow]:
        return [verdict.row for verdict in self.verdicts if verdict.valid and verdict.row]

    @property
    def normalized_rows(self) -> list[NormalizedRow]:
        return [verdict.row for verdict in self.verdicts if verdict.row is not None]

    @property
    def invalid_verdicts(self) -> list[RowVerdict]:
        return [verdict for verdict in self.verdicts if not verdict.valid]


def _check_required(row: NormalizedRow) -> RowVerdict | None:
    for field_name, message in (
        ("name", NAME_REQUIRED_MESSAGE),
        ("phone", PHONE_REQUIRED_MESSAGE),
        ("dni", DNI_REQUIRED_MESSAGE),
    ):
        if not getattr(row, field_name):
            return RowVerdict.rejected(
                row.row_number, field_name, ImportErrorType.REQUIRED_FIELD, message, row=row
            )
    return None


def _check_format(row: NormalizedRow, strict_dni: bool) -> RowVerdict | None:
    if not validate_name(row.name):
        return RowVerdict.rejected(
            row.row_number, "name", ImportErrorType.INVALID_FORMAT, NAME_FORMAT_MESSAGE, row=row
        )
    if not validate_phone(row.phone):
        return RowVerdict.rejected(
            row.row_number, "phone", ImportErrorType.INVALID_FORMAT, PHONE_FORMAT_MESSAGE, row=row
        )
    if not validate_dni(row.dni, strict=strict_dni):
        if strict_dni and is_letter_dni(row.dni):
            return RowVerdict.rejected(
                row.row_number,
                "dni",
                ImportErrorType.INVALID_CHECKSUM,
                DNI_CHECKSUM_MESSAGE,
                row=row,
            )
        return RowVerdict.rejected(
            row.row_number, "dni", ImportErrorType.INVALID_FORMAT, DNI_FORMAT_MESSAGE, row=row
        )
    return None


def _check_duplicates(
    row: NormalizedRow,
    phones: Set[str],
    dnis: Set[str],
    error_type: ImportErrorType,
    phone_message: str,
    dni_message: str,
) -> RowVerdict | None:
    if row.phone in phones:
        return RowVerdict.rejected(row.row_number, "phone", error_type, phone_message, row=row)
    if row.dni in dnis:
        return RowVerdict.rejected(row.row_number, "dni", error_type, dni_message, row=row)
    return None


def validate_rows(
    rows: Iterable[RawRow],
    existing_phones: Set[str],
    existing_dnis: Set[str],
    *,
    strict_dni: bool = False,
) -> ValidationReport:
    """Validate ``rows`` in file order.

    Each row yields exactly one verdict; the first failing check wins. The
    order is required fields, formats (name, phone, dni), duplicates inside
    the file and finally duplicates among active stored users. Nothing is
    persisted and the inputs are not modified.
    """

    report = ValidationReport()
    seen_phones: set[str] = set()
    seen_dnis: set[str] = set()

    for raw_row in rows:
        row = normalize_row(raw_row)
        verdict = _check_required(row) or _check_format(row, strict_dni)
        if verdict is None:
            verdict = _check_duplicates(
                row,
                seen_phones,
                seen_dnis,
                ImportErrorType.DUPLICATE_IN_FILE,
                PHONE_DUPLICATE_IN_FILE_MESSAGE,
                DNI_DUPLICATE_IN_FILE_MESSAGE,
            )
            seen_phones.add(row.phone)
            seen_dnis.add(row.dni)
        if verdict is None:
            verdict = _check_duplicates(
                row,
                existing_phones,
                existing_dnis,
                ImportErrorType.DUPLICATE_IN_DATABASE,
                PHONE_DUPLICATE_IN_DATABASE_MESSAGE,
                DNI_DUPLICATE_IN_DATABASE_MESSAGE,
            )
        report.verdicts.append(verdict or RowVerdict.accepted(row))

    invalid = report.invalid_verdicts
    report.summary = BatchSummary(
        total_rows=len(report.verdicts),
        valid_rows=len(report.verdicts) - len(invalid),
        invalid_rows=len(invalid),
        errors=invalid,
    )
    return report


__all__ = [
    "DNI_DUPLICATE_IN_DATABASE_MESSAGE",
    "DNI_DUPLICATE_IN_FILE_MESSAGE",
    "PHONE_DUPLICATE_IN_DATABASE_MESSAGE",
    "PHONE_DUPLICATE_IN_FILE_MESSAGE",
    "ValidationReport",
    "validate_rows",
]
