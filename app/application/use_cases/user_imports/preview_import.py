"""Use case for previewing a bulk user import without persisting it."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.domain.entities import BatchSummary, FileInfo, NormalizedRow, RowVerdict
from app.infrastructure.repositories import UserRepository

from ..users.normalization import normalize_dni, normalize_phone
from .file_decoder import decode_upload
from .row_validation import ValidationReport, validate_rows

logger = logging.getLogger(__name__)


@dataclass
class ImportPreview:
    file_info: FileInfo
    summary: BatchSummary
    verdicts: list[RowVerdict]

    @property
    def rows(self) -> list[NormalizedRow]:
        return [verdict.row for verdict in self.verdicts if verdict.row is not None]


def analyze_upload(
    repository: UserRepository,
    *,
    file_bytes: bytes,
    filename: str,
    content_type: str | None,
    sheet_name: str | None,
    max_bytes: int,
    chunk_rows: int,
    column_tolerance: int,
    strict_dni: bool,
) -> tuple[FileInfo, ValidationReport]:
    """Decode an upload and validate its rows against active users."""

    decoded = decode_upload(
        file_bytes,
        filename,
        content_type,
        max_bytes=max_bytes,
        chunk_rows=chunk_rows,
        sheet_name=sheet_name,
        column_tolerance=column_tolerance,
    )
    existing_phones, existing_dnis = repository.find_active_identifiers(
        {normalize_phone(row.get("phone")) for row in decoded.rows},
        {normalize_dni(row.get("dni")) for row in decoded.rows},
    )

    report = validate_rows(
        decoded.rows, existing_phones, existing_dnis, strict_dni=strict_dni
    )
    return decoded.info, report


def preview_user_import(
    session: Session,
    *,
    file_bytes: bytes,
    filename: str,
    content_type: str | None = None,
    sheet_name: str | None = None,
    max_bytes: int,
    chunk_rows: int,
    column_tolerance: int = 0,
    strict_dni: bool = False,
    repository: UserRepository | None = None,
) -> ImportPreview:
    """Validate an uploaded file and report what an import would do."""

    repository = repository or UserRepository(session)
    file_info, report = analyze_upload(
        repository,
        file_bytes=file_bytes,
        filename=filename,
        content_type=content_type,
        sheet_name=sheet_name,
        max_bytes=max_bytes,
        chunk_rows=chunk_rows,
        column_tolerance=column_tolerance,
        strict_dni=strict_dni,
    )
    logger.info(
        "Vista previa de %s: %s filas, %s válidas, %s con errores",
        filename,
        report.summary.total_rows,
        report.summary.valid_rows,
        report.summary.invalid_rows,
    )
    return ImportPreview(file_info=file_info, summary=report.summary, verdicts=report.verdicts)


__all__ = ["ImportPreview", "analyze_upload", "preview_user_import"]
