"""Use case for importing users in bulk from an uploaded file."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from app.domain.entities import BatchSummary, FileInfo, RowVerdict
from app.infrastructure.repositories import UserRepository
from app.utils import now_in_app_naive_datetime

from .batch_commit import DEFAULT_BATCH_SIZE, commit_rows
from .errors import ImportRolledBackError, StorageFaultError
from .preview_import import analyze_upload

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    file_info: FileInfo
    summary: BatchSummary
    errors: list[RowVerdict] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.errors)


def import_users(
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
    batch_size: int = DEFAULT_BATCH_SIZE,
    atomic: bool = False,
    repository: UserRepository | None = None,
) -> ImportResult:
    """Validate an uploaded file and persist its valid rows.

    With ``atomic`` any invalid row aborts the import before storage is
    touched. Without it invalid rows are skipped and reported next to the
    rows the database rejected.
    """

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
    summary = report.summary

    invalid = report.invalid_verdicts
    if atomic and invalid:
        first = invalid[0]
        logger.warning(
            "Importación atómica de %s cancelada: %s filas con errores",
            filename,
            len(invalid),
        )
        raise ImportRolledBackError(
            first.row_number, first.message or "", validation_errors=invalid
        )

    try:
        committed = commit_rows(
            repository,
            report.valid_rows,
            batch_size=batch_size,
            atomic=atomic,
            timestamp=now_in_app_naive_datetime(),
        )
    except StorageFaultError as exc:
        exc.failures = sorted(invalid + exc.failures, key=lambda verdict: verdict.row_number)
        raise

    errors = sorted(invalid + committed.failures, key=lambda verdict: verdict.row_number)
    summary.created_count = committed.created_count
    summary.failed_count = committed.failed_count
    summary.batches_processed = committed.batches_processed
    summary.errors = errors

    logger.info(
        "Importación de %s: %s creados, %s inválidos, %s rechazados",
        filename,
        summary.created_count,
        summary.invalid_rows,
        summary.failed_count,
    )
    return ImportResult(file_info=file_info, summary=summary, errors=errors)


__all__ = ["ImportResult", "import_users"]
