"""Persist validated import rows in fixed-size batches."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from app.domain.entities import ImportErrorType, NormalizedRow, RowVerdict
from app.infrastructure.repositories import UserRepository
from app.utils import now_in_app_naive_datetime

from .errors import ImportRolledBackError, StorageFaultError

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


@dataclass
class CommitResult:
    created_count: int = 0
    failures: list[RowVerdict] = field(default_factory=list)
    batches_processed: int = 0

    @property
    def failed_count(self) -> int:
        return len(self.failures)


def _batches(rows: Sequence[NormalizedRow], batch_size: int) -> Iterator[Sequence[NormalizedRow]]:
    for start in range(0, len(rows), batch_size):
        yield rows[start : start + batch_size]


def commit_rows(
    repository: UserRepository,
    rows: Sequence[NormalizedRow],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    atomic: bool,
    timestamp: datetime | None = None,
) -> CommitResult:
    """Insert ``rows`` through ``repository`` in batches of ``batch_size``.

    In atomic mode every batch shares one transaction and the first storage
    rejection rolls everything back and raises :class:`ImportRolledBackError`.
    Otherwise each batch is committed on its own and rejected rows are
    reported as ``duplicate_in_database`` failures.

    Any other database error rolls back the open transaction and raises
    :class:`StorageFaultError`. In non-atomic mode the error carries the
    counts of the batches committed before the fault.
    """

    if batch_size <= 0:
        raise ValueError("El tamaño de lote debe ser mayor que cero")

    created_at = timestamp or now_in_app_naive_datetime()
    result = CommitResult()
    by_number = {row.row_number: row for row in rows}

    for batch in _batches(rows, batch_size):
        created = 0
        failures: list[RowVerdict] = []
        try:
            outcomes = repository.insert_batch(batch, timestamp=created_at, stop_on_error=atomic)
            for outcome in outcomes:
                if outcome.created:
                    created += 1
                    continue
                if atomic:
                    repository.rollback()
                    logger.warning(
                        "Importación atómica revertida en la fila %s: %s",
                        outcome.row_number,
                        outcome.reason,
                    )
                    raise ImportRolledBackError(outcome.row_number, outcome.reason or "")
                failures.append(
                    RowVerdict.rejected(
                        outcome.row_number,
                        _conflicting_field(outcome.reason),
                        ImportErrorType.DUPLICATE_IN_DATABASE,
                        outcome.reason or "",
                        row=by_number.get(outcome.row_number),
                    )
                )
            if not atomic:
                repository.commit()
        except SQLAlchemyError as exc:
            _raise_storage_fault(repository, exc, result, batch[0].row_number, atomic)

        result.created_count += created
        result.failures.extend(failures)
        result.batches_processed += 1

    if atomic:
        try:
            repository.commit()
        except SQLAlchemyError as exc:
            _raise_storage_fault(
                repository, exc, result, rows[0].row_number if rows else 0, atomic
            )
        logger.info("Importación atómica completada: %s usuarios", result.created_count)
    else:
        logger.info(
            "Importación completada: %s creados, %s fallidos en %s lotes",
            result.created_count,
            result.failed_count,
            result.batches_processed,
        )
    return result


def _raise_storage_fault(
    repository: UserRepository,
    exc: SQLAlchemyError,
    result: CommitResult,
    failed_row: int,
    atomic: bool,
) -> None:
    repository.rollback()
    logger.exception("Error de base de datos durante la importación masiva")
    if atomic:
        raise StorageFaultError(failed_row=failed_row) from exc
    # Earlier batches are already committed and stay visible.
    raise StorageFaultError(
        failed_row=failed_row,
        created_count=result.created_count,
        batches_processed=result.batches_processed,
        failures=result.failures,
    ) from exc


def _conflicting_field(reason: str | None) -> str:
    if reason and "DNI" in reason:
        return "dni"
    return "phone"


__all__ = ["CommitResult", "DEFAULT_BATCH_SIZE", "commit_rows"]
