"""Errors raised while decoding or committing a bulk user import."""

from __future__ import annotations

from collections.abc import Sequence

from app.domain.entities import RowVerdict


class DecodeError(ValueError):
    """The uploaded file cannot be turned into rows; nothing was examined."""


class UnsupportedFormatError(DecodeError):
    def __init__(self, filename: str) -> None:
        super().__init__(
            f"Formato de archivo no válido: '{filename}'. Usa archivos .csv o .xlsx"
        )
        self.filename = filename


class FileTooLargeError(DecodeError):
    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            f"Archivo demasiado grande: {size} bytes (máximo permitido {limit} bytes)"
        )
        self.size = size
        self.limit = limit


class EncodingUndetectableError(DecodeError):
    def __init__(self) -> None:
        super().__init__(
            "No se pudo detectar la codificación del archivo. "
            "Usa UTF-8, ISO-8859-1 o Windows-1252"
        )


class MalformedStructureError(DecodeError):
    """Header or column layout cannot be interpreted."""


class CommitError(RuntimeError):
    """Persisting an import failed and the transaction was rolled back."""


class ImportRolledBackError(CommitError):
    """Atomic import aborted; no rows were persisted."""

    def __init__(
        self,
        failed_row: int,
        reason: str,
        *,
        validation_errors: Sequence[RowVerdict] = (),
    ) -> None:
        super().__init__(
            f"Importación cancelada: la fila {failed_row} no es válida ({reason}). "
            "No se creó ningún usuario"
        )
        self.failed_row = failed_row
        self.reason = reason
        self.validation_errors = list(validation_errors)


class StorageFaultError(CommitError):
    """The database failed for a reason other than a uniqueness conflict.

    ``created_count`` and ``failures`` describe the batches that were already
    committed when the fault happened; both are empty for atomic imports.
    """

    def __init__(
        self,
        *,
        failed_row: int,
        created_count: int = 0,
        batches_processed: int = 0,
        failures: Sequence[RowVerdict] = (),
    ) -> None:
        if created_count:
            message = (
                "Error de base de datos al guardar los usuarios importados a partir de la "
                f"fila {failed_row}. Se crearon {created_count} usuarios antes del error"
            )
        else:
            message = (
                "Error de base de datos al guardar los usuarios importados. "
                "No se creó ningún usuario"
            )
        super().__init__(message)
        self.failed_row = failed_row
        self.created_count = created_count
        self.batches_processed = batches_processed
        self.failures = list(failures)


__all__ = [
    "CommitError",
    "DecodeError",
    "EncodingUndetectableError",
    "FileTooLargeError",
    "ImportRolledBackError",
    "MalformedStructureError",
    "StorageFaultError",
    "UnsupportedFormatError",
]
