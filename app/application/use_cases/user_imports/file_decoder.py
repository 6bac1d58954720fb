"""Turn uploaded CSV or Excel files into ordered raw rows.

The decoder is the only place that knows about file formats. It detects the
text encoding, delimiter and quote character of CSV payloads, enumerates the
sheets of ``.xlsx`` workbooks and streams rows in chunks so large uploads are
never materialised as a single parsed structure.
"""

from __future__ import annotations

import codecs
import logging
import math
import re
import zipfile
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO, StringIO
from pathlib import Path
from typing import Any

import chardet
import pandas as pd
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from app.domain.entities import IMPORT_FIELDS, FileInfo, RawRow

from .errors import (
    EncodingUndetectableError,
    FileTooLargeError,
    MalformedStructureError,
    UnsupportedFormatError,
)

logger = logging.getLogger(__name__)

FILE_TYPE_CSV = "csv"
FILE_TYPE_XLSX = "xlsx"

EXCEL_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
_GENERIC_CONTENT_TYPE = "application/octet-stream"
_CONTENT_TYPES: dict[str, frozenset[str]] = {
    FILE_TYPE_CSV: frozenset(
        {
            "text/csv",
            "application/csv",
            "text/plain",
            "application/vnd.ms-excel",
            _GENERIC_CONTENT_TYPE,
        }
    ),
    FILE_TYPE_XLSX: frozenset({EXCEL_CONTENT_TYPE, _GENERIC_CONTENT_TYPE}),
}
_EXTENSIONS = {".csv": FILE_TYPE_CSV, ".xlsx": FILE_TYPE_XLSX}

DELIMITER_CANDIDATES: tuple[str, ...] = (",", ";", "\t", "|")
QUOTE_CANDIDATES: tuple[str, ...] = ('"', "'")

ENCODING_UTF8 = "UTF-8"
ENCODING_LATIN1 = "ISO-8859-1"
ENCODING_CP1252 = "Windows-1252"

_SNIFF_BYTES = 64 * 1024
_QUOTE_SAMPLE_LINES = 50
_C1_BYTES = re.compile(rb"[\x80-\x9f]")


@dataclass
class DecodedFile:
    """Rows extracted from an upload together with detected metadata."""

    rows: list[RawRow] = field(default_factory=list)
    info: FileInfo = field(default_factory=lambda: FileInfo(file_type=FILE_TYPE_CSV))


def detect_file_type(filename: str, content_type: str | None) -> str:
    """Return ``csv`` or ``xlsx`` or raise :class:`UnsupportedFormatError`."""

    suffix = Path(filename or "").suffix.lower()
    file_type = _EXTENSIONS.get(suffix)
    if file_type is None:
        raise UnsupportedFormatError(filename or "")

    declared = (content_type or "").split(";", 1)[0].strip().lower()
    if declared and declared not in _CONTENT_TYPES[file_type]:
        raise UnsupportedFormatError(filename)
    return file_type


def ensure_supported_upload(
    filename: str, content_type: str | None, size: int, *, max_bytes: int
) -> str:
    """Check format and size before any byte of the payload is parsed."""

    file_type = detect_file_type(filename, content_type)
    if size > max_bytes:
        raise FileTooLargeError(size, max_bytes)
    return file_type


def detect_encoding(data: bytes) -> tuple[str, str]:
    """Return ``(encoding label, decoded text)`` for a CSV payload."""

    if b"\x00" in data:
        raise EncodingUndetectableError()

    try:
        return ENCODING_UTF8, data.decode("utf-8-sig")
    except UnicodeDecodeError:
        pass

    guess = chardet.detect(data[:_SNIFF_BYTES])
    guessed = (guess.get("encoding") or "").lower()
    logger.debug("Codificación sugerida por chardet: %s", guess)

    # Latin-1 maps 0x80-0x9F to control characters; Windows-1252 uses them
    # for printable glyphs such as curly quotes and the euro sign.
    if _C1_BYTES.search(data) or guessed in {"windows-1252", "cp1252"}:
        try:
            return ENCODING_CP1252, data.decode("cp1252")
        except UnicodeDecodeError as exc:
            raise EncodingUndetectableError() from exc
    return ENCODING_LATIN1, data.decode("iso-8859-1")


def detect_delimiter(header_line: str) -> str:
    """Pick the candidate delimiter occurring most often in ``header_line``."""

    counts = [(header_line.count(candidate), candidate) for candidate in DELIMITER_CANDIDATES]
    best_count = max(count for count, _ in counts)
    if best_count == 0:
        return DELIMITER_CANDIDATES[0]
    return next(candidate for count, candidate in counts if count == best_count)


def detect_quote(lines: Sequence[str], delimiter: str) -> str:
    """Pick the quote character that most often opens a field."""

    best_quote = QUOTE_CANDIDATES[0]
    best_count = 0
    for quote in QUOTE_CANDIDATES:
        opener = re.compile(rf"(?:^|{re.escape(delimiter)})[ ]*{re.escape(quote)}")
        count = sum(len(opener.findall(line)) for line in lines)
        if count > best_count:
            best_quote, best_count = quote, count
    return best_quote


def list_sheet_names(file_bytes: bytes) -> list[str]:
    """Return the sheet names of an ``.xlsx`` workbook in workbook order."""

    workbook = _open_workbook(file_bytes)
    try:
        return list(workbook.sheetnames)
    finally:
        workbook.close()


def decode_upload(
    file_bytes: bytes,
    filename: str,
    content_type: str | None = None,
    *,
    max_bytes: int,
    chunk_rows: int = 500,
    sheet_name: str | None = None,
    column_tolerance: int = 0,
) -> DecodedFile:
    """Decode ``file_bytes`` into :class:`RawRow` objects.

    Raises a :class:`~.errors.DecodeError` subclass when the file cannot be
    used; in that case no row has been examined.
    """

    file_type = ensure_supported_upload(
        filename, content_type, len(file_bytes), max_bytes=max_bytes
    )
    if not file_bytes:
        raise MalformedStructureError("El archivo proporcionado está vacío")
    if chunk_rows <= 0:
        raise ValueError("chunk_rows must be positive")

    if file_type == FILE_TYPE_CSV:
        decoded = _decode_csv(file_bytes, chunk_rows, column_tolerance)
    else:
        decoded = _decode_workbook(file_bytes, chunk_rows, sheet_name, column_tolerance)

    logger.info(
        "Archivo %s decodificado: %s filas en %s bloques",
        filename,
        decoded.info.total_rows,
        decoded.info.chunks_processed,
    )
    return decoded


class _ColumnGuard:
    """Track data rows that carry populated cells beyond the header width.

    Empty surplus cells (a trailing delimiter) are ignored. Populated ones
    make the row inconsistent; such rows are truncated to the header width
    until more than ``tolerance`` of them have been seen.
    """

    def __init__(self, width: int, tolerance: int) -> None:
        self.width = width
        self.tolerance = tolerance
        self.inconsistent = 0

    def trim(self, values: Sequence[Any], row_number: int | None = None) -> list[Any]:
        if any(_cell_to_text(value).strip() for value in values[self.width :]):
            self.inconsistent += 1
            if self.inconsistent > self.tolerance:
                if row_number is None:
                    message = "El archivo contiene filas con más columnas que el encabezado"
                else:
                    message = f"La fila {row_number} tiene más columnas que el encabezado"
                raise MalformedStructureError(message)
        return list(values[: self.width])

    def __call__(self, fields: list[str]) -> list[str]:
        # pandas ``on_bad_lines`` hook for lines wider than the header.
        return self.trim(fields)


def _decode_csv(file_bytes: bytes, chunk_rows: int, column_tolerance: int) -> DecodedFile:
    encoding, text = detect_encoding(file_bytes)

    lines = text.splitlines()
    leading_blank = 0
    while leading_blank < len(lines) and not lines[leading_blank].strip():
        leading_blank += 1
    if leading_blank == len(lines):
        raise MalformedStructureError("El archivo proporcionado está vacío")

    header_line = lines[leading_blank]
    delimiter = detect_delimiter(header_line)
    quote = detect_quote(lines[leading_blank : leading_blank + _QUOTE_SAMPLE_LINES], delimiter)
    body = "\n".join(lines[leading_blank:])

    header_cells = _read_csv_header(body, delimiter, quote)
    columns = [cell.strip() for cell in header_cells]
    _ensure_required_columns(columns)
    guard = _ColumnGuard(len(columns), column_tolerance)

    rows: list[RawRow] = []
    chunks = 0
    # Quoted cells may span lines, so numbering follows the physical lines.
    line_number = leading_blank + 1 + _line_span(header_cells)
    for chunk in _iter_csv_chunks(body, delimiter, quote, chunk_rows, guard):
        chunks += 1
        for values in chunk:
            cells = [_cell_to_text(value) for value in values]
            raw_row = RawRow(row_number=line_number, values=dict(zip(columns, cells)))
            line_number += _line_span(cells)
            if not raw_row.is_blank():
                rows.append(raw_row)

    info = FileInfo(
        file_type=FILE_TYPE_CSV,
        detected_encoding=encoding,
        detected_delimiter=delimiter,
        detected_quote=quote,
        chunks_processed=chunks,
        total_rows=len(rows),
    )
    return DecodedFile(rows=rows, info=info)


def _csv_options(delimiter: str, quote: str) -> dict[str, Any]:
    return {
        "sep": delimiter,
        "quotechar": quote,
        "header": None,
        "dtype": object,
        "keep_default_na": False,
        "na_filter": False,
        "skip_blank_lines": False,
        "engine": "python",
    }


def _read_csv_header(body: str, delimiter: str, quote: str) -> list[str]:
    try:
        frame = pd.read_csv(StringIO(body), nrows=1, **_csv_options(delimiter, quote))
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise MalformedStructureError(
            "No se pudo leer la fila de encabezados del archivo"
        ) from exc
    return [_cell_to_text(value) for value in frame.iloc[0].tolist()]


def _iter_csv_chunks(
    body: str,
    delimiter: str,
    quote: str,
    chunk_rows: int,
    guard: _ColumnGuard,
) -> Iterator[list[tuple]]:
    """Yield data rows in chunks of at most ``chunk_rows`` source lines.

    The header line is parsed as part of the first chunk (so pandas sizes
    every row against it) and dropped before yielding.
    """

    try:
        reader = pd.read_csv(
            StringIO(body),
            chunksize=chunk_rows,
            on_bad_lines=guard,
            **_csv_options(delimiter, quote),
        )
        with reader:
            size = chunk_rows + 1
            skip = 1
            while True:
                try:
                    frame = reader.get_chunk(size)
                except StopIteration:
                    return
                records = list(frame.itertuples(index=False, name=None))[skip:]
                if not records:
                    return
                yield records
                size, skip = chunk_rows, 0
    except pd.errors.ParserError as exc:
        raise MalformedStructureError(
            f"La estructura del archivo CSV no es válida: {exc}"
        ) from exc


def _decode_workbook(
    file_bytes: bytes,
    chunk_rows: int,
    sheet_name: str | None,
    column_tolerance: int,
) -> DecodedFile:
    workbook = _open_workbook(file_bytes)
    try:
        sheet_names = list(workbook.sheetnames)
        if not sheet_names:
            raise MalformedStructureError("El libro no contiene hojas")
        selected = sheet_name if sheet_name else sheet_names[0]
        if selected not in sheet_names:
            raise MalformedStructureError(
                f"La hoja '{selected}' no existe. Hojas disponibles: {', '.join(sheet_names)}"
            )

        rows: list[RawRow] = []
        chunks = 0
        for chunk in _iter_sheet_chunks(workbook[selected], chunk_rows, column_tolerance):
            chunks += 1
            rows.extend(row for row in chunk if not row.is_blank())
    finally:
        workbook.close()

    info = FileInfo(
        file_type=FILE_TYPE_XLSX,
        available_sheets=tuple(sheet_names),
        selected_sheet=selected,
        chunks_processed=chunks,
        total_rows=len(rows),
    )
    return DecodedFile(rows=rows, info=info)


def _open_workbook(file_bytes: bytes):
    try:
        return load_workbook(BytesIO(file_bytes), read_only=True, data_only=True)
    except (zipfile.BadZipFile, InvalidFileException, KeyError, OSError) as exc:
        raise MalformedStructureError("El archivo Excel está dañado o no es válido") from exc


def _iter_sheet_chunks(
    worksheet, chunk_rows: int, column_tolerance: int
) -> Iterator[list[RawRow]]:
    columns: list[str] | None = None
    guard: _ColumnGuard | None = None
    chunk: list[RawRow] = []
    for row_number, cells in enumerate(worksheet.iter_rows(values_only=True), start=1):
        texts = [_cell_to_text(value) for value in cells]
        if columns is None:
            if not any(text.strip() for text in texts):
                continue
            columns = _trim_trailing_empty([text.strip() for text in texts])
            _ensure_required_columns(columns)
            guard = _ColumnGuard(len(columns), column_tolerance)
            continue

        padded = guard.trim(texts, row_number) + [""] * (len(columns) - len(texts))
        chunk.append(RawRow(row_number=row_number, values=dict(zip(columns, padded))))
        if len(chunk) >= chunk_rows:
            yield chunk
            chunk = []

    if columns is None:
        raise MalformedStructureError("La hoja seleccionada no contiene encabezados")
    if chunk:
        yield chunk


def _line_span(cells: Sequence[str]) -> int:
    return 1 + sum(cell.count("\n") for cell in cells)


def _trim_trailing_empty(values: list[str]) -> list[str]:
    while values and not values[-1]:
        values.pop()
    return values


def _ensure_required_columns(columns: Sequence[str]) -> None:
    present = {column.strip().lower() for column in columns}
    missing = [name for name in IMPORT_FIELDS if name not in present]
    if missing:
        raise MalformedStructureError(
            "Faltan columnas obligatorias: " + ", ".join(f"'{name}'" for name in missing)
        )


def _cell_to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bytes):
        return codecs.decode(value, "utf-8", errors="replace")
    return str(value)


__all__ = [
    "DELIMITER_CANDIDATES",
    "DecodedFile",
    "QUOTE_CANDIDATES",
    "decode_upload",
    "detect_delimiter",
    "detect_encoding",
    "detect_file_type",
    "detect_quote",
    "ensure_supported_upload",
    "list_sheet_names",
]
