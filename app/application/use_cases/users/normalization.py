"""Canonical forms for user fields coming from forms and import files."""

from __future__ import annotations

import re

from app.domain.entities import NormalizedRow, RawRow

_WHITESPACE = re.compile(r"\s+")
_PHONE_NOISE = re.compile(r"[\s\-().]+")
_DNI_NOISE = re.compile(r"[\s\-.]+")


def _capitalize(segment: str) -> str:
    return segment[:1].upper() + segment[1:].lower()


def _capitalize_word(word: str) -> str:
    # "josé-maría" -> "José-María", "o'connor" -> "O'Connor"
    return "-".join(
        "'".join(_capitalize(part) for part in segment.split("'"))
        for segment in word.split("-")
    )


def normalize_name(name: str) -> str:
    """Trim, collapse inner whitespace and title-case each word segment."""

    collapsed = _WHITESPACE.sub(" ", name or "").strip()
    return " ".join(_capitalize_word(word) for word in collapsed.split(" ") if word)


def normalize_phone(phone: str) -> str:
    """Strip separators and turn a ``00`` international prefix into ``+``."""

    cleaned = _PHONE_NOISE.sub("", phone or "")
    if cleaned.startswith("00"):
        cleaned = "+" + cleaned[2:]
    return cleaned


def normalize_dni(dni: str) -> str:
    """Strip separators and upper-case a trailing control letter."""

    cleaned = _DNI_NOISE.sub("", dni or "")
    if cleaned and cleaned[-1].isalpha():
        cleaned = cleaned[:-1] + cleaned[-1].upper()
    return cleaned


def normalize_row(raw_row: RawRow) -> NormalizedRow:
    """Build the :class:`NormalizedRow` for ``raw_row``."""

    return NormalizedRow(
        row_number=raw_row.row_number,
        name=normalize_name(raw_row.get("name")),
        phone=normalize_phone(raw_row.get("phone")),
        dni=normalize_dni(raw_row.get("dni")),
    )


__all__ = ["normalize_dni", "normalize_name", "normalize_phone", "normalize_row"]
