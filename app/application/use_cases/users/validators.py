"""Common validation helpers for user use cases."""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .normalization import normalize_dni, normalize_name, normalize_phone

if TYPE_CHECKING:  # pragma: no cover
    from app.infrastructure.repositories import UserRepository

DNI_LETTERS = "TRWAGMYFPDXBNJZSQVHLCKE"

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 255

_PHONE_PATTERN = re.compile(r"^\+?\d{2,15}$")
_GENERIC_DNI_PATTERN = re.compile(r"^\d{8,12}$")
_LETTER_DNI_PATTERN = re.compile(r"^(?P<number>\d{8})(?P<letter>[A-Z])$")
_NAME_PUNCTUATION = frozenset(" -'")

PHONE_REQUIRED_MESSAGE = "El teléfono es obligatorio"
PHONE_FORMAT_MESSAGE = "El formato del número de teléfono no es válido"
PHONE_TAKEN_MESSAGE = "El teléfono ya está en uso"
DNI_REQUIRED_MESSAGE = "El DNI es obligatorio"
DNI_FORMAT_MESSAGE = "El formato del DNI no es válido"
DNI_CHECKSUM_MESSAGE = "El checksum del DNI no es válido"
DNI_TAKEN_MESSAGE = "El DNI ya está en uso"
NAME_REQUIRED_MESSAGE = "El nombre es obligatorio"
NAME_FORMAT_MESSAGE = (
    "El nombre debe tener entre 2 y 255 caracteres y solo puede contener letras, "
    "espacios, guiones y apóstrofes"
)


class UserValidationError(ValueError):
    """Raised when a single user payload fails validation."""

    def __init__(self, errors: Mapping[str, list[str]]) -> None:
        super().__init__("Los datos del usuario no son válidos")
        self.errors = {field: list(messages) for field, messages in errors.items()}


def validate_phone(phone: str) -> bool:
    """Return ``True`` for an optional ``+`` followed by 2 to 15 digits."""

    return bool(phone) and _PHONE_PATTERN.fullmatch(phone) is not None


def dni_checksum_letter(number: int | str) -> str:
    """Return the control letter for the numeric part of a DNI."""

    return DNI_LETTERS[int(number) % len(DNI_LETTERS)]


def dni_checksum_matches(dni: str) -> bool:
    """Return ``True`` when ``dni`` is ``8 digits + letter`` with a valid letter."""

    match = _LETTER_DNI_PATTERN.fullmatch(dni or "")
    if match is None:
        return False
    return dni_checksum_letter(match.group("number")) == match.group("letter")


def is_letter_dni(dni: str) -> bool:
    """Return ``True`` when ``dni`` has the ``8 digits + letter`` shape."""

    return _LETTER_DNI_PATTERN.fullmatch(dni or "") is not None


def validate_dni(dni: str, *, strict: bool = False) -> bool:
    """Validate a national identity number.

    Generic mode accepts 8 to 12 digits or 8 digits followed by an uppercase
    letter. Strict mode only accepts the latter and requires the letter to
    match the modulo-23 checksum.
    """

    if not dni:
        return False
    if strict:
        return dni_checksum_matches(dni)
    return _GENERIC_DNI_PATTERN.fullmatch(dni) is not None or is_letter_dni(dni)


def validate_name(name: str) -> bool:
    """Return ``True`` for 2-255 characters made of letters, spaces, ``-`` and ``'``."""

    if not name or not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        return False
    has_letter = False
    for char in name:
        if char.isalpha():
            has_letter = True
            continue
        if char in _NAME_PUNCTUATION or unicodedata.combining(char):
            continue
        return False
    return has_letter


def validate_user_data(
    data: Mapping[str, Any],
    *,
    repository: UserRepository | None = None,
    strict_dni: bool = False,
    exclude_user_id: int | None = None,
) -> dict[str, list[str]]:
    """Validate a single user payload.

    Returns a mapping of field name to error messages; an empty mapping means
    the data is valid. When ``repository`` is given, phone and DNI uniqueness
    is checked against active users other than ``exclude_user_id``.
    """

    errors: dict[str, list[str]] = {}

    name = normalize_name(_as_text(data.get("name")))
    phone = normalize_phone(_as_text(data.get("phone")))
    dni = normalize_dni(_as_text(data.get("dni")))

    if not name:
        errors.setdefault("name", []).append(NAME_REQUIRED_MESSAGE)
    elif not validate_name(name):
        errors.setdefault("name", []).append(NAME_FORMAT_MESSAGE)

    if not phone:
        errors.setdefault("phone", []).append(PHONE_REQUIRED_MESSAGE)
    elif not validate_phone(phone):
        errors.setdefault("phone", []).append(PHONE_FORMAT_MESSAGE)

    if not dni:
        errors.setdefault("dni", []).append(DNI_REQUIRED_MESSAGE)
    elif not validate_dni(dni, strict=strict_dni):
        message = (
            DNI_CHECKSUM_MESSAGE
            if strict_dni and is_letter_dni(dni)
            else DNI_FORMAT_MESSAGE
        )
        errors.setdefault("dni", []).append(message)

    if repository is not None:
        if "phone" not in errors and _taken(repository.get_by_phone(phone), exclude_user_id):
            errors.setdefault("phone", []).append(PHONE_TAKEN_MESSAGE)
        if "dni" not in errors and _taken(repository.get_by_dni(dni), exclude_user_id):
            errors.setdefault("dni", []).append(DNI_TAKEN_MESSAGE)

    return errors


def taken_identifier_errors(field: str | None) -> dict[str, list[str]]:
    """Errors for an identifier the database rejected as already in use."""

    if field == "phone":
        return {"phone": [PHONE_TAKEN_MESSAGE]}
    if field == "dni":
        return {"dni": [DNI_TAKEN_MESSAGE]}
    return {"phone": [PHONE_TAKEN_MESSAGE], "dni": [DNI_TAKEN_MESSAGE]}


def _taken(existing: Any, exclude_user_id: int | None) -> bool:
    if existing is None:
        return False
    return exclude_user_id is None or existing.id != exclude_user_id


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


__all__ = [
    "DNI_LETTERS",
    "UserValidationError",
    "dni_checksum_letter",
    "dni_checksum_matches",
    "is_letter_dni",
    "taken_identifier_errors",
    "validate_dni",
    "validate_name",
    "validate_phone",
    "validate_user_data",
]
