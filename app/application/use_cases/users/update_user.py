"""Use case for updating user information."""

from dataclasses import replace

from sqlalchemy.orm import Session

from app.domain.entities import User
from app.infrastructure.repositories import DuplicateUserError, UserRepository
from app.utils import now_in_app_naive_datetime

from .normalization import normalize_dni, normalize_name, normalize_phone
from .validators import UserValidationError, taken_identifier_errors, validate_user_data


def update_user(
    session: Session,
    *,
    user_id: int,
    name: str | None = None,
    phone: str | None = None,
    dni: str | None = None,
    email: str | None = None,
    strict_dni: bool = False,
) -> User:
    """Update the provided user with the new values."""

    repository = UserRepository(session)
    current_user = repository.get(user_id)
    if current_user is None:
        raise ValueError("Usuario no encontrado")

    candidate = {
        "name": name if name is not None else current_user.name,
        "phone": phone if phone is not None else current_user.phone,
        "dni": dni if dni is not None else current_user.dni,
    }
    errors = validate_user_data(
        candidate,
        repository=repository,
        strict_dni=strict_dni,
        exclude_user_id=user_id,
    )
    if errors:
        raise UserValidationError(errors)

    updated_user = replace(
        current_user,
        name=normalize_name(candidate["name"]),
        phone=normalize_phone(candidate["phone"]),
        dni=normalize_dni(candidate["dni"]),
        email=email if email is not None else current_user.email,
        updated_at=now_in_app_naive_datetime(),
    )

    try:
        return repository.update(updated_user)
    except DuplicateUserError as exc:
        raise UserValidationError(taken_identifier_errors(exc.field)) from exc
