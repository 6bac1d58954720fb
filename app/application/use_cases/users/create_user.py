"""Use case for creating users."""

from sqlalchemy.orm import Session

from app.domain.entities import User
from app.infrastructure.repositories import DuplicateUserError, UserRepository
from app.utils import now_in_app_naive_datetime

from .normalization import normalize_dni, normalize_name, normalize_phone
from .validators import UserValidationError, taken_identifier_errors, validate_user_data


def create_user(
    session: Session,
    *,
    name: str,
    phone: str,
    dni: str,
    email: str | None = None,
    strict_dni: bool = False,
) -> User:
    """Create a new user ensuring unique phone numbers and DNIs."""

    repository = UserRepository(session)

    errors = validate_user_data(
        {"name": name, "phone": phone, "dni": dni},
        repository=repository,
        strict_dni=strict_dni,
    )
    if errors:
        raise UserValidationError(errors)

    now = now_in_app_naive_datetime()
    user = User(
        id=None,
        name=normalize_name(name),
        email=email,
        phone=normalize_phone(phone),
        dni=normalize_dni(dni),
        created_at=now,
        updated_at=now,
    )

    try:
        return repository.create(user)
    except DuplicateUserError as exc:
        raise UserValidationError(taken_identifier_errors(exc.field)) from exc
