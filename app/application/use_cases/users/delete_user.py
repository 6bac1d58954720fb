"""Use case for deleting a user."""

from sqlalchemy.orm import Session

from app.infrastructure.repositories import UserRepository
from app.utils import now_in_app_naive_datetime


def delete_user(session: Session, user_id: int) -> None:
    """Soft delete the specified user, freeing its phone and DNI."""

    repository = UserRepository(session)
    user = repository.get(user_id)
    if user is None:
        raise ValueError("Usuario no encontrado")
    repository.delete(user_id, deleted_at=now_in_app_naive_datetime())
