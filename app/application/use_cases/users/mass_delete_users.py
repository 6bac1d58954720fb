"""Use case for soft deleting several users at once."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from app.infrastructure.repositories import UserRepository
from app.utils import now_in_app_naive_datetime

logger = logging.getLogger(__name__)

SELECTION_REQUIRED_MESSAGE = "Debe seleccionar al menos un usuario"
CONFIRMATION_REQUIRED_MESSAGE = "Debe confirmar la eliminación de los usuarios"


@dataclass
class MassDeleteSummary:
    total_selected: int = 0
    successfully_deleted: int = 0
    failed_deletions: int = 0
    invalid_ids: list[int] = field(default_factory=list)
    deleted_ids: list[int] = field(default_factory=list)


def mass_delete_users(
    session: Session,
    *,
    user_ids: Sequence[int],
    confirmed: bool,
) -> MassDeleteSummary:
    """Soft delete every active user in ``user_ids``.

    Identifiers that do not match an active user are reported as invalid
    instead of aborting the operation.
    """

    selected = list(dict.fromkeys(user_ids))
    if not selected:
        raise ValueError(SELECTION_REQUIRED_MESSAGE)
    if not confirmed:
        raise ValueError(CONFIRMATION_REQUIRED_MESSAGE)

    repository = UserRepository(session)
    deleted_ids = repository.delete_many(selected, deleted_at=now_in_app_naive_datetime())
    deleted = set(deleted_ids)
    invalid_ids = [user_id for user_id in selected if user_id not in deleted]

    logger.info(
        "Eliminación masiva: %s seleccionados, %s eliminados, %s inválidos",
        len(selected),
        len(deleted_ids),
        len(invalid_ids),
    )
    return MassDeleteSummary(
        total_selected=len(selected),
        successfully_deleted=len(deleted_ids),
        failed_deletions=len(invalid_ids),
        invalid_ids=invalid_ids,
        deleted_ids=deleted_ids,
    )
