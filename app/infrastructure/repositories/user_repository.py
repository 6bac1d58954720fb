"""Persistence layer for user data."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.domain.entities import NormalizedRow, User
from app.infrastructure.models import UserModel

logger = logging.getLogger(__name__)

_LOOKUP_CHUNK = 500


class DuplicateUserError(ValueError):
    """An active user already holds the phone or DNI being stored."""

    def __init__(self, field: str | None) -> None:
        super().__init__("El teléfono o el DNI ya están en uso")
        self.field = field


@dataclass(frozen=True)
class InsertOutcome:
    """Per-row result of :meth:`UserRepository.insert_batch`."""

    row_number: int
    created: bool
    reason: str | None = None


class UserRepository:
    """Provide CRUD and bulk operations for user entities."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list(self, skip: int = 0, limit: int = 100, search: str | None = None) -> Sequence[User]:
        query = (
            self.session.query(UserModel)
            .filter(UserModel.deleted.is_(False))
            .order_by(UserModel.id)
        )
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    UserModel.name.ilike(pattern),
                    UserModel.phone.ilike(pattern),
                    UserModel.dni.ilike(pattern),
                )
            )
        return [self._to_entity(model) for model in query.offset(skip).limit(limit).all()]

    def get(self, user_id: int, *, include_deleted: bool = False) -> User | None:
        model = self._get_model(include_deleted=include_deleted, id=user_id)
        return self._to_entity(model) if model else None

    def get_by_phone(self, phone: str) -> User | None:
        model = self._get_model(phone=phone)
        return self._to_entity(model) if model else None

    def get_by_dni(self, dni: str) -> User | None:
        model = self._get_model(dni=dni)
        return self._to_entity(model) if model else None

    def find_active_identifiers(
        self, phones: Iterable[str], dnis: Iterable[str]
    ) -> tuple[set[str], set[str]]:
        """Return the subsets of ``phones`` and ``dnis`` held by active users."""

        return (
            self._existing_values(UserModel.phone, phones),
            self._existing_values(UserModel.dni, dnis),
        )

    def create(self, user: User) -> User:
        model = UserModel()
        self._apply_entity_to_model(model, user)
        self.session.add(model)
        self._commit_unique()
        self.session.refresh(model)
        return self._to_entity(model)

    def update(self, user: User) -> User:
        model = self._get_model(id=user.id)
        if not model:
            msg = f"User with id {user.id} not found"
            raise ValueError(msg)
        self._apply_entity_to_model(model, user)
        self.session.add(model)
        self._commit_unique()
        self.session.refresh(model)
        return self._to_entity(model)

    def delete(self, user_id: int, *, deleted_at: datetime) -> None:
        """Soft delete ``user_id`` so its phone and DNI become reusable."""

        model = self._get_model(include_deleted=True, id=user_id)
        if not model:
            msg = f"User with id {user_id} not found"
            raise ValueError(msg)

        if model.deleted:
            return

        self._tombstone(model, deleted_at)
        self.session.commit()

    def delete_many(self, user_ids: Sequence[int], *, deleted_at: datetime) -> list[int]:
        """Soft delete every active user in ``user_ids`` in one transaction.

        Returns the identifiers that were actually deleted.
        """

        if not user_ids:
            return []

        models = (
            self.session.query(UserModel)
            .filter(UserModel.id.in_({int(user_id) for user_id in user_ids}))
            .filter(UserModel.deleted.is_(False))
            .all()
        )
        for model in models:
            self._tombstone(model, deleted_at)
        self.session.commit()
        return sorted(model.id for model in models)

    def insert_batch(
        self,
        rows: Sequence[NormalizedRow],
        *,
        timestamp: datetime,
        stop_on_error: bool = False,
    ) -> list[InsertOutcome]:
        """Insert ``rows`` in the current transaction, each inside a savepoint.

        Rows rejected by the unique indexes are rolled back individually and
        reported as failures; nothing is committed here. With
        ``stop_on_error`` the first failure ends the batch.
        """

        outcomes: list[InsertOutcome] = []
        for row in rows:
            model = UserModel(
                name=row.name,
                phone=row.phone,
                dni=row.dni,
                created_at=timestamp,
                updated_at=timestamp,
                deleted=False,
            )
            try:
                with self.session.begin_nested():
                    self.session.add(model)
                    self.session.flush()
            except IntegrityError as exc:
                reason = self._describe_integrity_error(exc, row)
                logger.info("Fila %s rechazada por la base de datos: %s", row.row_number, reason)
                outcomes.append(InsertOutcome(row.row_number, created=False, reason=reason))
                if stop_on_error:
                    break
                continue
            outcomes.append(InsertOutcome(row.row_number, created=True))
        return outcomes

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def _existing_values(self, column, values: Iterable[str]) -> set[str]:
        candidates = sorted({value for value in values if value})
        found: set[str] = set()
        for start in range(0, len(candidates), _LOOKUP_CHUNK):
            chunk = candidates[start : start + _LOOKUP_CHUNK]
            statement = (
                select(column)
                .where(UserModel.deleted.is_(False))
                .where(column.in_(chunk))
            )
            found.update(self.session.execute(statement).scalars().all())
        return found

    def _commit_unique(self) -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            field = self._conflicting_column(exc)
            logger.info("Usuario rechazado por la base de datos: %s duplicado", field)
            raise DuplicateUserError(field) from exc

    @staticmethod
    def _conflicting_column(exc: IntegrityError) -> str | None:
        detail = str(exc.orig).lower()
        if "dni" in detail:
            return "dni"
        if "phone" in detail:
            return "phone"
        return None

    def _describe_integrity_error(self, exc: IntegrityError, row: NormalizedRow) -> str:
        field = self._conflicting_column(exc)
        if field == "dni":
            return f"El DNI {row.dni} ya está en uso"
        if field == "phone":
            return f"El teléfono {row.phone} ya está en uso"
        return "El teléfono o el DNI ya están en uso"

    @staticmethod
    def _tombstone(model: UserModel, deleted_at: datetime) -> None:
        model.deleted = True
        model.deleted_at = deleted_at
        model.updated_at = deleted_at

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            name=model.name,
            email=model.email,
            phone=model.phone,
            dni=model.dni,
            created_at=model.created_at,
            updated_at=model.updated_at,
            deleted=model.deleted,
            deleted_at=model.deleted_at,
        )

    def _get_model(self, include_deleted: bool = False, **filters) -> UserModel | None:
        query = self.session.query(UserModel)
        if not include_deleted:
            query = query.filter(UserModel.deleted.is_(False))
        return query.filter_by(**filters).first()

    @staticmethod
    def _apply_entity_to_model(model: UserModel, user: User) -> None:
        model.name = user.name
        model.email = user.email
        model.phone = user.phone
        model.dni = user.dni
        if user.created_at is not None:
            model.created_at = user.created_at
        model.updated_at = user.updated_at
        model.deleted = user.deleted
        model.deleted_at = user.deleted_at
