"""Shared fixtures for the test-suite."""

from __future__ import annotations

import os
import sys
import tempfile
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

TEST_DB_PATH = Path(tempfile.gettempdir()) / "users_api_test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["APP_TIMEZONE"] = "UTC"

from app.config import reset_settings_cache  # noqa: E402

reset_settings_cache()

from app.domain.entities import NormalizedRow  # noqa: E402
from app.infrastructure.database import (  # noqa: E402
    Base,
    SessionLocal,
    engine,
    initialize_database,
)
from app.infrastructure.repositories import InsertOutcome  # noqa: E402


class InMemoryUserRepository:
    """Stand-in for ``UserRepository`` keeping rows in memory.

    Inserted rows stay pending until :meth:`commit`; :meth:`rollback`
    discards them like a database transaction would.
    """

    def __init__(
        self,
        phones: Sequence[str] = (),
        dnis: Sequence[str] = (),
        *,
        conflicting_rows: Sequence[int] = (),
    ) -> None:
        self.committed: list[dict] = []
        self.pending: list[dict] = []
        self.phones = set(phones)
        self.dnis = set(dnis)
        self.conflicting_rows = set(conflicting_rows)
        self.commits = 0
        self.rollbacks = 0
        self.batch_sizes: list[int] = []

    def find_active_identifiers(self, phones, dnis):
        return self.phones & set(phones), self.dnis & set(dnis)

    def insert_batch(
        self,
        rows: Sequence[NormalizedRow],
        *,
        timestamp: datetime,
        stop_on_error: bool = False,
    ) -> list[InsertOutcome]:
        self.batch_sizes.append(len(rows))
        outcomes = []
        for row in rows:
            taken_phones = self.phones | {item["phone"] for item in self.pending}
            taken_dnis = self.dnis | {item["dni"] for item in self.pending}
            if (
                row.row_number in self.conflicting_rows
                or row.phone in taken_phones
                or row.dni in taken_dnis
            ):
                outcomes.append(
                    InsertOutcome(
                        row.row_number,
                        created=False,
                        reason=f"El teléfono {row.phone} ya está en uso",
                    )
                )
                if stop_on_error:
                    break
                continue
            self.pending.append(
                {
                    "row": row.row_number,
                    "name": row.name,
                    "phone": row.phone,
                    "dni": row.dni,
                    "created_at": timestamp,
                    "updated_at": timestamp,
                }
            )
            outcomes.append(InsertOutcome(row.row_number, created=True))
        return outcomes

    def commit(self) -> None:
        self.commits += 1
        for item in self.pending:
            self.phones.add(item["phone"])
            self.dnis.add(item["dni"])
        self.committed.extend(self.pending)
        self.pending = []

    def rollback(self) -> None:
        self.rollbacks += 1
        self.pending = []


@pytest.fixture()
def memory_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture()
def reset_database():
    """Recreate every table so each test starts from an empty database."""

    Base.metadata.drop_all(bind=engine)
    initialize_database()
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(reset_database):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(reset_database):
    """Return a test client bound to a clean application instance."""

    from fastapi.testclient import TestClient

    from main import create_app

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
