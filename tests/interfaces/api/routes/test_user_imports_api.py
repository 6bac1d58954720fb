"""Integration tests for bulk user import endpoints."""

from __future__ import annotations

from io import BytesIO

import pytest

pytest.importorskip("fastapi")
from fastapi import UploadFile
from fastapi.testclient import TestClient
from openpyxl import Workbook
from sqlalchemy.exc import OperationalError

from app.application.use_cases.user_imports import FileTooLargeError
from app.config import get_settings
from app.infrastructure.repositories import UserRepository
from app.interfaces.api.dependencies import get_app_settings
from app.interfaces.api.routes.users import _read_upload

EXCEL_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

MIXED_FILE = (
    "name;phone;dni\n"
    "Ana Gómez;612345678;12345678\n"
    ";622345678;22345678\n"
    "Ana Copia;612 345 678;32345678\n"
    "Luis Pérez;632345678;42345678\n"
).encode("utf-8")


def _csv_upload(content: bytes, filename: str = "users.csv", content_type: str = "text/csv"):
    return {"file": (filename, content, content_type)}


def _valid_file(count: int, *, offset: int = 0) -> bytes:
    lines = ["name,phone,dni"] + [
        f"Usuario Prueba,7{index + offset:08d},{index + offset + 10000000:08d}"
        for index in range(count)
    ]
    return ("\n".join(lines) + "\n").encode("utf-8")


def test_preview_returns_summary_and_file_info(client: TestClient) -> None:
    response = client.post("/users/mass-preview", files=_csv_upload(MIXED_FILE))

    assert response.status_code == 200
    body = response.json()
    assert body["validation_summary"]["total_rows"] == 4
    assert body["validation_summary"]["valid_rows"] == 2
    assert body["validation_summary"]["invalid_rows"] == 2
    assert [error["type"] for error in body["validation_summary"]["errors"]] == [
        "required_field",
        "duplicate_in_file",
    ]
    assert body["file_info"]["detected_delimiter"] == ";"
    assert body["file_info"]["detected_encoding"] == "UTF-8"
    assert body["preview_data"][0] == {
        "row": 2,
        "name": "Ana Gómez",
        "phone": "612345678",
        "dni": "12345678",
    }
    assert body["processing_info"] == {"total_rows": 4, "chunks_processed": 1}
    assert client.get("/users/").json() == []


def test_preview_excel_lists_sheets(client: TestClient) -> None:
    workbook = Workbook()
    workbook.active.title = "Resumen"
    workbook.active.append(["otra", "cosa"])
    sheet = workbook.create_sheet("Usuarios")
    sheet.append(["name", "phone", "dni"])
    sheet.append(["Ana Gómez", "612345678", "12345678"])
    buffer = BytesIO()
    workbook.save(buffer)

    response = client.post(
        "/users/mass-preview",
        files={"file": ("users.xlsx", buffer.getvalue(), EXCEL_CONTENT_TYPE)},
        data={"sheet": "Usuarios"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["sheet_info"] == {
        "available_sheets": ["Resumen", "Usuarios"],
        "selected_sheet": "Usuarios",
    }
    assert body["validation_summary"]["valid_rows"] == 1


def test_preview_rejects_unsupported_file(client: TestClient) -> None:
    response = client.post(
        "/users/mass-preview", files=_csv_upload(b"%PDF", "users.pdf", "application/pdf")
    )

    assert response.status_code == 422
    assert "Formato de archivo no válido" in response.json()["detail"]


def test_preview_rejects_too_large_file(client: TestClient) -> None:
    settings = get_settings().model_copy(update={"import_max_upload_bytes": 10})
    client.app.dependency_overrides[get_app_settings] = lambda: settings
    try:
        response = client.post("/users/mass-preview", files=_csv_upload(MIXED_FILE))
    finally:
        client.app.dependency_overrides.clear()

    assert response.status_code == 422
    assert "demasiado grande" in response.json()["detail"]


def test_mass_store_creates_users_in_batches(client: TestClient) -> None:
    response = client.post(
        "/users/mass-store",
        files=_csv_upload(_valid_file(50)),
        data={"batch_size": "10", "atomic": "false"},
    )

    assert response.status_code == 201
    summary = response.json()["summary"]
    assert summary["created_count"] == 50
    assert summary["failed_count"] == 0
    assert summary["batches_processed"] == 5
    assert len(client.get("/users/", params={"limit": 100}).json()) == 50


def test_mass_store_atomic_rolls_back_on_invalid_row(client: TestClient) -> None:
    response = client.post(
        "/users/mass-store",
        files=_csv_upload(MIXED_FILE),
        data={"atomic": "true"},
    )

    assert response.status_code == 422
    body = response.json()
    assert body["failed_row"] == 3
    assert len(body["validation_errors"]) == 2
    assert client.get("/users/").json() == []


def test_mass_store_partial_import_returns_multi_status(client: TestClient) -> None:
    response = client.post("/users/mass-store", files=_csv_upload(MIXED_FILE))

    assert response.status_code == 207
    body = response.json()
    assert body["summary"]["created_count"] == 2
    assert body["summary"]["invalid_rows"] == 2
    assert [error["row"] for error in body["errors"]] == [3, 4]


def test_mass_store_detects_existing_users(client: TestClient) -> None:
    client.post("/users/", json={"name": "Eva", "phone": "700000000", "dni": "10000000"})

    response = client.post("/users/mass-store", files=_csv_upload(_valid_file(3)))

    assert response.status_code == 207
    [error] = response.json()["errors"]
    assert error == {
        "row": 2,
        "field": "phone",
        "type": "duplicate_in_database",
        "message": "El teléfono ya está registrado",
    }


def test_import_after_soft_delete_reuses_identifiers(client: TestClient) -> None:
    created = client.post(
        "/users/", json={"name": "Eva", "phone": "700000000", "dni": "10000000"}
    ).json()
    client.delete(f"/users/{created['id']}")

    response = client.post("/users/mass-store", files=_csv_upload(_valid_file(1)))

    assert response.status_code == 201
    assert response.json()["summary"]["created_count"] == 1


def test_csv_template_download(client: TestClient) -> None:
    response = client.get("/users/csv-template")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "users_template.csv" in response.headers["content-disposition"]
    assert response.text.splitlines()[0] == "name,phone,dni"


def test_mass_store_storage_fault_reports_committed_rows(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    insert_batch = UserRepository.insert_batch
    calls = []

    def insert_or_fail(self, rows, **kwargs):
        calls.append(len(rows))
        if len(calls) == 2:
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))
        return insert_batch(self, rows, **kwargs)

    monkeypatch.setattr(UserRepository, "insert_batch", insert_or_fail)

    response = client.post(
        "/users/mass-store",
        files=_csv_upload(_valid_file(20)),
        data={"batch_size": "10"},
    )

    assert response.status_code == 500
    body = response.json()
    assert body["created_count"] == 10
    assert body["batches_processed"] == 1
    assert body["failed_row"] == 12
    monkeypatch.undo()
    assert len(client.get("/users/", params={"limit": 100}).json()) == 10


class _TrackingBuffer(BytesIO):
    def __init__(self, data: bytes) -> None:
        super().__init__(data)
        self.requested: list[int] = []

    def read(self, size: int | None = -1) -> bytes:
        self.requested.append(size)
        return super().read(size)


def test_upload_with_declared_size_over_limit_is_not_read() -> None:
    buffer = _TrackingBuffer(b"x" * 100)
    upload = UploadFile(file=buffer, filename="users.csv", size=100)

    with pytest.raises(FileTooLargeError):
        _read_upload(upload, 10)

    assert buffer.requested == []


def test_upload_without_declared_size_reads_at_most_one_byte_over_limit() -> None:
    buffer = _TrackingBuffer(b"x" * 100)
    upload = UploadFile(file=buffer, filename="users.csv")

    with pytest.raises(FileTooLargeError):
        _read_upload(upload, 10)

    assert buffer.requested == [11]
