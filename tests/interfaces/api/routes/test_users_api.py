"""Integration tests for the user API endpoints."""

from __future__ import annotations

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient


def _create(client: TestClient, **overrides) -> dict:
    payload = {"name": "ana gómez", "phone": "+34 612 345 678", "dni": "12345678z"}
    payload.update(overrides)
    response = client.post("/users/", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_user_crud_flow(client: TestClient) -> None:
    created = _create(client, email="ana@example.com")

    assert created["name"] == "Ana Gómez"
    assert created["phone"] == "+34612345678"
    assert created["dni"] == "12345678Z"
    assert created["is_active"] is True
    user_id = created["id"]

    list_response = client.get("/users/", params={"search": "Ana"})
    assert list_response.status_code == 200
    assert [user["id"] for user in list_response.json()] == [user_id]

    update_response = client.put(f"/users/{user_id}", json={"name": "ana maría gómez"})
    assert update_response.status_code == 200
    assert update_response.json()["name"] == "Ana María Gómez"
    assert update_response.json()["phone"] == "+34612345678"

    delete_response = client.delete(f"/users/{user_id}")
    assert delete_response.status_code == 204

    assert client.get(f"/users/{user_id}").status_code == 404
    assert client.get("/users/").json() == []


def test_create_user_reports_errors_per_field(client: TestClient) -> None:
    response = client.post("/users/", json={"name": "A1", "phone": "abc", "dni": "123"})

    assert response.status_code == 422
    errors = response.json()["detail"]["errors"]
    assert set(errors) == {"name", "phone", "dni"}


def test_create_user_reports_empty_fields_as_required(client: TestClient) -> None:
    response = client.post("/users/", json={"name": "", "phone": "", "dni": " "})

    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == {
        "name": ["El nombre es obligatorio"],
        "phone": ["El teléfono es obligatorio"],
        "dni": ["El DNI es obligatorio"],
    }


def test_create_user_rejects_taken_phone_and_dni(client: TestClient) -> None:
    _create(client)

    response = client.post(
        "/users/", json={"name": "Luis", "phone": "0034612345678", "dni": "12.345.678-Z"}
    )

    assert response.status_code == 422
    errors = response.json()["detail"]["errors"]
    assert errors == {"phone": ["El teléfono ya está en uso"], "dni": ["El DNI ya está en uso"]}


def test_update_user_cannot_take_identifiers_of_another_user(client: TestClient) -> None:
    _create(client)
    other = _create(client, name="Luis", phone="622345678", dni="22345678")

    response = client.put(f"/users/{other['id']}", json={"phone": "+34612345678"})

    assert response.status_code == 422
    assert "phone" in response.json()["detail"]["errors"]


def test_soft_deleted_user_frees_phone_and_dni(client: TestClient) -> None:
    created = _create(client)
    client.delete(f"/users/{created['id']}")

    recreated = _create(client, name="Otra Persona")

    assert recreated["id"] != created["id"]


def test_unknown_user_returns_404(client: TestClient) -> None:
    assert client.get("/users/999").status_code == 404
    assert client.put("/users/999", json={"name": "Ana"}).status_code == 404
    assert client.delete("/users/999").status_code == 404


def test_mass_destroy_mixed_ids_returns_multi_status(client: TestClient) -> None:
    first = _create(client)
    second = _create(client, name="Luis", phone="622345678", dni="22345678")

    response = client.request(
        "DELETE",
        "/users/mass-destroy",
        json={"user_ids": [first["id"], second["id"], 999], "confirmed": True},
    )

    assert response.status_code == 207
    summary = response.json()["summary"]
    assert summary == {
        "total_selected": 3,
        "successfully_deleted": 2,
        "failed_deletions": 1,
        "invalid_ids": [999],
    }
    assert client.get("/users/").json() == []


def test_mass_destroy_all_valid(client: TestClient) -> None:
    created = _create(client)

    response = client.request(
        "DELETE", "/users/mass-destroy", json={"user_ids": [created["id"]], "confirmed": True}
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Usuarios eliminados exitosamente"


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"user_ids": [], "confirmed": True}, "Debe seleccionar al menos un usuario"),
        ({"user_ids": [1], "confirmed": False}, "Debe confirmar la eliminación de los usuarios"),
    ],
)
def test_mass_destroy_requires_selection_and_confirmation(
    client: TestClient, payload: dict, message: str
) -> None:
    response = client.request("DELETE", "/users/mass-destroy", json=payload)

    assert response.status_code == 422
    assert response.json()["detail"] == message


def test_mass_destroy_only_invalid_ids(client: TestClient) -> None:
    response = client.request(
        "DELETE", "/users/mass-destroy", json={"user_ids": [404], "confirmed": True}
    )

    assert response.status_code == 422
    assert response.json()["detail"]["summary"]["invalid_ids"] == [404]
