"""Tests for the salon service menu."""
from __future__ import annotations

from salonbook.extensions import db
from salonbook.models import Service


def test_owner_creates_service_with_defaults(client, factory) -> None:
    owner_id = factory.user(role="owner")
    salon_id = factory.salon(owner_id)

    response = client.post(
        f"/api/salons/{salon_id}/services",
        json={"name": "Blowout", "price": "35.5"},
        headers=factory.headers(owner_id),
    )

    assert response.status_code == 201
    data = response.get_json()["data"]
    assert data["salon_id"] == salon_id
    assert data["price"] == 35.5
    assert data["duration_minutes"] == 30
    assert data["category"] == "Other"
    assert data["is_active"] is True


def test_create_service_validation_is_422(client, factory) -> None:
    owner_id = factory.user(role="owner")
    salon_id = factory.salon(owner_id)

    response = client.post(
        f"/api/salons/{salon_id}/services",
        json={"name": "X", "price": -1, "duration_minutes": 0},
        headers=factory.headers(owner_id),
    )

    assert response.status_code == 422
    assert set(response.get_json()["errors"]) == {"name", "price", "duration_minutes"}


def test_create_service_in_someone_elses_salon(client, factory) -> None:
    salon_id = factory.salon(factory.user(role="owner"))
    intruder = factory.headers(factory.user(role="owner"))

    response = client.post(
        f"/api/salons/{salon_id}/services", json={"name": "Trim", "price": 10}, headers=intruder
    )

    assert response.status_code == 403


def test_public_list_hides_inactive_services(client, factory) -> None:
    owner_id = factory.user(role="owner")
    salon_id = factory.salon(owner_id)
    factory.service(salon_id, name="Colour")
    factory.service(salon_id, name="Perm", is_active=False)

    public = client.get(f"/api/salons/{salon_id}/services")
    assert [service["name"] for service in public.get_json()["data"]] == ["Colour"]

    owner_view = client.get(f"/api/salons/{salon_id}/services", headers=factory.headers(owner_id))
    assert [service["name"] for service in owner_view.get_json()["data"]] == ["Colour", "Perm"]


def test_list_services_unknown_salon(client) -> None:
    assert client.get("/api/salons/nope/services").status_code == 404


def test_update_service(client, factory) -> None:
    owner_id = factory.user(role="owner")
    service_id = factory.service(factory.salon(owner_id))

    response = client.put(
        f"/api/services/{service_id}", json={"price": 55, "duration": 60}, headers=factory.headers(owner_id)
    )

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["price"] == 55
    assert data["duration_minutes"] == 60
    assert data["name"] == "Haircut"


def test_update_service_bad_price_is_422(client, factory) -> None:
    owner_id = factory.user(role="owner")
    service_id = factory.service(factory.salon(owner_id))

    response = client.put(f"/api/services/{service_id}", json={"price": "free"}, headers=factory.headers(owner_id))

    assert response.status_code == 422


def test_soft_delete_service_is_idempotent(client, factory) -> None:
    owner_id = factory.user(role="owner")
    salon_id = factory.salon(owner_id)
    service_id = factory.service(salon_id)
    headers = factory.headers(owner_id)

    first = client.delete(f"/api/services/{service_id}", headers=headers)
    second = client.delete(f"/api/services/{service_id}", headers=headers)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.get_json()["data"]["is_active"] is False
    assert client.get(f"/api/services/{service_id}").status_code == 404
    assert client.get(f"/api/salons/{salon_id}/services").get_json()["data"] == []


def test_other_owner_cannot_update_or_delete_service(app, client, factory) -> None:
    service_id = factory.service(factory.salon(factory.user(role="owner")), name="Balayage", price=120.0)
    intruder = factory.headers(factory.user(role="owner"))

    update = client.put(f"/api/services/{service_id}", json={"price": 1}, headers=intruder)
    delete = client.delete(f"/api/services/{service_id}", headers=intruder)

    assert update.status_code == 403
    assert delete.status_code == 403
    with app.app_context():
        service = db.session.get(Service, service_id)
        assert service.price == 120.0
        assert service.is_active is True


def test_infinite_duration_is_a_field_error(client, factory) -> None:
    owner_id = factory.user(role="owner")
    salon_id = factory.salon(owner_id)

    response = client.post(
        f"/api/salons/{salon_id}/services",
        data='{"name": "Trim", "price": 10, "duration_minutes": Infinity}',
        content_type="application/json",
        headers=factory.headers(owner_id),
    )

    assert response.status_code == 422
    assert "duration_minutes" in response.get_json()["errors"]
