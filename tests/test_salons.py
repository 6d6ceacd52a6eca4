"""Tests for salon creation, browsing and ownership checks."""
from __future__ import annotations

from salonbook.extensions import db
from salonbook.models import Appointment, Salon, Service


def _salon_payload(**overrides):
    payload = {
        "name": "Shear Bliss",
        "description": "Cuts and colour",
        "address": "12 Broad St",
        "city": "Newark",
        "state": "NJ",
        "zipCode": "07102",
        "phone": "973-555-0142",
        "email": "hello@shearbliss.com",
        "opening_time": "09:00",
        "closing_time": "19:00",
    }
    payload.update(overrides)
    return payload


def test_owner_creates_salon_and_reads_it_back(client, factory) -> None:
    owner_id = factory.user(role="owner")
    headers = factory.headers(owner_id)

    response = client.post("/api/salons", json=_salon_payload(), headers=headers)

    assert response.status_code == 201
    created = response.get_json()["data"]
    assert created["owner_id"] == owner_id
    assert created["zip_code"] == "07102"
    assert created["rating"] == 0

    response = client.get(f"/api/salons/{created['id']}")

    assert response.status_code == 200
    fetched = response.get_json()["data"]
    for field in ("name", "address", "city", "phone", "email", "opening_time", "closing_time"):
        assert fetched[field] == created[field]
    assert fetched["opening_time"] == "09:00"


def test_customer_cannot_create_salon(client, factory) -> None:
    headers = factory.headers(factory.user())

    response = client.post("/api/salons", json=_salon_payload(), headers=headers)

    assert response.status_code == 403


def test_create_salon_validation(client, factory) -> None:
    headers = factory.headers(factory.user(role="owner"))

    response = client.post(
        "/api/salons",
        json={"name": "X", "opening_time": "18:00", "closing_time": "09:00"},
        headers=headers,
    )

    assert response.status_code == 400
    errors = response.get_json()["errors"]
    assert {"name", "address", "city", "closing_time"} <= set(errors)


def test_admin_must_name_an_owner(client, factory) -> None:
    admin_headers = factory.headers(factory.user(role="admin"))
    owner_id = factory.user(role="owner")

    response = client.post("/api/salons", json=_salon_payload(), headers=admin_headers)
    assert response.status_code == 400
    assert "owner_id" in response.get_json()["errors"]

    response = client.post("/api/salons", json=_salon_payload(ownerId=owner_id), headers=admin_headers)
    assert response.status_code == 201
    assert response.get_json()["data"]["owner_id"] == owner_id


def test_list_salons_filters_and_counts(client, factory) -> None:
    owner_id = factory.user(role="owner")
    factory.salon(owner_id, name="Alpha Cuts", city="Newark", rating=4.5)
    factory.salon(owner_id, name="Beta Nails", city="newark", rating=3.0, description="Manicure bar")
    factory.salon(owner_id, name="Gamma Spa", city="Hoboken")
    factory.salon(owner_id, name="Hidden", city="Newark", is_active=False)

    response = client.get("/api/salons?city=NEWARK")

    body = response.get_json()
    assert response.status_code == 200
    assert body["count"] == 2
    assert [salon["name"] for salon in body["data"]] == ["Alpha Cuts", "Beta Nails"]

    response = client.get("/api/salons?search=manicure")
    assert [salon["name"] for salon in response.get_json()["data"]] == ["Beta Nails"]

    response = client.get("/api/salons?limit=1&offset=1&city=newark")
    assert [salon["name"] for salon in response.get_json()["data"]] == ["Beta Nails"]


def test_list_salons_rejects_bad_paging(client) -> None:
    response = client.get("/api/salons?limit=lots")

    assert response.status_code == 400


def test_inactive_salon_hidden_from_public_but_not_owner(client, factory) -> None:
    owner_id = factory.user(role="owner")
    salon_id = factory.salon(owner_id, is_active=False)

    assert client.get(f"/api/salons/{salon_id}").status_code == 404
    response = client.get(f"/api/salons/{salon_id}", headers=factory.headers(owner_id))
    assert response.status_code == 200


def test_owner_salons_lists_only_own(client, factory) -> None:
    owner_id = factory.user(role="owner")
    other_id = factory.user(role="owner")
    mine = factory.salon(owner_id)
    factory.salon(other_id)

    response = client.get("/api/salons/owner", headers=factory.headers(owner_id))

    assert response.status_code == 200
    assert [salon["id"] for salon in response.get_json()["data"]] == [mine]


def test_update_salon_partial(client, factory) -> None:
    owner_id = factory.user(role="owner")
    salon_id = factory.salon(owner_id, name="Old Name", city="Newark")

    response = client.put(
        f"/api/salons/{salon_id}", json={"name": "New Name", "is_active": False}, headers=factory.headers(owner_id)
    )

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["name"] == "New Name"
    assert data["city"] == "Newark"
    assert data["is_active"] is False


def test_update_salon_rejects_inverted_hours(client, factory) -> None:
    owner_id = factory.user(role="owner")
    salon_id = factory.salon(owner_id)

    response = client.put(f"/api/salons/{salon_id}", json={"closing_time": "08:00"}, headers=factory.headers(owner_id))

    assert response.status_code == 400


def test_other_owner_cannot_modify_salon(client, factory) -> None:
    owner_id = factory.user(role="owner")
    intruder = factory.headers(factory.user(role="owner"))
    salon_id = factory.salon(owner_id)

    assert client.put(f"/api/salons/{salon_id}", json={"name": "Mine now"}, headers=intruder).status_code == 403
    assert client.delete(f"/api/salons/{salon_id}", headers=intruder).status_code == 403


def test_missing_salon_is_404_for_owner(client, factory) -> None:
    headers = factory.headers(factory.user(role="owner"))

    response = client.put("/api/salons/does-not-exist", json={"name": "Whatever"}, headers=headers)

    assert response.status_code == 404


def test_delete_salon_cascades(app, client, factory) -> None:
    owner_id = factory.user(role="owner")
    customer_id = factory.user()
    salon_id = factory.salon(owner_id)
    service_id = factory.service(salon_id)
    factory.appointment(customer_id, salon_id, service_id)

    response = client.delete(f"/api/salons/{salon_id}", headers=factory.headers(owner_id))

    assert response.status_code == 200
    with app.app_context():
        assert db.session.get(Salon, salon_id) is None
        assert Service.query.count() == 0
        assert Appointment.query.count() == 0


def test_search_treats_wildcards_literally(client, factory) -> None:
    owner_id = factory.user(role="owner")
    factory.salon(owner_id, name="Plain Cuts")
    factory.salon(owner_id, name="100% Organic")
    factory.salon(owner_id, name="Nail_Bar")

    for term, expected in (("%", ["100% Organic"]), ("_", ["Nail_Bar"]), ("plain", ["Plain Cuts"])):
        response = client.get("/api/salons", query_string={"search": term})
        assert [salon["name"] for salon in response.get_json()["data"]] == expected
