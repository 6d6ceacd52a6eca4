"""pytest fixtures: an app over in-memory SQLite plus small data factories."""
from __future__ import annotations

import sys
from datetime import date, time, timedelta
from pathlib import Path

import pytest
from werkzeug.security import generate_password_hash

# Ensure the project root is available on sys.path so tests can import the package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from salonbook import create_app  # noqa: E402
from salonbook.auth import build_token  # noqa: E402
from salonbook.config import TestConfig  # noqa: E402
from salonbook.extensions import db  # noqa: E402
from salonbook.models import Appointment, AuthAccount, Salon, Service, Staff, User  # noqa: E402

PASSWORD = "secret123"


@pytest.fixture
def app():
    flask_app = create_app(TestConfig)
    with flask_app.app_context():
        db.create_all()

    yield flask_app

    with flask_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def next_week() -> date:
    return date.today() + timedelta(days=7)


class Factory:
    """Inserts rows and hands back their ids so tests never hold detached objects."""

    def __init__(self, app):
        self.app = app
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    def user(self, role: str = "user", email: str | None = None, is_active: bool = True, **fields) -> str:
        n = self._next()
        with self.app.app_context():
            user = User(
                email=email or f"{role}{n}@example.com",
                first_name=fields.pop("first_name", role.title()),
                last_name=fields.pop("last_name", f"Number{n}"),
                role=role,
                is_active=is_active,
                **fields,
            )
            db.session.add(user)
            db.session.flush()
            db.session.add(AuthAccount(user_id=user.id, password_hash=generate_password_hash(PASSWORD)))
            db.session.commit()
            return user.id

    def headers(self, user_id: str) -> dict[str, str]:
        with self.app.app_context():
            token = build_token(db.session.get(User, user_id))
        return {"Authorization": f"Bearer {token}"}

    def salon(self, owner_id: str, **fields) -> str:
        n = self._next()
        values = {
            "name": f"Salon {n}",
            "address": f"{n} Main St",
            "city": "Newark",
            "opening_time": time(9, 0),
            "closing_time": time(18, 0),
            "is_active": True,
        }
        values.update(fields)
        with self.app.app_context():
            salon = Salon(owner_id=owner_id, **values)
            db.session.add(salon)
            db.session.commit()
            return salon.id

    def service(self, salon_id: str, **fields) -> str:
        values = {"name": "Haircut", "price": 40.0, "duration_minutes": 45, "is_active": True}
        values.update(fields)
        with self.app.app_context():
            service = Service(salon_id=salon_id, **values)
            db.session.add(service)
            db.session.commit()
            return service.id

    def staff(self, salon_id: str, **fields) -> str:
        n = self._next()
        values = {
            "first_name": "Sam",
            "last_name": f"Stylist{n}",
            "phone": f"555-010-{n:04d}",
            "is_active": True,
        }
        values.update(fields)
        with self.app.app_context():
            member = Staff(salon_id=salon_id, **values)
            db.session.add(member)
            db.session.commit()
            return member.id

    def appointment(self, user_id: str, salon_id: str, service_id: str | None = None, **fields) -> str:
        values = {
            "appointment_date": next_week(),
            "start_time": time(10, 0),
            "end_time": time(10, 45),
            "total_price": 40.0,
            "status": "pending",
        }
        values.update(fields)
        with self.app.app_context():
            appointment = Appointment(user_id=user_id, salon_id=salon_id, service_id=service_id, **values)
            db.session.add(appointment)
            db.session.commit()
            return appointment.id


@pytest.fixture
def factory(app):
    return Factory(app)
