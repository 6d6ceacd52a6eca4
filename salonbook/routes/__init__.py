"""HTTP routes for the SalonBook backend."""
from __future__ import annotations

from flask import Flask

from .admin import bp as admin_bp
from .appointments import bp as appointments_bp
from .auth import bp as auth_bp
from .health import bp as health_bp
from .owner import bp as owner_bp
from .payments import bp as payments_bp
from .reviews import bp as reviews_bp
from .salons import bp as salons_bp
from .services import bp as services_bp
from .staff import bp as staff_bp
from .users import bp as users_bp

BLUEPRINTS = (
    health_bp,
    auth_bp,
    users_bp,
    salons_bp,
    services_bp,
    staff_bp,
    appointments_bp,
    reviews_bp,
    payments_bp,
    admin_bp,
    owner_bp,
)


def register_routes(app: Flask) -> None:
    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)
