"""Profile endpoints for the authenticated account holder."""
from __future__ import annotations

from flask import Blueprint, current_app, g, request
from sqlalchemy.exc import SQLAlchemyError

from ..auth import login_required
from ..extensions import db
from ..responses import database_error, success, validation_failed
from ..validators import clean, validate_phone

bp = Blueprint("users", __name__, url_prefix="/api/user")


@bp.get("/profile")
@login_required
def get_profile():
    return success(g.current_user.to_dict())


@bp.put("/profile")
@login_required
def update_profile():
    """Partially update profile fields; omitted or blank fields keep their value."""
    payload = request.get_json(silent=True) or {}
    user = g.current_user

    try:
        phone = validate_phone(payload.get("phone"))
    except ValueError as exc:
        return validation_failed({"phone": str(exc)})

    user.first_name = clean(payload.get("first_name")) or user.first_name
    user.last_name = clean(payload.get("last_name")) or user.last_name
    user.phone = phone or user.phone
    user.avatar_url = clean(payload.get("avatar_url")) or user.avatar_url

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update profile", exc_info=exc)
        return database_error()

    return success(user.to_dict(), "Profile updated successfully")


@bp.delete("/profile")
@login_required
def deactivate_profile():
    """Soft-deactivate the caller's account. Existing tokens stop working."""
    user = g.current_user
    user.is_active = False

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to deactivate account", exc_info=exc)
        return database_error()

    current_app.logger.info("Account %s deactivated by its holder", user.id)
    return success(message="Account deactivated")
