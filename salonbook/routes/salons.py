"""Salon catalog: public browsing plus owner/admin management."""
from __future__ import annotations

from flask import Blueprint, current_app, g, request
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from ..auth import identify_user, load_owned, owns_salon, roles_required
from ..extensions import db
from ..models import Salon, User
from ..responses import database_error, not_found, success, validation_failed
from ..validators import clean, parse_bool, parse_time, pick, validate_email, validate_phone

bp = Blueprint("salons", __name__, url_prefix="/api/salons")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Accepted request keys per column; the front ends send some of them in camelCase.
SALON_FIELDS = {
    "name": ("name",),
    "description": ("description",),
    "address": ("address",),
    "city": ("city",),
    "state": ("state",),
    "zip_code": ("zip_code", "zipCode"),
    "country": ("country",),
    "phone": ("phone",),
    "email": ("email",),
    "opening_time": ("opening_time", "openingTime"),
    "closing_time": ("closing_time", "closingTime"),
}
REQUIRED_FIELDS = ("name", "address", "city")


def _parse_salon_fields(payload: dict, *, partial: bool) -> tuple[dict[str, object], dict[str, str]]:
    values: dict[str, object] = {}
    errors: dict[str, str] = {}

    for field, keys in SALON_FIELDS.items():
        raw = pick(payload, *keys)
        if clean(raw) is None:
            continue
        try:
            if field == "email":
                values[field] = validate_email(raw)
            elif field == "phone":
                values[field] = validate_phone(raw)
            elif field in ("opening_time", "closing_time"):
                values[field] = parse_time(raw)
            else:
                values[field] = clean(raw)
        except ValueError as exc:
            errors[field] = str(exc)

    if not partial:
        for field in REQUIRED_FIELDS:
            if field not in values and field not in errors:
                errors[field] = f"{field} is required"

    if "name" in values and len(values["name"]) < 2:
        errors["name"] = "Salon name must be at least 2 characters"

    return values, errors


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _check_hours(values: dict[str, object], salon: Salon | None = None) -> dict[str, str]:
    opening = values.get("opening_time", salon.opening_time if salon else None)
    closing = values.get("closing_time", salon.closing_time if salon else None)
    if opening is not None and closing is not None and opening >= closing:
        return {"closing_time": "closing_time must be after opening_time"}
    return {}


@bp.get("")
def list_salons():
    """Return active salons with city/search filters and limit/offset paging.
    ---
    tags:
      - Salons
    parameters:
      - name: city
        in: query
        type: string
        description: Case-insensitive exact city match
      - name: search
        in: query
        type: string
        description: Case-insensitive substring match on name or description
      - name: limit
        in: query
        type: integer
        default: 10
      - name: offset
        in: query
        type: integer
        default: 0
    responses:
      200:
        description: Salons ordered by rating then newest first
      400:
        description: Invalid paging parameters
    """
    try:
        limit = min(MAX_PAGE_SIZE, max(1, int(request.args.get("limit", DEFAULT_PAGE_SIZE))))
        offset = max(0, int(request.args.get("offset", 0)))
    except (TypeError, ValueError):
        return validation_failed({"paging": "limit and offset must be integers"})

    city = (request.args.get("city") or "").strip()
    search = (request.args.get("search") or "").strip()

    try:
        query = Salon.query.options(joinedload(Salon.owner)).filter(Salon.is_active.is_(True))

        if city:
            query = query.filter(func.lower(Salon.city) == city.lower())
        if search:
            pattern = f"%{_escape_like(search.lower())}%"
            query = query.filter(
                or_(
                    func.lower(Salon.name).like(pattern, escape="\\"),
                    func.lower(Salon.description).like(pattern, escape="\\"),
                )
            )

        salons = (
            query.order_by(Salon.rating.desc(), Salon.created_at.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch salons", exc_info=exc)
        return database_error()

    return success([salon.to_dict() for salon in salons], count=len(salons))


@bp.get("/owner")
@roles_required("owner")
def list_owner_salons():
    """Every salon owned by the caller, inactive ones included."""
    try:
        salons = (
            Salon.query.filter(Salon.owner_id == g.current_user.id)
            .order_by(Salon.created_at.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch owner salons", exc_info=exc)
        return database_error()

    return success([salon.to_dict() for salon in salons])


@bp.get("/<salon_id>")
def get_salon(salon_id: str):
    try:
        salon = db.session.get(Salon, salon_id)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch salon", exc_info=exc)
        return database_error()

    # Deactivated salons stay visible to the people who manage them.
    if salon is None or (not salon.is_active and not owns_salon(identify_user(), salon)):
        return not_found("Salon not found")

    return success(salon.to_dict())


@bp.post("")
@roles_required("owner", "admin")
def create_salon():
    """Create a salon. Owners create their own; admins must name an owner.
    ---
    tags:
      - Salons
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            name:
              type: string
            address:
              type: string
            city:
              type: string
            owner_id:
              type: string
              description: Required when an admin creates the salon
            opening_time:
              type: string
              example: "09:00"
            closing_time:
              type: string
              example: "18:00"
          required:
            - name
            - address
            - city
    responses:
      201:
        description: Salon created
      400:
        description: Invalid payload
      403:
        description: Caller is not an owner or admin
    """
    payload = request.get_json(silent=True) or {}
    user = g.current_user

    values, errors = _parse_salon_fields(payload, partial=False)
    errors.update(_check_hours(values))

    owner_id = user.id
    if user.role == "admin":
        owner_id = clean(pick(payload, "owner_id", "ownerId"))
        owner = db.session.get(User, owner_id) if owner_id else None
        if owner is None or owner.role != "owner" or not owner.is_active:
            errors["owner_id"] = "owner_id must reference an active owner account"

    if errors:
        return validation_failed(errors)

    try:
        salon = Salon(owner_id=owner_id, is_active=True, rating=0, **values)
        db.session.add(salon)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create salon", exc_info=exc)
        return database_error()

    current_app.logger.info("Salon %s created for owner %s", salon.id, owner_id)
    return success(salon.to_dict(), "Salon created successfully", 201)


@bp.put("/<salon_id>")
@roles_required("owner", "admin")
def update_salon(salon_id: str):
    """Partial update: fields that are omitted keep their stored value."""
    payload = request.get_json(silent=True) or {}

    salon, error = load_owned(Salon, salon_id, g.current_user)
    if error:
        return error

    values, errors = _parse_salon_fields(payload, partial=True)
    errors.update(_check_hours(values, salon))
    if errors:
        return validation_failed(errors)

    for field, value in values.items():
        setattr(salon, field, value)
    if payload.get("is_active") is not None:
        salon.is_active = parse_bool(payload["is_active"])

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update salon", exc_info=exc)
        return database_error()

    return success(salon.to_dict(), "Salon updated successfully")


@bp.delete("/<salon_id>")
@roles_required("owner", "admin")
def delete_salon(salon_id: str):
    """Hard delete; services, staff, appointments and reviews go with it."""
    salon, error = load_owned(Salon, salon_id, g.current_user)
    if error:
        return error

    try:
        db.session.delete(salon)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete salon", exc_info=exc)
        return database_error()

    current_app.logger.info("Salon %s deleted by %s", salon_id, g.current_user.id)
    return success(message="Salon deleted successfully")

