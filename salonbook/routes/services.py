"""Salon service menu management."""
from __future__ import annotations

from flask import Blueprint, current_app, g, request
from sqlalchemy.exc import SQLAlchemyError

from ..auth import identify_user, load_owned, owns_salon, roles_required
from ..extensions import db
from ..models import Salon, Service
from ..responses import database_error, not_found, success, validation_failed
from ..validators import clean, parse_bool, parse_positive_int, parse_price, pick

bp = Blueprint("services", __name__, url_prefix="/api")

DEFAULT_CATEGORY = "Other"
DEFAULT_DURATION = 30


def _parse_service_fields(payload: dict, *, partial: bool) -> tuple[dict[str, object], dict[str, str]]:
    """Validate a service payload; returns the values to write and per-field errors."""
    values: dict[str, object] = {}
    errors: dict[str, str] = {}

    if not partial or "name" in payload:
        name = clean(payload.get("name"))
        if not name or len(name) < 2:
            errors["name"] = "Service name must be at least 2 characters."
        else:
            values["name"] = name

    if not partial or "price" in payload:
        try:
            values["price"] = parse_price(payload.get("price"))
        except ValueError:
            errors["price"] = "Price must be a number >= 0."

    duration = pick(payload, "duration_minutes", "duration")
    if duration is not None:
        try:
            values["duration_minutes"] = parse_positive_int(duration, "duration_minutes")
        except ValueError as exc:
            errors["duration_minutes"] = str(exc)
    elif not partial:
        values["duration_minutes"] = DEFAULT_DURATION

    if "category" in payload or not partial:
        values["category"] = clean(payload.get("category")) or DEFAULT_CATEGORY
    if "description" in payload:
        values["description"] = clean(payload.get("description"))
    if payload.get("is_active") is not None:
        values["is_active"] = parse_bool(payload["is_active"])
    elif not partial:
        values["is_active"] = True

    return values, errors


@bp.get("/salons/<salon_id>/services")
def list_services(salon_id: str):
    """Active services for a salon; the owning owner and admins also see inactive ones."""
    try:
        salon = db.session.get(Salon, salon_id)
        if salon is None:
            return not_found("Salon not found.")

        query = Service.query.filter(Service.salon_id == salon_id)
        if not owns_salon(identify_user(), salon):
            query = query.filter(Service.is_active.is_(True))
        services = query.order_by(Service.name.asc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch services", exc_info=exc)
        return database_error()

    return success([service.to_dict() for service in services])


@bp.post("/salons/<salon_id>/services")
@roles_required("owner", "admin")
def create_service(salon_id: str):
    """Add a service to the caller's salon.
    ---
    tags:
      - Services
    parameters:
      - in: path
        name: salon_id
        required: true
        type: string
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            name:
              type: string
            category:
              type: string
            price:
              type: number
            duration_minutes:
              type: integer
            description:
              type: string
            is_active:
              type: boolean
          required:
            - name
            - price
    responses:
      201:
        description: Service created
      403:
        description: Caller does not own the salon
      404:
        description: Salon not found
      422:
        description: Field validation failed
    """
    payload = request.get_json(silent=True) or {}

    salon, error = load_owned(Salon, salon_id, g.current_user)
    if error:
        return error

    values, errors = _parse_service_fields(payload, partial=False)
    if errors:
        return validation_failed(errors, status=422)

    try:
        service = Service(salon_id=salon.id, **values)
        db.session.add(service)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create service", exc_info=exc)
        return database_error()

    return success(service.to_dict(), "Service created successfully", 201)


@bp.get("/services/<service_id>")
def get_service(service_id: str):
    service = db.session.get(Service, service_id)
    if service is None or (not service.is_active and not owns_salon(identify_user(), service.salon)):
        return not_found("Service not found.")
    return success(service.to_dict())


@bp.put("/services/<service_id>")
@roles_required("owner", "admin")
def update_service(service_id: str):
    """Edit any subset of the service fields, including the active toggle."""
    payload = request.get_json(silent=True) or {}

    service, error = load_owned(Service, service_id, g.current_user)
    if error:
        return error

    values, errors = _parse_service_fields(payload, partial=True)
    if errors:
        return validation_failed(errors, status=422)

    for field, value in values.items():
        setattr(service, field, value)

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update service", exc_info=exc)
        return database_error()

    return success(service.to_dict(), "Service updated successfully")


@bp.delete("/services/<service_id>")
@roles_required("owner", "admin")
def delete_service(service_id: str):
    """Soft delete. Past appointments keep pointing at the service row."""
    service, error = load_owned(Service, service_id, g.current_user)
    if error:
        return error

    service.is_active = False

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to deactivate service", exc_info=exc)
        return database_error()

    return success(service.to_dict(), "Service deactivated successfully")
