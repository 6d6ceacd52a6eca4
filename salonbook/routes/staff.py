"""Staff management for salon owners."""
from __future__ import annotations

from flask import Blueprint, current_app, g, request
from sqlalchemy.exc import SQLAlchemyError

from ..auth import identify_user, load_owned, owns_salon, roles_required
from ..extensions import db
from ..models import Salon, Staff
from ..responses import database_error, failure, not_found, success, validation_failed
from ..validators import clean, parse_bool, pick, validate_email, validate_phone

bp = Blueprint("staff", __name__, url_prefix="/api/staff")


def _parse_staff_fields(payload: dict, *, partial: bool) -> tuple[dict[str, object], dict[str, str]]:
    values: dict[str, object] = {}
    errors: dict[str, str] = {}

    for field, keys in (("first_name", ("first_name", "firstName")), ("last_name", ("last_name", "lastName"))):
        raw = pick(payload, *keys)
        if raw is None and partial:
            continue
        value = clean(raw)
        if not value:
            errors[field] = f"{field} is required"
        else:
            values[field] = value

    if "phone" in payload or not partial:
        try:
            phone = validate_phone(payload.get("phone"))
        except ValueError as exc:
            errors["phone"] = str(exc)
        else:
            if phone is None:
                errors["phone"] = "phone is required"
            else:
                values["phone"] = phone

    if "email" in payload:
        try:
            values["email"] = validate_email(payload.get("email"))
        except ValueError as exc:
            errors["email"] = str(exc)

    if "specialization" in payload:
        values["specialization"] = clean(payload.get("specialization"))

    return values, errors


def _phone_taken(salon_id: str, phone: str, exclude_id: str | None = None) -> bool:
    query = Staff.query.filter(
        Staff.salon_id == salon_id,
        Staff.phone == phone,
        Staff.is_active.is_(True),
    )
    if exclude_id:
        query = query.filter(Staff.id != exclude_id)
    return db.session.query(query.exists()).scalar()


@bp.get("/salon/<salon_id>")
def list_staff(salon_id: str):
    """Get the staff of a salon. Inactive members are only shown to the salon's owner."""
    try:
        salon = db.session.get(Salon, salon_id)
        if salon is None:
            return not_found("Salon not found")

        query = Staff.query.filter(Staff.salon_id == salon_id)
        if not owns_salon(identify_user(), salon):
            query = query.filter(Staff.is_active.is_(True))
        members = query.order_by(Staff.created_at.desc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch staff members", exc_info=exc)
        return database_error()

    return success([member.to_dict() for member in members])


@bp.post("")
@roles_required("owner", "admin")
def create_staff():
    """Create a new staff member for a salon.
    ---
    tags:
      - Staff
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            salon_id:
              type: string
            first_name:
              type: string
            last_name:
              type: string
            phone:
              type: string
    responses:
      201:
        description: Staff member created successfully
      400:
        description: Invalid input
      403:
        description: Caller does not own the salon
      409:
        description: Phone already used by active staff of the salon
    """
    payload = request.get_json(silent=True) or {}
    salon_id = clean(pick(payload, "salon_id", "salonId"))
    if not salon_id:
        return validation_failed({"salon_id": "salon_id is required"})

    salon, error = load_owned(Salon, salon_id, g.current_user)
    if error:
        return error

    values, errors = _parse_staff_fields(payload, partial=False)
    if errors:
        return validation_failed(errors)

    if _phone_taken(salon.id, values["phone"]):
        return failure("A staff member with this phone already exists", 409, "duplicate_staff")

    try:
        member = Staff(salon_id=salon.id, is_active=True, **values)
        db.session.add(member)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create staff member", exc_info=exc)
        return database_error()

    return success(member.to_dict(), "Staff created successfully", 201)


@bp.put("/<staff_id>")
@roles_required("owner", "admin")
def update_staff(staff_id: str):
    payload = request.get_json(silent=True) or {}

    member, error = load_owned(Staff, staff_id, g.current_user)
    if error:
        return error

    values, errors = _parse_staff_fields(payload, partial=True)
    if errors:
        return validation_failed(errors)
    if payload.get("is_active") is not None:
        values["is_active"] = parse_bool(payload["is_active"])

    phone = values.get("phone", member.phone)
    if values.get("is_active", member.is_active) and _phone_taken(member.salon_id, phone, member.id):
        return failure("A staff member with this phone already exists", 409, "duplicate_staff")

    for field, value in values.items():
        setattr(member, field, value)

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update staff member", exc_info=exc)
        return database_error()

    return success(member.to_dict(), "Staff updated successfully")


@bp.delete("/<staff_id>")
@roles_required("owner", "admin")
def delete_staff(staff_id: str):
    """Soft delete; repeated calls succeed."""
    member, error = load_owned(Staff, staff_id, g.current_user)
    if error:
        return error

    member.is_active = False

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to deactivate staff member", exc_info=exc)
        return database_error()

    return success(member.to_dict(), "Staff deactivated successfully")
