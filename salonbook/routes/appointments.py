"""Appointment booking and lifecycle.

Status flow::

    pending --assign staff--> confirmed
    pending | confirmed --owner--> completed
    pending | confirmed --customer or owner--> cancelled

``completed`` and ``cancelled`` are terminal.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta

from flask import Blueprint, current_app, g, request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from ..auth import load_owned, login_required, owns_salon, roles_required
from ..extensions import db
from ..models import Appointment, Salon, Service, Staff, User, refresh_rating
from ..responses import database_error, failure, forbidden, not_found, success, validation_failed
from ..validators import clean, parse_date, parse_price, parse_time

bp = Blueprint("appointments", __name__, url_prefix="/api/appointments")

OPERATOR_STATUSES = ("completed", "cancelled")


def _invalid(message: str):
    return failure(message, 422, "invalid_appointment")


def _with_names(query):
    return query.options(
        joinedload(Appointment.customer),
        joinedload(Appointment.salon),
        joinedload(Appointment.service),
        joinedload(Appointment.staff),
    ).order_by(Appointment.appointment_date.desc(), Appointment.start_time.desc())


def _end_from_duration(day: date, start, minutes: int):
    end = datetime.combine(day, start) + timedelta(minutes=minutes)
    if end.date() != day:
        return None
    return end.time()


def _has_duplicate(user_id: str, service_id: str, day: date, exclude_id: str | None = None) -> bool:
    query = Appointment.query.filter(
        Appointment.user_id == user_id,
        Appointment.service_id == service_id,
        Appointment.appointment_date == day,
        Appointment.status != "cancelled",
    )
    if exclude_id:
        query = query.filter(Appointment.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def _lock_customer(user_id: str) -> None:
    """Row-lock the customer so concurrent bookings for them run one at a time."""
    db.session.query(User.id).filter(User.id == user_id).with_for_update().one()


@bp.get("")
@roles_required("user")
def list_my_appointments():
    try:
        appointments = _with_names(Appointment.query.filter(Appointment.user_id == g.current_user.id)).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch user appointments", exc_info=exc)
        return database_error()

    return success([appointment.to_dict() for appointment in appointments])


@bp.get("/owner")
@roles_required("owner")
def list_owner_appointments():
    """All appointments across the caller's salons."""
    try:
        query = Appointment.query.join(Salon, Salon.id == Appointment.salon_id).filter(
            Salon.owner_id == g.current_user.id
        )
        appointments = _with_names(query).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch owner appointments", exc_info=exc)
        return database_error()

    return success([appointment.to_dict() for appointment in appointments])


@bp.get("/<appointment_id>")
@login_required
def get_appointment(appointment_id: str):
    appointment = db.session.get(Appointment, appointment_id)
    if appointment is None:
        return not_found("Appointment not found")

    user = g.current_user
    if appointment.user_id != user.id and not owns_salon(user, appointment.salon):
        return forbidden()

    return success(appointment.to_dict())


@bp.post("")
@roles_required("user")
def create_appointment():
    """Book an appointment for the authenticated customer.
    ---
    tags:
      - Appointments
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            salon_id:
              type: string
            service_id:
              type: string
            staff_id:
              type: string
            appointment_date:
              type: string
              format: date
            start_time:
              type: string
              example: "10:00"
            end_time:
              type: string
              description: Defaults to start_time plus the service duration
            total_price:
              type: number
              description: Defaults to the service price
            notes:
              type: string
          required:
            - salon_id
            - appointment_date
            - start_time
    responses:
      201:
        description: Appointment created with status pending
      404:
        description: Salon not found
      409:
        description: Customer already booked this service on that date
      422:
        description: Invalid appointment details
    """
    payload = request.get_json(silent=True) or {}
    user = g.current_user

    errors: dict[str, str] = {}
    salon_id = clean(payload.get("salon_id"))
    service_id = clean(payload.get("service_id"))
    staff_id = clean(payload.get("staff_id"))
    notes = clean(payload.get("notes"))

    if not salon_id:
        errors["salon_id"] = "salon_id is required"

    appointment_date = start_time = end_time = total_price = None
    try:
        appointment_date = parse_date(payload.get("appointment_date"))
    except ValueError as exc:
        errors["appointment_date"] = str(exc)
    try:
        start_time = parse_time(payload.get("start_time"))
    except ValueError as exc:
        errors["start_time"] = str(exc)
    if clean(payload.get("end_time")) is not None:
        try:
            end_time = parse_time(payload.get("end_time"))
        except ValueError as exc:
            errors["end_time"] = str(exc)
    if payload.get("total_price") is not None:
        try:
            total_price = parse_price(payload.get("total_price"))
        except ValueError as exc:
            errors["total_price"] = str(exc)

    if errors:
        return validation_failed(errors, status=422)

    salon = db.session.get(Salon, salon_id)
    if salon is None or not salon.is_active:
        return not_found("Salon not found")

    if appointment_date < date.today():
        return _invalid("Appointment date cannot be in the past.")

    service = None
    if service_id:
        service = Service.query.filter_by(id=service_id, salon_id=salon.id, is_active=True).first()
        if service is None:
            return _invalid("Service not found or inactive.")

    if staff_id:
        staff = Staff.query.filter_by(id=staff_id, salon_id=salon.id, is_active=True).first()
        if staff is None:
            return _invalid("Staff member not found or inactive.")

    if end_time is None:
        if service is None:
            return _invalid("end_time is required when no service is selected.")
        end_time = _end_from_duration(appointment_date, start_time, service.duration_minutes)
        if end_time is None:
            return _invalid("Appointment must end on the day it starts.")

    if start_time >= end_time:
        return _invalid("start_time must be before end_time.")

    if total_price is None:
        total_price = float(service.price) if service else 0.0

    try:
        _lock_customer(user.id)

        if service and _has_duplicate(user.id, service.id, appointment_date):
            db.session.rollback()
            return failure(
                "You already have an appointment for this service on that date.",
                409,
                "duplicate_booking",
            )

        appointment = Appointment(
            user_id=user.id,
            salon_id=salon.id,
            service_id=service.id if service else None,
            staff_id=staff_id,
            appointment_date=appointment_date,
            start_time=start_time,
            end_time=end_time,
            total_price=total_price,
            notes=notes,
            status="pending",
        )
        db.session.add(appointment)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create appointment", exc_info=exc)
        return database_error()

    current_app.logger.info("Appointment %s booked by %s at salon %s", appointment.id, user.id, salon.id)
    return success(appointment.to_dict(), "Appointment created successfully", 201)


@bp.put("/<appointment_id>")
@roles_required("user")
def reschedule_appointment(appointment_id: str):
    """Let the customer move a pending appointment or edit its notes."""
    payload = request.get_json(silent=True) or {}
    user = g.current_user

    appointment = db.session.get(Appointment, appointment_id)
    if appointment is None:
        return not_found("Appointment not found")
    if appointment.user_id != user.id:
        return forbidden("Not allowed")
    if appointment.status != "pending":
        return failure(
            f"Cannot modify an appointment with status '{appointment.status}'", 400, "invalid_status"
        )

    errors: dict[str, str] = {}
    new_date = appointment.appointment_date
    new_start = appointment.start_time
    new_end = appointment.end_time
    for field, parser in (("appointment_date", parse_date), ("start_time", parse_time), ("end_time", parse_time)):
        if clean(payload.get(field)) is None:
            continue
        try:
            value = parser(payload[field])
        except ValueError as exc:
            errors[field] = str(exc)
            continue
        if field == "appointment_date":
            new_date = value
        elif field == "start_time":
            new_start = value
        else:
            new_end = value

    if errors:
        return validation_failed(errors, status=422)

    # Moving only the start keeps the original length.
    if "start_time" in payload and clean(payload.get("end_time")) is None:
        length = datetime.combine(new_date, appointment.end_time) - datetime.combine(new_date, appointment.start_time)
        new_end = _end_from_duration(new_date, new_start, int(length.total_seconds() // 60))
        if new_end is None:
            return _invalid("Appointment must end on the day it starts.")

    scheduling = any(
        clean(payload.get(field)) is not None for field in ("appointment_date", "start_time", "end_time")
    )
    if scheduling and new_date < date.today():
        return _invalid("Appointment date cannot be in the past.")
    if new_start >= new_end:
        return _invalid("start_time must be before end_time.")

    try:
        _lock_customer(user.id)
        if appointment.service_id and _has_duplicate(user.id, appointment.service_id, new_date, appointment.id):
            db.session.rollback()
            return failure(
                "You already have an appointment for this service on that date.",
                409,
                "duplicate_booking",
            )

        appointment.appointment_date = new_date
        appointment.start_time = new_start
        appointment.end_time = new_end
        if "notes" in payload:
            appointment.notes = clean(payload.get("notes"))
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to reschedule appointment", exc_info=exc)
        return database_error()

    return success(appointment.to_dict(), "Appointment updated successfully")


@bp.put("/<appointment_id>/assign")
@roles_required("owner")
def assign_staff(appointment_id: str):
    """Assign a staff member and confirm the appointment.
    ---
    tags:
      - Appointments
    parameters:
      - in: path
        name: appointment_id
        required: true
        type: string
      - in: body
        name: body
        required: true
        schema:
          properties:
            staff_id:
              type: string
    responses:
      200:
        description: Staff assigned and appointment confirmed
      400:
        description: Staff is not active at this salon, or appointment is closed
      403:
        description: Appointment belongs to another owner's salon
      404:
        description: Appointment not found
    """
    payload = request.get_json(silent=True) or {}

    appointment, error = load_owned(Appointment, appointment_id, g.current_user)
    if error:
        return error

    staff_id = clean(payload.get("staff_id"))
    if not staff_id:
        return validation_failed({"staff_id": "staff_id is required"})

    if appointment.is_terminal:
        return failure(
            f"Cannot assign staff to a {appointment.status} appointment", 400, "invalid_status"
        )

    staff = Staff.query.filter_by(id=staff_id, salon_id=appointment.salon_id, is_active=True).first()
    if staff is None:
        return validation_failed({"staff_id": "Staff member is not active at this salon"})

    appointment.staff_id = staff.id
    appointment.status = "confirmed"

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to assign staff", exc_info=exc)
        return database_error()

    return success(appointment.to_dict(), "Staff assigned and appointment confirmed")


@bp.put("/<appointment_id>/status")
@roles_required("owner", "admin")
def update_appointment_status(appointment_id: str):
    """Complete or cancel an open appointment on behalf of the salon."""
    payload = request.get_json(silent=True) or {}
    target = (clean(payload.get("status")) or "").lower()

    if target not in OPERATOR_STATUSES:
        return validation_failed({"status": "status must be 'completed' or 'cancelled'"})

    appointment, error = load_owned(Appointment, appointment_id, g.current_user)
    if error:
        return error

    if appointment.status == target:
        return success(appointment.to_dict(), f"Appointment already {target}")
    if appointment.is_terminal:
        return failure(
            f"Cannot change an appointment with status '{appointment.status}'", 400, "invalid_status"
        )

    appointment.status = target

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update appointment status", exc_info=exc)
        return database_error()

    current_app.logger.info("Appointment %s marked %s", appointment.id, target)
    return success(appointment.to_dict(), f"Appointment {target}")


@bp.delete("/cancel/<appointment_id>")
@roles_required("user")
def cancel_appointment(appointment_id: str):
    """Customer cancellation: the row stays, its status flips to cancelled."""
    appointment = db.session.get(Appointment, appointment_id)
    if appointment is None:
        return not_found("Appointment not found")
    if appointment.user_id != g.current_user.id:
        return forbidden("Not allowed")

    if appointment.status == "cancelled":
        return success(appointment.to_dict(), "Appointment cancelled")
    if appointment.is_terminal:
        return failure(
            f"Cannot cancel an appointment with status '{appointment.status}'", 400, "cannot_cancel"
        )

    appointment.status = "cancelled"

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to cancel appointment", exc_info=exc)
        return database_error()

    current_app.logger.info("Appointment %s cancelled by customer", appointment.id)
    return success(appointment.to_dict(), "Appointment cancelled")


@bp.delete("/<appointment_id>")
@roles_required("owner")
def delete_appointment(appointment_id: str):
    appointment, error = load_owned(Appointment, appointment_id, g.current_user)
    if error:
        return error

    salon_id = appointment.salon_id
    try:
        db.session.delete(appointment)
        db.session.flush()
        # The cascade may have removed a review.
        refresh_rating(salon_id)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete appointment", exc_info=exc)
        return database_error()

    return success(message="Appointment deleted successfully")
