"""Platform-wide listings and statistics for administrators."""
from __future__ import annotations

from flask import Blueprint, current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from ..auth import roles_required
from ..extensions import db
from ..models import Appointment, Salon, User
from ..responses import database_error, success

bp = Blueprint("admin", __name__, url_prefix="/api/admin")

# Bookings that count towards platform value.
BOOKED_STATUSES = ("completed", "confirmed")


@bp.get("/users")
@roles_required("admin")
def list_users():
    try:
        users = User.query.order_by(User.created_at.desc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch users", exc_info=exc)
        return database_error()

    return success([user.to_dict() for user in users])


@bp.get("/salons")
@roles_required("admin")
def list_salons():
    try:
        salons = (
            Salon.query.options(joinedload(Salon.owner))
            .order_by(Salon.created_at.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch salons", exc_info=exc)
        return database_error()

    return success([salon.to_dict() for salon in salons])


@bp.get("/appointments")
@roles_required("admin")
def list_appointments():
    try:
        appointments = (
            Appointment.query.options(
                joinedload(Appointment.customer),
                joinedload(Appointment.salon),
                joinedload(Appointment.service),
                joinedload(Appointment.staff),
            )
            .order_by(Appointment.appointment_date.desc(), Appointment.start_time.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch appointments", exc_info=exc)
        return database_error()

    return success([appointment.to_dict() for appointment in appointments])


@bp.get("/stats")
@roles_required("admin")
def platform_stats():
    """Headline counters for the admin dashboard.
    ---
    tags:
      - Admin
    responses:
      200:
        description: Counts of users, owners, salons and appointments plus booking value
    """
    try:
        total_users = db.session.query(func.count(User.id)).filter(User.role == "user").scalar()
        total_owners = db.session.query(func.count(User.id)).filter(User.role == "owner").scalar()
        total_salons = db.session.query(func.count(Salon.id)).scalar()
        total_appointments = db.session.query(func.count(Appointment.id)).scalar()
        booking_value = (
            db.session.query(func.coalesce(func.sum(Appointment.total_price), 0))
            .filter(Appointment.status.in_(BOOKED_STATUSES))
            .scalar()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to compute platform stats", exc_info=exc)
        return database_error()

    return success(
        {
            "totalUsers": total_users or 0,
            "totalOwners": total_owners or 0,
            "totalSalons": total_salons or 0,
            "totalAppointments": total_appointments or 0,
            "totalBookingValue": round(float(booking_value or 0), 2),
        }
    )
