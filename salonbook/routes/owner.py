"""Owner dashboard aggregates."""
from __future__ import annotations

from flask import Blueprint, current_app, g
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..auth import roles_required
from ..extensions import db
from ..models import APPOINTMENT_STATUSES, Appointment, Salon
from ..responses import database_error, success

bp = Blueprint("owner", __name__, url_prefix="/api/owner")


@bp.get("/dashboard")
@roles_required("owner")
def dashboard():
    """Totals across every salon the caller owns. An owner without salons gets zeros."""
    owner_id = g.current_user.id

    try:
        total_salons = (
            db.session.query(func.count(Salon.id)).filter(Salon.owner_id == owner_id).scalar()
        )
        rows = (
            db.session.query(
                Appointment.status,
                func.count(Appointment.id),
                func.coalesce(func.sum(Appointment.total_price), 0),
            )
            .join(Salon, Salon.id == Appointment.salon_id)
            .filter(Salon.owner_id == owner_id)
            .group_by(Appointment.status)
            .all()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to compute owner dashboard", exc_info=exc)
        return database_error()

    by_status = {status: 0 for status in APPOINTMENT_STATUSES}
    revenue = 0.0
    for status, count, total in rows:
        by_status[status] = count
        if status == "completed":
            revenue = float(total or 0)

    return success(
        {
            "totalSalons": total_salons or 0,
            "totalAppointments": sum(by_status.values()),
            "totalRevenue": round(revenue, 2),
            "pendingAppointments": by_status["pending"],
            "appointmentsByStatus": by_status,
        }
    )
