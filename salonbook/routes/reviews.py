"""Customer reviews of completed appointments."""
from __future__ import annotations

from flask import Blueprint, current_app, g, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import joinedload

from ..auth import login_required
from ..extensions import db
from ..models import Appointment, Review, refresh_rating
from ..responses import database_error, failure, forbidden, not_found, success, validation_failed
from ..validators import clean

bp = Blueprint("reviews", __name__, url_prefix="/api/reviews")


def _parse_rating(value) -> int:
    message = "Rating must be an integer between 1 and 5"
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(message)
    try:
        number = float(value)
    except ValueError:
        raise ValueError(message) from None
    if not number.is_integer() or not 1 <= number <= 5:
        raise ValueError(message)
    return int(number)


def _invalid(message: str):
    return failure(message, 400, "invalid_review")


def _duplicate():
    return failure("You have already reviewed this appointment", 400, "duplicate_review")


@bp.get("/salon/<salon_id>")
def list_salon_reviews(salon_id: str):
    try:
        reviews = (
            Review.query.options(joinedload(Review.user))
            .filter(Review.salon_id == salon_id)
            .order_by(Review.created_at.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch reviews", exc_info=exc)
        return database_error()

    return success([review.to_dict() for review in reviews])


@bp.post("")
@login_required
def create_review():
    """Review a completed appointment.
    ---
    tags:
      - Reviews
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            appointment_id:
              type: string
            salon_id:
              type: string
              description: Defaults to the appointment's salon
            rating:
              type: integer
              minimum: 1
              maximum: 5
            comment:
              type: string
          required:
            - appointment_id
            - rating
    responses:
      201:
        description: Review created and salon rating refreshed
      400:
        description: Appointment not reviewable, bad rating, or already reviewed
    """
    payload = request.get_json(silent=True) or {}
    user = g.current_user

    errors: dict[str, str] = {}
    appointment_id = clean(payload.get("appointment_id"))
    if not appointment_id:
        errors["appointment_id"] = "appointment_id is required"
    try:
        rating = _parse_rating(payload.get("rating"))
    except ValueError as exc:
        errors["rating"] = str(exc)
    if errors:
        return validation_failed(errors)

    appointment = Appointment.query.filter_by(
        id=appointment_id, user_id=user.id, status="completed"
    ).first()
    if appointment is None:
        return _invalid("You can only review your own completed appointments")

    salon_id = clean(payload.get("salon_id")) or appointment.salon_id
    if salon_id != appointment.salon_id:
        return _invalid("Appointment does not belong to this salon")

    if Review.query.filter_by(appointment_id=appointment.id).first() is not None:
        return _duplicate()

    try:
        review = Review(
            salon_id=salon_id,
            user_id=user.id,
            appointment_id=appointment.id,
            rating=rating,
            comment=clean(payload.get("comment")),
        )
        db.session.add(review)
        db.session.flush()
        refresh_rating(salon_id)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return _duplicate()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create review", exc_info=exc)
        return database_error()

    current_app.logger.info("Review %s posted for salon %s", review.id, salon_id)
    return success(review.to_dict(), "Review submitted", 201)


@bp.put("/<review_id>")
@login_required
def update_review(review_id: str):
    payload = request.get_json(silent=True) or {}

    review = db.session.get(Review, review_id)
    if review is None:
        return not_found("Review not found")
    if review.user_id != g.current_user.id:
        return forbidden("Not allowed")

    if "rating" in payload:
        try:
            review.rating = _parse_rating(payload.get("rating"))
        except ValueError as exc:
            return validation_failed({"rating": str(exc)})
    if "comment" in payload:
        review.comment = clean(payload.get("comment"))

    try:
        db.session.flush()
        refresh_rating(review.salon_id)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update review", exc_info=exc)
        return database_error()

    return success(review.to_dict(), "Review updated")


@bp.delete("/<review_id>")
@login_required
def delete_review(review_id: str):
    user = g.current_user

    review = db.session.get(Review, review_id)
    if review is None:
        return not_found("Review not found")
    if review.user_id != user.id and user.role != "admin":
        return forbidden("Not allowed")

    salon_id = review.salon_id
    try:
        db.session.delete(review)
        db.session.flush()
        refresh_rating(salon_id)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete review", exc_info=exc)
        return database_error()

    return success(message="Review deleted")
