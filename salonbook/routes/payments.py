"""Appointment payments, with Stripe PaymentIntents for card payments."""
from __future__ import annotations

import stripe
from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..auth import login_required, roles_required
from ..extensions import db
from ..models import PAYMENT_METHODS, PAYMENT_STATUSES, Appointment, Payment, Salon
from ..responses import database_error, failure, forbidden, not_found, success, validation_failed
from ..validators import clean, parse_price

bp = Blueprint("payments", __name__, url_prefix="/api/payments")

WEBHOOK_STATUSES = {
    "payment_intent.succeeded": "completed",
    "payment_intent.payment_failed": "failed",
}


def _can_view(user, payment: Payment) -> bool:
    if user.role == "admin" or payment.user_id == user.id:
        return True
    return user.role == "owner" and payment.appointment.salon.owner_id == user.id


def _create_intent(payment_amount: float, appointment: Appointment, user_id: str):
    stripe.api_key = current_app.config["STRIPE_SECRET_KEY"]
    return stripe.PaymentIntent.create(
        amount=int(round(payment_amount * 100)),
        currency=current_app.config.get("STRIPE_CURRENCY", "usd"),
        metadata={
            "appointment_id": appointment.id,
            "salon_id": appointment.salon_id,
            "user_id": user_id,
        },
    )


@bp.post("")
@roles_required("user")
def create_payment():
    """Record a payment for one of the caller's appointments.
    ---
    tags:
      - Payments
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            appointment_id:
              type: string
            amount:
              type: number
              description: Defaults to the appointment's total price
            payment_method:
              type: string
              enum: [cash, card]
          required:
            - appointment_id
            - payment_method
    responses:
      201:
        description: Payment recorded; card payments include a Stripe client_secret
      400:
        description: Invalid payload or cancelled appointment
      403:
        description: Appointment belongs to someone else
      404:
        description: Appointment not found
    """
    payload = request.get_json(silent=True) or {}
    user = g.current_user

    errors: dict[str, str] = {}
    appointment_id = clean(payload.get("appointment_id"))
    if not appointment_id:
        errors["appointment_id"] = "appointment_id is required"

    method = (clean(payload.get("payment_method")) or "").lower()
    if method not in PAYMENT_METHODS:
        errors["payment_method"] = f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}"

    amount = None
    if payload.get("amount") is not None:
        try:
            amount = parse_price(payload.get("amount"))
        except ValueError as exc:
            errors["amount"] = str(exc)

    if errors:
        return validation_failed(errors)

    appointment = db.session.get(Appointment, appointment_id)
    if appointment is None:
        return not_found("Appointment not found")
    if appointment.user_id != user.id:
        return forbidden("You are not authorized to pay for this appointment")
    if appointment.status == "cancelled":
        return failure("Cannot pay for a cancelled appointment", 400, "invalid_payment")

    if amount is None:
        amount = float(appointment.total_price or 0)

    client_secret = None
    transaction_id = None
    if method == "card" and current_app.config.get("STRIPE_SECRET_KEY"):
        try:
            intent = _create_intent(amount, appointment, user.id)
        except stripe.StripeError as exc:
            current_app.logger.exception("Stripe API error while creating payment intent", exc_info=exc)
            return failure("An error occurred while processing the payment.", 500, "payment_error")
        client_secret = intent.client_secret
        transaction_id = intent.id
    elif method == "card":
        current_app.logger.warning("Stripe secret key not configured; recording card payment without an intent")

    try:
        payment = Payment(
            appointment_id=appointment.id,
            user_id=user.id,
            amount=amount,
            payment_method=method,
            payment_status="pending",
            transaction_id=transaction_id,
        )
        db.session.add(payment)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to record payment", exc_info=exc)
        return database_error()

    current_app.logger.info("Payment %s recorded for appointment %s", payment.id, appointment.id)
    data = payment.to_dict()
    if client_secret:
        data["client_secret"] = client_secret
    return success(data, "Payment created successfully", 201)


@bp.get("")
@login_required
def list_payments():
    """Admins see every payment, owners their salons' payments, customers their own."""
    user = g.current_user

    try:
        query = Payment.query
        if user.role == "owner":
            query = (
                query.join(Appointment, Appointment.id == Payment.appointment_id)
                .join(Salon, Salon.id == Appointment.salon_id)
                .filter(Salon.owner_id == user.id)
            )
        elif user.role != "admin":
            query = query.filter(Payment.user_id == user.id)
        payments = query.order_by(Payment.created_at.desc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch payments", exc_info=exc)
        return database_error()

    return success([payment.to_dict() for payment in payments])


@bp.get("/<payment_id>")
@login_required
def get_payment(payment_id: str):
    payment = db.session.get(Payment, payment_id)
    if payment is None:
        return not_found("Payment not found")
    if not _can_view(g.current_user, payment):
        return forbidden()
    return success(payment.to_dict())


@bp.put("/<payment_id>/status")
@roles_required("owner", "admin")
def update_payment_status(payment_id: str):
    payload = request.get_json(silent=True) or {}
    user = g.current_user

    payment = db.session.get(Payment, payment_id)
    if payment is None:
        return not_found("Payment not found")
    if user.role != "admin" and payment.appointment.salon.owner_id != user.id:
        return forbidden()

    status = (clean(payload.get("payment_status") or payload.get("status")) or "").lower()
    if status not in PAYMENT_STATUSES:
        return validation_failed(
            {"payment_status": f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}"}
        )

    payment.payment_status = status
    if "transaction_id" in payload:
        payment.transaction_id = clean(payload.get("transaction_id"))

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return validation_failed({"transaction_id": "transaction_id is already recorded"})
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update payment status", exc_info=exc)
        return database_error()

    return success(payment.to_dict(), "Payment status updated")


@bp.delete("/<payment_id>")
@roles_required("admin")
def delete_payment(payment_id: str):
    payment = db.session.get(Payment, payment_id)
    if payment is None:
        return not_found("Payment not found")

    try:
        db.session.delete(payment)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete payment", exc_info=exc)
        return database_error()

    return success(message="Payment deleted successfully")


@bp.post("/stripe-webhook")
def stripe_webhook():
    """Receive Stripe events and settle the matching payment.
    ---
    tags:
      - Payments
    responses:
      200:
        description: Event received
      400:
        description: Invalid payload or signature
    """
    body = request.get_data()
    signature = request.headers.get("Stripe-Signature")
    webhook_secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")

    if not webhook_secret:
        current_app.logger.error("Stripe webhook secret not configured; ignoring event")
        # Acknowledge so Stripe stops retrying a misconfigured endpoint.
        return jsonify({"received": True}), 200

    try:
        event = stripe.Webhook.construct_event(body, signature, webhook_secret)
    except ValueError:
        current_app.logger.warning("Invalid webhook payload")
        return failure("Invalid payload", 400, "invalid_payload")
    except stripe.SignatureVerificationError:
        current_app.logger.warning("Invalid signature for webhook")
        return failure("Invalid signature", 400, "invalid_signature")

    status = WEBHOOK_STATUSES.get(event.get("type"))
    if status is None:
        return jsonify({"received": True}), 200

    intent_id = (event.get("data", {}).get("object", {}) or {}).get("id")
    try:
        payment = Payment.query.filter_by(transaction_id=intent_id).first() if intent_id else None
        if payment is None:
            current_app.logger.info("Webhook for unknown payment intent %s", intent_id)
        elif payment.payment_status != status:
            payment.payment_status = status
            db.session.commit()
            current_app.logger.info("Payment %s marked %s from webhook", payment.id, status)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to record webhook result", exc_info=exc)

    return jsonify({"received": True}), 200
