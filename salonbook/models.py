"""Database models for the SalonBook backend."""
from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone

from .extensions import db

ROLES = ("user", "owner", "admin")
APPOINTMENT_STATUSES = ("pending", "confirmed", "completed", "cancelled")
TERMINAL_STATUSES = ("completed", "cancelled")
PAYMENT_STATUSES = ("pending", "completed", "failed", "refunded")
PAYMENT_METHODS = ("cash", "card")


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def _iso(value: datetime | date | None) -> str | None:
    return value.isoformat() if value else None


def _clock(value: time | None) -> str | None:
    return value.strftime("%H:%M") if value else None


def _full_name(first: str | None, last: str | None) -> str | None:
    name = " ".join(part for part in (first, last) if part)
    return name or None


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(255), unique=True, nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(30))
    avatar_url = db.Column(db.String(500))
    role = db.Column(
        db.Enum(*ROLES, name="user_role", native_enum=False, validate_strings=True),
        nullable=False,
        server_default="user",
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    salons = db.relationship("Salon", back_populates="owner")
    auth_account = db.relationship(
        "AuthAccount", back_populates="user", uselist=False, cascade="all"
    )

    @property
    def full_name(self) -> str | None:
        return _full_name(self.first_name, self.last_name)

    def to_dict_basic(self) -> dict[str, object]:
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
        }

    def to_dict(self) -> dict[str, object]:
        data = self.to_dict_basic()
        data.update(
            {
                "phone": self.phone,
                "avatar_url": self.avatar_url,
                "is_active": bool(self.is_active),
                "created_at": _iso(self.created_at),
            }
        )
        return data


class AuthAccount(db.Model):
    __tablename__ = "auth_accounts"

    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), primary_key=True)
    password_hash = db.Column(db.String(255), nullable=False)
    last_login_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    user = db.relationship("User", back_populates="auth_account")


class Salon(db.Model):
    __tablename__ = "salons"
    __table_args__ = (
        db.CheckConstraint(
            "opening_time IS NULL OR closing_time IS NULL OR opening_time < closing_time",
            name="ck_salons_opening_before_closing",
        ),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    owner_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    address = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(100), nullable=False)
    state = db.Column(db.String(100))
    zip_code = db.Column(db.String(20))
    country = db.Column(db.String(100), nullable=False, default="USA")
    phone = db.Column(db.String(30))
    email = db.Column(db.String(255))
    opening_time = db.Column(db.Time)
    closing_time = db.Column(db.Time)
    rating = db.Column(db.Numeric(3, 2, asdecimal=False), nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    owner = db.relationship("User", back_populates="salons")
    services = db.relationship("Service", back_populates="salon", cascade="all")
    staff_members = db.relationship("Staff", back_populates="salon", cascade="all")
    appointments = db.relationship(
        "Appointment", back_populates="salon", cascade="all"
    )
    reviews = db.relationship("Review", back_populates="salon", cascade="all")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "owner_name": self.owner.full_name if self.owner else None,
            "name": self.name,
            "description": self.description,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "country": self.country,
            "phone": self.phone,
            "email": self.email,
            "opening_time": _clock(self.opening_time),
            "closing_time": _clock(self.closing_time),
            "rating": float(self.rating or 0),
            "is_active": bool(self.is_active),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Service(db.Model):
    """Services offered by a salon."""

    __tablename__ = "services"
    __table_args__ = (
        db.CheckConstraint("price >= 0", name="ck_services_price_non_negative"),
        db.CheckConstraint("duration_minutes > 0", name="ck_services_duration_positive"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    salon_id = db.Column(db.String(36), db.ForeignKey("salons.id"), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    category = db.Column(db.String(100), nullable=False, default="Other")
    description = db.Column(db.Text)
    price = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False, default=30)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    salon = db.relationship("Salon", back_populates="services")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "salon_id": self.salon_id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "price": float(self.price),
            "duration_minutes": self.duration_minutes,
            "is_active": bool(self.is_active),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Staff(db.Model):
    __tablename__ = "staff"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    salon_id = db.Column(db.String(36), db.ForeignKey("salons.id"), nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(30), nullable=False)
    email = db.Column(db.String(255))
    specialization = db.Column(db.String(150))
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    salon = db.relationship("Salon", back_populates="staff_members")

    @property
    def full_name(self) -> str | None:
        return _full_name(self.first_name, self.last_name)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "salon_id": self.salon_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "email": self.email,
            "specialization": self.specialization,
            "is_active": bool(self.is_active),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Appointment(db.Model):
    """Customer bookings at a salon."""

    __tablename__ = "appointments"
    __table_args__ = (
        db.CheckConstraint("start_time < end_time", name="ck_appointments_start_before_end"),
        db.Index("ix_appointments_user_service_date", "user_id", "service_id", "appointment_date"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    salon_id = db.Column(db.String(36), db.ForeignKey("salons.id"), nullable=False)
    service_id = db.Column(db.String(36), db.ForeignKey("services.id"), nullable=True)
    staff_id = db.Column(db.String(36), db.ForeignKey("staff.id"), nullable=True)
    appointment_date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    total_price = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    notes = db.Column(db.Text)
    status = db.Column(
        db.Enum(
            *APPOINTMENT_STATUSES,
            name="appointment_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        default="pending",
        server_default="pending",
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    customer = db.relationship("User")
    salon = db.relationship("Salon", back_populates="appointments")
    service = db.relationship("Service")
    staff = db.relationship("Staff")
    payments = db.relationship("Payment", back_populates="appointment", cascade="all")
    review = db.relationship(
        "Review", back_populates="appointment", uselist=False, cascade="all"
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "customer_name": self.customer.full_name if self.customer else None,
            "salon_id": self.salon_id,
            "salon_name": self.salon.name if self.salon else None,
            "service_id": self.service_id,
            "service_name": self.service.name if self.service else None,
            "staff_id": self.staff_id,
            "staff_name": self.staff.full_name if self.staff else None,
            "appointment_date": _iso(self.appointment_date),
            "start_time": _clock(self.start_time),
            "end_time": _clock(self.end_time),
            "total_price": float(self.total_price or 0),
            "notes": self.notes,
            "status": self.status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    appointment_id = db.Column(db.String(36), db.ForeignKey("appointments.id"), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    amount = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False)
    payment_method = db.Column(
        db.Enum(*PAYMENT_METHODS, name="payment_method", native_enum=False, validate_strings=True),
        nullable=False,
    )
    payment_status = db.Column(
        db.Enum(*PAYMENT_STATUSES, name="payment_status", native_enum=False, validate_strings=True),
        nullable=False,
        default="pending",
    )
    # Stripe PaymentIntent id for card payments, free text otherwise.
    transaction_id = db.Column(db.String(255), unique=True, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    appointment = db.relationship("Appointment", back_populates="payments")
    user = db.relationship("User")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "appointment_id": self.appointment_id,
            "user_id": self.user_id,
            "amount": float(self.amount),
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "transaction_id": self.transaction_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Review(db.Model):
    """Ratings left by customers after a completed appointment."""

    __tablename__ = "reviews"
    __table_args__ = (
        db.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    salon_id = db.Column(db.String(36), db.ForeignKey("salons.id"), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    appointment_id = db.Column(
        db.String(36), db.ForeignKey("appointments.id"), unique=True, nullable=False
    )
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    salon = db.relationship("Salon", back_populates="reviews")
    user = db.relationship("User")
    appointment = db.relationship("Appointment", back_populates="review")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "salon_id": self.salon_id,
            "user_id": self.user_id,
            "user_name": self.user.full_name if self.user else "Anonymous",
            "appointment_id": self.appointment_id,
            "rating": self.rating,
            "comment": self.comment,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


def refresh_rating(salon_id: str) -> None:
    """Recompute the salon's cached average rating. The caller commits."""
    average = db.session.query(db.func.avg(Review.rating)).filter(Review.salon_id == salon_id).scalar()
    salon = db.session.get(Salon, salon_id)
    if salon is not None:
        salon.rating = round(float(average), 2) if average is not None else 0
