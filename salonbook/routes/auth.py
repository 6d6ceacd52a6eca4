"""Registration and login."""
from __future__ import annotations

from datetime import datetime, timezone

from flask import Blueprint, current_app, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from ..auth import build_token
from ..extensions import db
from ..models import AuthAccount, User
from ..responses import database_error, failure, success, validation_failed
from ..validators import clean, pick, validate_email, validate_phone

bp = Blueprint("auth", __name__, url_prefix="/api/auth")

# Admin accounts are provisioned with scripts/create_admin.py only.
SELF_SERVICE_ROLES = ("user", "owner")
MIN_PASSWORD_LENGTH = 6


def _session_payload(user: User) -> dict[str, object]:
    return {"user": user.to_dict_basic(), "token": build_token(user)}


@bp.post("/register")
def register_user():
    """Register a new customer or salon owner.
    ---
    tags:
      - Authentication
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            email:
              type: string
            password:
              type: string
            first_name:
              type: string
            last_name:
              type: string
            phone:
              type: string
            role:
              type: string
              enum: [user, owner]
          required:
            - email
            - password
            - first_name
            - last_name
    responses:
      201:
        description: User registered, returns token and profile
      400:
        description: Invalid payload
      403:
        description: Role cannot be self-assigned
      409:
        description: Email already registered
    """
    payload = request.get_json(silent=True) or {}

    errors: dict[str, str] = {}
    password = payload.get("password") or ""
    first_name = clean(pick(payload, "first_name", "firstName"))
    last_name = clean(pick(payload, "last_name", "lastName"))
    role = (clean(payload.get("role")) or "user").lower()

    email = None
    try:
        email = validate_email(payload.get("email"))
    except ValueError as exc:
        errors["email"] = str(exc)
    if email is None and "email" not in errors:
        errors["email"] = "Email is required"

    phone = None
    try:
        phone = validate_phone(payload.get("phone"))
    except ValueError as exc:
        errors["phone"] = str(exc)

    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if not first_name:
        errors["first_name"] = "First name is required"
    if not last_name:
        errors["last_name"] = "Last name is required"

    if errors:
        return validation_failed(errors)

    if role not in SELF_SERVICE_ROLES:
        return failure("role must be 'user' or 'owner'", 403, "forbidden")

    if User.query.filter_by(email=email).first():
        return failure("User already exists", 409, "duplicate_account")

    try:
        new_user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            role=role,
            is_active=True,
        )
        db.session.add(new_user)
        db.session.flush()  # Get the new id before creating the AuthAccount

        db.session.add(AuthAccount(user_id=new_user.id, password_hash=generate_password_hash(password)))
        db.session.commit()

    except IntegrityError:
        # Lost a race with a concurrent registration for the same email.
        db.session.rollback()
        return failure("User already exists", 409, "duplicate_account")
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to register new user", exc_info=exc)
        return database_error()

    current_app.logger.info("Registered %s account %s", new_user.role, new_user.id)
    return success(_session_payload(new_user), "User registered successfully", 201)


@bp.post("/login")
def login():
    """Authenticate a user by email/password and return an access token.
    ---
    tags:
      - Authentication
    responses:
      200:
        description: Login successful, returns access token
      400:
        description: Missing email or password
      401:
        description: Invalid credentials or disabled account
    """
    payload = request.get_json(silent=True) or {}

    email = (clean(payload.get("email")) or "").lower()
    password = payload.get("password") or ""

    if not email or not password:
        return validation_failed({"credentials": "email and password are required"})

    record = (
        db.session.query(User, AuthAccount)
        .join(AuthAccount, AuthAccount.user_id == User.id)
        .filter(User.email == email)
        .first()
    )

    if not record:
        return failure("Invalid credentials", 401, "invalid_credentials")

    user, auth_account = record

    if not user.is_active:
        return failure("Account disabled", 401, "invalid_credentials")

    if not check_password_hash(auth_account.password_hash, password):
        return failure("Invalid credentials", 401, "invalid_credentials")

    auth_account.last_login_at = datetime.now(timezone.utc)

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update last login timestamp", exc_info=exc)
        return database_error()

    return success(_session_payload(user), "Login successful")
