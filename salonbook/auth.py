"""Bearer token issuing, request authentication and ownership checks."""
from __future__ import annotations

from functools import wraps

from flask import current_app, g, request
from itsdangerous import BadData, URLSafeTimedSerializer

from .extensions import db
from .models import Salon, User
from .responses import failure

TOKEN_SALT = "auth-token"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def build_token(user: User) -> str:
    return _serializer().dumps({"sub": user.id, "email": user.email, "role": user.role})


def decode_token(token: str) -> dict[str, object] | None:
    """Return the token payload, or None if the signature is bad or the token expired."""
    try:
        payload = _serializer().loads(token, max_age=current_app.config["TOKEN_MAX_AGE"])
    except BadData:
        return None
    return payload if isinstance(payload, dict) else None


def _bearer_token() -> str | None:
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    return header[7:].strip() or None


def identify_user() -> User | None:
    """Resolve the active account behind the request's bearer token, if any."""
    token = _bearer_token()
    if not token:
        return None

    payload = decode_token(token)
    if payload is None:
        current_app.logger.warning("Rejected invalid or expired token for %s", request.path)
        return None

    user = db.session.get(User, payload.get("sub"))
    if user is None or not user.is_active:
        return None
    return user


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        user = identify_user()
        if user is None:
            return failure("Authentication required", 401, "unauthorized")
        g.current_user = user
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: str):
    """Authenticate the request and require one of ``roles``."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if g.current_user.role not in roles:
                return failure("Access denied for this role", 403, "forbidden")
            return view(*args, **kwargs)

        return login_required(wrapper)

    return decorator


def owns_salon(user: User | None, salon: Salon) -> bool:
    if user is None:
        return False
    return user.role == "admin" or salon.owner_id == user.id


def load_owned(model, resource_id: str, user: User):
    """Fetch ``model`` by id and verify ``user`` owns its salon.

    Returns ``(resource, None)`` on success or ``(None, response)`` where the
    response is a 404 for a missing row and a 403 when the row belongs to
    another owner. Admins pass the ownership check.
    """
    resource = db.session.get(model, resource_id)
    if resource is None:
        return None, failure(f"{model.__name__} not found", 404, "not_found")

    if user.role == "admin":
        return resource, None

    query = db.session.query(model.id).filter(model.id == resource_id)
    if model is not Salon:
        query = query.join(Salon, Salon.id == model.salon_id)
    owned = query.filter(Salon.owner_id == user.id).first()

    if owned is None:
        return None, failure("You do not have permission", 403, "forbidden")
    return resource, None
