"""Bearer token issuing and the admin route decorators."""
from __future__ import annotations

from functools import wraps

from flask import current_app, g, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from .errors import AuthError, ForbiddenError
from .extensions import db
from .models import User


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt="auth-token")


def build_token(user: User) -> str:
    return _serializer().dumps(
        {"id": user.id, "role": user.computed_role, "email": user.email, "name": user.name}
    )


def decode_token(token: str) -> dict[str, object]:
    try:
        payload = _serializer().loads(token, max_age=current_app.config["TOKEN_MAX_AGE_SECONDS"])
    except SignatureExpired as exc:
        raise AuthError("Token expired") from exc
    except BadSignature as exc:
        raise AuthError("Invalid token") from exc
    if not isinstance(payload, dict) or "id" not in payload:
        raise AuthError("Invalid token")
    return payload


def current_user_from_request() -> User:
    """Resolve the active admin behind the ``Authorization: Bearer`` header."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise AuthError("Access token required")

    payload = decode_token(auth_header[7:].strip())
    user = db.session.get(User, payload["id"])
    if user is None or not user.is_active:
        raise AuthError("Invalid token")
    return user


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        user = current_user_from_request()
        if user.role != "admin":
            raise ForbiddenError("Admin access required")
        g.current_user = user
        return view(*args, **kwargs)

    return wrapper


def super_admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        user = current_user_from_request()
        if user.role != "admin" or not user.is_super_admin:
            raise ForbiddenError("Super admin access required")
        g.current_user = user
        return view(*args, **kwargs)

    return wrapper


def optional_admin() -> User | None:
    """Return the admin behind a valid bearer token, or None for public callers."""
    if not request.headers.get("Authorization", "").startswith("Bearer "):
        return None
    try:
        user = current_user_from_request()
    except AuthError:
        return None
    return user if user.role == "admin" else None
