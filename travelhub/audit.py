"""Activity log writes for admin mutations."""
from __future__ import annotations

from functools import wraps

from flask import current_app, g, request
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .models import ActivityLog


def log_activity(
    action_type: str,
    resource_type: str,
    resource_id=None,
    resource_name: str | None = None,
    changes=None,
) -> ActivityLog | None:
    """Record one admin action. Never raises; the caller's work is already committed."""
    user = getattr(g, "current_user", None)
    if user is None:
        current_app.logger.warning("Skipping activity log for %s %s: no admin in request", action_type, resource_type)
        return None

    entry = ActivityLog(
        admin_id=user.id,
        admin_name=user.name or "Unknown Admin",
        admin_email=user.email,
        action_type=action_type,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        resource_name=resource_name,
        changes=changes,
        ip_address=request.headers.get("X-Forwarded-For", request.remote_addr),
        user_agent=(request.user_agent.string or None) and request.user_agent.string[:255],
    )
    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to write activity log", exc_info=exc)
        return None

    current_app.logger.info(
        "Audit: %s %sd %s #%s", user.email, action_type, resource_type, entry.resource_id
    )
    return entry


def audited(action_type: str, resource_type: str):
    """Log the wrapped view to the activity log when it answers with success."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            response = current_app.make_response(view(*args, **kwargs))
            if response.status_code >= 400 or not response.is_json:
                return response

            body = response.get_json(silent=True) or {}
            if not body.get("success"):
                return response

            data = body.get("data") if isinstance(body.get("data"), dict) else {}
            resource_id = data.get("id") or kwargs.get("id") or next(iter(kwargs.values()), None)
            resource_name = data.get("name") or data.get("title") or data.get("key") or data.get("platform")
            log_activity(action_type, resource_type, resource_id, resource_name, data or None)
            return response

        return wrapper

    return decorator
