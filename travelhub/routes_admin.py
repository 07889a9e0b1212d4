"""Site administration routes: content, social links, email settings, admins, activity logs."""
from __future__ import annotations

import secrets
import string
from datetime import timedelta
from smtplib import SMTPException

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from . import notifications, storage
from .audit import audited
from .auth import admin_required, optional_admin, super_admin_required
from .errors import ConflictError, NotFoundError, ValidationError
from .extensions import db
from .helpers import (EMAIL_RE, paginate, pagination_args, parse_bool,
                      parse_int, parse_json_field, request_payload)
from .models import (DEFAULT_BUSINESS_HOURS, ActivityLog, ContactInfo, Content,
                     EmailSetting, SocialLink, User, utc_now)

bp_admin = Blueprint("admin", __name__)

ACTIVITY_LOG_RETENTION_DAYS = 365
ACTIVITY_STATS_DAYS = 30
GENERATED_PASSWORD_LENGTH = 16


def _utc_cutoff(days: int):
    return (utc_now() - timedelta(days=days)).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------

CONTENT_TEXT_FIELDS = ("title", "title_vi", "content", "content_vi", "type")


@bp_admin.get("/content")
def list_content() -> tuple[dict[str, object], int]:
    """List content blocks, optionally filtered by ``type``.
    ---
    tags:
      - Content
    parameters:
      - name: type
        in: query
        type: string
      - name: status
        in: query
        type: string
        description: Admins only; public callers always get active content
    responses:
      200:
        description: Content blocks ordered by key
    """
    query = Content.query
    content_type = request.args.get("type")
    if content_type:
        query = query.filter(Content.type == content_type)

    status = request.args.get("status")
    if optional_admin() is None:
        query = query.filter(Content.status == "active")
    elif status and status != "all":
        query = query.filter(Content.status == status)

    items = query.order_by(Content.key.asc()).all()
    return jsonify({"success": True, "data": [c.to_dict() for c in items]}), 200


@bp_admin.get("/content/hero-images")
def hero_images() -> tuple[dict[str, object], int]:
    """Active ``hero_image_*`` blocks for the home page carousel."""
    items = (
        Content.query.filter(Content.key.like("hero\\_image\\_%", escape="\\"), Content.status == "active")
        .order_by(Content.key.asc())
        .all()
    )
    return jsonify({"success": True, "data": [c.to_dict() for c in items]}), 200


@bp_admin.get("/content/<key>")
def get_content(key: str) -> tuple[dict[str, object], int]:
    content = Content.query.filter_by(key=key, status="active").first()
    if content is None:
        raise NotFoundError("Content not found")
    return jsonify({"success": True, "data": content.to_dict()}), 200


@bp_admin.post("/content")
@admin_required
@audited("create", "content")
def create_content() -> tuple[dict[str, object], int]:
    """Create a content block; an ``image`` file is uploaded to storage.
    ---
    tags:
      - Content
    security:
      - Bearer: []
    responses:
      201:
        description: Content created
      400:
        description: Key and title are required, duplicate key, or rejected image
    """
    payload = request_payload()
    key = (payload.get("key") or "").strip()
    title = (payload.get("title") or "").strip()
    if not key or not title:
        raise ValidationError("Key and title are required")
    if Content.query.filter_by(key=key).first() is not None:
        raise ConflictError("Content with this key already exists")

    content = Content(
        key=key,
        title=title,
        title_vi=payload.get("title_vi") or None,
        content=payload.get("content") or None,
        content_vi=payload.get("content_vi") or None,
        type=payload.get("type") or "setting",
        status=payload.get("status") or "active",
        image_url=payload.get("image_url") or None,
    )
    if content.status not in ("active", "inactive"):
        raise ValidationError("Status must be active or inactive")

    upload = request.files.get("image")
    if upload and upload.filename:
        content.image_url = storage.upload_image(upload, "content")

    try:
        db.session.add(content)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create content %s", key, exc_info=exc)
        return jsonify({"success": False, "message": "Error creating content"}), 500

    return jsonify({"success": True, "message": "Content created successfully", "data": content.to_dict()}), 201


@bp_admin.put("/content/<int:content_id>")
@admin_required
@audited("update", "content")
def update_content(content_id: int) -> tuple[dict[str, object], int]:
    """Partially update a content block. A new ``image`` replaces the old one in storage."""
    content = db.session.get(Content, content_id)
    if content is None:
        raise NotFoundError("Content not found")

    payload = request_payload()
    if "title" in payload and not (payload.get("title") or "").strip():
        raise ValidationError("Title cannot be empty")
    for field in CONTENT_TEXT_FIELDS:
        if field in payload:
            setattr(content, field, payload.get(field) or None)
    if not content.type:
        content.type = "setting"
    if "status" in payload:
        if payload.get("status") not in ("active", "inactive"):
            raise ValidationError("Status must be active or inactive")
        content.status = payload["status"]

    old_image = None
    upload = request.files.get("image")
    if upload and upload.filename:
        old_image = content.image_url
        content.image_url = storage.upload_image(upload, "content")
    elif "image_url" in payload:
        content.image_url = payload.get("image_url") or None

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update content %s", content_id, exc_info=exc)
        return jsonify({"success": False, "message": "Error updating content"}), 500

    if old_image and old_image != content.image_url:
        storage.delete_image(old_image)
    return jsonify({"success": True, "message": "Content updated successfully", "data": content.to_dict()}), 200


@bp_admin.delete("/content/<int:content_id>")
@admin_required
@audited("delete", "content")
def delete_content(content_id: int) -> tuple[dict[str, object], int]:
    content = db.session.get(Content, content_id)
    if content is None:
        raise NotFoundError("Content not found")

    image_url = content.image_url
    summary = {"id": content.id, "key": content.key, "title": content.title}
    db.session.delete(content)
    db.session.commit()

    if image_url:
        storage.delete_image(image_url)
    return jsonify({"success": True, "message": "Content deleted successfully", "data": summary}), 200


# ---------------------------------------------------------------------------
# Social links
# ---------------------------------------------------------------------------


@bp_admin.get("/social-links/public")
def public_social_links() -> tuple[dict[str, object], int]:
    links = (
        SocialLink.query.filter(SocialLink.is_active.is_(True))
        .order_by(SocialLink.sort_order.asc(), SocialLink.platform.asc())
        .all()
    )
    return jsonify({"success": True, "data": [link.to_dict() for link in links]}), 200


@bp_admin.get("/social-links")
@admin_required
def list_social_links() -> tuple[dict[str, object], int]:
    links = SocialLink.query.order_by(SocialLink.sort_order.asc(), SocialLink.platform.asc()).all()
    return jsonify({"success": True, "data": [link.to_dict() for link in links]}), 200


def _apply_social_link(link: SocialLink, payload: dict) -> None:
    for field in ("platform", "url"):
        if field in payload:
            value = (payload.get(field) or "").strip()
            if not value:
                raise ValidationError("Platform and URL are required")
            setattr(link, field, value)
    for field in ("display_text", "icon"):
        if field in payload:
            setattr(link, field, payload.get(field) or None)
    if "is_active" in payload:
        link.is_active = parse_bool(payload.get("is_active"), True)
    if "sort_order" in payload:
        link.sort_order = parse_int(payload.get("sort_order"), "sort_order", 0)


@bp_admin.post("/social-links")
@admin_required
@audited("create", "social_link")
def create_social_link() -> tuple[dict[str, object], int]:
    payload = request_payload()
    if not payload.get("platform") or not payload.get("url"):
        raise ValidationError("Platform and URL are required")

    link = SocialLink(is_active=True, sort_order=0)
    _apply_social_link(link, payload)
    db.session.add(link)
    db.session.commit()
    return jsonify({"success": True, "message": "Social link created successfully", "data": link.to_dict()}), 201


@bp_admin.put("/social-links/<int:link_id>")
@admin_required
@audited("update", "social_link")
def update_social_link(link_id: int) -> tuple[dict[str, object], int]:
    link = db.session.get(SocialLink, link_id)
    if link is None:
        raise NotFoundError("Social link not found")

    _apply_social_link(link, request_payload())
    db.session.commit()
    return jsonify({"success": True, "message": "Social link updated successfully", "data": link.to_dict()}), 200


@bp_admin.delete("/social-links/<int:link_id>")
@admin_required
@audited("delete", "social_link")
def delete_social_link(link_id: int) -> tuple[dict[str, object], int]:
    link = db.session.get(SocialLink, link_id)
    if link is None:
        raise NotFoundError("Social link not found")

    summary = {"id": link.id, "platform": link.platform}
    db.session.delete(link)
    db.session.commit()
    return jsonify({"success": True, "message": "Social link deleted successfully", "data": summary}), 200


# ---------------------------------------------------------------------------
# Contact information
# ---------------------------------------------------------------------------


@bp_admin.get("/contact")
def get_contact_info() -> tuple[dict[str, object], int]:
    contact = ContactInfo.latest()
    if contact is None:
        contact = ContactInfo.default()
        db.session.add(contact)
        db.session.commit()
        current_app.logger.info("Seeded default contact information")
    return jsonify({"success": True, "data": contact.to_dict()}), 200


@bp_admin.put("/contact")
@admin_required
@audited("update", "contact")
def update_contact_info() -> tuple[dict[str, object], int]:
    """Replace the public contact details.
    ---
    tags:
      - Contact
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            email:
              type: string
            phone:
              type: string
            address:
              type: string
            businessHours:
              type: object
            googleMapLink:
              type: string
    responses:
      200:
        description: Contact information updated
      400:
        description: Missing fields or invalid email
    """
    payload = request_payload()
    email, phone, address = (str(payload.get(field) or "").strip() for field in ("email", "phone", "address"))
    if not email or not phone or not address:
        raise ValidationError("Email, phone, and address are required")
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email format")

    contact = ContactInfo.latest() or ContactInfo()
    hours = payload.get("businessHours", payload.get("business_hours"))
    business_hours = parse_json_field(hours, contact.business_hours or dict(DEFAULT_BUSINESS_HOURS))
    if not isinstance(business_hours, dict):
        raise ValidationError("Business hours must be an object")
    map_link = payload.get("googleMapLink", payload.get("google_map_link"))

    contact.email = email
    contact.phone = phone
    contact.address = address
    contact.business_hours = business_hours
    contact.google_map_link = str(map_link or "")

    try:
        db.session.add(contact)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update contact information", exc_info=exc)
        return jsonify({"success": False, "message": "Failed to update contact information"}), 500

    return jsonify({
        "success": True,
        "message": "Contact information updated successfully",
        "data": contact.to_dict(),
    }), 200


# ---------------------------------------------------------------------------
# Email settings
# ---------------------------------------------------------------------------


@bp_admin.get("/email-settings")
@admin_required
def get_email_settings() -> tuple[dict[str, object], int]:
    return jsonify({"success": True, "data": notifications.get_email_settings()}), 200


@bp_admin.put("/email-settings")
@admin_required
@audited("update", "email_settings")
def update_email_settings() -> tuple[dict[str, object], int]:
    """Upsert email settings from ``{"settings": {key: value}}``.
    ---
    tags:
      - Email Settings
    security:
      - Bearer: []
    responses:
      200:
        description: Settings saved, returns the merged settings
      400:
        description: Settings object is required, or invalid company email
    """
    settings = request_payload().get("settings")
    if not isinstance(settings, dict) or not settings:
        raise ValidationError("Settings object is required")

    company_email = settings.get("company_email")
    if company_email and not EMAIL_RE.match(str(company_email)):
        raise ValidationError("Invalid company email format")

    for key, value in settings.items():
        if isinstance(value, bool):
            value = "true" if value else "false"
        row = EmailSetting.query.filter_by(setting_key=key).first()
        if row is None:
            row = EmailSetting(setting_key=key, description="")
            db.session.add(row)
        row.setting_value = None if value is None else str(value)
    db.session.commit()

    return jsonify({
        "success": True,
        "message": "Email settings updated successfully",
        "data": notifications.get_email_settings(),
    }), 200


@bp_admin.post("/email-settings/test")
@admin_required
def test_email_settings() -> tuple[dict[str, object], int]:
    """Send a test message; delivery failures are reported as 500."""
    test_email = (request_payload().get("testEmail") or "").strip()
    if not test_email:
        raise ValidationError("Test email address is required")
    if not EMAIL_RE.match(test_email):
        raise ValidationError("Invalid email format")

    try:
        notifications.send_test_email(test_email)
    except (SMTPException, OSError) as exc:
        current_app.logger.exception("Test email to %s failed", test_email, exc_info=exc)
        return jsonify({"success": False, "message": f"Failed to send test email: {exc}"}), 500

    return jsonify({"success": True, "message": f"Test email sent successfully to {test_email}"}), 200


@bp_admin.get("/email-settings/stats")
@admin_required
def email_settings_stats() -> tuple[dict[str, object], int]:
    settings = notifications.get_email_settings()
    last_updated = db.session.query(func.max(EmailSetting.updated_at)).scalar()
    return jsonify({
        "success": True,
        "data": {
            "notifications_enabled": settings.get("booking_notification_enabled") == "true",
            "confirmations_enabled": settings.get("customer_confirmation_enabled") == "true",
            "company_email": settings.get("company_email"),
            "last_updated": last_updated.isoformat() if last_updated else None,
        },
    }), 200


# ---------------------------------------------------------------------------
# Admin management (super admin only)
# ---------------------------------------------------------------------------


def generate_password(length: int = GENERATED_PASSWORD_LENGTH) -> str:
    alphabet = string.ascii_letters + string.digits + "!@#$%^&*"
    return "".join(secrets.choice(alphabet) for _ in range(length))


def _managed_admin(admin_id: int) -> User:
    user = db.session.get(User, admin_id)
    if user is None or user.role != "admin":
        raise NotFoundError("Admin not found")
    return user


@bp_admin.get("/admin-management")
@super_admin_required
def list_admins() -> tuple[dict[str, object], int]:
    admins = User.query.filter_by(role="admin").order_by(User.created_at.desc(), User.id.desc()).all()
    return jsonify({"success": True, "data": [a.to_dict() for a in admins]}), 200


@bp_admin.post("/admin-management")
@super_admin_required
@audited("create", "admin")
def create_admin() -> tuple[dict[str, object], int]:
    """Create an admin with a generated password and email the invitation.
    ---
    tags:
      - Admin Management
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            name:
              type: string
            email:
              type: string
            phone:
              type: string
    responses:
      201:
        description: Admin created, invitation sent
      400:
        description: Missing name or email, invalid email, or email already exists
      403:
        description: Super admin access required
    """
    payload = request_payload()
    name = (payload.get("name") or "").strip()
    email = (payload.get("email") or "").strip().lower()
    if not name or not email:
        raise ValidationError("Name and email are required")
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email format")
    if User.query.filter_by(email=email).first() is not None:
        raise ConflictError("Email already exists")

    password = generate_password()
    admin = User(
        name=name,
        email=email,
        phone=payload.get("phone") or None,
        role="admin",
        is_super_admin=False,
        is_active=True,
        created_by=g.current_user.id,
    )
    admin.set_password(password)
    db.session.add(admin)
    db.session.commit()

    invited = notifications.send_admin_invitation(admin, password)
    message = "Admin created successfully. Invitation email sent." if invited else \
        "Admin created successfully, but the invitation email could not be sent."
    return jsonify({"success": True, "message": message, "data": admin.to_dict()}), 201


@bp_admin.put("/admin-management/<int:admin_id>")
@super_admin_required
@audited("update", "admin")
def update_admin(admin_id: int) -> tuple[dict[str, object], int]:
    admin = _managed_admin(admin_id)
    if admin.is_super_admin:
        raise ValidationError("Cannot modify super admin")

    payload = request_payload()
    if "name" in payload:
        name = (payload.get("name") or "").strip()
        if not name:
            raise ValidationError("Name cannot be empty")
        admin.name = name
    if "email" in payload:
        email = (payload.get("email") or "").strip().lower()
        if not EMAIL_RE.match(email):
            raise ValidationError("Invalid email format")
        existing = User.query.filter_by(email=email).first()
        if existing is not None and existing.id != admin.id:
            raise ConflictError("Email already exists")
        admin.email = email
    if "phone" in payload:
        admin.phone = payload.get("phone") or None
    if "is_active" in payload:
        admin.is_active = parse_bool(payload.get("is_active"), True)

    db.session.commit()
    return jsonify({"success": True, "message": "Admin updated successfully", "data": admin.to_dict()}), 200


@bp_admin.delete("/admin-management/<int:admin_id>")
@super_admin_required
@audited("delete", "admin")
def delete_admin(admin_id: int) -> tuple[dict[str, object], int]:
    """Soft delete: the account is deactivated, never removed."""
    admin = _managed_admin(admin_id)
    if admin.is_super_admin:
        raise ValidationError("Cannot delete super admin")
    if admin.id == g.current_user.id:
        raise ValidationError("Cannot delete your own account")

    admin.is_active = False
    db.session.commit()
    return jsonify({
        "success": True,
        "message": "Admin deleted successfully",
        "data": {"id": admin.id, "name": admin.name},
    }), 200


@bp_admin.post("/admin-management/<int:admin_id>/reset-password")
@super_admin_required
@audited("update", "admin")
def reset_admin_password(admin_id: int) -> tuple[dict[str, object], int]:
    admin = _managed_admin(admin_id)
    if admin.is_super_admin:
        raise ValidationError("Cannot modify super admin")

    password = generate_password()
    admin.set_password(password)
    db.session.commit()

    sent = notifications.send_admin_password_reset(admin, password)
    message = "Password reset successfully. Email sent to admin." if sent else \
        "Password reset successfully, but the email could not be sent."
    return jsonify({"success": True, "message": message, "data": {"id": admin.id, "name": admin.name}}), 200


# ---------------------------------------------------------------------------
# Activity logs
# ---------------------------------------------------------------------------


@bp_admin.get("/activity-logs")
@admin_required
def list_activity_logs() -> tuple[dict[str, object], int]:
    """Activity log entries from the last 365 days, newest first.
    ---
    tags:
      - Activity Logs
    security:
      - Bearer: []
    parameters:
      - name: admin_id
        in: query
        type: integer
      - name: action_type
        in: query
        type: string
        enum: [create, update, delete]
      - name: resource_type
        in: query
        type: string
      - name: date_from
        in: query
        type: string
        format: date
      - name: date_to
        in: query
        type: string
        format: date
        description: Inclusive
    responses:
      200:
        description: Paginated activity logs
    """
    page, limit = pagination_args(default_limit=50)
    query = ActivityLog.query.filter(ActivityLog.created_at >= _utc_cutoff(ACTIVITY_LOG_RETENTION_DAYS))

    admin_id = parse_int(request.args.get("admin_id"), "admin_id")
    if admin_id is not None:
        query = query.filter(ActivityLog.admin_id == admin_id)
    if request.args.get("action_type"):
        query = query.filter(ActivityLog.action_type == request.args["action_type"])
    if request.args.get("resource_type"):
        query = query.filter(ActivityLog.resource_type == request.args["resource_type"])
    if request.args.get("date_from"):
        query = query.filter(func.date(ActivityLog.created_at) >= request.args["date_from"][:10])
    if request.args.get("date_to"):
        query = query.filter(func.date(ActivityLog.created_at) <= request.args["date_to"][:10])

    query = query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
    items, pagination = paginate(query, page, limit)
    return jsonify({"success": True, "data": [log.to_dict() for log in items], "pagination": pagination}), 200


@bp_admin.get("/activity-logs/stats")
@admin_required
def activity_log_stats() -> tuple[dict[str, object], int]:
    """Last 30 days grouped by action, by admin (top 10) and by day."""
    since = _utc_cutoff(ACTIVITY_STATS_DAYS)
    count = func.count(ActivityLog.id)

    action_stats = (
        db.session.query(ActivityLog.action_type, ActivityLog.resource_type, count)
        .filter(ActivityLog.created_at >= since)
        .group_by(ActivityLog.action_type, ActivityLog.resource_type)
        .order_by(count.desc())
        .all()
    )
    admin_stats = (
        db.session.query(ActivityLog.admin_id, ActivityLog.admin_name, ActivityLog.admin_email, count)
        .filter(ActivityLog.created_at >= since)
        .group_by(ActivityLog.admin_id, ActivityLog.admin_name, ActivityLog.admin_email)
        .order_by(count.desc())
        .limit(10)
        .all()
    )
    day = func.date(ActivityLog.created_at)
    daily_stats = (
        db.session.query(day, count)
        .filter(ActivityLog.created_at >= since)
        .group_by(day)
        .order_by(day.desc())
        .all()
    )

    return jsonify({
        "success": True,
        "data": {
            "actionStats": [
                {"action_type": action, "resource_type": resource, "count": n}
                for action, resource, n in action_stats
            ],
            "adminStats": [
                {"admin_id": admin_id, "admin_name": name, "admin_email": email, "action_count": n}
                for admin_id, name, email, n in admin_stats
            ],
            "dailyStats": [{"date": str(d), "count": n} for d, n in daily_stats],
        },
    }), 200


@bp_admin.post("/activity-logs/cleanup")
@super_admin_required
def cleanup_activity_logs() -> tuple[dict[str, object], int]:
    deleted = (
        ActivityLog.query.filter(ActivityLog.created_at < _utc_cutoff(ACTIVITY_LOG_RETENTION_DAYS))
        .delete(synchronize_session=False)
    )
    db.session.commit()
    current_app.logger.info("Cleaned up %d old activity logs", deleted)
    return jsonify({
        "success": True,
        "message": f"Cleaned up {deleted} old activity logs",
        "data": {"deletedCount": deleted},
    }), 200
