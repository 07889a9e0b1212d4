"""HTTP routes for health checks, admin authentication and bookings."""
from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from . import bookings, notifications
from .audit import audited
from .auth import admin_required, build_token
from .errors import AuthError, ValidationError
from .extensions import db
from .helpers import paginate, pagination_args, request_payload, sort_clause
from .models import Booking, PasswordResetToken, User, utc_now

bp = Blueprint("api", __name__)

MIN_PASSWORD_LENGTH = 6
FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, a password reset link has been sent."


@bp.get("/health")
def health_check() -> tuple[dict[str, str], int]:
    """
    Expose a simple uptime check endpoint.
    ---
    tags:
      - Health
    responses:
      200:
        description: Service is healthy and running.
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
    """
    return jsonify({"status": "ok"}), 200


@bp.get("/db-health")
def database_health() -> tuple[dict[str, str], int]:
    """Check connectivity to the configured database.
    ---
    tags:
      - Health
    responses:
      200:
        description: Database connection is ok.
      500:
        description: Database connection failed.
    """
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        current_app.logger.exception("Database connectivity check failed", exc_info=exc)
        return jsonify({"database": "unavailable"}), 500

    return jsonify({"database": "ok"}), 200


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


@bp.post("/auth/admin/login")
def admin_login() -> tuple[dict[str, object], int]:
    """Authenticate an admin by email/password and return a bearer token.
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
          required:
            - email
            - password
    responses:
      200:
        description: Login successful, returns token and user
      400:
        description: Email or password missing
      401:
        description: Invalid admin credentials
    """
    payload = request_payload()
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = User.find_active_admin(email)
    # Unknown, inactive and wrong-password logins are indistinguishable.
    if user is None or not user.check_password(password):
        current_app.logger.warning("Rejected admin login for %s", email)
        raise AuthError("Invalid admin credentials")

    user.last_login_at = utc_now()
    db.session.commit()

    return jsonify({
        "success": True,
        "message": "Login successful",
        "data": {
            "token": build_token(user),
            "user": {
                "id": user.id,
                "email": user.email,
                "name": user.name,
                "role": user.computed_role,
            },
        },
    }), 200


@bp.get("/auth/profile")
@admin_required
def get_profile() -> tuple[dict[str, object], int]:
    """Return the authenticated admin.
    ---
    tags:
      - Authentication
    security:
      - Bearer: []
    responses:
      200:
        description: Current admin profile
      401:
        description: Missing or invalid token
    """
    return jsonify({"success": True, "data": g.current_user.to_dict()}), 200


@bp.post("/auth/change-password")
@admin_required
def change_password() -> tuple[dict[str, object], int]:
    """Change the authenticated admin's password.
    ---
    tags:
      - Authentication
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            currentPassword:
              type: string
            newPassword:
              type: string
              minLength: 6
    responses:
      200:
        description: Password changed
      400:
        description: Missing fields, short password or wrong current password
    """
    payload = request_payload()
    current_password = payload.get("currentPassword") or ""
    new_password = payload.get("newPassword") or ""
    if not current_password or not new_password:
        raise ValidationError("Current password and new password are required")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters long")

    user = g.current_user
    if not user.check_password(current_password):
        raise ValidationError("Current password is incorrect")

    user.set_password(new_password)
    db.session.commit()
    current_app.logger.info("Admin %s changed their password", user.email)
    return jsonify({"success": True, "message": "Password changed successfully"}), 200


@bp.post("/auth/forgot-password")
def forgot_password() -> tuple[dict[str, object], int]:
    """Email a password reset link. The answer never reveals whether the email exists.
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
    responses:
      200:
        description: Generic acknowledgement
      400:
        description: Email missing
    """
    email = (request_payload().get("email") or "").strip().lower()
    if not email:
        raise ValidationError("Email is required")

    user = User.find_active_admin(email)
    if user is not None:
        reset = PasswordResetToken.new_for(user.id, current_app.config["PASSWORD_RESET_TTL_MINUTES"])
        db.session.add(reset)
        db.session.commit()

        reset_url = f"{current_app.config['FRONTEND_URL'].rstrip('/')}/admin/reset-password?token={reset.token}"
        if not notifications.send_forgot_password(user, reset_url):
            current_app.logger.warning("Password reset email for %s was not delivered", email)

    return jsonify({"success": True, "message": FORGOT_PASSWORD_MESSAGE}), 200


@bp.post("/auth/reset-password")
def reset_password() -> tuple[dict[str, object], int]:
    """Set a new password using a reset token.
    ---
    tags:
      - Authentication
    responses:
      200:
        description: Password reset
      400:
        description: Missing fields, short password, or invalid / used / expired token
    """
    payload = request_payload()
    token = (payload.get("token") or "").strip()
    new_password = payload.get("newPassword") or ""
    if not token or not new_password:
        raise ValidationError("Token and new password are required")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters long")

    reset = PasswordResetToken.find_valid(token)
    if reset is None or reset.user is None or not reset.user.is_active:
        raise ValidationError("Invalid or expired password reset token")

    reset.user.set_password(new_password)
    reset.used = True
    db.session.commit()
    current_app.logger.info("Password reset completed for %s", reset.user.email)
    return jsonify({"success": True, "message": "Password has been reset successfully"}), 200


@bp.get("/auth/verify-reset-token/<token>")
def verify_reset_token(token: str) -> tuple[dict[str, object], int]:
    """Tell the reset form whether a token is still usable. Read only.
    ---
    tags:
      - Authentication
    responses:
      200:
        description: Token is valid
      400:
        description: Token is invalid, used or expired
    """
    if PasswordResetToken.find_valid(token) is None:
        return jsonify({"success": False, "valid": False, "message": "Invalid or expired password reset token"}), 400
    return jsonify({"success": True, "valid": True}), 200


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


@bp.post("/bookings")
def create_booking() -> tuple[dict[str, object], int]:
    """Submit a booking request for a tour or a service (public, no account).
    ---
    tags:
      - Bookings
    consumes:
      - application/json
      - multipart/form-data
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            tourId:
              type: integer
            serviceId:
              type: integer
              description: Takes precedence over tourId when both are sent
            customerName:
              type: string
            customerEmail:
              type: string
            customerPhone:
              type: string
            startDate:
              type: string
              format: date
            totalTravelers:
              type: integer
            totalAmount:
              type: number
          required:
            - customerName
            - customerEmail
            - customerPhone
            - startDate
            - totalTravelers
            - totalAmount
    responses:
      201:
        description: Booking request stored
      400:
        description: Missing fields, invalid email or past start date
      404:
        description: Tour or service not found
      500:
        description: Database error
    """
    try:
        booking, item, _created = bookings.create_direct_booking(request_payload())
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create booking", exc_info=exc)
        return jsonify({"success": False, "message": "Error creating booking. Please try again."}), 500

    return jsonify({
        "success": True,
        "message": "Booking request submitted successfully. We will contact you soon!",
        "data": {
            "bookingNumber": booking.booking_number,
            "bookingId": booking.id,
            "status": booking.status,
            "itemTitle": item.title,
            "type": booking.type,
        },
    }), 201


@bp.get("/bookings")
@admin_required
def list_bookings() -> tuple[dict[str, object], int]:
    """List bookings with filters and pagination.
    ---
    tags:
      - Bookings
    security:
      - Bearer: []
    parameters:
      - name: status
        in: query
        type: string
        enum: [pending, confirmed, contacted, completed, cancelled]
      - name: type
        in: query
        type: string
        enum: [tour, service]
      - name: search
        in: query
        type: string
        description: Booking number, customer name, email or phone
      - name: sortBy
        in: query
        type: string
        enum: [created_at, start_date, total_amount, status, customer_name]
      - name: sortOrder
        in: query
        type: string
        enum: [asc, desc]
      - name: page
        in: query
        type: integer
      - name: limit
        in: query
        type: integer
    responses:
      200:
        description: Paginated bookings
    """
    page, limit = pagination_args()
    query = bookings.booking_query(
        status=request.args.get("status") or None,
        booking_type=request.args.get("type") or None,
        search=(request.args.get("search") or "").strip() or None,
    )
    query = query.order_by(
        sort_clause(Booking, {"created_at", "start_date", "total_amount", "status", "customer_name"}, "created_at"),
        Booking.id.desc(),
    )
    items, pagination = paginate(query, page, limit)
    return jsonify({"success": True, "data": [b.to_dict() for b in items], "pagination": pagination}), 200


@bp.get("/bookings/stats")
@admin_required
def booking_stats() -> tuple[dict[str, object], int]:
    """Aggregate booking counts and revenue for the dashboard.
    ---
    tags:
      - Bookings
    security:
      - Bearer: []
    responses:
      200:
        description: Counts by status, revenue excluding cancelled, today and last 7 days
    """
    return jsonify({"success": True, "data": bookings.get_booking_stats()}), 200


@bp.get("/bookings/<int:booking_id>")
@admin_required
def get_booking(booking_id: int) -> tuple[dict[str, object], int]:
    """Return one booking with its item title and notes (newest first)."""
    return jsonify({"success": True, "data": bookings.get_booking_detail(booking_id)}), 200


@bp.put("/bookings/<int:booking_id>/status")
@admin_required
@audited("update", "booking")
def update_booking_status(booking_id: int) -> tuple[dict[str, object], int]:
    """Change a booking's status and notify the customer when it actually changed.
    ---
    tags:
      - Bookings
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            status:
              type: string
              enum: [pending, confirmed, contacted, completed, cancelled]
            notes:
              type: string
    responses:
      200:
        description: Booking updated
      400:
        description: Invalid status value or forbidden transition
      404:
        description: Booking not found
    """
    payload = request_payload()
    notes = payload.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("Notes must be text")
    try:
        booking = bookings.update_booking_status(
            booking_id,
            payload.get("status"),
            notes=(notes or "").strip() or None,
            author=g.current_user,
        )
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update booking status", exc_info=exc)
        return jsonify({"success": False, "message": "Error updating booking status"}), 500

    return jsonify({
        "success": True,
        "message": "Booking status updated successfully",
        "data": booking.to_dict(),
    }), 200


@bp.post("/bookings/<int:booking_id>/notes")
@admin_required
@audited("create", "booking_note")
def add_booking_note(booking_id: int) -> tuple[dict[str, object], int]:
    """Append an admin note to a booking.
    ---
    tags:
      - Bookings
    security:
      - Bearer: []
    responses:
      201:
        description: Note added
      400:
        description: Note content is required
      404:
        description: Booking not found
    """
    note = bookings.add_booking_note(booking_id, request_payload().get("content"), g.current_user)
    return jsonify({"success": True, "message": "Note added successfully", "data": note.to_dict()}), 201


def register_routes(app) -> None:
    from .routes_admin import bp_admin
    from .routes_catalog import bp_catalog

    app.register_blueprint(bp)
    app.register_blueprint(bp_catalog)
    app.register_blueprint(bp_admin)

