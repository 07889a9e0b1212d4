"""Booking lifecycle: submission, status transitions, notes and statistics."""
from __future__ import annotations

import random
import string
import time
from datetime import date, datetime, time as dtime, timedelta

from flask import current_app
from sqlalchemy import case, func, or_
from sqlalchemy.exc import SQLAlchemyError

from . import notifications
from .errors import NotFoundError, ValidationError
from .extensions import db
from .helpers import EMAIL_RE, parse_bool, parse_float, parse_int
from .models import BOOKING_STATUSES, Booking, BookingNote, Service, Tour, User, utc_now

# Applied only when BOOKING_STRICT_TRANSITIONS is on.
ALLOWED_TRANSITIONS = {
    "pending": {"confirmed", "contacted", "cancelled"},
    "contacted": {"confirmed", "cancelled"},
    "confirmed": {"contacted", "completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_booking_number() -> str:
    """``BK`` + epoch millis + four random ``[A-Z0-9]`` characters, unique in the table."""
    while True:
        suffix = "".join(random.choices(_SUFFIX_ALPHABET, k=4))
        number = f"BK{int(time.time() * 1000)}{suffix}"
        if Booking.find_by_number(number) is None:
            return number


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _blank_or_zero(value) -> bool:
    if _blank(value):
        return True
    try:
        return float(value) == 0
    except (TypeError, ValueError):
        return False


def _parse_date(value, message: str) -> date | None:
    if _blank(value):
        return None
    if isinstance(value, date):
        return value
    try:
        # Accepts "2026-05-01" as well as full ISO timestamps; only the date part counts.
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise ValidationError(message) from exc


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, dtime.min)


def _notify(sender, *args) -> None:
    try:
        sender(*args)
    except Exception as exc:  # notification failures never reach the caller
        current_app.logger.exception("Notification %s failed", sender.__name__, exc_info=exc)


def _find_duplicate(booking_type: str, item_id: int, email: str, start_date: date) -> Booking | None:
    window = current_app.config.get("BOOKING_DEDUPE_WINDOW_SECONDS", 0)
    if not window:
        return None
    since = (utc_now() - timedelta(seconds=window)).replace(tzinfo=None)
    return (
        Booking.query.filter(
            Booking.type == booking_type,
            Booking.item_id == item_id,
            func.lower(Booking.customer_email) == email.lower(),
            Booking.start_date == start_date,
            Booking.created_at >= since,
        )
        .order_by(Booking.created_at.desc())
        .first()
    )


def create_direct_booking(payload: dict) -> tuple[Booking, Tour | Service, bool]:
    """Validate and persist a booking submitted from the public site.

    Returns ``(booking, item, created)``; ``created`` is False when the dedupe
    window matched an earlier identical submission.
    """
    tour_id = payload.get("tourId")
    service_id = payload.get("serviceId")
    if not _blank(service_id):
        booking_type, raw_item_id = "service", service_id
    else:
        booking_type, raw_item_id = "tour", tour_id

    required = (
        raw_item_id,
        payload.get("customerName"),
        payload.get("customerEmail"),
        payload.get("customerPhone"),
        payload.get("startDate"),
    )
    # A zero traveler count or amount is as good as missing.
    totals = (payload.get("totalTravelers"), payload.get("totalAmount"))
    if any(_blank(value) for value in required) or any(_blank_or_zero(value) for value in totals):
        raise ValidationError("Missing required booking information")

    email = str(payload["customerEmail"]).strip()
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email format")

    start_date = _parse_date(payload["startDate"], "Invalid start date")
    if start_date < utc_now().date():
        raise ValidationError("Start date cannot be in the past")

    item_id = parse_int(raw_item_id, "Item id")
    model = Service if booking_type == "service" else Tour
    item = db.session.get(model, item_id)
    if item is None:
        raise NotFoundError("Service not found" if booking_type == "service" else "Tour not found")

    counts = {
        name: parse_int(payload.get(name), name, 0)
        for name in ("adults", "children", "infants", "totalTravelers")
    }
    if any(value < 0 for value in counts.values()):
        raise ValidationError("Traveler counts cannot be negative")
    total_amount = parse_float(payload.get("totalAmount"), "totalAmount")
    if total_amount < 0:
        raise ValidationError("Total amount cannot be negative")

    duplicate = _find_duplicate(booking_type, item_id, email, start_date)
    if duplicate is not None:
        current_app.logger.info("Duplicate submission matched booking %s", duplicate.booking_number)
        return duplicate, item, False

    booking = Booking(
        type=booking_type,
        item_id=item_id,
        booking_number=generate_booking_number(),
        customer_name=str(payload["customerName"]).strip(),
        customer_email=email,
        customer_phone=str(payload["customerPhone"]).strip(),
        start_date=start_date,
        adults=counts["adults"],
        children=counts["children"],
        infants=counts["infants"],
        total_travelers=counts["totalTravelers"],
        total_amount=total_amount,
        currency=payload.get("currency") or "USD",
        status="pending",
        special_requests=payload.get("specialRequests") or None,
        emergency_contact_name=payload.get("emergencyContactName") or None,
        emergency_contact_phone=payload.get("emergencyContactPhone") or None,
        emergency_contact_relationship=payload.get("emergencyContactRelationship") or None,
        gender=payload.get("gender") or None,
        date_of_birth=_parse_date(payload.get("dateOfBirth"), "Invalid date of birth"),
        address=payload.get("address") or None,
        departure_location=payload.get("departureLocation") or payload.get("from") or None,
        destination_location=payload.get("destinationLocation") or payload.get("to") or None,
        return_trip=parse_bool(payload.get("returnTrip")),
        return_date=_parse_date(payload.get("returnDate"), "Invalid return date"),
    )
    db.session.add(booking)
    db.session.commit()
    current_app.logger.info("Created %s booking %s", booking_type, booking.booking_number)

    language = payload.get("language") or "en"
    _notify(notifications.send_admin_booking_notification, booking, item, language)
    _notify(notifications.send_customer_confirmation, booking, item, language)
    return booking, item, True


def update_booking_status(booking_id: int, status: str, notes: str | None = None, author: User | None = None) -> Booking:
    if status not in BOOKING_STATUSES:
        raise ValidationError("Invalid status value")

    booking = db.session.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")

    old_status = booking.status
    changed = old_status != status
    if changed and current_app.config.get("BOOKING_STRICT_TRANSITIONS"):
        if status not in ALLOWED_TRANSITIONS.get(old_status, set()):
            raise ValidationError(f"Cannot change booking status from {old_status} to {status}")

    booking.status = status
    if changed and status == "contacted":
        booking.contacted_at = utc_now()
    if changed and status == "confirmed":
        booking.confirmed_at = utc_now()
    db.session.commit()
    current_app.logger.info("Booking %s status %s -> %s", booking.booking_number, old_status, status)

    if changed:
        item = booking.item()
        if item is not None:
            _notify(notifications.send_booking_status_update, booking, item, status, notes)

    if notes and author is not None:
        try:
            db.session.add(BookingNote(booking_id=booking.id, content=notes, created_by=author.id))
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception("Failed to add status note to booking %s", booking.id, exc_info=exc)

    return booking


def add_booking_note(booking_id: int, content: str | None, author: User | None) -> BookingNote:
    if content is not None and not isinstance(content, str):
        raise ValidationError("Note content must be text")
    content = (content or "").strip()
    if not content:
        raise ValidationError("Note content is required")

    booking = db.session.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")

    note = BookingNote(booking_id=booking.id, content=content, created_by=author.id if author else None)
    db.session.add(note)
    db.session.commit()
    return note


def get_booking_detail(booking_id: int) -> dict[str, object]:
    booking = db.session.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")

    item = booking.item()
    data = booking.to_dict()
    data["item_title"] = item.title if item else None
    data["notes"] = [note.to_dict() for note in booking.notes]
    return data


def booking_query(status: str | None = None, booking_type: str | None = None, search: str | None = None):
    query = Booking.query
    if status:
        query = query.filter(Booking.status == status)
    if booking_type:
        query = query.filter(Booking.type == booking_type)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Booking.booking_number.ilike(pattern),
                Booking.customer_name.ilike(pattern),
                Booking.customer_email.ilike(pattern),
                Booking.customer_phone.ilike(pattern),
            )
        )
    return query


def get_booking_stats() -> dict[str, object]:
    today = _start_of_day(utc_now().date())
    week_start = today - timedelta(days=7)

    def _count(condition):
        return func.sum(case((condition, 1), else_=0))

    row = db.session.query(
        func.count(Booking.id),
        _count(Booking.status == "pending"),
        _count(Booking.status == "confirmed"),
        _count(Booking.status == "contacted"),
        _count(Booking.status == "completed"),
        _count(Booking.status == "cancelled"),
        func.sum(case((Booking.status != "cancelled", Booking.total_amount), else_=0)),
        _count(Booking.created_at >= today),
        _count(Booking.created_at >= week_start),
    ).one()

    keys = (
        "total_bookings",
        "pending_bookings",
        "confirmed_bookings",
        "contacted_bookings",
        "completed_bookings",
        "cancelled_bookings",
        "total_revenue",
        "today_bookings",
        "week_bookings",
    )
    stats = {key: (value or 0) for key, value in zip(keys, row)}
    stats["total_revenue"] = float(stats["total_revenue"])
    return stats
