"""Database models for the TravelHub backend."""
from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

from werkzeug.security import check_password_hash, generate_password_hash

from .extensions import db

BOOKING_STATUSES = ("pending", "confirmed", "contacted", "completed", "cancelled")
ITEM_STATUSES = ("active", "inactive", "draft")
CATEGORY_TYPES = ("tour", "service", "both")
MAX_GALLERY_PHOTOS = 10


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _iso(value) -> str | None:
    return value.isoformat() if value else None


class User(db.Model):
    """Admin account. The bootstrap super admin is flagged with is_super_admin."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(30))
    role = db.Column(db.String(20), nullable=False, default="admin", server_default="admin")
    is_super_admin = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    is_active = db.Column(db.Boolean, nullable=False, default=True, server_default="1")
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    last_login_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return bool(self.password_hash) and check_password_hash(self.password_hash, password)

    @property
    def computed_role(self) -> str:
        return "super_admin" if self.is_super_admin else "admin"

    @classmethod
    def find_active_admin(cls, email: str) -> "User | None":
        return cls.query.filter_by(email=(email or "").strip().lower(), role="admin", is_active=True).first()

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "computed_role": self.computed_role,
            "is_super_admin": bool(self.is_super_admin),
            "is_active": bool(self.is_active),
            "created_by": self.created_by,
            "last_login_at": _iso(self.last_login_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class PasswordResetToken(db.Model):
    """Single-use password reset token, valid for a limited time."""

    __tablename__ = "password_reset_tokens"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token = db.Column(db.String(128), unique=True, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    used = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    user = db.relationship("User")

    @classmethod
    def new_for(cls, user_id: int, ttl_minutes: int = 60) -> "PasswordResetToken":
        return cls(
            user_id=user_id,
            token=secrets.token_hex(32),
            expires_at=utc_now() + timedelta(minutes=ttl_minutes),
        )

    @classmethod
    def find_valid(cls, token: str) -> "PasswordResetToken | None":
        if not token:
            return None
        return cls.query.filter(
            cls.token == token,
            cls.used.is_(False),
            cls.expires_at > utc_now(),
        ).first()


class Category(db.Model):
    """Classification shared by tours and services."""

    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    name_vi = db.Column(db.String(150))
    slug = db.Column(db.String(150), unique=True, nullable=False)
    description = db.Column(db.Text)
    description_vi = db.Column(db.Text)
    type = db.Column(db.String(20), nullable=False, default="both")
    icon = db.Column(db.String(100))
    color = db.Column(db.String(30))
    status = db.Column(db.String(20), nullable=False, default="active")
    featured = db.Column(db.Boolean, nullable=False, default=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def usage(self) -> dict[str, int]:
        tours = Tour.query.filter_by(category_id=self.id).count()
        services = Service.query.filter_by(category_id=self.id).count()
        return {"tours": tours, "services": services, "total": tours + services}

    def to_summary(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "icon": self.icon,
            "color": self.color,
        }

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "name_vi": self.name_vi,
            "slug": self.slug,
            "description": self.description,
            "description_vi": self.description_vi,
            "type": self.type,
            "icon": self.icon,
            "color": self.color,
            "status": self.status,
            "featured": bool(self.featured),
            "sort_order": self.sort_order,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Tour(db.Model):
    """A sellable tour package."""

    __tablename__ = "tours"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    title_vi = db.Column(db.String(255))
    slug = db.Column(db.String(255), unique=True, nullable=False)
    description = db.Column(db.Text)
    description_vi = db.Column(db.Text)
    price = db.Column(db.Float, nullable=False, default=0)
    duration = db.Column(db.String(100))
    location = db.Column(db.String(255))
    max_participants = db.Column(db.Integer)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True)
    # JSON columns are serialized to text by the JSON type on SQLite.
    images = db.Column(db.JSON, nullable=False, default=list)
    gallery = db.Column(db.JSON, nullable=False, default=list)
    itinerary = db.Column(db.JSON, nullable=False, default=dict)
    included = db.Column(db.JSON, nullable=False, default=list)
    excluded = db.Column(db.JSON, nullable=False, default=list)
    status = db.Column(db.String(20), nullable=False, default="active")
    featured = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    category = db.relationship("Category")

    @classmethod
    def find_by_slug(cls, slug: str) -> "Tour | None":
        return cls.query.filter_by(slug=slug).first()

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "title_vi": self.title_vi,
            "slug": self.slug,
            "description": self.description,
            "description_vi": self.description_vi,
            "price": self.price,
            "duration": self.duration,
            "location": self.location,
            "max_participants": self.max_participants,
            "category_id": self.category_id,
            "category": self.category.to_summary() if self.category else None,
            "images": list(self.images or []),
            "image_url": (self.images or [None])[0],
            "gallery": list(self.gallery or []),
            "itinerary": self.itinerary if self.itinerary is not None else {},
            "included": list(self.included or []),
            "excluded": list(self.excluded or []),
            "status": self.status,
            "featured": bool(self.featured),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Service(db.Model):
    """A sellable service (car rental, visa support, transfers, ...)."""

    __tablename__ = "services"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    title_vi = db.Column(db.String(255))
    subtitle = db.Column(db.String(255))
    subtitle_vi = db.Column(db.String(255))
    slug = db.Column(db.String(255), unique=True, nullable=False)
    description = db.Column(db.Text)
    description_vi = db.Column(db.Text)
    price = db.Column(db.Float, nullable=False, default=0)
    duration = db.Column(db.String(100))
    service_type = db.Column(db.String(50))
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True)
    image = db.Column(db.String(500))
    gallery = db.Column(db.JSON, nullable=False, default=list)
    itinerary = db.Column(db.JSON, nullable=False, default=list)
    included = db.Column(db.JSON, nullable=False, default=list)
    excluded = db.Column(db.JSON, nullable=False, default=list)
    status = db.Column(db.String(20), nullable=False, default="active")
    featured = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    category = db.relationship("Category")

    @classmethod
    def find_by_slug(cls, slug: str) -> "Service | None":
        return cls.query.filter_by(slug=slug).first()

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "title_vi": self.title_vi,
            "subtitle": self.subtitle,
            "subtitle_vi": self.subtitle_vi,
            "slug": self.slug,
            "description": self.description,
            "description_vi": self.description_vi,
            "price": self.price,
            "duration": self.duration,
            "service_type": self.service_type,
            "category_id": self.category_id,
            "category": self.category.to_summary() if self.category else None,
            "image": self.image,
            "gallery": list(self.gallery or []),
            "itinerary": self.itinerary if self.itinerary is not None else [],
            "included": list(self.included or []),
            "excluded": list(self.excluded or []),
            "status": self.status,
            "featured": bool(self.featured),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Booking(db.Model):
    """A customer's request to reserve a tour or a service (no account needed)."""

    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(20), nullable=False)
    item_id = db.Column(db.Integer, nullable=False)
    booking_number = db.Column(db.String(40), unique=True, nullable=False)

    customer_name = db.Column(db.String(150), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(50), nullable=False)

    start_date = db.Column(db.Date, nullable=False)
    adults = db.Column(db.Integer, nullable=False, default=0)
    children = db.Column(db.Integer, nullable=False, default=0)
    infants = db.Column(db.Integer, nullable=False, default=0)
    total_travelers = db.Column(db.Integer, nullable=False)
    total_amount = db.Column(db.Float, nullable=False)
    currency = db.Column(db.String(10), nullable=False, default="USD")
    status = db.Column(db.String(20), nullable=False, default="pending", server_default="pending")
    special_requests = db.Column(db.Text)

    emergency_contact_name = db.Column(db.String(150))
    emergency_contact_phone = db.Column(db.String(50))
    emergency_contact_relationship = db.Column(db.String(50))

    gender = db.Column(db.String(20))
    date_of_birth = db.Column(db.Date)
    address = db.Column(db.String(500))

    # Service bookings (transfers, car rental) carry a route.
    departure_location = db.Column(db.String(255))
    destination_location = db.Column(db.String(255))
    return_trip = db.Column(db.Boolean, nullable=False, default=False)
    return_date = db.Column(db.Date)

    contacted_at = db.Column(db.DateTime)
    confirmed_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    notes = db.relationship(
        "BookingNote",
        back_populates="booking",
        order_by=lambda: (BookingNote.created_at.desc(), BookingNote.id.desc()),
        lazy="dynamic",
    )

    @classmethod
    def find_by_number(cls, booking_number: str) -> "Booking | None":
        return cls.query.filter_by(booking_number=booking_number).first()

    @classmethod
    def find_by_status(cls, status: str) -> list["Booking"]:
        return cls.query.filter_by(status=status).order_by(cls.created_at.desc()).all()

    def item(self) -> "Tour | Service | None":
        model = Tour if self.type == "tour" else Service
        return db.session.get(model, self.item_id)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "type": self.type,
            "item_id": self.item_id,
            "booking_number": self.booking_number,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "start_date": _iso(self.start_date),
            "adults": self.adults,
            "children": self.children,
            "infants": self.infants,
            "total_travelers": self.total_travelers,
            "total_amount": self.total_amount,
            "currency": self.currency,
            "status": self.status,
            "special_requests": self.special_requests,
            "emergency_contact_name": self.emergency_contact_name,
            "emergency_contact_phone": self.emergency_contact_phone,
            "emergency_contact_relationship": self.emergency_contact_relationship,
            "gender": self.gender,
            "date_of_birth": _iso(self.date_of_birth),
            "address": self.address,
            "departure_location": self.departure_location,
            "destination_location": self.destination_location,
            "return_trip": bool(self.return_trip),
            "return_date": _iso(self.return_date),
            "contacted_at": _iso(self.contacted_at),
            "confirmed_at": _iso(self.confirmed_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class BookingNote(db.Model):
    """Append-only admin annotation on a booking."""

    __tablename__ = "booking_notes"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    booking = db.relationship("Booking", back_populates="notes")
    author = db.relationship("User")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "content": self.content,
            "created_by": self.created_by,
            "created_by_name": self.author.name if self.author else None,
            "created_at": _iso(self.created_at),
        }


class Content(db.Model):
    """Keyed site content block (hero images, about text, settings)."""

    __tablename__ = "content"

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(150), unique=True, nullable=False)
    title = db.Column(db.String(255), nullable=False)
    title_vi = db.Column(db.String(255))
    content = db.Column(db.Text)
    content_vi = db.Column(db.Text)
    type = db.Column(db.String(50), nullable=False, default="setting")
    status = db.Column(db.String(20), nullable=False, default="active")
    image_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "key": self.key,
            "title": self.title,
            "title_vi": self.title_vi,
            "content": self.content,
            "content_vi": self.content_vi,
            "type": self.type,
            "status": self.status,
            "image_url": self.image_url,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class SocialLink(db.Model):
    __tablename__ = "social_links"

    id = db.Column(db.Integer, primary_key=True)
    platform = db.Column(db.String(50), nullable=False)
    url = db.Column(db.String(500), nullable=False)
    display_text = db.Column(db.String(150))
    icon = db.Column(db.String(100))
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "platform": self.platform,
            "url": self.url,
            "display_text": self.display_text,
            "icon": self.icon,
            "is_active": bool(self.is_active),
            "sort_order": self.sort_order,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


DEFAULT_BUSINESS_HOURS = {
    "monday": "8:00 - 18:00",
    "tuesday": "8:00 - 18:00",
    "wednesday": "8:00 - 18:00",
    "thursday": "8:00 - 18:00",
    "friday": "8:00 - 18:00",
    "saturday": "8:00 - 17:00",
    "sunday": "Closed",
}


class ContactInfo(db.Model):
    """Company contact details shown on the public site. Only the newest row is used."""

    __tablename__ = "contact_info"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(50), nullable=False)
    address = db.Column(db.Text, nullable=False)
    business_hours = db.Column(db.JSON)
    google_map_link = db.Column(db.String(1000), nullable=False, default="")
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    @classmethod
    def latest(cls) -> ContactInfo | None:
        return cls.query.order_by(cls.id.desc()).first()

    @classmethod
    def default(cls) -> ContactInfo:
        return cls(
            email="info@travelworld.vn",
            phone="+84 123 456 789",
            address="123 Đường Du Lịch, Quận 1, Thành phố Hồ Chí Minh, Việt Nam",
            business_hours=dict(DEFAULT_BUSINESS_HOURS),
            google_map_link="https://www.google.com/maps/embed?pb=!1m18!1m12!1m3!1d3919.4326!2d106.6297!3d10.8231",
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "business_hours": self.business_hours or {},
            "google_map_link": self.google_map_link or "",
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class EmailSetting(db.Model):
    """Key/value email configuration editable from the admin panel."""

    __tablename__ = "email_settings"

    id = db.Column(db.Integer, primary_key=True)
    setting_key = db.Column(db.String(100), unique=True, nullable=False)
    setting_value = db.Column(db.Text)
    description = db.Column(db.String(255), nullable=False, default="")
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)


class ActivityLog(db.Model):
    """Append-only audit trail of admin mutations."""

    __tablename__ = "activity_logs"

    id = db.Column(db.Integer, primary_key=True)
    admin_id = db.Column(db.Integer, nullable=False)
    admin_name = db.Column(db.String(100))
    admin_email = db.Column(db.String(255))
    action_type = db.Column(db.String(20), nullable=False)
    resource_type = db.Column(db.String(50), nullable=False)
    resource_id = db.Column(db.String(64))
    resource_name = db.Column(db.String(255))
    changes = db.Column(db.JSON, nullable=True)
    ip_address = db.Column(db.String(64))
    user_agent = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now, index=True)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "admin_id": self.admin_id,
            "admin_name": self.admin_name,
            "admin_email": self.admin_email,
            "action_type": self.action_type,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "resource_name": self.resource_name,
            "changes": self.changes,
            "ip_address": self.ip_address,
            "created_at": _iso(self.created_at),
        }
