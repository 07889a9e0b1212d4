"""Catalog routes: tours, services and the categories they share."""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError

from . import storage
from .audit import audited
from .auth import admin_required, optional_admin
from .errors import ConflictError, NotFoundError, ValidationError
from .extensions import db
from .helpers import (paginate, pagination_args, parse_bool, parse_float,
                      parse_int, parse_json_field, request_payload, slugify,
                      sort_clause)
from .models import (CATEGORY_TYPES, ITEM_STATUSES, MAX_GALLERY_PHOTOS,
                     Category, Service, Tour)

bp_catalog = Blueprint("catalog", __name__)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _uploaded_files(field: str) -> list:
    return [f for f in request.files.getlist(field) if f and f.filename]


def _unique_slug(model, base: str, exclude_id: int | None = None) -> str:
    base = slugify(base) or "item"
    candidate, suffix = base, 2
    while True:
        existing = model.query.filter_by(slug=candidate).first()
        if existing is None or existing.id == exclude_id:
            return candidate
        candidate = f"{base}-{suffix}"
        suffix += 1


def _resolve_slug(model, payload: dict, label: str, instance=None) -> str | None:
    """Explicit slugs must be free; generated ones get a numeric suffix on collision."""
    exclude_id = instance.id if instance is not None else None
    explicit = (payload.get("slug") or "").strip()
    if explicit:
        slug = slugify(explicit)
        existing = model.query.filter_by(slug=slug).first()
        if existing is not None and existing.id != exclude_id:
            raise ConflictError(f"{label} with this slug already exists")
        return slug
    if instance is None:
        return _unique_slug(model, payload.get("title") or "")
    return None


def _resolve_category(payload: dict, kind: str) -> tuple[bool, int | None]:
    """Return ``(present, category_id)`` from ``category_id`` or ``category`` (id or slug)."""
    key = "category_id" if "category_id" in payload else "category" if "category" in payload else None
    if key is None:
        return False, None
    raw = payload.get(key)
    if raw in (None, "", "null"):
        return True, None

    raw = str(raw).strip()
    category = db.session.get(Category, int(raw)) if raw.isdigit() else Category.query.filter_by(slug=raw).first()
    if category is None:
        raise ValidationError("Category not found")
    if category.type not in (kind, "both"):
        raise ValidationError(f"Category cannot be used for a {kind}")
    return True, category.id


def _category_filter(model, value: str):
    value = value.strip()
    if value.isdigit():
        return model.category_id == int(value)
    return model.category.has(Category.slug == value)


def _apply_common(item, payload: dict, text_fields: tuple[str, ...], kind: str) -> None:
    for field in text_fields:
        if field in payload:
            value = payload.get(field)
            setattr(item, field, value.strip() if isinstance(value, str) and value.strip() else None)

    if "price" in payload:
        price = parse_float(payload.get("price"), "price")
        if price is None or price < 0:
            raise ValidationError("Price must be a non-negative number")
        item.price = price

    if "status" in payload:
        status = payload.get("status")
        if status not in ITEM_STATUSES:
            raise ValidationError("Status must be active, inactive or draft")
        item.status = status

    if "featured" in payload:
        item.featured = parse_bool(payload.get("featured"))

    for field in ("included", "excluded"):
        if field in payload:
            setattr(item, field, parse_json_field(payload.get(field), []))

    present, category_id = _resolve_category(payload, kind)
    if present:
        item.category_id = category_id


def _require_title(payload: dict, instance=None) -> None:
    if instance is None or "title" in payload:
        if not (payload.get("title") or "").strip():
            raise ValidationError("Title is required")


def _visible_or_404(item, label: str):
    if item is None:
        raise NotFoundError(f"{label} not found")
    if item.status != "active" and optional_admin() is None:
        raise NotFoundError(f"{label} not found")
    return item


def _status_filter(query, model):
    """Public callers see active items only; admins may pass ``status`` (or ``all``)."""
    status = request.args.get("status")
    if optional_admin() is None:
        return query.filter(model.status == "active")
    if status and status != "all":
        return query.filter(model.status == status)
    return query


def _add_gallery_photos(item, folder: str) -> list[str]:
    files = _uploaded_files("gallery")
    if not files:
        raise ValidationError("No gallery photos provided")
    current = list(item.gallery or [])
    if len(current) + len(files) > MAX_GALLERY_PHOTOS:
        raise ValidationError(f"Maximum {MAX_GALLERY_PHOTOS} gallery photos allowed")

    item.gallery = current + storage.upload_images(files, folder)
    db.session.commit()
    return item.gallery


def _remove_gallery_photo(item, label: str) -> list[str]:
    url = request.args.get("url") or request_payload().get("url")
    current = list(item.gallery or [])
    if not url or url not in current:
        raise NotFoundError(f"Photo not found in {label} gallery")

    current.remove(url)
    item.gallery = current
    db.session.commit()
    storage.delete_image(url)
    return item.gallery


# ---------------------------------------------------------------------------
# Tours
# ---------------------------------------------------------------------------

TOUR_TEXT_FIELDS = ("title", "title_vi", "description", "description_vi", "duration", "location")


@bp_catalog.get("/tours")
def list_tours() -> tuple[dict[str, object], int]:
    """List tours with filters and pagination.
    ---
    tags:
      - Tours
    parameters:
      - name: location
        in: query
        type: string
      - name: category
        in: query
        type: string
        description: Category slug or id
      - name: minPrice
        in: query
        type: number
      - name: maxPrice
        in: query
        type: number
      - name: search
        in: query
        type: string
        description: Matches title, description and location
      - name: featured
        in: query
        type: boolean
      - name: status
        in: query
        type: string
        description: Admins only; ``all`` lists every status
    responses:
      200:
        description: Paginated tours
    """
    page, limit = pagination_args()
    query = _status_filter(Tour.query, Tour)

    location = (request.args.get("location") or "").strip()
    if location:
        query = query.filter(Tour.location.ilike(f"%{location}%"))
    category = request.args.get("category") or request.args.get("category_id")
    if category:
        query = query.filter(_category_filter(Tour, category))
    min_price = parse_float(request.args.get("minPrice"), "minPrice")
    if min_price is not None:
        query = query.filter(Tour.price >= min_price)
    max_price = parse_float(request.args.get("maxPrice"), "maxPrice")
    if max_price is not None:
        query = query.filter(Tour.price <= max_price)
    if request.args.get("featured") is not None:
        query = query.filter(Tour.featured.is_(parse_bool(request.args.get("featured"))))
    search = (request.args.get("search") or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Tour.title.ilike(pattern), Tour.description.ilike(pattern), Tour.location.ilike(pattern)))

    query = query.order_by(sort_clause(Tour, {"created_at", "price", "title", "updated_at"}, "created_at"), Tour.id.desc())
    items, pagination = paginate(query, page, limit)
    return jsonify({"success": True, "data": [t.to_dict() for t in items], "pagination": pagination}), 200


@bp_catalog.get("/tours/featured")
def featured_tours() -> tuple[dict[str, object], int]:
    """Return active featured tours, newest first (``limit`` defaults to 6)."""
    limit = min(max(parse_int(request.args.get("limit"), "limit", 6), 1), 50)
    tours = (
        Tour.query.filter(Tour.status == "active", Tour.featured.is_(True))
        .order_by(Tour.created_at.desc(), Tour.id.desc())
        .limit(limit)
        .all()
    )
    return jsonify({"success": True, "data": [t.to_dict() for t in tours]}), 200


@bp_catalog.get("/tours/stats")
@admin_required
def tour_stats() -> tuple[dict[str, object], int]:
    """Tour counts for the dashboard.
    ---
    tags:
      - Tours
    security:
      - Bearer: []
    responses:
      200:
        description: total, active, featured, byLocation and byCategory
    """
    by_location = (
        db.session.query(Tour.location, func.count(Tour.id))
        .group_by(Tour.location)
        .order_by(func.count(Tour.id).desc())
        .all()
    )
    by_category = (
        db.session.query(Category.name, func.count(Tour.id))
        .select_from(Tour)
        .outerjoin(Category, Tour.category_id == Category.id)
        .group_by(Category.name)
        .order_by(func.count(Tour.id).desc())
        .all()
    )
    return jsonify({
        "success": True,
        "data": {
            "total": Tour.query.count(),
            "active": Tour.query.filter_by(status="active").count(),
            "featured": Tour.query.filter(Tour.featured.is_(True)).count(),
            "byLocation": [{"location": loc, "count": count} for loc, count in by_location],
            "byCategory": [{"category": name, "count": count} for name, count in by_category],
        },
    }), 200


@bp_catalog.get("/tours/<int:tour_id>")
def get_tour(tour_id: int) -> tuple[dict[str, object], int]:
    tour = _visible_or_404(db.session.get(Tour, tour_id), "Tour")
    return jsonify({"success": True, "data": tour.to_dict()}), 200


@bp_catalog.get("/tours/<slug>")
def get_tour_by_slug(slug: str) -> tuple[dict[str, object], int]:
    tour = _visible_or_404(Tour.find_by_slug(slug), "Tour")
    return jsonify({"success": True, "data": tour.to_dict()}), 200


@bp_catalog.get("/tours/<int:tour_id>/availability")
def tour_availability(tour_id: int) -> tuple[dict[str, object], int]:
    """Static capacity check: does the group fit in ``max_participants``?
    ---
    tags:
      - Tours
    parameters:
      - name: participants
        in: query
        type: integer
        default: 1
    responses:
      200:
        description: available, price, totalPrice, maxParticipants
      404:
        description: Tour not found
    """
    tour = db.session.get(Tour, tour_id)
    if tour is None:
        raise NotFoundError("Tour not found")

    participants = parse_int(request.args.get("participants"), "participants", 1)
    if participants < 1:
        raise ValidationError("participants must be at least 1")

    # No capacity set means the tour is not capacity limited.
    available = tour.max_participants is None or tour.max_participants >= participants
    return jsonify({
        "success": True,
        "data": {
            "available": available,
            "price": tour.price,
            "totalPrice": tour.price * participants,
            "maxParticipants": tour.max_participants,
        },
    }), 200


@bp_catalog.post("/tours")
@admin_required
@audited("create", "tour")
def create_tour() -> tuple[dict[str, object], int]:
    """Create a tour from JSON or multipart form data (``images`` files, max 10).
    ---
    tags:
      - Tours
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
      - application/json
    responses:
      201:
        description: Tour created
      400:
        description: Invalid payload, duplicate slug or rejected image
    """
    payload = request_payload()
    _require_title(payload)
    if "price" not in payload:
        raise ValidationError("Price is required")

    tour = Tour(slug=_resolve_slug(Tour, payload, "Tour"))
    _apply_common(tour, payload, TOUR_TEXT_FIELDS, "tour")
    tour.max_participants = parse_int(payload.get("max_participants"), "max_participants")
    tour.itinerary = parse_json_field(payload.get("itinerary"), {})
    tour.images = parse_json_field(payload.get("images"), [])

    files = _uploaded_files("images")
    if len(files) > MAX_GALLERY_PHOTOS or len(tour.images or []) > MAX_GALLERY_PHOTOS:
        raise ValidationError(f"Maximum {MAX_GALLERY_PHOTOS} images allowed")
    if files:
        tour.images = storage.upload_images(files, "tours")

    try:
        db.session.add(tour)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        storage.delete_images(tour.images if files else [])
        current_app.logger.exception("Failed to create tour", exc_info=exc)
        return jsonify({"success": False, "message": "Error creating tour"}), 500

    return jsonify({"success": True, "message": "Tour created successfully", "data": tour.to_dict()}), 201


@bp_catalog.put("/tours/<int:tour_id>")
@admin_required
@audited("update", "tour")
def update_tour(tour_id: int) -> tuple[dict[str, object], int]:
    """Partially update a tour. Uploaded ``images`` replace the current ones."""
    tour = db.session.get(Tour, tour_id)
    if tour is None:
        raise NotFoundError("Tour not found")

    payload = request_payload()
    _require_title(payload, tour)
    slug = _resolve_slug(Tour, payload, "Tour", tour)
    if slug:
        tour.slug = slug
    _apply_common(tour, payload, TOUR_TEXT_FIELDS, "tour")
    if "max_participants" in payload:
        tour.max_participants = parse_int(payload.get("max_participants"), "max_participants")
    if "itinerary" in payload:
        tour.itinerary = parse_json_field(payload.get("itinerary"), {})

    old_images: list[str] = []
    files = _uploaded_files("images")
    if len(files) > MAX_GALLERY_PHOTOS:
        raise ValidationError(f"Maximum {MAX_GALLERY_PHOTOS} images allowed")
    if files:
        old_images = list(tour.images or [])
        tour.images = storage.upload_images(files, "tours")
    elif "images" in payload:
        images = parse_json_field(payload.get("images"), [])
        if len(images) > MAX_GALLERY_PHOTOS:
            raise ValidationError(f"Maximum {MAX_GALLERY_PHOTOS} images allowed")
        tour.images = images

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update tour %s", tour_id, exc_info=exc)
        return jsonify({"success": False, "message": "Error updating tour"}), 500

    storage.delete_images(old_images)
    return jsonify({"success": True, "message": "Tour updated successfully", "data": tour.to_dict()}), 200


@bp_catalog.delete("/tours/<int:tour_id>")
@admin_required
@audited("delete", "tour")
def delete_tour(tour_id: int) -> tuple[dict[str, object], int]:
    tour = db.session.get(Tour, tour_id)
    if tour is None:
        raise NotFoundError("Tour not found")

    images = list(tour.images or []) + list(tour.gallery or [])
    summary = {"id": tour.id, "title": tour.title}
    db.session.delete(tour)
    db.session.commit()

    storage.delete_images(images)
    return jsonify({"success": True, "message": "Tour deleted successfully", "data": summary}), 200


@bp_catalog.put("/tours/<int:tour_id>/gallery")
@admin_required
@audited("update", "tour")
def add_tour_gallery(tour_id: int) -> tuple[dict[str, object], int]:
    """Upload ``gallery`` photos (the gallery holds at most 10)."""
    tour = db.session.get(Tour, tour_id)
    if tour is None:
        raise NotFoundError("Tour not found")

    gallery = _add_gallery_photos(tour, "tours/gallery")
    return jsonify({
        "success": True,
        "message": "Gallery updated successfully",
        "data": {"id": tour.id, "title": tour.title, "gallery": gallery},
    }), 200


@bp_catalog.delete("/tours/<int:tour_id>/gallery")
@admin_required
@audited("update", "tour")
def delete_tour_gallery_photo(tour_id: int) -> tuple[dict[str, object], int]:
    tour = db.session.get(Tour, tour_id)
    if tour is None:
        raise NotFoundError("Tour not found")

    gallery = _remove_gallery_photo(tour, "tour")
    return jsonify({
        "success": True,
        "message": "Photo removed from gallery",
        "data": {"id": tour.id, "title": tour.title, "gallery": gallery},
    }), 200


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

SERVICE_TEXT_FIELDS = (
    "title", "title_vi", "subtitle", "subtitle_vi", "description", "description_vi", "duration", "service_type",
)


@bp_catalog.get("/services")
def list_services() -> tuple[dict[str, object], int]:
    """List services with filters and pagination.
    ---
    tags:
      - Services
    parameters:
      - name: category
        in: query
        type: string
      - name: serviceType
        in: query
        type: string
      - name: featured
        in: query
        type: boolean
      - name: search
        in: query
        type: string
        description: Matches title, subtitle and description
      - name: sortBy
        in: query
        type: string
        enum: [created_at, title, price, updated_at]
    responses:
      200:
        description: Paginated services
    """
    page, limit = pagination_args()
    query = _status_filter(Service.query, Service)

    category = request.args.get("category") or request.args.get("category_id")
    if category:
        query = query.filter(_category_filter(Service, category))
    service_type = request.args.get("serviceType") or request.args.get("service_type")
    if service_type:
        query = query.filter(Service.service_type == service_type)
    if request.args.get("featured") is not None:
        query = query.filter(Service.featured.is_(parse_bool(request.args.get("featured"))))
    search = (request.args.get("search") or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(Service.title.ilike(pattern), Service.subtitle.ilike(pattern), Service.description.ilike(pattern))
        )

    query = query.order_by(
        sort_clause(Service, {"created_at", "title", "price", "updated_at"}, "created_at"), Service.id.desc()
    )
    items, pagination = paginate(query, page, limit)
    return jsonify({"success": True, "data": [s.to_dict() for s in items], "pagination": pagination}), 200


@bp_catalog.get("/services/<int:service_id>")
def get_service(service_id: int) -> tuple[dict[str, object], int]:
    service = _visible_or_404(db.session.get(Service, service_id), "Service")
    return jsonify({"success": True, "data": service.to_dict()}), 200


@bp_catalog.get("/services/<slug>")
def get_service_by_slug(slug: str) -> tuple[dict[str, object], int]:
    service = _visible_or_404(Service.find_by_slug(slug), "Service")
    return jsonify({"success": True, "data": service.to_dict()}), 200


@bp_catalog.post("/services")
@admin_required
@audited("create", "service")
def create_service() -> tuple[dict[str, object], int]:
    """Create a service. An optional ``image`` file becomes its cover image.
    ---
    tags:
      - Services
    security:
      - Bearer: []
    responses:
      201:
        description: Service created
      400:
        description: Invalid payload, duplicate slug or rejected image
    """
    payload = request_payload()
    _require_title(payload)

    service = Service(slug=_resolve_slug(Service, payload, "Service"), price=0)
    _apply_common(service, payload, SERVICE_TEXT_FIELDS, "service")
    service.itinerary = parse_json_field(payload.get("itinerary"), [])
    service.image = payload.get("image") if isinstance(payload.get("image"), str) else None

    upload = request.files.get("image")
    if upload and upload.filename:
        service.image = storage.upload_image(upload, "services")

    try:
        db.session.add(service)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        if upload and upload.filename:
            storage.delete_image(service.image)
        current_app.logger.exception("Failed to create service", exc_info=exc)
        return jsonify({"success": False, "message": "Error creating service"}), 500

    return jsonify({"success": True, "message": "Service created successfully", "data": service.to_dict()}), 201


@bp_catalog.put("/services/<int:service_id>")
@admin_required
@audited("update", "service")
def update_service(service_id: int) -> tuple[dict[str, object], int]:
    service = db.session.get(Service, service_id)
    if service is None:
        raise NotFoundError("Service not found")

    payload = request_payload()
    _require_title(payload, service)
    slug = _resolve_slug(Service, payload, "Service", service)
    if slug:
        service.slug = slug
    _apply_common(service, payload, SERVICE_TEXT_FIELDS, "service")
    if "itinerary" in payload:
        service.itinerary = parse_json_field(payload.get("itinerary"), [])

    old_image = None
    upload = request.files.get("image")
    if upload and upload.filename:
        old_image = service.image
        service.image = storage.upload_image(upload, "services")
    elif "image" in payload:
        service.image = payload.get("image") or None

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update service %s", service_id, exc_info=exc)
        return jsonify({"success": False, "message": "Error updating service"}), 500

    if old_image:
        storage.delete_image(old_image)
    return jsonify({"success": True, "message": "Service updated successfully", "data": service.to_dict()}), 200


@bp_catalog.patch("/services/<int:service_id>/status")
@admin_required
@audited("update", "service")
def update_service_status(service_id: int) -> tuple[dict[str, object], int]:
    status = request_payload().get("status")
    if status not in ("active", "inactive"):
        raise ValidationError("Status must be active or inactive")

    service = db.session.get(Service, service_id)
    if service is None:
        raise NotFoundError("Service not found")

    service.status = status
    db.session.commit()
    return jsonify({"success": True, "message": "Service status updated successfully", "data": service.to_dict()}), 200


@bp_catalog.delete("/services/<int:service_id>")
@admin_required
@audited("delete", "service")
def delete_service(service_id: int) -> tuple[dict[str, object], int]:
    service = db.session.get(Service, service_id)
    if service is None:
        raise NotFoundError("Service not found")

    images = ([service.image] if service.image else []) + list(service.gallery or [])
    summary = {"id": service.id, "title": service.title}
    db.session.delete(service)
    db.session.commit()

    storage.delete_images(images)
    return jsonify({"success": True, "message": "Service deleted successfully", "data": summary}), 200


@bp_catalog.put("/services/<int:service_id>/gallery")
@admin_required
@audited("update", "service")
def add_service_gallery(service_id: int) -> tuple[dict[str, object], int]:
    service = db.session.get(Service, service_id)
    if service is None:
        raise NotFoundError("Service not found")

    gallery = _add_gallery_photos(service, "services/gallery")
    return jsonify({
        "success": True,
        "message": "Gallery updated successfully",
        "data": {"id": service.id, "title": service.title, "gallery": gallery},
    }), 200


@bp_catalog.delete("/services/<int:service_id>/gallery")
@admin_required
@audited("update", "service")
def delete_service_gallery_photo(service_id: int) -> tuple[dict[str, object], int]:
    service = db.session.get(Service, service_id)
    if service is None:
        raise NotFoundError("Service not found")

    gallery = _remove_gallery_photo(service, "service")
    return jsonify({
        "success": True,
        "message": "Photo removed from gallery",
        "data": {"id": service.id, "title": service.title, "gallery": gallery},
    }), 200


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


def _apply_category_fields(category: Category, payload: dict) -> None:
    for field in ("name", "name_vi", "description", "description_vi", "icon", "color"):
        if field in payload:
            value = payload.get(field)
            setattr(category, field, value.strip() if isinstance(value, str) and value.strip() else None)
    if "type" in payload:
        if payload.get("type") not in CATEGORY_TYPES:
            raise ValidationError("Type must be tour, service, or both")
        category.type = payload["type"]
    if "status" in payload:
        if payload.get("status") not in ("active", "inactive"):
            raise ValidationError("Status must be active or inactive")
        category.status = payload["status"]
    if "featured" in payload:
        category.featured = parse_bool(payload.get("featured"))
    if "sort_order" in payload:
        category.sort_order = parse_int(payload.get("sort_order"), "sort_order", 0)


@bp_catalog.get("/categories")
def list_categories() -> tuple[dict[str, object], int]:
    """List categories.
    ---
    tags:
      - Categories
    parameters:
      - name: type
        in: query
        type: string
        enum: [tour, service, both]
        description: tour / service also match categories of type both
      - name: status
        in: query
        type: string
        default: active
        description: ``all`` lists every status
      - name: sortBy
        in: query
        type: string
        enum: [sort_order, name, created_at]
        default: sort_order
    responses:
      200:
        description: Categories
    """
    query = Category.query
    category_type = request.args.get("type")
    if category_type:
        query = query.filter(or_(Category.type == category_type, Category.type == "both"))
    status = request.args.get("status", "active")
    if status != "all":
        query = query.filter(Category.status == status)

    query = query.order_by(
        sort_clause(Category, {"sort_order", "name", "created_at"}, "sort_order", "asc"), Category.id.asc()
    )
    return jsonify({"success": True, "data": [c.to_dict() for c in query.all()]}), 200


@bp_catalog.get("/categories/<int:category_id>")
def get_category(category_id: int) -> tuple[dict[str, object], int]:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    return jsonify({"success": True, "data": category.to_dict()}), 200


@bp_catalog.post("/categories")
@admin_required
@audited("create", "category")
def create_category() -> tuple[dict[str, object], int]:
    payload = request_payload()
    if not payload.get("name") or not payload.get("slug") or not payload.get("type"):
        raise ValidationError("Name, slug, and type are required")

    slug = slugify(payload["slug"])
    if Category.query.filter_by(slug=slug).first() is not None:
        raise ConflictError("Category with this slug already exists")

    category = Category(slug=slug)
    _apply_category_fields(category, payload)
    db.session.add(category)
    db.session.commit()
    return jsonify({"success": True, "message": "Category created successfully", "data": category.to_dict()}), 201


@bp_catalog.put("/categories/<int:category_id>")
@admin_required
@audited("update", "category")
def update_category(category_id: int) -> tuple[dict[str, object], int]:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")

    payload = request_payload()
    if "name" in payload and not payload.get("name"):
        raise ValidationError("Name cannot be empty")
    if payload.get("slug"):
        slug = slugify(payload["slug"])
        existing = Category.query.filter_by(slug=slug).first()
        if existing is not None and existing.id != category.id:
            raise ConflictError("Category with this slug already exists")
        category.slug = slug

    _apply_category_fields(category, payload)
    db.session.commit()
    return jsonify({"success": True, "message": "Category updated successfully", "data": category.to_dict()}), 200


@bp_catalog.get("/categories/<int:category_id>/usage")
@admin_required
def category_usage(category_id: int) -> tuple[dict[str, object], int]:
    """How many tours and services reference the category."""
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")

    usage = category.usage()
    return jsonify({"success": True, "data": {**usage, "canDelete": usage["total"] == 0}}), 200


@bp_catalog.delete("/categories/<int:category_id>")
@admin_required
@audited("delete", "category")
def delete_category(category_id: int) -> tuple[dict[str, object], int]:
    """Delete a category; with ``force=true`` its tours and services are detached first.
    ---
    tags:
      - Categories
    security:
      - Bearer: []
    parameters:
      - name: force
        in: query
        type: boolean
    responses:
      200:
        description: Category deleted
      400:
        description: Category still in use (usage breakdown included)
      404:
        description: Category not found
    """
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")

    usage = category.usage()
    if usage["total"] and not parse_bool(request.args.get("force")):
        return jsonify({
            "success": False,
            "message": "Cannot delete category that is being used by tours or services",
            "usage": usage,
        }), 400

    summary = {"id": category.id, "name": category.name}
    try:
        if usage["total"]:
            Tour.query.filter_by(category_id=category.id).update({"category_id": None})
            Service.query.filter_by(category_id=category.id).update({"category_id": None})
        db.session.delete(category)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete category %s", category_id, exc_info=exc)
        return jsonify({"success": False, "message": "Error deleting category"}), 500

    if usage["total"]:
        current_app.logger.info("Force deleted category %s, detached %d items", category_id, usage["total"])
    return jsonify({"success": True, "message": "Category deleted successfully", "data": summary}), 200


@bp_catalog.post("/categories/reorder")
@admin_required
@audited("update", "category")
def reorder_categories() -> tuple[dict[str, object], int]:
    """Set ``sort_order`` to the position (1-based) of each id in ``categories``."""
    categories = request_payload().get("categories")
    if not isinstance(categories, list):
        raise ValidationError("Categories must be an array")

    for position, entry in enumerate(categories, start=1):
        category_id = entry.get("id") if isinstance(entry, dict) else entry
        category = db.session.get(Category, parse_int(category_id, "id"))
        if category is not None:
            category.sort_order = position
    db.session.commit()
    return jsonify({"success": True, "message": "Categories reordered successfully"}), 200
