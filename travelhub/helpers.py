"""Request parsing helpers shared by the route modules."""
from __future__ import annotations

import json
import math
import re
import unicodedata

from flask import request

from .errors import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def request_payload() -> dict[str, object]:
    """Return the request body as a dict, whether it was sent as JSON or as a form."""
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


def parse_json_field(value, default):
    """Decode a JSON-valued form field, falling back to ``default`` on bad input.

    Values that already arrived decoded (JSON request bodies) pass through.
    """
    if value is None or value == "":
        return default
    if isinstance(value, (list, dict)):
        return value
    try:
        decoded = json.loads(value)
    except (TypeError, ValueError):
        return default
    if not isinstance(decoded, type(default)):
        return default
    return decoded


def parse_bool(value, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def parse_int(value, field: str, default: int | None = None) -> int | None:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be an integer") from exc


def parse_float(value, field: str, default: float | None = None) -> float | None:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be a number") from exc


def slugify(text: str) -> str:
    """Lower-case ASCII slug with accents stripped ("Hạ Long Bay" -> "ha-long-bay")."""
    normalized = unicodedata.normalize("NFKD", (text or "").replace("đ", "d").replace("Đ", "D"))
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii").lower()
    return re.sub(r"[^a-z0-9]+", "-", ascii_text).strip("-")


def pagination_args(default_limit: int = DEFAULT_PAGE_SIZE) -> tuple[int, int]:
    page = max(parse_int(request.args.get("page"), "page", 1) or 1, 1)
    limit = parse_int(request.args.get("limit"), "limit", default_limit) or default_limit
    return page, min(max(limit, 1), MAX_PAGE_SIZE)


def paginate(query, page: int, limit: int) -> tuple[list, dict[str, int]]:
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }


def sort_clause(model, allowed: set[str], default: str, default_order: str = "desc"):
    """Translate ``sortBy``/``sortOrder`` query args into an ORDER BY clause."""
    sort_by = request.args.get("sortBy", default)
    if sort_by not in allowed:
        sort_by = default
    column = getattr(model, sort_by)
    if request.args.get("sortOrder", default_order).lower() == "asc":
        return column.asc()
    return column.desc()
