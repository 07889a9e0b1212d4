"""Tests for the category routes: CRUD, usage, forced delete and reorder."""
from __future__ import annotations

from travelhub.extensions import db
from travelhub.models import ActivityLog, Category, Service, Tour


def _category(name: str, slug: str, *, type_: str = "tour", status: str = "active", sort_order: int = 0) -> Category:
    category = Category(name=name, slug=slug, type=type_, status=status, sort_order=sort_order)
    db.session.add(category)
    db.session.commit()
    return category


def test_list_filters_type_and_includes_both(client, category):
    _category("Beach", "beach", type_="tour", sort_order=2)
    _category("Visa", "visa", type_="service", sort_order=3)

    response = client.get("/categories?type=tour")
    slugs = [c["slug"] for c in response.get_json()["data"]]

    assert response.status_code == 200
    assert slugs == ["domestic", "beach"]


def test_list_hides_inactive_unless_status_all(client, category):
    _category("Archived", "archived", status="inactive", sort_order=5)

    default = [c["slug"] for c in client.get("/categories").get_json()["data"]]
    everything = [c["slug"] for c in client.get("/categories?status=all").get_json()["data"]]

    assert default == ["domestic"]
    assert everything == ["domestic", "archived"]


def test_get_category_404(client):
    response = client.get("/categories/999")

    assert response.status_code == 404
    assert response.get_json()["message"] == "Category not found"


def test_create_category(client, auth_headers):
    response = client.post(
        "/categories",
        json={"name": "Adventure", "slug": "adventure", "type": "tour", "color": "#ff0000"},
        headers=auth_headers,
    )
    data = response.get_json()

    assert response.status_code == 201
    assert data["data"]["slug"] == "adventure"
    assert data["data"]["type"] == "tour"
    assert ActivityLog.query.filter_by(action_type="create", resource_type="category").count() == 1


def test_create_category_requires_fields(client, auth_headers):
    response = client.post("/categories", json={"name": "Adventure"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json()["message"] == "Name, slug, and type are required"


def test_create_category_rejects_bad_type(client, auth_headers):
    response = client.post(
        "/categories", json={"name": "Odd", "slug": "odd", "type": "cruise"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.get_json()["message"] == "Type must be tour, service, or both"


def test_create_category_duplicate_slug(client, auth_headers, category):
    response = client.post(
        "/categories", json={"name": "Domestic 2", "slug": "domestic", "type": "tour"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.get_json()["message"] == "Category with this slug already exists"


def test_create_category_requires_admin(client):
    response = client.post("/categories", json={"name": "A", "slug": "a", "type": "tour"})

    assert response.status_code == 401


def test_update_category(client, auth_headers, category):
    response = client.put(
        f"/categories/{category.id}", json={"name": "Domestic Trips", "featured": True}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.get_json()["data"]["name"] == "Domestic Trips"
    assert db.session.get(Category, category.id).featured is True


def test_usage_and_guarded_delete(client, auth_headers, category, tour, service):
    tour.category_id = category.id
    service.category_id = category.id
    db.session.commit()

    usage = client.get(f"/categories/{category.id}/usage", headers=auth_headers).get_json()["data"]
    assert usage == {"tours": 1, "services": 1, "total": 2, "canDelete": False}

    blocked = client.delete(f"/categories/{category.id}", headers=auth_headers)
    assert blocked.status_code == 400
    assert blocked.get_json()["usage"]["total"] == 2
    assert db.session.get(Category, category.id) is not None


def test_forced_delete_detaches_items(client, auth_headers, category, tour, service):
    tour.category_id = category.id
    service.category_id = category.id
    db.session.commit()
    category_id, tour_id, service_id = category.id, tour.id, service.id

    response = client.delete(f"/categories/{category_id}?force=true", headers=auth_headers)

    assert response.status_code == 200
    db.session.expire_all()
    assert db.session.get(Category, category_id) is None
    assert db.session.get(Tour, tour_id).category_id is None
    assert db.session.get(Service, service_id).category_id is None


def test_delete_unused_category(client, auth_headers, category):
    response = client.delete(f"/categories/{category.id}", headers=auth_headers)

    assert response.status_code == 200
    assert response.get_json()["data"] == {"id": category.id, "name": "Domestic"}


def test_reorder_categories(client, auth_headers, category):
    second = _category("Beach", "beach", sort_order=7)

    response = client.post(
        "/categories/reorder", json={"categories": [second.id, {"id": category.id}]}, headers=auth_headers
    )

    assert response.status_code == 200
    assert db.session.get(Category, second.id).sort_order == 1
    assert db.session.get(Category, category.id).sort_order == 2


def test_reorder_requires_array(client, auth_headers):
    response = client.post("/categories/reorder", json={"categories": "nope"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json()["message"] == "Categories must be an array"


def test_forced_delete_removes_category_from_list(client, auth_headers, category, tour):
    tour.category_id = category.id
    db.session.commit()

    client.delete(f"/categories/{category.id}?force=true", headers=auth_headers)

    assert client.get("/categories?status=all").get_json()["data"] == []
