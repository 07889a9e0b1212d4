"""Tests for the tour routes: listing, visibility, availability, CRUD and gallery."""
from __future__ import annotations

import json
from io import BytesIO

from travelhub.extensions import db
from travelhub.models import Category, Tour

CDN = "https://cdn.travelcompany.test"


def _image(name: str = "photo.png", mimetype: str = "image/png", size: int = 64):
    return (BytesIO(b"\x89PNG" + b"0" * size), name, mimetype)


def _tour(title: str, slug: str, **fields) -> Tour:
    values = {"price": 100.0, "location": "Hanoi", "status": "active", "images": [], "gallery": []}
    values.update(fields)
    item = Tour(title=title, slug=slug, **values)
    db.session.add(item)
    db.session.commit()
    return item


def test_public_list_only_active(client, tour):
    _tour("Draft Tour", "draft-tour", status="draft")

    response = client.get("/tours")
    data = response.get_json()

    assert response.status_code == 200
    assert [t["slug"] for t in data["data"]] == ["ha-long-bay-cruise"]
    assert data["pagination"]["total"] == 1


def test_admin_list_can_see_all_statuses(client, auth_headers, tour):
    _tour("Draft Tour", "draft-tour", status="draft")

    everything = client.get("/tours?status=all", headers=auth_headers).get_json()
    drafts = client.get("/tours?status=draft", headers=auth_headers).get_json()

    assert everything["pagination"]["total"] == 2
    assert [t["slug"] for t in drafts["data"]] == ["draft-tour"]


def test_list_filters(client, tour):
    _tour("Sapa Trek", "sapa-trek", price=300.0, location="Lao Cai", featured=True)

    by_price = client.get("/tours?minPrice=200").get_json()["data"]
    by_location = client.get("/tours?location=quang").get_json()["data"]
    by_search = client.get("/tours?search=trek").get_json()["data"]
    featured = client.get("/tours?featured=true").get_json()["data"]

    assert [t["slug"] for t in by_price] == ["sapa-trek"]
    assert [t["slug"] for t in by_location] == ["ha-long-bay-cruise"]
    assert [t["slug"] for t in by_search] == ["sapa-trek"]
    assert [t["slug"] for t in featured] == ["sapa-trek"]


def test_list_sorted_by_price(client, tour):
    _tour("Sapa Trek", "sapa-trek", price=300.0)
    _tour("Street Food", "street-food", price=20.0)

    data = client.get("/tours?sortBy=price&sortOrder=asc").get_json()["data"]

    assert [t["price"] for t in data] == [20.0, 150.0, 300.0]


def test_list_filters_by_category_slug(client, tour, category):
    tour.category_id = category.id
    db.session.commit()
    _tour("Sapa Trek", "sapa-trek")

    data = client.get("/tours?category=domestic").get_json()["data"]

    assert [t["slug"] for t in data] == ["ha-long-bay-cruise"]
    assert data[0]["category"]["slug"] == "domestic"


def test_featured_tours(client, tour):
    _tour("Sapa Trek", "sapa-trek", featured=True)
    _tour("Hidden", "hidden", featured=True, status="inactive")

    data = client.get("/tours/featured").get_json()["data"]

    assert [t["slug"] for t in data] == ["sapa-trek"]


def test_get_tour_by_id_and_slug(client, tour):
    by_id = client.get(f"/tours/{tour.id}")
    by_slug = client.get("/tours/ha-long-bay-cruise")

    assert by_id.status_code == by_slug.status_code == 200
    assert by_id.get_json()["data"]["id"] == by_slug.get_json()["data"]["id"] == tour.id


def test_inactive_tour_hidden_from_public(client, auth_headers):
    hidden = _tour("Hidden", "hidden", status="inactive")

    assert client.get(f"/tours/{hidden.id}").status_code == 404
    assert client.get("/tours/hidden").status_code == 404
    assert client.get(f"/tours/{hidden.id}", headers=auth_headers).status_code == 200


def test_availability(client, tour):
    fits = client.get(f"/tours/{tour.id}/availability?participants=4").get_json()["data"]
    too_many = client.get(f"/tours/{tour.id}/availability?participants=13").get_json()["data"]

    assert fits == {"available": True, "price": 150.0, "totalPrice": 600.0, "maxParticipants": 12}
    assert too_many["available"] is False


def test_availability_without_capacity_is_unlimited(client):
    open_tour = _tour("Open Tour", "open-tour", max_participants=None)

    data = client.get(f"/tours/{open_tour.id}/availability?participants=500").get_json()["data"]

    assert data["available"] is True


def test_availability_rejects_zero_participants(client, tour):
    assert client.get(f"/tours/{tour.id}/availability?participants=0").status_code == 400
    assert client.get("/tours/999/availability").status_code == 404


def test_tour_stats(client, auth_headers, tour):
    _tour("Sapa Trek", "sapa-trek", featured=True, status="draft")

    data = client.get("/tours/stats", headers=auth_headers).get_json()["data"]

    assert data["total"] == 2
    assert data["active"] == 1
    assert data["featured"] == 1


def test_create_tour_json_generates_slug(client, auth_headers):
    response = client.post(
        "/tours",
        json={
            "title": "Hạ Long Bay Cruise",
            "price": 199,
            "location": "Quang Ninh",
            "itinerary": {"day1": "Boarding"},
            "included": ["Meals"],
        },
        headers=auth_headers,
    )
    data = response.get_json()["data"]

    assert response.status_code == 201
    assert data["slug"] == "ha-long-bay-cruise"
    assert data["itinerary"] == {"day1": "Boarding"}
    assert data["included"] == ["Meals"]


def test_create_tour_generated_slug_gets_suffix(client, auth_headers, tour):
    response = client.post("/tours", json={"title": "Ha Long Bay Cruise", "price": 99}, headers=auth_headers)

    assert response.get_json()["data"]["slug"] == "ha-long-bay-cruise-2"


def test_create_tour_explicit_duplicate_slug(client, auth_headers, tour):
    response = client.post(
        "/tours", json={"title": "Another", "slug": "ha-long-bay-cruise", "price": 99}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.get_json()["message"] == "Tour with this slug already exists"


def test_create_tour_validation(client, auth_headers):
    no_title = client.post("/tours", json={"price": 10}, headers=auth_headers)
    negative = client.post("/tours", json={"title": "Cheap", "price": -1}, headers=auth_headers)
    bad_status = client.post("/tours", json={"title": "Odd", "price": 1, "status": "archived"}, headers=auth_headers)

    assert no_title.get_json()["message"] == "Title is required"
    assert negative.get_json()["message"] == "Price must be a non-negative number"
    assert bad_status.status_code == 400


def test_create_tour_rejects_service_category(client, auth_headers):
    visa = _service_category()

    response = client.post(
        "/tours", json={"title": "Trip", "price": 10, "category_id": visa.id}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.get_json()["message"] == "Category cannot be used for a tour"


def _service_category():
    visa = Category(name="Visa", slug="visa", type="service", status="active")
    db.session.add(visa)
    db.session.commit()
    return visa


def test_create_tour_with_images(client, auth_headers, fake_s3):
    response = client.post(
        "/tours",
        data={"title": "Mekong Delta", "price": "80", "images": [_image("a.png"), _image("b.jpg", "image/jpeg")]},
        headers=auth_headers,
        content_type="multipart/form-data",
    )
    data = response.get_json()["data"]

    assert response.status_code == 201
    assert len(data["images"]) == 2
    assert data["image_url"] == data["images"][0]
    assert all(url.startswith(f"{CDN}/tours/") for url in data["images"])
    assert len(fake_s3.uploads) == 2


def test_create_tour_rejects_bad_image_type(client, auth_headers, fake_s3):
    response = client.post(
        "/tours",
        data={"title": "Mekong Delta", "price": "80", "images": [_image("notes.txt", "text/plain")]},
        headers=auth_headers,
        content_type="multipart/form-data",
    )

    assert response.status_code == 400
    assert response.get_json()["message"] == "Invalid file type. Only JPEG, PNG, and WebP are allowed."
    assert fake_s3.uploads == {}
    assert Tour.query.count() == 0


def test_update_tour_replaces_images(client, auth_headers, tour, fake_s3):
    tour.images = [f"{CDN}/tours/old.png"]
    db.session.commit()

    response = client.put(
        f"/tours/{tour.id}",
        data={"price": "175", "images": [_image()]},
        headers=auth_headers,
        content_type="multipart/form-data",
    )
    data = response.get_json()["data"]

    assert response.status_code == 200
    assert data["price"] == 175.0
    assert data["images"] != [f"{CDN}/tours/old.png"]
    assert fake_s3.deleted == ["tours/old.png"]


def test_update_tour_404(client, auth_headers):
    assert client.put("/tours/999", json={"price": 1}, headers=auth_headers).status_code == 404


def test_delete_tour_removes_images(client, auth_headers, tour, fake_s3):
    tour.images = [f"{CDN}/tours/cover.png"]
    tour.gallery = [f"{CDN}/tours/gallery/one.png"]
    db.session.commit()
    tour_id = tour.id

    response = client.delete(f"/tours/{tour_id}", headers=auth_headers)

    assert response.status_code == 200
    assert response.get_json()["data"] == {"id": tour_id, "title": "Ha Long Bay Cruise"}
    assert db.session.get(Tour, tour_id) is None
    assert sorted(fake_s3.deleted) == ["tours/cover.png", "tours/gallery/one.png"]


def test_gallery_add_and_remove(client, auth_headers, tour, fake_s3):
    added = client.put(
        f"/tours/{tour.id}/gallery",
        data={"gallery": [_image("one.png"), _image("two.png")]},
        headers=auth_headers,
        content_type="multipart/form-data",
    )
    gallery = added.get_json()["data"]["gallery"]
    assert added.status_code == 200
    assert len(gallery) == 2

    removed = client.delete(f"/tours/{tour.id}/gallery", query_string={"url": gallery[0]}, headers=auth_headers)
    assert removed.status_code == 200
    assert removed.get_json()["data"]["gallery"] == gallery[1:]
    assert len(fake_s3.deleted) == 1


def test_gallery_limit(client, auth_headers, tour):
    tour.gallery = [f"{CDN}/tours/gallery/{i}.png" for i in range(9)]
    db.session.commit()

    response = client.put(
        f"/tours/{tour.id}/gallery",
        data={"gallery": [_image("a.png"), _image("b.png")]},
        headers=auth_headers,
        content_type="multipart/form-data",
    )

    assert response.status_code == 400
    assert response.get_json()["message"] == "Maximum 10 gallery photos allowed"


def test_gallery_remove_unknown_photo(client, auth_headers, tour):
    response = client.delete(
        f"/tours/{tour.id}/gallery", query_string={"url": f"{CDN}/missing.png"}, headers=auth_headers
    )

    assert response.status_code == 404
    assert response.get_json()["message"] == "Photo not found in tour gallery"


def test_images_list_round_trip(client, auth_headers):
    created = client.post(
        "/tours", json={"title": "Hue Citadel", "price": 45, "images": ["a.jpg", "b.jpg"]}, headers=auth_headers
    ).get_json()["data"]

    fetched = client.get(f"/tours/{created['id']}").get_json()["data"]

    assert fetched["images"] == ["a.jpg", "b.jpg"]


def test_images_form_field_is_json_decoded(client, auth_headers):
    response = client.post(
        "/tours", data={"title": "Hue Citadel", "price": "45", "images": '["a.jpg", "b.jpg"]'}, headers=auth_headers
    )

    assert response.get_json()["data"]["images"] == ["a.jpg", "b.jpg"]


def test_create_tour_rejects_too_many_image_urls(client, auth_headers):
    images = [f"https://example.com/{n}.jpg" for n in range(11)]

    response = client.post("/tours", json={"title": "Hue Citadel", "price": 45, "images": images}, headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json()["message"] == "Maximum 10 images allowed"
    assert Tour.query.count() == 0


def test_update_tour_rejects_too_many_image_urls(client, auth_headers, tour):
    images = [f"https://example.com/{n}.jpg" for n in range(11)]

    response = client.put(f"/tours/{tour.id}", data={"images": json.dumps(images)}, headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json()["message"] == "Maximum 10 images allowed"
    assert db.session.get(Tour, tour.id).images == []
