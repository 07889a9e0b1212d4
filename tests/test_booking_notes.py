"""Tests for booking notes and GET /bookings/<id>."""
from __future__ import annotations

import pytest

from travelhub.extensions import db
from travelhub.models import Booking


@pytest.fixture
def booking(client, booking_payload):
    data = client.post("/bookings", json=booking_payload).get_json()
    return db.session.get(Booking, data["data"]["bookingId"])


def test_add_note_201(client, auth_headers, booking):
    response = client.post(f"/bookings/{booking.id}/notes", json={"content": "Called customer"}, headers=auth_headers)
    data = response.get_json()

    assert response.status_code == 201
    assert data["message"] == "Note added successfully"
    assert data["data"]["content"] == "Called customer"
    assert data["data"]["created_by_name"] == "Alice Admin"


def test_blank_note_400(client, auth_headers, booking):
    response = client.post(f"/bookings/{booking.id}/notes", json={"content": "   "}, headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json()["message"] == "Note content is required"


def test_non_string_note_400(client, auth_headers, booking):
    response = client.post(f"/bookings/{booking.id}/notes", json={"content": ["a", "b"]}, headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json()["message"] == "Note content must be text"


def test_note_on_unknown_booking_404(client, auth_headers):
    response = client.post("/bookings/999/notes", json={"content": "Hello"}, headers=auth_headers)

    assert response.status_code == 404


def test_booking_detail_lists_notes_newest_first(client, auth_headers, booking, tour):
    client.post(f"/bookings/{booking.id}/notes", json={"content": "first"}, headers=auth_headers)
    client.post(f"/bookings/{booking.id}/notes", json={"content": "second"}, headers=auth_headers)

    response = client.get(f"/bookings/{booking.id}", headers=auth_headers)
    data = response.get_json()["data"]

    assert response.status_code == 200
    assert data["item_title"] == tour.title
    assert [note["content"] for note in data["notes"]] == ["second", "first"]


def test_booking_detail_requires_admin(client, booking):
    assert client.get(f"/bookings/{booking.id}").status_code == 401
