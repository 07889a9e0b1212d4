"""pytest configuration: path management plus app, client and data fixtures."""
from __future__ import annotations

import sys
from datetime import timedelta
from pathlib import Path

import pytest

# Ensure the project root is available on sys.path so tests can import the travelhub package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from travelhub import create_app, storage  # noqa: E402
from travelhub.auth import build_token  # noqa: E402
from travelhub.config import TestConfig  # noqa: E402
from travelhub.extensions import db, mail  # noqa: E402
from travelhub.models import Category, Service, Tour, User, utc_now  # noqa: E402

ADMIN_PASSWORD = "admin-pass-123"


class FakeS3Client:
    """Stands in for the boto3 S3 client; records uploads and deletes."""

    def __init__(self) -> None:
        self.uploads: dict[str, dict[str, object]] = {}
        self.deleted: list[str] = []

    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None):
        self.uploads[key] = {"bucket": bucket, "body": fileobj.read(), "extra": ExtraArgs or {}}

    def delete_object(self, Bucket, Key):
        self.deleted.append(Key)


@pytest.fixture
def app():
    flask_app = create_app(TestConfig)
    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def fake_s3(monkeypatch):
    fake = FakeS3Client()
    monkeypatch.setattr(storage, "get_s3_client", lambda: fake)
    return fake


@pytest.fixture
def outbox(app):
    with mail.record_messages() as messages:
        yield messages


def _make_user(name: str, email: str, *, super_admin: bool = False, active: bool = True) -> User:
    user = User(name=name, email=email, role="admin", is_super_admin=super_admin, is_active=active)
    user.set_password(ADMIN_PASSWORD)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def make_admin(app):
    return _make_user


@pytest.fixture
def admin_user(app):
    return _make_user("Alice Admin", "alice@travelcompany.test")


@pytest.fixture
def super_admin_user(app):
    return _make_user("Sam Super", "sam@travelcompany.test", super_admin=True)


@pytest.fixture
def auth_headers(admin_user):
    return {"Authorization": f"Bearer {build_token(admin_user)}"}


@pytest.fixture
def super_headers(super_admin_user):
    return {"Authorization": f"Bearer {build_token(super_admin_user)}"}


@pytest.fixture
def tour(app):
    item = Tour(
        title="Ha Long Bay Cruise",
        slug="ha-long-bay-cruise",
        description="Two days on the bay",
        price=150.0,
        duration="2 days",
        location="Quang Ninh",
        max_participants=12,
        images=[],
        gallery=[],
        itinerary={},
        included=[],
        excluded=[],
        status="active",
    )
    db.session.add(item)
    db.session.commit()
    return item


@pytest.fixture
def service(app):
    item = Service(
        title="Airport Transfer",
        slug="airport-transfer",
        subtitle="Private car",
        description="Door to door transfer",
        price=40.0,
        service_type="transfer",
        gallery=[],
        itinerary=[],
        included=[],
        excluded=[],
        status="active",
    )
    db.session.add(item)
    db.session.commit()
    return item


@pytest.fixture
def category(app):
    item = Category(name="Domestic", slug="domestic", type="both", status="active", sort_order=1)
    db.session.add(item)
    db.session.commit()
    return item


@pytest.fixture
def future_date() -> str:
    return (utc_now().date() + timedelta(days=30)).isoformat()


@pytest.fixture
def booking_payload(tour, future_date):
    return {
        "tourId": tour.id,
        "customerName": "Nguyen Van An",
        "customerEmail": "an@example.com",
        "customerPhone": "+84 912 345 678",
        "startDate": future_date,
        "adults": 2,
        "children": 1,
        "infants": 0,
        "totalTravelers": 3,
        "totalAmount": 450,
        "currency": "USD",
        "specialRequests": "Vegetarian meals",
    }
