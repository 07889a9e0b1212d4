"""Tests for super admin management of admin accounts."""
from __future__ import annotations

from travelhub.auth import build_token
from travelhub.extensions import db
from travelhub.models import ActivityLog, User
from travelhub.routes_admin import generate_password


def test_list_admins(client, super_headers, admin_user):
    response = client.get("/admin-management", headers=super_headers)
    emails = {a["email"] for a in response.get_json()["data"]}

    assert response.status_code == 200
    assert emails == {"alice@travelcompany.test", "sam@travelcompany.test"}


def test_regular_admin_cannot_manage(client, auth_headers):
    response = client.post("/admin-management", json={"name": "X", "email": "x@example.com"}, headers=auth_headers)

    assert response.status_code == 403
    assert response.get_json()["message"] == "Super admin access required"


def test_create_admin_sends_invitation(client, super_headers, super_admin_user, outbox):
    response = client.post(
        "/admin-management", json={"name": "Binh Tran", "email": "Binh@Example.com"}, headers=super_headers
    )
    data = response.get_json()

    assert response.status_code == 201
    assert data["message"] == "Admin created successfully. Invitation email sent."
    admin = User.query.filter_by(email="binh@example.com").one()
    assert admin.created_by == super_admin_user.id
    assert admin.is_super_admin is False
    assert outbox[0].recipients == ["binh@example.com"]
    assert outbox[0].subject == "Admin Access Granted - Travel Company"
    assert ActivityLog.query.filter_by(resource_type="admin", action_type="create").count() == 1


def test_create_admin_validation(client, super_headers, admin_user):
    missing = client.post("/admin-management", json={"name": "No Email"}, headers=super_headers)
    duplicate = client.post(
        "/admin-management", json={"name": "Alice", "email": admin_user.email}, headers=super_headers
    )

    assert missing.get_json()["message"] == "Name and email are required"
    assert duplicate.status_code == 400
    assert duplicate.get_json()["message"] == "Email already exists"


def test_update_admin(client, super_headers, admin_user):
    response = client.put(
        f"/admin-management/{admin_user.id}", json={"name": "Alice A.", "is_active": False}, headers=super_headers
    )

    assert response.status_code == 200
    user = db.session.get(User, admin_user.id)
    assert user.name == "Alice A."
    assert user.is_active is False


def test_super_admin_is_protected(client, super_headers, make_admin):
    other = make_admin("Other Super", "other@travelcompany.test", super_admin=True)

    update = client.put(f"/admin-management/{other.id}", json={"name": "X"}, headers=super_headers)
    delete = client.delete(f"/admin-management/{other.id}", headers=super_headers)
    reset = client.post(f"/admin-management/{other.id}/reset-password", headers=super_headers)

    assert update.get_json()["message"] == "Cannot modify super admin"
    assert delete.get_json()["message"] == "Cannot delete super admin"
    assert reset.status_code == 400


def test_delete_admin_is_soft(client, super_headers, admin_user):
    response = client.delete(f"/admin-management/{admin_user.id}", headers=super_headers)

    assert response.status_code == 200
    user = db.session.get(User, admin_user.id)
    assert user is not None
    assert user.is_active is False
    assert client.get("/auth/profile", headers={"Authorization": f"Bearer {build_token(user)}"}).status_code == 401


def test_reset_admin_password_emails_new_one(client, super_headers, admin_user, outbox):
    response = client.post(f"/admin-management/{admin_user.id}/reset-password", headers=super_headers)

    assert response.status_code == 200
    assert outbox[0].subject == "Password Reset - Travel Company"
    assert not db.session.get(User, admin_user.id).check_password("admin-pass-123")


def test_unknown_admin_404(client, super_headers):
    assert client.put("/admin-management/999", json={"name": "X"}, headers=super_headers).status_code == 404


def test_generate_password():
    password = generate_password()

    assert len(password) == 16
    assert generate_password() != password
