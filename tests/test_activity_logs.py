"""Tests for the activity log routes and the audit decorator."""
from __future__ import annotations

from datetime import timedelta

from travelhub.extensions import db
from travelhub.models import ActivityLog, utc_now


def _log(admin, action: str = "update", resource: str = "tour", *, days_ago: int = 0) -> ActivityLog:
    entry = ActivityLog(
        admin_id=admin.id,
        admin_name=admin.name,
        admin_email=admin.email,
        action_type=action,
        resource_type=resource,
        resource_id="1",
        created_at=(utc_now() - timedelta(days=days_ago)).replace(tzinfo=None),
    )
    db.session.add(entry)
    db.session.commit()
    return entry


def test_mutation_writes_log_with_request_details(client, auth_headers, admin_user, tour):
    client.put(
        f"/tours/{tour.id}",
        json={"price": 160},
        headers={**auth_headers, "X-Forwarded-For": "203.0.113.7", "User-Agent": "pytest-agent"},
    )

    log = ActivityLog.query.one()
    assert log.action_type == "update"
    assert log.resource_type == "tour"
    assert log.resource_id == str(tour.id)
    assert log.resource_name == "Ha Long Bay Cruise"
    assert log.admin_email == admin_user.email
    assert log.ip_address == "203.0.113.7"
    assert log.user_agent == "pytest-agent"
    assert log.changes["price"] == 160.0


def test_failed_mutation_is_not_logged(client, auth_headers):
    client.put("/tours/999", json={"price": 1}, headers=auth_headers)

    assert ActivityLog.query.count() == 0


def test_list_logs_with_filters(client, auth_headers, admin_user, super_admin_user):
    _log(admin_user, "create", "tour")
    _log(admin_user, "delete", "service")
    _log(super_admin_user, "update", "tour")
    _log(admin_user, "create", "tour", days_ago=400)

    everything = client.get("/activity-logs", headers=auth_headers).get_json()
    by_admin = client.get(f"/activity-logs?admin_id={admin_user.id}", headers=auth_headers).get_json()
    by_action = client.get("/activity-logs?action_type=delete", headers=auth_headers).get_json()
    by_resource = client.get("/activity-logs?resource_type=tour", headers=auth_headers).get_json()

    assert everything["pagination"]["total"] == 3
    assert everything["pagination"]["limit"] == 50
    assert by_admin["pagination"]["total"] == 2
    assert [log["resource_type"] for log in by_action["data"]] == ["service"]
    assert by_resource["pagination"]["total"] == 2


def test_list_logs_date_range(client, auth_headers, admin_user):
    _log(admin_user, days_ago=10)
    recent = _log(admin_user, days_ago=1)
    since = (utc_now() - timedelta(days=2)).date().isoformat()

    data = client.get(f"/activity-logs?date_from={since}", headers=auth_headers).get_json()["data"]

    assert [log["id"] for log in data] == [recent.id]


def test_log_stats(client, auth_headers, admin_user, super_admin_user):
    _log(admin_user, "create", "tour")
    _log(admin_user, "create", "tour")
    _log(super_admin_user, "delete", "service")
    _log(admin_user, "create", "tour", days_ago=45)

    data = client.get("/activity-logs/stats", headers=auth_headers).get_json()["data"]

    assert data["actionStats"][0] == {"action_type": "create", "resource_type": "tour", "count": 2}
    assert data["adminStats"][0]["admin_email"] == admin_user.email
    assert data["adminStats"][0]["action_count"] == 2
    assert sum(day["count"] for day in data["dailyStats"]) == 3


def test_cleanup_requires_super_admin(client, auth_headers):
    assert client.post("/activity-logs/cleanup", headers=auth_headers).status_code == 403


def test_cleanup_removes_old_logs(client, super_headers, super_admin_user):
    _log(super_admin_user, days_ago=400)
    _log(super_admin_user, days_ago=366)
    kept = _log(super_admin_user, days_ago=5)

    response = client.post("/activity-logs/cleanup", headers=super_headers)

    assert response.get_json()["message"] == "Cleaned up 2 old activity logs"
    assert response.get_json()["data"]["deletedCount"] == 2
    assert [log.id for log in ActivityLog.query.all()] == [kept.id]
