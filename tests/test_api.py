from datetime import datetime, timedelta, timezone
import pytest

from app.core.config import settings
from app.models.document_box import DocumentBoxStatus
from app.models.reminder import ReminderSchedule
from app.models.submitter import SubmitterStatus
from app.services import reminder_service
from tests.conftest import FakeEmailService

CRON_SECRET = "test-cron-secret"


@pytest.fixture
def cron_secret(monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", CRON_SECRET)
    return CRON_SECRET


def _future(days=7):
    return datetime.now(timezone.utc) + timedelta(days=days)


# --- cron triggers ---

def test_cron_requires_bearer_token(client, cron_secret):
    response = client.get("/api/v1/cron/status-transition")
    assert response.status_code == 401


def test_cron_rejects_malformed_header(client, cron_secret):
    response = client.get("/api/v1/cron/status-transition", headers={"Authorization": f"Basic {cron_secret}"})
    assert response.status_code == 401


def test_cron_rejects_wrong_token(client, cron_secret):
    response = client.get("/api/v1/cron/status-transition", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 403


def test_cron_without_secret_in_production(client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", None)
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")

    response = client.get("/api/v1/cron/status-transition")

    assert response.status_code == 500
    assert response.json()["detail"] == "Server configuration error"


def test_cron_without_secret_in_development(client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", None)

    response = client.get("/api/v1/cron/status-transition")

    assert response.status_code == 200


def test_cron_status_transition(client, cron_secret, make_box):
    make_box(datetime.now(timezone.utc) - timedelta(hours=1))

    response = client.get("/api/v1/cron/status-transition", headers={"Authorization": f"Bearer {cron_secret}"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["counts"]["transitioned"] == 1


def test_cron_reminders_and_notifications(client, cron_secret, monkeypatch):
    headers = {"Authorization": f"Bearer {cron_secret}"}

    reminders = client.get("/api/v1/cron/reminders", headers=headers)
    notifications = client.get("/api/v1/cron/deadline-notification", headers=headers)

    assert reminders.status_code == 200
    assert reminders.json()["counts"]["candidates"] == 0
    assert notifications.status_code == 200
    assert notifications.json()["counts"]["sent"] == 0


def test_cron_unexpected_error_returns_500(client, cron_secret, monkeypatch):
    from app.api.v1.endpoints import cron

    def broken(db):
        raise RuntimeError("database gone")

    monkeypatch.setattr(cron, "process_status_transition", broken)

    response = client.get("/api/v1/cron/status-transition", headers={"Authorization": f"Bearer {cron_secret}"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "database gone"}


# --- reminder schedules ---

def test_replace_and_list_schedules(client, make_box):
    box = make_box(_future())
    payload = {"schedules": [
        {"offset_value": 1, "offset_unit": "WEEK", "time_of_day": "10:30"},
        {"offset_value": 2, "offset_unit": "DAY", "time_of_day": "09:00"},
    ]}

    response = client.put(f"/api/v1/document-boxes/{box.id}/reminder-schedules", json=payload)

    assert response.status_code == 200
    listed = client.get(f"/api/v1/document-boxes/{box.id}/reminder-schedules").json()
    assert [(s["order"], s["offset_unit"], s["time_of_day"]) for s in listed] == [
        (0, "WEEK", "10:30"),
        (1, "DAY", "09:00"),
    ]
    assert all(s["is_enabled"] for s in listed)


def test_too_many_schedules_rejected(client, make_box):
    box = make_box(_future())
    payload = {"schedules": [{"offset_value": i, "offset_unit": "DAY", "time_of_day": "09:00"} for i in range(1, 5)]}

    response = client.put(f"/api/v1/document-boxes/{box.id}/reminder-schedules", json=payload)

    assert response.status_code == 400


@pytest.mark.parametrize("schedule", [
    {"offset_value": 31, "offset_unit": "DAY", "time_of_day": "09:00"},
    {"offset_value": 5, "offset_unit": "WEEK", "time_of_day": "09:00"},
    {"offset_value": 0, "offset_unit": "DAY", "time_of_day": "09:00"},
    {"offset_value": 3, "offset_unit": "DAY", "time_of_day": "09:15"},
])
def test_invalid_schedule_values(client, make_box, schedule):
    box = make_box(_future())
    response = client.put(f"/api/v1/document-boxes/{box.id}/reminder-schedules", json={"schedules": [schedule]})
    assert response.status_code == 422


def test_toggle_keeps_configuration(client, db_session, make_box):
    box = make_box(_future())
    client.put(
        f"/api/v1/document-boxes/{box.id}/reminder-schedules",
        json={"schedules": [{"offset_value": 3, "offset_unit": "DAY", "time_of_day": "09:00"}]},
    )

    response = client.patch(f"/api/v1/document-boxes/{box.id}/reminder-schedules/enabled", json={"enabled": False})

    assert response.status_code == 200
    assert [s["is_enabled"] for s in response.json()] == [False]
    db_session.expire_all()
    assert db_session.query(ReminderSchedule).filter_by(document_box_id=box.id).count() == 1


def test_update_without_schedules_only_toggles(client, make_box):
    box = make_box(_future())
    client.put(
        f"/api/v1/document-boxes/{box.id}/reminder-schedules",
        json={"schedules": [{"offset_value": 3, "offset_unit": "DAY", "time_of_day": "09:00"}]},
    )

    response = client.put(
        f"/api/v1/document-boxes/{box.id}/reminder-schedules",
        json={"schedules": None, "reminder_enabled": False},
    )

    assert [(s["offset_value"], s["is_enabled"]) for s in response.json()] == [(3, False)]


def test_empty_schedule_list_keeps_existing_schedules(client, make_box):
    box = make_box(_future())
    client.put(
        f"/api/v1/document-boxes/{box.id}/reminder-schedules",
        json={"schedules": [{"offset_value": 3, "offset_unit": "DAY", "time_of_day": "09:00"}]},
    )

    response = client.put(
        f"/api/v1/document-boxes/{box.id}/reminder-schedules",
        json={"schedules": [], "reminder_enabled": True},
    )

    assert response.status_code == 200
    assert [(s["offset_value"], s["is_enabled"]) for s in response.json()] == [(3, True)]


def test_unknown_box_returns_404(client):
    assert client.get("/api/v1/document-boxes/999/reminder-schedules").status_code == 404


# --- manual reminders and history ---

def test_manual_send_and_history(client, make_box, monkeypatch):
    fake_service = FakeEmailService()
    monkeypatch.setattr(reminder_service, "default_email_service", fake_service)
    box = make_box(_future(), submitters=[SubmitterStatus.PENDING, SubmitterStatus.PENDING, SubmitterStatus.SUBMITTED])

    response = client.post(f"/api/v1/document-boxes/{box.id}/reminders/send", json={})

    assert response.status_code == 200
    assert response.json()["counts"]["emails_sent"] == 2
    assert len(fake_service.sent) == 2

    logs = client.get(f"/api/v1/document-boxes/{box.id}/reminder-logs").json()
    assert len(logs) == 1
    assert logs[0]["is_auto"] is False
    assert logs[0]["recipient_count"] == 2


def test_manual_send_without_targets(client, make_box, monkeypatch):
    monkeypatch.setattr(reminder_service, "default_email_service", FakeEmailService())
    box = make_box(_future(), submitters=[SubmitterStatus.SUBMITTED])

    response = client.post(f"/api/v1/document-boxes/{box.id}/reminders/send", json={})

    assert response.status_code == 400


# --- status changes ---

def test_owner_closes_box(client, make_box):
    box = make_box(_future())

    response = client.patch(f"/api/v1/document-boxes/{box.id}/status", json={"status": "CLOSED"})

    assert response.status_code == 200
    assert response.json()["status"] == "CLOSED"


def test_owner_cannot_set_closed_expired(client, make_box):
    box = make_box(_future())

    response = client.patch(f"/api/v1/document-boxes/{box.id}/status", json={"status": "CLOSED_EXPIRED"})

    assert response.status_code == 400


def test_owner_reopens_with_new_deadline(client, make_box):
    box = make_box(datetime.now(timezone.utc) - timedelta(days=1), status=DocumentBoxStatus.CLOSED_EXPIRED)

    response = client.patch(
        f"/api/v1/document-boxes/{box.id}/status",
        json={"status": "OPEN", "deadline": _future(3).isoformat()},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "OPEN"
