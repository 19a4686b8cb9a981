from datetime import timedelta

import jwt
import pytest
from fastapi.testclient import TestClient

from api.helpers import create_access_token, resolve_owner_id
from core.alarms.exceptions import UnauthenticatedError
import main
from main import create_app
from models.alarm_enums import AlarmStatus
from models.alarm_models import MAX_SNOOZE_MINUTES, Alarm
from infrastructure.database.repositories import AlarmsRepository
from settings import settings

OWNER = "64f1c2a9b3e4d5f6a7b8c9d0"


@pytest.fixture
def client(db, manager):
    app = create_app(db=db, manager=manager, run_workers=False)
    with TestClient(app) as test_client:
        yield test_client


def _auth(owner_id=OWNER):
    return {"Authorization": f"Bearer {create_access_token(owner_id)}"}


def _create(client, **overrides):
    payload = {"fire_at": "2026-10-19T08:55:00", "message": "Wake up", "is_recurring": True,
               "recurrence_kind": "Daily"}
    payload.update(overrides)
    response = client.post("/alarms", json=payload, headers=_auth())
    assert response.status_code == 201, response.text
    return response.json()["alarm"]


# --- auth ---

def test_resolve_owner_id_accepts_legacy_claims():
    for claim in ("userId", "id", "sub"):
        token = jwt.encode({claim: OWNER}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
        assert resolve_owner_id(f"Bearer {token}") == OWNER


@pytest.mark.parametrize("header", [
    None,
    "",
    "Token abc",
    "Bearer not-a-jwt",
])
def test_resolve_owner_id_rejects_bad_headers(header):
    with pytest.raises(UnauthenticatedError):
        resolve_owner_id(header)


def test_resolve_owner_id_rejects_expired_and_foreign_tokens():
    expired = create_access_token(OWNER, ttl=timedelta(seconds=-10))
    with pytest.raises(UnauthenticatedError):
        resolve_owner_id(f"Bearer {expired}")

    forged = jwt.encode({"userId": OWNER}, "a-completely-different-signing-secret", algorithm="HS256")
    with pytest.raises(UnauthenticatedError):
        resolve_owner_id(f"Bearer {forged}")

    no_id = jwt.encode({"role": "user"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    with pytest.raises(UnauthenticatedError):
        resolve_owner_id(f"Bearer {no_id}")


def test_requests_without_token_are_rejected(client):
    assert client.get("/alarms/active").status_code == 401
    assert client.post("/alarms", json={"fire_at": "2026-10-19T08:55:00"}).status_code == 401


# --- CRUD ---

def test_create_and_read_alarm(client):
    alarm = _create(client, week_days=[1, 2])

    assert alarm["fire_at"] == "2026-10-19T08:55:00"
    assert alarm["status"] == "Active"
    assert alarm["week_days"] == []

    response = client.get(f"/alarms/{alarm['id']}", headers=_auth())
    assert response.status_code == 200
    assert response.json()["alarm"]["message"] == "Wake up"

    active = client.get("/alarms/active", headers=_auth()).json()["alarms"]
    assert [a["id"] for a in active] == [alarm["id"]]


def test_create_in_the_past_is_bad_request(client):
    response = client.post("/alarms", json={"fire_at": "2026-10-18T08:00:00"}, headers=_auth())
    assert response.status_code == 400


def test_create_weekly_without_days_is_bad_request(client):
    response = client.post(
        "/alarms",
        json={"fire_at": "2026-10-19T08:00:00", "is_recurring": True, "recurrence_kind": "Weekly",
              "week_days": ["x"]},
        headers=_auth(),
    )
    assert response.status_code == 400


def test_other_users_alarm_is_not_found(client):
    alarm = _create(client)
    other = _auth("someone-else")

    assert client.get(f"/alarms/{alarm['id']}", headers=other).status_code == 404
    assert client.post(f"/alarms/{alarm['id']}/acknowledge", headers=other).status_code == 404
    assert client.post(f"/alarms/{alarm['id']}/snooze", json={"minutes": 5}, headers=other).status_code == 404
    assert client.put(f"/alarms/{alarm['id']}", json={"fire_at": "2026-10-19T09:00:00"},
                      headers=other).status_code == 404
    assert client.delete(f"/alarms/{alarm['id']}", headers=other).status_code == 404


def test_update_and_delete_alarm(client):
    alarm = _create(client)

    response = client.put(
        f"/alarms/{alarm['id']}",
        json={"fire_at": "2026-10-19T12:00:00", "message": "Lunch"},
        headers=_auth(),
    )
    assert response.status_code == 200
    assert response.json()["alarm"]["is_recurring"] is False
    assert response.json()["alarm"]["fire_at"] == "2026-10-19T12:00:00"

    assert client.delete(f"/alarms/{alarm['id']}", headers=_auth()).status_code == 204
    assert client.get(f"/alarms/{alarm['id']}", headers=_auth()).status_code == 404


# --- lifecycle ---

def test_snooze_and_acknowledge_flow(client, clock):
    alarm = _create(client)
    clock.now = clock.now.replace(hour=8, minute=55)

    response = client.post(f"/alarms/{alarm['id']}/snooze", json={"minutes": 10}, headers=_auth())
    assert response.status_code == 200
    snoozed = response.json()["alarm"]
    assert snoozed["fire_at"] == "2026-10-19T09:05:00"
    assert snoozed["message"] == "(snoozed 10 min) Wake up"
    assert snoozed["schedule_anchor"] == "2026-10-19T08:55:00"

    clock.now = clock.now.replace(hour=9, minute=5)
    response = client.post(f"/alarms/{alarm['id']}/acknowledge", headers=_auth())
    acknowledged = response.json()["alarm"]
    assert acknowledged["fire_at"] == "2026-10-20T08:55:00"
    assert acknowledged["message"] == "Wake up"
    assert acknowledged["schedule_anchor"] is None


@pytest.mark.parametrize("body", [
    {"minutes": 0},
    {"minutes": -3},
    {},
    {"minutes": "soon"},
    {"minutes": MAX_SNOOZE_MINUTES + 1},
    {"minutes": 10 ** 10},
])
def test_snooze_validation(client, body):
    alarm = _create(client)
    response = client.post(f"/alarms/{alarm['id']}/snooze", json=body, headers=_auth())
    assert response.status_code == 422
    assert client.get(f"/alarms/{alarm['id']}", headers=_auth()).json()["alarm"]["schedule_anchor"] is None


def test_trigger_returns_alarm_before_rescheduling(client, clock):
    alarm = _create(client)
    clock.now = clock.now.replace(hour=8, minute=56)

    response = client.post(f"/alarms/{alarm['id']}/trigger", headers=_auth())

    assert response.status_code == 200
    assert response.json()["alarm"]["fire_at"] == "2026-10-19T08:55:00"
    stored = client.get(f"/alarms/{alarm['id']}", headers=_auth()).json()["alarm"]
    assert stored["fire_at"] == "2026-10-20T08:55:00"


def test_due_endpoint_and_history(client, clock):
    recurring = _create(client)
    one_shot = _create(client, fire_at="2026-10-19T07:30:00", is_recurring=False, recurrence_kind=None,
                       message="Pills")
    clock.now = clock.now.replace(hour=9, minute=0)

    due = client.post("/alarms/due", headers=_auth()).json()["alarms"]

    # разовый просрочен на 90 минут: не показываем, но архивируем
    assert [a["id"] for a in due] == [recurring["id"]]
    assert client.post("/alarms/due", headers=_auth()).json()["alarms"] == []
    history = client.get("/alarms/history", headers=_auth()).json()["alarms"]
    assert [a["id"] for a in history] == [one_shot["id"]]

    cleared = client.delete("/alarms/history", headers=_auth()).json()
    assert cleared["deleted_count"] == 1
    assert client.get("/alarms/history", headers=_auth()).json()["alarms"] == []


# --- cleanup task ---

def test_cleanup_requires_cron_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

    assert client.get("/tasks/cleanup-old-history").status_code == 401
    assert client.get("/tasks/cleanup-old-history", headers={"X-Cron-Secret": "nope"}).status_code == 401


def test_cleanup_is_rejected_when_secret_not_configured(client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", None)
    assert client.get("/tasks/cleanup-old-history", headers={"X-Cron-Secret": ""}).status_code == 401


def test_cleanup_deletes_old_history(client, db, clock, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
    with db.get_session() as session:
        repo = AlarmsRepository(session)
        repo.upsert(Alarm(owner_id=OWNER, fire_at=clock.now - timedelta(days=31), status=AlarmStatus.FIRED))
        repo.upsert(Alarm(owner_id=OWNER, fire_at=clock.now - timedelta(days=29), status=AlarmStatus.FIRED))

    response = client.get("/tasks/cleanup-old-history", headers={"X-Cron-Secret": "s3cret"})

    assert response.status_code == 200
    assert response.json()["deleted_count"] == 1


# --- entry point ---

def test_run_starts_uvicorn_with_configured_address(monkeypatch):
    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setattr(settings, "PORT", 8123)

    main.run()

    assert calls == [(main.app, {"host": settings.HOST, "port": 8123, "log_level": settings.LOG_LEVEL.lower()})]
