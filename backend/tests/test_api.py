"""HTTP surface: guards, error envelope and the end-to-end lockdown scenario."""
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import asyncio
from datetime import timedelta

import pytest


def _count(collection, query=None) -> int:
    return asyncio.run(collection.count_documents(query or {}))


GUARDED = [
    ("get", "/api/sessions/current"),
    ("post", "/api/sessions/check-in"),
    ("post", "/api/sessions/check-out"),
    ("post", "/api/actions/cheat"),
    ("post", "/api/actions/harm"),
    ("get", "/api/stats/now"),
    ("get", "/api/stats/summary"),
    ("get", "/api/stats/pomodoro"),
]


def test_status(client):
    response = client.get("/api/status")
    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {"ok": True}}


def test_end_to_end_lockdown_scenario(client, headers, frozen_clock, mock_db):
    r = client.get("/api/sessions/current", headers=headers())
    assert r.status_code == 200
    body = r.json()
    assert body["session"]["status"] == "locked"
    assert body["session"]["timeRemaining"] == 3600
    assert body["session"]["timeAhead"] is None
    first_id = body["session"]["id"]

    frozen_clock.advance(minutes=61)
    r = client.get("/api/sessions/current", headers=headers())
    assert r.json()["session"]["status"] == "active"
    assert r.json()["session"]["timeRemaining"] is None

    r = client.post("/api/actions/harm", headers=headers())
    assert r.status_code == 201
    harm = r.json()
    assert harm["session"]["status"] == "locked"
    assert harm["session"]["timeRemaining"] == 3600
    assert harm["session"]["id"] != first_id
    assert harm["action"]["lockdownStarted"] is True

    r = client.post("/api/actions/cheat", headers=headers())
    assert r.status_code == 201
    assert r.json()["action"]["consequences"]["message"] == "Action logged. Consequences will apply."

    r = client.post("/api/actions/harm", headers=headers())
    assert r.status_code == 400
    assert r.json()["error"] == "INVALID_ACTION"

    r = client.get("/api/sessions/current", headers=headers())
    assert r.json()["user"]["lastRelapse"] is not None


@pytest.mark.parametrize("method,path", GUARDED)
def test_time_tampering_rejected_without_side_effects(client, headers, mock_db, method, path):
    r = getattr(client, method)(path, headers=headers(skew=timedelta(minutes=10)))

    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["error"] == "TIME_VALIDATION_FAILED"
    assert body["statusCode"] == 400
    assert body["path"] == path
    assert "timestamp" in body
    assert _count(mock_db.sessions) == 0
    assert _count(mock_db.actions) == 0
    assert _count(mock_db.check_ins) == 0


def test_time_tampering_creates_nothing(client, headers, mock_db):
    client.get("/api/sessions/current", headers=headers(skew=timedelta(minutes=10)))
    client.post("/api/actions/harm", headers=headers(skew=timedelta(minutes=-10)))

    assert _count(mock_db.sessions) == 0
    assert _count(mock_db.actions) == 0
    assert _count(mock_db.audit_events, {"event_type": "time_validation_failed"}) == 2


def test_missing_device_id_is_401_before_time_check(client):
    r = client.get("/api/sessions/current", headers={"X-Client-Time": "garbage"})
    assert r.status_code == 401
    assert r.json()["error"] == "UNAUTHORIZED"


def test_wrong_state_action_is_invalid_action(client, headers):
    r = client.post("/api/actions/harm", headers=headers())
    assert r.status_code == 400
    assert r.json()["error"] == "INVALID_ACTION"
    assert r.json()["message"] == "Harm action is only allowed during active period"


def test_follow_up_flow(client, headers, frozen_clock):
    client.get("/api/sessions/current", headers=headers())
    frozen_clock.advance(minutes=61)
    client.post("/api/actions/harm", headers=headers())

    r = client.get("/api/actions/follow-up/pending", headers=headers())
    assert r.status_code == 200
    pending = r.json()
    assert pending["hasPending"] is True
    assert pending["question"]["text"] == "What have you done?"

    r = client.post("/api/actions/follow-up", headers=headers(), json={"answer": "Called a friend"})
    assert r.status_code == 201
    assert r.json()["followUp"]["answer"] == "Called a friend"

    r = client.get("/api/actions/follow-up/pending", headers=headers())
    assert r.json()["hasPending"] is False

    r = client.post("/api/actions/follow-up", headers=headers(), json={"answer": "again"})
    assert r.status_code == 400
    assert r.json()["error"] == "NO_PENDING_FOLLOWUP"


def test_follow_up_requires_answer(client, headers):
    r = client.post("/api/actions/follow-up", headers=headers(), json={"answer": ""})
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "VALIDATION_FAILED"
    assert body["errors"][0]["property"] == "answer"


def test_follow_up_rejects_malformed_harm_ids(client, headers):
    r = client.post(
        "/api/actions/follow-up", headers=headers(), json={"answer": "ok", "harmIds": ["not-a-uuid"]},
    )
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "VALIDATION_FAILED"
    assert body["errors"][0]["property"].startswith("harmIds")


@pytest.mark.parametrize("client_time", ["0001-01-01T00:00:00+01:00", "9999-12-31T23:59:59-01:00"])
def test_client_time_at_calendar_edges_is_rejected(client, device_id, mock_db, client_time):
    r = client.get("/api/sessions/current", headers={"X-Device-Id": device_id, "X-Client-Time": client_time})
    assert r.status_code == 400
    assert r.json()["error"] == "TIME_VALIDATION_FAILED"
    assert _count(mock_db.sessions) == 0


def test_settings_roundtrip(client, headers, mock_db):
    r = client.get("/api/settings", headers=headers())
    assert r.status_code == 200
    assert r.json()["lockdownMinutes"] == 60

    r = client.put("/api/settings", headers=headers(), json={"lockdownMinutes": 30})
    assert r.status_code == 200
    assert r.json()["lockdownMinutes"] == 30
    assert r.json()["workMinutes"] == 25


@pytest.mark.parametrize("payload", [{"lockdownMinutes": 0}, {"lockdownMinutes": 10081}, {}])
def test_settings_out_of_bounds_rejected(client, headers, payload):
    r = client.put("/api/settings", headers=headers(), json=payload)
    assert r.status_code == 400
    assert r.json()["error"] == "VALIDATION_FAILED"


def test_stats_details_range_validation(client, headers):
    r = client.get(
        "/api/stats/details",
        headers=headers(),
        params={"startDate": "2026-03-05", "endDate": "2026-03-01"},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "VALIDATION_FAILED"
    assert r.json()["errors"][0]["property"] == "startDate"

    r = client.get(
        "/api/stats/details",
        headers=headers(),
        params={"startDate": "2026-03-01", "endDate": "2026-03-02"},
    )
    assert r.status_code == 200
    assert [e["status"] for e in r.json()["entries"]] == ["no_data", "no_data"]


def test_timer_commands(client, headers, frozen_clock):
    r = client.get("/api/timer/current", headers={"X-Device-Id": headers()["X-Device-Id"]})
    assert r.status_code == 200
    assert r.json()["timer"]["status"] == "idle"

    r = client.post("/api/timer/pause", headers=headers())
    assert r.status_code == 400
    assert r.json()["error"] == "INVALID_TIMER_STATE"

    r = client.post("/api/timer/start", headers=headers(), json={"type": "short_break"})
    assert r.status_code == 200
    assert r.json()["timer"]["remainingSeconds"] == 300

    r = client.post("/api/timer/start", headers=headers(), json={"type": "nap"})
    assert r.status_code == 400
