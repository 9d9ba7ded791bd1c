from __future__ import annotations

from datetime import date, timedelta
from uuid import uuid4

import pytest

from weekwise.core.config import settings
from weekwise.services.plan_lifecycle import week_start_for

NEXT_MONDAY = week_start_for(date.today()) + timedelta(days=7)


def _generate(client, user_id, **body):
    payload = {"user_id": str(user_id), "week_start": NEXT_MONDAY.isoformat(), **body}
    response = client.post("/weekly-plan/generate", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


def _week(client, user_id):
    response = client.get("/weekly-plan/week", params={"user_id": str(user_id), "week_start": NEXT_MONDAY.isoformat()})
    assert response.status_code == 200, response.text
    return response.json()


def _first_session(client, user_id, domain="cardio"):
    return next(s for s in _week(client, user_id)["sessions"] if s["domain"] == domain)


def test_generate_active_plan_and_read_it_back(client, make_user) -> None:
    user_id = make_user()

    generated = _generate(client, user_id)
    active = client.get(
        "/weekly-plan/active", params={"user_id": str(user_id), "week_start": NEXT_MONDAY.isoformat()}
    ).json()
    history = client.get("/weekly-plan/history", params={"user_id": str(user_id)}).json()

    assert generated["success"] is True and generated["is_draft"] is False
    assert generated["session_count"] == 13
    assert generated["request_id"]
    assert active["plan"]["id"] == generated["plan_id"]
    assert active["plan"]["status"] == "active"
    assert len(active["plan"]["sessions"]) == 13
    assert active["plan"]["tracking_briefs"]["sleep"]["targetHours"] == 8
    assert [p["id"] for p in history["plans"]] == [generated["plan_id"]]
    assert history["user_id"] == str(user_id)


def test_draft_is_confirmed_into_the_active_plan(client, make_user) -> None:
    user_id = make_user()
    first = _generate(client, user_id)
    draft = _generate(client, user_id, draft=True, planning_context="Travelling Thursday")

    view = _week(client, user_id)
    confirmed = client.post(f"/weekly-plan/{draft['plan_id']}/confirm", json={"user_id": str(user_id)})
    again = client.post(f"/weekly-plan/{draft['plan_id']}/confirm", json={"user_id": str(user_id)})

    assert view["plan"]["id"] == first["plan_id"]
    assert view["draft"]["id"] == draft["plan_id"]
    assert confirmed.status_code == 200
    assert confirmed.json()["plan"]["status"] == "active"
    assert confirmed.json()["superseded_plan_id"] == first["plan_id"]
    assert again.status_code == 409
    assert again.json()["detail"]["error_type"] == "state_mismatch"


def test_generate_for_unknown_user_is_404(client) -> None:
    response = client.post("/weekly-plan/generate", json={"user_id": str(uuid4())})

    assert response.status_code == 404
    assert response.json()["detail"] == {"error": "User profile not found", "error_type": "not_found"}


def test_complete_session_is_idempotent_over_http(client, make_user) -> None:
    user_id = make_user()
    _generate(client, user_id)
    session = _first_session(client, user_id)

    first = client.post(f"/sessions/{session['id']}/complete", json={"user_id": str(user_id)})
    second = client.post(
        f"/sessions/{session['id']}/complete",
        json={"user_id": str(user_id), "completed_detail": {"actualMinutes": 50}},
    )

    assert first.status_code == second.status_code == 200
    assert first.json()["already_completed"] is False
    assert second.json()["already_completed"] is True
    assert second.json()["session"]["completed_detail"] is None
    assert second.json()["progress"]["domains"]["cardio"]["completed"] == 1

    fetched = client.get(f"/sessions/{session['id']}", params={"user_id": str(user_id)})
    assert fetched.json()["session"]["status"] == "completed"
    stranger = client.get(f"/sessions/{session['id']}", params={"user_id": str(make_user())})
    assert stranger.status_code == 404


def test_adapt_session_status_codes(client, make_user) -> None:
    user_id = make_user()
    _generate(client, user_id)
    cardio = _first_session(client, user_id)
    strength = _first_session(client, user_id, "strength")
    url = f"/sessions/{cardio['id']}/adapt"

    missing_date = client.post(url, json={"user_id": str(user_id), "action": "reschedule"})
    other_week = client.post(
        url,
        json={
            "user_id": str(user_id),
            "action": "reschedule",
            "new_date": (NEXT_MONDAY + timedelta(days=7)).isoformat(),
        },
    )
    moved = client.post(
        url,
        json={
            "user_id": str(user_id),
            "action": "reschedule",
            "new_date": (NEXT_MONDAY + timedelta(days=2)).isoformat(),
            "reason": "Busy Monday",
        },
    )
    modified = client.post(
        f"/sessions/{strength['id']}/adapt",
        json={"user_id": str(user_id), "action": "modify", "new_detail": {"coolDown": None}},
    )

    assert missing_date.status_code == 422
    assert other_week.status_code == 422
    assert other_week.json()["detail"]["error_type"] == "invalid"
    assert moved.status_code == 200
    assert moved.json()["session"]["day_of_week"] == 3
    assert modified.status_code == 200
    assert modified.json()["validation"]["valid"] is False

    client.post(f"/sessions/{cardio['id']}/complete", json={"user_id": str(user_id)})
    locked = client.post(url, json={"user_id": str(user_id), "action": "skip"})
    assert locked.status_code == 409


def test_extra_session_and_daily_habits(client, make_user) -> None:
    user_id = make_user()

    extra = client.post(
        "/sessions/extra",
        json={
            "user_id": str(user_id),
            "domain": "mindfulness",
            "title": "Evening walk meditation",
            "detail": {"duration": "20 min"},
            "session_date": NEXT_MONDAY.isoformat(),
        },
    )
    habits = client.post(
        "/daily-habits",
        json={"user_id": str(user_id), "day": NEXT_MONDAY.isoformat(), "steps": 9100, "sleep_hours": 7},
    )
    bad_domain = client.post(
        "/sessions/extra", json={"user_id": str(user_id), "domain": "sleep", "title": "Nap"}
    )
    bad_quality = client.post("/daily-habits", json={"user_id": str(user_id), "sleep_quality": 9})

    assert extra.status_code == 200
    assert extra.json()["session"]["is_extra"] is True
    assert extra.json()["session"]["plan_id"] is None
    assert extra.json()["progress"]["domains"]["mindfulness"]["completed"] == 1
    assert habits.status_code == 200
    assert habits.json()["logged"]["steps_actual"] == 9100
    assert bad_domain.status_code == 422
    assert bad_quality.status_code == 422


def test_progress_endpoint(client, make_user) -> None:
    user_id = make_user()
    _generate(client, user_id)

    response = client.get(
        "/weekly-plan/progress", params={"user_id": str(user_id), "week_start": NEXT_MONDAY.isoformat()}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["domains"]["mindfulness"]["total"] == 7
    assert body["domains"]["cardio"]["rate"] == 0
    assert "habits" in body


def test_web_onboarding_round_trip(client, make_user) -> None:
    user_id = uuid4()

    started = client.post("/onboarding/start", json={"user_id": str(user_id)})
    answered = client.post(
        "/onboarding/callback",
        json={"user_id": str(user_id), "callback_data": "ob:toggle:cardio.activities:running"},
    )
    wrong_text = client.post("/onboarding/text", json={"user_id": str(user_id), "text": "hello"})
    state = client.get("/onboarding/state", params={"user_id": str(user_id)})

    assert started.status_code == 200
    assert started.json()["prompts"][-1]["question_id"] == "cardio.activities"
    assert answered.status_code == 200
    assert wrong_text.json()["prompts"][0]["text"] == "Please use the buttons to answer."
    assert state.json()["data"]["cardio"]["activities"] == ["running"]


def test_agent_turn_command_and_chat(client, make_user) -> None:
    user_id = make_user()

    command = client.post(
        "/agent/turn",
        json={"user_id": str(user_id), "command": {"tool": "log_daily", "arguments": {"steps": 4000}}},
    )
    chat = client.post("/agent/turn", json={"user_id": str(user_id), "message": "how is my progress?"})
    both = client.post(
        "/agent/turn", json={"user_id": str(user_id), "message": "hi", "command": {"tool": "show_progress"}}
    )
    unknown = client.post("/agent/turn", json={"user_id": str(uuid4()), "message": "hi"})

    assert command.status_code == 200
    assert command.json()["outputs"][0]["output"]["logged"]["steps_actual"] == 4000
    assert chat.status_code == 200
    assert [o["tool"] for o in chat.json()["outputs"]] == ["show_progress"]
    assert chat.json()["request_id"]
    assert both.status_code == 422
    assert unknown.status_code == 404


def test_telegram_webhook_routes_updates(client) -> None:
    ignored = client.post("/telegram/webhook", json={"update_id": 1})
    unknown = client.post(
        "/telegram/webhook", json={"update_id": 2, "message": {"message_id": 1, "chat": {"id": 9}, "text": "hi"}}
    )
    started = client.post(
        "/telegram/webhook",
        json={"update_id": 3, "message": {"message_id": 2, "chat": {"id": 9}, "text": "/start"}},
    )

    assert ignored.json()["handled_by"] == "ignored"
    assert unknown.json()["handled_by"] == "unknown_chat"
    assert started.json()["handled_by"] == "onboarding"
    assert started.json()["chat_id"] == "9"
    assert started.json()["result"]["in_onboarding"] is True


@pytest.mark.parametrize("header, expected", [(None, 401), ("wrong", 401), ("s3cret", 200)])
def test_telegram_webhook_secret(client, monkeypatch, header, expected) -> None:
    monkeypatch.setattr(settings, "telegram_webhook_secret", "s3cret")
    headers = {"X-Telegram-Bot-Api-Secret-Token": header} if header else {}

    response = client.post("/telegram/webhook", json={"update_id": 1}, headers=headers)

    assert response.status_code == expected


def test_context_items_crud(client, make_user) -> None:
    user_id = make_user()

    created = client.post(
        "/context",
        json={"user_id": str(user_id), "category": "physical", "content": "Sore left knee"},
    )
    temporary = client.post(
        "/context",
        json={"user_id": str(user_id), "category": "schedule", "content": "Travelling", "scope": "temporary"},
    )
    listed = client.get("/context", params={"user_id": str(user_id)})
    item_id = created.json()["item"]["id"]
    removed = client.delete(f"/context/{item_id}", params={"user_id": str(user_id)})
    after = client.get("/context", params={"user_id": str(user_id)})
    missing = client.delete(f"/context/{uuid4()}", params={"user_id": str(user_id)})

    assert created.status_code == 201
    assert created.json()["item"]["source"] == "conversation"
    assert temporary.status_code == 422
    assert [i["content"] for i in listed.json()["items"]] == ["Sore left knee"]
    assert removed.json()["item"]["active"] is False
    assert after.json()["items"] == []
    assert missing.status_code == 404


def test_jobs_config_and_run_now(client, make_user, monkeypatch) -> None:
    monkeypatch.setattr(settings, "debug", True)
    make_user()

    config = client.get("/jobs")
    run = client.post("/jobs/run-now", json={"job": "weekly_plan"})
    nudges = client.post("/jobs/run-now", json={"job": "session_nudges"})

    assert config.status_code == 200
    assert config.json()["schedule"]["nudge_time"] == f"{settings.nudge_job_hour:02d}:00"
    assert run.status_code == 200
    assert run.json()["plans_written"] == 1
    assert run.json()["request_id"]
    assert nudges.status_code == 200
    assert nudges.json()["users_processed"] == 1


def test_jobs_run_now_forbidden_outside_debug(client, monkeypatch) -> None:
    monkeypatch.setattr(settings, "debug", False)

    response = client.post("/jobs/run-now", json={"job": "weekly_plan"})

    assert response.status_code == 403
