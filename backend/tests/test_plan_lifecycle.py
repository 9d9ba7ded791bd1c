from __future__ import annotations

import threading
from datetime import timedelta
from uuid import UUID, uuid4

from weekwise.core.errors import UpstreamFailure
from weekwise.db.models.agent_action_log import AgentActionLog
from weekwise.db.models.planned_session import PlannedSession
from weekwise.db.models.weekly_plan import WeeklyPlan
from weekwise.services import plan_lifecycle

from conftest import WEEK_START, RecordingGenerator


def _plans(db, user_id, status=None):
    query = db.query(WeeklyPlan).filter(WeeklyPlan.user_id == user_id)
    if status:
        query = query.filter(WeeklyPlan.status == status)
    return query.all()


def _sessions(db, plan_id):
    return db.query(PlannedSession).filter(PlannedSession.plan_id == plan_id).all()


def test_generate_active_plan_writes_valid_sessions(db_session, make_user, generator) -> None:
    user_id = make_user()

    result = plan_lifecycle.generate_plan(db_session, user_id, WEEK_START, generator=generator, today=WEEK_START)

    assert result["success"] is True
    assert result["is_draft"] is False
    assert result["issues"] == []
    plan = db_session.get(WeeklyPlan, UUID(result["plan_id"]))
    assert plan.status == "active"
    assert plan.confirmed_at is not None
    sessions = _sessions(db_session, plan.id)
    assert len(sessions) == result["session_count"] == 13
    assert all(WEEK_START <= s.scheduled_date <= WEEK_START + timedelta(days=6) for s in sessions)
    assert {s.domain for s in sessions} == {"cardio", "strength", "mindfulness"}
    assert plan.tracking_briefs["sleep"]["targetHours"] == 8
    assert generator.requests[0].profile["user_id"] == str(user_id)


def test_confirm_leaves_exactly_one_active_plan(db_session, make_user, generator) -> None:
    user_id = make_user()
    first = plan_lifecycle.generate_plan(db_session, user_id, WEEK_START, generator=generator, today=WEEK_START)
    draft = plan_lifecycle.generate_plan(
        db_session, user_id, WEEK_START, draft=True, generator=generator, today=WEEK_START
    )
    assert draft["is_draft"] is True
    assert len(_plans(db_session, user_id, "active")) == 1

    confirmed = plan_lifecycle.confirm_plan(db_session, user_id, draft["plan_id"])

    assert confirmed["plan"]["status"] == "active"
    assert confirmed["superseded_plan_id"] == first["plan_id"]
    active = _plans(db_session, user_id, "active")
    assert [str(p.id) for p in active] == [draft["plan_id"]]
    superseded = _plans(db_session, user_id, "superseded")
    assert len(superseded) == 1
    assert superseded[0].superseded_at is not None


def test_confirm_rejects_non_drafts_and_foreign_plans(db_session, make_user, generator) -> None:
    user_id = make_user()
    other_user = make_user()
    active = plan_lifecycle.generate_plan(db_session, user_id, WEEK_START, generator=generator, today=WEEK_START)

    again = plan_lifecycle.confirm_plan(db_session, user_id, active["plan_id"])
    foreign = plan_lifecycle.confirm_plan(db_session, other_user, active["plan_id"])
    missing = plan_lifecycle.confirm_plan(db_session, user_id, uuid4())

    assert again["error_type"] == "state_mismatch"
    assert foreign["error_type"] == "not_found"
    assert missing["error_type"] == "not_found"


def test_new_draft_supersedes_the_previous_draft(db_session, make_user, generator) -> None:
    user_id = make_user()
    plan_lifecycle.generate_plan(db_session, user_id, WEEK_START, draft=True, generator=generator, today=WEEK_START)
    latest = plan_lifecycle.generate_plan(
        db_session, user_id, WEEK_START, draft=True, generator=generator, today=WEEK_START
    )

    drafts = _plans(db_session, user_id, "draft")
    assert [str(p.id) for p in drafts] == [latest["plan_id"]]


def test_midweek_replan_preserves_completed_and_past_sessions(db_session, make_user, generator) -> None:
    user_id = make_user()
    original = plan_lifecycle.generate_plan(db_session, user_id, WEEK_START, generator=generator, today=WEEK_START)
    old_sessions = _sessions(db_session, UUID(original["plan_id"]))
    monday = [s for s in old_sessions if s.scheduled_date == WEEK_START]
    done = monday[0]
    plan_lifecycle.complete_session(db_session, user_id, done.id, {"actualMinutes": 50})
    db_session.refresh(done)
    completed_at = done.completed_at
    before_thursday = {s.id for s in old_sessions if s.scheduled_date < WEEK_START + timedelta(days=3)}

    thursday = WEEK_START + timedelta(days=3)
    replan = plan_lifecycle.generate_plan(
        db_session,
        user_id,
        WEEK_START,
        planning_context="Travelling Thursday",
        generator=generator,
        today=thursday,
    )

    assert replan["success"] is True
    new_plan_id = UUID(replan["plan_id"])
    db_session.expire_all()
    new_sessions = _sessions(db_session, new_plan_id)
    carried = [s for s in new_sessions if s.id in before_thursday]
    assert {s.id for s in carried} == before_thursday
    kept = db_session.get(PlannedSession, done.id)
    assert kept.plan_id == new_plan_id
    assert kept.status == "completed"
    assert kept.completed_at == completed_at
    assert kept.completed_detail == {"actualMinutes": 50}
    generated = [s for s in new_sessions if s.id not in before_thursday]
    assert generated
    assert all(s.scheduled_date >= thursday for s in generated)
    assert generator.requests[-1].start_from_date == thursday
    assert len(_plans(db_session, user_id, "active")) == 1
    assert db_session.get(WeeklyPlan, UUID(original["plan_id"])).status == "superseded"

    progress = plan_lifecycle.week_progress(db_session, user_id, WEEK_START)
    assert progress["domains"][done.domain]["completed"] == 1


def test_session_completed_while_draft_is_pending_survives_confirm(db_session, make_user, generator) -> None:
    user_id = make_user()
    first = plan_lifecycle.generate_plan(db_session, user_id, WEEK_START, generator=generator, today=WEEK_START)
    thursday = WEEK_START + timedelta(days=3)
    draft = plan_lifecycle.generate_plan(
        db_session, user_id, WEEK_START, draft=True, generator=generator, today=thursday
    )
    old_mindfulness = [
        s
        for s in _sessions(db_session, UUID(first["plan_id"]))
        if s.domain == "mindfulness" and s.scheduled_date == thursday
    ][0]
    plan_lifecycle.complete_session(db_session, user_id, old_mindfulness.id, {"actualMinutes": 12})

    confirmed = plan_lifecycle.confirm_plan(db_session, user_id, draft["plan_id"])

    assert confirmed["plan"]["status"] == "active"
    db_session.expire_all()
    new_plan_id = UUID(draft["plan_id"])
    assert db_session.get(PlannedSession, old_mindfulness.id).plan_id == new_plan_id
    thursday_mindfulness = [
        s
        for s in _sessions(db_session, new_plan_id)
        if s.domain == "mindfulness" and s.scheduled_date == thursday
    ]
    assert [s.id for s in thursday_mindfulness] == [old_mindfulness.id]
    progress = plan_lifecycle.week_progress(db_session, user_id, WEEK_START)
    assert progress["domains"]["mindfulness"]["total"] == 7
    assert progress["domains"]["mindfulness"]["completed"] == 1


def test_generation_failure_writes_nothing(db_session, make_user) -> None:
    user_id = make_user()
    failing = RecordingGenerator(error=RuntimeError("model unavailable"))

    result = plan_lifecycle.generate_plan(db_session, user_id, WEEK_START, generator=failing, today=WEEK_START)

    assert result["success"] is False
    assert result["error_type"] == "upstream"
    assert "model unavailable" in result["error"]
    assert db_session.query(WeeklyPlan).count() == 0
    assert db_session.query(PlannedSession).count() == 0
    assert db_session.query(AgentActionLog).count() == 0


def test_upstream_failure_from_generator_is_passed_through(db_session, make_user) -> None:
    user_id = make_user()
    failing = RecordingGenerator(error=UpstreamFailure("rate limited"))

    result = plan_lifecycle.generate_plan(db_session, user_id, WEEK_START, generator=failing, today=WEEK_START)

    assert result == {"error": "rate limited", "error_type": "upstream", "success": False}


def test_generation_timeout_writes_nothing(db_session, make_user) -> None:
    user_id = make_user()
    release = threading.Event()

    class SlowGenerator:
        def generate(self, request):
            release.wait(5)
            return {"sessions": []}

    try:
        result = plan_lifecycle.generate_plan(
            db_session, user_id, WEEK_START, generator=SlowGenerator(), timeout=0.05, today=WEEK_START
        )
    finally:
        release.set()

    assert result["success"] is False
    assert "timed out" in result["error"]
    assert db_session.query(WeeklyPlan).count() == 0


def test_malformed_generator_output_is_rejected(db_session, make_user) -> None:
    user_id = make_user()
    bad = RecordingGenerator(payload={"sessions": [{"domain": "cardio", "dayOfWeek": 9}]})

    result = plan_lifecycle.generate_plan(db_session, user_id, WEEK_START, generator=bad, today=WEEK_START)

    assert result["success"] is False
    assert result["error_type"] == "upstream"
    assert db_session.query(PlannedSession).count() == 0


def test_validation_issues_are_stored_not_raised(db_session, make_user) -> None:
    user_id = make_user()
    payload = {
        "introMessage": "Short week",
        "sessions": [
            {"domain": "cardio", "dayOfWeek": 2, "title": "Quick jog", "detail": '{"zone": 2, "targetMinutes": 40}'},
            {"domain": "sleep", "dayOfWeek": 2, "title": "Ignored", "detail": {}},
        ],
    }

    result = plan_lifecycle.generate_plan(
        db_session, user_id, WEEK_START, generator=RecordingGenerator(payload=payload), today=WEEK_START
    )

    assert result["success"] is True
    assert result["session_count"] == 1
    assert len(result["issues"]) == 1 and "45" in result["issues"][0]
    plan = db_session.get(WeeklyPlan, UUID(result["plan_id"]))
    assert plan.generation_context["validation"] == result["issues"]
    session = _sessions(db_session, plan.id)[0]
    assert session.detail == {"zone": 2, "targetMinutes": 40}
    assert session.scheduled_date == WEEK_START + timedelta(days=1)


def test_unknown_user_is_not_found(db_session, generator) -> None:
    result = plan_lifecycle.generate_plan(db_session, uuid4(), WEEK_START, generator=generator, today=WEEK_START)

    assert result["success"] is False
    assert result["error_type"] == "not_found"
    assert generator.requests == []


def test_complete_is_idempotent(db_session, make_user, generator) -> None:
    user_id = make_user()
    plan = plan_lifecycle.generate_plan(db_session, user_id, WEEK_START, generator=generator, today=WEEK_START)
    session = _sessions(db_session, UUID(plan["plan_id"]))[0]

    first = plan_lifecycle.complete_session(db_session, user_id, session.id)
    second = plan_lifecycle.complete_session(db_session, user_id, session.id, {"ignored": True})

    assert first["already_completed"] is False
    assert second["already_completed"] is True
    assert second["session"]["completed_at"] == first["session"]["completed_at"]
    assert second["session"]["completed_detail"] is None
    completions = db_session.query(AgentActionLog).filter(AgentActionLog.action_type == "session_completed").count()
    assert completions == 1


def test_adapt_skip_reschedule_and_modify(db_session, make_user, generator) -> None:
    user_id = make_user()
    plan = plan_lifecycle.generate_plan(db_session, user_id, WEEK_START, generator=generator, today=WEEK_START)
    sessions = _sessions(db_session, UUID(plan["plan_id"]))
    cardio = [s for s in sessions if s.domain == "cardio" and s.detail.get("zone") == 2]

    skipped = plan_lifecycle.adapt_session(db_session, user_id, cardio[0].id, "skip", reason="Sick")
    moved = plan_lifecycle.adapt_session(
        db_session, user_id, cardio[1].id, "reschedule", new_date=WEEK_START + timedelta(days=6), reason="Busy"
    )
    modified = plan_lifecycle.adapt_session(
        db_session, user_id, cardio[2].id, "modify", patch={"duration": 30}, title="Short ride", reason="Tired"
    )

    assert skipped["session"]["status"] == "skipped"
    assert moved["session"]["day_of_week"] == 0
    assert moved["session"]["scheduled_date"] == (WEEK_START + timedelta(days=6)).isoformat()
    assert modified["session"]["title"] == "Short ride"
    assert modified["session"]["detail"]["duration"] == 30
    assert "targetMinutes" not in modified["session"]["detail"]
    assert modified["validation"]["valid"] is False
    assert any("30 min" in issue for issue in modified["validation"]["issues"])


def test_adapt_rejects_completed_and_out_of_week_changes(db_session, make_user, generator) -> None:
    user_id = make_user()
    plan = plan_lifecycle.generate_plan(db_session, user_id, WEEK_START, generator=generator, today=WEEK_START)
    first, second = _sessions(db_session, UUID(plan["plan_id"]))[:2]
    plan_lifecycle.complete_session(db_session, user_id, first.id)

    completed = plan_lifecycle.adapt_session(db_session, user_id, first.id, "skip", reason="oops")
    next_week = plan_lifecycle.adapt_session(
        db_session, user_id, second.id, "reschedule", new_date=WEEK_START + timedelta(days=8), reason="later"
    )
    bad_action = plan_lifecycle.adapt_session(db_session, user_id, second.id, "delete", reason="no")
    missing = plan_lifecycle.adapt_session(db_session, user_id, uuid4(), "skip", reason="no")

    assert completed["error_type"] == "state_mismatch"
    assert next_week["error_type"] == "invalid"
    assert bad_action["error_type"] == "invalid"
    assert missing["error_type"] == "not_found"
    db_session.refresh(first)
    assert first.status == "completed"


def test_skipped_session_cannot_be_completed(db_session, make_user, generator) -> None:
    user_id = make_user()
    plan = plan_lifecycle.generate_plan(db_session, user_id, WEEK_START, generator=generator, today=WEEK_START)
    session = _sessions(db_session, UUID(plan["plan_id"]))[0]
    plan_lifecycle.adapt_session(db_session, user_id, session.id, "skip", reason="Sick")

    result = plan_lifecycle.complete_session(db_session, user_id, session.id)

    assert result["error_type"] == "state_mismatch"


def test_extra_session_counts_toward_progress(db_session, make_user) -> None:
    user_id = make_user()

    result = plan_lifecycle.log_extra_session(
        db_session, user_id, "cardio", "Hike", {"duration": 90}, WEEK_START + timedelta(days=5)
    )

    assert result["session"]["is_extra"] is True
    assert result["session"]["plan_id"] is None
    assert result["session"]["status"] == "completed"
    assert result["progress"]["domains"]["cardio"] == {
        "label": "Cardio",
        "total": 1,
        "completed": 1,
        "skipped": 0,
        "rate": 1.0,
    }
    assert plan_lifecycle.log_extra_session(db_session, user_id, "sleep", "Nap")["error_type"] == "invalid"


def test_progress_rate_is_zero_without_sessions(db_session, make_user) -> None:
    user_id = make_user()

    progress = plan_lifecycle.week_progress(db_session, user_id, WEEK_START)

    assert all(domain["rate"] == 0.0 and domain["total"] == 0 for domain in progress["domains"].values())


def test_daily_habits_upsert_keeps_omitted_values(db_session, make_user) -> None:
    user_id = make_user()

    plan_lifecycle.log_daily_habits(db_session, user_id, steps=8500, day=WEEK_START)
    result = plan_lifecycle.log_daily_habits(db_session, user_id, sleep_hours=7.5, day=WEEK_START)

    assert result["logged"]["steps_actual"] == 8500
    assert result["logged"]["sleep_hours"] == 7.5
    assert result["logged"]["steps_target"] == 10_000
    summary = plan_lifecycle.week_progress(db_session, user_id, WEEK_START)["habits"]
    assert summary["sleep"]["nights_7_plus"] == 1
    assert plan_lifecycle.log_daily_habits(db_session, user_id, sleep_quality=9)["error_type"] == "invalid"


def test_week_and_today_views(db_session, make_user, generator) -> None:
    user_id = make_user()
    plan_lifecycle.generate_plan(db_session, user_id, WEEK_START, generator=generator, today=WEEK_START)
    draft = plan_lifecycle.generate_plan(
        db_session, user_id, WEEK_START, draft=True, generator=generator, today=WEEK_START
    )

    week = plan_lifecycle.week_view(db_session, user_id, WEEK_START + timedelta(days=2))
    today = plan_lifecycle.today_view(db_session, user_id, WEEK_START)
    history = plan_lifecycle.plan_history(db_session, user_id)

    assert week["week_start"] == WEEK_START.isoformat()
    assert week["draft"]["id"] == draft["plan_id"]
    assert len(week["sessions"]) == 13
    assert today["sessions"] and all(s["scheduled_date"] == WEEK_START.isoformat() for s in today["sessions"])
    assert today["tracking_briefs"]["nutrition"]["guidelines"]
    assert len(history["plans"]) == 2
