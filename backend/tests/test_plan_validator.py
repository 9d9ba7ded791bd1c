from __future__ import annotations

import copy

from weekwise.services.plan_generation import FallbackPlanGenerator, GenerationRequest
from weekwise.services.plan_validator import validate_sessions

from conftest import WEEK_START


def _cardio(title: str, zone, minutes) -> dict:
    return {"domain": "cardio", "title": title, "detail": {"zone": zone, "targetMinutes": minutes}}


def test_zone2_below_minimum_is_one_issue_naming_the_minimum() -> None:
    verdict = validate_sessions([_cardio("Easy ride", 2, 40)])

    assert not verdict.valid
    assert len(verdict.issues) == 1
    assert "45" in verdict.issues[0]
    assert "Easy ride" in verdict.issues[0]


def test_zone2_at_minimum_is_valid() -> None:
    verdict = validate_sessions([_cardio("Easy ride", 2, 45)])

    assert verdict.valid
    assert verdict.issues == []


def test_too_many_zone5_sessions_reports_the_count() -> None:
    sessions = [_cardio(f"Intervals {i}", 5, 25) for i in range(3)]

    verdict = validate_sessions(sessions)

    assert len(verdict.issues) == 1
    assert "3" in verdict.issues[0]
    assert "zone5" in verdict.issues[0]


def test_volume_share_below_floor_is_flagged() -> None:
    sessions = [_cardio("Z2 a", 2, 60), _cardio("Z2 b", 2, 60), _cardio("Z5", 5, 80)]

    verdict = validate_sessions(sessions)

    assert len(verdict.issues) == 1
    assert "60%" in verdict.issues[0]
    assert "80%" in verdict.issues[0]


def test_volume_share_at_target_is_not_flagged() -> None:
    sessions = [_cardio("Z2 a", 2, 80), _cardio("Z2 b", 2, 80), _cardio("Z5", 5, 40)]

    assert validate_sessions(sessions).valid


def test_aliases_and_string_values_resolve() -> None:
    sessions = [
        {"domain": "cardio", "title": "Run", "detail": {"zone": "Zone 2", "durationMinutes": "50 min"}},
        {"domain": "cardio", "title": "Bike", "detail": {"hr_zone": 2, "duration_min": 45}},
    ]

    assert validate_sessions(sessions).valid


def test_unreadable_duration_is_an_issue() -> None:
    verdict = validate_sessions([{"domain": "cardio", "title": "Walk", "detail": {"zone": 2}}])

    assert len(verdict.issues) == 1
    assert "no readable duration" in verdict.issues[0]


def test_undeclared_zone_is_unsupported() -> None:
    verdict = validate_sessions([_cardio("Tempo", 3, 40)])

    assert len(verdict.issues) == 1
    assert "zone3" in verdict.issues[0]
    assert "zone2, zone5" in verdict.issues[0]


def test_strength_requires_warm_up_and_cool_down() -> None:
    session = {"domain": "strength", "title": "Lift", "detail": {"duration": 50, "warmUp": "5 min"}}

    verdict = validate_sessions([session])

    assert verdict.issues == ["Strength session 'Lift' is missing a cool-down"]


def test_tracked_and_unknown_domains_are_ignored() -> None:
    sessions = [
        {"domain": "sleep", "title": "Sleep", "detail": {}},
        {"domain": "juggling", "title": "Juggle", "detail": {}},
    ]

    assert validate_sessions(sessions).valid


def test_validation_is_pure_and_deterministic() -> None:
    sessions = [_cardio("Short", 2, 30), _cardio("Odd", 4, 30), {"domain": "strength", "title": "Lift", "detail": "{}"}]
    snapshot = copy.deepcopy(sessions)

    first = validate_sessions(sessions)
    second = validate_sessions(sessions)

    assert first.to_dict() == second.to_dict()
    assert sessions == snapshot


def test_fallback_template_satisfies_every_rule() -> None:
    plan = FallbackPlanGenerator().generate(GenerationRequest(profile={}, week_start=WEEK_START))

    verdict = validate_sessions(plan.sessions)

    assert verdict.valid, verdict.issues
