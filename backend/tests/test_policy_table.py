from __future__ import annotations

import dataclasses

import pytest

from weekwise.services import policy_table
from weekwise.services.policy_table import (
    DOMAINS,
    POLICIES,
    SessionRule,
    domain_content,
    get_policy,
    prompt_brief,
)


def test_every_domain_has_a_policy() -> None:
    assert set(POLICIES) == set(DOMAINS)
    for domain in policy_table.SCHEDULED_DOMAINS:
        assert get_policy(domain).session_rules
        assert not get_policy(domain).tracked_only
    for domain in policy_table.TRACKED_DOMAINS:
        assert get_policy(domain).tracked_only


def test_cardio_constants() -> None:
    cardio = get_policy("cardio")

    assert cardio.subtypes == ("zone2", "zone5")
    assert cardio.rule_for("zone2").min_duration == 45
    assert cardio.rule_for("zone5").frequency == (1, 1)
    assert cardio.volume_share.floor_pct == 70
    assert cardio.allowed_subtypes_only is True
    assert cardio.daily_habits[0].target == 10_000


def test_strength_requires_warm_up_and_cool_down() -> None:
    strength = get_policy("strength")

    assert strength.required_fields == ("warm_up", "cool_down")
    assert strength.rule_for("strength").frequency == (2, 4)


def test_unknown_domain_raises() -> None:
    with pytest.raises(KeyError, match="Unknown domain"):
        get_policy("yoga")


def test_prompt_brief_is_limited_to_requested_domains() -> None:
    brief = prompt_brief(["cardio"])

    assert "- zone2: 45-90 min, 3-4 per week." in brief
    assert "meditation" not in brief
    assert "meditation" in prompt_brief()


def test_domain_content() -> None:
    content = domain_content("sleep")

    assert content.title == "Sleep"
    assert content.weekly_target == "49 hours of sleep per week"


def test_table_is_immutable() -> None:
    with pytest.raises(dataclasses.FrozenInstanceError):
        get_policy("cardio").label = "Running"


def test_table_check_rejects_bad_frequency_bounds() -> None:
    broken = dict(POLICIES)
    broken["cardio"] = dataclasses.replace(
        POLICIES["cardio"], session_rules=(SessionRule(type="zone2", frequency=(4, 2)),)
    )

    with pytest.raises(RuntimeError, match="Invalid frequency bounds"):
        policy_table._check_table(broken)


def test_table_check_rejects_scheduled_domain_without_rules() -> None:
    broken = dict(POLICIES)
    broken["strength"] = dataclasses.replace(POLICIES["strength"], session_rules=())

    with pytest.raises(RuntimeError, match="no session rules"):
        policy_table._check_table(broken)
