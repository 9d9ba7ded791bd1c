from __future__ import annotations

import pytest

from weekwise.services.callbacks import (
    Callback,
    draft_callback,
    onboarding_callback,
    parse_callback,
    session_callback,
)


@pytest.mark.parametrize(
    "data, expected",
    [
        ("ob:select:experience:beginner", Callback("ob", "select", "experience", "beginner")),
        ("ob:toggle:equipment:__none__", Callback("ob", "toggle", "equipment", "__none__")),
        ("ob:select:wake:06:30", Callback("ob", "select", "wake", "06:30")),
        ("ob:done:equipment", Callback("ob", "done", "equipment")),
        ("act:complete:abc", Callback("act", "complete", "abc")),
        ("act:tomorrow:abc", Callback("act", "tomorrow", "abc")),
        ("draft:confirm:p1", Callback("draft", "confirm", "p1")),
        ("draft:moveto:s1:6", Callback("draft", "moveto", "s1", "6")),
        ("cmd:today", Callback("cmd", "today")),
    ],
)
def test_parse_callback(data, expected) -> None:
    assert parse_callback(data) == expected


@pytest.mark.parametrize(
    "data",
    [
        None,
        "",
        "ob",
        ":select:x:y",
        "ob:select:experience",
        "ob:jump:experience:x",
        "ob:done:",
        "act:complete",
        "act:explode:abc",
        "act:complete:abc:extra",
        "draft:moveto:s1:7",
        "draft:moveto:s1:monday",
        "draft:confirm:",
        "cmd:today:now",
        "zzz:op:x",
    ],
)
def test_parse_callback_rejects_malformed(data) -> None:
    assert parse_callback(data) is None


def test_builders_round_trip_through_the_parser() -> None:
    assert onboarding_callback("done", "equipment") == "ob:done:equipment"
    assert parse_callback(onboarding_callback("select", "days", "3")).value == "3"
    assert session_callback("skip", "s-1") == "act:skip:s-1"
    assert draft_callback("moveto", "s-1", 2) == "draft:moveto:s-1:2"
    assert parse_callback(draft_callback("confirm", "p-1")).target == "p-1"
