from __future__ import annotations

from weekwise.services.detail_fields import resolve
from weekwise.services.detail_patch import merge_detail


def test_top_level_keys_are_replaced_not_merged() -> None:
    detail = {"exercises": [{"name": "Squat"}], "warmUp": "5 min", "notes": "keep"}

    merged = merge_detail(detail, {"exercises": [{"name": "Lunge"}]})

    assert merged == {"exercises": [{"name": "Lunge"}], "warmUp": "5 min", "notes": "keep"}
    assert detail["exercises"] == [{"name": "Squat"}]


def test_setting_one_alias_drops_the_stale_spelling() -> None:
    merged = merge_detail({"targetMinutes": 40, "duration": "40 min", "zone": 2}, {"duration_minutes": 50})

    assert merged == {"duration_minutes": 50, "zone": 2}
    assert resolve(merged, "duration") == 50


def test_none_deletes_the_key() -> None:
    merged = merge_detail({"zone": 2, "notes": "easy"}, {"notes": None})

    assert merged == {"zone": 2}


def test_empty_inputs() -> None:
    assert merge_detail(None, None) == {}
    assert merge_detail({"zone": 2}, {}) == {"zone": 2}
