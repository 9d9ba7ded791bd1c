"""Shallow merging of a modification patch into a session detail."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from weekwise.services.detail_fields import FIELD_ALIASES

_ALIAS_GROUPS = {name: attr for attr, candidates in FIELD_ALIASES.items() for name, _ in candidates}


def merge_detail(detail: Optional[Mapping[str, Any]], patch: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Return a new detail with ``patch`` applied on top of ``detail``.

    Top-level keys are replaced, not deep-merged. When the patch sets one
    spelling of an aliased attribute (``duration`` vs ``targetMinutes``), the
    other spellings are removed so readers cannot pick up the stale value.
    A ``None`` value in the patch deletes the key.
    """
    merged: Dict[str, Any] = dict(detail or {})
    for key, value in (patch or {}).items():
        attr = _ALIAS_GROUPS.get(key)
        if attr:
            for alias, _ in FIELD_ALIASES[attr]:
                if alias != key:
                    merged.pop(alias, None)
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    return merged
