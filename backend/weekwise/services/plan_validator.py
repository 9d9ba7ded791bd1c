"""Rule-based validation of a week's sessions against the domain policy table."""
from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from weekwise.services import detail_fields
from weekwise.services.policy_table import DOMAINS, POLICIES, DomainPolicy

logger = logging.getLogger(__name__)


@dataclass
class ValidationVerdict:
    valid: bool
    issues: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "issues": list(self.issues)}


def _attr(session: Any, name: str) -> Any:
    if isinstance(session, Mapping):
        return session.get(name)
    return getattr(session, name, None)


def _num(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"


def resolve_subtype(policy: DomainPolicy, detail: Any) -> Optional[str]:
    if policy.constant_subtype:
        return policy.constant_subtype
    if not policy.subtype_attr:
        return None
    value = detail_fields.resolve(detail, policy.subtype_attr)
    if value is None:
        return None
    return policy.subtype_template.format(value)


def validate_sessions(
    sessions: Iterable[Any],
    policies: Optional[Mapping[str, DomainPolicy]] = None,
) -> ValidationVerdict:
    """Check sessions (ORM rows, payload models or mappings) against the policies.

    Pure: the same input always produces the same issues, in the same order.
    Sessions in unknown or tracked-only domains are ignored. Only the upper
    frequency bound is enforced since a partial week legitimately has fewer
    sessions than the weekly minimum.
    """
    policies = policies if policies is not None else POLICIES
    by_domain: Dict[str, List[Any]] = defaultdict(list)
    for session in sessions or ():
        domain = _attr(session, "domain")
        if isinstance(domain, str) and domain in policies:
            by_domain[domain].append(session)

    issues: List[str] = []
    ordered = [d for d in DOMAINS if d in by_domain] + [d for d in by_domain if d not in DOMAINS]
    for domain in ordered:
        policy = policies[domain]
        if policy.tracked_only:
            continue
        issues.extend(_validate_domain(policy, by_domain[domain]))

    if issues:
        logger.debug("Validation found %d issue(s)", len(issues))
    return ValidationVerdict(valid=not issues, issues=issues)


def _validate_domain(policy: DomainPolicy, sessions: List[Any]) -> List[str]:
    issues: List[str] = []
    counts: Counter = Counter()
    minutes_by_subtype: Dict[Optional[str], float] = defaultdict(float)
    total_minutes = 0.0

    for session in sessions:
        title = _attr(session, "title") or "Untitled session"
        detail = _attr(session, "detail")
        subtype = resolve_subtype(policy, detail)
        duration = detail_fields.resolve(detail, "duration")
        if duration is not None:
            total_minutes += duration
            minutes_by_subtype[subtype] += duration

        rule = policy.rule_for(subtype)
        if rule is None:
            if policy.allowed_subtypes_only:
                shown = subtype or "an unrecognized type"
                issues.append(
                    f"{policy.label} session '{title}' uses {shown}; only {', '.join(policy.subtypes)} are allowed"
                )
            continue

        counts[subtype] += 1
        if rule.min_duration is not None:
            if duration is None:
                issues.append(
                    f"{policy.label} session '{title}' has no readable duration "
                    f"(minimum {rule.min_duration} min for {rule.type})"
                )
            elif duration < rule.min_duration:
                issues.append(
                    f"{policy.label} session '{title}' is {_num(duration)} min, "
                    f"below the {rule.min_duration} min minimum for {rule.type}"
                )

        for required in policy.required_fields:
            if detail_fields.resolve(detail, required) is None:
                issues.append(
                    f"{policy.label} session '{title}' is missing a {detail_fields.FIELD_LABELS[required]}"
                )

    for rule in policy.session_rules:
        _, upper = rule.frequency
        if counts[rule.type] > upper:
            issues.append(
                f"{counts[rule.type]} {rule.type} sessions scheduled; at most {upper} per week allowed"
            )

    share_rule = policy.volume_share
    if share_rule and total_minutes > 0:
        share = minutes_by_subtype[share_rule.subtype] / total_minutes * 100
        if share < share_rule.floor_pct:
            issues.append(
                f"{share_rule.subtype} is {_num(round(share, 1))}% of {policy.domain} minutes; "
                f"should be ~{_num(share_rule.target_pct)}%"
            )
    return issues
