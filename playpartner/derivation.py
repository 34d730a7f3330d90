"""Status and risk derivation for partners.

Everything here is pure: the functions read attributes off ORM rows (or any
object with the same attribute names) and never touch the session.  Derived
values are recomputed on every read and are never written back.

Precedence for the effective status, first match wins:

1. blacklisted anywhere in the timeline, or any admin's latest status is
   "Do Not Engage"  ->  "Do Not Engage"
2. latest status of the admins, in ``ADMINS`` order
3. the partner's own ``status`` column, or "New Prospect"
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC
from typing import Any

from playpartner.models import ADMINS, DEFAULT_STATUS, DO_NOT_ENGAGE, RISK_TAG_GROUP


@dataclass
class PartnerSignals:
    avg_rating: float | None = None
    latest_statuses: dict[str, str | None] = field(default_factory=dict)
    is_blacklisted: bool = False
    has_risk_tags: bool = False
    risk_flag: bool = False
    conflict_flag: bool = False
    effective_status: str = DEFAULT_STATUS


def average_rating(assessments: Iterable[Any]) -> float | None:
    """Unrounded mean of the non-null ratings, ``None`` when nothing is rated."""
    ratings = [a.rating for a in assessments if a.rating is not None]
    if not ratings:
        return None
    return sum(ratings) / len(ratings)


def _created_key(assessment: Any) -> float:
    ts = getattr(assessment, "created_at", None)
    if ts is None:
        return float("-inf")
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.timestamp()


def latest_statuses(
    assessments: Iterable[Any], admins: Sequence[str] = ADMINS,
) -> dict[str, str | None]:
    """Status of each admin's most recent assessment.

    The most recent assessment wins even when it carries no status; older
    assessments are never consulted as a fallback.
    """
    # sorted() is stable with reverse=True, so equal timestamps keep row order
    ordered = sorted(assessments, key=_created_key, reverse=True)
    result: dict[str, str | None] = {}
    for admin in admins:
        latest = next((a for a in ordered if a.admin == admin), None)
        result[admin] = (latest.status or None) if latest is not None else None
    return result


def has_risk_tags(tag_names: Iterable[Any], tag_catalog: Iterable[Any]) -> bool:
    risk_names = {
        (t.tag_name or "").lower() for t in tag_catalog if t.tag_group == RISK_TAG_GROUP
    }
    if not risk_names:
        return False
    return any(str(name).lower() in risk_names for name in tag_names if name is not None)


def effective_status(
    base_status: str | None,
    latest: dict[str, str | None],
    is_blacklisted: bool,
    admins: Sequence[str] = ADMINS,
) -> str:
    if is_blacklisted or DO_NOT_ENGAGE in latest.values():
        return DO_NOT_ENGAGE
    for admin in admins:
        if latest.get(admin):
            return latest[admin]  # type: ignore[return-value]
    return base_status or DEFAULT_STATUS


def derive_signals(
    base_status: str | None,
    tag_names: Iterable[Any] | None,
    assessments: Sequence[Any] | None,
    tag_catalog: Iterable[Any] | None,
    admins: Sequence[str] = ADMINS,
) -> PartnerSignals:
    assessments = list(assessments or [])
    latest = latest_statuses(assessments, admins)
    blacklisted = any(bool(a.blacklisted) for a in assessments)
    risky_tags = has_risk_tags(tag_names or [], tag_catalog or [])
    opinions = {s for s in latest.values() if s is not None}
    return PartnerSignals(
        avg_rating=average_rating(assessments),
        latest_statuses=latest,
        is_blacklisted=blacklisted,
        has_risk_tags=risky_tags,
        risk_flag=blacklisted or risky_tags,
        # Missing opinions never count as disagreement
        conflict_flag=len(opinions) > 1,
        effective_status=effective_status(base_status, latest, blacklisted, admins),
    )
