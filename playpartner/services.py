"""Shared business logic for the PlayPartner API and MCP server."""
from __future__ import annotations

import json
import logging
from collections import defaultdict
from collections.abc import Sequence
from datetime import date, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from playpartner.config import settings
from playpartner.derivation import derive_signals
from playpartner.models import (
    AdminAssessment,
    Partner,
    PartnerIntimacy,
    PartnerLogistics,
    PartnerMedia,
    Tag,
    utcnow,
)
from playpartner.utils import json_list

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Shared field tuples
# ---------------------------------------------------------------------------

PARTNER_FIELDS = (
    "id", "full_name", "nickname", "height", "body_build", "city", "status", "referral_source",
)

UPDATABLE_PARTNER_FIELDS = (
    "full_name", "nickname", "height", "body_build", "dob", "city", "status", "referral_source",
)

INTIMACY_FIELDS = ("sexual_orientation", "relationship_status", "phallic_length", "notes")
INTIMACY_LIST_FIELDS = ("kinks", "role", "bedroom_style", "appealing_characteristics")

LOGISTICS_FLAGS = ("discreet_dl", "hosting", "car")
LOGISTICS_FIELDS = LOGISTICS_FLAGS + ("street_address", "phone_number", "city")

ACTIVE_STATUS = "Active"
VETTING_STATUS = "Ready for Vetting"

# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def partner_fields(partner: Partner) -> dict:
    base = {f: getattr(partner, f) for f in PARTNER_FIELDS}
    base["dob"] = _iso(partner.dob)
    base["tags"] = partner.tags
    base["created_at"] = _iso(partner.created_at)
    base["updated_at"] = _iso(partner.updated_at)
    return base


def intimacy_dict(row: PartnerIntimacy) -> dict:
    result = {"id": row.id, "partner_id": row.partner_id}
    result.update({f: getattr(row, f) for f in INTIMACY_FIELDS})
    result.update({f: json_list(getattr(row, f"{f}_json")) for f in INTIMACY_LIST_FIELDS})
    result["updated_at"] = _iso(row.updated_at)
    return result


def logistics_dict(row: PartnerLogistics) -> dict:
    result = {"id": row.id, "partner_id": row.partner_id}
    result.update({f: getattr(row, f) for f in LOGISTICS_FIELDS})
    result["updated_at"] = _iso(row.updated_at)
    return result


def media_dict(row: PartnerMedia) -> dict:
    return {
        "id": row.id, "partner_id": row.partner_id,
        "photo_face_url": row.photo_face_url, "photo_body_url": row.photo_body_url,
        "created_at": _iso(row.created_at),
    }


def assessment_dict(row: AdminAssessment) -> dict:
    return {
        "id": row.id, "partner_id": row.partner_id, "admin": row.admin,
        "status": row.status, "rating": row.rating, "blacklisted": bool(row.blacklisted),
        "notes": row.notes, "created_at": _iso(row.created_at),
    }


def tag_dict(row: Tag) -> dict:
    return {
        "id": row.id, "tag_name": row.tag_name, "tag_group": row.tag_group,
        "created_at": _iso(row.created_at),
    }


def compute_partner_fields(
    partner: Partner,
    intimacy: PartnerIntimacy | None = None,
    logistics: PartnerLogistics | None = None,
    media: Sequence[PartnerMedia] | None = None,
    assessments: Sequence[AdminAssessment] | None = None,
    tags: Sequence[Tag] | None = None,
) -> dict:
    """Partner record extended with its related rows and derived signals."""
    assessments = list(assessments or [])
    signals = derive_signals(partner.status, partner.tags, assessments, tags)
    return {
        **partner_fields(partner),
        "intimacy": intimacy_dict(intimacy) if intimacy is not None else None,
        "logistics": logistics_dict(logistics) if logistics is not None else None,
        "media": [media_dict(m) for m in media or []],
        "assessments": [assessment_dict(a) for a in assessments],
        "avg_rating": signals.avg_rating,
        "latest_statuses": signals.latest_statuses,
        "effective_status": signals.effective_status,
        "risk_flag": signals.risk_flag,
        "conflict_flag": signals.conflict_flag,
        "is_blacklisted": signals.is_blacklisted,
    }


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def _partners_newest_first():
    return select(Partner).order_by(Partner.created_at.desc(), Partner.id.desc())


def get_all_partners(session: Session) -> list[dict]:
    """Computed view of every partner, most recently created first.

    Loads each related table once and joins in memory.
    """
    partners = session.execute(_partners_newest_first()).scalars().all()
    intimacy = {r.partner_id: r for r in session.execute(select(PartnerIntimacy)).scalars()}
    logistics = {r.partner_id: r for r in session.execute(select(PartnerLogistics)).scalars()}
    media: dict[int, list[PartnerMedia]] = defaultdict(list)
    for row in session.execute(select(PartnerMedia).order_by(PartnerMedia.id)).scalars():
        media[row.partner_id].append(row)
    assessments: dict[int, list[AdminAssessment]] = defaultdict(list)
    for row in session.execute(_assessments_newest_first()).scalars():
        assessments[row.partner_id].append(row)
    tags = list_tags(session)

    return [
        compute_partner_fields(
            p, intimacy.get(p.id), logistics.get(p.id), media.get(p.id, []),
            assessments.get(p.id, []), tags,
        )
        for p in partners
    ]


def get_partner(session: Session, partner_id: int) -> dict | None:
    partner = session.get(Partner, partner_id)
    if partner is None:
        return None
    return partner_view(session, partner)


def partner_view(session: Session, partner: Partner) -> dict:
    return compute_partner_fields(
        partner,
        get_intimacy(session, partner.id),
        get_logistics(session, partner.id),
        list_media(session, partner.id),
        partner_assessments(session, partner.id),
        list_tags(session),
    )


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def filter_partners(
    items: list[dict], *, search=None, status=None, city=None, hosting=None, car=None,
    discreet=None, rating_min=None, rating_max=None, has_risk=None, has_conflict=None,
) -> list[dict]:
    """Filter computed partners; order is preserved."""
    if search:
        q = search.lower()
        items = [i for i in items if q in i["full_name"].lower()
                 or q in (i.get("nickname") or "").lower()]
    if status and status != "all":
        items = [i for i in items if i["effective_status"] == status]
    if city:
        c = city.lower()
        items = [i for i in items if c in (i.get("city") or "").lower()]
    for flag, key in ((hosting, "hosting"), (car, "car"), (discreet, "discreet_dl")):
        if flag:
            items = [i for i in items if (i.get("logistics") or {}).get(key)]
    if rating_min is not None:
        items = [i for i in items if (i["avg_rating"] or 0) >= rating_min]
    if rating_max is not None:
        items = [i for i in items if (i["avg_rating"] or 0) <= rating_max]
    if has_risk:
        items = [i for i in items if i["risk_flag"]]
    if has_conflict:
        items = [i for i in items if i["conflict_flag"]]
    return items


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


def compute_dashboard(session: Session) -> dict:
    partners = get_all_partners(session)
    return {
        "total_partners": len(partners),
        "active_partners": sum(1 for p in partners if p["effective_status"] == ACTIVE_STATUS),
        "vetting_queue": [p for p in partners if p["effective_status"] == VETTING_STATUS],
        "risk_list": [p for p in partners if p["risk_flag"]],
        "conflicts_list": [p for p in partners if p["conflict_flag"]],
        "recent_partners": partners[:settings.RECENT_PARTNERS_LIMIT],
    }


# ---------------------------------------------------------------------------
# Mutation helpers
# ---------------------------------------------------------------------------


def apply_updates(obj, updates: dict[str, Any], fields: tuple[str, ...]) -> None:
    """Apply non-None values from updates dict to an ORM object."""
    for f in fields:
        val = updates.get(f)
        if val is not None:
            setattr(obj, f, val)


def create_partner(session: Session, data: dict[str, Any]) -> Partner:
    """Create a partner (caller must commit)."""
    partner = Partner(tags_json=json.dumps(data.get("tags") or []))
    apply_updates(partner, data, UPDATABLE_PARTNER_FIELDS)
    session.add(partner)
    session.flush()
    return partner


def update_partner(partner: Partner, data: dict[str, Any]) -> Partner:
    """Partial update; ``None`` values are ignored (caller must commit)."""
    apply_updates(partner, data, UPDATABLE_PARTNER_FIELDS)
    if data.get("tags") is not None:
        partner.tags_json = json.dumps(data["tags"])
    partner.updated_at = utcnow()
    return partner


def get_intimacy(session: Session, partner_id: int) -> PartnerIntimacy | None:
    return session.execute(
        select(PartnerIntimacy).where(PartnerIntimacy.partner_id == partner_id)
    ).scalars().first()


def upsert_intimacy(session: Session, partner_id: int, data: dict[str, Any]) -> PartnerIntimacy:
    row = get_intimacy(session, partner_id)
    if row is None:
        row = PartnerIntimacy(partner_id=partner_id)
        session.add(row)
    for f in INTIMACY_FIELDS:
        if f in data:
            setattr(row, f, data[f])
    for f in INTIMACY_LIST_FIELDS:
        if f in data:
            setattr(row, f"{f}_json", json.dumps(data[f] or []))
    row.updated_at = utcnow()
    session.flush()
    return row


def get_logistics(session: Session, partner_id: int) -> PartnerLogistics | None:
    return session.execute(
        select(PartnerLogistics).where(PartnerLogistics.partner_id == partner_id)
    ).scalars().first()


def upsert_logistics(session: Session, partner_id: int, data: dict[str, Any]) -> PartnerLogistics:
    row = get_logistics(session, partner_id)
    if row is None:
        row = PartnerLogistics(partner_id=partner_id)
        session.add(row)
    for f in LOGISTICS_FIELDS:
        if f in data:
            setattr(row, f, bool(data[f]) if f in LOGISTICS_FLAGS else data[f])
    row.updated_at = utcnow()
    session.flush()
    return row


def list_media(session: Session, partner_id: int) -> list[PartnerMedia]:
    return list(session.execute(
        select(PartnerMedia).where(PartnerMedia.partner_id == partner_id).order_by(PartnerMedia.id)
    ).scalars())


def create_media(session: Session, partner_id: int, data: dict[str, Any]) -> PartnerMedia:
    row = PartnerMedia(
        partner_id=partner_id,
        photo_face_url=data.get("photo_face_url"),
        photo_body_url=data.get("photo_body_url"),
    )
    session.add(row)
    session.flush()
    return row


# ---------------------------------------------------------------------------
# Assessments
# ---------------------------------------------------------------------------


def _assessments_newest_first():
    return select(AdminAssessment).order_by(
        AdminAssessment.created_at.desc(), AdminAssessment.id.desc(),
    )


def list_assessments(session: Session) -> list[dict]:
    """Every assessment, most recent first, with a stub of its partner."""
    rows = session.execute(_assessments_newest_first()).scalars().all()
    names = dict(session.execute(select(Partner.id, Partner.full_name)).all())
    result = []
    for row in rows:
        item = assessment_dict(row)
        name = names.get(row.partner_id)
        item["partner"] = {"id": row.partner_id, "full_name": name} if name is not None else None
        result.append(item)
    return result


def partner_assessments(session: Session, partner_id: int) -> list[AdminAssessment]:
    return list(session.execute(
        _assessments_newest_first().where(AdminAssessment.partner_id == partner_id)
    ).scalars())


def create_assessment(session: Session, data: dict[str, Any]) -> AdminAssessment:
    """Append an assessment to a partner's timeline (caller must commit)."""
    row = AdminAssessment(
        partner_id=data["partner_id"], admin=data["admin"], status=data.get("status"),
        rating=data.get("rating"), blacklisted=bool(data.get("blacklisted")),
        notes=data.get("notes"),
    )
    session.add(row)
    session.flush()
    log.info("Assessment %s recorded for partner %s by %s", row.id, row.partner_id, row.admin)
    return row


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


def list_tags(session: Session) -> list[Tag]:
    return list(session.execute(select(Tag).order_by(Tag.tag_group, Tag.tag_name)).scalars())


def create_tag(session: Session, tag_name: str, tag_group: str) -> Tag | None:
    """Create a tag. Returns ``None`` if the name is already taken."""
    existing = session.execute(select(Tag).where(Tag.tag_name == tag_name)).scalars().first()
    if existing:
        return None
    tag = Tag(tag_name=tag_name, tag_group=tag_group)
    session.add(tag)
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        return None
    return tag
