"""CSV exports of partners and assessments."""
from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

PARTNER_HEADER = (
    "ID,Full Name,Nickname,City,Status,Body Build,Height,Referral Source,"
    "Average Rating,Effective Status,Risk Flag,Conflict Flag"
)
ASSESSMENT_HEADER = "ID,Partner ID,Partner Name,Admin,Status,Rating,Blacklisted,Notes,Created At"


def _q(value: object) -> str:
    """Double-quote a text field, doubling any embedded quotes."""
    text = "" if value is None else str(value)
    return '"' + text.replace('"', '""') + '"'


def _yn(flag: object) -> str:
    return "Yes" if flag else "No"


def _one_decimal(value: float | None) -> str:
    if value is None:
        return ""
    # Half-up on the exact binary value: 4.25 -> "4.3"
    return str(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def export_filename(kind: str, today: date | None = None) -> str:
    return f"{kind}-{(today or date.today()).isoformat()}.csv"


def partners_csv(partners: list[dict]) -> str:
    rows = [PARTNER_HEADER]
    for p in partners:
        avg = p.get("avg_rating")
        rows.append(",".join([
            str(p["id"]),
            _q(p["full_name"]),
            _q(p.get("nickname")),
            _q(p.get("city")),
            _q(p.get("status")),
            _q(p.get("body_build")),
            _q(p.get("height")),
            _q(p.get("referral_source")),
            _one_decimal(avg),
            _q(p["effective_status"]),
            _yn(p["risk_flag"]),
            _yn(p["conflict_flag"]),
        ]))
    return "\n".join(rows) + "\n"


def assessments_csv(assessments: list[dict]) -> str:
    rows = [ASSESSMENT_HEADER]
    for a in assessments:
        partner = a.get("partner") or {}
        rows.append(",".join([
            str(a["id"]),
            str(a["partner_id"]),
            _q(partner.get("full_name")),
            _q(a["admin"]),
            _q(a.get("status")),
            str(a["rating"]) if a.get("rating") is not None else "",
            _yn(a.get("blacklisted")),
            _q(a.get("notes")),
            a.get("created_at") or "",
        ]))
    return "\n".join(rows) + "\n"
