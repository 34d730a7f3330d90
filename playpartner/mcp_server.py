from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, contextmanager

from mcp.server.fastmcp import FastMCP

from playpartner import services
from playpartner.db import get_session, init_db
from playpartner.models import ADMINS, STATUS_OPTIONS, TAG_GROUPS

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def playpartner_lifespan(server: FastMCP) -> AsyncIterator[None]:
    init_db()
    yield


mcp = FastMCP(
    "PlayPartner",
    instructions=(
        "PlayPartner tracks partners, admin assessments and tags. These tools are read-only. "
        "Start with get_dashboard() for counts and review queues, then list_partners() "
        "to browse, then get_partner(id) for the full record and assessment timeline."
    ),
    lifespan=playpartner_lifespan,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@contextmanager
def _session():
    session = get_session()
    try:
        yield session
    finally:
        session.close()


def _brief(partner: dict) -> dict:
    """Partner without the nested detail rows, for list output."""
    return {k: v for k, v in partner.items() if k not in ("intimacy", "logistics", "media", "assessments")}


# ---------------------------------------------------------------------------
# Resource
# ---------------------------------------------------------------------------


@mcp.resource("playpartner://overview")
def playpartner_overview() -> str:
    """Overview of PlayPartner: data model and how derived fields are computed."""
    return json.dumps({
        "system": "PlayPartner: private partner tracking",
        "data_model": {
            "partner": "Identity record with a base status and a list of tag names.",
            "assessment": f"Append-only observation by one of {', '.join(ADMINS)}: status, rating 1-5, blacklisted, notes.",
            "tag": f"Named label in one of the groups {', '.join(TAG_GROUPS)}.",
        },
        "statuses": list(STATUS_OPTIONS),
        "derived_fields": {
            "avg_rating": "Mean of non-null ratings, null if none.",
            "effective_status": (
                "Do Not Engage if blacklisted or any admin's latest status is Do Not Engage; "
                f"otherwise the latest status of {ADMINS[0]}, then {ADMINS[1]}; otherwise the base status."
            ),
            "risk_flag": "Blacklisted, or tagged with a Risk-group tag (case-insensitive).",
            "conflict_flag": "Both admins' latest statuses are set and differ.",
        },
    }, indent=2)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool()
def get_dashboard() -> dict:
    """Totals plus vetting, risk, conflict and recent partner queues."""
    with _session() as session:
        data = services.compute_dashboard(session)
    for key in ("vetting_queue", "risk_list", "conflicts_list", "recent_partners"):
        data[key] = [_brief(p) for p in data[key]]
    return data


@mcp.tool()
def list_partners(
    status: str | None = None, search: str | None = None,
    has_risk: bool | None = None, has_conflict: bool | None = None, limit: int = 50,
) -> list[dict]:
    """List partners with their derived fields.

    Args:
        status: Filter by effective status, e.g. "Ready for Vetting".
        search: Case-insensitive substring of full name or nickname.
        has_risk: Only partners with the risk flag.
        has_conflict: Only partners whose admins disagree.
        limit: Max results (default 50, max 500).
    """
    with _session() as session:
        items = services.filter_partners(
            services.get_all_partners(session), status=status, search=search,
            has_risk=has_risk, has_conflict=has_conflict,
        )
    return [_brief(p) for p in items[:max(1, min(limit, 500))]]


@mcp.tool()
def get_partner(partner_id: int) -> dict:
    """Full partner record including details, media and the assessment timeline."""
    with _session() as session:
        partner = services.get_partner(session, partner_id)
    return partner if partner is not None else {"error": f"Partner {partner_id} not found"}


@mcp.tool()
def list_tags() -> list[dict]:
    """Tag catalog ordered by group and name."""
    with _session() as session:
        return [services.tag_dict(t) for t in services.list_tags(session)]


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """Run the PlayPartner MCP server over stdio."""
    mcp.run()


if __name__ == "__main__":
    main()
