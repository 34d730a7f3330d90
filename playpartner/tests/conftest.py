from __future__ import annotations

import os

# Keep the app lifespan off the on-disk database
os.environ.setdefault("PLAYPARTNER_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("PLAYPARTNER_ENV", "test")

from datetime import UTC, datetime  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from playpartner.db import make_engine  # noqa: E402
from playpartner.models import AdminAssessment, Base, Partner, Tag  # noqa: E402


@pytest.fixture()
def engine():
    """In-memory SQLite shared by every connection (StaticPool)."""
    eng = make_engine("sqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(eng)
    return eng


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def session(session_factory):
    sess = session_factory()
    try:
        yield sess
    finally:
        sess.close()


@pytest.fixture()
def risk_tags(session: Session) -> list[Tag]:
    tags = [
        Tag(tag_name="High Risk", tag_group="Risk"),
        Tag(tag_name="Flaky", tag_group="Risk"),
        Tag(tag_name="Fun", tag_group="Vibe"),
    ]
    session.add_all(tags)
    session.flush()
    return tags


@pytest.fixture()
def make_partner(session: Session):
    def _make(full_name: str = "Sam Rivers", created_at: datetime | None = None, **kwargs) -> Partner:
        partner = Partner(
            full_name=full_name,
            created_at=created_at or datetime(2024, 6, 1, tzinfo=UTC),
            **kwargs,
        )
        session.add(partner)
        session.flush()
        return partner
    return _make


@pytest.fixture()
def assess(session: Session):
    def _assess(partner: Partner, admin: str, status: str | None = None, *, day: int = 1,
                rating: int | None = None, blacklisted: bool = False) -> AdminAssessment:
        row = AdminAssessment(
            partner_id=partner.id, admin=admin, status=status, rating=rating,
            blacklisted=blacklisted, created_at=datetime(2024, 6, day, tzinfo=UTC),
        )
        session.add(row)
        session.flush()
        return row
    return _assess
