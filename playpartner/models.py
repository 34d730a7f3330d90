from __future__ import annotations

from datetime import UTC, date, datetime

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from playpartner.utils import json_list

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

STATUS_OPTIONS = (
    "New Prospect",
    "Contacted",
    "Ready for Vetting",
    "Vetted",
    "Active",
    "On Pause",
    "Retired",
    "Do Not Engage",
)
DEFAULT_STATUS = "New Prospect"
DO_NOT_ENGAGE = "Do Not Engage"

BODY_BUILD_OPTIONS = ("Slim", "Average", "Athletic", "Muscular", "Stocky", "Large/Big", "Other")

# Reviewer identities, in status priority order (first wins)
ADMINS = ("Allison", "Roxanne")

TAG_GROUPS = ("Vibe", "Logistics", "Risk", "Admin")
RISK_TAG_GROUP = "Risk"

ROLES = ("admin", "viewer")


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class Partner(Base):
    __tablename__ = "partners"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    nickname: Mapped[str | None] = mapped_column(String(100), nullable=True)
    height: Mapped[str | None] = mapped_column(String(50), nullable=True)
    body_build: Mapped[str | None] = mapped_column(String(30), nullable=True)
    dob: Mapped[date | None] = mapped_column(Date, nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str | None] = mapped_column(String(30), nullable=True, default=DEFAULT_STATUS)
    referral_source: Mapped[str | None] = mapped_column(String(30), nullable=True)  # one of ADMINS
    tags_json: Mapped[str] = mapped_column(Text, default="[]")  # tag names, not ids
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    intimacy: Mapped[PartnerIntimacy | None] = relationship(
        "PartnerIntimacy", back_populates="partner", uselist=False, cascade="all, delete-orphan",
    )
    logistics: Mapped[PartnerLogistics | None] = relationship(
        "PartnerLogistics", back_populates="partner", uselist=False, cascade="all, delete-orphan",
    )
    media: Mapped[list[PartnerMedia]] = relationship(
        "PartnerMedia", back_populates="partner", cascade="all, delete-orphan",
        order_by="PartnerMedia.id",
    )
    assessments: Mapped[list[AdminAssessment]] = relationship(
        "AdminAssessment", back_populates="partner", cascade="all, delete-orphan",
        order_by="AdminAssessment.id",
    )

    @property
    def tags(self) -> list[str]:
        return json_list(self.tags_json)


class PartnerIntimacy(Base):
    __tablename__ = "partner_intimacy"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    partner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("partners.id", ondelete="CASCADE"), nullable=False, unique=True,
    )
    kinks_json: Mapped[str] = mapped_column(Text, default="[]")
    role_json: Mapped[str] = mapped_column(Text, default="[]")
    bedroom_style_json: Mapped[str] = mapped_column(Text, default="[]")
    appealing_characteristics_json: Mapped[str] = mapped_column(Text, default="[]")
    sexual_orientation: Mapped[str | None] = mapped_column(String(100), nullable=True)
    relationship_status: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phallic_length: Mapped[float | None] = mapped_column(Float, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    partner: Mapped[Partner] = relationship("Partner", back_populates="intimacy")


class PartnerLogistics(Base):
    __tablename__ = "partner_logistics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    partner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("partners.id", ondelete="CASCADE"), nullable=False, unique=True,
    )
    discreet_dl: Mapped[bool] = mapped_column(Boolean, default=False)
    hosting: Mapped[bool] = mapped_column(Boolean, default=False)
    car: Mapped[bool] = mapped_column(Boolean, default=False)
    street_address: Mapped[str | None] = mapped_column(Text, nullable=True)  # sensitive
    phone_number: Mapped[str | None] = mapped_column(String(50), nullable=True)  # sensitive
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    partner: Mapped[Partner] = relationship("Partner", back_populates="logistics")


class PartnerMedia(Base):
    __tablename__ = "partner_media"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    partner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("partners.id", ondelete="CASCADE"), nullable=False,
    )
    photo_face_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    photo_body_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    partner: Mapped[Partner] = relationship("Partner", back_populates="media")


class AdminAssessment(Base):
    __tablename__ = "admin_assessments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    partner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("partners.id", ondelete="CASCADE"), nullable=False,
    )
    admin: Mapped[str] = mapped_column(String(30), nullable=False)  # one of ADMINS
    status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 1-5
    blacklisted: Mapped[bool] = mapped_column(Boolean, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    partner: Mapped[Partner] = relationship("Partner", back_populates="assessments")


class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tag_name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    tag_group: Mapped[str] = mapped_column(String(30), nullable=False)  # one of TAG_GROUPS
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(300), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String(100), default="")
    last_name: Mapped[str] = mapped_column(String(100), default="")
    role: Mapped[str] = mapped_column(String(20), default="viewer")  # admin | viewer
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
