"""Pydantic request/response schemas for the PlayPartner API."""
from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from playpartner.models import (
    ADMINS,
    BODY_BUILD_OPTIONS,
    DEFAULT_STATUS,
    ROLES,
    STATUS_OPTIONS,
    TAG_GROUPS,
)

# Closed vocabularies are defined once, in models; these only mirror them for validation
Status = Literal[STATUS_OPTIONS]
BodyBuild = Literal[BODY_BUILD_OPTIONS]
AdminName = Literal[ADMINS]
TagGroup = Literal[TAG_GROUPS]
Role = Literal[ROLES]


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class PartnerCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    nickname: str | None = None
    height: str | None = None
    body_build: BodyBuild | None = None
    dob: date | None = None
    city: str | None = None
    status: Status = DEFAULT_STATUS
    referral_source: AdminName | None = None
    tags: list[str] = []


class PartnerUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    nickname: str | None = None
    height: str | None = None
    body_build: BodyBuild | None = None
    dob: date | None = None
    city: str | None = None
    status: Status | None = None
    referral_source: AdminName | None = None
    tags: list[str] | None = None


class IntimacyIn(BaseModel):
    kinks: list[str] | None = None
    role: list[str] | None = None
    bedroom_style: list[str] | None = None
    appealing_characteristics: list[str] | None = None
    sexual_orientation: str | None = None
    relationship_status: str | None = None
    phallic_length: float | None = Field(default=None, ge=0, lt=1000)
    notes: str | None = None

    @field_validator("phallic_length")
    @classmethod
    def one_decimal_place(cls, v: float | None) -> float | None:
        return round(v, 1) if v is not None else None


class LogisticsIn(BaseModel):
    discreet_dl: bool | None = None
    hosting: bool | None = None
    car: bool | None = None
    street_address: str | None = None
    phone_number: str | None = None
    city: str | None = None


class MediaCreate(BaseModel):
    photo_face_url: str | None = None
    photo_body_url: str | None = None


class AssessmentCreate(BaseModel):
    partner_id: int
    admin: AdminName
    status: Status | None = None
    rating: int | None = Field(default=None, ge=1, le=5)
    blacklisted: bool = False
    notes: str | None = None


class TagCreate(BaseModel):
    tag_name: str = Field(min_length=1, max_length=100)
    tag_group: TagGroup

    @field_validator("tag_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("tag_name must not be blank")
        return v


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class IntimacyOut(BaseModel):
    id: int
    partner_id: int
    kinks: list[str] = []
    role: list[str] = []
    bedroom_style: list[str] = []
    appealing_characteristics: list[str] = []
    sexual_orientation: str | None = None
    relationship_status: str | None = None
    phallic_length: float | None = None
    notes: str | None = None
    updated_at: str | None = None


class LogisticsOut(BaseModel):
    id: int
    partner_id: int
    discreet_dl: bool = False
    hosting: bool = False
    car: bool = False
    street_address: str | None = None
    phone_number: str | None = None
    city: str | None = None
    updated_at: str | None = None


class MediaOut(BaseModel):
    id: int
    partner_id: int
    photo_face_url: str | None = None
    photo_body_url: str | None = None
    created_at: str | None = None


class AssessmentOut(BaseModel):
    id: int
    partner_id: int
    admin: str
    status: str | None = None
    rating: int | None = None
    blacklisted: bool = False
    notes: str | None = None
    created_at: str | None = None


class PartnerStub(BaseModel):
    id: int
    full_name: str


class AssessmentWithPartner(AssessmentOut):
    partner: PartnerStub | None = None


class TagOut(BaseModel):
    id: int
    tag_name: str
    tag_group: str
    created_at: str | None = None


class PartnerOut(BaseModel):
    id: int
    full_name: str
    nickname: str | None = None
    height: str | None = None
    body_build: str | None = None
    dob: str | None = None
    city: str | None = None
    status: str | None = None
    referral_source: str | None = None
    tags: list[str] = []
    created_at: str | None = None
    updated_at: str | None = None
    intimacy: IntimacyOut | None = None
    logistics: LogisticsOut | None = None
    media: list[MediaOut] = []
    assessments: list[AssessmentOut] = []
    # Derived on read, never stored
    avg_rating: float | None = None
    latest_statuses: dict[str, str | None] = {}
    effective_status: str
    risk_flag: bool
    conflict_flag: bool
    is_blacklisted: bool


class DashboardOut(BaseModel):
    total_partners: int
    active_partners: int
    vetting_queue: list[PartnerOut]
    risk_list: list[PartnerOut]
    conflicts_list: list[PartnerOut]
    recent_partners: list[PartnerOut]


class UserOut(BaseModel):
    id: int
    email: str
    first_name: str = ""
    last_name: str = ""
    role: Role
