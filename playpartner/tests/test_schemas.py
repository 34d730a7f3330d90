"""Request schemas validate against the vocabularies declared in models."""
from __future__ import annotations

from typing import get_args

import pytest
from pydantic import ValidationError

from playpartner import schemas
from playpartner.models import ADMINS, BODY_BUILD_OPTIONS, ROLES, STATUS_OPTIONS, TAG_GROUPS
from playpartner.schemas import AssessmentCreate, PartnerCreate, TagCreate, UserOut


@pytest.mark.parametrize("alias,values", [
    (schemas.AdminName, ADMINS),
    (schemas.Status, STATUS_OPTIONS),
    (schemas.BodyBuild, BODY_BUILD_OPTIONS),
    (schemas.TagGroup, TAG_GROUPS),
    (schemas.Role, ROLES),
])
def test_literals_mirror_model_tuples(alias, values):
    assert get_args(alias) == values


@pytest.mark.parametrize("admin", ADMINS)
def test_every_admin_can_assess(admin):
    assert AssessmentCreate(partner_id=1, admin=admin).admin == admin


def test_unknown_admin_rejected():
    with pytest.raises(ValidationError):
        AssessmentCreate(partner_id=1, admin="Mallory")


@pytest.mark.parametrize("build", BODY_BUILD_OPTIONS)
def test_every_body_build_accepted(build):
    assert PartnerCreate(full_name="Sam", body_build=build).body_build == build


def test_partner_defaults_to_first_status():
    assert PartnerCreate(full_name="Sam").status == STATUS_OPTIONS[0]


def test_tag_group_outside_catalog_rejected():
    with pytest.raises(ValidationError):
        TagCreate(tag_name="x", tag_group="Misc")


def test_user_role_is_validated():
    with pytest.raises(ValidationError):
        UserOut(id=1, email="a@example.com", role="owner")
