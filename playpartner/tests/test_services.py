"""Store reads/writes, dashboard aggregation and filtering against SQLite."""
from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest
from sqlalchemy import select

from playpartner import services
from playpartner.models import AdminAssessment, Partner, PartnerMedia


class TestGetAllPartners:
    def test_newest_first(self, session, make_partner):
        make_partner("Old", created_at=datetime(2024, 1, 1, tzinfo=UTC))
        make_partner("New", created_at=datetime(2024, 3, 1, tzinfo=UTC))
        make_partner("Mid", created_at=datetime(2024, 2, 1, tzinfo=UTC))
        names = [p["full_name"] for p in services.get_all_partners(session)]
        assert names == ["New", "Mid", "Old"]

    def test_relations_joined_per_partner(self, session, make_partner, assess, risk_tags):
        a = make_partner("A", tags_json=json.dumps(["flaky"]))
        b = make_partner("B")
        assess(a, "Allison", "Active", rating=5)
        assess(b, "Roxanne", "Vetted", rating=2)
        services.upsert_logistics(session, b.id, {"hosting": True})
        session.add(PartnerMedia(partner_id=a.id, photo_face_url="https://img/a.jpg"))
        session.flush()

        by_name = {p["full_name"]: p for p in services.get_all_partners(session)}
        assert by_name["A"]["avg_rating"] == 5
        assert by_name["A"]["risk_flag"] is True
        assert by_name["A"]["logistics"] is None
        assert len(by_name["A"]["media"]) == 1
        assert by_name["B"]["effective_status"] == "Vetted"
        assert by_name["B"]["logistics"]["hosting"] is True
        assert by_name["B"]["media"] == []

    def test_empty(self, session):
        assert services.get_all_partners(session) == []


class TestGetPartner:
    def test_not_found(self, session):
        assert services.get_partner(session, 404) is None

    def test_new_assessment_visible_on_next_read(self, session, make_partner, assess):
        partner = make_partner(status="Contacted")
        assert services.get_partner(session, partner.id)["effective_status"] == "Contacted"

        services.create_assessment(session, {
            "partner_id": partner.id, "admin": "Roxanne", "status": "Ready for Vetting", "rating": 4,
        })
        session.commit()

        view = services.get_partner(session, partner.id)
        assert view["latest_statuses"]["Roxanne"] == "Ready for Vetting"
        assert view["effective_status"] == "Ready for Vetting"
        assert view["avg_rating"] == 4

    def test_list_and_detail_agree(self, session, make_partner, assess):
        partner = make_partner()
        assess(partner, "Allison", "Active", day=2)
        assess(partner, "Allison", "Retired", day=2)
        detail = services.get_partner(session, partner.id)
        listed = services.get_all_partners(session)[0]
        assert detail["effective_status"] == listed["effective_status"] == "Retired"

    def test_assessments_most_recent_first(self, session, make_partner, assess):
        partner = make_partner()
        assess(partner, "Allison", "Contacted", day=1)
        assess(partner, "Roxanne", "Vetted", day=9)
        statuses = [a["status"] for a in services.get_partner(session, partner.id)["assessments"]]
        assert statuses == ["Vetted", "Contacted"]


class TestDashboard:
    def test_buckets(self, session, make_partner, assess, risk_tags):
        ready = make_partner("Ready", status="Ready for Vetting")
        active = make_partner("Active", status="Active")
        blacklisted = make_partner("Banned", status="Active")
        split = make_partner("Split")
        make_partner("Tagged", tags_json='["HIGH RISK"]')
        assess(blacklisted, "Roxanne", "Active", blacklisted=True)
        assess(split, "Allison", "Active")
        assess(split, "Roxanne", "On Pause")

        data = services.compute_dashboard(session)
        assert data["total_partners"] == 5
        # "Active" base status plus Allison's "Active" opinion on Split
        assert data["active_partners"] == 2
        assert [p["id"] for p in data["vetting_queue"]] == [ready.id]
        assert {p["full_name"] for p in data["risk_list"]} == {"Banned", "Tagged"}
        assert [p["id"] for p in data["conflicts_list"]] == [split.id]
        assert active.id in {p["id"] for p in data["recent_partners"]}

    def test_recent_limited_to_ten(self, session, make_partner):
        for day in range(1, 13):
            make_partner(f"P{day}", created_at=datetime(2024, 5, day, tzinfo=UTC))
        recent = services.compute_dashboard(session)["recent_partners"]
        assert len(recent) == 10
        assert recent[0]["full_name"] == "P12"
        assert recent[-1]["full_name"] == "P3"

    def test_vetting_queue_is_not_trimmed(self, session, make_partner):
        for i in range(7):
            make_partner(f"V{i}", status="Ready for Vetting")
        assert len(services.compute_dashboard(session)["vetting_queue"]) == 7


class TestFilterPartners:
    @pytest.fixture()
    def items(self):
        base = {"nickname": None, "city": None, "logistics": None, "avg_rating": None,
                "risk_flag": False, "conflict_flag": False, "effective_status": "New Prospect"}
        return [
            {**base, "id": 1, "full_name": "Alex Stone", "nickname": "Rocky", "city": "Austin",
             "avg_rating": 4.5, "effective_status": "Active", "logistics": {"hosting": True, "car": False}},
            {**base, "id": 2, "full_name": "Blake Moss", "city": "Boston", "risk_flag": True},
            {**base, "id": 3, "full_name": "Casey Lee", "avg_rating": 2.0, "conflict_flag": True,
             "logistics": {"hosting": False, "car": True, "discreet_dl": True}},
        ]

    def test_no_filters(self, items):
        assert services.filter_partners(items) == items

    def test_search_name_and_nickname(self, items):
        assert [i["id"] for i in services.filter_partners(items, search="rock")] == [1]
        assert [i["id"] for i in services.filter_partners(items, search="MOSS")] == [2]

    def test_status_all_disables(self, items):
        assert len(services.filter_partners(items, status="all")) == 3
        assert [i["id"] for i in services.filter_partners(items, status="Active")] == [1]

    def test_city_substring(self, items):
        assert [i["id"] for i in services.filter_partners(items, city="bos")] == [2]

    def test_logistics_flags(self, items):
        assert [i["id"] for i in services.filter_partners(items, hosting=True)] == [1]
        assert [i["id"] for i in services.filter_partners(items, car=True, discreet=True)] == [3]
        assert len(services.filter_partners(items, hosting=False)) == 3

    def test_rating_range_counts_missing_as_zero(self, items):
        assert [i["id"] for i in services.filter_partners(items, rating_min=1)] == [1, 3]
        assert [i["id"] for i in services.filter_partners(items, rating_max=2)] == [2, 3]

    def test_flags(self, items):
        assert [i["id"] for i in services.filter_partners(items, has_risk=True)] == [2]
        assert [i["id"] for i in services.filter_partners(items, has_conflict=True)] == [3]


class TestMutations:
    def test_create_partner_defaults(self, session):
        partner = services.create_partner(session, {"full_name": "Dana", "tags": ["Fun"]})
        assert partner.id is not None
        assert partner.status == "New Prospect"
        assert partner.tags == ["Fun"]

    def test_update_ignores_none(self, session, make_partner):
        partner = make_partner(city="Denver", status="Contacted")
        services.update_partner(partner, {"city": None, "status": "Vetted", "tags": ["Chill"]})
        assert partner.city == "Denver"
        assert partner.status == "Vetted"
        assert partner.tags == ["Chill"]

    def test_upsert_intimacy_updates_in_place(self, session, make_partner):
        partner = make_partner()
        first = services.upsert_intimacy(session, partner.id, {"kinks": ["a"], "notes": "x"})
        second = services.upsert_intimacy(session, partner.id, {"notes": "y"})
        assert first.id == second.id
        out = services.intimacy_dict(second)
        assert out["kinks"] == ["a"]
        assert out["notes"] == "y"

    def test_upsert_logistics_coerces_flags(self, session, make_partner):
        partner = make_partner()
        row = services.upsert_logistics(session, partner.id, {"car": None, "phone_number": "555"})
        assert row.car is False
        assert row.phone_number == "555"

    def test_delete_partner_cascades(self, session, make_partner, assess):
        partner = make_partner()
        assess(partner, "Allison", "Active")
        services.create_media(session, partner.id, {"photo_face_url": "u"})
        services.upsert_logistics(session, partner.id, {"hosting": True})
        session.commit()
        session.delete(session.get(Partner, partner.id))
        session.commit()
        assert session.execute(select(AdminAssessment)).scalars().all() == []
        assert session.execute(select(PartnerMedia)).scalars().all() == []
        assert services.get_logistics(session, partner.id) is None


class TestAssessmentsAndTags:
    def test_list_assessments_with_partner_stub(self, session, make_partner, assess):
        partner = make_partner("Evan")
        assess(partner, "Allison", "Contacted", day=1)
        assess(partner, "Roxanne", "Vetted", day=2)
        rows = services.list_assessments(session)
        assert [r["status"] for r in rows] == ["Vetted", "Contacted"]
        assert rows[0]["partner"] == {"id": partner.id, "full_name": "Evan"}

    def test_create_tag_duplicate(self, session):
        assert services.create_tag(session, "Night Owl", "Vibe") is not None
        assert services.create_tag(session, "Night Owl", "Admin") is None

    def test_tags_ordered_by_group_then_name(self, session, risk_tags):
        names = [t.tag_name for t in services.list_tags(session)]
        assert names == ["Flaky", "High Risk", "Fun"]
