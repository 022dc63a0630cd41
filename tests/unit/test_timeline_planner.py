"""Timeline planner unit tests.

템플릿 선택 경계, 역산 날짜, 긴급 킥오프, 과거 마감 이름 반영을 확인합니다.
"""

from collections import Counter
from datetime import datetime, timedelta, timezone

import pytest

from proposaliq.exceptions import InputValidationError
from proposaliq.models import Proposal, TimelineRequest
from proposaliq.services.timeline_planner import (
    MAX_INTERNAL_DEADLINES,
    TimelinePlanner,
    days_until,
    parse_due_date,
    plan_timeline,
    select_template,
)

TODAY = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _due(days: int) -> datetime:
    return TODAY + timedelta(days=days)


class TestSelectTemplate:
    @pytest.mark.parametrize("days, expected", [
        (90, "comprehensive"),
        (60, "comprehensive"),
        (59, "accelerated"),
        (30, "accelerated"),
        (29, "rapid"),
        (14, "rapid"),
        (13, "emergency"),
        (0, "emergency"),
    ])
    def test_boundaries(self, days, expected):
        assert select_template(days) == expected


class TestDates:
    def test_parse_due_date_with_z_suffix(self):
        assert parse_due_date("2025-03-01T00:00:00Z") == datetime(2025, 3, 1, tzinfo=timezone.utc)

    def test_parse_date_only_is_utc(self):
        assert parse_due_date("2025-03-01").tzinfo is not None

    @pytest.mark.parametrize("value", ["not-a-date", None])
    def test_invalid_due_date(self, value):
        with pytest.raises(InputValidationError):
            parse_due_date(value)

    def test_days_until_rounds_up(self):
        assert days_until(TODAY + timedelta(days=10, hours=1), TODAY) == 11


class TestPlanTimeline:
    def test_comprehensive_template(self):
        result = plan_timeline(_due(100), TODAY, "RFP")
        timeline = result["suggested_timeline"]

        assert result["metadata"]["timeline_template"] == "comprehensive"
        assert result["metadata"]["days_until_due"] == 100
        assert result["metadata"]["historical_data_used"] is False
        assert len(timeline["internal_deadlines"]) == 9
        assert len(timeline["key_milestones"]) == 3

        by_name = {d["name"]: d for d in timeline["internal_deadlines"]}
        # 100 - 7 = 93일 전
        assert by_name["Initial Planning Complete"]["date"] == (_due(100) - timedelta(days=93)).isoformat()
        # floor(100 * 0.5) = 50일 전
        assert by_name["Pink Team Review"]["date"] == (_due(100) - timedelta(days=50)).isoformat()
        assert by_name["Final Package Assembly"]["date"] == (_due(100) - timedelta(days=2)).isoformat()

    def test_results_sorted_by_date(self):
        deadlines = plan_timeline(_due(45), TODAY, "RFP")["suggested_timeline"]["internal_deadlines"]
        dates = [d["date"] for d in deadlines]
        assert dates == sorted(dates)

    def test_items_are_ai_generated_and_pending(self):
        deadline = plan_timeline(_due(20), TODAY, "RFP")["suggested_timeline"]["internal_deadlines"][0]
        assert deadline["ai_generated"] is True
        assert deadline["status"] == "pending"
        assert deadline["id"].startswith("timeline_")

    def test_emergency_kickoff_is_today(self):
        result = plan_timeline(_due(10), TODAY, "RFP")
        milestones = result["suggested_timeline"]["key_milestones"]
        assert result["metadata"]["timeline_template"] == "emergency"
        assert len(result["suggested_timeline"]["internal_deadlines"]) == 4
        assert milestones == [
            {**milestones[0], "name": "Emergency Kick-off", "date": TODAY.isoformat()}
        ]

    def test_historical_names_need_two_occurrences(self):
        counts = Counter({"Security Review": 3, "Legal Review": 1, "Pink Team Review": 5})
        result = plan_timeline(_due(100), TODAY, "SBIR", counts)
        names = [d["name"] for d in result["suggested_timeline"]["internal_deadlines"]]

        assert "Security Review" in names
        assert "Legal Review" not in names
        assert names.count("Pink Team Review") == 1
        assert result["metadata"]["historical_data_used"] is True

        added = next(d for d in result["suggested_timeline"]["internal_deadlines"] if d["name"] == "Security Review")
        assert added["notes"] == "Based on historical data from similar SBIR proposals"
        # floor(100 * 0.35) = 35일 전
        assert added["date"] == (_due(100) - timedelta(days=35)).isoformat()

    def test_internal_deadlines_capped(self):
        counts = Counter({f"Custom Step {i}": 2 for i in range(10)})
        result = plan_timeline(_due(100), TODAY, "RFP", counts)
        assert len(result["suggested_timeline"]["internal_deadlines"]) == MAX_INTERNAL_DEADLINES


class TestTimelinePlanner:
    async def test_missing_parameters(self, store):
        with pytest.raises(InputValidationError):
            await TimelinePlanner(store).generate(TimelineRequest(proposal_id="p", organization_id="o"))

    async def test_uses_same_org_and_type_history(self, store):
        history = [{"name": "Color Team Review"}]
        await store.create(Proposal, {
            "proposal_name": "A", "organization_id": "org-1", "proposal_type_category": "RFP",
            "internal_deadlines": history,
        })
        await store.create(Proposal, {
            "proposal_name": "B", "organization_id": "org-1", "proposal_type_category": "RFP",
            "internal_deadlines": history,
        })
        await store.create(Proposal, {
            "proposal_name": "C", "organization_id": "org-2", "proposal_type_category": "RFP",
            "internal_deadlines": history * 5,
        })

        result = await TimelinePlanner(store).generate(
            TimelineRequest(proposal_id="new", organization_id="org-1", final_due_date=_due(70).isoformat()),
            today=TODAY,
        )
        names = [d["name"] for d in result["suggested_timeline"]["internal_deadlines"]]
        assert "Color Team Review" in names
        assert result["metadata"]["proposal_type"] == "RFP"
        assert result["metadata"]["days_until_due"] == 70
