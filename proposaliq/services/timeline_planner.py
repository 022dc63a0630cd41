"""
예측 타임라인 생성 서비스.

제출 마감일까지 남은 일수로 템플릿을 고르고, 마감일에서 거꾸로 계산한
내부 마감(internal deadlines)과 핵심 마일스톤(key milestones)을 제안합니다.
같은 조직의 과거 제안서에서 2회 이상 쓰인 마감 이름도 추가합니다.

| 템플릿        | 남은 일수 |
|---------------|-----------|
| comprehensive | 60일 이상 |
| accelerated   | 30~59일   |
| rapid         | 14~29일   |
| emergency     | 14일 미만 |
"""

import logging
import math
import uuid
from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, Optional

from proposaliq.exceptions import InputValidationError
from proposaliq.models.entities import Proposal
from proposaliq.models.timeline import TimelineRequest
from proposaliq.services.entity_store import EntityStore, get_entity_store
from proposaliq.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)

MAX_INTERNAL_DEADLINES = 12
HISTORICAL_MIN_OCCURRENCES = 2
HISTORICAL_PLACEMENT_RATIO = 0.35

# (이름, 마감일로부터 며칠 전 계산 함수, 메모)
Offset = Callable[[int], int]

TEMPLATES: dict[str, dict[str, list[tuple[str, Offset, str]]]] = {
    "comprehensive": {
        "deadlines": [
            ("Initial Planning Complete", lambda d: d - 7,
             "Complete initial proposal planning, team assignments, and resource allocation"),
            ("Outline & Strategy Finalized", lambda d: math.floor(d * 0.85),
             "Finalize proposal outline, win themes, and overall strategy"),
            ("First Draft Complete", lambda d: math.floor(d * 0.65),
             "All sections should have first draft content"),
            ("Pink Team Review", lambda d: math.floor(d * 0.50),
             "Internal review for content completeness and compliance"),
            ("Pricing Complete", lambda d: math.floor(d * 0.40), "Final pricing reviewed and approved"),
            ("Red Team Review", lambda d: math.floor(d * 0.25), "Comprehensive review by independent team"),
            ("Final Edits & Formatting", lambda d: math.floor(d * 0.15),
             "Address all review comments, finalize formatting"),
            ("Executive Review & Approval", lambda d: 5, "Final executive sign-off"),
            ("Final Package Assembly", lambda d: 2, "Assemble all deliverables, prepare submission package"),
        ],
        "milestones": [
            ("Kick-off Meeting", lambda d: d - 5, "Team kick-off to align on strategy and assignments"),
            ("Mid-Point Review", lambda d: math.floor(d * 0.50), "Check progress at halfway point"),
            ("Go/No-Go Decision", lambda d: 10, "Final decision on submission"),
        ],
    },
    "accelerated": {
        "deadlines": [
            ("Initial Planning Complete", lambda d: d - 3,
             "Complete initial proposal planning and team assignments"),
            ("Outline Finalized", lambda d: math.floor(d * 0.80), "Finalize proposal outline and win themes"),
            ("First Draft Complete", lambda d: math.floor(d * 0.60), "All sections have first draft"),
            ("Internal Review", lambda d: math.floor(d * 0.40), "Comprehensive internal review"),
            ("Pricing Complete", lambda d: math.floor(d * 0.30), "Final pricing approved"),
            ("Final Edits", lambda d: math.floor(d * 0.20), "Address all comments, finalize content"),
            ("Executive Approval", lambda d: 3, "Final executive sign-off"),
            ("Package Assembly", lambda d: 1, "Prepare final submission package"),
        ],
        "milestones": [
            ("Team Kick-off", lambda d: d - 2, "Initial team alignment meeting"),
            ("Go/No-Go Decision", lambda d: 7, "Final decision on submission"),
        ],
    },
    "rapid": {
        "deadlines": [
            ("Initial Planning", lambda d: d - 2, "Quick planning and team alignment"),
            ("Draft Complete", lambda d: math.floor(d * 0.60), "Complete first pass of all content"),
            ("Pricing & Review", lambda d: math.floor(d * 0.40), "Complete pricing and internal review"),
            ("Final Polish", lambda d: 3, "Final edits and formatting"),
            ("Package & Submit", lambda d: 1, "Finalize submission package"),
        ],
        "milestones": [
            ("Rapid Kick-off", lambda d: d - 1, "Quick team alignment"),
        ],
    },
    "emergency": {
        "deadlines": [
            ("Emergency Planning", lambda d: d - 1, "Immediate planning and resource allocation"),
            ("Draft Complete", lambda d: math.floor(d * 0.50), "Complete initial draft"),
            ("Review & Pricing", lambda d: math.floor(d * 0.30), "Quick review and pricing finalization"),
            ("Final Package", lambda d: 1, "Assemble and submit"),
        ],
        # 긴급 킥오프는 오늘 날짜로 지정 (아래 plan_timeline 참고)
        "milestones": [],
    },
}


def select_template(days_until_due: int) -> str:
    if days_until_due >= 60:
        return "comprehensive"
    if days_until_due >= 30:
        return "accelerated"
    if days_until_due >= 14:
        return "rapid"
    return "emergency"


def parse_due_date(value: Optional[str]) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError) as e:
        raise InputValidationError("Invalid date format for final_due_date") from e
    return as_utc(parsed)


def days_until(due_date: datetime, today: datetime) -> int:
    return math.ceil((due_date - today) / timedelta(days=1))


def _deadline(name: str, date: datetime, notes: str) -> dict:
    return {
        "id": f"timeline_{uuid.uuid4().hex[:12]}",
        "name": name,
        "date": date.isoformat(),
        "assigned_to_email": "",
        "assigned_to_name": "",
        "status": "pending",
        "notes": notes,
        "ai_generated": True,
    }


def _milestone(name: str, date: datetime, notes: str) -> dict:
    return {
        "id": f"timeline_{uuid.uuid4().hex[:12]}",
        "name": name,
        "date": date.isoformat(),
        "status": "pending",
        "notes": notes,
        "ai_generated": True,
    }


def count_historical_deadlines(proposals: list[Proposal]) -> Counter:
    counter = Counter()
    for proposal in proposals:
        for deadline in proposal.internal_deadlines:
            if deadline.get("name"):
                counter[deadline["name"]] += 1
    return counter


def plan_timeline(
    due_date: datetime,
    today: datetime,
    proposal_type: str,
    historical_counts: Optional[Counter] = None,
) -> dict:
    """템플릿 + 과거 데이터로 타임라인을 계산합니다. 저장소에 의존하지 않습니다."""
    days = days_until(due_date, today)
    template_name = select_template(days)
    template = TEMPLATES[template_name]

    def before_due(n: int) -> datetime:
        return due_date - timedelta(days=n)

    deadlines = [_deadline(name, before_due(offset(days)), notes) for name, offset, notes in template["deadlines"]]
    milestones = [_milestone(name, before_due(offset(days)), notes) for name, offset, notes in template["milestones"]]
    if template_name == "emergency":
        milestones.append(_milestone("Emergency Kick-off", today, "Immediate team mobilization"))

    historical_used = bool(historical_counts)
    if historical_counts:
        existing = {d["name"].lower() for d in deadlines}
        for name, count in historical_counts.items():
            if len(deadlines) >= MAX_INTERNAL_DEADLINES:
                break
            if count >= HISTORICAL_MIN_OCCURRENCES and name.lower() not in existing:
                deadlines.append(_deadline(
                    name,
                    before_due(math.floor(days * HISTORICAL_PLACEMENT_RATIO)),
                    f"Based on historical data from similar {proposal_type} proposals",
                ))
                existing.add(name.lower())

    deadlines.sort(key=lambda d: d["date"])
    milestones.sort(key=lambda m: m["date"])

    return {
        "success": True,
        "suggested_timeline": {
            "internal_deadlines": deadlines,
            "key_milestones": milestones,
        },
        "metadata": {
            "days_until_due": days,
            "proposal_type": proposal_type,
            "timeline_template": template_name,
            "historical_data_used": historical_used,
            "generated_at": utcnow().isoformat(),
        },
    }


class TimelinePlanner:
    def __init__(self, store: Optional[EntityStore] = None):
        self.store = store or get_entity_store()

    async def generate(self, request: TimelineRequest, today: Optional[datetime] = None) -> dict:
        if not request.proposal_id or not request.organization_id or not request.final_due_date:
            raise InputValidationError(
                "Missing required parameters: proposal_id, organization_id, and final_due_date are required"
            )
        due_date = parse_due_date(request.final_due_date)
        proposal_type = request.proposal_type_category or "RFP"

        historical = await self.store.filter(
            Proposal,
            {"organization_id": request.organization_id, "proposal_type_category": proposal_type},
        )
        historical = [p for p in historical if p.internal_deadlines]
        counts = count_historical_deadlines(historical)

        result = plan_timeline(due_date, as_utc(today) if today else utcnow(), proposal_type, counts)
        logger.info(
            f"[Timeline] {request.proposal_id}: template={result['metadata']['timeline_template']}, "
            f"days={result['metadata']['days_until_due']}, historical proposals={len(historical)}"
        )
        return result


_timeline_planner: Optional[TimelinePlanner] = None


def get_timeline_planner() -> TimelinePlanner:
    global _timeline_planner
    if _timeline_planner is None:
        _timeline_planner = TimelinePlanner()
    return _timeline_planner
