"""
예측 타임라인 API입니다.
"""

from fastapi import APIRouter, Depends

from proposaliq.api.deps import get_current_user
from proposaliq.models import TimelineRequest
from proposaliq.services import get_timeline_planner

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.post("/generate")
async def generate_timeline(request: TimelineRequest) -> dict:
    """마감일까지 남은 기간에 맞는 내부 마감/마일스톤을 제안합니다."""
    return await get_timeline_planner().generate(request)
