"""
과거 수행실적 문서 파싱 API입니다.
"""

from fastapi import APIRouter, Depends

from proposaliq.api.deps import get_current_user
from proposaliq.models import PastPerformanceParseRequest
from proposaliq.services import get_past_performance_parser

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.post("/parse")
async def parse_past_performance(request: PastPerformanceParseRequest) -> dict:
    return await get_past_performance_parser().parse(request)
