"""
제안서 파싱 및 RAG 컨텍스트 빌드 API입니다.
"""

from fastapi import APIRouter, Depends

from proposaliq.api.deps import get_current_user
from proposaliq.models import ContextBuildRequest, ParseProposalRequest
from proposaliq.services import get_context_builder, get_proposal_parser

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.post("/parse")
async def parse_proposal(request: ParseProposalRequest) -> dict:
    """제안서 하나를 구조화된 데이터로 파싱합니다. (캐시 사용)"""
    return await get_proposal_parser().parse(request.proposal_id, request.force_refresh)


@router.post("/build")
async def build_context(request: ContextBuildRequest) -> dict:
    """
    참조 제안서들을 점수화/포맷/토큰 한도 내로 묶어
    AI 글쓰기용 컨텍스트를 만듭니다.
    """
    return await get_context_builder().build(request)
