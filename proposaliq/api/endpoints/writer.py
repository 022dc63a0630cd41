"""
AI 제안서 섹션 작성 API입니다.
"""

from fastapi import APIRouter, Depends

from proposaliq.api.deps import get_current_user
from proposaliq.models import GenerateSectionRequest, User
from proposaliq.services import get_proposal_writer

router = APIRouter()


@router.post("/generate")
async def generate_section(request: GenerateSectionRequest, user: User = Depends(get_current_user)) -> dict:
    return await get_proposal_writer().generate_section(request, user_email=user.email)
