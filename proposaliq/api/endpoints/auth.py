"""
로그인 사용자 정보 API입니다. (auth.me / auth.updateMe)
"""

import logging

from fastapi import APIRouter, Depends

from proposaliq.api.deps import get_current_user
from proposaliq.models import UpdateMeRequest, User
from proposaliq.services import get_entity_store

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/me")
async def get_me(user: User = Depends(get_current_user)) -> dict:
    return user.model_dump(mode="json")


@router.patch("/me")
async def update_me(request: UpdateMeRequest, user: User = Depends(get_current_user)) -> dict:
    """프로필 필드만 부분 수정합니다."""
    changes = request.model_dump(exclude_unset=True)
    if not changes:
        return user.model_dump(mode="json")
    updated = await get_entity_store().update(User, user.id, changes)
    logger.info(f"[Auth] 프로필 수정: {user.email} ({', '.join(changes)})")
    return updated.model_dump(mode="json")
