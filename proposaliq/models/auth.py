"""
로그인 사용자 프로필 관련 모델입니다.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict


class UpdateMeRequest(BaseModel):
    """updateMe로 바꿀 수 있는 필드. 이메일, 역할, 조직은 바꿀 수 없습니다."""

    model_config = ConfigDict(extra="forbid")

    full_name: Optional[str] = None
    job_title: Optional[str] = None
    phone: Optional[str] = None
