"""
예측 타임라인 생성 요청 모델입니다.
"""

from typing import Optional
from pydantic import BaseModel, Field


class TimelineRequest(BaseModel):
    proposal_id: Optional[str] = None
    organization_id: Optional[str] = None
    final_due_date: Optional[str] = Field(default=None, description="제출 마감일 (ISO 날짜 문자열)")
    proposal_type_category: Optional[str] = Field(default=None, description="RFP, SBIR, GSA ... 기본값 RFP")
