"""
엔티티 API 조회 요청 모델입니다.
"""

from typing import Any, Optional
from pydantic import BaseModel, Field


class EntityFilterRequest(BaseModel):
    query: dict[str, Any] = Field(default_factory=dict, description='필드 조건 (동등 비교 또는 {"$in": [...]})')
    sort: Optional[str] = Field(default=None, description='정렬 필드 ("-"는 내림차순)')
    limit: Optional[int] = Field(default=None, ge=1)
