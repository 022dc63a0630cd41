"""
컴플라이언스 매트릭스 관련 요청 모델입니다.
"""

from typing import Optional
from pydantic import BaseModel


class AutoMapRequest(BaseModel):
    proposal_id: Optional[str] = None


class ComplianceExportFilter(BaseModel):
    """CSV 내보내기 필터. status / risk는 "all"이면 필터하지 않습니다."""

    search: Optional[str] = None
    status: str = "all"
    risk: str = "all"


class RequirementMapping(BaseModel):
    """LLM 자동 매핑 응답의 한 항목입니다."""

    requirement_id: str
    section_ids: Optional[list[str]] = None
    cross_reference: Optional[str] = None
