"""
AI 섹션 작성 요청 모델입니다.
"""

from typing import Optional
from pydantic import BaseModel, Field


class GenerationParams(BaseModel):
    """AI 설정 기본값을 덮어쓰는 생성 파라미터입니다. 비어 있으면 설정값을 사용합니다."""

    tone: Optional[str] = None
    word_count_min: Optional[int] = None
    word_count_max: Optional[int] = None
    reading_level: Optional[str] = None
    additional_context: Optional[str] = None


class GenerateSectionRequest(BaseModel):
    proposal_id: Optional[str] = None
    section_type: Optional[str] = Field(default=None, description="예: executive_summary, technical_approach")
    generation_params: GenerationParams = Field(default_factory=GenerationParams)
    user_email: Optional[str] = None
    agent_triggered: bool = False
