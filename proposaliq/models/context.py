"""
RAG 컨텍스트 빌드 관련 요청 모델입니다.
"""

from typing import Optional, Any
from pydantic import BaseModel, Field


class ParseProposalRequest(BaseModel):
    proposal_id: Optional[str] = None
    force_refresh: bool = False


class ContextBuildRequest(BaseModel):
    """
    과거 제안서들로 AI 글쓰기 컨텍스트를 만드는 요청입니다.

    current_proposal_id / reference_proposal_ids의 필수 검증은
    서비스 계층에서 수행합니다.
    """

    current_proposal_id: Optional[str] = None
    reference_proposal_ids: Any = Field(default_factory=list, description="참조 제안서 ID 목록")
    target_section_type: Optional[str] = Field(default=None, description="섹션 유형 필터 (예: technical_approach)")
    max_tokens: Optional[int] = Field(default=None, description="토큰 한도. 없으면 provider별 기본값")
    llm_provider: str = "gemini"
    prioritize_winning: bool = True
    include_documents: bool = True
    include_resources: bool = True
    force_refresh: bool = False
    enable_citations: bool = True
