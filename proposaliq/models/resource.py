"""
콘텐츠 라이브러리 리소스 업로드 모델입니다.
"""

from typing import Optional
from pydantic import BaseModel, Field


class ResourceUploadForm(BaseModel):
    """multipart 폼 필드 (파일 제외)."""

    title: Optional[str] = None
    description: Optional[str] = None
    resource_type: Optional[str] = None
    organization_id: Optional[str] = None
    proposal_id: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    content_category: Optional[str] = None
    ingest_to_rag: bool = False
    extract_key_data: bool = False
    extraction_fields_description: Optional[str] = None
