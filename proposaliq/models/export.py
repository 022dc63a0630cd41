"""
제안서 문서 내보내기 요청 모델입니다.
"""

from typing import Optional
from pydantic import BaseModel, Field


class ExportOptions(BaseModel):
    include_cover_page: bool = True
    include_table_of_contents: bool = True


class ExportRequest(BaseModel):
    proposal_id: Optional[str] = None
    section_ids: Optional[list[str]] = None
    format: Optional[str] = Field(default=None, description="docx | pdf")
    template_id: Optional[str] = None
    options: ExportOptions = Field(default_factory=ExportOptions)


class BatchExportRequest(BaseModel):
    proposal_ids: list[str] = Field(default_factory=list)
    format: Optional[str] = Field(default=None, description="docx | pdf")
    template_id: Optional[str] = None
    options: ExportOptions = Field(default_factory=ExportOptions)
