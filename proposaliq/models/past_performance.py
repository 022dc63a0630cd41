"""
과거 수행실적 문서 파싱 요청 모델입니다.
"""

from typing import Optional
from pydantic import BaseModel


class PastPerformanceParseRequest(BaseModel):
    file_url: Optional[str] = None
    organization_id: Optional[str] = None
    record_type: str = "general_pp"
