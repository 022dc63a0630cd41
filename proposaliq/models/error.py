"""에러 응답 모델."""

from datetime import datetime
from typing import Optional, Any, Literal

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """모든 API 에러가 공통으로 사용하는 JSON 봉투입니다."""

    status: Literal["error"] = "error"
    error_code: str = Field(description="에러 코드 (예: ERR_INPUT_001)")
    error: str = Field(description="에러 메시지")
    details: Optional[Any] = Field(default=None, description="추가 에러 상세 정보")
    timestamp: datetime = Field(default_factory=datetime.now, description="에러 발생 시각")
    stack: Optional[str] = Field(default=None, description="디버그 모드에서만 포함되는 트레이스백")
