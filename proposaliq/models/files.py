"""
파일 API 요청 모델입니다.
"""

from typing import Optional
from pydantic import BaseModel, Field


class SignedUrlRequest(BaseModel):
    file_uri: str = Field(description="private://<file_id>/<filename>")
    expires_in: Optional[int] = Field(default=None, ge=1, description="유효 시간(초). 없으면 설정값")
