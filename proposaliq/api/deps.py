"""
API 공통 의존성입니다.
Bearer 토큰으로 로그인 사용자를 찾습니다.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from proposaliq.exceptions import AuthenticationError
from proposaliq.models import User
from proposaliq.services import get_entity_store
from proposaliq.services.auth import verify_token

# 헤더 누락은 get_current_user에서 401로 처리
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    """Authorization 헤더의 액세스 토큰을 검증하고 사용자 레코드를 반환합니다."""
    if credentials is None:
        raise AuthenticationError("Missing bearer token")

    payload = verify_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Invalid or expired token")

    user = await get_entity_store().get(User, payload["user_id"])
    if user is None:
        raise AuthenticationError("User not found")
    return user
