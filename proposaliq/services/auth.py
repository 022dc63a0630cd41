"""
JWT 토큰 관리.

두 종류의 토큰을 발급/검증합니다.
- 사용자 액세스 토큰 (Bearer): user_id, email, role
- 비공개 파일 서명 URL 토큰: file_uri
"""

import logging
from datetime import timedelta
from typing import Optional, Any

import jwt

from proposaliq.config import get_settings
from proposaliq.models.entities import User
from proposaliq.utils.dates import utcnow

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
SIGNED_FILE_TOKEN_TYPE = "signed_file"


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """사용자 레코드로 액세스 토큰을 만듭니다."""
    settings = get_settings()
    now = utcnow()
    expire = now + (expires_delta or timedelta(hours=settings.jwt_expiration_hours))

    payload = {
        "type": ACCESS_TOKEN_TYPE,
        "user_id": user.id,
        "email": user.email,
        "role": user.role,
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_signed_file_token(file_uri: str, expires_in: int) -> str:
    """비공개 파일 접근용 서명 토큰. expires_in은 초 단위."""
    settings = get_settings()
    now = utcnow()
    payload = {
        "type": SIGNED_FILE_TOKEN_TYPE,
        "file_uri": file_uri,
        "exp": now + timedelta(seconds=expires_in),
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str, expected_type: str = ACCESS_TOKEN_TYPE) -> Optional[dict[str, Any]]:
    """
    토큰을 검증하고 payload를 반환합니다.

    만료/위조/타입 불일치이면 None.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.info("[Auth] 만료된 토큰")
        return None
    except jwt.InvalidTokenError:
        logger.info("[Auth] 유효하지 않은 토큰")
        return None

    if payload.get("type") != expected_type:
        return None
    return payload
