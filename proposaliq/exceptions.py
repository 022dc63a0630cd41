"""
ProposalIQ 커스텀 예외 계층입니다.
서비스별 구조화된 에러 코드와 메시지, HTTP 상태 코드를 제공합니다.
"""

from typing import Optional, Any


class ProposalIQError(Exception):
    """ProposalIQ 기본 예외 클래스."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str = "ERR_UNKNOWN",
        details: Optional[Any] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class InputValidationError(ProposalIQError):
    """입력 유효성 검증 에러 (400 응답)."""

    status_code = 400

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_INPUT_001", details=details)


class AuthenticationError(ProposalIQError):
    """인증 실패 (401 응답)."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized", details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_AUTH_001", details=details)


class PermissionDeniedError(ProposalIQError):
    """토큰 불일치/만료 등 접근 거부 (403 응답)."""

    status_code = 403

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_AUTH_002", details=details)


class NotFoundError(ProposalIQError):
    """엔티티 또는 파일을 찾을 수 없음 (404 응답)."""

    status_code = 404

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_NOT_FOUND", details=details)


class StorageError(ProposalIQError):
    """엔티티/파일 저장소 관련 에러."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_STORE_001", details=details)


class LLMClientError(ProposalIQError):
    """LLM 클라이언트 통신 및 응답 파싱 에러."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_LLM_001", details=details)


class ParsingError(ProposalIQError):
    """문서 텍스트 추출 에러."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_PARSE_001", details=details)


class ContextBuildError(ProposalIQError):
    """참조 제안서를 하나도 파싱하지 못한 경우 (400 응답)."""

    status_code = 400

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_CONTEXT_001", details=details)


class ConfigurationError(ProposalIQError):
    """AI 설정 등 필수 구성이 없는 경우."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_CONFIG_001", details=details)


class ExportError(ProposalIQError):
    """DOCX/PDF/ZIP 문서 생성 에러."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_EXPORT_001", details=details)
