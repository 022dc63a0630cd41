from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """
    애플리케이션의 설정을 관리하는 클래스입니다.
    환경 변수(.env 파일)에서 설정값을 읽어옵니다. (접두어: PROPOSALIQ_)
    """

    # 서버 설정
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    debug: bool = False  # True이면 에러 응답에 스택 트레이스 포함
    log_level: str = "INFO"

    # 저장소 설정: 엔티티, 업로드 파일, 캐시가 저장될 루트 폴더
    data_dir: str = "data"

    # LLM 설정: CLI 기반 호출
    llm_command: str = "claude"
    llm_timeout_seconds: int = 300
    llm_max_retries: int = 3
    llm_retry_delay: float = 2.0
    default_llm_provider: str = "gemini"

    # RAG 컨텍스트 토큰 한도 (provider별)
    llm_token_limits: dict[str, int] = {
        "gemini": 100000,
        "claude": 100000,
        "chatgpt": 50000,
        "gpt-4": 50000,
        "default": 30000,
    }
    chars_per_token: int = 4
    parse_cache_ttl_hours: int = 24

    # 컴플라이언스 자동 매핑: 배치 크기와 배치 간 대기 시간(초)
    compliance_batch_size: int = 10
    compliance_batch_delay_seconds: float = 1.0

    # 데이터 콜 / 내보내기
    data_call_token_days: int = 90
    signed_url_expiry_seconds: int = 7 * 24 * 60 * 60
    http_timeout_seconds: float = 60.0  # 원격 문서 다운로드

    # 인증 (JWT)
    jwt_secret: str = "proposaliq-dev-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiration_hours: int = 24

    # 업로드 제한
    max_file_size_mb: int = 50
    max_total_upload_mb: int = 200
    max_document_count: int = 20
    max_filename_length: int = 255

    class Config:
        env_prefix = "PROPOSALIQ_"
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """
    설정을 가져오는 함수입니다.
    @lru_cache를 사용하여 한 번 읽은 설정은 메모리에 저장해두고 재사용합니다.
    """
    return Settings()
