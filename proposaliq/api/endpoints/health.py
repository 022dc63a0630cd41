"""
헬스 체크(Health Check) 엔드포인트입니다.
"""

from fastapi import APIRouter

from proposaliq.config import get_settings
from proposaliq.services import get_parse_cache

router = APIRouter()


@router.get("")
async def health_check():
    """서버가 켜져 있으면 {"status": "healthy"}를 반환합니다."""
    return {"status": "healthy"}


@router.get("/detail")
async def health_check_detail():
    """
    상세 상태 확인.
    LLM 설정과 파싱 캐시 통계를 같이 보여줍니다.
    """
    settings = get_settings()
    return {
        "status": "healthy",
        "config": {
            "llm_command": settings.llm_command,
            "default_llm_provider": settings.default_llm_provider,
            "data_dir": settings.data_dir,
        },
        "parse_cache": get_parse_cache().get_stats_summary(),
    }
