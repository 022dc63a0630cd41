"""
API 라우터 설정 파일입니다.
기능별 엔드포인트를 /api/v1 아래 하나의 라우터로 모읍니다.
"""

from fastapi import APIRouter

from proposaliq.api.endpoints import (
    health,
    auth,
    entities,
    files,
    context,
    writer,
    compliance,
    data_calls,
    timeline,
    exports,
    resources,
    past_performance,
)

# 메인 API 라우터 생성
api_router = APIRouter()

# 헬스 체크 (/health)
api_router.include_router(health.router, prefix="/health", tags=["health"])

# 로그인 사용자 정보 (/auth/me)
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])

# 범용 엔티티 CRUD (/entities/{entity_name})
api_router.include_router(entities.router, prefix="/entities", tags=["entities"])

# 파일 업로드/다운로드, 서명 URL (/files)
api_router.include_router(files.router, prefix="/files", tags=["files"])

# 제안서 파싱, RAG 컨텍스트 빌드 (/context)
api_router.include_router(context.router, prefix="/context", tags=["context"])

# AI 섹션 작성 (/writer)
api_router.include_router(writer.router, prefix="/writer", tags=["writer"])

# 컴플라이언스 매트릭스 (/compliance)
api_router.include_router(compliance.router, prefix="/compliance", tags=["compliance"])

# 데이터 콜 + 고객 포털 (/data-calls)
api_router.include_router(data_calls.router, prefix="/data-calls", tags=["data-calls"])

# 예측 타임라인 (/timeline)
api_router.include_router(timeline.router, prefix="/timeline", tags=["timeline"])

# DOCX/PDF 내보내기 (/exports)
api_router.include_router(exports.router, prefix="/exports", tags=["exports"])

# 콘텐츠 라이브러리 리소스 (/resources)
api_router.include_router(resources.router, prefix="/resources", tags=["resources"])

# 과거 수행실적 파싱 (/past-performance)
api_router.include_router(past_performance.router, prefix="/past-performance", tags=["past-performance"])
