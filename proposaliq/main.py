"""
ProposalIQ 백엔드의 메인 진입점 파일입니다.
웹 서버 애플리케이션을 생성하고 설정하는 역할을 담당합니다.
"""

import logging
import traceback
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from proposaliq.config import get_settings
from proposaliq.api.router import api_router
from proposaliq.exceptions import ProposalIQError
from proposaliq.models import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    애플리케이션의 생명주기(시작과 종료)를 관리하는 함수입니다.

    서버가 시작될 때 설정을 불러오고 시작 로그를 출력합니다.
    """
    settings = get_settings()
    logger.info(f"ProposalIQ가 다음 주소에서 시작됩니다: {settings.host}:{settings.port}")
    logger.info(f"데이터 폴더: {settings.data_dir}, LLM CLI: {settings.llm_command}")

    yield

    logger.info("ProposalIQ가 종료됩니다")


def error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Any] = None,
    exc: Optional[BaseException] = None,
) -> JSONResponse:
    """공통 에러 봉투. 디버그 모드에서만 stack을 포함합니다."""
    debug = get_settings().debug
    body = ErrorResponse(
        error_code=error_code,
        error=message,
        details=details,
        stack="".join(traceback.format_exception(exc)) if debug and exc is not None else None,
    )
    content = body.model_dump(mode="json", exclude=None if debug else {"stack"})
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def create_app() -> FastAPI:
    """
    FastAPI 웹 애플리케이션을 생성하고 설정하는 함수입니다.

    주요 기능:
    1. 로깅 설정
    2. CORS 설정 (프론트엔드와의 통신 허용)
    3. 에러 핸들러 등록
    4. API 라우터 연결
    """
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="ProposalIQ",
        description="정부 제안서 작성 지원 백엔드 (RAG 컨텍스트, AI 작성, 컴플라이언스, 내보내기)",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 커스텀 예외는 각 클래스의 status_code로 응답
    @app.exception_handler(ProposalIQError)
    async def proposaliq_error_handler(request: Request, exc: ProposalIQError):
        if exc.status_code >= 500:
            logger.error(f"[{exc.error_code}] {request.method} {request.url.path}: {exc.message}", exc_info=exc)
        else:
            logger.info(f"[{exc.error_code}] {request.method} {request.url.path}: {exc.message}")
        return error_response(exc.status_code, exc.error_code, exc.message, exc.details, exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return error_response(422, "ERR_INPUT_002", "Request validation failed", jsonable_encoder(exc.errors()), exc)

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        logger.error(f"처리되지 않은 예외: {exc}", exc_info=True)
        return error_response(500, "ERR_INTERNAL", "Internal server error", None, exc)

    app.include_router(api_router, prefix="/api/v1")

    return app


# 애플리케이션 인스턴스 생성
app = create_app()


@app.get("/")
async def root():
    """서버의 기본 정보를 반환합니다."""
    return {
        "name": "ProposalIQ",
        "version": "1.0.0",
        "docs": "/docs",
        "api": "/api/v1",
    }


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "proposaliq.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,  # 개발 모드
    )
