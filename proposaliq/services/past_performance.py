"""
과거 수행실적(Past Performance) 문서 파서.

CPARS 평가서나 일반 실적 요약 문서에서 텍스트를 뽑아 LLM으로 구조화하고,
Marginal / Unsatisfactory 평가가 있으면 red flag로 표시합니다.
결과는 저장하지 않고 사용자가 검토하도록 돌려줍니다.
"""

import asyncio
import logging
from typing import Any, Optional

from proposaliq.exceptions import (
    InputValidationError,
    LLMClientError,
    NotFoundError,
    ParsingError,
    StorageError,
)
from proposaliq.models.past_performance import PastPerformanceParseRequest
from proposaliq.prompts.extraction_prompts import (
    CPARS_EXTRACTION_PROMPT,
    GENERAL_PP_EXTRACTION_PROMPT,
    PAST_PERFORMANCE_SCHEMA,
)
from proposaliq.services.document_text import extract_text, file_extension
from proposaliq.services.file_storage import FileStorage, get_file_storage
from proposaliq.services.llm_client import LLMClient, get_llm_client
from proposaliq.utils.dates import utcnow

logger = logging.getLogger(__name__)

RED_FLAG_RATINGS = ("Marginal", "Unsatisfactory")

PARSING_METHODS = {
    "pdf": "pdf_text_extraction",
    "docx": "docx_extraction",
    "doc": "docx_extraction",
    "txt": "text_extraction",
}


def has_red_flags(data: dict[str, Any], record_type: str) -> bool:
    """CPARS 종합 평가 또는 세부 평가 중 하나라도 Marginal/Unsatisfactory이면 True."""
    if record_type == "cpars" and data.get("overall_rating") in RED_FLAG_RATINGS:
        return True
    ratings = data.get("performance_ratings")
    if isinstance(ratings, dict):
        return any(rating in RED_FLAG_RATINGS for rating in ratings.values())
    return False


class PastPerformanceParser:
    def __init__(self, files: Optional[FileStorage] = None, llm: Optional[LLMClient] = None):
        self.files = files or get_file_storage()
        self.llm = llm or get_llm_client()

    async def parse(self, request: PastPerformanceParseRequest) -> dict:
        if not request.file_url:
            raise InputValidationError("file_url is required")

        file_url = request.file_url
        file_name = file_url.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1]
        ext = file_extension(file_name)
        if ext not in PARSING_METHODS:
            raise InputValidationError(
                f"Unsupported file type: {ext}. Supported formats: PDF, DOCX, TXT",
                details={"file_url": file_url},
            )
        parsing_method = PARSING_METHODS[ext]

        try:
            content = await self.files.read_file(file_url)
        except (StorageError, NotFoundError) as e:
            raise InputValidationError(
                "Failed to fetch file from provided URL", details={"file_url": file_url, "error": e.message}
            ) from e

        try:
            text = await asyncio.to_thread(extract_text, content, file_name)
        except ParsingError as e:
            raise InputValidationError(
                f"Failed to parse {ext.upper()} file. Please ensure it is a valid document.",
                details=e.details,
            ) from e

        prompt = CPARS_EXTRACTION_PROMPT if request.record_type == "cpars" else GENERAL_PP_EXTRACTION_PROMPT
        logger.info(f"[PastPerformance] 추출 시작: {file_name} ({parsing_method}, {len(text)} chars)")

        try:
            extracted = await self.llm.invoke(
                f"{prompt}\n\nDocument content:\n\n{text}",
                response_json_schema=PAST_PERFORMANCE_SCHEMA,
            )
        except LLMClientError as e:
            raise LLMClientError(
                "AI extraction failed. Please try again or enter data manually.",
                details={"error": e.message},
            ) from e
        if not isinstance(extracted, dict):
            raise LLMClientError(
                "AI extraction failed. Please try again or enter data manually.",
                details={"error": "LLM response is not a JSON object"},
            )

        red_flags = has_red_flags(extracted, request.record_type)
        metadata = {
            "extracted_at": utcnow().isoformat(),
            "confidence_score": extracted.pop("extraction_confidence", None) or 0,
            "extraction_method": parsing_method,
            "fields_extracted": extracted.pop("fields_extracted", None) or [],
            "manual_overrides": [],
        }
        logger.info(
            f"[PastPerformance] 추출 완료: {file_name} "
            f"(confidence={metadata['confidence_score']}, red_flags={red_flags})"
        )

        return {
            "success": True,
            "data": {
                **extracted,
                "record_type": request.record_type,
                "has_red_flags": red_flags,
                "ai_extraction_metadata": metadata,
                "document_file_url": file_url,
                "document_file_name": file_name,
            },
            "message": "Document parsed successfully. Please review and edit the extracted data as needed.",
        }


_past_performance_parser: Optional[PastPerformanceParser] = None


def get_past_performance_parser() -> PastPerformanceParser:
    global _past_performance_parser
    if _past_performance_parser is None:
        _past_performance_parser = PastPerformanceParser()
    return _past_performance_parser
