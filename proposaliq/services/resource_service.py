"""
콘텐츠 라이브러리 리소스 업로드/처리 서비스.

1. 파일 저장
2. (선택) 핵심 데이터 추출: 리소스 유형별 스키마 또는 LLM이 만든 스키마
3. ProposalResource 생성
4. (선택) RAG 색인: 텍스트를 추출해 text_content에 저장
5. (선택) 제안서의 linked_resource_ids에 연결
"""

import asyncio
import logging
from typing import Any, Optional

from proposaliq.exceptions import InputValidationError, LLMClientError, ProposalIQError
from proposaliq.models.entities import Proposal, ProposalResource
from proposaliq.models.resource import ResourceUploadForm
from proposaliq.prompts.extraction_prompts import (
    GENERIC_RESOURCE_SCHEMA,
    RESOURCE_BASE_SCHEMAS,
    RESOURCE_EXTRACTION_PROMPT,
    SCHEMA_BUILDER_PROMPT,
    SCHEMA_BUILDER_RESPONSE_SCHEMA,
)
from proposaliq.services.document_text import extract_text
from proposaliq.services.entity_store import EntityStore, get_entity_store
from proposaliq.services.file_storage import FileStorage, get_file_storage
from proposaliq.services.llm_client import LLMClient, get_llm_client
from proposaliq.utils.validation import TEXT_EXTRACTABLE_EXTENSIONS, validate_upload

logger = logging.getLogger(__name__)

CUSTOM_DESCRIPTION_MIN_CHARS = 10
MAX_EXTRACTION_CHARS = 30000


class ResourceService:
    def __init__(
        self,
        store: Optional[EntityStore] = None,
        files: Optional[FileStorage] = None,
        llm: Optional[LLMClient] = None,
    ):
        self.store = store or get_entity_store()
        self.files = files or get_file_storage()
        self.llm = llm or get_llm_client()

    async def upload_and_process(self, form: ResourceUploadForm, file_name: str, content: bytes) -> dict:
        if not content or not form.title or not form.resource_type or not form.organization_id:
            raise InputValidationError("file, title, resource_type, and organization_id are required")

        safe_name, ext = validate_upload(file_name, content)
        stored = await self.files.save_upload(content, safe_name)
        logger.info(f"[Resource] 파일 저장: {stored['file_url']}")

        extracted_data = None
        if form.extract_key_data and form.extraction_fields_description:
            extracted_data = await self._extract_key_data(
                form.resource_type, form.extraction_fields_description, safe_name, ext, content
            )

        resource = await self.store.create(ProposalResource, {
            "organization_id": form.organization_id,
            "title": form.title,
            "description": form.description,
            "resource_type": form.resource_type,
            "content_category": form.content_category,
            "tags": form.tags,
            "file_name": safe_name,
            "file_url": stored["file_url"],
            "file_size": stored["file_size"],
            "usage_count": 0,
            "linked_proposal_ids": [form.proposal_id] if form.proposal_id else [],
            "extracted_data": extracted_data,
        })

        rag_status = "not_requested"
        if form.ingest_to_rag:
            rag_status = await self._index_text(resource, ext, content)

        if form.proposal_id:
            await self._link_to_proposal(form.proposal_id, resource.id)

        return {
            "success": True,
            "resource_id": resource.id,
            "file_url": stored["file_url"],
            "extracted_data": extracted_data,
            "rag_status": rag_status,
            "message": "Resource uploaded and processed successfully",
        }

    async def build_extraction_schema(self, resource_type: str, description: Optional[str]) -> dict:
        """
        추출 스키마를 정합니다.

        유형별 기본 스키마가 없거나 사용자 설명이 충분히 길면 LLM에게 스키마를 만들게 하고,
        LLM이 실패하면 기본 스키마(없으면 범용 스키마)로 돌아갑니다.
        """
        base_schema = RESOURCE_BASE_SCHEMAS.get(resource_type)
        custom = bool(description and len(description.strip()) > CUSTOM_DESCRIPTION_MIN_CHARS)
        if base_schema and not custom:
            return base_schema

        try:
            response = await self.llm.invoke(
                SCHEMA_BUILDER_PROMPT.format(resource_type=resource_type, description=description or ""),
                response_json_schema=SCHEMA_BUILDER_RESPONSE_SCHEMA,
            )
        except LLMClientError as e:
            logger.warning(f"[Resource] 스키마 생성 실패, 기본 스키마 사용: {e.message}")
            return base_schema or GENERIC_RESOURCE_SCHEMA

        schema = response.get("schema") if isinstance(response, dict) else None
        if isinstance(schema, dict) and schema.get("properties"):
            return schema
        return base_schema or GENERIC_RESOURCE_SCHEMA

    async def _extract_key_data(
        self, resource_type: str, description: str, file_name: str, ext: str, content: bytes
    ) -> Optional[dict[str, Any]]:
        """추출 실패는 업로드를 막지 않습니다."""
        if ext not in TEXT_EXTRACTABLE_EXTENSIONS:
            logger.warning(f"[Resource] 데이터 추출 불가 형식: {file_name}")
            return None

        try:
            schema = await self.build_extraction_schema(resource_type, description)
            text = await asyncio.to_thread(extract_text, content, file_name)
            result = await self.llm.invoke(
                RESOURCE_EXTRACTION_PROMPT.format(file_name=file_name, text=text[:MAX_EXTRACTION_CHARS]),
                response_json_schema=schema,
            )
        except ProposalIQError as e:
            logger.error(f"[Resource] 데이터 추출 실패 {file_name}: {e.message}")
            return None

        if not isinstance(result, dict):
            logger.warning(f"[Resource] 추출 결과가 객체가 아님: {type(result).__name__}")
            return None
        logger.info(f"[Resource] 데이터 추출 완료: {file_name} ({len(result)} fields)")
        return result

    async def _index_text(self, resource: ProposalResource, ext: str, content: bytes) -> str:
        if ext not in TEXT_EXTRACTABLE_EXTENSIONS:
            logger.warning(f"[Resource] RAG 색인 불가 형식: {resource.file_name}")
            return "failed"
        try:
            text = await asyncio.to_thread(extract_text, content, resource.file_name)
        except ProposalIQError as e:
            logger.error(f"[Resource] RAG 색인 실패 {resource.id}: {e.message}")
            return "failed"

        await self.store.update(ProposalResource, resource.id, {"text_content": text})
        logger.info(f"[Resource] RAG 색인 완료: {resource.id} ({len(text)} chars)")
        return "indexed"

    async def _link_to_proposal(self, proposal_id: str, resource_id: str) -> None:
        proposal = await self.store.get(Proposal, proposal_id)
        if proposal is None:
            logger.warning(f"[Resource] 연결할 제안서 없음: {proposal_id}")
            return
        if resource_id not in proposal.linked_resource_ids:
            await self.store.update(Proposal, proposal_id, {
                "linked_resource_ids": proposal.linked_resource_ids + [resource_id],
            })


_resource_service: Optional[ResourceService] = None


def get_resource_service() -> ResourceService:
    global _resource_service
    if _resource_service is None:
        _resource_service = ResourceService()
    return _resource_service
