"""
제안서 콘텐츠 파서.

하나의 제안서에서 AI 참조 자료로 쓸 수 있는 모든 내용을 모읍니다.

1. 메타데이터 (JSON 문자열 필드는 디코딩)
2. 섹션 (order 순)
3. 솔리시테이션 문서 (PDF/DOCX/TXT 텍스트 추출)
4. 조직 리소스 (최근 50개, 보일러플레이트 우선)
5. 코멘트
6. 통계

결과는 제안서와 하위 레코드의 수정 시각 기준으로 ParseCache에 저장됩니다.
"""

import asyncio
import json
import logging
import time
from typing import Any, Optional

from proposaliq.exceptions import NotFoundError, InputValidationError, ProposalIQError
from proposaliq.models.entities import (
    Proposal,
    ProposalSection,
    SolicitationDocument,
    ProposalResource,
    ProposalComment,
)
from proposaliq.services.cache import ParseCache, get_parse_cache
from proposaliq.services.document_text import extract_text, file_extension, SUPPORTED_TEXT_TYPES
from proposaliq.services.entity_store import EntityStore, get_entity_store
from proposaliq.services.file_storage import FileStorage, get_file_storage
from proposaliq.utils.dates import utcnow

logger = logging.getLogger(__name__)

RESOURCE_LIMIT = 50


def decode_json_field(value: Any) -> Any:
    """JSON 문자열이면 디코딩하고, 디코딩할 수 없으면 원래 값을 그대로 둡니다."""
    if not value:
        return None
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning("[ProposalParser] JSON 필드 디코딩 실패, 원문 유지")
            return value
    return value


class ProposalParser:
    """제안서 전체 콘텐츠를 수집하는 서비스."""

    def __init__(
        self,
        store: Optional[EntityStore] = None,
        files: Optional[FileStorage] = None,
        cache: Optional[ParseCache] = None,
    ):
        self.store = store or get_entity_store()
        self.files = files or get_file_storage()
        self.cache = cache or get_parse_cache()

    async def parse(self, proposal_id: Optional[str], force_refresh: bool = False) -> dict:
        """
        제안서를 파싱합니다.

        Returns:
            {status, proposal_data{metadata, sections, documents, resources, comments},
             stats, parsed_at, cache_hit, parse_duration_seconds}
        """
        if not proposal_id:
            raise InputValidationError("proposal_id is required")

        start = time.perf_counter()
        proposal = await self.store.get(Proposal, proposal_id)
        if proposal is None:
            raise NotFoundError("Proposal not found", details={"proposal_id": proposal_id})

        revision = await self._revision(proposal)
        cache_key = self.cache.make_key(proposal_id, revision)

        if not force_refresh:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info(f"[ProposalParser] 캐시 히트: {proposal_id}")
                return {
                    **cached,
                    "cache_hit": True,
                    "parse_duration_seconds": round(time.perf_counter() - start, 3),
                }

        logger.info(f"[ProposalParser] 파싱 시작: {proposal_id}")

        metadata = self._build_metadata(proposal)
        sections = await self._collect_sections(proposal_id)
        documents = await self._collect_documents(proposal_id)
        resources = await self._collect_resources(proposal.organization_id)
        comments = await self._collect_comments(proposal_id)
        stats = self._calculate_stats(sections, documents, resources, comments)

        result = {
            "status": "success",
            "proposal_data": {
                "metadata": metadata,
                "sections": sections,
                "documents": documents,
                "resources": resources,
                "comments": comments,
            },
            "stats": stats,
            "parsed_at": utcnow().isoformat(),
        }
        # 이전 리비전 엔트리는 더 이상 참조되지 않으므로 정리
        self.cache.invalidate_proposal(proposal_id)
        self.cache.set(cache_key, result)

        duration = round(time.perf_counter() - start, 3)
        logger.info(
            f"[ProposalParser] 파싱 완료: {proposal_id} "
            f"(sections={stats['sections_count']}, documents={stats['documents_parsed']}/{stats['documents_count']}, "
            f"text={stats['total_text_length']} chars, {duration}s)"
        )
        return {**result, "cache_hit": False, "parse_duration_seconds": duration}

    # ==================== 캐시 리비전 ====================

    async def _revision(self, proposal: Proposal) -> str:
        """
        제안서와 하위 레코드(섹션, 문서, 코멘트, 조직 리소스)의 id와 수정 시각을 묶은 문자열.

        하위 레코드가 생성, 수정, 삭제되면 값이 바뀌므로 이전 캐시 엔트리는 참조되지 않습니다.
        """
        parts = [proposal.updated_date.isoformat() if proposal.updated_date else ""]
        children = [
            (ProposalSection, {"proposal_id": proposal.id}),
            (SolicitationDocument, {"proposal_id": proposal.id}),
            (ProposalComment, {"proposal_id": proposal.id}),
        ]
        if proposal.organization_id:
            children.append((ProposalResource, {"organization_id": proposal.organization_id}))

        for model_class, query in children:
            records = await self.store.filter(model_class, query)
            stamps = sorted(
                f"{r.id}@{r.updated_date.isoformat() if r.updated_date else ''}" for r in records
            )
            parts.append(f"{model_class.__name__}:{','.join(stamps)}")
        return "|".join(parts)

    # ==================== 단계별 수집 ====================

    def _build_metadata(self, proposal: Proposal) -> dict:
        data = proposal.model_dump(mode="json")
        return {
            "proposal_id": proposal.id,
            "proposal_name": proposal.proposal_name,
            "project_title": proposal.project_title,
            "agency_name": proposal.agency_name,
            "solicitation_number": proposal.solicitation_number,
            "project_type": proposal.project_type,
            "status": proposal.status,
            "contract_value": proposal.contract_value,
            "due_date": data.get("due_date"),
            "win_themes": decode_json_field(proposal.strategy_config),
            "evaluation_results": decode_json_field(proposal.evaluation_results),
            "ai_confidence_score": decode_json_field(proposal.ai_confidence_score),
            "created_date": data.get("created_date"),
            "updated_date": data.get("updated_date"),
        }

    async def _collect_sections(self, proposal_id: str) -> list[dict]:
        sections = await self.store.filter(ProposalSection, {"proposal_id": proposal_id}, sort="order")
        return [
            {
                "id": s.id,
                "section_name": s.section_name,
                "section_type": s.section_type,
                "content": s.content or "",
                "word_count": s.word_count or 0,
                "status": s.status,
                "order": s.order,
            }
            for s in sections
        ]

    async def _collect_documents(self, proposal_id: str) -> list[dict]:
        docs = await self.store.filter(SolicitationDocument, {"proposal_id": proposal_id})
        results = []
        for doc in docs:
            doc_data = {
                "id": doc.id,
                "file_name": doc.file_name,
                "document_type": doc.document_type,
                "description": doc.description,
                "file_url": doc.file_url,
                "text_content": None,
                "parse_status": "pending",
            }
            doc_data.update(await self.extract_file_text(doc.file_name, doc.file_url))
            results.append(doc_data)
        return results

    async def _collect_resources(self, organization_id: Optional[str]) -> list[dict]:
        if not organization_id:
            return []
        resources = await self.store.filter(
            ProposalResource,
            {"organization_id": organization_id},
            sort="-created_date",
            limit=RESOURCE_LIMIT,
        )
        results = []
        for resource in resources:
            resource_data = {
                "id": resource.id,
                "title": resource.title,
                "resource_type": resource.resource_type,
                "content_category": resource.content_category,
                "description": resource.description,
                "boilerplate_content": resource.boilerplate_content,
                "file_name": resource.file_name,
                "file_url": resource.file_url,
                "tags": resource.tags or [],
                "text_content": None,
                "parse_status": "pending",
            }
            if resource.boilerplate_content:
                resource_data["text_content"] = resource.boilerplate_content
                resource_data["parse_status"] = "success"
            elif resource.text_content:
                resource_data["text_content"] = resource.text_content
                resource_data["parse_status"] = "success"
            else:
                resource_data.update(await self.extract_file_text(resource.file_name, resource.file_url))
            results.append(resource_data)
        return results

    async def _collect_comments(self, proposal_id: str) -> list[dict]:
        comments = await self.store.filter(ProposalComment, {"proposal_id": proposal_id})
        return [
            {
                "id": c.id,
                "author_name": c.author_name,
                "content": c.content,
                "comment_type": c.comment_type,
                "section_id": c.section_id,
                "created_date": c.model_dump(mode="json").get("created_date"),
            }
            for c in comments
        ]

    async def extract_file_text(self, file_name: Optional[str], file_url: Optional[str]) -> dict:
        """파일 텍스트 추출 결과를 parse_status와 함께 돌려줍니다."""
        if not file_name or not file_url or file_extension(file_name) not in SUPPORTED_TEXT_TYPES:
            return {"parse_status": "skipped", "parse_note": "Unsupported file type or no file URL"}

        try:
            content = await self.files.read_file(file_url)
            text = await asyncio.to_thread(extract_text, content, file_name)
        except ProposalIQError as e:
            logger.warning(f"[ProposalParser] 파일 파싱 실패 {file_name}: {e.message}")
            return {"parse_status": "error", "parse_error": e.message}

        return {"text_content": text, "parse_status": "success", "text_length": len(text)}

    @staticmethod
    def _calculate_stats(sections: list, documents: list, resources: list, comments: list) -> dict:
        total_text_length = (
            sum(len(s["content"]) for s in sections if s["content"])
            + sum(len(d["text_content"]) for d in documents if d.get("text_content"))
            + sum(len(r["text_content"]) for r in resources if r.get("text_content"))
        )
        return {
            "total_text_length": total_text_length,
            "sections_count": len(sections),
            "documents_count": len(documents),
            "documents_parsed": len([d for d in documents if d["parse_status"] == "success"]),
            "resources_count": len(resources),
            "resources_parsed": len([r for r in resources if r["parse_status"] == "success"]),
            "comments_count": len(comments),
        }


_proposal_parser: Optional[ProposalParser] = None


def get_proposal_parser() -> ProposalParser:
    global _proposal_parser
    if _proposal_parser is None:
        _proposal_parser = ProposalParser()
    return _proposal_parser
