"""RAG context builder.

과거 제안서들을 참조 자료로 묶어 AI 글쓰기 프롬프트용 컨텍스트를 만듭니다.

처리 흐름:
┌──────────────────────────────────────────────────────────────┐
│ 1. 입력 검증 / 토큰 한도 결정 (max_tokens 또는 provider 기본값) │
│ 2. 현재 제안서 조회 (없으면 404)                               │
│ 3. 참조 제안서 동시 파싱 (캐시 사용, 실패는 수집)              │
│ 4. 관련도 점수 계산 후 내림차순 정렬                           │
│ 5. 참조 블록 포맷팅 + 토큰 예산 내에서 탐욕적으로 채우기       │
│ 6. AI 작성 지침(인용 규칙 포함) 추가, 메타데이터 반환          │
└──────────────────────────────────────────────────────────────┘

토큰 추정: 문자 수 / chars_per_token (기본 4)
"""

import asyncio
import logging
import math
import time
from typing import Any, Optional

from proposaliq.config import Settings, get_settings
from proposaliq.exceptions import (
    InputValidationError,
    NotFoundError,
    ContextBuildError,
    ProposalIQError,
)
from proposaliq.models.context import ContextBuildRequest
from proposaliq.models.entities import Proposal
from proposaliq.services.entity_store import EntityStore, get_entity_store
from proposaliq.services.proposal_parser import ProposalParser, get_proposal_parser
from proposaliq.utils.dates import utcnow

logger = logging.getLogger(__name__)

MAX_SCORE = 100
LARGE_BUDGET_TOKENS = 50000
COMPREHENSIVE_CONTENT_CHARS = 50000
MAX_RESOURCES_PER_REFERENCE = 5
MAX_RESOURCE_CHARS = 1000
MIN_RESOURCE_CHARS = 100


def resolve_token_limit(max_tokens: Optional[int], llm_provider: str, limits: dict[str, int]) -> int:
    """명시된 max_tokens가 우선, 없으면 provider 한도, 그것도 없으면 default."""
    if max_tokens:
        return max_tokens
    return limits.get(llm_provider) or limits["default"]


def format_currency(value: float) -> str:
    """1500000 → "1,500,000", 1234.5 → "1,234.5"."""
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.3f}".rstrip("0").rstrip(".")


def _same(a: Any, b: Any) -> bool:
    return a is not None and a != "" and a == b


def score_reference(
    reference: dict,
    current: dict,
    target_section_type: Optional[str],
    prioritize_winning: bool,
) -> tuple[int, list[str]]:
    """
    참조 제안서의 관련도 점수(0~100)와 근거 목록을 계산합니다.

    | 조건                              | 점수 |
    |-----------------------------------|------|
    | 같은 기관                         | +40  |
    | 같은 프로젝트 유형                | +30  |
    | 수주(won) & prioritize_winning    | +20  |
    | 그 외 제출(submitted)             | +10  |
    | 계약 금액 차이 < 평균의 50%       | +10  |
    | 대상 섹션 유형 보유               | +15  |
    | 전체 텍스트 50,000자 초과         | +5   |
    """
    meta = reference["metadata"]
    score = 0
    reasons = []

    if _same(meta.get("agency_name"), current.get("agency_name")):
        score += 40
        reasons.append(f"Same agency: {meta['agency_name']}")

    if _same(meta.get("project_type"), current.get("project_type")):
        score += 30
        reasons.append(f"Same type: {meta['project_type']}")

    if prioritize_winning and meta.get("status") == "won":
        score += 20
        reasons.append("Winning proposal")
    elif meta.get("status") == "submitted":
        score += 10
        reasons.append("Submitted proposal")

    ref_value = meta.get("contract_value")
    cur_value = current.get("contract_value")
    if ref_value and cur_value:
        avg_value = (ref_value + cur_value) / 2
        if avg_value > 0 and abs(ref_value - cur_value) / avg_value < 0.5:
            score += 10
            reasons.append("Similar contract value")

    if target_section_type and any(
        s.get("section_type") == target_section_type for s in reference.get("sections", [])
    ):
        score += 15
        reasons.append(f"Has {target_section_type} section")

    if reference.get("stats", {}).get("total_text_length", 0) > COMPREHENSIVE_CONTENT_CHARS:
        score += 5
        reasons.append("Comprehensive content")

    return min(score, MAX_SCORE), reasons


def format_current_context(current: dict, target_section_type: Optional[str]) -> str:
    lines = [
        "# CURRENT PROPOSAL CONTEXT",
        "",
        f"Proposal Name: {current['proposal_name']}",
        f"Project Title: {current.get('project_title') or 'N/A'}",
        f"Agency: {current.get('agency_name') or 'N/A'}",
        f"Solicitation: {current.get('solicitation_number') or 'N/A'}",
        f"Type: {current.get('project_type') or 'N/A'}",
    ]
    if current.get("contract_value"):
        lines.append(f"Contract Value: ${format_currency(current['contract_value'])}")
    if target_section_type:
        lines.append(f"Target Section Type: {target_section_type}")
    return "\n".join(lines) + "\n\n"


def format_reference_intro(reference_count: int, target_section_type: Optional[str]) -> str:
    text = "# REFERENCE MATERIAL FROM PAST PROPOSALS\n\n"
    text += (
        f"The following content is extracted from {reference_count} past proposal(s), ranked by relevance. "
        "Use this as inspiration for structure, language, and approach, but ensure all new content "
        "is original and tailored to the current proposal.\n"
    )
    if target_section_type:
        text += f"**Note:** Content is filtered to show {target_section_type} sections and related material.\n"
    return text + "\n"


def _win_theme_lines(win_themes: Any) -> list[str]:
    if isinstance(win_themes, list):
        themes = win_themes
    elif isinstance(win_themes, dict):
        themes = win_themes.get("themes") or []
    else:
        themes = []

    lines = []
    for theme in themes:
        if isinstance(theme, str):
            text = theme
        elif isinstance(theme, dict):
            text = theme.get("theme_title") or theme.get("theme_statement")
        else:
            text = None
        if text:
            lines.append(f"- {text}")
    return lines


def format_reference(
    number: int,
    reference: dict,
    target_section_type: Optional[str],
    effective_max_tokens: int,
    include_documents: bool,
    include_resources: bool,
) -> str:
    """
    참조 제안서 하나를 마크다운 블록으로 만듭니다.

    예산이 큰 경우(>50,000 토큰) 섹션 5,000자/문서 1,000자,
    그렇지 않으면 섹션 2,000자/문서 500자로 자릅니다.
    """
    meta = reference["metadata"]
    large_budget = effective_max_tokens > LARGE_BUDGET_TOKENS

    out = f"## Reference Proposal {number}: {meta.get('proposal_name')}\n"
    out += f"**Reference ID:** REF{number}\n"
    out += f"**Relevance Score:** {reference['relevance_score']}/100 ({', '.join(reference['relevance_reasons'])})\n"
    out += f"**Status:** {meta.get('status')}\n"
    out += f"**Agency:** {meta.get('agency_name') or 'N/A'}\n"
    if meta.get("contract_value"):
        out += f"**Contract Value:** ${format_currency(meta['contract_value'])}\n"
    out += "\n"

    if meta.get("win_themes"):
        out += "**Win Themes:**\n"
        for line in _win_theme_lines(meta["win_themes"]):
            out += f"{line}\n"
        out += "\n"

    sections = reference.get("sections") or []
    if sections:
        if target_section_type:
            sections = [
                s for s in sections
                if s.get("section_type") in (target_section_type, "custom") or not s.get("section_type")
            ]
        if sections:
            out += f"### Proposal Sections ({len(sections)} relevant)\n\n"
            max_section_length = 5000 if large_budget else 2000
            for section in sections:
                content = section.get("content") or ""
                if not content.strip():
                    continue
                if len(content) > max_section_length:
                    content = content[:max_section_length] + "... [truncated]"
                out += f"#### {section.get('section_name')} ({section.get('section_type') or 'unknown'})\n"
                out += f"{content}\n\n"

    if include_documents:
        parsed_docs = [
            d for d in reference.get("documents") or []
            if d.get("parse_status") == "success" and d.get("text_content")
        ]
        if parsed_docs:
            out += f"### Key Documents ({len(parsed_docs)})\n\n"
            excerpt_length = 1000 if large_budget else 500
            for doc in parsed_docs:
                text = doc["text_content"]
                suffix = "... [excerpt]" if len(text) > excerpt_length else ""
                out += f"**{doc.get('file_name')}**:\n{text[:excerpt_length]}{suffix}\n\n"

    if include_resources:
        useful = [
            r for r in reference.get("resources") or []
            if r.get("text_content")
            and len(r["text_content"].strip()) > MIN_RESOURCE_CHARS
            and (not target_section_type or r.get("content_category") in (target_section_type, "general"))
        ]
        if useful:
            out += f"### Resources ({len(useful)})\n\n"
            for resource in useful[:MAX_RESOURCES_PER_REFERENCE]:
                text = resource["text_content"]
                if len(text) > MAX_RESOURCE_CHARS:
                    text = text[:MAX_RESOURCE_CHARS] + "..."
                out += f"**{resource.get('title') or resource.get('file_name')}**:\n{text}\n\n"

    return out


def format_instructions(enable_citations: bool, target_section_type: Optional[str]) -> str:
    text = "\n# AI WRITING INSTRUCTIONS\n\n"
    text += "Use the above reference material to inform your writing. "
    text += "Draw inspiration from successful structures, persuasive language, and technical approaches. "

    if enable_citations:
        text += "\n\n**CITATION REQUIREMENTS:**\n"
        text += (
            "When you significantly draw from a reference proposal's approach, structure, or language, "
            "include an inline citation like this:\n"
        )
        text += "- Format: [REF1: Technical Approach] or [REF2: Management Structure]\n"
        text += "- Place citations at the end of influenced paragraphs or sections\n"
        text += "- Use reference numbers (REF1, REF2, etc.) that correspond to the references above\n"
        text += "- Citations help with transparency and audit trails\n"
        text += (
            '\nExample: "Our phased implementation approach ensures minimal disruption to operations. '
            '[REF1: Transition Plan]"\n\n'
        )

    text += "However, ensure all generated content is:\n"
    text += "1. **Original** - Not copied directly from references\n"
    text += "2. **Specific** - Tailored to the current proposal\n"
    text += "3. **Traceable** - When significantly influenced by a reference, include citation: [REF#: Section]\n"
    text += "4. **Professional** - Government proposal tone\n"
    if target_section_type:
        text += f"5. **Focused** - Specifically for {target_section_type.replace('_', ' ', 1)} section\n"
    return text + "\n"


class ContextBuilder:
    """참조 제안서 기반 RAG 컨텍스트 생성기."""

    def __init__(
        self,
        store: Optional[EntityStore] = None,
        parser: Optional[ProposalParser] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store or get_entity_store()
        self.parser = parser or get_proposal_parser()
        self.settings = settings or get_settings()

    async def build(self, request: ContextBuildRequest) -> dict:
        start = time.perf_counter()

        if not request.current_proposal_id:
            raise InputValidationError("current_proposal_id is required")
        reference_ids = request.reference_proposal_ids
        if not isinstance(reference_ids, list) or len(reference_ids) == 0:
            raise InputValidationError("reference_proposal_ids must be a non-empty array")

        target = request.target_section_type
        effective_max_tokens = resolve_token_limit(
            request.max_tokens, request.llm_provider, self.settings.llm_token_limits
        )
        logger.info(
            f"[ContextBuilder] 컨텍스트 생성 시작: references={len(reference_ids)}, "
            f"section={target or 'all'}, token_limit={effective_max_tokens:,}"
        )

        current_proposal = await self.store.get(Proposal, request.current_proposal_id)
        if current_proposal is None:
            raise NotFoundError(
                "Current proposal not found",
                details={"proposal_id": request.current_proposal_id},
            )
        current = {
            "proposal_name": current_proposal.proposal_name,
            "project_title": current_proposal.project_title,
            "agency_name": current_proposal.agency_name,
            "solicitation_number": current_proposal.solicitation_number,
            "project_type": current_proposal.project_type,
            "contract_value": current_proposal.contract_value,
            "status": current_proposal.status,
        }

        # ========== 참조 제안서 동시 파싱 ==========
        parse_start = time.perf_counter()
        results = await asyncio.gather(
            *[self._parse_reference(ref_id, request.force_refresh) for ref_id in reference_ids]
        )
        parse_duration = round(time.perf_counter() - parse_start, 3)

        references = [r["data"] for r in results if r["success"]]
        parse_errors = [
            {"proposal_id": r["proposal_id"], "error": r["error"], "status": r["status"]}
            for r in results if not r["success"]
        ]
        cache_hits = len([r for r in results if r["success"] and r["cache_hit"]])
        cache_misses = len([r for r in results if r["success"] and not r["cache_hit"]])
        logger.info(
            f"[ContextBuilder] 파싱 완료 {parse_duration:.2f}s "
            f"(success={len(references)}, failed={len(parse_errors)}, cache {cache_hits} hits / {cache_misses} misses)"
        )

        if not references:
            raise ContextBuildError(
                "Failed to parse any reference proposals",
                details={"parse_errors": parse_errors},
            )

        # ========== 관련도 점수 ==========
        for ref in references:
            ref["relevance_score"], ref["relevance_reasons"] = score_reference(
                ref, current, target, request.prioritize_winning
            )
        references.sort(key=lambda r: r["relevance_score"], reverse=True)

        # ========== 포맷팅 + 토큰 예산 채우기 ==========
        chars_per_token = self.settings.chars_per_token
        max_chars = effective_max_tokens * chars_per_token

        context = format_current_context(current, target)
        context += format_reference_intro(len(references), target)

        truncated = False
        sources = []
        for number, ref in enumerate(references, start=1):
            block = format_reference(
                number,
                ref,
                target,
                effective_max_tokens,
                request.include_documents,
                request.include_resources,
            )
            if len(context) + len(block) > max_chars:
                logger.info(f"[ContextBuilder] 토큰 한도 도달: reference {number}")
                truncated = True
                break

            context += block + "---\n\n"
            sources.append({
                "proposal_id": ref["proposal_id"],
                "proposal_name": ref["metadata"].get("proposal_name"),
                "status": ref["metadata"].get("status"),
                "agency": ref["metadata"].get("agency_name"),
                "relevance_score": ref["relevance_score"],
                "relevance_reasons": ref["relevance_reasons"],
                "reference_number": number,
            })

        estimated_tokens = math.ceil(len(context) / chars_per_token)
        context += format_instructions(request.enable_citations, target)

        total_duration = round(time.perf_counter() - start, 3)
        logger.info(
            f"[ContextBuilder] 완료 {total_duration:.2f}s, "
            f"tokens {estimated_tokens:,}/{effective_max_tokens:,}, included={len(sources)}, truncated={truncated}"
        )

        return {
            "status": "success",
            "context": {
                "current_proposal": current,
                "reference_proposals": [
                    {
                        "proposal_id": r["proposal_id"],
                        "proposal_name": r["metadata"].get("proposal_name"),
                        "status": r["metadata"].get("status"),
                        "sections_count": len(r.get("sections") or []),
                        "documents_count": len(r.get("documents") or []),
                        "relevance_score": r["relevance_score"],
                    }
                    for r in references
                ],
                "formatted_prompt_context": context,
            },
            "metadata": {
                "total_references": len(reference_ids),
                "references_included": len(sources),
                "references_failed": len(parse_errors),
                "estimated_tokens": estimated_tokens,
                "max_tokens": effective_max_tokens,
                "token_utilization_percentage": math.floor(estimated_tokens / effective_max_tokens * 100 + 0.5),
                "truncated": truncated,
                "sources": sources,
                "parse_errors": parse_errors,
                "llm_provider": request.llm_provider,
                "section_type_filter": target,
                "performance": {
                    "total_duration_seconds": total_duration,
                    "parse_duration_seconds": parse_duration,
                    "cache_hits": cache_hits,
                    "cache_misses": cache_misses,
                },
                "settings": {
                    "include_documents": request.include_documents,
                    "include_resources": request.include_resources,
                    "prioritize_winning": request.prioritize_winning,
                    "force_refresh": request.force_refresh,
                    "enable_citations": request.enable_citations,
                },
            },
            "built_at": utcnow().isoformat(),
        }

    async def _parse_reference(self, proposal_id: str, force_refresh: bool) -> dict:
        """참조 제안서 하나를 파싱합니다. 실패는 예외 대신 결과로 돌려줍니다."""
        try:
            result = await self.parser.parse(proposal_id, force_refresh=force_refresh)
        except ProposalIQError as e:
            logger.warning(f"[ContextBuilder] 참조 파싱 실패 {proposal_id}: {e.message}")
            return {"success": False, "proposal_id": proposal_id, "error": e.message, "status": "parse_failed"}
        except Exception as e:
            logger.error(f"[ContextBuilder] 참조 요청 실패 {proposal_id}: {e}", exc_info=True)
            return {"success": False, "proposal_id": proposal_id, "error": str(e), "status": "request_failed"}

        return {
            "success": True,
            "proposal_id": proposal_id,
            "data": {
                "proposal_id": proposal_id,
                **result["proposal_data"],
                "stats": result["stats"],
            },
            "cache_hit": result.get("cache_hit", False),
        }


_context_builder: Optional[ContextBuilder] = None


def get_context_builder() -> ContextBuilder:
    global _context_builder
    if _context_builder is None:
        _context_builder = ContextBuilder()
    return _context_builder
