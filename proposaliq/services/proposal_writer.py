"""
AI 제안서 섹션 작성 서비스.

1. 제안서 조회
2. AI 설정 조회 (조직 설정 → 전역 기본값)
3. 여러 출처에서 컨텍스트 수집 (솔리시테이션, 참조 제안서, 콘텐츠 라이브러리)
4. 가드레일을 적용한 프롬프트 구성
5. LLM 호출
6. 신뢰도 점수 / 컴플라이언스 검사
7. ProposalSection 저장 (있으면 갱신)
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from proposaliq.exceptions import InputValidationError, NotFoundError, ConfigurationError, ProposalIQError
from proposaliq.models.context import ContextBuildRequest
from proposaliq.models.entities import (
    AiConfiguration,
    Proposal,
    ProposalResource,
    ProposalSection,
    SolicitationDocument,
)
from proposaliq.models.writer import GenerateSectionRequest
from proposaliq.prompts.writer_prompts import (
    DEFAULT_CORE_PROMPT_TEMPLATE,
    TEMPLATE_PLACEHOLDERS,
    PROPOSAL_DETAILS_BLOCK,
    SOLICITATION_HEADER,
    REFERENCE_HEADER,
    BOILERPLATE_HEADER,
    ADDITIONAL_CONTEXT_HEADER,
    FINAL_INSTRUCTION,
)
from proposaliq.services.context_builder import ContextBuilder, get_context_builder
from proposaliq.services.entity_store import EntityStore, get_entity_store
from proposaliq.services.llm_client import LLMClient, get_llm_client
from proposaliq.services.proposal_parser import ProposalParser, get_proposal_parser
from proposaliq.utils.dates import utcnow

logger = logging.getLogger(__name__)

MAX_REFERENCE_PROPOSALS = 5
MAX_LIBRARY_ITEMS = 3
LIBRARY_EXCERPT_CHARS = 300
SOLICITATION_EXCERPT_CHARS = 4000
DISCLAIMER_PREVIEW_CHARS = 50


@dataclass
class WriterConfig:
    """AI 설정에 생성 파라미터를 병합한 최종 설정."""

    ai_config: AiConfiguration
    tone: str
    word_count_min: int
    word_count_max: int
    reading_level: str


@dataclass
class GatheredContext:
    solicitation_content: str = ""
    reference_content: str = ""
    content_library_content: str = ""
    sources: list[dict] = field(default_factory=list)
    summary: str = ""
    reference_proposals_count: int = 0
    truncated: bool = False


def count_words(text: Optional[str]) -> int:
    if not text:
        return 0
    return len(text.split())


def calculate_confidence_score(content: str, context: GatheredContext) -> int:
    """
    휴리스틱 신뢰도 점수 (0~100).

    기본 50점, 분량 200~1500단어 +15 (100단어 미만 -10),
    솔리시테이션 +15, 참조 제안서 +10, 라이브러리 +5, 출처 3개 이상 +5
    """
    score = 50

    word_count = count_words(content)
    if 200 <= word_count <= 1500:
        score += 15
    elif word_count < 100:
        score -= 10

    if context.solicitation_content:
        score += 15
    if context.reference_content:
        score += 10
    if context.content_library_content:
        score += 5

    if len(context.sources) >= 3:
        score += 5

    return max(0, min(100, score))


def check_compliance(content: str, ai_config: AiConfiguration) -> list[dict]:
    """가드레일 위반(금지 문구, 누락된 면책 문구, 분량 부족)을 찾습니다."""
    issues = []
    guardrails = ai_config.guardrails

    lowered = content.lower()
    for phrase in guardrails.forbidden_phrases:
        if phrase.lower() in lowered:
            issues.append({
                "type": "forbidden_phrase",
                "message": f'Contains forbidden phrase: "{phrase}"',
                "severity": "high",
            })

    for disclaimer in guardrails.required_disclaimers:
        if disclaimer not in content:
            issues.append({
                "type": "missing_disclaimer",
                "message": f'Missing required disclaimer: "{disclaimer[:DISCLAIMER_PREVIEW_CHARS]}..."',
                "severity": "medium",
            })

    word_count = count_words(content)
    if word_count < ai_config.default_word_count_min:
        issues.append({
            "type": "word_count",
            "message": f"Content is shorter than minimum ({word_count} vs {ai_config.default_word_count_min})",
            "severity": "low",
        })

    return issues


def build_prompt(
    config: WriterConfig,
    section_type: str,
    proposal: Proposal,
    context: GatheredContext,
    additional_context: Optional[str] = None,
) -> str:
    ai_config = config.ai_config
    prompt = ""

    if ai_config.system_instructions:
        prompt += f"{ai_config.system_instructions}\n\n"

    values = {
        "section_type": section_type,
        "tone": config.tone,
        "reading_level": config.reading_level,
        "word_count_min": str(config.word_count_min),
        "word_count_max": str(config.word_count_max),
    }
    core_prompt = ai_config.core_prompt_template or DEFAULT_CORE_PROMPT_TEMPLATE
    # 알려진 자리표시자만 치환, 나머지 중괄호는 그대로 둠
    for name in TEMPLATE_PLACEHOLDERS:
        core_prompt = core_prompt.replace("{" + name + "}", values[name])
    prompt += f"{core_prompt}\n\n"

    prompt += PROPOSAL_DETAILS_BLOCK.format(
        proposal_name=proposal.proposal_name,
        agency_name=proposal.agency_name or "Not specified",
        project_title=proposal.project_title or "Not specified",
        solicitation_number=proposal.solicitation_number or "Not specified",
    )

    if context.solicitation_content:
        prompt += f"{SOLICITATION_HEADER}\n{context.solicitation_content}\n\n"
    if context.reference_content:
        prompt += f"{REFERENCE_HEADER}\n{context.reference_content}\n\n"
    if context.content_library_content:
        prompt += f"{BOILERPLATE_HEADER}\n{context.content_library_content}\n\n"

    guardrails = ai_config.guardrails
    if guardrails.forbidden_phrases:
        prompt += f"IMPORTANT: Never use these phrases: {', '.join(guardrails.forbidden_phrases)}\n"
    if guardrails.formatting_rules:
        prompt += "FORMATTING RULES:\n" + "\n".join(guardrails.formatting_rules) + "\n\n"
    if guardrails.required_disclaimers:
        prompt += "REQUIRED DISCLAIMERS (include these):\n" + "\n".join(guardrails.required_disclaimers) + "\n\n"

    if additional_context:
        prompt += f"{ADDITIONAL_CONTEXT_HEADER}\n{additional_context}\n\n"

    if ai_config.citation_style and ai_config.citation_style != "none":
        prompt += f"Use {ai_config.citation_style} citation style when referencing sources.\n\n"

    prompt += FINAL_INSTRUCTION.format(section_type=section_type)
    return prompt


class ProposalWriter:
    """설정 기반 AI 섹션 작성기."""

    def __init__(
        self,
        store: Optional[EntityStore] = None,
        llm: Optional[LLMClient] = None,
        context_builder: Optional[ContextBuilder] = None,
        parser: Optional[ProposalParser] = None,
    ):
        self.store = store or get_entity_store()
        self.llm = llm or get_llm_client()
        self.context_builder = context_builder or get_context_builder()
        self.parser = parser or get_proposal_parser()

    async def generate_section(self, request: GenerateSectionRequest, user_email: Optional[str] = None) -> dict:
        if not request.proposal_id or not request.section_type:
            raise InputValidationError(
                "Missing required parameters: proposal_id and section_type are required"
            )
        section_type = request.section_type
        logger.info(f"[ProposalWriter] 생성 시작: proposal={request.proposal_id}, section={section_type}")

        proposal = await self.store.get(Proposal, request.proposal_id)
        if proposal is None:
            raise NotFoundError("Proposal not found", details={"proposal_id": request.proposal_id})

        ai_config = await self.get_ai_configuration(proposal.organization_id)
        params = request.generation_params
        config = WriterConfig(
            ai_config=ai_config,
            tone=params.tone or ai_config.default_tone,
            word_count_min=params.word_count_min or ai_config.default_word_count_min,
            word_count_max=params.word_count_max or ai_config.default_word_count_max,
            reading_level=params.reading_level or ai_config.reading_level,
        )
        logger.info(f"[ProposalWriter] AI 설정: {ai_config.config_name}, LLM: {ai_config.llm_provider}")

        context = await self.gather_context(proposal, ai_config, section_type)
        prompt = build_prompt(config, section_type, proposal, context, params.additional_context)
        logger.info(f"[ProposalWriter] 프롬프트 길이: {len(prompt)} chars")

        content = await self.llm.invoke(prompt, add_context_from_internet=False)
        if not isinstance(content, str):
            content = str(content)

        confidence_score = (
            calculate_confidence_score(content, context) if ai_config.enable_confidence_scoring else None
        )
        compliance_issues = check_compliance(content, ai_config) if ai_config.enable_compliance_check else []
        word_count = count_words(content)

        section_data = {
            "proposal_id": proposal.id,
            "section_name": section_type,
            "section_type": section_type,
            "content": content,
            "word_count": word_count,
            "status": "ai_generated",
            "ai_prompt_used": prompt,
            "ai_reference_sources": context.sources,
            "ai_context_summary": context.summary,
            "ai_generation_metadata": {
                "estimated_tokens_used": math.ceil(len(prompt) / 4),
                "reference_proposals_count": context.reference_proposals_count,
                "context_truncated": context.truncated,
                "generated_at": utcnow().isoformat(),
                "agent_triggered": request.agent_triggered,
                "user_email": request.user_email or user_email,
                "ai_config_id": ai_config.id,
                "ai_config_name": ai_config.config_name,
                "confidence_score": confidence_score,
                "compliance_issues": compliance_issues,
                "llm_provider": ai_config.llm_provider,
                "temperature": ai_config.temperature,
            },
        }

        existing = await self.store.filter(
            ProposalSection, {"proposal_id": proposal.id, "section_type": section_type}
        )
        if existing:
            saved = await self.store.update(ProposalSection, existing[0].id, section_data)
            logger.info(f"[ProposalWriter] 기존 섹션 갱신: {saved.id}")
        else:
            saved = await self.store.create(ProposalSection, section_data)
            logger.info(f"[ProposalWriter] 새 섹션 생성: {saved.id}")

        return {
            "success": True,
            "section_id": saved.id,
            "content": content,
            "word_count": word_count,
            "confidence_score": confidence_score,
            "compliance_issues": compliance_issues,
            "metadata": {
                "sources_used": context.sources,
                "context_summary": context.summary,
                "ai_config_used": ai_config.config_name,
            },
        }

    async def get_ai_configuration(self, organization_id: Optional[str]) -> AiConfiguration:
        """조직 전용 활성 설정, 없으면 전역 기본 설정."""
        if organization_id:
            org_configs = await self.store.filter(
                AiConfiguration, {"organization_id": organization_id, "is_active": True}
            )
            if org_configs:
                return org_configs[0]

        global_configs = await self.store.filter(
            AiConfiguration, {"is_global_default": True, "is_active": True}
        )
        if global_configs:
            return global_configs[0]

        raise ConfigurationError("No AI configuration found. Please set up AI settings first.")

    async def gather_context(
        self, proposal: Proposal, ai_config: AiConfiguration, section_type: str
    ) -> GatheredContext:
        context = GatheredContext()
        weights = ai_config.context_priority_weights or {}

        # 1순위: 솔리시테이션 문서
        if ai_config.use_solicitation_parsing:
            docs = await self.store.filter(SolicitationDocument, {"proposal_id": proposal.id})
            blocks = []
            for doc in docs:
                extracted = await self.parser.extract_file_text(doc.file_name, doc.file_url)
                text = extracted.get("text_content") or "[Content not available]"
                blocks.append(f"Document: {doc.file_name}\n{text[:SOLICITATION_EXCERPT_CHARS]}")
                context.sources.append({
                    "type": "solicitation",
                    "name": doc.file_name,
                    "weight": weights.get("solicitation_weight") or 1.0,
                })
            context.solicitation_content = "\n\n".join(blocks)

        # 2순위: 참조 제안서 (RAG)
        if ai_config.use_rag and proposal.reference_proposal_ids:
            reference_ids = proposal.reference_proposal_ids[:MAX_REFERENCE_PROPOSALS]
            context.reference_proposals_count = len(reference_ids)
            try:
                built = await self.context_builder.build(ContextBuildRequest(
                    current_proposal_id=proposal.id,
                    reference_proposal_ids=reference_ids,
                    target_section_type=section_type,
                    llm_provider=ai_config.llm_provider,
                ))
            except ProposalIQError as e:
                logger.warning(f"[ProposalWriter] 참조 컨텍스트 생성 실패, 계속 진행: {e.message}")
            else:
                context.reference_content = built["context"]["formatted_prompt_context"]
                context.truncated = built["metadata"]["truncated"]
                for source in built["metadata"]["sources"]:
                    context.sources.append({
                        "type": "reference_proposal",
                        "proposal_id": source["proposal_id"],
                        "relevance_score": source["relevance_score"],
                        "weight": weights.get("reference_proposals_weight") or 0.8,
                    })

        # 3순위: 콘텐츠 라이브러리 보일러플레이트
        if ai_config.use_content_library and proposal.organization_id:
            items = await self.store.filter(
                ProposalResource,
                {"organization_id": proposal.organization_id, "resource_type": "boilerplate_text"},
                limit=MAX_LIBRARY_ITEMS,
            )
            context.content_library_content = "\n\n".join(
                f"[Boilerplate - {item.content_category}]: {(item.boilerplate_content or '')[:LIBRARY_EXCERPT_CHARS]}..."
                for item in items
            )
            for item in items:
                context.sources.append({
                    "type": "content_library",
                    "title": item.title,
                    "category": item.content_category,
                    "weight": weights.get("content_library_weight") or 0.6,
                })

        counts = {
            source_type: len([s for s in context.sources if s["type"] == source_type])
            for source_type in ("solicitation", "reference_proposal", "content_library")
        }
        context.summary = (
            f"Used {len(context.sources)} sources: "
            f"{counts['solicitation']} solicitation docs, "
            f"{counts['reference_proposal']} reference proposals, "
            f"{counts['content_library']} content library items"
        )
        return context


_proposal_writer: Optional[ProposalWriter] = None


def get_proposal_writer() -> ProposalWriter:
    global _proposal_writer
    if _proposal_writer is None:
        _proposal_writer = ProposalWriter()
    return _proposal_writer
