"""
엔티티 데이터 모델입니다.
엔티티 저장소(EntityStore)에 저장되는 레코드들의 형식을 정의합니다.

모든 엔티티는 스키마리스 저장소처럼 알려지지 않은 필드도 그대로 보존합니다.
(extra="allow") 알려진 필드만 타입 검증을 거칩니다.
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class EntityRecord(BaseModel):
    """모든 엔티티가 공통으로 가지는 기본 필드입니다."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = Field(default=None, description="레코드 고유 ID (생성 시 자동 부여)")
    created_date: Optional[datetime] = None
    updated_date: Optional[datetime] = None


class Organization(EntityRecord):
    organization_name: str
    organization_type: str = "consulting_firm"


class User(EntityRecord):
    """로그인 사용자. auth.me()가 반환하는 레코드입니다."""

    email: str
    full_name: Optional[str] = None
    organization_id: Optional[str] = None
    role: str = "member"


class Client(EntityRecord):
    organization_id: Optional[str] = None
    client_name: str
    contact_email: Optional[str] = None
    access_token: Optional[str] = None
    token_expires_at: Optional[datetime] = None


class TeamingPartner(EntityRecord):
    organization_id: Optional[str] = None
    partner_name: str
    partner_type: Optional[str] = None
    capabilities: list[str] = Field(default_factory=list)


class Proposal(EntityRecord):
    """
    제안서 레코드입니다.

    strategy_config, evaluation_results, ai_confidence_score는
    JSON 문자열 또는 객체로 저장될 수 있습니다.
    """

    proposal_name: str
    project_title: Optional[str] = None
    agency_name: Optional[str] = None
    solicitation_number: Optional[str] = None
    project_type: Optional[str] = None
    proposal_type_category: Optional[str] = None
    contract_value: Optional[float] = None
    status: str = "evaluating"
    organization_id: Optional[str] = None
    due_date: Optional[datetime] = None
    strategy_config: Optional[Any] = None
    evaluation_results: Optional[Any] = None
    ai_confidence_score: Optional[Any] = None
    reference_proposal_ids: list[str] = Field(default_factory=list)
    linked_resource_ids: list[str] = Field(default_factory=list)
    internal_deadlines: list[dict] = Field(default_factory=list)
    key_milestones: list[dict] = Field(default_factory=list)


class ProposalSection(EntityRecord):
    proposal_id: str
    section_name: str
    section_type: Optional[str] = None
    content: str = ""
    word_count: int = 0
    status: str = "draft"
    order: int = 0


class SolicitationDocument(EntityRecord):
    proposal_id: str
    organization_id: Optional[str] = None
    file_name: str
    document_type: Optional[str] = None
    description: Optional[str] = None
    file_url: Optional[str] = None


class ProposalResource(EntityRecord):
    """콘텐츠 라이브러리 항목 (보일러플레이트, 역량 소개서 등)."""

    organization_id: Optional[str] = None
    title: Optional[str] = None
    resource_type: Optional[str] = None
    content_category: Optional[str] = None
    description: Optional[str] = None
    boilerplate_content: Optional[str] = None
    text_content: Optional[str] = None
    file_name: Optional[str] = None
    file_url: Optional[str] = None
    file_size: Optional[int] = None
    tags: list[str] = Field(default_factory=list)
    usage_count: int = 0
    linked_proposal_ids: list[str] = Field(default_factory=list)
    extracted_data: Optional[dict] = None


class ProposalComment(EntityRecord):
    proposal_id: str
    section_id: Optional[str] = None
    author_name: Optional[str] = None
    content: str = ""
    comment_type: Optional[str] = None


class ComplianceRequirement(EntityRecord):
    proposal_id: str
    requirement_id: Optional[str] = None
    requirement_title: str = ""
    requirement_description: Optional[str] = None
    requirement_type: Optional[str] = None
    requirement_category: Optional[str] = None
    requirement_source: Optional[str] = None
    compliance_status: str = "not_started"
    risk_level: str = "medium"
    addressed_in_sections: list[str] = Field(default_factory=list)
    evidence_provided: Optional[str] = None


class WinTheme(EntityRecord):
    proposal_id: Optional[str] = None
    organization_id: Optional[str] = None
    theme_title: str
    theme_statement: Optional[str] = None
    priority: Optional[str] = None


class Guardrails(BaseModel):
    forbidden_phrases: list[str] = Field(default_factory=list)
    formatting_rules: list[str] = Field(default_factory=list)
    required_disclaimers: list[str] = Field(default_factory=list)


class AiConfiguration(EntityRecord):
    """조직별(또는 전역 기본) AI 글쓰기 설정입니다."""

    organization_id: Optional[str] = None
    config_name: str = "Default"
    is_active: bool = True
    is_global_default: bool = False
    llm_provider: str = "gemini"
    temperature: float = 0.7
    default_tone: str = "professional"
    default_word_count_min: int = 200
    default_word_count_max: int = 1000
    reading_level: str = "professional"
    system_instructions: Optional[str] = None
    core_prompt_template: Optional[str] = None
    use_solicitation_parsing: bool = True
    use_rag: bool = True
    use_content_library: bool = True
    context_priority_weights: dict[str, float] = Field(default_factory=dict)
    guardrails: Guardrails = Field(default_factory=Guardrails)
    citation_style: str = "none"
    enable_confidence_scoring: bool = True
    enable_compliance_check: bool = True


class ChecklistItem(BaseModel):
    """데이터 콜 체크리스트의 한 항목입니다."""

    model_config = ConfigDict(extra="allow")

    id: str
    item_label: str
    item_description: Optional[str] = None
    is_required: bool = True
    status: str = "pending"  # pending | in_progress | completed | not_applicable
    uploaded_files: list[dict] = Field(default_factory=list)
    submitted_notes: Optional[str] = None
    completed_date: Optional[datetime] = None
    completed_by: Optional[str] = None

    @property
    def is_done(self) -> bool:
        return self.status in ("completed", "not_applicable")


class DataCallRequest(EntityRecord):
    organization_id: Optional[str] = None
    proposal_id: Optional[str] = None
    request_title: str
    request_description: Optional[str] = None
    recipient_type: Optional[str] = None
    created_by_email: Optional[str] = None
    created_by_name: Optional[str] = None
    assigned_to_email: Optional[str] = None
    priority: str = "medium"
    due_date: Optional[datetime] = None
    overall_status: str = "draft"
    access_token: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    checklist_items: list[ChecklistItem] = Field(default_factory=list)
    portal_accessed_count: int = 0
    last_portal_access: Optional[datetime] = None
    sent_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None


class ExportHistory(EntityRecord):
    proposal_id: str
    organization_id: Optional[str] = None
    exported_by_email: Optional[str] = None
    exported_by_name: Optional[str] = None
    export_format: str
    has_watermark: bool = False
    proposal_status_at_export: Optional[str] = None
    template_id: Optional[str] = None
    sections_exported: list[str] = Field(default_factory=list)
    file_name: str
    file_size_bytes: int = 0
    file_uri: Optional[str] = None
    download_url: Optional[str] = None
    expires_at: Optional[datetime] = None
    options: Optional[str] = None


# 엔티티 이름 → 모델 클래스. 엔티티 API 경로(/entities/{name})에 사용됩니다.
ENTITY_MODELS: dict[str, type[EntityRecord]] = {
    model.__name__: model
    for model in (
        Organization,
        User,
        Client,
        TeamingPartner,
        Proposal,
        ProposalSection,
        SolicitationDocument,
        ProposalResource,
        ProposalComment,
        ComplianceRequirement,
        WinTheme,
        AiConfiguration,
        DataCallRequest,
        ExportHistory,
    )
}
