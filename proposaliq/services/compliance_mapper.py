"""
컴플라이언스 매트릭스 서비스.

- 요구사항 → 섹션 AI 자동 매핑 (배치 단위, 배치 사이 대기)
- 갭 분석 / 상태 집계
- CSV 내보내기, CSV·엑셀 가져오기 (pandas)
"""

import asyncio
import io
import json
import logging
import zipfile
from typing import Optional

import pandas as pd
from pydantic import ValidationError

from proposaliq.config import Settings, get_settings
from proposaliq.exceptions import InputValidationError, LLMClientError, NotFoundError, ProposalIQError
from proposaliq.models.compliance import ComplianceExportFilter, RequirementMapping
from proposaliq.models.entities import ComplianceRequirement, Proposal, ProposalSection
from proposaliq.prompts.compliance_prompts import COMPLIANCE_MAPPING_PROMPT, COMPLIANCE_MAPPING_SCHEMA
from proposaliq.services.entity_store import EntityStore, get_entity_store
from proposaliq.services.llm_client import LLMClient, get_llm_client
from proposaliq.services.document_text import file_extension

logger = logging.getLogger(__name__)

CSV_HEADERS = ["Req ID", "Title", "Type", "Category", "Status", "Risk", "Addressed In", "Evidence", "Source"]

# 가져오기 시 컬럼명 → 엔티티 필드
IMPORT_COLUMNS = {
    "req id": "requirement_id",
    "requirement_id": "requirement_id",
    "title": "requirement_title",
    "requirement_title": "requirement_title",
    "description": "requirement_description",
    "requirement_description": "requirement_description",
    "type": "requirement_type",
    "requirement_type": "requirement_type",
    "category": "requirement_category",
    "requirement_category": "requirement_category",
    "risk": "risk_level",
    "risk_level": "risk_level",
    "source": "requirement_source",
    "requirement_source": "requirement_source",
}


def chunked(items: list, size: int) -> list[list]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def parse_mappings(result) -> tuple[list[RequirementMapping], list[str]]:
    """
    LLM 매핑 응답을 검증합니다.

    Returns:
        (유효한 매핑, 건너뛴 항목의 오류 메시지)

    Raises:
        LLMClientError: 응답이 {"mappings": [...]} 형태가 아닌 경우
    """
    mappings = result.get("mappings") if isinstance(result, dict) else None
    if not isinstance(mappings, list):
        raise LLMClientError(
            "LLM mapping response has no mappings list",
            details={"response_type": type(result).__name__},
        )

    valid, rejected = [], []
    for index, entry in enumerate(mappings):
        try:
            valid.append(RequirementMapping.model_validate(entry))
        except ValidationError as e:
            first = e.errors(include_url=False)[0]
            rejected.append(f"mapping {index}: {first['msg']}")
    return valid, rejected


def is_unmapped(
requirement: ComplianceRequirement) -> bool:
    return not requirement.addressed_in_sections


def filter_requirements(
    requirements: list[ComplianceRequirement], filters: ComplianceExportFilter
) -> list[ComplianceRequirement]:
    """검색어(제목/ID/설명), 상태, 위험도로 거릅니다."""
    query = (filters.search or "").lower()

    def matches(req: ComplianceRequirement) -> bool:
        if query and not any(
            query in (value or "").lower()
            for value in (req.requirement_title, req.requirement_id, req.requirement_description)
        ):
            return False
        if filters.status != "all" and req.compliance_status != filters.status:
            return False
        if filters.risk != "all" and req.risk_level != filters.risk:
            return False
        return True

    return [r for r in requirements if matches(r)]


def summarize_status(requirements: list[ComplianceRequirement]) -> dict:
    return {
        "total": len(requirements),
        "compliant": len([r for r in requirements if r.compliance_status == "compliant"]),
        "in_progress": len([r for r in requirements if r.compliance_status == "in_progress"]),
        "not_started": len([r for r in requirements if r.compliance_status == "not_started"]),
        "critical_unmapped": len(
            [r for r in requirements if r.risk_level == "critical" and is_unmapped(r)]
        ),
    }


def analyze_gaps(requirements: list[ComplianceRequirement]) -> dict:
    unmapped = [r for r in requirements if is_unmapped(r)]
    return {
        "has_gaps": bool(unmapped),
        "unmapped_count": len(unmapped),
        "critical": len([r for r in unmapped if r.risk_level == "critical"]),
        "high": len([r for r in unmapped if r.risk_level == "high"]),
        "unmapped_requirements": [
            {
                "id": r.id,
                "requirement_id": r.requirement_id,
                "requirement_title": r.requirement_title,
                "risk_level": r.risk_level,
            }
            for r in unmapped
        ],
    }


def build_matrix_frame(
    requirements: list[ComplianceRequirement], sections: list[ProposalSection]
) -> pd.DataFrame:
    """매트릭스 DataFrame. 매핑된 섹션 ID는 섹션 이름으로 바꿉니다."""
    section_names = {s.id: s.section_name for s in sections}
    rows = [
        [
            req.requirement_id or "",
            req.requirement_title or "",
            req.requirement_type or "",
            req.requirement_category or "",
            req.compliance_status or "",
            req.risk_level or "",
            "; ".join(section_names.get(sid, sid) for sid in req.addressed_in_sections),
            req.evidence_provided or "",
            req.requirement_source or "",
        ]
        for req in requirements
    ]
    return pd.DataFrame(rows, columns=CSV_HEADERS)


def read_requirements_frame(content: bytes, file_name: str) -> pd.DataFrame:
    """CSV 또는 엑셀 파일을 DataFrame으로 읽습니다."""
    ext = file_extension(file_name)
    if ext not in ("csv", "xlsx"):
        raise InputValidationError(
            f"Unsupported file type: {ext or 'unknown'}. Supported formats: CSV, XLSX",
            details={"file_name": file_name},
        )
    try:
        if ext == "csv":
            return pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False)
        return pd.read_excel(io.BytesIO(content), dtype=str).fillna("")
    except (ValueError, zipfile.BadZipFile) as e:
        raise InputValidationError(
            f"Failed to read {ext.upper()} file", details={"file_name": file_name, "error": str(e)}
        ) from e


class ComplianceMapper:
    """요구사항 매핑/분석 서비스."""

    def __init__(
        self,
        store: Optional[EntityStore] = None,
        llm: Optional[LLMClient] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store or get_entity_store()
        self.llm = llm or get_llm_client()
        self.settings = settings or get_settings()

    async def load(self, proposal_id: str) -> tuple[Proposal, list[ComplianceRequirement], list[ProposalSection]]:
        proposal = await self.store.get(Proposal, proposal_id)
        if proposal is None:
            raise NotFoundError("Proposal not found", details={"proposal_id": proposal_id})
        requirements = await self.store.filter(
            ComplianceRequirement, {"proposal_id": proposal_id}, sort="requirement_id"
        )
        sections = await self.store.filter(ProposalSection, {"proposal_id": proposal_id}, sort="order")
        return proposal, requirements, sections

    async def auto_map(self, proposal_id: Optional[str]) -> dict:
        """
        요구사항을 배치로 나눠 LLM에 섹션 매핑을 요청합니다.

        실패한 배치는 기록만 하고 다음 배치를 계속 처리합니다.
        """
        if not proposal_id:
            raise InputValidationError("proposal_id is required")

        _, requirements, sections = await self.load(proposal_id)
        if not sections or not requirements:
            raise InputValidationError("Need sections and requirements to auto-map")

        batch_size = self.settings.compliance_batch_size
        delay = self.settings.compliance_batch_delay_seconds
        batches = chunked(requirements, batch_size)
        total_batches = len(batches)

        sections_json = json.dumps(
            [{"id": s.id, "name": s.section_name, "type": s.section_type} for s in sections], indent=2
        )

        mapped = 0
        failed_batches = []
        logger.info(
            f"[ComplianceMapper] 자동 매핑 시작: {len(requirements)} requirements, {total_batches} batches"
        )

        for index, batch in enumerate(batches):
            batch_number = index + 1
            by_id = {r.id: r for r in batch}
            prompt = COMPLIANCE_MAPPING_PROMPT.format(
                sections_json=sections_json,
                batch_number=batch_number,
                total_batches=total_batches,
                requirements_json=json.dumps(
                    [{"id": r.id, "title": r.requirement_title, "type": r.requirement_type} for r in batch],
                    indent=2,
                ),
            )

            try:
                result = await self.llm.invoke(prompt, response_json_schema=COMPLIANCE_MAPPING_SCHEMA)
                mappings, rejected = parse_mappings(result)
                applied = await self._apply_mappings(mappings, by_id)
            except ProposalIQError as e:
                logger.warning(f"[ComplianceMapper] 배치 {batch_number}/{total_batches} 실패: {e.message}")
                failed_batches.append({
                    "batch_number": batch_number,
                    "requirement_ids": [r.id for r in batch],
                    "error": e.message,
                })
            else:
                mapped += len(applied)
                if rejected:
                    logger.warning(
                        f"[ComplianceMapper] 배치 {batch_number}/{total_batches}: 잘못된 매핑 {len(rejected)}개 건너뜀"
                    )
                    failed_batches.append({
                        "batch_number": batch_number,
                        "requirement_ids": [r.id for r in batch if r.id not in applied],
                        "error": f"Skipped {len(rejected)} invalid mappings: " + "; ".join(rejected),
                    })

            if batch_number < total_batches:
                await asyncio.sleep(delay)

        logger.info(f"[ComplianceMapper] 자동 매핑 완료: mapped={mapped}, failed_batches={len(failed_batches)}")
        return {
            "success": True,
            "total_requirements": len(requirements),
            "total_batches": total_batches,
            "mapped_count": mapped,
            "failed_batches": failed_batches,
        }

    async def _apply_mappings(
        self, mappings: list[RequirementMapping], by_id: dict[str, ComplianceRequirement]
    ) -> set[str]:
        """배치에 속한 요구사항만 갱신하고, 갱신한 요구사항 ID를 돌려줍니다."""
        applied = set()
        for mapping in mappings:
            requirement = by_id.get(mapping.requirement_id)
            if requirement is None:
                continue
            section_ids = mapping.section_ids or []
            await self.store.update(ComplianceRequirement, requirement.id, {
                "addressed_in_sections": section_ids,
                "evidence_provided": mapping.cross_reference,
                "compliance_status": "in_progress" if section_ids else "not_started",
            })
            applied.add(requirement.id)
        return applied

    async def gap_analysis(self, proposal_id: str) -> dict:
        _, requirements, _ = await self.load(proposal_id)
        return analyze_gaps(requirements)

    async def status_summary(self, proposal_id: str) -> dict:
        _, requirements, _ = await self.load(proposal_id)
        return summarize_status(requirements)

    async def export_csv(self, proposal_id: str, filters: ComplianceExportFilter) -> tuple[str, str]:
        """(파일명, CSV 문자열)을 반환합니다."""
        proposal, requirements, sections = await self.load(proposal_id)
        frame = build_matrix_frame(filter_requirements(requirements, filters), sections)
        file_name = f"{proposal.proposal_name}_Compliance_Matrix.csv"
        logger.info(f"[ComplianceMapper] CSV 내보내기: {file_name} ({len(frame)} rows)")
        return file_name, frame.to_csv(index=False)

    async def import_requirements(self, proposal_id: str, content: bytes, file_name: str) -> dict:
        """CSV/엑셀 매트릭스에서 요구사항을 일괄 등록합니다. 제목 없는 행은 건너뜁니다."""
        await self.store.get_or_404(Proposal, proposal_id)
        frame = read_requirements_frame(content, file_name)
        columns = {col: IMPORT_COLUMNS[str(col).strip().lower()] for col in frame.columns
                   if str(col).strip().lower() in IMPORT_COLUMNS}
        if "requirement_title" not in columns.values():
            raise InputValidationError("Matrix file must contain a Title column", details={"columns": list(frame.columns)})

        items = []
        skipped = 0
        for record in frame.rename(columns=columns)[list(columns.values())].to_dict(orient="records"):
            data = {k: str(v).strip() for k, v in record.items() if str(v).strip()}
            if not data.get("requirement_title"):
                skipped += 1
                continue
            items.append({"proposal_id": proposal_id, **data})

        created = await self.store.bulk_create(ComplianceRequirement, items)
        logger.info(f"[ComplianceMapper] 요구사항 가져오기: created={len(created)}, skipped={skipped}")
        return {"success": True, "created_count": len(created), "skipped_rows": skipped}


_compliance_mapper: Optional[ComplianceMapper] = None


def get_compliance_mapper() -> ComplianceMapper:
    global _compliance_mapper
    if _compliance_mapper is None:
        _compliance_mapper = ComplianceMapper()
    return _compliance_mapper
