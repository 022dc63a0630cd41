"""
제안서 작업 API 통합 테스트.
컨텍스트 빌드, AI 섹션 작성, 컴플라이언스, 타임라인, 내보내기, 리소스,
과거 수행실적 파싱을 HTTP 경계에서 확인합니다. LLM은 mock입니다.
"""

import json
from datetime import timedelta

import pytest
from httpx import AsyncClient

from proposaliq.models import AiConfiguration, ComplianceRequirement, Proposal, ProposalSection
from proposaliq.services import get_entity_store
from proposaliq.utils.dates import utcnow


@pytest.fixture
async def proposal(app_services) -> Proposal:
    store = get_entity_store()
    proposal = await store.create(Proposal, {
        "proposal_name": "Cloud Migration",
        "agency_name": "GSA",
        "organization_id": "org-1",
        "status": "draft",
    })
    await store.create(ProposalSection, {
        "proposal_id": proposal.id,
        "section_name": "Technical Approach",
        "section_type": "technical_approach",
        "content": "Phased migration with zero downtime.",
        "order": 1,
    })
    return await store.get(Proposal, proposal.id)


@pytest.fixture
async def reference(app_services) -> Proposal:
    store = get_entity_store()
    reference = await store.create(Proposal, {
        "proposal_name": "Data Center Consolidation",
        "agency_name": "GSA",
        "status": "won",
    })
    await store.create(ProposalSection, {
        "proposal_id": reference.id,
        "section_name": "Technical Approach",
        "section_type": "technical_approach",
        "content": "Consolidated 12 data centers ahead of schedule.",
    })
    return reference


async def test_parse_proposal(client: AsyncClient, auth_headers, proposal):
    first = await client.post("/api/v1/context/parse", json={"proposal_id": proposal.id}, headers=auth_headers)
    second = await client.post("/api/v1/context/parse", json={"proposal_id": proposal.id}, headers=auth_headers)

    assert first.status_code == 200
    assert first.json()["cache_hit"] is False
    assert first.json()["stats"]["sections_count"] == 1
    assert second.json()["cache_hit"] is True


async def test_build_context(client: AsyncClient, auth_headers, proposal, reference):
    response = await client.post(
        "/api/v1/context/build",
        json={
            "current_proposal_id": proposal.id,
            "reference_proposal_ids": [reference.id, "missing"],
            "target_section_type": "technical_approach",
        },
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert "Consolidated 12 data centers" in data["context"]["formatted_prompt_context"]
    assert data["metadata"]["sources"][0]["proposal_id"] == reference.id


async def test_build_context_validation(client: AsyncClient, auth_headers, proposal):
    response = await client.post(
        "/api/v1/context/build",
        json={"current_proposal_id": proposal.id, "reference_proposal_ids": []},
        headers=auth_headers,
    )

    assert response.status_code == 400


async def test_build_context_all_references_fail(client: AsyncClient, auth_headers, proposal):
    response = await client.post(
        "/api/v1/context/build",
        json={"current_proposal_id": proposal.id, "reference_proposal_ids": ["missing"]},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_CONTEXT_001"


async def test_generate_section(client: AsyncClient, auth_headers, proposal, app_services):
    await get_entity_store().create(AiConfiguration, {"config_name": "Org", "organization_id": "org-1"})
    app_services.invoke.return_value = "Our executive summary."

    response = await client.post(
        "/api/v1/writer/generate",
        json={"proposal_id": proposal.id, "section_type": "executive_summary"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["content"] == "Our executive summary."
    assert data["metadata"]["ai_config_used"] == "Org"
    section = await get_entity_store().get(ProposalSection, data["section_id"])
    assert section.ai_generation_metadata["user_email"] == "writer@example.com"


async def test_generate_section_without_configuration(client: AsyncClient, auth_headers, proposal):
    response = await client.post(
        "/api/v1/writer/generate",
        json={"proposal_id": proposal.id, "section_type": "executive_summary"},
        headers=auth_headers,
    )

    assert response.status_code == 500
    assert response.json()["error_code"] == "ERR_CONFIG_001"


async def test_compliance_endpoints(client: AsyncClient, auth_headers, proposal):
    """가져오기 → 요약/갭 → CSV 내보내기."""
    imported = await client.post(
        f"/api/v1/compliance/{proposal.id}/import",
        files={"file": ("matrix.csv", b"Req ID,Title,Risk\nL.1,Page limit,critical\nL.2,Font size,low\n", "text/csv")},
        headers=auth_headers,
    )
    assert imported.status_code == 200
    assert imported.json()["created_count"] == 2

    summary = await client.get(f"/api/v1/compliance/{proposal.id}/summary", headers=auth_headers)
    assert summary.json()["critical_unmapped"] == 1

    gaps = await client.get(f"/api/v1/compliance/{proposal.id}/gaps", headers=auth_headers)
    assert gaps.json()["unmapped_count"] == 2

    exported = await client.get(
        f"/api/v1/compliance/{proposal.id}/export", params={"risk": "critical"}, headers=auth_headers
    )
    assert exported.status_code == 200
    assert exported.headers["content-type"].startswith("text/csv")
    assert "Cloud%20Migration_Compliance_Matrix.csv" in exported.headers["content-disposition"]
    lines = exported.text.strip().splitlines()
    assert lines[0].startswith("Req ID,Title")
    assert len(lines) == 2


async def test_compliance_auto_map(client: AsyncClient, auth_headers, proposal, app_services):
    store = get_entity_store()
    requirement = await store.create(ComplianceRequirement, {
        "proposal_id": proposal.id, "requirement_id": "L.1", "requirement_title": "Approach",
    })
    sections = await store.filter(ProposalSection, {"proposal_id": proposal.id})
    app_services.invoke.return_value = {
        "mappings": [{"requirement_id": requirement.id, "section_ids": [sections[0].id]}],
    }

    response = await client.post("/api/v1/compliance/auto-map", json={"proposal_id": proposal.id}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["mapped_count"] == 1
    gaps = await client.get(f"/api/v1/compliance/{proposal.id}/gaps", headers=auth_headers)
    assert gaps.json()["has_gaps"] is False


async def test_generate_timeline(client: AsyncClient, auth_headers, proposal):
    due = (utcnow() + timedelta(days=45)).date().isoformat()
    response = await client.post(
        "/api/v1/timeline/generate",
        json={"proposal_id": proposal.id, "organization_id": "org-1", "final_due_date": due},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["metadata"]["timeline_template"] == "accelerated"
    assert data["suggested_timeline"]["internal_deadlines"]


async def test_generate_timeline_missing_fields(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/timeline/generate", json={"proposal_id": "p1"}, headers=auth_headers)

    assert response.status_code == 400


async def test_export_and_download(client: AsyncClient, auth_headers, proposal):
    sections = await get_entity_store().filter(ProposalSection, {"proposal_id": proposal.id})
    response = await client.post(
        "/api/v1/exports",
        json={"proposal_id": proposal.id, "section_ids": [s.id for s in sections], "format": "pdf"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["has_watermark"] is True

    download = await client.get(data["download_url"])
    assert download.status_code == 200
    assert download.content.startswith(b"%PDF")


async def test_batch_export(client: AsyncClient, auth_headers, proposal):
    response = await client.post(
        "/api/v1/exports/batch", json={"proposal_ids": [proposal.id], "format": "docx"}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json()["exports_created"] == 1


async def test_export_invalid_format(client: AsyncClient, auth_headers, proposal):
    response = await client.post(
        "/api/v1/exports", json={"proposal_id": proposal.id, "section_ids": ["s1"], "format": "odt"},
        headers=auth_headers,
    )

    assert response.status_code == 400


async def test_resource_upload(client: AsyncClient, auth_headers, proposal):
    response = await client.post(
        "/api/v1/resources/upload",
        data={
            "title": "Company overview",
            "resource_type": "capability_statement",
            "organization_id": "org-1",
            "proposal_id": proposal.id,
            "tags": json.dumps(["overview", "cloud"]),
            "ingest_to_rag": "true",
        },
        files={"file": ("overview.txt", b"We migrate workloads.", "text/plain")},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["rag_status"] == "indexed"
    updated = await get_entity_store().get(Proposal, proposal.id)
    assert updated.linked_resource_ids == [data["resource_id"]]


async def test_resource_upload_bad_tags(client: AsyncClient, auth_headers):
    response = await client.post(
        "/api/v1/resources/upload",
        data={"title": "T", "resource_type": "other", "organization_id": "org-1", "tags": "a,b"},
        files={"file": ("t.txt", b"text", "text/plain")},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["error"] == "tags must be a JSON array of strings"


async def test_past_performance_parse(client: AsyncClient, auth_headers, app_services):
    uploaded = await client.post(
        "/api/v1/files/upload",
        files={"file": ("summary.txt", b"Contract delivered on time.", "text/plain")},
        headers=auth_headers,
    )
    app_services.invoke.return_value = {"title": "Help Desk Support", "extraction_confidence": 70}

    response = await client.post(
        "/api/v1/past-performance/parse",
        json={"file_url": uploaded.json()["file_url"]},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["title"] == "Help Desk Support"
    assert data["has_red_flags"] is False
    assert data["ai_extraction_metadata"]["confidence_score"] == 70
