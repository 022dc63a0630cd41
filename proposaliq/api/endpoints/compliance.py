"""
컴플라이언스 매트릭스 API입니다.
자동 매핑, 갭 분석, 상태 요약, CSV 내보내기, 요구사항 가져오기.
"""

from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response

from proposaliq.api.deps import get_current_user
from proposaliq.models import AutoMapRequest, ComplianceExportFilter
from proposaliq.services import get_compliance_mapper

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.post("/auto-map")
async def auto_map(request: AutoMapRequest) -> dict:
    """요구사항을 배치로 나누어 LLM으로 섹션에 매핑합니다."""
    return await get_compliance_mapper().auto_map(request.proposal_id)


@router.get("/{proposal_id}/gaps")
async def gap_analysis(proposal_id: str) -> dict:
    return await get_compliance_mapper().gap_analysis(proposal_id)


@router.get("/{proposal_id}/summary")
async def status_summary(proposal_id: str) -> dict:
    return await get_compliance_mapper().status_summary(proposal_id)


@router.get("/{proposal_id}/export")
async def export_matrix(
    proposal_id: str,
    search: str = Query(default=""),
    status: str = Query(default="all"),
    risk: str = Query(default="all"),
) -> Response:
    filters = ComplianceExportFilter(search=search or None, status=status, risk=risk)
    file_name, csv_text = await get_compliance_mapper().export_csv(proposal_id, filters)
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(file_name)}"},
    )


@router.post("/{proposal_id}/import")
async def import_requirements(proposal_id: str, file: UploadFile = File(...)) -> dict:
    """CSV/XLSX 매트릭스에서 요구사항을 일괄 등록합니다."""
    content = await file.read()
    return await get_compliance_mapper().import_requirements(proposal_id, content, file.filename or "")
