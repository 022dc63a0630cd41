"""
제안서 문서 내보내기 API입니다. (DOCX / PDF / ZIP)
"""

from fastapi import APIRouter, Depends

from proposaliq.api.deps import get_current_user
from proposaliq.models import BatchExportRequest, ExportRequest, User
from proposaliq.services import get_document_exporter

router = APIRouter()


@router.post("")
async def export_proposal(request: ExportRequest, user: User = Depends(get_current_user)) -> dict:
    return await get_document_exporter().export(request, user)


@router.post("/batch")
async def export_batch(request: BatchExportRequest, user: User = Depends(get_current_user)) -> dict:
    """여러 제안서를 ZIP 하나로 내보냅니다."""
    return await get_document_exporter().export_batch(request, user)
