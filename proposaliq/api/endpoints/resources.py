"""
콘텐츠 라이브러리 리소스 업로드 API입니다.
"""

import json
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from proposaliq.api.deps import get_current_user
from proposaliq.exceptions import InputValidationError
from proposaliq.models import ResourceUploadForm
from proposaliq.services import get_resource_service

router = APIRouter(dependencies=[Depends(get_current_user)])


def parse_tags(raw: Optional[str]) -> list[str]:
    """tags 폼 필드는 JSON 배열 문자열입니다. ('["a", "b"]')"""
    if not raw:
        return []
    try:
        tags = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InputValidationError("tags must be a JSON array of strings", details={"tags": raw}) from e
    if not isinstance(tags, list):
        raise InputValidationError("tags must be a JSON array of strings", details={"tags": raw})
    return [str(tag) for tag in tags]


@router.post("/upload")
async def upload_resource(
    file: UploadFile = File(...),
    title: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    resource_type: Optional[str] = Form(default=None),
    organization_id: Optional[str] = Form(default=None),
    proposal_id: Optional[str] = Form(default=None),
    tags: Optional[str] = Form(default=None),
    content_category: Optional[str] = Form(default=None),
    ingest_to_rag: bool = Form(default=False),
    extract_key_data: bool = Form(default=False),
    extraction_fields_description: Optional[str] = Form(default=None),
) -> dict:
    """파일을 리소스로 저장하고, 요청에 따라 데이터 추출/RAG 색인/제안서 연결을 수행합니다."""
    form = ResourceUploadForm(
        title=title,
        description=description,
        resource_type=resource_type,
        organization_id=organization_id,
        proposal_id=proposal_id,
        tags=parse_tags(tags),
        content_category=content_category,
        ingest_to_rag=ingest_to_rag,
        extract_key_data=extract_key_data,
        extraction_fields_description=extraction_fields_description,
    )
    content = await file.read()
    return await get_resource_service().upload_and_process(form, file.filename or "", content)
