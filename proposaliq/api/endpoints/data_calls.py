"""
데이터 콜 API입니다.

내부 사용자용(생성/발송)은 Bearer 인증이 필요하고,
포털용(/portal/*)은 access_token + data_call_id로만 인증합니다.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from proposaliq.api.deps import get_current_user
from proposaliq.models import CreateDataCallRequest, UpdateItemRequest, User, ValidateTokenRequest
from proposaliq.services import get_data_call_service
from proposaliq.services.data_call_service import public_view

router = APIRouter()


@router.post("")
async def create_data_call(request: CreateDataCallRequest, user: User = Depends(get_current_user)) -> dict:
    data_call = await get_data_call_service().create(request, user)
    return {"success": True, "data_call": data_call.model_dump(mode="json")}


@router.post("/{data_call_id}/send")
async def send_data_call(data_call_id: str, user: User = Depends(get_current_user)) -> dict:
    return await get_data_call_service().send(data_call_id)


# ==================== 공개 포털 ====================

@router.post("/portal/validate")
async def validate_token(request: ValidateTokenRequest) -> dict:
    return await get_data_call_service().validate_token(request.token, request.data_call_id)


@router.post("/portal/upload")
async def upload_item_file(
    token: Optional[str] = Form(default=None),
    data_call_id: Optional[str] = Form(default=None),
    item_id: Optional[str] = Form(default=None),
    file: UploadFile = File(...),
) -> dict:
    """체크리스트 항목에 파일을 첨부하고 항목을 완료 처리합니다."""
    content = await file.read()
    return await get_data_call_service().upload_file(
        token, data_call_id, item_id, file.filename or "", content
    )


@router.post("/portal/update")
async def update_item(request: UpdateItemRequest) -> dict:
    return await get_data_call_service().update_item(request)


@router.post("/portal/view")
async def view_data_call(request: ValidateTokenRequest) -> dict:
    """접근 카운터를 올리지 않고 현재 상태만 조회합니다."""
    data_call = await get_data_call_service().authorize(request.token, request.data_call_id)
    return {"success": True, "data_call": public_view(data_call)}
