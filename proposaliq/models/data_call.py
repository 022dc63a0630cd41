"""
데이터 콜(고객 자료 요청) 포털 요청 모델입니다.
"""

from datetime import datetime
from typing import Optional, Any
from pydantic import BaseModel, Field


class ChecklistItemInput(BaseModel):
    item_label: str
    item_description: Optional[str] = None
    is_required: bool = True


class CreateDataCallRequest(BaseModel):
    organization_id: Optional[str] = None
    proposal_id: Optional[str] = None
    request_title: str
    request_description: Optional[str] = None
    recipient_type: Optional[str] = None
    assigned_to_email: Optional[str] = None
    priority: str = "medium"
    due_date: Optional[datetime] = None
    checklist_items: list[ChecklistItemInput] = Field(default_factory=list)


class ValidateTokenRequest(BaseModel):
    token: Optional[str] = None
    data_call_id: Optional[str] = None


class ChecklistItemPatch(BaseModel):
    """포털에서 기존 항목에 적용하는 변경분. 나머지 필드는 무시됩니다."""

    id: str
    status: Optional[str] = None
    submitted_notes: Optional[str] = None


class UpdateItemRequest(BaseModel):
    """
    공개 포털의 체크리스트 갱신 요청입니다.

    item_id가 있으면 해당 항목의 status/submitted_notes만,
    checklist_items가 있으면 모든 기존 항목에 id 기준으로 같은 두 필드를 병합합니다.
    mark_completed는 위 변경을 먼저 반영한 뒤 제출을 시도합니다.
    """

    token: Optional[str] = None
    data_call_id: Optional[str] = None
    item_id: Optional[str] = None
    status: Optional[str] = None
    submitted_notes: Optional[str] = None
    checklist_items: Optional[list[dict[str, Any]]] = None
    mark_completed: bool = False
