"""
데이터 콜(고객 자료 요청) 서비스.

내부 사용자가 체크리스트를 만들어 보내면, 고객은 로그인 없이
access_token이 담긴 링크로 포털에 들어와 파일을 올리고 항목을 완료합니다.

상태 흐름: draft → sent → in_progress → completed
"""

import logging
import secrets
import uuid
from datetime import timedelta
from typing import Optional

from pydantic import ValidationError

from proposaliq.config import Settings, get_settings
from proposaliq.exceptions import InputValidationError, NotFoundError, PermissionDeniedError
from proposaliq.models.data_call import ChecklistItemPatch, CreateDataCallRequest, UpdateItemRequest
from proposaliq.models.entities import ChecklistItem, DataCallRequest, User
from proposaliq.services.entity_store import EntityStore, get_entity_store
from proposaliq.services.file_storage import FileStorage, get_file_storage
from proposaliq.utils.dates import as_utc, utcnow
from proposaliq.utils.validation import validate_upload

logger = logging.getLogger(__name__)

TOKEN_LENGTH = 32
ITEM_STATUSES = ("pending", "in_progress", "completed", "not_applicable")


def generate_access_token() -> str:
    # token_urlsafe(24)는 정확히 32자
    return secrets.token_urlsafe(TOKEN_LENGTH * 3 // 4)


def calculate_progress(items: list[ChecklistItem]) -> dict:
    completed = len([i for i in items if i.is_done])
    total = len(items)
    return {
        "completed_items": completed,
        "total_items": total,
        "progress_percentage": round(completed / total * 100) if total else 0,
        "all_required_completed": all(i.is_done for i in items if i.is_required),
    }


def public_view(data_call: DataCallRequest) -> dict:
    """포털 응답용 직렬화. 토큰은 제외합니다."""
    data = data_call.model_dump(mode="json", exclude={"access_token"})
    data["progress"] = calculate_progress(data_call.checklist_items)
    return data


class DataCallService:
    def __init__(
        self,
        store: Optional[EntityStore] = None,
        files: Optional[FileStorage] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store or get_entity_store()
        self.files = files or get_file_storage()
        self.settings = settings or get_settings()

    # ==================== 내부 사용자용 ====================

    async def create(self, request: CreateDataCallRequest, user: User) -> DataCallRequest:
        if not request.checklist_items:
            raise InputValidationError("At least one checklist item is required")

        data_call = await self.store.create(DataCallRequest, {
            **request.model_dump(exclude={"checklist_items"}),
            "organization_id": request.organization_id or user.organization_id,
            "created_by_email": user.email,
            "created_by_name": user.full_name,
            "overall_status": "draft",
            "access_token": generate_access_token(),
            "token_expires_at": utcnow() + timedelta(days=self.settings.data_call_token_days),
            "checklist_items": [
                {"id": uuid.uuid4().hex, **item.model_dump(), "status": "pending"}
                for item in request.checklist_items
            ],
        })
        logger.info(f"[DataCall] 생성: {data_call.id} ({len(data_call.checklist_items)} items)")
        return data_call

    async def send(self, data_call_id: str) -> dict:
        """발송 처리. 포털 링크를 돌려줍니다 (이메일 발송은 하지 않음)."""
        data_call = await self.store.get_or_404(DataCallRequest, data_call_id)
        if data_call.overall_status == "completed":
            raise InputValidationError("This data call has already been submitted")

        data_call = await self.store.update(DataCallRequest, data_call.id, {
            "overall_status": "sent",
            "sent_date": utcnow(),
        })
        logger.info(f"[DataCall] 발송: {data_call.id} → {data_call.assigned_to_email}")
        return {
            "success": True,
            "data_call_id": data_call.id,
            "portal_path": f"/portal/data-call?id={data_call.id}&token={data_call.access_token}",
            "token_expires_at": data_call.token_expires_at.isoformat() if data_call.token_expires_at else None,
        }

    # ==================== 공개 포털 (토큰 인증) ====================

    async def authorize(self, token: Optional[str], data_call_id: Optional[str]) -> DataCallRequest:
        """토큰과 ID를 검증하고 데이터 콜을 반환합니다."""
        if not token or not data_call_id:
            raise InputValidationError("Invalid access link. Please use the link provided in your email.")

        data_call = await self.store.get(DataCallRequest, data_call_id)
        if data_call is None or not data_call.access_token or not secrets.compare_digest(
            data_call.access_token, token
        ):
            logger.warning(f"[DataCall] 잘못된 토큰 또는 ID: {data_call_id}")
            raise PermissionDeniedError(
                "Invalid or expired access token. Please contact the sender for a new link."
            )

        if data_call.token_expires_at and as_utc(data_call.token_expires_at) < utcnow():
            raise PermissionDeniedError(
                "This access link has expired. Please contact the sender for a new link."
            )
        return data_call

    async def validate_token(self, token: Optional[str], data_call_id: Optional[str]) -> dict:
        data_call = await self.authorize(token, data_call_id)
        data_call = await self.store.update(DataCallRequest, data_call.id, {
            "portal_accessed_count": data_call.portal_accessed_count + 1,
            "last_portal_access": utcnow(),
        })
        logger.info(f"[DataCall] 포털 접근: {data_call.request_title} (count={data_call.portal_accessed_count})")
        return {"success": True, "data_call": public_view(data_call)}

    async def upload_file(
        self,
        token: Optional[str],
        data_call_id: Optional[str],
        item_id: Optional[str],
        file_name: str,
        content: bytes,
    ) -> dict:
        data_call = await self.authorize(token, data_call_id)
        self._ensure_open(data_call)
        item = self._find_item(data_call, item_id)

        safe_name, _ = validate_upload(file_name, content)
        stored = await self.files.save_upload(content, safe_name)

        now = utcnow()
        item.uploaded_files.append({
            "file_name": stored["file_name"],
            "file_url": stored["file_url"],
            "file_size": stored["file_size"],
            "uploaded_date": now.isoformat(),
        })
        item.status = "completed"
        item.completed_date = now
        item.completed_by = data_call.assigned_to_email

        data_call = await self._save_items(data_call)
        logger.info(f"[DataCall] 파일 업로드: {data_call.id}/{item.id} {stored['file_name']}")
        return {
            "success": True,
            "file_url": stored["file_url"],
            "item": item.model_dump(mode="json"),
            "progress": calculate_progress(data_call.checklist_items),
        }

    async def update_item(self, request: UpdateItemRequest) -> dict:
        """항목 상태/메모 변경, 체크리스트 일괄 병합, 최종 제출."""
        data_call = await self.authorize(request.token, request.data_call_id)
        self._ensure_open(data_call)

        if request.checklist_items is None and not request.item_id and not request.mark_completed:
            raise InputValidationError("item_id, checklist_items or mark_completed is required")

        if request.checklist_items is not None:
            self._merge_items(data_call, request.checklist_items)
        if request.item_id:
            item = self._find_item(data_call, request.item_id)
            self._apply_change(data_call, item, request.status, request.submitted_notes)

        if request.mark_completed:
            return await self._mark_completed(data_call)

        data_call = await self._save_items(data_call)
        return {"success": True, "data_call": public_view(data_call)}

    # ==================== 내부 도우미 함수들 ====================

    def _merge_items(self, data_call: DataCallRequest, raw_items: list[dict]) -> None:
        """포털이 보낸 목록을 기존 항목에 id로 맞춰 병합합니다. 항목 추가/삭제는 불가."""
        try:
            patches = [ChecklistItemPatch.model_validate(i) for i in raw_items]
        except ValidationError as e:
            raise InputValidationError(
                "Invalid checklist items",
                details=e.errors(include_url=False, include_context=False),
            ) from e

        stored_ids = [i.id for i in data_call.checklist_items]
        patch_ids = [p.id for p in patches]
        unknown = [pid for pid in patch_ids if pid not in stored_ids]
        if unknown:
            raise InputValidationError("Unknown checklist items", details={"unknown_item_ids": unknown})
        if len(set(patch_ids)) != len(patch_ids):
            raise InputValidationError("Duplicate checklist item ids")
        missing = [sid for sid in stored_ids if sid not in patch_ids]
        if missing:
            raise InputValidationError(
                "Checklist items cannot be removed from the portal",
                details={"missing_item_ids": missing},
            )

        for patch in patches:
            item = self._find_item(data_call, patch.id)
            self._apply_change(data_call, item, patch.status, patch.submitted_notes)

    @staticmethod
    def _apply_change(
        data_call: DataCallRequest,
        item: ChecklistItem,
        status: Optional[str],
        submitted_notes: Optional[str],
    ) -> None:
        if status is not None:
            if status not in ITEM_STATUSES:
                raise InputValidationError(
                    f"Invalid item status: {status}", details={"allowed": list(ITEM_STATUSES)}
                )
            changed = status != item.status
            item.status = status
            if changed and item.is_done:
                item.completed_date = utcnow()
                item.completed_by = data_call.assigned_to_email
        if submitted_notes is not None:
            item.submitted_notes = submitted_notes

    async def _mark_completed(self, data_call: DataCallRequest) -> dict:
        progress = calculate_progress(data_call.checklist_items)
        if not progress["all_required_completed"]:
            raise InputValidationError(
                "All required items must be completed before submission",
                details={"pending_required": [
                    i.id for i in data_call.checklist_items if i.is_required and not i.is_done
                ]},
            )

        data_call = await self.store.update(DataCallRequest, data_call.id, {
            "checklist_items": [i.model_dump() for i in data_call.checklist_items],
            "overall_status": "completed",
            "completed_date": utcnow(),
        })
        logger.info(f"[DataCall] 제출 완료: {data_call.id}")
        return {"success": True, "data_call": public_view(data_call)}

    async def _save_items(self, data_call: DataCallRequest) -> DataCallRequest:
        changes = {"checklist_items": [i.model_dump() for i in data_call.checklist_items]}
        if data_call.overall_status == "sent":
            changes["overall_status"] = "in_progress"
        return await self.store.update(DataCallRequest, data_call.id, changes)

    @staticmethod
    def _ensure_open(data_call: DataCallRequest) -> None:
        if data_call.overall_status == "completed":
            raise InputValidationError("This data call has already been submitted")

    @staticmethod
    def _find_item(data_call: DataCallRequest, item_id: Optional[str]) -> ChecklistItem:
        if not item_id:
            raise InputValidationError("item_id is required")
        for item in data_call.checklist_items:
            if item.id == item_id:
                return item
        raise NotFoundError("Checklist item not found", details={"item_id": item_id})


_data_call_service: Optional[DataCallService] = None


def get_data_call_service() -> DataCallService:
    global _data_call_service
    if _data_call_service is None:
        _data_call_service = DataCallService()
    return _data_call_service
