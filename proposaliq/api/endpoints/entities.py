"""
범용 엔티티 CRUD API입니다.
/entities/{entity_name} 형태로 모든 엔티티 유형을 같은 방식으로 다룹니다.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import ValidationError

from proposaliq.api.deps import get_current_user
from proposaliq.exceptions import InputValidationError, NotFoundError
from proposaliq.models import EntityFilterRequest, EntityRecord, User
from proposaliq.services import get_entity_store
from proposaliq.services.entity_store import resolve_entity

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_current_user)])


def _dump(record: EntityRecord) -> dict:
    return record.model_dump(mode="json")


def _invalid(entity_name: str, error: ValidationError) -> InputValidationError:
    return InputValidationError(
        f"Invalid {entity_name} data",
        details=error.errors(include_url=False, include_context=False),
    )


@router.get("/{entity_name}")
async def list_entities(
    entity_name: str,
    sort: Optional[str] = Query(default=None, description='정렬 필드 ("-created_date")'),
    limit: Optional[int] = Query(default=None, ge=1),
) -> list[dict]:
    model_class = resolve_entity(entity_name)
    records = await get_entity_store().list(model_class, sort=sort, limit=limit)
    return [_dump(r) for r in records]


@router.post("/{entity_name}/filter")
async def filter_entities(entity_name: str, request: EntityFilterRequest) -> list[dict]:
    model_class = resolve_entity(entity_name)
    records = await get_entity_store().filter(
        model_class, request.query, sort=request.sort, limit=request.limit
    )
    return [_dump(r) for r in records]


@router.get("/{entity_name}/{entity_id}")
async def get_entity(entity_name: str, entity_id: str) -> dict:
    model_class = resolve_entity(entity_name)
    return _dump(await get_entity_store().get_or_404(model_class, entity_id))


@router.post("/{entity_name}")
async def create_entity(
    entity_name: str,
    data: dict[str, Any] = Body(...),
    user: User = Depends(get_current_user),
) -> dict:
    model_class = resolve_entity(entity_name)
    try:
        record = await get_entity_store().create(model_class, {"created_by": user.email, **data})
    except ValidationError as e:
        raise _invalid(entity_name, e) from e
    logger.info(f"[Entities] 생성: {entity_name}/{record.id} by {user.email}")
    return _dump(record)


@router.post("/{entity_name}/bulk")
async def bulk_create_entities(
    entity_name: str,
    items: list[dict[str, Any]] = Body(...),
    user: User = Depends(get_current_user),
) -> list[dict]:
    model_class = resolve_entity(entity_name)
    try:
        records = await get_entity_store().bulk_create(
            model_class, [{"created_by": user.email, **item} for item in items]
        )
    except ValidationError as e:
        raise _invalid(entity_name, e) from e
    logger.info(f"[Entities] 일괄 생성: {entity_name} x{len(records)}")
    return [_dump(r) for r in records]


@router.patch("/{entity_name}/{entity_id}")
async def update_entity(entity_name: str, entity_id: str, changes: dict[str, Any] = Body(...)) -> dict:
    model_class = resolve_entity(entity_name)
    try:
        record = await get_entity_store().update(model_class, entity_id, changes)
    except ValidationError as e:
        raise _invalid(entity_name, e) from e
    return _dump(record)


@router.delete("/{entity_name}/{entity_id}")
async def delete_entity(entity_name: str, entity_id: str) -> dict:
    model_class = resolve_entity(entity_name)
    if not await get_entity_store().delete(model_class, entity_id):
        raise NotFoundError(f"{entity_name} not found", details={"id": entity_id})
    return {"success": True, "id": entity_id}
