"""
파일 기반 엔티티 저장소 서비스입니다.
호스팅 백엔드의 엔티티 API(get/list/filter/create/update/delete)를
JSON 파일로 대신합니다.

저장 구조:
    data/entities/<EntityName>/<id>.json
"""

import json
import logging
import uuid
import aiofiles
from pathlib import Path
from typing import Any, List, Optional, TypeVar, Type

from proposaliq.config import get_settings
from proposaliq.utils.dates import utcnow
from proposaliq.exceptions import StorageError, NotFoundError, InputValidationError
from proposaliq.models.entities import EntityRecord, ENTITY_MODELS

logger = logging.getLogger(__name__)


T = TypeVar("T", bound=EntityRecord)


def resolve_entity(name: str) -> Type[EntityRecord]:
    """엔티티 이름으로 모델 클래스를 찾습니다. 알 수 없는 이름은 400 에러."""
    model_class = ENTITY_MODELS.get(name)
    if model_class is None:
        raise InputValidationError(
            f"Unknown entity type: {name}",
            details={"allowed": sorted(ENTITY_MODELS)},
        )
    return model_class


def matches_query(record: dict, query: dict) -> bool:
    """
    레코드가 조회 조건을 만족하는지 확인합니다.

    조건 값은 동등 비교하며, {"$in": [...]} 형식이면 포함 여부로 비교합니다.
    """
    for field_name, expected in query.items():
        actual = record.get(field_name)
        if isinstance(expected, dict) and "$in" in expected:
            if actual not in expected["$in"]:
                return False
        elif actual != expected:
            return False
    return True


def sort_records(records: list[dict], sort: Optional[str]) -> list[dict]:
    """
    정렬 필드 기준으로 정렬합니다. "-" 접두어는 내림차순.
    값이 없는 레코드는 방향과 관계없이 뒤로 보냅니다.
    """
    if not sort:
        return records

    descending = sort.startswith("-")
    field_name = sort.lstrip("-")

    present = [r for r in records if r.get(field_name) is not None]
    missing = [r for r in records if r.get(field_name) is None]
    present.sort(key=lambda r: r[field_name], reverse=descending)
    return present + missing


class EntityStore:
    """JSON 파일 기반의 엔티티 저장소 클래스입니다."""

    def __init__(self, base_path: Optional[str] = None):
        base = Path(base_path or get_settings().data_dir)
        self.entities_path = base / "entities"
        self.entities_path.mkdir(parents=True, exist_ok=True)

    # ==================== 조회 ====================

    async def get(self, model_class: Type[T], entity_id: str) -> Optional[T]:
        """ID로 레코드를 조회합니다. 없으면 None."""
        file_path = self._record_path(model_class, entity_id)
        data = await self._load_record(file_path)
        if data is None:
            return None
        return model_class.model_validate(data)

    async def get_or_404(self, model_class: Type[T], entity_id: str) -> T:
        record = await self.get(model_class, entity_id)
        if record is None:
            raise NotFoundError(
                f"{model_class.__name__} not found",
                details={"entity": model_class.__name__, "id": entity_id},
            )
        return record

    async def list(
        self,
        model_class: Type[T],
        sort: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[T]:
        """전체 레코드를 정렬/개수 제한하여 가져옵니다."""
        return await self.filter(model_class, {}, sort=sort, limit=limit)

    async def filter(
        self,
        model_class: Type[T],
        query: Optional[dict] = None,
        sort: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[T]:
        """
        조건에 맞는 레코드를 가져옵니다.

        Args:
            model_class: 엔티티 모델 클래스
            query: 필드 조건 (동등 비교 또는 {"$in": [...]})
            sort: 정렬 필드 ("-created_date"처럼 "-"는 내림차순)
            limit: 최대 개수
        """
        query = query or {}
        records = []
        for file_path in self._entity_dir(model_class).glob("*.json"):
            data = await self._load_record(file_path)
            if data is not None and matches_query(data, query):
                records.append(data)

        records = sort_records(records, sort)
        if limit is not None:
            records = records[:limit]
        return [model_class.model_validate(r) for r in records]

    # ==================== 변경 ====================

    async def create(self, model_class: Type[T], data: dict) -> T:
        """새 레코드를 만듭니다. id/created_date/updated_date는 자동 부여."""
        now = utcnow()
        payload = {k: v for k, v in data.items() if k not in ("id", "created_date", "updated_date")}
        record = model_class.model_validate(
            {**payload, "id": uuid.uuid4().hex, "created_date": now, "updated_date": now}
        )
        await self._save_record(model_class, record)
        logger.debug(f"[EntityStore] 생성: {model_class.__name__}/{record.id}")
        return record

    async def bulk_create(self, model_class: Type[T], items: List[dict]) -> List[T]:
        return [await self.create(model_class, item) for item in items]

    async def update(self, model_class: Type[T], entity_id: str, changes: dict) -> T:
        """기존 레코드에 변경 필드를 병합합니다. 없으면 404."""
        existing = await self.get_or_404(model_class, entity_id)
        merged = existing.model_dump()
        merged.update({k: v for k, v in changes.items() if k not in ("id", "created_date")})
        merged["updated_date"] = utcnow()
        record = model_class.model_validate(merged)
        await self._save_record(model_class, record)
        return record

    async def delete(self, model_class: Type[T], entity_id: str) -> bool:
        file_path = self._record_path(model_class, entity_id)
        if file_path.exists():
            file_path.unlink()
            logger.debug(f"[EntityStore] 삭제: {model_class.__name__}/{entity_id}")
            return True
        return False

    # ==================== 내부 도우미 함수들 ====================

    def _entity_dir(self, model_class: Type[EntityRecord]) -> Path:
        path = self.entities_path / model_class.__name__
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _record_path(self, model_class: Type[EntityRecord], entity_id: str) -> Path:
        safe_id = entity_id.replace("/", "_").replace("\\", "_").replace("..", "_")
        return self._entity_dir(model_class) / f"{safe_id}.json"

    async def _save_record(self, model_class: Type[EntityRecord], record: EntityRecord):
        """레코드를 JSON 파일로 저장하는 공통 함수"""
        file_path = self._record_path(model_class, record.id)
        try:
            async with aiofiles.open(file_path, "w", encoding="utf-8") as f:
                await f.write(record.model_dump_json(indent=2))
        except OSError as e:
            logger.error(f"파일 저장 실패 {file_path}: {e}", exc_info=True)
            raise StorageError(
                f"Failed to save {model_class.__name__}",
                details={"path": str(file_path), "error": str(e)},
            )

    async def _load_record(self, file_path: Path) -> Optional[dict[str, Any]]:
        """JSON 파일을 읽어 dict로 반환하는 공통 함수. 손상된 파일은 건너뜁니다."""
        if not file_path.exists():
            return None
        try:
            async with aiofiles.open(file_path, "r", encoding="utf-8") as f:
                return json.loads(await f.read())
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"파일 로딩 에러 {file_path}: {e}", exc_info=True)
            return None


# 싱글톤 인스턴스 (프로그램 전체에서 공유)
_entity_store: Optional[EntityStore] = None


def get_entity_store() -> EntityStore:
    """EntityStore 인스턴스를 반환합니다."""
    global _entity_store
    if _entity_store is None:
        _entity_store = EntityStore()
    return _entity_store
