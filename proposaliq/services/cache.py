"""Parsed proposal cache.

참조 제안서의 파싱 결과(메타데이터, 섹션, 문서 텍스트)를 보관하여
컨텍스트 빌드 때마다 같은 리비전을 다시 파싱하지 않도록 합니다.

키는 제안서 ID와 수정 시각 해시로 만들어지므로, 제안서가 수정되면
이전 리비전의 엔트리는 자연히 참조되지 않고 TTL이 지나면 정리됩니다.
"""

import hashlib
import json
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from proposaliq.config import get_settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "proposal_"


@dataclass
class ParsedEntry:
    """메모리에 올라간 파싱 결과 한 건."""
    payload: Any
    stored_at: float
    expires_at: float
    reads: int = 0

    def is_live(self, now: float) -> bool:
        return now < self.expires_at


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        if not lookups:
            return 0.0
        return self.hits / lookups


class ParseCache:
    """
    파싱 결과용 2단 캐시 (프로세스 메모리 + data_dir 아래 JSON 파일).

    메모리 쪽은 삽입 순서를 유지하며 max_memory_entries를 넘으면
    가장 먼저 들어온 엔트리부터 내보냅니다. 파일 쪽은 재시작 후에도 남습니다.
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        ttl_hours: Optional[int] = None,
        max_memory_entries: int = 100,
    ):
        settings = get_settings()
        if cache_dir is None:
            cache_dir = Path(settings.data_dir) / "cache" / "parsed_proposals"
        if ttl_hours is None:
            ttl_hours = settings.parse_cache_ttl_hours

        self.cache_dir = cache_dir
        self.ttl_hours = ttl_hours
        self.max_memory_entries = max_memory_entries

        self._entries: "OrderedDict[str, ParsedEntry]" = OrderedDict()
        self._stats = CacheStats()

        self.cache_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"[ParseCache] 초기화 완료: {self.cache_dir}, TTL={self.ttl_hours}h")

    @staticmethod
    def make_key(proposal_id: str, revision: Optional[str]) -> str:
        """제안서 ID와 수정 시각으로 캐시키를 만듭니다."""
        digest = hashlib.md5((revision or "").encode()).hexdigest()
        return f"{KEY_PREFIX}{proposal_id}_{digest[:12]}"

    # ----- 조회 / 저장 -----

    def get(self, key: str) -> Optional[Any]:
        """메모리를 먼저 보고, 없으면 파일에서 읽어 메모리로 올립니다."""
        now = time.time()

        entry = self._entries.get(key)
        if entry is not None:
            if entry.is_live(now):
                entry.reads += 1
                self._stats.hits += 1
                return entry.payload
            self._entries.pop(key)
            self._stats.evictions += 1

        record = self._load_file(key)
        if record is not None:
            if now < record["expires_at"]:
                self._remember(key, record["value"], record["expires_at"])
                self._stats.hits += 1
                logger.debug(f"[ParseCache] 파일 캐시 히트: {key}")
                return record["value"]
            self._file_for(key).unlink(missing_ok=True)
            self._stats.evictions += 1

        self._stats.misses += 1
        return None

    def set(self, key: str, value: Any, ttl_hours: Optional[int] = None) -> None:
        """value는 JSON으로 직렬화 가능해야 파일에도 남습니다."""
        now = time.time()
        hours = self.ttl_hours if ttl_hours is None else ttl_hours
        expires_at = now + hours * 3600

        self._remember(key, value, expires_at)
        self._write_file(key, {"value": value, "created_at": now, "expires_at": expires_at})

    def delete(self, key: str) -> bool:
        removed = self._entries.pop(key, None) is not None
        path = self._file_for(key)
        if path.exists():
            path.unlink()
            removed = True
        return removed

    # ----- 무효화 / 정리 -----

    def invalidate_proposal(self, proposal_id: str) -> int:
        """특정 제안서의 모든 리비전 캐시를 제거합니다."""
        prefix = f"{KEY_PREFIX}{proposal_id}_"
        stale = [key for key in self._entries if key.startswith(prefix)]
        for key in stale:
            self._entries.pop(key)

        files = list(self.cache_dir.glob(f"{prefix}*.json"))
        for path in files:
            path.unlink(missing_ok=True)

        removed = len(stale) + len(files)
        if removed:
            logger.info(f"[ParseCache] 제안서 캐시 무효화: {proposal_id} ({removed}개)")
        return removed

    def clear(self) -> int:
        removed = len(self._entries)
        self._entries.clear()
        for path in self.cache_dir.glob("*.json"):
            path.unlink(missing_ok=True)
            removed += 1
        logger.info(f"[ParseCache] 캐시 초기화: {removed}개 삭제")
        return removed

    def cleanup_expired(self) -> int:
        """만료되었거나 손상된 엔트리를 정리합니다."""
        now = time.time()
        expired = [key for key, entry in self._entries.items() if not entry.is_live(now)]
        for key in expired:
            self._entries.pop(key)
        removed = len(expired)

        for path in self.cache_dir.glob("*.json"):
            record = self._read_record(path)
            if record is None or now >= record["expires_at"]:
                path.unlink(missing_ok=True)
                removed += 1

        if removed:
            logger.info(f"[ParseCache] 만료 캐시 정리: {removed}개")
        return removed

    # ----- 통계 -----

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def get_stats_summary(self) -> Dict[str, Any]:
        return {
            "hits": self._stats.hits,
            "misses": self._stats.misses,
            "evictions": self._stats.evictions,
            "hit_rate": round(self._stats.hit_rate, 3),
            "memory_entries": len(self._entries),
        }

    # ----- 내부 -----

    def _file_for(self, key: str) -> Path:
        name = key.replace("/", "_").replace("\\", "_")
        return self.cache_dir / f"{name}.json"

    @staticmethod
    def _read_record(path: Path) -> Optional[Dict[str, Any]]:
        """손상되었거나 expires_at이 없는 파일은 None."""
        try:
            record = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return None
        if not isinstance(record, dict) or "expires_at" not in record:
            return None
        return record

    def _load_file(self, key: str) -> Optional[Dict[str, Any]]:
        path = self._file_for(key)
        if not path.exists():
            return None
        record = self._read_record(path)
        if record is None:
            logger.warning(f"[ParseCache] 캐시 파일 손상: {key}")
            path.unlink(missing_ok=True)
        return record

    def _write_file(self, key: str, record: Dict[str, Any]) -> None:
        try:
            text = json.dumps(record, ensure_ascii=False, default=str)
            self._file_for(key).write_text(text, encoding="utf-8")
        except (TypeError, OSError) as e:
            logger.warning(f"[ParseCache] 파일 캐시 저장 실패: {key}, {e}")

    def _remember(self, key: str, value: Any, expires_at: float) -> None:
        if key in self._entries:
            self._entries.pop(key)
        elif len(self._entries) >= self.max_memory_entries:
            self._entries.popitem(last=False)
            self._stats.evictions += 1
        self._entries[key] = ParsedEntry(payload=value, stored_at=time.time(), expires_at=expires_at)


_parse_cache: Optional[ParseCache] = None


def get_parse_cache() -> ParseCache:
    """ParseCache 싱글톤 인스턴스 반환."""
    global _parse_cache
    if _parse_cache is None:
        _parse_cache = ParseCache()
    return _parse_cache
