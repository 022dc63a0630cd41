"""
파일 저장소 서비스입니다.
호스팅 백엔드의 UploadFile / UploadPrivateFile / CreateFileSignedUrl을 대신합니다.

저장 구조:
    data/uploads/<file_id>/<filename>   공개 업로드 (file_url로 접근)
    data/private/<file_id>/<filename>   비공개 파일 (서명 URL로만 접근)

file_url 형식:  /api/v1/files/public/<file_id>/<filename>
file_uri 형식:  private://<file_id>/<filename>
"""

import logging
import shutil
import uuid
import aiofiles
import httpx
from pathlib import Path
from typing import Optional

from proposaliq.config import get_settings
from proposaliq.exceptions import StorageError, NotFoundError, InputValidationError, PermissionDeniedError
from proposaliq.services.auth import (
    create_signed_file_token,
    verify_token,
    SIGNED_FILE_TOKEN_TYPE,
)

logger = logging.getLogger(__name__)

PUBLIC_URL_PREFIX = "/api/v1/files/public/"
SIGNED_URL_PREFIX = "/api/v1/files/signed/"
PRIVATE_URI_SCHEME = "private://"


class FileStorage:
    """로컬 디스크 기반 업로드 저장소."""

    def __init__(self, base_path: Optional[str] = None):
        base = Path(base_path or get_settings().data_dir)
        self.uploads_path = base / "uploads"
        self.private_path = base / "private"
        for path in [self.uploads_path, self.private_path]:
            path.mkdir(parents=True, exist_ok=True)

    # ==================== 공개 업로드 ====================

    async def save_upload(self, file_content: bytes, filename: str) -> dict:
        """
        파일을 저장하고 접근 URL을 반환합니다.

        Returns:
            {"file_id", "file_name", "file_url", "file_size"}
        """
        file_id = uuid.uuid4().hex
        await self._write(self.uploads_path / file_id / filename, file_content)
        logger.info(f"[FileStorage] 업로드 저장: {file_id}/{filename} ({len(file_content)} bytes)")
        return {
            "file_id": file_id,
            "file_name": filename,
            "file_url": f"{PUBLIC_URL_PREFIX}{file_id}/{filename}",
            "file_size": len(file_content),
        }

    def get_upload_path(self, file_id: str, filename: str) -> Path:
        return self._safe_join(self.uploads_path, file_id, filename)

    async def delete_upload(self, file_id: str) -> bool:
        doc_dir = self._safe_join(self.uploads_path, file_id)
        if doc_dir.exists():
            shutil.rmtree(doc_dir)
            return True
        return False

    # ==================== 비공개 파일 + 서명 URL ====================

    async def save_private(self, file_content: bytes, filename: str) -> str:
        """비공개 파일을 저장하고 file_uri를 반환합니다."""
        file_id = uuid.uuid4().hex
        await self._write(self.private_path / file_id / filename, file_content)
        logger.info(f"[FileStorage] 비공개 파일 저장: {file_id}/{filename}")
        return f"{PRIVATE_URI_SCHEME}{file_id}/{filename}"

    def create_signed_url(self, file_uri: str, expires_in: Optional[int] = None) -> str:
        """비공개 file_uri에 대한 시간 제한 다운로드 URL을 만듭니다."""
        if not file_uri.startswith(PRIVATE_URI_SCHEME):
            raise InputValidationError("Not a private file URI", details={"file_uri": file_uri})
        expires_in = expires_in or get_settings().signed_url_expiry_seconds
        token = create_signed_file_token(file_uri, expires_in)
        return f"{SIGNED_URL_PREFIX}{token}"

    def resolve_signed_token(self, token: str) -> Path:
        """서명 토큰을 검증하고 실제 파일 경로를 반환합니다."""
        payload = verify_token(token, expected_type=SIGNED_FILE_TOKEN_TYPE)
        if payload is None:
            raise PermissionDeniedError("Signed URL is invalid or expired")
        path = self._private_uri_to_path(payload["file_uri"])
        if not path.exists():
            raise NotFoundError("File not found", details={"file_uri": payload["file_uri"]})
        return path

    # ==================== 읽기 ====================

    async def read_file(self, file_url: str) -> bytes:
        """
        file_url(공개 업로드), file_uri(비공개) 또는 http(s) URL의 내용을 읽습니다.
        """
        if file_url.startswith(("http://", "https://")):
            return await self._fetch_remote(file_url)

        if file_url.startswith(PRIVATE_URI_SCHEME):
            path = self._private_uri_to_path(file_url)
        elif file_url.startswith(PUBLIC_URL_PREFIX):
            file_id, _, filename = file_url[len(PUBLIC_URL_PREFIX):].partition("/")
            path = self.get_upload_path(file_id, filename)
        else:
            raise InputValidationError("Unsupported file URL", details={"file_url": file_url})

        if not path.exists():
            raise NotFoundError("File not found", details={"file_url": file_url})

        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    # ==================== 내부 도우미 함수들 ====================

    async def _fetch_remote(self, url: str) -> bytes:
        timeout = get_settings().http_timeout_seconds
        try:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as e:
            logger.error(f"[FileStorage] 원격 파일 다운로드 실패 {url}: {e}")
            raise StorageError(f"Failed to fetch file: {e}", details={"file_url": url})

    def _private_uri_to_path(self, file_uri: str) -> Path:
        file_id, _, filename = file_uri[len(PRIVATE_URI_SCHEME):].partition("/")
        return self._safe_join(self.private_path, file_id, filename)

    def _safe_join(self, root: Path, *parts: str) -> Path:
        """root 밖으로 벗어나는 경로는 거부합니다."""
        path = root.joinpath(*parts).resolve()
        if root.resolve() not in path.parents and path != root.resolve():
            raise InputValidationError("Invalid file path", details={"path": "/".join(parts)})
        return path

    async def _write(self, file_path: Path, content: bytes):
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error(f"파일 저장 실패 {file_path}: {e}", exc_info=True)
            raise StorageError(
                f"Failed to store file: {file_path.name}",
                details={"path": str(file_path), "error": str(e)},
            )


# 싱글톤 인스턴스 (프로그램 전체에서 공유)
_file_storage: Optional[FileStorage] = None


def get_file_storage() -> FileStorage:
    """FileStorage 인스턴스를 반환합니다."""
    global _file_storage
    if _file_storage is None:
        _file_storage = FileStorage()
    return _file_storage
