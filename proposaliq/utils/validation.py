"""업로드 파일 유효성 검증 유틸리티.

솔리시테이션 문서, 콘텐츠 라이브러리 리소스, 데이터 콜 제출 파일 등
모든 업로드 경로에서 공통으로 사용합니다.
"""

import os
import re
from typing import Optional

from proposaliq.config import get_settings
from proposaliq.exceptions import InputValidationError


# 업로드 허용 확장자
ALLOWED_EXTENSIONS = {
    ".txt", ".md", ".csv", ".json",
    ".pdf", ".docx", ".doc",
    ".xlsx", ".xls", ".pptx",
    ".png", ".jpg", ".jpeg", ".gif",
    ".zip",
}

# 텍스트 추출이 가능한 문서 확장자
TEXT_EXTRACTABLE_EXTENSIONS = {".pdf", ".docx", ".doc", ".txt", ".md"}

# 확장자 → 매직 넘버
FILE_SIGNATURES = {
    ".pdf": b"%PDF",
    ".docx": b"PK",
    ".xlsx": b"PK",
    ".pptx": b"PK",
    ".zip": b"PK",
    ".doc": b"\xd0\xcf\x11",
    ".xls": b"\xd0\xcf\x11",
    ".png": b"\x89PNG",
    ".jpg": b"\xff\xd8\xff",
    ".jpeg": b"\xff\xd8\xff",
    ".gif": b"GIF8",
}

DANGEROUS_PATTERNS = re.compile(r"[<>:\"|?*\x00-\x1f]")


def validate_filename(filename: str) -> str:
    """
    파일명 검증 후 안전한 basename을 반환합니다.

    경로 순회(../, 디렉터리 구분자), 위험 문자, 길이 제한을 검사합니다.
    """
    settings = get_settings()

    if not filename or not filename.strip():
        raise InputValidationError("Filename is empty")

    cleaned = filename.replace("\x00", "")
    basename = os.path.basename(cleaned.replace("\\", "/"))
    if basename != cleaned or ".." in cleaned:
        raise InputValidationError(
            "Invalid filename: path traversal detected",
            details={"filename": filename},
        )

    if DANGEROUS_PATTERNS.search(basename):
        raise InputValidationError(
            "Filename contains forbidden characters",
            details={"filename": filename},
        )

    if len(basename) > settings.max_filename_length:
        raise InputValidationError(
            f"Filename is too long (max {settings.max_filename_length} characters)",
            details={"filename": basename, "length": len(basename)},
        )

    if not os.path.splitext(basename)[0]:
        raise InputValidationError(
            "Filename has no name before the extension",
            details={"filename": basename},
        )

    return basename


def validate_file_size(file_size: int, total_size: Optional[int] = None) -> None:
    """개별 파일 크기와 (선택) 누적 업로드 크기를 검사합니다."""
    settings = get_settings()
    max_bytes = settings.max_file_size_mb * 1024 * 1024

    if file_size > max_bytes:
        raise InputValidationError(
            f"File exceeds the size limit ({settings.max_file_size_mb}MB)",
            details={"file_size_bytes": file_size, "max_size_bytes": max_bytes},
        )

    if total_size is not None:
        max_total = settings.max_total_upload_mb * 1024 * 1024
        if total_size > max_total:
            raise InputValidationError(
                f"Total upload exceeds the size limit ({settings.max_total_upload_mb}MB)",
                details={"total_size_bytes": total_size, "max_total_bytes": max_total},
            )


def validate_file_extension(filename: str, allowed: Optional[set[str]] = None) -> str:
    """
    확장자를 검사하고 소문자 확장자(".pdf" 등)를 반환합니다.

    Args:
        filename: 파일명
        allowed: 허용 확장자 집합. 없으면 ALLOWED_EXTENSIONS 사용.
    """
    allowed = allowed or ALLOWED_EXTENSIONS
    ext = os.path.splitext(filename)[1].lower()

    if not ext:
        raise InputValidationError("File has no extension", details={"filename": filename})

    if ext not in allowed:
        raise InputValidationError(
            f"Unsupported file type: {ext}",
            details={"extension": ext, "allowed": sorted(allowed)},
        )

    return ext


def validate_file_signature(content: bytes, extension: str) -> None:
    """파일 앞부분의 매직 넘버가 확장자와 맞는지 검사합니다. 시그니처가 없는 형식은 통과."""
    expected = FILE_SIGNATURES.get(extension)
    if expected is None:
        return

    if not content or len(content) < len(expected):
        raise InputValidationError(
            "File content is empty or corrupted",
            details={"extension": extension},
        )

    if not content.startswith(expected):
        raise InputValidationError(
            f"File content does not match its extension ({extension})",
            details={"extension": extension},
        )


def validate_upload(filename: str, content: bytes) -> tuple[str, str]:
    """
    업로드 한 건에 대한 전체 검증.

    Returns:
        (안전한 파일명, 소문자 확장자)
    """
    safe_name = validate_filename(filename)
    ext = validate_file_extension(safe_name)
    validate_file_size(len(content))
    validate_file_signature(content, ext)
    return safe_name, ext


def validate_document_count(count: int) -> None:
    """일괄 처리 대상 수를 검사합니다 (1개 이상, 설정 최대치 이하)."""
    settings = get_settings()

    if count < 1:
        raise InputValidationError("At least one item is required")

    if count > settings.max_document_count:
        raise InputValidationError(
            f"Too many items in one request (max {settings.max_document_count})",
            details={"count": count, "max_count": settings.max_document_count},
        )
