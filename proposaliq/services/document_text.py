"""
문서 텍스트 추출 서비스입니다.
PyPDF2, python-docx로 업로드된 PDF/Word 파일에서 텍스트를 뽑아냅니다.
"""

import io
import logging
import os

from proposaliq.exceptions import ParsingError, InputValidationError

logger = logging.getLogger(__name__)

SUPPORTED_TEXT_TYPES = ("pdf", "docx", "doc", "txt", "md")


def file_extension(file_name: str) -> str:
    """"report.PDF" → "pdf". URL의 쿼리 문자열은 무시합니다."""
    base = file_name.split("?", 1)[0].rsplit("/", 1)[-1]
    return os.path.splitext(base)[1].lstrip(".").lower()


def extract_text(content: bytes, file_name: str) -> str:
    """
    확장자에 따라 알맞은 추출 함수를 호출합니다.

    Raises:
        InputValidationError: 지원하지 않는 형식
        ParsingError: 파일이 손상되어 읽을 수 없음
    """
    ext = file_extension(file_name)

    if ext not in SUPPORTED_TEXT_TYPES:
        raise InputValidationError(
            f"Unsupported file type: {ext or 'unknown'}. Supported formats: PDF, DOCX, TXT",
            details={"file_name": file_name},
        )

    try:
        if ext == "pdf":
            text = _parse_pdf(content)
        elif ext in ("docx", "doc"):
            text = _parse_word(content)
        else:
            text = content.decode("utf-8", errors="replace")
    except Exception as e:
        logger.warning(f"[DocumentText] 텍스트 추출 실패 {file_name}: {e}")
        raise ParsingError(
            f"Failed to extract text from {file_name}",
            details={"file_name": file_name, "error": str(e)},
        ) from e

    logger.debug(f"[DocumentText] {file_name}: {len(text)} chars")
    return text


def _parse_pdf(content: bytes) -> str:
    """PyPDF2로 페이지별 텍스트를 추출합니다."""
    from PyPDF2 import PdfReader

    reader = PdfReader(io.BytesIO(content))
    pages = [page.extract_text() or "" for page in reader.pages]
    return "\n\n".join(pages).strip()


def _parse_word(content: bytes) -> str:
    """python-docx로 문단과 표 내용을 추출합니다."""
    from docx import Document

    doc = Document(io.BytesIO(content))

    paragraphs = [para.text for para in doc.paragraphs if para.text.strip()]

    tables_text = []
    for table in doc.tables:
        rows = [" | ".join(cell.text.strip() for cell in row.cells) for row in table.rows]
        tables_text.append("\n".join(rows))

    all_text = "\n\n".join(paragraphs)
    if tables_text:
        all_text += "\n\n" + "\n\n".join(tables_text)
    return all_text.strip()
