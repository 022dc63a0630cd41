"""Unit tests for upload validation utilities.

파일명, 크기, 확장자, 매직 넘버, 일괄 처리 개수 검증을 확인합니다.
"""

from types import SimpleNamespace

import pytest

from proposaliq.exceptions import InputValidationError
from proposaliq.utils import validation
from proposaliq.utils.validation import (
    validate_document_count,
    validate_file_extension,
    validate_file_signature,
    validate_file_size,
    validate_filename,
    validate_upload,
)

MB = 1024 * 1024


@pytest.fixture
def limits(monkeypatch):
    """업로드 제한값을 테스트마다 바꿀 수 있는 가짜 설정."""
    fake = SimpleNamespace(
        max_file_size_mb=50,
        max_total_upload_mb=200,
        max_document_count=20,
        max_filename_length=255,
    )
    monkeypatch.setattr(validation, "get_settings", lambda: fake)
    return fake


class TestFilenames:
    def test_plain_name_is_returned(self, limits):
        assert validate_filename("rfp_section_l.pdf") == "rfp_section_l.pdf"

    @pytest.mark.parametrize("name", ["../../etc/passwd", "path/file.txt", "..\\secret.txt"])
    def test_directory_parts_rejected(self, limits, name):
        with pytest.raises(InputValidationError):
            validate_filename(name)

    def test_nul_removed(self, limits):
        assert validate_filename("file\x00name.txt") == "filename.txt"

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_rejected(self, limits, name):
        with pytest.raises(InputValidationError):
            validate_filename(name)

    def test_length_limit_from_settings(self, limits):
        limits.max_filename_length = 10
        with pytest.raises(InputValidationError):
            validate_filename("a" * 11 + ".txt")

    def test_angle_brackets_rejected(self, limits):
        with pytest.raises(InputValidationError):
            validate_filename("file<name>.txt")


class TestSizes:
    def test_under_per_file_limit(self, limits):
        validate_file_size(10 * MB)

    def test_over_per_file_limit(self, limits):
        limits.max_file_size_mb = 1
        with pytest.raises(InputValidationError) as exc_info:
            validate_file_size(2 * MB)
        assert exc_info.value.details["max_size_bytes"] == MB

    def test_cumulative_limit(self, limits):
        with pytest.raises(InputValidationError):
            validate_file_size(1024, total_size=201 * MB)


class TestExtensions:
    def test_extension_is_lowercased(self):
        assert validate_file_extension("Scope.DOCX") == ".docx"

    @pytest.mark.parametrize("name", ["payload.exe", "README"])
    def test_rejected(self, name):
        with pytest.raises(InputValidationError):
            validate_file_extension(name)

    def test_narrower_allow_list(self):
        with pytest.raises(InputValidationError):
            validate_file_extension("notes.txt", allowed={".pdf"})


class TestSignatures:
    def test_pdf_header_accepted(self):
        validate_file_signature(b"%PDF-1.7 ...", ".pdf")

    def test_executable_posing_as_pdf(self):
        with pytest.raises(InputValidationError):
            validate_file_signature(b"MZ\x90\x00", ".pdf")

    def test_empty_docx(self):
        with pytest.raises(InputValidationError):
            validate_file_signature(b"", ".docx")

    def test_text_has_no_signature(self):
        validate_file_signature(b"plain text", ".txt")


def test_validate_upload_returns_name_and_extension(limits):
    assert validate_upload("notes.txt", b"hello") == ("notes.txt", ".txt")


class TestDocumentCount:
    def test_zero_rejected(self, limits):
        with pytest.raises(InputValidationError):
            validate_document_count(0)

    def test_over_max_reports_limit(self, limits):
        limits.max_document_count = 3
        with pytest.raises(InputValidationError) as exc_info:
            validate_document_count(4)
        assert exc_info.value.details["max_count"] == 3

    def test_within_range(self, limits):
        validate_document_count(5)
