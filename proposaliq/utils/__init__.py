"""유틸리티 모듈."""

from .validation import (
    validate_filename,
    validate_file_size,
    validate_file_extension,
    validate_file_signature,
    validate_upload,
    validate_document_count,
)
from .dates import utcnow, as_utc

__all__ = [
    "validate_filename",
    "validate_file_size",
    "validate_file_extension",
    "validate_file_signature",
    "validate_upload",
    "validate_document_count",
    "utcnow",
    "as_utc",
]
