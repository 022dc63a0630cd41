"""FileStorage unit tests.

Tests public uploads, private files, signed URLs, and path traversal
protection using a temporary directory.
"""

from datetime import timedelta

import pytest

from proposaliq.exceptions import InputValidationError, NotFoundError, PermissionDeniedError
from proposaliq.models import User
from proposaliq.services.auth import (
    SIGNED_FILE_TOKEN_TYPE,
    create_access_token,
    create_signed_file_token,
    verify_token,
)
from proposaliq.services.file_storage import PRIVATE_URI_SCHEME, PUBLIC_URL_PREFIX, SIGNED_URL_PREFIX


class TestPublicUploads:
    async def test_save_and_read(self, files):
        stored = await files.save_upload(b"hello", "notes.txt")

        assert stored["file_name"] == "notes.txt"
        assert stored["file_size"] == 5
        assert stored["file_url"] == f"{PUBLIC_URL_PREFIX}{stored['file_id']}/notes.txt"
        assert await files.read_file(stored["file_url"]) == b"hello"
        assert files.get_upload_path(stored["file_id"], "notes.txt").exists()

    async def test_delete_upload(self, files):
        stored = await files.save_upload(b"hello", "notes.txt")
        assert await files.delete_upload(stored["file_id"]) is True
        assert await files.delete_upload(stored["file_id"]) is False
        with pytest.raises(NotFoundError):
            await files.read_file(stored["file_url"])

    async def test_unsupported_url(self, files):
        with pytest.raises(InputValidationError):
            await files.read_file("ftp://example.com/file.txt")

    async def test_path_traversal_rejected(self, files):
        with pytest.raises(InputValidationError):
            await files.read_file(f"{PUBLIC_URL_PREFIX}../../entities/User/x.json")
        with pytest.raises(InputValidationError):
            files.get_upload_path("..", "secret.txt")


class TestPrivateFiles:
    async def test_private_uri_and_read(self, files):
        file_uri = await files.save_private(b"%PDF-1.4", "export.pdf")
        assert file_uri.startswith(PRIVATE_URI_SCHEME)
        assert file_uri.endswith("/export.pdf")
        assert await files.read_file(file_uri) == b"%PDF-1.4"

    async def test_signed_url_round_trip(self, files):
        file_uri = await files.save_private(b"zip bytes", "batch.zip")
        signed_url = files.create_signed_url(file_uri, 60)

        assert signed_url.startswith(SIGNED_URL_PREFIX)
        path = files.resolve_signed_token(signed_url[len(SIGNED_URL_PREFIX):])
        assert path.read_bytes() == b"zip bytes"

    def test_signed_url_requires_private_uri(self, files):
        with pytest.raises(InputValidationError):
            files.create_signed_url("/api/v1/files/public/abc/x.txt")

    async def test_expired_signed_token(self, files):
        file_uri = await files.save_private(b"data", "a.txt")
        token = create_signed_file_token(file_uri, -10)
        with pytest.raises(PermissionDeniedError):
            files.resolve_signed_token(token)

    async def test_access_token_is_not_a_signed_url(self, files):
        token = create_access_token(User(id="u1", email="a@example.com"))
        with pytest.raises(PermissionDeniedError):
            files.resolve_signed_token(token)

    def test_signed_token_for_missing_file(self, files):
        token = create_signed_file_token(f"{PRIVATE_URI_SCHEME}abc/missing.txt", 60)
        with pytest.raises(NotFoundError):
            files.resolve_signed_token(token)


class TestTokens:
    def test_access_token_payload(self, settings):
        token = create_access_token(User(id="u1", email="a@example.com", role="admin"))
        payload = verify_token(token)
        assert payload["user_id"] == "u1"
        assert payload["email"] == "a@example.com"
        assert payload["role"] == "admin"

    def test_expired_access_token(self, settings):
        token = create_access_token(User(id="u1", email="a@example.com"), expires_delta=timedelta(seconds=-1))
        assert verify_token(token) is None

    def test_garbage_token(self, settings):
        assert verify_token("not-a-jwt") is None

    def test_type_mismatch(self, settings):
        token = create_signed_file_token("private://a/b.txt", 60)
        assert verify_token(token) is None
        assert verify_token(token, expected_type=SIGNED_FILE_TOKEN_TYPE)["file_uri"] == "private://a/b.txt"
