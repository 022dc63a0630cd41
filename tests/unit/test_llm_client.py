"""LLMClient unit tests.

JSON 응답 추출(_parse_json_response), invoke()의 스키마 처리,
CLI 실패 시 재시도를 확인합니다. 실제 CLI는 실행하지 않습니다.
"""

import pytest
from unittest.mock import AsyncMock, patch

from proposaliq.exceptions import LLMClientError
from proposaliq.services.llm_client import LLMClient


@pytest.fixture
def client(settings):
    return LLMClient()


class TestParseJsonResponse:
    def test_valid_json_object(self, client):
        assert client._parse_json_response('{"mappings": []}') == {"mappings": []}

    def test_json_in_markdown_code_block(self, client):
        response = '```json\n{"overall_rating": "Very Good"}\n```'
        assert client._parse_json_response(response) == {"overall_rating": "Very Good"}

    def test_json_in_plain_code_block(self, client):
        assert client._parse_json_response('```\n{"key": "value"}\n```') == {"key": "value"}

    def test_leading_text_before_json(self, client):
        response = 'Here is the result:\n{"schema": {"type": "object"}} trailing words'
        assert client._parse_json_response(response) == {"schema": {"type": "object"}}

    def test_array_response(self, client):
        assert client._parse_json_response("[1, 2, 3]") == [1, 2, 3]

    def test_unparseable_raises(self, client):
        with pytest.raises(LLMClientError) as exc_info:
            client._parse_json_response("no json here at all")
        assert "response_preview" in exc_info.value.details


class TestInvoke:
    async def test_without_schema_returns_text(self, client):
        with patch.object(client, "_execute_cli", AsyncMock(return_value="Section text")) as cli:
            result = await client.invoke("Write something")
        assert result == "Section text"
        cli.assert_awaited_once_with("Write something")

    async def test_with_schema_appends_schema_and_parses(self, client):
        schema = {"type": "object", "properties": {"mappings": {"type": "array"}}}
        with patch.object(client, "_execute_cli", AsyncMock(return_value='{"mappings": [1]}')) as cli:
            result = await client.invoke("Map these", response_json_schema=schema)

        assert result == {"mappings": [1]}
        prompt = cli.await_args.args[0]
        assert prompt.startswith("Map these")
        assert '"mappings"' in prompt
        assert "JSON Schema" in prompt


class TestRetry:
    async def test_retries_then_raises(self, client):
        client._retry_delay = 0
        with patch.object(client, "_run_cli_sync", side_effect=RuntimeError("boom")) as run:
            with pytest.raises(LLMClientError):
                await client.invoke("prompt")
        assert run.call_count == client._max_retries

    async def test_recovers_after_failure(self, client):
        client._retry_delay = 0
        with patch.object(client, "_run_cli_sync", side_effect=[OSError("not found"), "ok"]):
            assert await client.invoke("prompt") == "ok"
