"""과거 수행실적 파서 테스트."""

import pytest

from proposaliq.exceptions import InputValidationError, LLMClientError
from proposaliq.models import PastPerformanceParseRequest
from proposaliq.services.past_performance import PastPerformanceParser, has_red_flags


@pytest.fixture
def pp_parser(files, mock_llm):
    return PastPerformanceParser(files=files, llm=mock_llm)


class TestRedFlags:
    def test_cpars_overall_rating(self):
        assert has_red_flags({"overall_rating": "Marginal"}, "cpars") is True
        assert has_red_flags({"overall_rating": "Marginal"}, "general_pp") is False

    def test_individual_ratings(self):
        data = {"overall_rating": "Satisfactory", "performance_ratings": {"quality": "Unsatisfactory"}}
        assert has_red_flags(data, "general_pp") is True

    def test_clean_record(self):
        data = {"overall_rating": "Exceptional", "performance_ratings": {"quality": "Very Good"}}
        assert has_red_flags(data, "cpars") is False
        assert has_red_flags({}, "cpars") is False


class TestParse:
    async def test_requires_file_url(self, pp_parser):
        with pytest.raises(InputValidationError):
            await pp_parser.parse(PastPerformanceParseRequest())

    async def test_unsupported_extension(self, pp_parser):
        with pytest.raises(InputValidationError) as exc_info:
            await pp_parser.parse(PastPerformanceParseRequest(file_url="/api/v1/files/public/abc/photo.png"))
        assert "Unsupported file type: png" in exc_info.value.message

    async def test_missing_file(self, pp_parser):
        with pytest.raises(InputValidationError) as exc_info:
            await pp_parser.parse(PastPerformanceParseRequest(file_url="/api/v1/files/public/abc/missing.txt"))
        assert exc_info.value.message == "Failed to fetch file from provided URL"

    async def test_parse_cpars_text(self, pp_parser, files, mock_llm):
        stored = await files.save_upload(b"CPARS evaluation\nQuality: Marginal", "cpars.txt")
        mock_llm.invoke.return_value = {
            "title": "Data Center Consolidation",
            "overall_rating": "Satisfactory",
            "performance_ratings": {"quality": "Marginal", "schedule": "Satisfactory"},
            "extraction_confidence": 82,
            "fields_extracted": ["title", "overall_rating"],
        }

        result = await pp_parser.parse(PastPerformanceParseRequest(file_url=stored["file_url"], record_type="cpars"))

        assert result["success"] is True
        data = result["data"]
        assert data["title"] == "Data Center Consolidation"
        assert data["record_type"] == "cpars"
        assert data["has_red_flags"] is True
        assert data["document_file_name"] == "cpars.txt"
        assert "extraction_confidence" not in data
        assert data["ai_extraction_metadata"]["confidence_score"] == 82
        assert data["ai_extraction_metadata"]["extraction_method"] == "text_extraction"
        assert data["ai_extraction_metadata"]["fields_extracted"] == ["title", "overall_rating"]

        prompt = mock_llm.invoke.call_args.args[0]
        assert prompt.endswith("Document content:\n\nCPARS evaluation\nQuality: Marginal")
        assert "response_json_schema" in mock_llm.invoke.call_args.kwargs

    async def test_llm_failure(self, pp_parser, files, mock_llm):
        stored = await files.save_upload(b"Summary", "summary.txt")
        mock_llm.invoke.side_effect = LLMClientError("CLI exited with code 1")

        with pytest.raises(LLMClientError) as exc_info:
            await pp_parser.parse(PastPerformanceParseRequest(file_url=stored["file_url"]))
        assert exc_info.value.message.startswith("AI extraction failed")
        assert exc_info.value.details == {"error": "CLI exited with code 1"}

    async def test_non_object_llm_response(self, pp_parser, files, mock_llm):
        stored = await files.save_upload(b"Summary", "summary.txt")
        mock_llm.invoke.return_value = "not json"

        with pytest.raises(LLMClientError):
            await pp_parser.parse(PastPerformanceParseRequest(file_url=stored["file_url"]))
