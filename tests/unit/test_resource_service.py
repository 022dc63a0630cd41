"""ResourceService unit tests."""

import pytest

from proposaliq.exceptions import InputValidationError, LLMClientError
from proposaliq.models import Proposal, ProposalResource, ResourceUploadForm
from proposaliq.prompts.extraction_prompts import GENERIC_RESOURCE_SCHEMA, RESOURCE_BASE_SCHEMAS
from proposaliq.services.resource_service import ResourceService

CUSTOM_SCHEMA = {"type": "object", "properties": {"award_amount": {"type": "number"}}}


@pytest.fixture
def service(store, files, mock_llm):
    return ResourceService(store=store, files=files, llm=mock_llm)


def form(**overrides) -> ResourceUploadForm:
    data = {"title": "ISO 9001", "resource_type": "company_certification", "organization_id": "org-1"}
    data.update(overrides)
    return ResourceUploadForm(**data)


class TestExtractionSchema:
    async def test_base_schema_for_known_type(self, service, mock_llm):
        schema = await service.build_extraction_schema("company_certification", "dates")
        assert schema == RESOURCE_BASE_SCHEMAS["company_certification"]
        mock_llm.invoke.assert_not_called()

    async def test_custom_description_uses_llm(self, service, mock_llm):
        mock_llm.invoke.return_value = {"schema": CUSTOM_SCHEMA}
        schema = await service.build_extraction_schema("company_certification", "award amounts and agencies")
        assert schema == CUSTOM_SCHEMA

    async def test_unknown_type_falls_back_to_generic(self, service, mock_llm):
        mock_llm.invoke.side_effect = LLMClientError("CLI failed")
        assert await service.build_extraction_schema("misc", None) == GENERIC_RESOURCE_SCHEMA

    async def test_empty_llm_schema_falls_back_to_base(self, service, mock_llm):
        mock_llm.invoke.return_value = {"schema": {"type": "object"}}
        schema = await service.build_extraction_schema("company_certification", "award amounts and agencies")
        assert schema == RESOURCE_BASE_SCHEMAS["company_certification"]


class TestUpload:
    async def test_required_fields(self, service):
        with pytest.raises(InputValidationError):
            await service.upload_and_process(form(title=None), "cert.txt", b"text")
        with pytest.raises(InputValidationError):
            await service.upload_and_process(form(), "cert.txt", b"")

    async def test_rejects_bad_signature(self, service):
        with pytest.raises(InputValidationError):
            await service.upload_and_process(form(), "cert.pdf", b"not a pdf")

    async def test_plain_upload(self, service, store, mock_llm):
        result = await service.upload_and_process(form(tags=["quality"]), "cert.txt", b"ISO 9001:2015 certified")

        assert result["success"] is True
        assert result["rag_status"] == "not_requested"
        assert result["extracted_data"] is None
        mock_llm.invoke.assert_not_called()

        resource = await store.get(ProposalResource, result["resource_id"])
        assert resource.tags == ["quality"]
        assert resource.file_name == "cert.txt"
        assert resource.text_content is None

    async def test_ingest_extract_and_link(self, service, store, mock_llm):
        proposal = await store.create(Proposal, {"proposal_name": "Cloud Migration"})
        mock_llm.invoke.return_value = {"certification_name": "ISO 9001"}

        result = await service.upload_and_process(
            form(
                proposal_id=proposal.id,
                ingest_to_rag=True,
                extract_key_data=True,
                extraction_fields_description="dates",
            ),
            "cert.txt",
            b"ISO 9001:2015 certified",
        )

        assert result["rag_status"] == "indexed"
        assert result["extracted_data"] == {"certification_name": "ISO 9001"}
        schema = mock_llm.invoke.call_args.kwargs["response_json_schema"]
        assert schema == RESOURCE_BASE_SCHEMAS["company_certification"]

        resource = await store.get(ProposalResource, result["resource_id"])
        assert resource.text_content == "ISO 9001:2015 certified"
        assert resource.linked_proposal_ids == [proposal.id]
        assert (await store.get(Proposal, proposal.id)).linked_resource_ids == [resource.id]

    async def test_extraction_failure_does_not_block_upload(self, service, mock_llm):
        mock_llm.invoke.side_effect = LLMClientError("CLI failed")
        result = await service.upload_and_process(
            form(extract_key_data=True, extraction_fields_description="dates"), "cert.txt", b"text"
        )
        assert result["success"] is True
        assert result["extracted_data"] is None

    async def test_ingest_unsupported_type(self, service):
        result = await service.upload_and_process(form(ingest_to_rag=True), "logo.png", b"\x89PNG\r\n")
        assert result["rag_status"] == "failed"
