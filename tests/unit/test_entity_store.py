"""EntityStore unit tests.

JSON 파일 기반 엔티티 저장소의 CRUD, 조건 조회($in), 정렬, 개수 제한을 확인합니다.
"""

import typing

import pytest

from proposaliq.exceptions import InputValidationError, NotFoundError
from proposaliq.models import Proposal, ProposalSection
from proposaliq.services.entity_store import EntityStore, matches_query, resolve_entity, sort_records


class TestResolveEntity:
    def test_known_entity(self):
        assert resolve_entity("Proposal") is Proposal

    def test_unknown_entity_raises(self):
        with pytest.raises(InputValidationError) as exc_info:
            resolve_entity("Invoice")
        assert "Proposal" in exc_info.value.details["allowed"]


class TestMatchesQuery:
    def test_equality(self):
        assert matches_query({"status": "won"}, {"status": "won"})
        assert not matches_query({"status": "lost"}, {"status": "won"})

    def test_in_operator(self):
        assert matches_query({"id": "b"}, {"id": {"$in": ["a", "b"]}})
        assert not matches_query({"id": "c"}, {"id": {"$in": ["a", "b"]}})

    def test_empty_query_matches_everything(self):
        assert matches_query({"anything": 1}, {})


class TestSortRecords:
    def test_ascending_and_descending(self):
        records = [{"order": 2}, {"order": 1}, {"order": 3}]
        assert [r["order"] for r in sort_records(records, "order")] == [1, 2, 3]
        assert [r["order"] for r in sort_records(records, "-order")] == [3, 2, 1]

    def test_missing_values_go_last(self):
        records = [{"order": None}, {"order": 2}, {"name": "x"}, {"order": 1}]
        result = sort_records(records, "-order")
        assert [r.get("order") for r in result[:2]] == [2, 1]
        assert all(r.get("order") is None for r in result[2:])

    def test_no_sort_keeps_input(self):
        records = [{"a": 2}, {"a": 1}]
        assert sort_records(records, None) == records


class TestEntityStoreCrud:
    async def test_create_assigns_id_and_dates(self, store):
        proposal = await store.create(Proposal, {"proposal_name": "Alpha", "agency_name": "DoD"})
        assert proposal.id
        assert proposal.created_date is not None
        assert proposal.updated_date is not None

        loaded = await store.get(Proposal, proposal.id)
        assert loaded.proposal_name == "Alpha"
        assert loaded.agency_name == "DoD"

    async def test_unknown_fields_are_preserved(self, store):
        proposal = await store.create(Proposal, {"proposal_name": "Alpha", "custom_flag": "yes"})
        loaded = await store.get(Proposal, proposal.id)
        assert loaded.model_dump()["custom_flag"] == "yes"

    async def test_update_merges_changes(self, store):
        proposal = await store.create(Proposal, {"proposal_name": "Alpha", "status": "evaluating"})
        updated = await store.update(Proposal, proposal.id, {"status": "won"})
        assert updated.status == "won"
        assert updated.proposal_name == "Alpha"
        assert updated.created_date == proposal.created_date

    async def test_update_missing_raises_not_found(self, store):
        with pytest.raises(NotFoundError):
            await store.update(Proposal, "missing", {"status": "won"})

    async def test_get_missing_returns_none(self, store):
        assert await store.get(Proposal, "missing") is None

    async def test_delete(self, store):
        proposal = await store.create(Proposal, {"proposal_name": "Alpha"})
        assert await store.delete(Proposal, proposal.id) is True
        assert await store.get(Proposal, proposal.id) is None
        assert await store.delete(Proposal, proposal.id) is False


class TestEntityStoreQueries:
    async def test_filter_sort_and_limit(self, store):
        for order, name in [(3, "C"), (1, "A"), (2, "B")]:
            await store.create(ProposalSection, {"proposal_id": "p1", "section_name": name, "order": order})
        await store.create(ProposalSection, {"proposal_id": "p2", "section_name": "Other", "order": 0})

        sections = await store.filter(ProposalSection, {"proposal_id": "p1"}, sort="order")
        assert [s.section_name for s in sections] == ["A", "B", "C"]

        limited = await store.filter(ProposalSection, {"proposal_id": "p1"}, sort="-order", limit=2)
        assert [s.section_name for s in limited] == ["C", "B"]

    async def test_filter_with_in_operator(self, store):
        a = await store.create(Proposal, {"proposal_name": "A"})
        b = await store.create(Proposal, {"proposal_name": "B"})
        await store.create(Proposal, {"proposal_name": "C"})

        found = await store.filter(Proposal, {"id": {"$in": [a.id, b.id]}}, sort="proposal_name")
        assert [p.proposal_name for p in found] == ["A", "B"]

    async def test_list_returns_all(self, store):
        await store.bulk_create(Proposal, [{"proposal_name": "A"}, {"proposal_name": "B"}])
        assert len(await store.list(Proposal)) == 2


class TestEntityStoreAnnotations:
    @pytest.mark.parametrize("method", ["list", "filter", "bulk_create"])
    def test_return_annotation_is_builtin_list(self, method):
        hints = typing.get_type_hints(getattr(EntityStore, method))
        assert typing.get_origin(hints["return"]) is list
