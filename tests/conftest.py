"""공유 pytest fixture 모음."""

import pytest
from unittest.mock import AsyncMock

from proposaliq.config import get_settings
from proposaliq.models import User
from proposaliq.services.auth import create_access_token
from proposaliq.services.cache import ParseCache
from proposaliq.services.entity_store import EntityStore
from proposaliq.services.file_storage import FileStorage
from proposaliq.services.proposal_parser import ProposalParser

# 요청마다 다시 만들어져야 하는 서비스 싱글톤 (모듈 경로, 전역 변수명)
SERVICE_SINGLETONS = [
    ("proposaliq.services.entity_store", "_entity_store"),
    ("proposaliq.services.file_storage", "_file_storage"),
    ("proposaliq.services.cache", "_parse_cache"),
    ("proposaliq.services.proposal_parser", "_proposal_parser"),
    ("proposaliq.services.context_builder", "_context_builder"),
    ("proposaliq.services.proposal_writer", "_proposal_writer"),
    ("proposaliq.services.compliance_mapper", "_compliance_mapper"),
    ("proposaliq.services.data_call_service", "_data_call_service"),
    ("proposaliq.services.timeline_planner", "_timeline_planner"),
    ("proposaliq.services.document_exporter", "_document_exporter"),
    ("proposaliq.services.resource_service", "_resource_service"),
    ("proposaliq.services.past_performance", "_past_performance_parser"),
]


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """tmp_path를 데이터 폴더로 쓰는 Settings. 배치 대기 시간은 0."""
    monkeypatch.setenv("PROPOSALIQ_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("PROPOSALIQ_COMPLIANCE_BATCH_DELAY_SECONDS", "0")
    monkeypatch.setenv("PROPOSALIQ_DEBUG", "false")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def store(settings, tmp_path):
    return EntityStore(base_path=str(tmp_path))


@pytest.fixture
def files(settings, tmp_path):
    return FileStorage(base_path=str(tmp_path))


@pytest.fixture
def parse_cache(settings, tmp_path):
    return ParseCache(cache_dir=tmp_path / "cache", ttl_hours=24)


@pytest.fixture
def parser(store, files, parse_cache):
    return ProposalParser(store=store, files=files, cache=parse_cache)


@pytest.fixture
def mock_llm():
    """LLMClient mock fixture."""
    client = AsyncMock()
    client.invoke = AsyncMock(return_value="mocked response")
    client.complete = AsyncMock(return_value="mocked response")
    client.complete_json = AsyncMock(return_value={})
    return client


@pytest.fixture
def app_services(settings, mock_llm, monkeypatch):
    """
    API 테스트용: 서비스 싱글톤을 비워 tmp_path 기반으로 새로 만들게 하고,
    LLM 클라이언트는 mock으로 바꿉니다.
    """
    import importlib

    for module_path, name in SERVICE_SINGLETONS:
        monkeypatch.setattr(importlib.import_module(module_path), name, None)
    monkeypatch.setattr(importlib.import_module("proposaliq.services.llm_client"), "_llm_client", mock_llm)
    return mock_llm


@pytest.fixture
async def client(app_services):
    """httpx AsyncClient fixture (FastAPI 테스트용)."""
    from httpx import AsyncClient, ASGITransport
    from proposaliq.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def user(app_services):
    from proposaliq.services import get_entity_store

    return await get_entity_store().create(User, {
        "email": "writer@example.com",
        "full_name": "Pat Writer",
        "organization_id": "org-1",
        "role": "member",
    })


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def sample_user():
    return User(id="user-1", email="writer@example.com", full_name="Pat Writer", organization_id="org-1")
