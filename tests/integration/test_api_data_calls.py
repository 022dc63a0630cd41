"""
데이터 콜 API 통합 테스트.
내부 사용자가 만든 요청을 고객이 포털에서 토큰으로 처리하는 전체 흐름을 확인합니다.
"""

import pytest
from httpx import AsyncClient


@pytest.fixture
async def sent_data_call(client: AsyncClient, auth_headers) -> dict:
    created = await client.post(
        "/api/v1/data-calls",
        json={
            "request_title": "Past performance documents",
            "assigned_to_email": "client@agency.gov",
            "checklist_items": [
                {"item_label": "CPARS report"},
                {"item_label": "Org chart", "is_required": False},
            ],
        },
        headers=auth_headers,
    )
    assert created.status_code == 200
    data_call = created.json()["data_call"]

    sent = await client.post(f"/api/v1/data-calls/{data_call['id']}/send", headers=auth_headers)
    assert sent.status_code == 200
    assert sent.json()["portal_path"].endswith(f"&token={data_call['access_token']}")
    return data_call


async def test_create_requires_auth(client: AsyncClient):
    response = await client.post("/api/v1/data-calls", json={"request_title": "Docs"})

    assert response.status_code == 401


async def test_create_requires_items(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/data-calls", json={"request_title": "Docs"}, headers=auth_headers)

    assert response.status_code == 400


async def test_portal_flow(client: AsyncClient, sent_data_call):
    """검증 → 파일 업로드 → 최종 제출 → 이후 변경 거부."""
    credentials = {"token": sent_data_call["access_token"], "data_call_id": sent_data_call["id"]}
    required_item = sent_data_call["checklist_items"][0]

    validated = await client.post("/api/v1/data-calls/portal/validate", json=credentials)
    assert validated.status_code == 200
    view = validated.json()["data_call"]
    assert "access_token" not in view
    assert view["portal_accessed_count"] == 1
    assert view["progress"]["all_required_completed"] is False

    uploaded = await client.post(
        "/api/v1/data-calls/portal/upload",
        data={**credentials, "item_id": required_item["id"]},
        files={"file": ("cpars.txt", b"Quality: Very Good", "text/plain")},
    )
    assert uploaded.status_code == 200
    assert uploaded.json()["item"]["status"] == "completed"

    file_download = await client.get(uploaded.json()["file_url"])
    assert file_download.content == b"Quality: Very Good"

    submitted = await client.post("/api/v1/data-calls/portal/update", json={**credentials, "mark_completed": True})
    assert submitted.status_code == 200
    assert submitted.json()["data_call"]["overall_status"] == "completed"

    locked = await client.post(
        "/api/v1/data-calls/portal/update",
        json={**credentials, "item_id": required_item["id"], "status": "pending"},
    )
    assert locked.status_code == 400

    viewed = await client.post("/api/v1/data-calls/portal/view", json=credentials)
    assert viewed.json()["data_call"]["portal_accessed_count"] == 1


async def test_portal_rejects_wrong_token(client: AsyncClient, sent_data_call):
    response = await client.post(
        "/api/v1/data-calls/portal/validate",
        json={"token": "x" * 32, "data_call_id": sent_data_call["id"]},
    )

    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_AUTH_002"


async def test_portal_requires_token(client: AsyncClient):
    response = await client.post("/api/v1/data-calls/portal/validate", json={})

    assert response.status_code == 400


async def test_submit_with_pending_required_item(client: AsyncClient, sent_data_call):
    response = await client.post(
        "/api/v1/data-calls/portal/update",
        json={"token": sent_data_call["access_token"], "data_call_id": sent_data_call["id"], "mark_completed": True},
    )

    assert response.status_code == 400
    assert response.json()["details"]["pending_required"] == [sent_data_call["checklist_items"][0]["id"]]


async def test_malformed_checklist_is_bad_request(client: AsyncClient, sent_data_call):
    response = await client.post(
        "/api/v1/data-calls/portal/update",
        json={
            "token": sent_data_call["access_token"],
            "data_call_id": sent_data_call["id"],
            "checklist_items": [{"foo": 1}],
        },
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_INPUT_001"


async def test_empty_checklist_cannot_complete(client: AsyncClient, sent_data_call):
    credentials = {"token": sent_data_call["access_token"], "data_call_id": sent_data_call["id"]}
    response = await client.post(
        "/api/v1/data-calls/portal/update",
        json={**credentials, "checklist_items": [], "mark_completed": True},
    )

    assert response.status_code == 400
    viewed = await client.post("/api/v1/data-calls/portal/view", json=credentials)
    assert viewed.json()["data_call"]["overall_status"] != "completed"
