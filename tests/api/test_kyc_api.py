"""Tests for GET /api/v1/kyc."""

import pytest
from httpx import AsyncClient

from tests.conftest import FakeSupabase


@pytest.fixture
def kyc_rows(fake_supabase: FakeSupabase) -> FakeSupabase:
    fake_supabase.tables["kyc_data"] = [
        {"id": "k1", "user_id": "u1", "first_name": "Ada", "bvn": "11111111111", "approved": True, "created_at": "2026-05-01", "profiles": {"email": "ada@example.com"}},
        {"id": "k2", "user_id": "u2", "first_name": "Tunde", "bvn": "22222222222", "approved": False, "created_at": "2026-05-02", "profiles": {"email": "tunde@example.com"}},
    ]
    fake_supabase.tables["kyc_progress"] = [{"user_id": "u1", "overall_completed": True}]
    return fake_supabase


@pytest.mark.asyncio
async def test_list_merges_progress(authed_client: AsyncClient, kyc_rows: FakeSupabase) -> None:
    response = await authed_client.get("/api/v1/kyc")

    data = response.json()
    assert [k["id"] for k in data["kyc_data"]] == ["k2", "k1"]
    assert data["kyc_data"][1]["kyc_progress"]["overall_completed"] is True
    assert data["kyc_data"][0]["user"] == {"email": "tunde@example.com"}
    assert data["stats"] == {"total": 2, "approved": 1, "pending": 1, "rejected": 0, "completed": 1}


@pytest.mark.asyncio
async def test_status_filter(authed_client: AsyncClient, kyc_rows: FakeSupabase) -> None:
    response = await authed_client.get("/api/v1/kyc", params={"status": "pending"})
    data = response.json()
    assert [k["id"] for k in data["kyc_data"]] == ["k2"]
    assert data["stats"]["total"] == 1


@pytest.mark.asyncio
async def test_search_by_email(authed_client: AsyncClient, kyc_rows: FakeSupabase) -> None:
    response = await authed_client.get("/api/v1/kyc", params={"search": "ada@"})
    assert [k["id"] for k in response.json()["kyc_data"]] == ["k1"]
