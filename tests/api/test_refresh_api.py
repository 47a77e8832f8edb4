"""Tests for POST /api/v1/refresh."""

import pytest
from httpx import AsyncClient

from planmoni_admin.cache import CACHE_AREAS


@pytest.mark.asyncio
async def test_refresh_everything(authed_client: AsyncClient) -> None:
    response = await authed_client.post("/api/v1/refresh")
    assert response.status_code == 200
    assert response.json() == {"areas": list(CACHE_AREAS), "deleted": 0}


@pytest.mark.asyncio
async def test_refresh_named_areas(authed_client: AsyncClient) -> None:
    response = await authed_client.post("/api/v1/refresh", json={"areas": ["users", "kyc"]})
    assert response.json()["areas"] == ["users", "kyc"]


@pytest.mark.asyncio
async def test_unknown_area(authed_client: AsyncClient) -> None:
    response = await authed_client.post("/api/v1/refresh", json={"areas": ["users", "weather"]})
    assert response.status_code == 400
    assert response.json()["detail"] == "Unknown cache areas: weather"
