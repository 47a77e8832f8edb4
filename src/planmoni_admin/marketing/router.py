"""Marketing campaign endpoints."""

from fastapi import APIRouter, Depends
from supabase import AsyncClient

from planmoni_admin.auth.dependencies import CurrentAdmin, require_permission
from planmoni_admin.auth.permissions import MANAGE, MARKETING, VIEW
from planmoni_admin.cache import invalidate
from planmoni_admin.edge_functions import EdgeFunctionClient, get_edge_functions
from planmoni_admin.marketing.schemas import CampaignStats, CreateCampaignRequest, SendCampaignRequest
from planmoni_admin.marketing.service import (
    create_campaign,
    get_campaign_stats,
    list_campaign_segments,
    list_campaigns,
    send_campaign,
)
from planmoni_admin.supabase_client import get_supabase

router = APIRouter(prefix="/api/v1/marketing", tags=["Marketing"])

_can_view = require_permission(MARKETING, VIEW)
_can_manage = require_permission(MARKETING, MANAGE)


@router.get("/campaigns")
async def campaigns(
    _admin: CurrentAdmin = Depends(_can_view),
    supabase: AsyncClient = Depends(get_supabase),
) -> list[dict]:
    return await list_campaigns(supabase)


@router.get("/segments")
async def segments(
    _admin: CurrentAdmin = Depends(_can_view),
    supabase: AsyncClient = Depends(get_supabase),
) -> list[dict]:
    return await list_campaign_segments(supabase)


@router.get("/stats", response_model=CampaignStats)
async def stats(
    _admin: CurrentAdmin = Depends(_can_view),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    return await get_campaign_stats(supabase)


@router.post("/campaigns", status_code=201)
async def create(
    body: CreateCampaignRequest,
    admin: CurrentAdmin = Depends(_can_manage),
    functions: EdgeFunctionClient = Depends(get_edge_functions),
) -> dict:
    result = await create_campaign(functions, body, admin.access_token)
    await invalidate(["marketing"])
    return result


@router.post("/campaigns/{campaign_id}/send")
async def send(
    campaign_id: str,
    body: SendCampaignRequest,
    admin: CurrentAdmin = Depends(_can_manage),
    functions: EdgeFunctionClient = Depends(get_edge_functions),
) -> dict[str, str]:
    """Send a campaign to a segment now, or schedule it."""
    message = await send_campaign(functions, campaign_id, body, admin.access_token)
    await invalidate(["marketing"])
    return {"message": message}
