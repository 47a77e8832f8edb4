"""Email marketing campaigns.

Campaign creation and delivery run in the ``marketing-campaigns`` edge
function; this module only reads campaign rows and forwards actions.
"""

from __future__ import annotations

import structlog
from supabase import AsyncClient

from planmoni_admin.edge_functions import MARKETING_CAMPAIGNS_FUNCTION, EdgeFunctionClient
from planmoni_admin.marketing.schemas import CreateCampaignRequest, SendCampaignRequest

logger = structlog.get_logger()


def campaign_stats(campaigns: list[dict]) -> dict:
    """Totals over sent campaigns; open rate is opened / delivered."""
    sent = [c for c in campaigns if c.get("status") == "sent"]
    delivered = sum(c.get("delivered_count") or 0 for c in sent)
    opened = sum(c.get("opened_count") or 0 for c in sent)
    return {
        "total_campaigns": len(campaigns),
        "total_sent": sum(c.get("recipient_count") or 0 for c in sent),
        "total_delivered": delivered,
        "total_opened": opened,
        "avg_open_rate": opened / delivered * 100 if delivered > 0 else 0,
    }


async def list_campaigns(supabase: AsyncClient) -> list[dict]:
    result = await supabase.table("marketing_campaigns").select("*").order("created_at", desc=True).execute()
    return result.data or []


async def list_campaign_segments(supabase: AsyncClient) -> list[dict]:
    result = await supabase.table("campaign_segments").select("*").order("created_at", desc=True).execute()
    return result.data or []


async def get_campaign_stats(supabase: AsyncClient) -> dict:
    result = (
        await supabase.table("marketing_campaigns")
        .select("recipient_count, delivered_count, opened_count, status")
        .execute()
    )
    return campaign_stats(result.data or [])


async def create_campaign(functions: EdgeFunctionClient, request: CreateCampaignRequest, token: str) -> dict:
    body = await functions.invoke(
        MARKETING_CAMPAIGNS_FUNCTION,
        {"action": "create_campaign", **request.model_dump()},
        token,
    )
    logger.info("campaign_created", title=request.title)
    return body


def send_payload(campaign_id: str, request: SendCampaignRequest) -> dict:
    """Edge function body for an immediate or scheduled send."""
    payload = {
        "action": "send_campaign",
        "campaign_id": campaign_id,
        "recipient_filters": {"segment": request.segment},
    }
    if request.scheduled_at is not None:
        payload["action"] = "schedule_campaign"
        payload["scheduled_at"] = request.scheduled_at.isoformat()
    return payload


async def send_campaign(
    functions: EdgeFunctionClient,
    campaign_id: str,
    request: SendCampaignRequest,
    token: str,
) -> str:
    payload = send_payload(campaign_id, request)
    body = await functions.invoke(MARKETING_CAMPAIGNS_FUNCTION, payload, token)
    logger.info("campaign_dispatched", campaign_id=campaign_id, action=payload["action"])
    return body.get("message") or "Campaign sent successfully"
