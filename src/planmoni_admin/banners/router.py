"""Banner endpoints. Create and update take multipart form data."""

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from supabase import AsyncClient

from planmoni_admin.auth.dependencies import CurrentAdmin, require_permission
from planmoni_admin.auth.permissions import BANNERS, MANAGE, VIEW
from planmoni_admin.banners.schemas import BannerFields, BannerImage, BannerStatusRequest
from planmoni_admin.banners.service import (
    create_banner,
    delete_banner,
    list_banners,
    set_banner_status,
    update_banner,
)
from planmoni_admin.cache import cache_key, cached, invalidate
from planmoni_admin.config import get_settings
from planmoni_admin.supabase_client import get_supabase

router = APIRouter(prefix="/api/v1/banners", tags=["Banners"])

_can_manage = require_permission(BANNERS, MANAGE)


def _banner_fields(
    title: str = Form(..., min_length=1, max_length=200),
    description: str | None = Form(None),
    cta_text: str | None = Form(None),
    link_url: str | None = Form(None),
    order_index: int = Form(0),
    is_active: bool = Form(True),
) -> BannerFields:
    return BannerFields(title, description, cta_text, link_url, order_index, is_active)


async def _read_image(upload: UploadFile) -> BannerImage:
    return BannerImage(upload.filename or "image", await upload.read(), upload.content_type)


@router.get("")
async def banners(
    active_only: bool = Query(False),
    _admin: CurrentAdmin = Depends(require_permission(BANNERS, VIEW)),
    supabase: AsyncClient = Depends(get_supabase),
) -> list[dict]:
    """Banners in display order."""
    return await cached(
        cache_key("banners", active_only),
        get_settings().banners_cache_ttl_seconds,
        lambda: list_banners(supabase, active_only),
    )


@router.post("", status_code=201)
async def create(
    fields: BannerFields = Depends(_banner_fields),
    image: UploadFile = File(...),
    _admin: CurrentAdmin = Depends(_can_manage),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    banner = await create_banner(supabase, fields, await _read_image(image))
    await invalidate(["banners"])
    return banner


@router.put("/{banner_id}")
async def update(
    banner_id: str,
    fields: BannerFields = Depends(_banner_fields),
    image: UploadFile | None = File(None),
    _admin: CurrentAdmin = Depends(_can_manage),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    new_image = await _read_image(image) if image is not None else None
    try:
        banner = await update_banner(supabase, banner_id, fields, new_image)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await invalidate(["banners"])
    return banner


@router.patch("/{banner_id}/status")
async def set_status(
    banner_id: str,
    body: BannerStatusRequest,
    _admin: CurrentAdmin = Depends(_can_manage),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    try:
        banner = await set_banner_status(supabase, banner_id, body.is_active)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await invalidate(["banners"])
    return banner


@router.delete("/{banner_id}")
async def delete(
    banner_id: str,
    _admin: CurrentAdmin = Depends(_can_manage),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict[str, str]:
    try:
        await delete_banner(supabase, banner_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await invalidate(["banners"])
    return {"status": "deleted"}
