"""Promotional banners and their images in Supabase Storage.

Images are uploaded before the row is written. When the write fails the new
image is removed again so storage does not collect orphans.
"""

from __future__ import annotations

import secrets
import time
from urllib.parse import urlparse

import structlog
from supabase import AsyncClient, PostgrestAPIError, StorageException

from planmoni_admin.banners.schemas import BannerFields, BannerImage
from planmoni_admin.config import get_settings

logger = structlog.get_logger()

STORAGE_FOLDER = "banners"


def storage_path(filename: str) -> str:
    """``banners/<random>-<millis>.<ext>`` keeping the upload's extension."""
    ext = filename.rsplit(".", 1)[-1] if "." in filename else "bin"
    return f"{STORAGE_FOLDER}/{secrets.token_hex(6)}-{int(time.time() * 1000)}.{ext.lower()}"


def path_from_url(image_url: str) -> str | None:
    """Object path from a public URL: its last two path segments."""
    parts = [p for p in urlparse(image_url).path.split("/") if p]
    if len(parts) < 2:
        return None
    return "/".join(parts[-2:])


async def upload_image(supabase: AsyncClient, image: BannerImage) -> str:
    """Upload to the banner bucket and return the public URL."""
    bucket = supabase.storage.from_(get_settings().banner_bucket)
    path = storage_path(image.filename)
    options = {"content-type": image.content_type} if image.content_type else None
    await bucket.upload(path, image.content, options)
    return await bucket.get_public_url(path)


async def delete_image(supabase: AsyncClient, image_url: str) -> None:
    """Best-effort removal of a stored image; failures are only logged."""
    path = path_from_url(image_url)
    if path is None:
        logger.warning("banner_image_path_unparseable", image_url=image_url)
        return
    try:
        await supabase.storage.from_(get_settings().banner_bucket).remove([path])
    except StorageException as exc:
        logger.warning("banner_image_delete_failed", path=path, error=str(exc))


async def list_banners(supabase: AsyncClient, active_only: bool = True) -> list[dict]:
    query = supabase.table("banners").select("*")
    if active_only:
        query = query.eq("is_active", True)
    result = await query.order("order_index").execute()
    return result.data or []


async def create_banner(supabase: AsyncClient, fields: BannerFields, image: BannerImage) -> dict:
    image_url = await upload_image(supabase, image)
    try:
        result = await supabase.table("banners").insert({**fields.to_row(), "image_url": image_url}).execute()
    except PostgrestAPIError:
        await delete_image(supabase, image_url)
        raise
    banner = result.data[0]
    logger.info("banner_created", banner_id=banner.get("id"))
    return banner


async def update_banner(
    supabase: AsyncClient,
    banner_id: str,
    fields: BannerFields,
    image: BannerImage | None = None,
) -> dict:
    """
    Update a banner, replacing its image when one is given.

    Raises:
        LookupError: If no banner has this id.
    """
    image_url = await upload_image(supabase, image) if image is not None else None
    row = fields.to_row()
    if image_url:
        row["image_url"] = image_url

    try:
        result = await supabase.table("banners").update(row).eq("id", banner_id).execute()
    except PostgrestAPIError:
        if image_url:
            await delete_image(supabase, image_url)
        raise

    if not result.data:
        if image_url:
            await delete_image(supabase, image_url)
        msg = "Banner not found"
        raise LookupError(msg)
    return result.data[0]


async def set_banner_status(supabase: AsyncClient, banner_id: str, is_active: bool) -> dict:
    result = await supabase.table("banners").update({"is_active": is_active}).eq("id", banner_id).execute()
    if not result.data:
        msg = "Banner not found"
        raise LookupError(msg)
    return result.data[0]


async def delete_banner(supabase: AsyncClient, banner_id: str) -> None:
    """Delete the row, then its stored image."""
    result = await supabase.table("banners").delete().eq("id", banner_id).execute()
    if not result.data:
        msg = "Banner not found"
        raise LookupError(msg)
    image_url = result.data[0].get("image_url")
    if image_url:
        await delete_image(supabase, image_url)
    logger.info("banner_deleted", banner_id=banner_id)
