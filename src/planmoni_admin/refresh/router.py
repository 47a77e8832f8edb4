"""Drop cached responses so the next read goes to Supabase."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from planmoni_admin.auth.dependencies import CurrentAdmin, get_current_admin
from planmoni_admin.cache import CACHE_AREAS, invalidate

router = APIRouter(prefix="/api/v1/refresh", tags=["Cache"])


class RefreshRequest(BaseModel):
    areas: list[str] | None = None


@router.post("")
async def refresh(
    body: RefreshRequest | None = None,
    _admin: CurrentAdmin = Depends(get_current_admin),
) -> dict[str, object]:
    """Invalidate the named areas, or every area when none are given."""
    areas = body.areas if body and body.areas else list(CACHE_AREAS)
    unknown = sorted(set(areas) - set(CACHE_AREAS))
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown cache areas: {', '.join(unknown)}")
    deleted = await invalidate(areas)
    return {"areas": areas, "deleted": deleted}
