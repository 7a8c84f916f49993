"""
Offline Cache API.

Introspection and invalidation go through the worker channel, as do
activations. POST /update with a version tag installs it (when new);
confirm=true then activates whatever is waiting. GET /fetch issues a
page request through the worker's fetch interception.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from audioguide.api.deps import get_cache_channel, get_cache_manager
from audioguide.components.offline_cache import CacheLifecycleManager, CacheWorkerChannel

router = APIRouter()


# --- Request Models ---


class InvalidateRequest(BaseModel):
    url: str


class UpdateRequest(BaseModel):
    version_tag: str | None = None
    manifest: list[str] | None = None
    confirm: bool = False


# --- Routes ---


@router.get("")
async def get_stats(
    channel: CacheWorkerChannel = Depends(get_cache_channel),
) -> dict[str, Any]:
    return await channel.status()


@router.delete("")
async def clear(channel: CacheWorkerChannel = Depends(get_cache_channel)) -> dict[str, Any]:
    return {"success": await channel.clear()}


@router.post("/invalidate")
async def invalidate(
    body: InvalidateRequest,
    channel: CacheWorkerChannel = Depends(get_cache_channel),
) -> dict[str, Any]:
    return {"url": body.url, "removed": await channel.invalidate(body.url)}


@router.post("/update")
async def update(
    body: UpdateRequest,
    manager: CacheLifecycleManager = Depends(get_cache_manager),
    channel: CacheWorkerChannel = Depends(get_cache_channel),
) -> dict[str, Any]:
    install = None
    if body.version_tag:
        result = await manager.check_for_update(body.version_tag, body.manifest)
        install = result.to_dict() if result else None
    activation = None
    if body.confirm and manager.waiting is not None:
        activation = await channel.skip_waiting()
    return {
        "install": install,
        "activation": activation,
        "updateAvailable": manager.update_available,
    }


@router.get("/fetch")
async def fetch(
    url: str = Query(..., min_length=1),
    channel: CacheWorkerChannel = Depends(get_cache_channel),
) -> Response:
    """Replay the response the page would get for url, from cache or network."""
    response = await channel.fetch(url)
    if response.status == 0:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"url": response.url, "error": response.error},
        )
    return Response(
        content=response.body,
        status_code=response.status,
        media_type=response.content_type,
        headers={"X-Cache": "HIT" if response.from_cache else "MISS"},
    )
