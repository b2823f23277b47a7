from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Query

from .deps import OwnerDep, SessionDep
from .models import Platform
from .platforms import get_descriptor
from .schemas import (
    ContentItemRead,
    ContentPage,
    MetricSampleRead,
    PublishRequest,
    PublishResponse,
    ResourceRead,
    SelectResourceRequest,
    SelectResourceResponse,
)
from .services import publisher, sync
from .services.selection import get_selected, select_resource

router = APIRouter(prefix="/api/{platform}", tags=["platforms"])


@router.get("/resources", response_model=list[ResourceRead])
async def fetch_resources(platform: Platform, owner_id: OwnerDep, session: SessionDep):
    """Fetch pages/accounts from the provider and return the mirrored rows."""
    return await sync.sync_resources(session, owner_id, platform)


@router.post("/resources/select", response_model=SelectResourceResponse)
async def choose_resource(
    platform: Platform,
    payload: SelectResourceRequest,
    owner_id: OwnerDep,
    session: SessionDep,
):
    resource = await select_resource(session, owner_id, platform, payload.resource_id)
    return SelectResourceResponse(
        message=f"{get_descriptor(platform).label} resource selected",
        resource=ResourceRead.model_validate(resource),
    )


@router.get("/resources/selected", response_model=ResourceRead | None)
async def selected_resource(platform: Platform, owner_id: OwnerDep, session: SessionDep):
    return await get_selected(session, owner_id, platform)


@router.post("/disconnect")
async def disconnect(platform: Platform, owner_id: OwnerDep, session: SessionDep):
    await sync.disconnect(session, owner_id, platform)
    return {"message": f"{get_descriptor(platform).label} account disconnected"}


@router.get("/content", response_model=ContentPage)
async def fetch_content(
    platform: Platform,
    owner_id: OwnerDep,
    session: SessionDep,
    limit: int = Query(10, ge=1, le=100),
    cursor: str | None = Query(default=None),
    pages: int = Query(1, ge=1, le=sync.MAX_CONTENT_PAGES),
):
    """Fetch posts/media/tweets of the selected resource and mirror them."""
    return await sync.sync_content(session, owner_id, platform, limit=limit, cursor=cursor, pages=pages)


@router.get("/content/stored", response_model=list[ContentItemRead])
async def stored_content(
    platform: Platform,
    owner_id: OwnerDep,
    session: SessionDep,
    limit: int = Query(20, ge=1, le=200),
):
    return await sync.list_stored_content(session, owner_id, platform, limit=limit)


@router.get("/metrics", response_model=list[MetricSampleRead])
async def fetch_metrics(
    platform: Platform,
    owner_id: OwnerDep,
    session: SessionDep,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
):
    return await sync.sync_metrics(session, owner_id, platform, start_date=start_date, end_date=end_date)


@router.get("/metrics/stored", response_model=list[MetricSampleRead])
async def stored_metrics(
    platform: Platform,
    owner_id: OwnerDep,
    session: SessionDep,
    metric: str = Query(...),
    days: int = Query(30, ge=1, le=365),
):
    return await sync.list_stored_metrics(session, owner_id, platform, metric=metric, days=days)


@router.post("/publish", response_model=PublishResponse)
async def publish(platform: Platform, payload: PublishRequest, owner_id: OwnerDep, session: SessionDep):
    label = get_descriptor(platform).label
    if payload.post_id is not None:
        item = await publisher.publish(session, owner_id, platform, payload.post_id)
        return PublishResponse(
            message=f"Post published to {label}",
            remote_post_id=item.remote_post_id,
            post_id=item.id,
            published_at=item.published_at,
        )
    remote_id = await publisher.publish_direct(session, owner_id, platform, payload.body, payload.media_url)
    return PublishResponse(message=f"Post published to {label}", remote_post_id=remote_id)
