"""
Publishing of queued content to the provider.

A scheduled item moves pending -> published exactly once, in a single
UPDATE guarded on status = 'pending'. If the provider call fails the item
stays pending and the failure is surfaced to the caller.

Known gap: when the provider accepts the post but the local status update
fails afterwards, the remote post exists without a local record of it. No
compensation is attempted.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import AlreadyPublished, NotFound, ProviderError, SocialSyncError, ValidationError
from ..integrations.provider_client import ProviderClient, get_provider_client
from ..models import ContentStatus, MirroredResource, Platform, ScheduledContentItem
from ..platforms import PlatformDescriptor, get_descriptor
from .selection import get_selected

logger = logging.getLogger(__name__)


def validate_body(descriptor: PlatformDescriptor, body: str | None, media_url: str | None) -> None:
    if descriptor.requires_media and not media_url:
        raise ValidationError("Image URL required")
    if not descriptor.requires_media and not (body or "").strip():
        raise ValidationError(f"{descriptor.label} post text required")
    if descriptor.max_body_length and len(body or "") > descriptor.max_body_length:
        raise ValidationError(f"{descriptor.label} post must be {descriptor.max_body_length} characters or less")


async def _resolve_target(
    session: AsyncSession,
    owner_id: int,
    platform: Platform,
    resource_id: int | None,
) -> MirroredResource:
    if resource_id is not None:
        resource = await session.get(MirroredResource, resource_id)
        if resource is None or resource.owner_id != owner_id or resource.platform != platform.value:
            raise NotFound(f"{get_descriptor(platform).label} resource not found")
        return resource
    resource = await get_selected(session, owner_id, platform)
    if resource is None:
        raise ValidationError(f"No {get_descriptor(platform).label} publish target selected")
    return resource


async def publish(
    session: AsyncSession,
    owner_id: int,
    platform: Platform,
    item_id: int,
    client: ProviderClient | None = None,
) -> ScheduledContentItem:
    item = await session.scalar(
        select(ScheduledContentItem)
        .where(ScheduledContentItem.id == item_id, ScheduledContentItem.owner_id == owner_id)
        .execution_options(populate_existing=True)
    )
    if item is None:
        raise NotFound("Post not found")
    if item.platform != platform.value:
        raise ValidationError(f"Post is scheduled for {item.platform}, not {platform.value}")
    if item.status != ContentStatus.pending.value:
        raise AlreadyPublished(reason=f"post {item.id} status is {item.status}")

    descriptor = get_descriptor(platform)
    validate_body(descriptor, item.body, item.media_url)
    resource = await _resolve_target(session, owner_id, platform, item.parent_resource_id)
    client = client or get_provider_client(platform)

    logger.info(f"[publish] owner={owner_id} item={item.id} platform={platform.value} target={resource.native_id}")
    try:
        remote_id = await client.publish_content(resource.credential, resource.native_id, item.body, item.media_url)
    except SocialSyncError as exc:
        logger.error(f"[publish] item={item.id} failed: {exc.message} ({exc.reason})")
        await _record_failure(session, item.id, exc)
        raise

    now = datetime.now(timezone.utc)
    result = await session.execute(
        update(ScheduledContentItem)
        .where(ScheduledContentItem.id == item.id, ScheduledContentItem.status == ContentStatus.pending.value)
        .values(
            status=ContentStatus.published.value,
            remote_post_id=remote_id,
            published_at=now,
            parent_resource_id=resource.id,
            error=None,
        )
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    if result.rowcount == 0:
        # a concurrent publish won the race; the remote post is now a duplicate
        logger.error(f"[publish] item={item.id} was published concurrently, remote post {remote_id} is orphaned")
        raise AlreadyPublished(reason=f"post {item.id} was published concurrently")

    await session.refresh(item)
    logger.info(f"[publish] item={item.id} published as {remote_id}")
    return item


async def _record_failure(session: AsyncSession, item_id: int, exc: SocialSyncError) -> None:
    message = exc.message if not exc.reason else f"{exc.message}: {exc.reason}"
    try:
        await session.execute(
            update(ScheduledContentItem)
            .where(ScheduledContentItem.id == item_id, ScheduledContentItem.status == ContentStatus.pending.value)
            .values(error=message[:2000])
            .execution_options(synchronize_session=False)
        )
        await session.commit()
    except Exception:
        await session.rollback()
        logger.exception(f"[publish] could not record failure for item={item_id}")


async def publish_direct(
    session: AsyncSession,
    owner_id: int,
    platform: Platform,
    body: str | None,
    media_url: str | None = None,
    client: ProviderClient | None = None,
) -> str:
    """Publish ad-hoc content to the selected resource without a queued item."""
    descriptor = get_descriptor(platform)
    validate_body(descriptor, body, media_url)
    resource = await _resolve_target(session, owner_id, platform, None)
    client = client or get_provider_client(platform)
    try:
        remote_id = await client.publish_content(resource.credential, resource.native_id, body or "", media_url)
    except ProviderError as exc:
        logger.error(f"[publish] direct publish owner={owner_id} platform={platform.value} failed: {exc.reason}")
        raise
    logger.info(f"[publish] direct publish owner={owner_id} platform={platform.value} -> {remote_id}")
    return remote_id
