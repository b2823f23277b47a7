"""
Account-linking and mirror synchronization.

Every operation follows the same path: look up the owner's token, call the
provider, upsert the result into the mirror, answer from the mirror.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotConnected, ValidationError
from ..integrations.provider_client import ProviderClient, get_provider_client
from ..models import LinkedAccount, MetricSample, MirroredContentItem, MirroredResource, Platform
from ..platforms import get_descriptor
from . import mirror
from .selection import require_selected

logger = logging.getLogger(__name__)

MAX_CONTENT_PAGES = 10


async def get_linked_account(session: AsyncSession, owner_id: int, platform: Platform) -> LinkedAccount:
    account = await session.scalar(
        select(LinkedAccount).where(LinkedAccount.owner_id == owner_id, LinkedAccount.platform == platform.value)
    )
    if account is None or not account.access_token:
        raise NotConnected(f"{get_descriptor(platform).label} account not connected")
    return account


async def list_resources(session: AsyncSession, owner_id: int, platform: Platform) -> list[MirroredResource]:
    result = await session.execute(
        select(MirroredResource)
        .where(MirroredResource.owner_id == owner_id, MirroredResource.platform == platform.value)
        .order_by(MirroredResource.follower_count.desc(), MirroredResource.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def sync_resources(
    session: AsyncSession,
    owner_id: int,
    platform: Platform,
    client: ProviderClient | None = None,
) -> list[MirroredResource]:
    account = await get_linked_account(session, owner_id, platform)
    client = client or get_provider_client(platform)
    records = await client.list_resources(account.access_token)
    await mirror.upsert_resources(session, owner_id, platform, records)
    return await list_resources(session, owner_id, platform)


async def sync_content(
    session: AsyncSession,
    owner_id: int,
    platform: Platform,
    limit: int = 10,
    cursor: str | None = None,
    pages: int = 1,
    client: ProviderClient | None = None,
) -> dict:
    if limit < 1:
        raise ValidationError("limit must be positive")
    resource = await require_selected(session, owner_id, platform)
    client = client or get_provider_client(platform)

    items = []
    next_cursor = None
    async for page in client.iter_content_items(
        resource.credential,
        resource.native_id,
        cursor=cursor,
        limit=limit,
        max_pages=min(max(pages, 1), MAX_CONTENT_PAGES),
    ):
        await mirror.upsert_content_items(session, resource, page.items)
        items.extend(page.items)
        next_cursor = page.next_cursor

    logger.info(
        f"[sync] owner={owner_id} platform={platform.value} resource={resource.native_id} "
        f"fetched {len(items)} items, next_cursor={'yes' if next_cursor else 'no'}"
    )
    native_ids = [item.native_id for item in items]
    stored: dict[str, MirroredContentItem] = {}
    if native_ids:
        result = await session.execute(
            select(MirroredContentItem)
            .where(MirroredContentItem.resource_id == resource.id, MirroredContentItem.native_id.in_(native_ids))
            .execution_options(populate_existing=True)
        )
        stored = {row.native_id: row for row in result.scalars().all()}
    return {
        "resource_id": resource.native_id,
        "items": [stored[n] for n in dict.fromkeys(native_ids) if n in stored],
        "next_cursor": next_cursor,
    }


async def list_stored_content(
    session: AsyncSession,
    owner_id: int,
    platform: Platform,
    limit: int = 20,
) -> list[MirroredContentItem]:
    result = await session.execute(
        select(MirroredContentItem)
        .where(MirroredContentItem.owner_id == owner_id, MirroredContentItem.platform == platform.value)
        .order_by(MirroredContentItem.created_time.desc(), MirroredContentItem.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def sync_metrics(
    session: AsyncSession,
    owner_id: int,
    platform: Platform,
    start_date: date | None = None,
    end_date: date | None = None,
    client: ProviderClient | None = None,
) -> list[MetricSample]:
    if (start_date is None) != (end_date is None):
        raise ValidationError("start_date and end_date must be given together")
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date must not be after end_date")
    resource = await require_selected(session, owner_id, platform)
    client = client or get_provider_client(platform)

    records = await client.fetch_metrics(resource.credential, resource.native_id, since=start_date, until=end_date)
    await mirror.insert_metric_samples(session, resource, records)
    if not records:
        return []

    names = {r.metric_name for r in records}
    dates = {r.date for r in records}
    result = await session.execute(
        select(MetricSample)
        .where(
            MetricSample.resource_id == resource.id,
            MetricSample.metric_name.in_(names),
            MetricSample.date.in_(dates),
        )
        .order_by(MetricSample.metric_name, MetricSample.date)
    )
    return list(result.scalars().all())


async def list_stored_metrics(
    session: AsyncSession,
    owner_id: int,
    platform: Platform,
    metric: str,
    days: int = 30,
) -> list[MetricSample]:
    if days < 1:
        raise ValidationError("days must be positive")
    since = datetime.now(timezone.utc).date() - timedelta(days=days)
    result = await session.execute(
        select(MetricSample)
        .where(
            MetricSample.owner_id == owner_id,
            MetricSample.platform == platform.value,
            MetricSample.metric_name == metric,
            MetricSample.date >= since,
        )
        .order_by(MetricSample.date.asc())
    )
    return list(result.scalars().all())


async def disconnect(session: AsyncSession, owner_id: int, platform: Platform) -> None:
    """Drop the linked token and every mirrored row for the platform."""
    try:
        resource_ids = select(MirroredResource.id).where(
            MirroredResource.owner_id == owner_id, MirroredResource.platform == platform.value
        )
        await session.execute(
            delete(MetricSample)
            .where(MetricSample.resource_id.in_(resource_ids))
            .execution_options(synchronize_session=False)
        )
        await session.execute(
            delete(MirroredContentItem)
            .where(MirroredContentItem.resource_id.in_(resource_ids))
            .execution_options(synchronize_session=False)
        )
        await session.execute(
            delete(MirroredResource).where(
                MirroredResource.owner_id == owner_id, MirroredResource.platform == platform.value
            )
        )
        await session.execute(
            delete(LinkedAccount).where(LinkedAccount.owner_id == owner_id, LinkedAccount.platform == platform.value)
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    logger.info(f"[sync] owner={owner_id} disconnected {platform.value}")
