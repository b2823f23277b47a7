"""
Mirror upserts.

Provider records are applied onto the local mirror tables with
insert-or-update keyed on the platform-native id. Only mutable columns are
listed in the update set, so native ids, creation timestamps and the
selection flag survive any number of re-syncs. Rows missing from a fetched
page are never deleted.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import MetricSample, MirroredContentItem, MirroredResource, Platform
from ..platforms import ContentRecord, MetricRecord, ResourceRecord

logger = logging.getLogger(__name__)

RESOURCE_MUTABLE_COLUMNS = ("display_name", "credential", "follower_count", "picture_url", "bio", "updated_at")
CONTENT_MUTABLE_COLUMNS = ("like_count", "comment_count", "share_count", "fetched_at")


def _insert(session: AsyncSession, model):
    if session.get_bind().dialect.name == "sqlite":
        return sqlite_insert(model)
    return pg_insert(model)


def _dedupe(records: Iterable, key=lambda r: r.native_id) -> list:
    """Keep the last occurrence of each key, in first-seen order."""
    latest: dict = {}
    for record in records:
        latest[key(record)] = record
    return list(latest.values())


async def upsert_resources(
    session: AsyncSession,
    owner_id: int,
    platform: Platform,
    records: Iterable[ResourceRecord],
) -> int:
    rows = _dedupe(records)
    if not rows:
        return 0
    now = datetime.now(timezone.utc)
    for record in rows:
        stmt = _insert(session, MirroredResource).values(
            owner_id=owner_id,
            platform=platform.value,
            native_id=record.native_id,
            display_name=record.display_name,
            credential=record.credential,
            follower_count=record.follower_count or 0,
            picture_url=record.picture_url,
            bio=record.bio,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["owner_id", "platform", "native_id"],
            set_={col: stmt.excluded[col] for col in RESOURCE_MUTABLE_COLUMNS},
        )
        await session.execute(stmt)
    await session.commit()
    logger.info(f"[mirror] owner={owner_id} platform={platform.value} upserted {len(rows)} resources")
    return len(rows)


async def upsert_content_items(
    session: AsyncSession,
    resource: MirroredResource,
    records: Iterable[ContentRecord],
) -> int:
    rows = _dedupe(records)
    if not rows:
        return 0
    now = datetime.now(timezone.utc)
    for record in rows:
        stmt = _insert(session, MirroredContentItem).values(
            owner_id=resource.owner_id,
            platform=resource.platform,
            resource_id=resource.id,
            native_id=record.native_id,
            body=record.body,
            media_type=record.media_type,
            media_url=record.media_url,
            permalink=record.permalink,
            like_count=record.like_count or 0,
            comment_count=record.comment_count or 0,
            share_count=record.share_count or 0,
            created_time=record.created_time or now,
            raw=record.raw or None,
            fetched_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["resource_id", "native_id"],
            set_={col: stmt.excluded[col] for col in CONTENT_MUTABLE_COLUMNS},
        )
        await session.execute(stmt)
    await session.commit()
    logger.info(f"[mirror] resource={resource.id} upserted {len(rows)} content items")
    return len(rows)


async def insert_metric_samples(
    session: AsyncSession,
    resource: MirroredResource,
    records: Iterable[MetricRecord],
) -> int:
    """Insert metric samples; the first value stored for a (metric, day) wins."""
    rows = list(records)
    if not rows:
        return 0
    for record in rows:
        stmt = (
            _insert(session, MetricSample)
            .values(
                owner_id=resource.owner_id,
                platform=resource.platform,
                resource_id=resource.id,
                metric_name=record.metric_name,
                value=record.value,
                date=record.date,
            )
            .on_conflict_do_nothing(index_elements=["resource_id", "metric_name", "date"])
        )
        await session.execute(stmt)
    await session.commit()
    logger.info(f"[mirror] resource={resource.id} stored up to {len(rows)} metric samples")
    return len(rows)
