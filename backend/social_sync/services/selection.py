from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotConnected, NotFound
from ..models import MirroredResource, Platform
from ..platforms import get_descriptor

logger = logging.getLogger(__name__)


async def select_resource(
    session: AsyncSession,
    owner_id: int,
    platform: Platform,
    native_id: str,
) -> MirroredResource:
    """Make `native_id` the owner's only selected resource on `platform`.

    Clearing and setting happen in one transaction, with the owner's rows
    locked first so two concurrent selects serialize instead of leaving two
    rows selected. An unknown or foreign resource raises `NotFound` and
    leaves the current selection untouched.
    """
    label = get_descriptor(platform).label
    try:
        rows = (
            await session.execute(
                select(MirroredResource)
                .where(MirroredResource.owner_id == owner_id, MirroredResource.platform == platform.value)
                .with_for_update()
            )
        ).scalars().all()
        target = next((r for r in rows if r.native_id == str(native_id)), None)
        if target is None:
            raise NotFound(f"{label} resource not found")

        await session.execute(
            update(MirroredResource)
            .where(MirroredResource.owner_id == owner_id, MirroredResource.platform == platform.value)
            .values(is_selected=False)
        )
        await session.execute(
            update(MirroredResource).where(MirroredResource.id == target.id).values(is_selected=True)
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    await session.refresh(target)
    logger.info(f"[selection] owner={owner_id} platform={platform.value} selected {target.native_id}")
    return target


async def get_selected(session: AsyncSession, owner_id: int, platform: Platform) -> MirroredResource | None:
    return await session.scalar(
        select(MirroredResource)
        .where(
            MirroredResource.owner_id == owner_id,
            MirroredResource.platform == platform.value,
            MirroredResource.is_selected.is_(True),
        )
        .order_by(MirroredResource.id)
        .limit(1)
        .execution_options(populate_existing=True)
    )


async def require_selected(session: AsyncSession, owner_id: int, platform: Platform) -> MirroredResource:
    resource = await get_selected(session, owner_id, platform)
    if resource is None:
        raise NotConnected(f"No {get_descriptor(platform).label} resource selected")
    return resource
