"""Tests for mirror upserts."""

from __future__ import annotations

import itertools
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import select

from conftest import add_resource
from social_sync.models import MetricSample, MirroredContentItem, MirroredResource, Platform
from social_sync.platforms import ContentRecord, MetricRecord, ResourceRecord
from social_sync.services import mirror


def _page(native_id: str, followers: int, name: str = "A") -> ResourceRecord:
    return ResourceRecord(native_id=native_id, display_name=name, credential=f"tok-{native_id}", follower_count=followers)


async def _resource_snapshot(session) -> list[tuple]:
    rows = (
        await session.execute(
            select(MirroredResource).order_by(MirroredResource.native_id).execution_options(populate_existing=True)
        )
    ).scalars().all()
    return [(r.owner_id, r.native_id, r.display_name, r.credential, r.follower_count, r.is_selected) for r in rows]


class TestUpsertResources:
    @pytest.mark.asyncio
    async def test_second_fetch_updates_followers_and_keeps_created_at(self, session) -> None:
        await mirror.upsert_resources(session, 1, Platform.facebook, [_page("42", 10)])
        first = await session.scalar(select(MirroredResource))
        created_at = first.created_at

        await mirror.upsert_resources(session, 1, Platform.facebook, [_page("42", 15)])
        rows = (
            await session.execute(select(MirroredResource).execution_options(populate_existing=True))
        ).scalars().all()

        assert len(rows) == 1
        assert rows[0].follower_count == 15
        assert rows[0].created_at == created_at
        assert rows[0].id == first.id

    @pytest.mark.asyncio
    async def test_permuted_and_duplicated_pages_converge(self, session_factory) -> None:
        pages = [
            [_page("1", 5), _page("2", 7)],
            [_page("3", 9)],
            [_page("2", 7), _page("4", 1)],
        ]
        snapshots = []
        for order in itertools.permutations(range(len(pages))):
            async with session_factory() as session:
                await session.execute(MirroredResource.__table__.delete())
                await session.commit()
                for idx in order:
                    await mirror.upsert_resources(session, 1, Platform.facebook, pages[idx])
                # replaying a page must change nothing
                await mirror.upsert_resources(session, 1, Platform.facebook, pages[order[0]])
                snapshots.append(await _resource_snapshot(session))

        assert all(snap == snapshots[0] for snap in snapshots)
        assert [row[1] for row in snapshots[0]] == ["1", "2", "3", "4"]

    @pytest.mark.asyncio
    async def test_rows_missing_from_latest_page_are_kept(self, session) -> None:
        await mirror.upsert_resources(session, 1, Platform.instagram, [_page("a", 1), _page("b", 2)])
        await mirror.upsert_resources(session, 1, Platform.instagram, [_page("b", 3)])

        assert [row[1] for row in await _resource_snapshot(session)] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_selection_survives_resync(self, session) -> None:
        await add_resource(session, 1, Platform.facebook, "42", selected=True, followers=10)

        await mirror.upsert_resources(session, 1, Platform.facebook, [_page("42", 11, name="Renamed")])

        snap = await _resource_snapshot(session)
        assert snap == [(1, "42", "Renamed", "tok-42", 11, True)]

    @pytest.mark.asyncio
    async def test_same_native_id_is_separate_per_owner(self, session) -> None:
        await mirror.upsert_resources(session, 1, Platform.twitter, [_page("99", 1)])
        await mirror.upsert_resources(session, 2, Platform.twitter, [_page("99", 2)])

        assert [(row[0], row[4]) for row in await _resource_snapshot(session)] == [(1, 1), (2, 2)]

    @pytest.mark.asyncio
    async def test_duplicates_within_one_page_take_the_last(self, session) -> None:
        count = await mirror.upsert_resources(session, 1, Platform.facebook, [_page("42", 1), _page("42", 2)])

        assert count == 1
        assert (await _resource_snapshot(session))[0][4] == 2

    @pytest.mark.asyncio
    async def test_empty_page_is_a_no_op(self, session) -> None:
        assert await mirror.upsert_resources(session, 1, Platform.facebook, []) == 0


class TestUpsertContent:
    @pytest.mark.asyncio
    async def test_only_engagement_counts_are_updated(self, session) -> None:
        resource = await add_resource(session, 1, Platform.instagram, "17841")
        created = datetime(2024, 3, 1, 8, tzinfo=timezone.utc)
        await mirror.upsert_content_items(
            session,
            resource,
            [ContentRecord(native_id="m1", body="Sourdough", like_count=1, comment_count=0, created_time=created)],
        )
        await mirror.upsert_content_items(
            session,
            resource,
            [
                ContentRecord(
                    native_id="m1",
                    body="Edited caption",
                    like_count=5,
                    comment_count=2,
                    created_time=datetime(2030, 1, 1, tzinfo=timezone.utc),
                )
            ],
        )

        rows = (
            await session.execute(select(MirroredContentItem).execution_options(populate_existing=True))
        ).scalars().all()
        assert len(rows) == 1
        item = rows[0]
        assert (item.like_count, item.comment_count) == (5, 2)
        assert item.body == "Sourdough"
        assert item.created_time.replace(tzinfo=timezone.utc) == created
        assert item.owner_id == 1
        assert item.platform == "instagram"

    @pytest.mark.asyncio
    async def test_content_is_keyed_per_resource(self, session) -> None:
        first = await add_resource(session, 1, Platform.facebook, "42")
        second = await add_resource(session, 1, Platform.facebook, "43")

        await mirror.upsert_content_items(session, first, [ContentRecord(native_id="p1")])
        await mirror.upsert_content_items(session, second, [ContentRecord(native_id="p1")])

        rows = (await session.execute(select(MirroredContentItem))).scalars().all()
        assert sorted(r.resource_id for r in rows) == sorted([first.id, second.id])


class TestMetricSamples:
    @pytest.mark.asyncio
    async def test_first_write_wins_per_day(self, session) -> None:
        resource = await add_resource(session, 1, Platform.facebook, "42")
        day = date(2024, 3, 1)

        await mirror.insert_metric_samples(session, resource, [MetricRecord("page_fans", 100.0, day)])
        await mirror.insert_metric_samples(
            session,
            resource,
            [MetricRecord("page_fans", 250.0, day), MetricRecord("page_fans", 101.0, date(2024, 3, 2))],
        )

        rows = (
            await session.execute(select(MetricSample).order_by(MetricSample.date))
        ).scalars().all()
        assert [(r.date, r.value) for r in rows] == [(day, 100.0), (date(2024, 3, 2), 101.0)]
