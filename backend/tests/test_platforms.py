"""Tests for platform descriptors and provider field mapping."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from social_sync.models import Platform
from social_sync.platforms import AuthMode, PublishMode, get_descriptor, list_platforms, parse_dt


class TestDescriptors:
    def test_every_platform_has_a_descriptor(self) -> None:
        assert list_platforms() == ["facebook", "instagram", "twitter"]
        for name in list_platforms():
            assert get_descriptor(name).platform == Platform(name)

    def test_lookup_is_case_insensitive(self) -> None:
        assert get_descriptor("Twitter").platform == Platform.twitter
        assert get_descriptor(Platform.facebook).label == "Facebook"

    def test_unknown_platform_rejected(self) -> None:
        with pytest.raises(ValueError):
            get_descriptor("myspace")

    def test_auth_and_publish_modes(self) -> None:
        assert get_descriptor("facebook").auth_mode == AuthMode.query
        assert get_descriptor("instagram").auth_mode == AuthMode.query
        assert get_descriptor("twitter").auth_mode == AuthMode.bearer
        assert get_descriptor("instagram").publish_mode == PublishMode.container
        assert get_descriptor("twitter").max_body_length == 280

    def test_twitter_page_size_is_clamped(self) -> None:
        twitter = get_descriptor("twitter")
        assert twitter.clamp_page_size(1) == 5
        assert twitter.clamp_page_size(500) == 100
        assert get_descriptor("facebook").clamp_page_size(1) == 1


class TestParseDt:
    def test_graph_offset_without_colon(self) -> None:
        assert parse_dt("2024-03-01T08:00:00+0000") == datetime(2024, 3, 1, 8, tzinfo=timezone.utc)

    def test_zulu_suffix(self) -> None:
        assert parse_dt("2024-03-01T08:00:00.000Z") == datetime(2024, 3, 1, 8, tzinfo=timezone.utc)

    def test_unix_seconds(self) -> None:
        assert parse_dt(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_garbage_is_none(self) -> None:
        assert parse_dt("yesterday") is None
        assert parse_dt(None) is None


class TestFacebookMapping:
    def test_page_uses_page_token(self) -> None:
        record = get_descriptor("facebook").parse_resource(
            {
                "id": "42",
                "name": "Bakery",
                "access_token": "page-token",
                "followers_count": 10,
                "picture": {"data": {"url": "https://cdn/p.png"}},
            },
            "user-token",
        )
        assert record.native_id == "42"
        assert record.credential == "page-token"
        assert record.follower_count == 10
        assert record.picture_url == "https://cdn/p.png"

    def test_post_engagement_counts(self) -> None:
        record = get_descriptor("facebook").parse_content(
            {
                "id": "42_1",
                "story": "Bakery updated its cover photo",
                "created_time": "2024-03-01T08:00:00+0000",
                "likes": {"summary": {"total_count": 7}},
                "comments": {"summary": {"total_count": 2}},
                "shares": {"count": 1},
            }
        )
        assert record.body == "Bakery updated its cover photo"
        assert (record.like_count, record.comment_count, record.share_count) == (7, 2, 1)
        assert record.created_time == datetime(2024, 3, 1, 8, tzinfo=timezone.utc)

    def test_cursor_only_when_next_page_exists(self) -> None:
        d = get_descriptor("facebook")
        assert d.next_cursor({"paging": {"cursors": {"after": "abc"}, "next": "https://..."}}) == "abc"
        assert d.next_cursor({"paging": {"cursors": {"after": "abc"}}}) is None
        assert d.next_cursor({}) is None

    def test_insight_values_become_daily_samples(self) -> None:
        samples = get_descriptor("facebook").parse_metrics(
            {
                "data": [
                    {
                        "name": "page_fans",
                        "values": [
                            {"value": 100, "end_time": "2024-03-01T08:00:00+0000"},
                            {"value": 101, "end_time": "2024-03-02T08:00:00+0000"},
                        ],
                    }
                ]
            }
        )
        assert [(s.metric_name, s.value, s.date) for s in samples] == [
            ("page_fans", 100.0, date(2024, 3, 1)),
            ("page_fans", 101.0, date(2024, 3, 2)),
        ]


class TestInstagramMapping:
    def test_account_inherits_user_token(self) -> None:
        record = get_descriptor("instagram").parse_resource(
            {"id": "17841", "username": "bakery", "biography": "Fresh bread", "followers_count": "250"},
            "user-token",
        )
        assert record.credential == "user-token"
        assert record.display_name == "bakery"
        assert record.bio == "Fresh bread"
        assert record.follower_count == 250

    def test_media_mapping(self) -> None:
        record = get_descriptor("instagram").parse_content(
            {
                "id": "m1",
                "caption": "Sourdough",
                "media_type": "IMAGE",
                "media_url": "https://cdn/m1.jpg",
                "timestamp": "2024-03-01T08:00:00+0000",
                "like_count": 12,
                "comments_count": 3,
            }
        )
        assert (record.body, record.media_type, record.like_count, record.comment_count) == ("Sourdough", "IMAGE", 12, 3)


class TestTwitterMapping:
    def test_account_followers_from_public_metrics(self) -> None:
        record = get_descriptor("twitter").parse_resource(
            {"id": "99", "username": "bakery", "public_metrics": {"followers_count": 15}},
            "user-token",
        )
        assert record.follower_count == 15
        assert record.credential == "user-token"

    def test_tweet_replies_and_retweets(self) -> None:
        record = get_descriptor("twitter").parse_content(
            {
                "id": "t1",
                "text": "Open today",
                "created_at": "2024-03-01T08:00:00.000Z",
                "public_metrics": {"like_count": 4, "reply_count": 1, "retweet_count": 2},
            }
        )
        assert (record.like_count, record.comment_count, record.share_count) == (4, 1, 2)

    def test_next_token_cursor(self) -> None:
        assert get_descriptor("twitter").next_cursor({"meta": {"next_token": "n1"}}) == "n1"
        assert get_descriptor("twitter").next_cursor({"meta": {}}) is None

    def test_metrics_are_a_same_day_snapshot(self) -> None:
        samples = get_descriptor("twitter").parse_metrics(
            {"data": {"id": "99", "public_metrics": {"followers_count": 15, "tweet_count": 3}}}
        )
        today = datetime.now(timezone.utc).date()
        assert {(s.metric_name, s.value) for s in samples} == {("followers_count", 15.0), ("tweet_count", 3.0)}
        assert all(s.date == today for s in samples)
