"""
Platform descriptors.

One `PlatformDescriptor` per supported platform describes everything that
differs between the provider APIs: base URL, how the token is sent, which
paths and fields to request, how cursors travel, and how raw provider JSON
maps onto the normalized record types below. The provider client and the
sync services only ever talk to these descriptors.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable

from .models import Platform
from .settings import get_settings


class AuthMode(str, Enum):
    query = "query"
    bearer = "bearer"


class PublishMode(str, Enum):
    feed = "feed"
    container = "container"
    tweet = "tweet"


@dataclass
class ResourceRecord:
    native_id: str
    display_name: str
    credential: str
    follower_count: int = 0
    picture_url: str | None = None
    bio: str | None = None
    raw: dict = field(default_factory=dict)


@dataclass
class ContentRecord:
    native_id: str
    body: str | None = None
    media_type: str | None = None
    media_url: str | None = None
    permalink: str | None = None
    like_count: int = 0
    comment_count: int = 0
    share_count: int = 0
    created_time: datetime | None = None
    raw: dict = field(default_factory=dict)


@dataclass
class MetricRecord:
    metric_name: str
    value: float | None
    date: date


@dataclass
class Page:
    items: list
    next_cursor: str | None = None


def _parse_int(val: Any) -> int:
    try:
        return int(val)
    except (TypeError, ValueError):
        return 0


def _parse_float(val: Any) -> float | None:
    if isinstance(val, bool):
        return float(val)
    try:
        return float(val)
    except (TypeError, ValueError):
        return None


def parse_dt(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    text = str(value).replace("Z", "+00:00")
    # Graph API emits offsets without a colon, e.g. 2024-01-01T08:00:00+0000
    if len(text) > 5 and text[-5] in "+-" and text[-4:].isdigit():
        text = f"{text[:-2]}:{text[-2:]}"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _dig(data: dict | None, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


# ── Facebook ─────────────────────────────────────────────────

def _facebook_resource(item: dict, account_token: str) -> ResourceRecord:
    return ResourceRecord(
        native_id=str(item["id"]),
        display_name=item.get("name") or str(item["id"]),
        credential=item.get("access_token") or account_token,
        follower_count=_parse_int(item.get("followers_count")),
        picture_url=_dig(item, "picture", "data", "url"),
        raw=item,
    )


def _facebook_content(item: dict) -> ContentRecord:
    return ContentRecord(
        native_id=str(item["id"]),
        body=item.get("message") or item.get("story"),
        media_type=item.get("type"),
        media_url=item.get("full_picture") or item.get("picture"),
        permalink=item.get("permalink_url") or item.get("link"),
        like_count=_parse_int(_dig(item, "likes", "summary", "total_count")),
        comment_count=_parse_int(_dig(item, "comments", "summary", "total_count")),
        share_count=_parse_int(_dig(item, "shares", "count")),
        created_time=parse_dt(item.get("created_time")),
        raw=item,
    )


def _graph_cursor(payload: dict) -> str | None:
    paging = payload.get("paging") or {}
    if not paging.get("next"):
        return None
    return _dig(paging, "cursors", "after")


def _graph_metrics(payload: dict) -> list[MetricRecord]:
    samples: list[MetricRecord] = []
    for metric in payload.get("data") or []:
        name = metric.get("name")
        if not name:
            continue
        for value in metric.get("values") or []:
            ended = parse_dt(value.get("end_time"))
            if ended is None:
                continue
            samples.append(MetricRecord(metric_name=name, value=_parse_float(value.get("value")), date=ended.date()))
    return samples


# ── Instagram ────────────────────────────────────────────────

def _instagram_resource(item: dict, account_token: str) -> ResourceRecord:
    return ResourceRecord(
        native_id=str(item["id"]),
        display_name=item.get("username") or item.get("name") or str(item["id"]),
        credential=account_token,
        follower_count=_parse_int(item.get("followers_count")),
        picture_url=item.get("profile_picture_url"),
        bio=item.get("biography"),
        raw=item,
    )


def _instagram_content(item: dict) -> ContentRecord:
    return ContentRecord(
        native_id=str(item["id"]),
        body=item.get("caption"),
        media_type=item.get("media_type"),
        media_url=item.get("media_url"),
        permalink=item.get("permalink"),
        like_count=_parse_int(item.get("like_count")),
        comment_count=_parse_int(item.get("comments_count")),
        created_time=parse_dt(item.get("timestamp")),
        raw=item,
    )


# ── Twitter ──────────────────────────────────────────────────

def _twitter_resource(item: dict, account_token: str) -> ResourceRecord:
    return ResourceRecord(
        native_id=str(item["id"]),
        display_name=item.get("username") or item.get("name") or str(item["id"]),
        credential=account_token,
        follower_count=_parse_int(_dig(item, "public_metrics", "followers_count")),
        picture_url=item.get("profile_image_url"),
        bio=item.get("description"),
        raw=item,
    )


def _twitter_content(item: dict) -> ContentRecord:
    metrics = item.get("public_metrics") or {}
    return ContentRecord(
        native_id=str(item["id"]),
        body=item.get("text"),
        like_count=_parse_int(metrics.get("like_count")),
        comment_count=_parse_int(metrics.get("reply_count")),
        share_count=_parse_int(metrics.get("retweet_count")),
        created_time=parse_dt(item.get("created_at")),
        raw=item,
    )


def _twitter_cursor(payload: dict) -> str | None:
    return (payload.get("meta") or {}).get("next_token")


TWITTER_SNAPSHOT_METRICS = ("followers_count", "following_count", "tweet_count", "listed_count")


def _twitter_metrics(payload: dict) -> list[MetricRecord]:
    user = payload.get("data") or {}
    metrics = user.get("public_metrics") or {}
    today = datetime.now(timezone.utc).date()
    return [
        MetricRecord(metric_name=name, value=_parse_float(metrics.get(name)), date=today)
        for name in TWITTER_SNAPSHOT_METRICS
        if name in metrics
    ]


@dataclass(frozen=True)
class PlatformDescriptor:
    platform: Platform
    label: str
    base_url: str
    auth_mode: AuthMode
    publish_mode: PublishMode
    resources_path: str
    resources_params: dict
    resources_are_list: bool
    parse_resource: Callable[[dict, str], ResourceRecord]
    content_path: str
    content_params: dict
    page_size_param: str
    cursor_param: str
    parse_content: Callable[[dict], ContentRecord]
    next_cursor: Callable[[dict], str | None]
    metrics_path: str
    metrics_params: dict
    parse_metrics: Callable[[dict], list[MetricRecord]]
    metrics_take_range: bool = True
    metrics_optional: bool = False
    inherits_account_token: bool = False
    requires_media: bool = False
    max_body_length: int | None = None
    min_page_size: int = 1
    max_page_size: int = 100

    def url(self, path: str, **kwargs: str) -> str:
        return f"{self.base_url}{path.format(**kwargs)}"

    def clamp_page_size(self, limit: int) -> int:
        return max(self.min_page_size, min(self.max_page_size, limit))


def _build_descriptors() -> dict[Platform, PlatformDescriptor]:
    graph_version = get_settings().facebook_graph_version
    return {
        Platform.facebook: PlatformDescriptor(
            platform=Platform.facebook,
            label="Facebook",
            base_url=f"https://graph.facebook.com/{graph_version}",
            auth_mode=AuthMode.query,
            publish_mode=PublishMode.feed,
            resources_path="/me/accounts",
            resources_params={"fields": "id,name,picture,followers_count,access_token"},
            resources_are_list=True,
            parse_resource=_facebook_resource,
            content_path="/{parent}/posts",
            content_params={
                "fields": "id,message,created_time,type,link,picture,story,full_picture,"
                "permalink_url,shares,likes.summary(true),comments.summary(true)",
            },
            page_size_param="limit",
            cursor_param="after",
            parse_content=_facebook_content,
            next_cursor=_graph_cursor,
            metrics_path="/{parent}/insights",
            metrics_params={
                "metric": "page_fans,page_engaged_users,page_post_engagements,page_impressions,page_views",
                "period": "day",
            },
            parse_metrics=_graph_metrics,
        ),
        Platform.instagram: PlatformDescriptor(
            platform=Platform.instagram,
            label="Instagram",
            base_url="https://graph.instagram.com",
            auth_mode=AuthMode.query,
            publish_mode=PublishMode.container,
            resources_path="/me",
            resources_params={"fields": "id,username,name,biography,website,profile_picture_url,followers_count"},
            resources_are_list=False,
            parse_resource=_instagram_resource,
            content_path="/{parent}/media",
            content_params={"fields": "id,caption,media_type,media_url,permalink,timestamp,like_count,comments_count"},
            page_size_param="limit",
            cursor_param="after",
            parse_content=_instagram_content,
            next_cursor=_graph_cursor,
            metrics_path="/{parent}/insights",
            metrics_params={"metric": "impressions,reach,profile_views", "period": "day"},
            parse_metrics=_graph_metrics,
            metrics_optional=True,
            inherits_account_token=True,
            requires_media=True,
        ),
        Platform.twitter: PlatformDescriptor(
            platform=Platform.twitter,
            label="Twitter",
            base_url="https://api.twitter.com/2",
            auth_mode=AuthMode.bearer,
            publish_mode=PublishMode.tweet,
            resources_path="/users/me",
            resources_params={"user.fields": "id,name,username,description,profile_image_url,public_metrics"},
            resources_are_list=False,
            parse_resource=_twitter_resource,
            content_path="/users/{parent}/tweets",
            content_params={"tweet.fields": "created_at,public_metrics"},
            page_size_param="max_results",
            cursor_param="pagination_token",
            parse_content=_twitter_content,
            next_cursor=_twitter_cursor,
            metrics_path="/users/{parent}",
            metrics_params={"user.fields": "created_at,description,public_metrics,verified"},
            parse_metrics=_twitter_metrics,
            metrics_take_range=False,
            inherits_account_token=True,
            max_body_length=280,
            min_page_size=5,
        ),
    }


_DESCRIPTORS: dict[Platform, PlatformDescriptor] | None = None


def get_descriptor(platform: Platform | str) -> PlatformDescriptor:
    """Get the descriptor for a platform (case-insensitive)."""
    global _DESCRIPTORS
    if _DESCRIPTORS is None:
        _DESCRIPTORS = _build_descriptors()
    return _DESCRIPTORS[Platform(str(getattr(platform, "value", platform)).lower())]


def list_platforms() -> list[str]:
    return [p.value for p in Platform]
