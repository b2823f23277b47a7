from __future__ import annotations

import datetime as dt
from datetime import datetime

from pydantic import BaseModel, field_validator, model_validator


class ResourceRead(BaseModel):
    id: int
    platform: str
    native_id: str
    display_name: str
    picture_url: str | None = None
    bio: str | None = None
    follower_count: int
    is_selected: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class SelectResourceRequest(BaseModel):
    resource_id: str

    @field_validator("resource_id", mode="before")
    @classmethod
    def normalize_resource_id(cls, value):
        if value is None:
            return value
        return str(value).strip()

    @field_validator("resource_id")
    @classmethod
    def require_resource_id(cls, value: str) -> str:
        if not value:
            raise ValueError("resource_id required")
        return value


class SelectResourceResponse(BaseModel):
    message: str
    resource: ResourceRead


class ContentItemRead(BaseModel):
    id: int
    platform: str
    native_id: str
    body: str | None = None
    media_type: str | None = None
    media_url: str | None = None
    permalink: str | None = None
    like_count: int
    comment_count: int
    share_count: int
    created_time: datetime | None = None
    fetched_at: datetime | None = None

    class Config:
        from_attributes = True


class ContentPage(BaseModel):
    resource_id: str
    items: list[ContentItemRead]
    next_cursor: str | None = None


class MetricSampleRead(BaseModel):
    metric_name: str
    value: float | None = None
    date: dt.date

    class Config:
        from_attributes = True


class PublishRequest(BaseModel):
    post_id: int | None = None
    body: str | None = None
    media_url: str | None = None

    @model_validator(mode="after")
    def require_target(self) -> "PublishRequest":
        if self.post_id is None and self.body is None and self.media_url is None:
            raise ValueError("post_id or body/media_url required")
        return self


class PublishResponse(BaseModel):
    message: str
    remote_post_id: str
    post_id: int | None = None
    published_at: datetime | None = None
