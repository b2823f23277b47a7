from __future__ import annotations

from datetime import datetime
from enum import Enum

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship as sa_relationship

from .db import Base


def relationship(*args, **kwargs):
    """Wrap SQLAlchemy relationship to forbid lazy loading by default."""
    kwargs.setdefault("lazy", "raise")
    return sa_relationship(*args, **kwargs)


class Platform(str, Enum):
    facebook = "facebook"
    instagram = "instagram"
    twitter = "twitter"


class ContentStatus(str, Enum):
    pending = "pending"
    published = "published"


class LinkedAccount(Base):
    __tablename__ = "linked_accounts"
    __table_args__ = (sa.UniqueConstraint("owner_id", "platform", name="uq_linked_accounts_owner_platform"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(sa.Integer(), nullable=False, index=True)
    platform: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    access_token: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    refresh_token: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )


class MirroredResource(Base):
    __tablename__ = "mirrored_resources"
    __table_args__ = (
        sa.UniqueConstraint("owner_id", "platform", "native_id", name="uq_mirrored_resources_owner_platform_native"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(sa.Integer(), nullable=False, index=True)
    platform: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    native_id: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    credential: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    picture_url: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    bio: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    follower_count: Mapped[int] = mapped_column(sa.Integer(), nullable=False, server_default="0")
    is_selected: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, server_default=sa.false())
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )

    content_items: Mapped[list["MirroredContentItem"]] = relationship(
        back_populates="resource", cascade="all, delete-orphan", passive_deletes=True
    )
    metric_samples: Mapped[list["MetricSample"]] = relationship(
        back_populates="resource", cascade="all, delete-orphan", passive_deletes=True
    )


class MirroredContentItem(Base):
    __tablename__ = "mirrored_content_items"
    __table_args__ = (
        sa.UniqueConstraint("resource_id", "native_id", name="uq_mirrored_content_items_resource_native"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(sa.Integer(), nullable=False, index=True)
    platform: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    resource_id: Mapped[int] = mapped_column(
        sa.ForeignKey("mirrored_resources.id", ondelete="CASCADE"), nullable=False, index=True
    )
    native_id: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    body: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    media_type: Mapped[str | None] = mapped_column(sa.String(50), nullable=True)
    media_url: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    permalink: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    like_count: Mapped[int] = mapped_column(sa.Integer(), nullable=False, server_default="0")
    comment_count: Mapped[int] = mapped_column(sa.Integer(), nullable=False, server_default="0")
    share_count: Mapped[int] = mapped_column(sa.Integer(), nullable=False, server_default="0")
    created_time: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    raw: Mapped[dict | None] = mapped_column(sa.JSON(), nullable=True)
    fetched_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )

    resource: Mapped[MirroredResource] = relationship(back_populates="content_items")


class MetricSample(Base):
    __tablename__ = "metric_samples"
    __table_args__ = (
        sa.UniqueConstraint("resource_id", "metric_name", "date", name="uq_metric_samples_resource_metric_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(sa.Integer(), nullable=False, index=True)
    platform: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    resource_id: Mapped[int] = mapped_column(
        sa.ForeignKey("mirrored_resources.id", ondelete="CASCADE"), nullable=False, index=True
    )
    metric_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    value: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    date: Mapped[datetime] = mapped_column(sa.Date(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )

    resource: Mapped[MirroredResource] = relationship(back_populates="metric_samples")


class ScheduledContentItem(Base):
    __tablename__ = "scheduled_content_items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(sa.Integer(), nullable=False, index=True)
    platform: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    parent_resource_id: Mapped[int | None] = mapped_column(
        sa.ForeignKey("mirrored_resources.id", ondelete="SET NULL"), nullable=True
    )
    body: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    media_url: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    scheduled_time: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        sa.String(32), nullable=False, server_default=ContentStatus.pending.value, index=True
    )
    remote_post_id: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    error: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
