"""create linked accounts, mirror tables and scheduled content

Revision ID: 0001_create_social_sync_schema
Revises:
Create Date: 2026-10-19 10:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_create_social_sync_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "linked_accounts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("platform", sa.String(32), nullable=False),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("owner_id", "platform", name="uq_linked_accounts_owner_platform"),
    )
    op.create_index("ix_linked_accounts_owner_id", "linked_accounts", ["owner_id"])

    op.create_table(
        "mirrored_resources",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("platform", sa.String(32), nullable=False),
        sa.Column("native_id", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("credential", sa.Text(), nullable=False),
        sa.Column("picture_url", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("follower_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("is_selected", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("owner_id", "platform", "native_id", name="uq_mirrored_resources_owner_platform_native"),
    )
    op.create_index("ix_mirrored_resources_owner_id", "mirrored_resources", ["owner_id"])

    op.create_table(
        "mirrored_content_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("platform", sa.String(32), nullable=False),
        sa.Column(
            "resource_id", sa.Integer(), sa.ForeignKey("mirrored_resources.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("native_id", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("media_type", sa.String(50), nullable=True),
        sa.Column("media_url", sa.Text(), nullable=True),
        sa.Column("permalink", sa.Text(), nullable=True),
        sa.Column("like_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("comment_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("share_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("raw", sa.JSON(), nullable=True),
        sa.Column("fetched_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("resource_id", "native_id", name="uq_mirrored_content_items_resource_native"),
    )
    op.create_index("ix_mirrored_content_items_owner_id", "mirrored_content_items", ["owner_id"])
    op.create_index("ix_mirrored_content_items_resource_id", "mirrored_content_items", ["resource_id"])

    op.create_table(
        "metric_samples",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("platform", sa.String(32), nullable=False),
        sa.Column(
            "resource_id", sa.Integer(), sa.ForeignKey("mirrored_resources.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("metric_name", sa.String(100), nullable=False),
        sa.Column("value", sa.Float(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("resource_id", "metric_name", "date", name="uq_metric_samples_resource_metric_date"),
    )
    op.create_index("ix_metric_samples_owner_id", "metric_samples", ["owner_id"])
    op.create_index("ix_metric_samples_resource_id", "metric_samples", ["resource_id"])

    op.create_table(
        "scheduled_content_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("platform", sa.String(32), nullable=False),
        sa.Column(
            "parent_resource_id",
            sa.Integer(),
            sa.ForeignKey("mirrored_resources.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("media_url", sa.Text(), nullable=True),
        sa.Column("scheduled_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(32), server_default="pending", nullable=False),
        sa.Column("remote_post_id", sa.String(255), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_scheduled_content_items_owner_id", "scheduled_content_items", ["owner_id"])
    op.create_index("ix_scheduled_content_items_status", "scheduled_content_items", ["status"])


def downgrade() -> None:
    op.drop_index("ix_scheduled_content_items_status", table_name="scheduled_content_items")
    op.drop_index("ix_scheduled_content_items_owner_id", table_name="scheduled_content_items")
    op.drop_table("scheduled_content_items")
    op.drop_index("ix_metric_samples_resource_id", table_name="metric_samples")
    op.drop_index("ix_metric_samples_owner_id", table_name="metric_samples")
    op.drop_table("metric_samples")
    op.drop_index("ix_mirrored_content_items_resource_id", table_name="mirrored_content_items")
    op.drop_index("ix_mirrored_content_items_owner_id", table_name="mirrored_content_items")
    op.drop_table("mirrored_content_items")
    op.drop_index("ix_mirrored_resources_owner_id", table_name="mirrored_resources")
    op.drop_table("mirrored_resources")
    op.drop_index("ix_linked_accounts_owner_id", table_name="linked_accounts")
    op.drop_table("linked_accounts")
