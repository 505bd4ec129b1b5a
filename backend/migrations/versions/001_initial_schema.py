"""Initial schema — tags, bounties, user profiles, social edges, behavior tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _user_id() -> sa.Column:
    return sa.Column("user_id", sa.String(64), nullable=False, index=True)


def upgrade() -> None:
    # Tags
    op.create_table(
        "tags",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), unique=True, nullable=False, index=True),
        sa.Column("category", sa.String(50), nullable=False, index=True),
        sa.Column("popularity", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Bounties
    op.create_table(
        "bounties",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("price", sa.Integer, nullable=False, index=True),
        sa.Column("tier", sa.String(10), nullable=False, index=True),
        sa.Column("status", sa.String(10), nullable=False, server_default="open", index=True),
        sa.Column("views", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("submissions", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("likes", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("engagement_score", sa.Float, nullable=False, server_default=sa.text("0")),
        sa.Column("creator_id", sa.String(64)),
        sa.Column("claimed_by_id", sa.String(64)),
        sa.Column("expires_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("tier IN ('basic', 'middle', 'high')", name="ck_bounties_tier"),
        sa.CheckConstraint("status IN ('open', 'claimed', 'completed', 'expired')", name="ck_bounties_status"),
    )

    op.create_table(
        "bounty_tags",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("bounty_id", sa.Integer, sa.ForeignKey("bounties.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("tag_id", sa.Integer, sa.ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("weight", sa.Float, nullable=False, server_default=sa.text("1.0")),
    )

    op.create_table(
        "bounty_views",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_id(),
        sa.Column("bounty_id", sa.Integer, sa.ForeignKey("bounties.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("viewed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
        sa.Column("duration", sa.Integer),
    )

    op.create_table(
        "bounty_interactions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_id(),
        sa.Column("bounty_id", sa.Integer, sa.ForeignKey("bounties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("interaction_type", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_bounty_interactions_user_type", "bounty_interactions", ["user_id", "interaction_type"])
    op.create_index("idx_bounty_interactions_bounty", "bounty_interactions", ["bounty_id"])

    # User profiles and explicit skills
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False, unique=True, index=True),
        sa.Column("total_interactions", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("engagement_score", sa.Float, nullable=False, server_default=sa.text("0")),
        sa.Column("avg_price_viewed", sa.Float, nullable=False, server_default=sa.text("0")),
        sa.Column("access_tier", sa.String(10), nullable=False, server_default="basic", index=True),
        sa.Column("platform_score", sa.Float, nullable=False, server_default=sa.text("2.0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "user_tags",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _user_id(),
        sa.Column("tag_id", sa.Integer, sa.ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("score", sa.Integer, nullable=False),
        sa.Column("source", sa.String(30), nullable=False, server_default="manual"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("user_id", "tag_id", name="uq_user_tags_user_tag"),
        sa.CheckConstraint("score BETWEEN 1 AND 5", name="ck_user_tags_score"),
    )

    # Social edges (direct connections only; deeper layers are derived)
    op.create_table(
        "mutuals",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _user_id(),
        sa.Column("mutual_id", sa.String(64), nullable=False, index=True),
        sa.Column("layer", sa.Integer, nullable=False, server_default=sa.text("1")),
        sa.Column("strength", sa.Float, nullable=False, server_default=sa.text("1.0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "recommendation_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _user_id(),
        sa.Column("primary_bounty_id", sa.Integer, sa.ForeignKey("bounties.id", ondelete="SET NULL"), index=True),
        sa.Column("secondary_bounty_id", sa.Integer, sa.ForeignKey("bounties.id", ondelete="SET NULL"), index=True),
        sa.Column("primary_score", sa.Float),
        sa.Column("secondary_score", sa.Float),
        sa.Column("reason_primary", sa.Text),
        sa.Column("reason_secondary", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_recommendation_logs_time", "recommendation_logs", ["created_at"])

    # Implicit profile
    op.create_table(
        "user_behavior_tags",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _user_id(),
        sa.Column("tag_id", sa.Integer, sa.ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("view_count", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("view_score", sa.Float, nullable=False, server_default=sa.text("0")),
        sa.Column("like_count", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("like_score", sa.Float, nullable=False, server_default=sa.text("0")),
        sa.Column("submit_count", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("submit_score", sa.Float, nullable=False, server_default=sa.text("0")),
        sa.Column("complete_count", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("complete_score", sa.Float, nullable=False, server_default=sa.text("0")),
        sa.Column("implicit_score", sa.Float, nullable=False, server_default=sa.text("0"), index=True),
        sa.Column("last_explicit_score", sa.Float),
        sa.Column("divergence_detected", sa.Boolean, nullable=False, server_default=sa.text("false"), index=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("user_id", "tag_id", name="uq_user_behavior_tags_user_tag"),
    )

    op.create_table(
        "user_behavior_prices",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False, unique=True, index=True),
        sa.Column("avg_price_viewed", sa.Float, nullable=False, server_default=sa.text("0")),
        sa.Column("avg_price_liked", sa.Float, nullable=False, server_default=sa.text("0")),
        sa.Column("avg_price_submitted", sa.Float, nullable=False, server_default=sa.text("0")),
        sa.Column("avg_price_completed", sa.Float, nullable=False, server_default=sa.text("0")),
        sa.Column("implicit_price_min", sa.Float),
        sa.Column("implicit_price_max", sa.Float),
        sa.Column("last_explicit_min", sa.Float),
        sa.Column("last_explicit_max", sa.Float),
        sa.Column("divergence_detected", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "user_blend_configs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False, unique=True, index=True),
        sa.Column("explicit_weight", sa.Float, nullable=False, server_default=sa.text("0.8")),
        sa.Column("implicit_weight", sa.Float, nullable=False, server_default=sa.text("0.2")),
        sa.Column("total_interactions", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("last_divergence_prompt_at", sa.DateTime(timezone=True)),
        sa.Column("divergence_prompt_count", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "user_onboardings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False, unique=True, index=True),
        sa.Column("price_range_min", sa.Integer, server_default=sa.text("100")),
        sa.Column("price_range_max", sa.Integer, server_default=sa.text("5000")),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
    )


def downgrade() -> None:
    op.drop_table("user_onboardings")
    op.drop_table("user_blend_configs")
    op.drop_table("user_behavior_prices")
    op.drop_table("user_behavior_tags")
    op.drop_table("recommendation_logs")
    op.drop_table("mutuals")
    op.drop_table("user_tags")
    op.drop_table("user_profiles")
    op.drop_table("bounty_interactions")
    op.drop_table("bounty_views")
    op.drop_table("bounty_tags")
    op.drop_table("bounties")
    op.drop_table("tags")
