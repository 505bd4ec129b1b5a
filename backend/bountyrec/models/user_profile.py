"""User profile models — engagement/price profile, explicit skill tags, social edges."""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship

from bountyrec.models.base import Base, TimestampMixin, user_id_column


class UserProfile(TimestampMixin, Base):
    __tablename__ = "user_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = user_id_column(unique=True)

    # Engagement metrics
    total_interactions = Column(Integer, default=0, nullable=False)
    engagement_score = Column(Float, default=0.0, nullable=False)  # 0-100

    # Mean price of the last 10 viewed bounties
    avg_price_viewed = Column(Float, default=0.0, nullable=False)

    access_tier = Column(String(10), default="basic", nullable=False, index=True)
    platform_score = Column(Float, default=2.0, nullable=False)  # 0-10


class UserTag(Base):
    __tablename__ = "user_tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = user_id_column()
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True)
    score = Column(Integer, nullable=False)  # 1-5
    source = Column(String(30), default="manual", nullable=False)  # onboarding, manual, divergence_prompt
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    tag = relationship("Tag")

    __table_args__ = (
        UniqueConstraint("user_id", "tag_id", name="uq_user_tags_user_tag"),
    )


class Mutual(Base):
    __tablename__ = "mutuals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = user_id_column()
    mutual_id = Column(String(64), nullable=False, index=True)
    layer = Column(Integer, default=1, nullable=False)  # stored edges are direct (1)
    strength = Column(Float, default=1.0, nullable=False)  # 0-1
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
