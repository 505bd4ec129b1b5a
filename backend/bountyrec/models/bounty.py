"""Bounty models — bounties, their tag weights, views and interactions."""

from sqlalchemy import Column, Integer, String, Float, Text, DateTime, ForeignKey, Index, func
from sqlalchemy.orm import relationship

from bountyrec.models.base import Base, TimestampMixin, UUIDMixin, user_id_column


class Bounty(TimestampMixin, Base):
    __tablename__ = "bounties"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Integer, nullable=False, index=True)  # USD
    tier = Column(String(10), nullable=False, index=True)  # basic, middle, high
    status = Column(String(10), nullable=False, default="open", index=True)  # open, claimed, completed, expired

    # Engagement metrics
    views = Column(Integer, default=0, nullable=False)
    submissions = Column(Integer, default=0, nullable=False)
    likes = Column(Integer, default=0, nullable=False)
    engagement_score = Column(Float, default=0.0, nullable=False)  # 0-100

    # Ownership
    creator_id = Column(String(64))
    claimed_by_id = Column(String(64))

    expires_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))

    # Relationships
    tags = relationship("BountyTag", back_populates="bounty", cascade="all, delete-orphan")


class BountyTag(Base):
    __tablename__ = "bounty_tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bounty_id = Column(Integer, ForeignKey("bounties.id", ondelete="CASCADE"), nullable=False, index=True)
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True)
    weight = Column(Float, default=1.0, nullable=False)  # how strongly the tag characterizes the bounty (0-1)

    # Relationships
    bounty = relationship("Bounty", back_populates="tags")
    tag = relationship("Tag")


class BountyView(UUIDMixin, Base):
    __tablename__ = "bounty_views"

    user_id = user_id_column()
    bounty_id = Column(Integer, ForeignKey("bounties.id", ondelete="CASCADE"), nullable=False, index=True)
    viewed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    duration = Column(Integer)  # seconds spent viewing


class BountyInteraction(UUIDMixin, Base):
    __tablename__ = "bounty_interactions"

    user_id = user_id_column()
    bounty_id = Column(Integer, ForeignKey("bounties.id", ondelete="CASCADE"), nullable=False)
    interaction_type = Column(String(20), nullable=False)  # view, like, submit, claim, complete
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_bounty_interactions_user_type", "user_id", "interaction_type"),
        Index("idx_bounty_interactions_bounty", "bounty_id"),
    )
