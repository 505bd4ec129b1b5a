"""Recommendation log — append-only audit trail of primary/secondary picks."""

from sqlalchemy import Column, Integer, Float, Text, DateTime, ForeignKey, Index, func

from bountyrec.models.base import Base, UUIDMixin, user_id_column


class RecommendationLog(UUIDMixin, Base):
    __tablename__ = "recommendation_logs"

    user_id = user_id_column()
    primary_bounty_id = Column(Integer, ForeignKey("bounties.id", ondelete="SET NULL"), index=True)
    secondary_bounty_id = Column(Integer, ForeignKey("bounties.id", ondelete="SET NULL"), index=True)

    primary_score = Column(Float)
    secondary_score = Column(Float)

    # JSON: {relevance, social, price}
    reason_primary = Column(Text)
    reason_secondary = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_recommendation_logs_time", "created_at"),
    )
