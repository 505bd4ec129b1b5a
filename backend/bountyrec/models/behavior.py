"""Implicit profile models — per-tag behavior signals, price habits, blend config."""

from sqlalchemy import Column, Integer, Float, Boolean, DateTime, ForeignKey, UniqueConstraint, func

from bountyrec.models.base import Base, user_id_column


class UserBehaviorTag(Base):
    __tablename__ = "user_behavior_tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = user_id_column()
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True)

    # Event counters and their normalized scores (0-10)
    view_count = Column(Integer, default=0, nullable=False)
    view_score = Column(Float, default=0.0, nullable=False)
    like_count = Column(Integer, default=0, nullable=False)
    like_score = Column(Float, default=0.0, nullable=False)
    submit_count = Column(Integer, default=0, nullable=False)
    submit_score = Column(Float, default=0.0, nullable=False)
    complete_count = Column(Integer, default=0, nullable=False)
    complete_score = Column(Float, default=0.0, nullable=False)

    implicit_score = Column(Float, default=0.0, nullable=False, index=True)  # 0-10

    # Divergence against the explicit profile
    last_explicit_score = Column(Float)
    divergence_detected = Column(Boolean, default=False, nullable=False, index=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "tag_id", name="uq_user_behavior_tags_user_tag"),
    )


class UserBehaviorPrice(Base):
    __tablename__ = "user_behavior_prices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = user_id_column(unique=True)

    # Exponential moving averages (alpha = 0.1)
    avg_price_viewed = Column(Float, default=0.0, nullable=False)
    avg_price_liked = Column(Float, default=0.0, nullable=False)
    avg_price_submitted = Column(Float, default=0.0, nullable=False)
    avg_price_completed = Column(Float, default=0.0, nullable=False)

    implicit_price_min = Column(Float)
    implicit_price_max = Column(Float)

    last_explicit_min = Column(Float)
    last_explicit_max = Column(Float)
    divergence_detected = Column(Boolean, default=False, nullable=False)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class UserBlendConfig(Base):
    __tablename__ = "user_blend_configs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = user_id_column(unique=True)

    # Always sum to 1.0; shift toward implicit as interactions accumulate
    explicit_weight = Column(Float, default=0.8, nullable=False)
    implicit_weight = Column(Float, default=0.2, nullable=False)
    total_interactions = Column(Integer, default=0, nullable=False)

    last_divergence_prompt_at = Column(DateTime(timezone=True))
    divergence_prompt_count = Column(Integer, default=0, nullable=False)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class UserOnboarding(Base):
    """Stated price preferences from onboarding (the explicit price range)."""

    __tablename__ = "user_onboardings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = user_id_column(unique=True)
    price_range_min = Column(Integer, default=100)
    price_range_max = Column(Integer, default=5000)
    completed_at = Column(DateTime(timezone=True))
