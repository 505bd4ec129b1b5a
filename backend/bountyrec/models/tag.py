"""Tag model — skills, languages and domains bounties and users are labeled with."""

from sqlalchemy import Column, Integer, String, DateTime, func

from bountyrec.models.base import Base


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    category = Column(String(50), nullable=False, index=True)  # language, domain, skill, framework, tool
    popularity = Column(Integer, default=0, nullable=False)  # bounties using this tag
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
