from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Index, UniqueConstraint
from sqlalchemy.sql import func

from horrorhub.database import Base


class Platform(Base):
    __tablename__ = "platforms"

    id = Column(Integer, primary_key=True)
    platform_key = Column(String(50), unique=True, nullable=False)  # "netflix", "amazon_prime_video"
    platform_name = Column(String(100), nullable=False)
    watchmode_id = Column(Integer, unique=True, nullable=False)  # Watchmode source_id
    image_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('idx_platforms_watchmode_id', 'watchmode_id'),
    )

    def __repr__(self):
        return f"<Platform {self.platform_key} (Watchmode: {self.watchmode_id})>"


class ContentPlatform(Base):
    __tablename__ = "content_platforms"

    id = Column(Integer, primary_key=True)
    content_id = Column(Integer, ForeignKey("content.id", ondelete="CASCADE"), nullable=False)
    platform_id = Column(Integer, ForeignKey("platforms.id", ondelete="CASCADE"), nullable=False)

    web_url = Column(String(500), nullable=True)
    # Catalogs disagree on season/episode counts, so they are tracked per link
    seasons = Column(Integer, nullable=True)
    episodes = Column(Integer, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('content_id', 'platform_id', name='uq_content_platform'),
        Index('idx_content_platforms_content_id', 'content_id'),
        Index('idx_content_platforms_platform_id', 'platform_id'),
    )
