from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, Float, ForeignKey, JSON, Index
from sqlalchemy.sql import func

from horrorhub.database import Base


CONTENT_TYPES = ("movie", "series")


class Content(Base):
    __tablename__ = "content"

    id = Column(Integer, primary_key=True)
    title = Column(Text, nullable=False)
    year = Column(Integer, nullable=False)

    # 0-10 scale, independently nullable
    average_rating = Column(Float, nullable=True)
    critics_rating = Column(Float, nullable=True)
    users_rating = Column(Float, nullable=True)

    description = Column(Text, nullable=False, default="")
    poster_url = Column(Text, nullable=False)

    primary_subgenre_id = Column(
        Integer,
        ForeignKey("subgenres.id", ondelete="SET NULL", onupdate="CASCADE"),
        nullable=True,
    )
    genres = Column(JSON, default=list)  # Watchmode genre ids

    type = Column(String(10), nullable=False, default="movie")
    seasons = Column(Integer, nullable=True)  # series only
    episodes = Column(Integer, nullable=True)  # series only

    # External identifiers used for dedup
    watchmode_id = Column(Integer, nullable=True, index=True)
    imdb_id = Column(String(20), nullable=True, index=True)
    tmdb_id = Column(Integer, nullable=True)

    original_title = Column(Text, nullable=True)
    release_date = Column(String(20), nullable=True)
    us_rating = Column(String(20), nullable=True)
    original_language = Column(String(10), nullable=True)
    runtime_minutes = Column(Integer, nullable=True)
    end_year = Column(Integer, nullable=True)
    source_release_date = Column(String(20), nullable=True)  # date it reached streaming

    watchmode_data = Column(JSON, nullable=True)  # raw payload snapshot

    hidden = Column(Boolean, default=False)  # admin: never show publicly
    active = Column(Boolean, nullable=False, default=False)  # admin: published

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('idx_content_year', 'year'),
        Index('idx_content_visibility', 'hidden', 'active'),
    )

    def __repr__(self):
        return f"<Content {self.title} ({self.year}) [{self.type}]>"
