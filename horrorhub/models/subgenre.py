from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, ForeignKey, Index
from sqlalchemy.sql import func

from horrorhub.database import Base


class Subgenre(Base):
    __tablename__ = "subgenres"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)
    slug = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)

    is_active = Column(Boolean, default=True)
    sort_order = Column(Integer, default=0)  # admin-controlled display order

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('idx_subgenres_active', 'is_active'),
        Index('idx_subgenres_sort', 'sort_order'),
    )

    def __repr__(self):
        return f"<Subgenre {self.slug} (#{self.sort_order})>"


class ContentSubgenre(Base):
    """Many-to-many join; the single source of truth for a title's subgenre tags"""
    __tablename__ = "content_subgenres"

    content_id = Column(
        Integer,
        ForeignKey("content.id", ondelete="CASCADE", onupdate="CASCADE"),
        primary_key=True,
    )
    subgenre_id = Column(
        Integer,
        ForeignKey("subgenres.id", ondelete="CASCADE", onupdate="CASCADE"),
        primary_key=True,
    )

    __table_args__ = (
        Index('idx_cs_subgenre_id', 'subgenre_id'),
    )
