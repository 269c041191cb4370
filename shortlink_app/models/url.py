from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean
from sqlalchemy.sql import func
from shortlink_app.database.connection import Base


class ShortURL(Base):
    """
    Durable short URL record.

    The unique constraint on short_code is the source of truth for code
    ownership: the availability check in URLService is only a fast path,
    two concurrent creates racing past it still collide here.

    view_count is written by the view aggregator only. Redirects count into
    the cache, and the aggregator folds those counters in periodically.
    """
    __tablename__ = "short_urls"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    original_url = Column(Text, nullable=False)
    # unique=True also creates the index used by redirect lookups
    short_code = Column(String(16), unique=True, nullable=False, index=True)
    is_custom = Column(Boolean, default=False, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    owner_id = Column(Integer, nullable=True, index=True)  # None for anonymous links
    view_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<ShortURL(id={self.id}, short_code='{self.short_code}', view_count={self.view_count})>"
