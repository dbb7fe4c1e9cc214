from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, String, Text, UniqueConstraint

from app.platform.db.base import BaseModel


class FrontierEntry(BaseModel):
    """
    One discovered URL of a crawl domain.

    Unique per (domain, url): rediscovering a URL is a no-op. ``visited``
    flips to True exactly once, written by the task that analyzed the page,
    whether the analysis succeeded or failed.
    """
    __tablename__ = "frontier_entries"

    domain = Column(String(255), nullable=False)
    url = Column(String(2048), nullable=False)
    parent_url = Column(String(2048), nullable=True)

    visited = Column(Boolean, default=False, nullable=False)
    failed = Column(Boolean, default=False, nullable=False)

    # Session id that claimed the entry for analysis
    claimed_by = Column(String(64), nullable=True)
    error_message = Column(Text, nullable=True)

    # Microsecond insertion time; claims follow discovery order
    discovered_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("domain", "url"),
        Index("ix_frontier_entries_domain_visited", "domain", "visited"),
    )
