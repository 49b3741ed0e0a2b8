"""Notification state shared by every worker process: cache group versions and notices."""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pitchflow.db.session import Base


class CacheGroupVersion(Base):
    """Invalidation counter for one query-cache group.

    Every process compares its cached entries against this value, so an
    invalidation in one worker (or a script) is seen by all of them.
    """

    __tablename__ = "cache_group_versions"

    group_name: Mapped[str] = mapped_column(String(64), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class NoticeRecord(Base):
    """A posted user-facing notice."""

    __tablename__ = "notices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    level: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    submission_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    redirect_to: Mapped[str | None] = mapped_column(String(255), nullable=True)
    redirect_after: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(UTC), nullable=False
    )
