"""
Database-backed notification state.

Gunicorn runs several worker processes and bulk reruns run from a script, so
the process that records a transition is rarely the one serving the next list
request or notice poll. Cache group versions and notices therefore live in
the database; each process keeps only its local cache entries.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pitchflow.db.session import SessionLocal
from pitchflow.models.notification import CacheGroupVersion, NoticeRecord
from pitchflow.notifications.notices import Notice, NoticeFeed

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


class DatabaseGroupVersions:
    """Cache group versions stored in ``cache_group_versions``."""

    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._session_factory = session_factory or SessionLocal

    def current(self, group: str) -> int:
        with self._session_factory() as db:
            version = db.scalar(
                select(CacheGroupVersion.version).where(CacheGroupVersion.group_name == group)
            )
        return version or 0

    def bump(self, *groups: str) -> None:
        for group in groups:
            with self._session_factory() as db:
                if self._increment(db, group):
                    db.commit()
                    continue
                db.add(CacheGroupVersion(group_name=group, version=1))
                try:
                    db.commit()
                except IntegrityError:
                    db.rollback()
                    logger.debug("cache_group_version_raced: group=%s", group)
                    self._increment(db, group)
                    db.commit()

    @staticmethod
    def _increment(db: Session, group: str) -> bool:
        result = db.execute(
            update(CacheGroupVersion)
            .where(CacheGroupVersion.group_name == group)
            .values(version=CacheGroupVersion.version + 1)
        )
        return result.rowcount > 0


class StoredNoticeBoard(NoticeFeed):
    """Notice feed kept in the ``notices`` table, trimmed to the newest ``maxlen`` rows."""

    def __init__(self, session_factory: SessionFactory | None = None, maxlen: int = 1000) -> None:
        self._session_factory = session_factory or SessionLocal
        self.maxlen = maxlen

    def post(self, notice: Notice) -> Notice:
        with self._session_factory() as db:
            record = NoticeRecord(
                level=notice.level,
                title=notice.title,
                message=notice.message,
                submission_id=notice.submission_id,
                redirect_to=notice.redirect_to,
                redirect_after=notice.redirect_after,
                created_at=notice.created_at,
            )
            db.add(record)
            db.flush()
            notice.id = record.id
            db.execute(delete(NoticeRecord).where(NoticeRecord.id <= record.id - self.maxlen))
            db.commit()
        return notice

    def recent(self, limit: int = 50, submission_id: str | None = None) -> list[Notice]:
        stmt = select(NoticeRecord).order_by(NoticeRecord.id.desc()).limit(limit)
        if submission_id is not None:
            stmt = stmt.where(NoticeRecord.submission_id == submission_id)
        with self._session_factory() as db:
            return [_to_notice(record) for record in db.scalars(stmt)]

    def clear(self) -> None:
        with self._session_factory() as db:
            db.execute(delete(NoticeRecord))
            db.commit()

    def count(self) -> int:
        with self._session_factory() as db:
            return db.scalar(select(func.count()).select_from(NoticeRecord)) or 0


def _to_notice(record: NoticeRecord) -> Notice:
    created_at = record.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    return Notice(
        level=record.level,
        title=record.title,
        message=record.message,
        submission_id=record.submission_id,
        redirect_to=record.redirect_to,
        redirect_after=record.redirect_after,
        id=record.id,
        created_at=created_at,
    )
