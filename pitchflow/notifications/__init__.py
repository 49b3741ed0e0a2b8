"""Status notification fan-out: cache invalidation, events, notices."""

from pitchflow.notifications.cache import (
    COMPANIES_GROUP,
    PUBLIC_SUBMISSIONS_GROUP,
    SUBMISSIONS_GROUP,
    GroupVersions,
    QueryCache,
)
from pitchflow.notifications.events import EventBus, StatusEvent
from pitchflow.notifications.fanout import (
    NotificationFanout,
    StatusTransition,
    get_event_bus,
    get_notice_board,
    get_notification_fanout,
    get_query_cache,
    reset_notifications,
)
from pitchflow.notifications.notices import Notice, NoticeBoard, NoticeFeed
from pitchflow.notifications.shared import DatabaseGroupVersions, StoredNoticeBoard

__all__ = [
    "COMPANIES_GROUP",
    "PUBLIC_SUBMISSIONS_GROUP",
    "SUBMISSIONS_GROUP",
    "DatabaseGroupVersions",
    "EventBus",
    "GroupVersions",
    "Notice",
    "NoticeBoard",
    "NoticeFeed",
    "NotificationFanout",
    "QueryCache",
    "StatusEvent",
    "StatusTransition",
    "StoredNoticeBoard",
    "get_event_bus",
    "get_notice_board",
    "get_notification_fanout",
    "get_query_cache",
    "reset_notifications",
]
