# src/notifications/inbox.py — v1
"""In-memory notification store with read/unread state."""

from __future__ import annotations

import itertools
import logging

from tourflow.core.errors import UnknownNotificationError
from tourflow.notifications.models import Notification

logger = logging.getLogger(__name__)


class NotificationInbox:
    """Persisted-notification view for one user.

    Read flags change only through ``mark_read`` and ``mark_all_read``;
    notifications leave only through ``clear_all``.
    """

    def __init__(self) -> None:
        self._items: dict[str, Notification] = {}
        self._order: dict[str, int] = {}
        self._counter = itertools.count()

    def add(self, notification: Notification) -> Notification:
        self._items[notification.id] = notification
        self._order[notification.id] = next(self._counter)
        return notification

    def get(self, notification_id: str) -> Notification | None:
        return self._items.get(notification_id)

    def list(self, unread_only: bool = False) -> list[Notification]:
        """Notifications newest first; ties go to the later insertion."""
        items = [n for n in self._items.values() if not (unread_only and n.is_read)]
        return sorted(
            items, key=lambda n: (n.created_at, self._order[n.id]), reverse=True
        )

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._items.values() if not n.is_read)

    def mark_read(self, notification_id: str) -> Notification:
        """Mark one notification read. Idempotent.

        Raises:
            UnknownNotificationError: If the id is not in the inbox.
        """
        notification = self._items.get(notification_id)
        if notification is None:
            raise UnknownNotificationError(notification_id)
        notification.is_read = True
        return notification

    def mark_all_read(self) -> int:
        """Mark every notification read; returns how many changed."""
        changed = 0
        for notification in self._items.values():
            if not notification.is_read:
                notification.is_read = True
                changed += 1
        return changed

    def clear_all(self) -> int:
        """Delete every notification; returns how many were removed."""
        removed = len(self._items)
        self._items.clear()
        self._order.clear()
        if removed:
            logger.info("Cleared %d notification(s)", removed)
        return removed

    def __len__(self) -> int:
        return len(self._items)
