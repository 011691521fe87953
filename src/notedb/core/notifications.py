"""Change notification fan-out for NoteDB."""

import logging
import threading
from typing import Callable, Iterable, List, Optional

from notedb.models.notification import Notification, NotificationKind

logger = logging.getLogger(__name__)

Subscriber = Callable[[Notification], None]


class ChangeNotifier:
    """Delivers notifications to subscribers after a mutation commits.

    A failing subscriber is logged and skipped; it never undoes the
    mutation or starves the other subscribers.
    """

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback and return a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: Subscriber) -> None:
        """Remove a previously registered callback."""
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def publish(self, notifications: Iterable[Notification]) -> None:
        """Send each notification to every subscriber, in order."""
        with self._lock:
            subscribers = list(self._subscribers)

        for notification in notifications:
            logger.debug(f"Publishing {notification.kind} notification for table {notification.table_oid}")
            for callback in subscribers:
                try:
                    callback(notification)
                except Exception as e:
                    logger.error(f"Notification subscriber {callback!r} failed: {e}")


def table_list_changed() -> Notification:
    """The set or names of tables changed."""
    return Notification(kind=NotificationKind.TABLE_LIST)


def table_data_changed(table_oid: Optional[int], deep: bool) -> Notification:
    """Rows or columns of a table changed; ``deep`` when the schema changed."""
    return Notification(kind=NotificationKind.TABLE_DATA, table_oid=table_oid, deep=deep)


def table_row_changed(table_oid: int, row_oid: int) -> Notification:
    """A single row changed."""
    return Notification(kind=NotificationKind.TABLE_ROW, table_oid=table_oid, row_oid=row_oid)
