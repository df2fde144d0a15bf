from __future__ import annotations

import functools
import logging
import threading
import uuid
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_ms
from ..core.enums import NotificationType
from .model import Notification
from .repository import NotificationRepository

logger = logging.getLogger(__name__)

# Depth of decorated calls on the current thread.
_calls = threading.local()


class NotificationService:
    """Use case: durable user-facing notifications (success and failure reports)."""

    def __init__(self, notifications: NotificationRepository, *, clock: Callable[[], int] = now_ms):
        self._notifications = notifications
        self._clock = clock

    def notify(self, type: NotificationType, title: str, message: str) -> Notification:
        return self._notifications.add(
            Notification(
                id=str(uuid.uuid4()),
                type=NotificationType(type),
                title=title,
                message=message,
                timestamp=self._clock(),
            )
        )

    def success(self, title: str, message: str) -> Notification:
        return self.notify(NotificationType.SUCCESS, title, message)

    def error(self, title: str, message: str) -> Optional[Notification]:
        """Record a failure; never raises, so it cannot mask the original error."""

        try:
            return self.notify(NotificationType.ERROR, title, message)
        except Exception:
            logger.exception("Could not record error notification %r", title)
            return None

    def list_notifications(self, *, unread_only: bool = False) -> Sequence[Notification]:
        return self._notifications.list_all(unread_only=unread_only)

    def mark_read(self, notification_id: str) -> bool:
        return self._notifications.mark_read(notification_id)


def records_failure(title: str):
    """Decorator for service methods: persist an error notification, then re-raise.

    The decorated object must expose its ``NotificationService`` as
    ``self._notifier`` (None disables recording). When decorated methods nest,
    only the outermost one records the failure.
    """

    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, *args, **kwargs):
            depth = getattr(_calls, "depth", 0)
            _calls.depth = depth + 1
            try:
                return method(self, *args, **kwargs)
            except Exception as exc:
                if depth == 0:
                    logger.warning("%s failed: %s", title, exc)
                    notifier = getattr(self, "_notifier", None)
                    if notifier is not None:
                        notifier.error(title, str(exc))
                raise
            finally:
                _calls.depth = depth

        return wrapper

    return decorator
