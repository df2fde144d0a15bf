from __future__ import annotations

from typing import Sequence

from ..storage.adapter import NOTIFICATIONS, PersistenceAdapter
from .model import Notification


class NotificationRepository:
    def __init__(self, adapter: PersistenceAdapter):
        self._adapter = adapter

    def add(self, notification: Notification) -> Notification:
        self._adapter.insert(NOTIFICATIONS, notification.to_record())
        return notification

    def list_all(self, *, unread_only: bool = False) -> Sequence[Notification]:
        where = {"read": False} if unread_only else None
        items = [Notification.from_record(r) for r in self._adapter.query(NOTIFICATIONS, where=where)]
        items.sort(key=lambda n: n.timestamp, reverse=True)
        return items

    def mark_read(self, notification_id: str) -> bool:
        if self._adapter.get(NOTIFICATIONS, notification_id) is None:
            return False
        self._adapter.update(NOTIFICATIONS, notification_id, {"read": True})
        return True

    def count(self) -> int:
        return len(self._adapter.query(NOTIFICATIONS))

    def delete_read_older_than(self, cutoff: int) -> int:
        stale = self._adapter.query(
            NOTIFICATIONS,
            where={"read": True},
            predicate=lambda r: int(r["timestamp"]) < cutoff,
        )
        return sum(1 for r in stale if self._adapter.delete(NOTIFICATIONS, r["id"]))
