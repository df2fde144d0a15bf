from __future__ import annotations

from typing import Any, Callable, ContextManager, Mapping, Optional, Protocol

STUDENTS = "students"
ATTENDANCE_ENTRIES = "attendanceEntries"
HISTORY_LOGS = "historyLogs"
BACKUP_FILES = "backupFiles"
NOTIFICATIONS = "notifications"
SETTINGS = "settings"

COLLECTIONS = (STUDENTS, ATTENDANCE_ENTRIES, HISTORY_LOGS, BACKUP_FILES, NOTIFICATIONS, SETTINGS)

Record = dict
Predicate = Callable[[Mapping[str, Any]], bool]


class PersistenceAdapter(Protocol):
    """Storage contract consumed by the services.

    Records are plain dicts keyed by camelCase field names and identified by
    their ``id`` field. Every engine (local document store, MySQL) implements
    this interface so business logic is written once.
    """

    def get(self, collection: str, record_id: str) -> Optional[Record]:
        raise NotImplementedError

    def query(
        self,
        collection: str,
        where: Optional[Mapping[str, Any]] = None,
        predicate: Optional[Predicate] = None,
    ) -> list[Record]:
        """Equality lookup on ``where`` fields, then an optional Python filter."""

        raise NotImplementedError

    def insert(self, collection: str, record: Mapping[str, Any]) -> Record:
        raise NotImplementedError

    def update(self, collection: str, record_id: str, fields: Mapping[str, Any]) -> Record:
        """Merge ``fields`` into an existing record. Raises NotFoundError if missing."""

        raise NotImplementedError

    def delete(self, collection: str, record_id: str) -> bool:
        raise NotImplementedError

    def transaction(self, *collections: str) -> ContextManager[None]:
        """All operations issued inside the block are applied atomically."""

        raise NotImplementedError

    def flush(self) -> None:
        """Make pending state durable (autosave hook)."""

        raise NotImplementedError


def unknown_collection(collection: str) -> ValueError:
    return ValueError(f"Unknown collection: {collection!r}")
