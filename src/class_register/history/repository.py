from __future__ import annotations

import uuid
from typing import Any, Callable, Mapping, Optional, Sequence

from ..common.datetime_utils import now_ms
from ..core.enums import EntityType, HistoryAction
from ..storage.adapter import HISTORY_LOGS, PersistenceAdapter
from .model import HistoryLog


class HistoryRepository:
    def __init__(self, adapter: PersistenceAdapter, *, clock: Callable[[], int] = now_ms):
        self._adapter = adapter
        self._clock = clock

    def append(
        self,
        *,
        action: HistoryAction,
        entity_type: EntityType,
        entity_id: str,
        changes: Optional[Mapping[str, Any]] = None,
        timestamp: Optional[int] = None,
    ) -> HistoryLog:
        log = HistoryLog(
            id=str(uuid.uuid4()),
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            changes=dict(changes or {}),
            timestamp=int(timestamp if timestamp is not None else self._clock()),
        )
        self._adapter.insert(HISTORY_LOGS, log.to_record())
        return log

    def list_for_entity(self, entity_id: str) -> Sequence[HistoryLog]:
        rows = self._adapter.query(HISTORY_LOGS, where={"entityId": str(entity_id)})
        return sorted((HistoryLog.from_record(r) for r in rows), key=lambda h: h.timestamp)

    def list_recent(self, limit: int = 100) -> Sequence[HistoryLog]:
        logs = [HistoryLog.from_record(r) for r in self._adapter.query(HISTORY_LOGS)]
        logs.sort(key=lambda h: h.timestamp, reverse=True)
        return logs[: int(limit)]

    def count(self) -> int:
        return len(self._adapter.query(HISTORY_LOGS))

    def delete_older_than(self, cutoff: int) -> int:
        stale = self._adapter.query(HISTORY_LOGS, predicate=lambda r: int(r["timestamp"]) < cutoff)
        deleted = 0
        for r in stale:
            if self._adapter.delete(HISTORY_LOGS, r["id"]):
                deleted += 1
        return deleted
