from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from ..core.enums import EntityType, HistoryAction


@dataclass(frozen=True)
class HistoryLog:
    """Append-only audit record of one mutation."""

    id: str
    action: HistoryAction
    entity_type: EntityType
    entity_id: str
    timestamp: int
    changes: dict = field(default_factory=dict)

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "action": self.action.value,
            "entityType": self.entity_type.value,
            "entityId": self.entity_id,
            "changes": self.changes,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_record(cls, r: Mapping[str, Any]) -> "HistoryLog":
        return cls(
            id=str(r["id"]),
            action=HistoryAction(r["action"]),
            entity_type=EntityType(r["entityType"]),
            entity_id=str(r["entityId"]),
            changes=dict(r.get("changes") or {}),
            timestamp=int(r["timestamp"]),
        )
