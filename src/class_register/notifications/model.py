from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ..core.enums import NotificationType


@dataclass(frozen=True)
class Notification:
    """User-visible message persisted next to the data (read later from the UI)."""

    id: str
    type: NotificationType
    title: str
    message: str
    timestamp: int
    read: bool = False

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "timestamp": self.timestamp,
            "read": self.read,
        }

    @classmethod
    def from_record(cls, r: Mapping[str, Any]) -> "Notification":
        return cls(
            id=str(r["id"]),
            type=NotificationType(r["type"]),
            title=r["title"],
            message=r["message"],
            timestamp=int(r["timestamp"]),
            read=bool(r.get("read", False)),
        )
