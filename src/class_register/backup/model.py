from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..core.exceptions import IntegrityWarning


@dataclass(frozen=True)
class BackupFile:
    """Metadata of one stored snapshot (the payload itself lives in a BackupSink)."""

    id: str
    filename: str
    created_at: int
    size: int
    checksum: str

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "filename": self.filename,
            "createdAt": self.created_at,
            "size": self.size,
            "checksum": self.checksum,
        }

    @classmethod
    def from_record(cls, r: Mapping[str, Any]) -> "BackupFile":
        return cls(
            id=str(r["id"]),
            filename=r["filename"],
            created_at=int(r["createdAt"]),
            size=int(r["size"]),
            checksum=r["checksum"],
        )


@dataclass(frozen=True)
class Snapshot:
    metadata: BackupFile
    payload: str


@dataclass(frozen=True)
class IntegrityReport:
    warnings: list[IntegrityWarning] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.warnings

    @property
    def issues(self) -> list[str]:
        return [str(w) for w in self.warnings]


@dataclass(frozen=True)
class RestoreStats:
    students: int
    attendance_entries: int
    settings: int
    skipped: int = 0


@dataclass(frozen=True)
class RestoreResult:
    success: bool
    message: str
    stats: Optional[RestoreStats] = None
    issues: list[str] = field(default_factory=list)
