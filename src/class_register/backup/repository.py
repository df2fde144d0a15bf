from __future__ import annotations

from typing import Optional, Sequence

from ..storage.adapter import BACKUP_FILES, PersistenceAdapter
from .model import BackupFile


class BackupFileRepository:
    def __init__(self, adapter: PersistenceAdapter):
        self._adapter = adapter

    def add(self, backup: BackupFile) -> BackupFile:
        self._adapter.insert(BACKUP_FILES, backup.to_record())
        return backup

    def get_by_id(self, backup_id: str) -> Optional[BackupFile]:
        record = self._adapter.get(BACKUP_FILES, backup_id)
        return BackupFile.from_record(record) if record else None

    def list_oldest_first(self) -> Sequence[BackupFile]:
        backups = [BackupFile.from_record(r) for r in self._adapter.query(BACKUP_FILES)]
        backups.sort(key=lambda b: (b.created_at, b.filename))
        return backups

    def delete_by_id(self, backup_id: str) -> bool:
        return self._adapter.delete(BACKUP_FILES, backup_id)
