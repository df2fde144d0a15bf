from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol

from ..core.exceptions import PersistenceError


class BackupSink(Protocol):
    """Where serialized snapshots are stored (directory, download, remote bucket...)."""

    def save(self, filename: str, payload: str) -> None:
        raise NotImplementedError

    def load(self, filename: str) -> str:
        raise NotImplementedError

    def delete(self, filename: str) -> bool:
        raise NotImplementedError


class DirectoryBackupSink(BackupSink):
    def __init__(self, directory: str | Path):
        self._dir = Path(directory)

    @property
    def directory(self) -> Path:
        return self._dir

    def _path(self, filename: str) -> Path:
        path = (self._dir / filename).resolve()
        if path.parent != self._dir.resolve():
            raise PersistenceError(f"Invalid backup filename: {filename!r}")
        return path

    def save(self, filename: str, payload: str) -> None:
        path = self._path(filename)
        tmp = path.with_suffix(".tmp")
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            raise PersistenceError(f"Cannot write backup {path}", exc) from exc

    def load(self, filename: str) -> str:
        path = self._path(filename)
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Cannot read backup {path}", exc) from exc

    def delete(self, filename: str) -> bool:
        path = self._path(filename)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise PersistenceError(f"Cannot delete backup {path}", exc) from exc
        return True
