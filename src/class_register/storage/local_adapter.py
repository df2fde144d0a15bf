from __future__ import annotations

import copy
import json
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional

from ..core.exceptions import NotFoundError, PersistenceError
from .adapter import COLLECTIONS, PersistenceAdapter, Predicate, Record, unknown_collection

logger = logging.getLogger(__name__)


class LocalAdapter(PersistenceAdapter):
    """In-process document store, optionally persisted to one JSON file.

    Every call takes a re-entrant lock, so the backup scheduler thread and the
    host thread never observe a half-applied transaction. Transactions snapshot
    the touched collections and restore them if the block raises.
    """

    def __init__(self, path: Optional[str | Path] = None):
        self._path = Path(path) if path else None
        self._lock = threading.RLock()
        self._data: dict[str, dict[str, Record]] = {name: {} for name in COLLECTIONS}
        self._tx_depth = 0
        self._dirty = False
        if self._path and self._path.exists():
            self._load()

    def _load(self) -> None:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Cannot read data file {self._path}", exc) from exc

        for name in COLLECTIONS:
            records = raw.get(name) or []
            self._data[name] = {str(r["id"]): dict(r) for r in records if "id" in r}
        logger.info("Loaded local store from %s", self._path)

    def _table(self, collection: str) -> dict[str, Record]:
        try:
            return self._data[collection]
        except KeyError:
            raise unknown_collection(collection)

    def get(self, collection: str, record_id: str) -> Optional[Record]:
        with self._lock:
            record = self._table(collection).get(str(record_id))
            return copy.deepcopy(record) if record is not None else None

    def query(
        self,
        collection: str,
        where: Optional[Mapping[str, Any]] = None,
        predicate: Optional[Predicate] = None,
    ) -> list[Record]:
        with self._lock:
            out: list[Record] = []
            for record in self._table(collection).values():
                if where and any(record.get(k) != v for k, v in where.items()):
                    continue
                if predicate and not predicate(record):
                    continue
                out.append(copy.deepcopy(record))
            return out

    def insert(self, collection: str, record: Mapping[str, Any]) -> Record:
        record_id = record.get("id")
        if not record_id:
            raise PersistenceError(f"Cannot insert into {collection} without an id")

        with self._lock:
            table = self._table(collection)
            if str(record_id) in table:
                raise PersistenceError(f"Duplicate id {record_id!r} in {collection}")
            table[str(record_id)] = copy.deepcopy(dict(record))
            self._dirty = True
            return copy.deepcopy(table[str(record_id)])

    def update(self, collection: str, record_id: str, fields: Mapping[str, Any]) -> Record:
        with self._lock:
            table = self._table(collection)
            current = table.get(str(record_id))
            if current is None:
                raise NotFoundError(f"No record {record_id!r} in {collection}")
            changes = {k: copy.deepcopy(v) for k, v in fields.items() if k != "id"}
            current.update(changes)
            self._dirty = True
            return copy.deepcopy(current)

    def delete(self, collection: str, record_id: str) -> bool:
        with self._lock:
            removed = self._table(collection).pop(str(record_id), None)
            if removed is not None:
                self._dirty = True
            return removed is not None

    @contextmanager
    def transaction(self, *collections: str) -> Iterator[None]:
        names = collections or COLLECTIONS
        with self._lock:
            if self._tx_depth:
                # Nested block: the outermost transaction owns rollback.
                self._tx_depth += 1
                try:
                    yield
                finally:
                    self._tx_depth -= 1
                return

            backup = {name: copy.deepcopy(self._table(name)) for name in names}
            was_dirty = self._dirty
            self._tx_depth = 1
            try:
                yield
            except BaseException:
                self._data.update(backup)
                self._dirty = was_dirty
                logger.warning("Rolled back local transaction on %s", ", ".join(names))
                raise
            finally:
                self._tx_depth = 0

    def flush(self) -> None:
        if not self._path:
            return

        with self._lock:
            if not self._dirty:
                return
            payload = {name: list(table.values()) for name, table in self._data.items()}
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
                os.replace(tmp_path, self._path)
            except OSError as exc:
                raise PersistenceError(f"Cannot write data file {self._path}", exc) from exc
            self._dirty = False
            logger.debug("Flushed local store to %s", self._path)
