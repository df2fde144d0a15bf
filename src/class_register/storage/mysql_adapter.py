from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Optional

from ..core.exceptions import NotFoundError, PersistenceError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .adapter import (
    ATTENDANCE_ENTRIES,
    BACKUP_FILES,
    HISTORY_LOGS,
    NOTIFICATIONS,
    SETTINGS,
    STUDENTS,
    PersistenceAdapter,
    Predicate,
    Record,
    unknown_collection,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableSpec:
    """Maps a collection's camelCase record fields onto table columns."""

    table: str
    columns: dict[str, str]
    json_fields: frozenset[str] = frozenset()
    bool_fields: frozenset[str] = frozenset()
    # Fields without a column are folded into this JSON column.
    extra_column: Optional[str] = None
    column_to_field: dict[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "column_to_field", {c: f for f, c in self.columns.items()})

    def column(self, name: str) -> str:
        try:
            return self.columns[name]
        except KeyError:
            raise PersistenceError(f"{self.table} has no column for field {name!r}")

    def to_row(self, record: Mapping[str, Any]) -> dict[str, Any]:
        row: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for name, value in record.items():
            if name in self.columns:
                if name in self.json_fields and value is not None:
                    value = json.dumps(value, ensure_ascii=False)
                elif name in self.bool_fields:
                    value = 1 if value else 0
                row[self.columns[name]] = value
            elif self.extra_column:
                extra[name] = value
            else:
                raise PersistenceError(f"{self.table} has no column for field {name!r}")
        if self.extra_column:
            row[self.extra_column] = json.dumps(extra, ensure_ascii=False)
        return row

    def to_record(self, row: Mapping[str, Any]) -> Record:
        record: Record = {}
        for column, value in row.items():
            if column == self.extra_column:
                record.update(json.loads(value) if value else {})
                continue
            name = self.column_to_field.get(column, column)
            if name in self.json_fields and isinstance(value, (str, bytes)):
                value = json.loads(value)
            elif name in self.bool_fields:
                value = bool(value)
            record[name] = value
        return record


TABLES: dict[str, TableSpec] = {
    STUDENTS: TableSpec(
        table="students",
        columns={
            "id": "id",
            "number": "number",
            "name": "name",
            "className": "class_name",
            "grade": "grade",
            "active": "active",
            "createdAt": "created_at",
            "updatedAt": "updated_at",
        },
        bool_fields=frozenset({"active"}),
    ),
    ATTENDANCE_ENTRIES: TableSpec(
        table="attendance_entries",
        columns={
            "id": "id",
            "studentId": "student_id",
            "date": "date",
            "period": "period",
            "status": "status",
            "reason": "reason",
            "timestamp": "timestamp",
            "lastModified": "last_modified",
        },
    ),
    HISTORY_LOGS: TableSpec(
        table="history_logs",
        columns={
            "id": "id",
            "action": "action",
            "entityType": "entity_type",
            "entityId": "entity_id",
            "changes": "changes",
            "timestamp": "timestamp",
        },
        json_fields=frozenset({"changes"}),
    ),
    BACKUP_FILES: TableSpec(
        table="backup_files",
        columns={
            "id": "id",
            "filename": "filename",
            "createdAt": "created_at",
            "size": "size",
            "checksum": "checksum",
        },
    ),
    NOTIFICATIONS: TableSpec(
        table="notifications",
        columns={
            "id": "id",
            "type": "type",
            "title": "title",
            "message": "message",
            "timestamp": "timestamp",
            "read": "is_read",
        },
        bool_fields=frozenset({"read"}),
    ),
    SETTINGS: TableSpec(table="settings", columns={"id": "id"}, extra_column="data"),
}


def build_where(spec: TableSpec, where: Optional[Mapping[str, Any]]) -> tuple[str, tuple]:
    if not where:
        return "", ()

    clauses: list[str] = []
    params: list[object] = []
    for name, value in where.items():
        column = spec.column(name)
        if value is None:
            clauses.append(f"`{column}` IS NULL")
        else:
            clauses.append(f"`{column}`=%s")
            params.append(1 if value is True else 0 if value is False else value)
    return " WHERE " + " AND ".join(clauses), tuple(params)


class MySQLAdapter(PersistenceAdapter):
    """Relational engine mirroring the document collections one table each."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory
        self._local = threading.local()

    def _spec(self, collection: str) -> TableSpec:
        try:
            return TABLES[collection]
        except KeyError:
            raise unknown_collection(collection)

    def _cursor(self):
        return db_cursor(self._conn_factory, conn=getattr(self._local, "conn", None))

    def get(self, collection: str, record_id: str) -> Optional[Record]:
        spec = self._spec(collection)
        with self._cursor() as (_, cur):
            cur.execute(f"SELECT * FROM `{spec.table}` WHERE `id`=%s", (str(record_id),))
            row = fetchone(cur)
            return spec.to_record(row) if row else None

    def query(
        self,
        collection: str,
        where: Optional[Mapping[str, Any]] = None,
        predicate: Optional[Predicate] = None,
    ) -> list[Record]:
        spec = self._spec(collection)
        clause, params = build_where(spec, where)
        with self._cursor() as (_, cur):
            cur.execute(f"SELECT * FROM `{spec.table}`{clause}", params)
            records = [spec.to_record(r) for r in fetchall(cur)]
        if predicate:
            records = [r for r in records if predicate(r)]
        return records

    def insert(self, collection: str, record: Mapping[str, Any]) -> Record:
        spec = self._spec(collection)
        if not record.get("id"):
            raise PersistenceError(f"Cannot insert into {collection} without an id")

        row = spec.to_row(record)
        columns = ", ".join(f"`{c}`" for c in row)
        placeholders = ", ".join(["%s"] * len(row))
        with self._cursor() as (_, cur):
            cur.execute(f"INSERT INTO `{spec.table}` ({columns}) VALUES ({placeholders})", tuple(row.values()))
        return dict(record)

    def update(self, collection: str, record_id: str, fields: Mapping[str, Any]) -> Record:
        spec = self._spec(collection)
        current = self.get(collection, record_id)
        if current is None:
            raise NotFoundError(f"No record {record_id!r} in {collection}")

        merged = {**current, **{k: v for k, v in fields.items() if k != "id"}}
        row = spec.to_row(merged)
        row.pop("id", None)
        assignments = ", ".join(f"`{c}`=%s" for c in row)
        with self._cursor() as (_, cur):
            cur.execute(
                f"UPDATE `{spec.table}` SET {assignments} WHERE `id`=%s",
                (*row.values(), str(record_id)),
            )
        return merged

    def delete(self, collection: str, record_id: str) -> bool:
        spec = self._spec(collection)
        with self._cursor() as (_, cur):
            cur.execute(f"DELETE FROM `{spec.table}` WHERE `id`=%s", (str(record_id),))
            return cur.rowcount > 0

    @contextmanager
    def transaction(self, *collections: str) -> Iterator[None]:
        if getattr(self._local, "conn", None) is not None:
            yield
            return

        conn = self._conn_factory.connect()
        self._local.conn = conn
        try:
            yield
            conn.commit()
        except BaseException:
            conn.rollback()
            logger.warning("Rolled back MySQL transaction on %s", ", ".join(collections) or "all tables")
            raise
        finally:
            self._local.conn = None
            conn.close()

    def flush(self) -> None:
        # Every statement is committed by its own connection or transaction.
        return None
