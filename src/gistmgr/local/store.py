"""LocalStore: durable document collections backed by an embedded sqlite file."""

from __future__ import annotations

import json
import logging
import os
import re
import sqlite3
from typing import Any, Iterable, Optional

from gistmgr.errors import StorageError
from gistmgr.models.records import COLLECTIONS

logger = logging.getLogger(__name__)

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class LocalStore:
    """
    Minimal document store: one JSON document per row, one table per collection.

    Queries are conjunctions of field-equality tests given as a dict
    (`{"raw_url": url, "draft": False}`); an empty dict matches every record.

    Every failure (closed store, unknown collection, sqlite error, corrupt
    row) is raised as StorageError.
    """

    def __init__(self, path: str, collections: Iterable[str] = COLLECTIONS) -> None:
        self.path = path
        self._collections: tuple[str, ...] = tuple(collections)
        self._conn: Optional[sqlite3.Connection] = None

    @classmethod
    def open(cls, path: str, collections: Iterable[str] = COLLECTIONS) -> LocalStore:
        """Open (creating if needed) the store file and its collections."""
        store = cls(path, collections)
        store.connect()
        return store

    def connect(self) -> None:
        if self._conn is not None:
            return

        parent_dir = os.path.dirname(self.path)
        try:
            if parent_dir:
                os.makedirs(parent_dir, exist_ok=True)
            conn = sqlite3.connect(self.path, check_same_thread=False)
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(
                "Failed to open local store",
                details={"path": self.path},
                cause=exc,
            ) from exc

        try:
            with conn:
                for name in self._collections:
                    _validate_name(name)
                    conn.execute(
                        f'CREATE TABLE IF NOT EXISTS "{name}" ('
                        "row_id INTEGER PRIMARY KEY AUTOINCREMENT, "
                        "doc TEXT NOT NULL)"
                    )
        except sqlite3.Error as exc:
            conn.close()
            raise StorageError(
                "Failed to initialize collections",
                details={"path": self.path},
                cause=exc,
            ) from exc

        self._conn = conn
        logger.debug("Opened local store at %s", self.path)

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def close(self) -> None:
        if self._conn is None:
            return
        try:
            self._conn.close()
        except sqlite3.Error as exc:
            raise StorageError("Failed to close local store", cause=exc) from exc
        finally:
            self._conn = None
        logger.debug("Closed local store at %s", self.path)

    # ----------------------------
    # Public API
    # ----------------------------
    def insert(self, collection: str, record: dict[str, Any]) -> None:
        conn = self._require_conn(collection)
        doc = _dump(record)
        try:
            with conn:
                conn.execute(f'INSERT INTO "{collection}" (doc) VALUES (?)', (doc,))
        except sqlite3.Error as exc:
            raise _storage_error("insert", collection, exc) from exc

    def find_first(
        self,
        collection: str,
        where: Optional[dict[str, Any]] = None,
    ) -> Optional[dict[str, Any]]:
        rows = self._select(collection, where or {}, limit=1)
        if not rows:
            return None
        return rows[0][1]

    def find_all(
        self,
        collection: str,
        where: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        return [doc for _, doc in self._select(collection, where or {})]

    def update(
        self,
        collection: str,
        where: dict[str, Any],
        fields: dict[str, Any],
    ) -> int:
        """Merge `fields` into every matching record. Returns the match count."""
        conn = self._require_conn(collection)
        for name in fields:
            _validate_name(name)

        rows = self._select(collection, where)
        if not rows:
            return 0

        try:
            with conn:
                for row_id, doc in rows:
                    doc.update(fields)
                    conn.execute(
                        f'UPDATE "{collection}" SET doc = ? WHERE row_id = ?',
                        (_dump(doc), row_id),
                    )
        except sqlite3.Error as exc:
            raise _storage_error("update", collection, exc) from exc
        return len(rows)

    def delete(self, collection: str, where: dict[str, Any]) -> int:
        """Remove every matching record. Returns the number removed."""
        conn = self._require_conn(collection)
        clause, params = _where_clause(where)
        try:
            with conn:
                cur = conn.execute(f'DELETE FROM "{collection}"{clause}', params)
        except sqlite3.Error as exc:
            raise _storage_error("delete", collection, exc) from exc
        return cur.rowcount

    # ----------------------------
    # Internals
    # ----------------------------
    def _require_conn(self, collection: str) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("Local store is closed", details={"path": self.path})
        if collection not in self._collections:
            raise StorageError("Unknown collection", details={"collection": collection})
        return self._conn

    def _select(
        self,
        collection: str,
        where: dict[str, Any],
        *,
        limit: Optional[int] = None,
    ) -> list[tuple[int, dict[str, Any]]]:
        conn = self._require_conn(collection)
        clause, params = _where_clause(where)
        sql = f'SELECT row_id, doc FROM "{collection}"{clause} ORDER BY row_id'
        if limit is not None:
            sql += f" LIMIT {int(limit)}"
        try:
            rows = conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise _storage_error("query", collection, exc) from exc
        return [(row_id, _load(doc, collection)) for row_id, doc in rows]


def _validate_name(name: str) -> None:
    if not isinstance(name, str) or not _FIELD_RE.match(name):
        raise StorageError("Invalid field or collection name", details={"name": name})


def _where_clause(where: dict[str, Any]) -> tuple[str, list[Any]]:
    if not where:
        return "", []
    parts: list[str] = []
    params: list[Any] = []
    for name, value in where.items():
        _validate_name(name)
        expr = f"json_extract(doc, '$.{name}')"
        zero = _zero_value(value)
        if zero is not None:
            # A missing field reads as its zero value, like the record decoders.
            expr = f"COALESCE({expr}, ?)"
            params.append(zero)
        # IS matches NULL for None and behaves like = otherwise.
        parts.append(f"{expr} IS ?")
        params.append(value)
    return " WHERE " + " AND ".join(parts), params


def _zero_value(value: Any) -> Any:
    if isinstance(value, (bool, int, float)):
        return 0
    if isinstance(value, str):
        return ""
    return None


def _dump(record: dict[str, Any]) -> str:
    try:
        return json.dumps(record, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise StorageError("Record is not serializable", cause=exc) from exc


def _load(doc: str, collection: str) -> dict[str, Any]:
    try:
        data = json.loads(doc)
    except ValueError as exc:
        raise StorageError(
            "Corrupt record in local store",
            details={"collection": collection},
            cause=exc,
        ) from exc
    if not isinstance(data, dict):
        raise StorageError("Corrupt record in local store", details={"collection": collection})
    return data


def _storage_error(op: str, collection: str, exc: BaseException) -> StorageError:
    return StorageError(
        f"Local store {op} failed",
        details={"collection": collection},
        cause=exc,
    )
