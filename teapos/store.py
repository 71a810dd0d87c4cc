"""SQLite store for categories, products and orders, with an in-process change feed.

Records are plain dicts in the backend's column names. Embedded order data
(items, payment, timeline) lives in JSON columns. Every committed mutation is
published to the handlers subscribed to that entity kind.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Mapping
from uuid import uuid4

from teapos.config import ASSET_DIR, DB_PATH
from teapos.errors import RecordNotFoundError, RecordValidationError, StoreError

logger = logging.getLogger(__name__)

# kind -> (table, id column, {column: codec})
_SCHEMAS: dict[str, tuple[str, str, dict[str, str]]] = {
    "category": (
        "category",
        "category_id",
        {"category_id": "text", "category_name": "text", "created_at": "text"},
    ),
    "product": (
        "product",
        "product_id",
        {
            "product_id": "text",
            "product_name": "text",
            "product_price": "int",
            "product_img": "text",
            "category_id": "text",
            "isActive": "bool",
            "created_at": "text",
        },
    ),
    "order": (
        "order",
        "order_id",
        {
            "order_id": "text",
            "table_number": "text",
            "items": "json",
            "total_price": "int",
            "sourcePayment": "json",
            "isCancelled": "bool",
            "status": "text",
            "time_line": "json",
            "created_at": "text",
        },
    ),
}

ENTITY_KINDS: tuple[str, ...] = tuple(_SCHEMAS)

Handler = Callable[["ChangeEvent"], None]


@dataclass(frozen=True)
class ChangeEvent:
    """One change-feed notification. ``new`` is None for deletes, ``old`` for inserts."""

    kind: str
    event_type: str
    new: dict[str, Any] | None = None
    old: dict[str, Any] | None = None

    @property
    def record(self) -> dict[str, Any]:
        record = self.new if self.new is not None else self.old
        return record or {}

    @property
    def record_id(self) -> str | None:
        _, id_column, _ = _SCHEMAS[self.kind]
        value = self.record.get(id_column)
        return str(value) if value is not None else None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _schema(kind: str) -> tuple[str, str, dict[str, str]]:
    try:
        return _SCHEMAS[kind]
    except KeyError:
        raise ValueError(f"Unknown entity kind: {kind!r}") from None


def _encode(codec: str, value: Any) -> Any:
    if value is None:
        return None
    if codec == "json":
        return json.dumps(value, ensure_ascii=False)
    if codec == "bool":
        return 1 if value else 0
    return value


def _decode(codec: str, value: Any) -> Any:
    if value is None:
        return None
    if codec == "json":
        return json.loads(value)
    if codec == "bool":
        return bool(value)
    return value


class LocalStore:
    """Store collaborator backed by one SQLite file and a local asset directory."""

    def __init__(
        self,
        db_path: str | Path = DB_PATH,
        asset_dir: str | Path = ASSET_DIR,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.db_path = Path(db_path)
        self.asset_dir = Path(asset_dir)
        self.clock = clock
        self._handlers: dict[str, tuple[str, Handler]] = {}
        self._handlers_lock = threading.Lock()

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def bootstrap_schema(self) -> None:
        """Create the store tables if they do not already exist."""
        try:
            with self._connect() as conn:
                conn.executescript(
                    """
                    CREATE TABLE IF NOT EXISTS category (
                        category_id TEXT PRIMARY KEY,
                        category_name TEXT NOT NULL,
                        created_at TEXT NOT NULL
                    );

                    CREATE TABLE IF NOT EXISTS product (
                        product_id TEXT PRIMARY KEY,
                        product_name TEXT NOT NULL,
                        product_price INTEGER NOT NULL,
                        product_img TEXT,
                        category_id TEXT,
                        isActive INTEGER NOT NULL DEFAULT 1,
                        created_at TEXT NOT NULL
                    );

                    CREATE TABLE IF NOT EXISTS "order" (
                        order_id TEXT PRIMARY KEY,
                        table_number TEXT NOT NULL,
                        items TEXT NOT NULL,
                        total_price INTEGER NOT NULL,
                        sourcePayment TEXT NOT NULL,
                        isCancelled INTEGER NOT NULL DEFAULT 0,
                        status TEXT NOT NULL DEFAULT 'pending',
                        time_line TEXT NOT NULL,
                        created_at TEXT NOT NULL
                    );

                    CREATE INDEX IF NOT EXISTS idx_product_category_id
                        ON product(category_id);

                    CREATE INDEX IF NOT EXISTS idx_order_created_at
                        ON "order"(created_at);
                    """
                )
        except sqlite3.Error as exc:
            raise StoreError(f"Could not bootstrap schema at {self.db_path}: {exc}") from exc

    def _row_to_record(self, kind: str, row: sqlite3.Row) -> dict[str, Any]:
        _, _, columns = _schema(kind)
        return {column: _decode(codec, row[column]) for column, codec in columns.items()}

    def _check_columns(self, kind: str, record: Mapping[str, Any]) -> None:
        _, _, columns = _schema(kind)
        unknown = sorted(set(record) - set(columns))
        if unknown:
            raise RecordValidationError(f"Unknown {kind} fields: {', '.join(unknown)}")

    def _select_one(self, conn: sqlite3.Connection, kind: str, record_id: str) -> sqlite3.Row | None:
        table, id_column, _ = _schema(kind)
        return conn.execute(f'SELECT * FROM "{table}" WHERE {id_column} = ?', (record_id,)).fetchone()

    def fetch_all(self, kind: str) -> list[dict[str, Any]]:
        """Return every record of ``kind``, oldest first."""
        table, _, _ = _schema(kind)
        try:
            with self._connect() as conn:
                rows = conn.execute(f'SELECT * FROM "{table}" ORDER BY created_at ASC, rowid ASC').fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Could not fetch {kind} records: {exc}") from exc
        return [self._row_to_record(kind, row) for row in rows]

    def get(self, kind: str, record_id: str) -> dict[str, Any]:
        try:
            with self._connect() as conn:
                row = self._select_one(conn, kind, record_id)
        except sqlite3.Error as exc:
            raise StoreError(f"Could not fetch {kind} {record_id}: {exc}") from exc
        if row is None:
            raise RecordNotFoundError(kind, record_id)
        return self._row_to_record(kind, row)

    def insert(self, kind: str, record: Mapping[str, Any]) -> dict[str, Any]:
        """Insert ``record``, assigning its id and ``created_at``, and return the stored copy."""
        table, id_column, columns = _schema(kind)
        self._check_columns(kind, record)
        values = dict(record)
        values[id_column] = str(uuid4())
        values["created_at"] = self.clock().isoformat()

        names = [column for column in columns if column in values]
        placeholders = ", ".join("?" for _ in names)
        params = [_encode(columns[column], values[column]) for column in names]
        try:
            with self._connect() as conn:
                with conn:
                    conn.execute(
                        f'INSERT INTO "{table}" ({", ".join(names)}) VALUES ({placeholders})',
                        params,
                    )
                    row = self._select_one(conn, kind, values[id_column])
        except sqlite3.Error as exc:
            raise StoreError(f"Could not insert {kind}: {exc}") from exc

        created = self._row_to_record(kind, row)
        logger.info("store insert kind=%s id=%s", kind, created[id_column])
        self._publish(ChangeEvent(kind=kind, event_type="insert", new=created))
        return created

    def update(self, kind: str, record_id: str, partial: Mapping[str, Any]) -> dict[str, Any]:
        """Apply ``partial`` to one record and return the updated copy."""
        table, id_column, columns = _schema(kind)
        self._check_columns(kind, partial)
        changes = {column: value for column, value in partial.items() if column not in (id_column, "created_at")}
        try:
            with self._connect() as conn:
                with conn:
                    before = self._select_one(conn, kind, record_id)
                    if before is None:
                        raise RecordNotFoundError(kind, record_id)
                    if changes:
                        assignments = ", ".join(f"{column} = ?" for column in changes)
                        params = [_encode(columns[column], value) for column, value in changes.items()]
                        conn.execute(
                            f'UPDATE "{table}" SET {assignments} WHERE {id_column} = ?',
                            (*params, record_id),
                        )
                    after = self._select_one(conn, kind, record_id)
        except sqlite3.Error as exc:
            raise StoreError(f"Could not update {kind} {record_id}: {exc}") from exc

        old = self._row_to_record(kind, before)
        updated = self._row_to_record(kind, after)
        logger.info("store update kind=%s id=%s fields=%s", kind, record_id, ",".join(changes))
        self._publish(ChangeEvent(kind=kind, event_type="update", new=updated, old=old))
        return updated

    def delete(self, kind: str, record_id: str) -> bool:
        """Delete one record. Returns False when it did not exist."""
        table, id_column, _ = _schema(kind)
        try:
            with self._connect() as conn:
                with conn:
                    before = self._select_one(conn, kind, record_id)
                    if before is None:
                        return False
                    conn.execute(f'DELETE FROM "{table}" WHERE {id_column} = ?', (record_id,))
        except sqlite3.Error as exc:
            raise StoreError(f"Could not delete {kind} {record_id}: {exc}") from exc

        logger.info("store delete kind=%s id=%s", kind, record_id)
        self._publish(ChangeEvent(kind=kind, event_type="delete", old=self._row_to_record(kind, before)))
        return True

    def subscribe(self, kind: str, handler: Handler) -> str:
        """Register ``handler`` for changes to ``kind`` and return a subscription handle."""
        _schema(kind)
        handle = uuid4().hex
        with self._handlers_lock:
            self._handlers[handle] = (kind, handler)
        logger.debug("store subscribe kind=%s handle=%s", kind, handle)
        return handle

    def unsubscribe(self, handle: str | None) -> None:
        """Release a subscription. Unknown or repeated handles are ignored."""
        if handle is None:
            return
        with self._handlers_lock:
            self._handlers.pop(handle, None)

    def _publish(self, event: ChangeEvent) -> None:
        with self._handlers_lock:
            handlers = [handler for kind, handler in self._handlers.values() if kind == event.kind]
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                # One failing subscriber must not block the others or the write.
                logger.exception("change handler failed kind=%s event=%s", event.kind, event.event_type)

    def upload_asset(self, data: bytes | str | Path, path_hint: str) -> str:
        """Store bytes under ``path_hint`` in the asset directory and return a file URL."""
        root = self.asset_dir.resolve()
        target = (root / path_hint).resolve()
        if not target.is_relative_to(root):
            raise ValueError(f"Asset path escapes the asset directory: {path_hint!r}")

        try:
            payload = data if isinstance(data, bytes) else Path(data).read_bytes()
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(payload)
        except OSError as exc:
            raise StoreError(f"Could not store asset {path_hint}: {exc}") from exc

        logger.info("store upload path=%s bytes=%d", path_hint, len(payload))
        return target.as_uri()
