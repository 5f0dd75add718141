import json
import logging
import threading

import duckdb
from sqlglot import exp

from quackpull.cursor import Cursor
from quackpull.duckdb_source import quote_identifier
from quackpull.schema import Schema, String, Timestamp

logger = logging.getLogger(__name__)


class CursorStateSchema(Schema):
    cursor_key = String(primary_key=True)
    state = String()
    updated_at = Timestamp(default=exp.CurrentTimestamp())


class DuckDBCursorStore:
    """Persists cursors by key in a DuckDB table.

    Saving is an upsert; deleting a key is the administrative reset.
    """

    def __init__(self, connection: duckdb.DuckDBPyConnection, table: str = "quackpull_cursors"):
        self._conn = connection
        self._table = quote_identifier(table)
        self._lock = threading.Lock()
        with self._lock:
            self._conn.execute(CursorStateSchema.create_table_ddl(table, if_not_exists=True))

    def load(self, key: str) -> Cursor | None:
        with self._lock:
            row = self._conn.execute(f"SELECT state FROM {self._table} WHERE cursor_key = $1", [key]).fetchone()
        if row is None:
            logger.debug("No cursor stored for %s", key)
            return None
        cursor = Cursor.from_dict(json.loads(row[0]))
        logger.debug("Loaded cursor for %s: start=%s row=%d", key, cursor.start, cursor.row)
        return cursor

    def save(self, key: str, cursor: Cursor) -> None:
        state = json.dumps(cursor.to_dict())
        with self._lock:
            self._conn.execute(
                f"INSERT INTO {self._table} (cursor_key, state) VALUES ($1, $2) "
                "ON CONFLICT (cursor_key) DO UPDATE SET state = EXCLUDED.state, updated_at = now()",
                [key, state],
            )
        logger.info("Saved cursor for %s: start=%s row=%d", key, cursor.start, cursor.row)

    def delete(self, key: str) -> bool:
        with self._lock:
            existed = self._conn.execute(f"SELECT 1 FROM {self._table} WHERE cursor_key = $1", [key]).fetchone() is not None
            self._conn.execute(f"DELETE FROM {self._table} WHERE cursor_key = $1", [key])
        if existed:
            logger.info("Reset cursor for %s", key)
        return existed

    def keys(self) -> list[str]:
        with self._lock:
            rows = self._conn.execute(f"SELECT cursor_key FROM {self._table} ORDER BY cursor_key").fetchall()
        return [row[0] for row in rows]
