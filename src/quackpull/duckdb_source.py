import logging
import threading
import typing

import duckdb
import pyarrow as pa
from sqlglot import exp

from quackpull.exceptions import ConfigurationError, TransientQueryError
from quackpull.schema import Schema
from quackpull.source import RangeQuery

logger = logging.getLogger(__name__)


def quote_identifier(name: str) -> str:
    return exp.to_identifier(name, quoted=True).sql(dialect="duckdb")


def to_record_batch(result: pa.Table) -> pa.RecordBatch:
    return pa.RecordBatch.from_pydict(
        {col: result.column(col).combine_chunks() for col in result.column_names},
        schema=result.schema,
    )


class DuckDBSource:
    """Range queries over a single DuckDB table or view.

    ``tiebreaker`` names the columns that order rows sharing one timestamp;
    they must identify a row uniquely for offsets into a tie group to be
    stable. All statements on the shared connection are serialized with a
    lock because DuckDB connections are not thread-safe.
    """

    def __init__(
        self,
        table: str,
        *,
        tiebreaker: typing.Sequence[str],
        connection: duckdb.DuckDBPyConnection | None = None,
        database: str = ":memory:",
    ):
        if not tiebreaker:
            raise ConfigurationError("DuckDBSource needs at least one tiebreaker column")
        self.table = table
        self.tiebreaker = list(tiebreaker)
        if connection is None:
            connection = duckdb.connect(database)
            connection.execute("SET TimeZone = 'UTC'")
        self._conn = connection
        self._lock = threading.Lock()
        self._schema: pa.Schema | None = None

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        return self._conn

    @property
    def schema(self) -> pa.Schema:
        if self._schema is None:
            self._schema = self._load_schema()
        return self._schema

    def _table_ref(self) -> str:
        return exp.to_table(self.table).sql(dialect="duckdb")

    def _load_schema(self) -> pa.Schema:
        with self._lock:
            try:
                schema = self._conn.execute(f"SELECT * FROM {self._table_ref()} LIMIT 0").to_arrow_table().schema
            except duckdb.Error as e:
                raise ConfigurationError(f"Cannot read schema of {self.table!r}: {e}") from e

        missing = [col for col in self.tiebreaker if schema.get_field_index(col) < 0]
        if missing:
            raise ConfigurationError(f"Tiebreaker columns not in {self.table!r}: {', '.join(missing)}")
        return schema

    def create_table(self, schema: type[Schema]) -> None:
        with self._lock:
            self._conn.execute(schema.create_table_ddl(self.table, if_not_exists=True))
        self._schema = None

    def insert(self, batch: pa.RecordBatch | pa.Table) -> None:
        with self._lock:
            self._conn.execute(f"INSERT INTO {self._table_ref()} SELECT * FROM batch")

    def build_sql(self, query: RangeQuery) -> str:
        ts = quote_identifier(query.field)
        conditions = f"{ts} BETWEEN $1 AND $2"
        if query.where:
            conditions += f" AND ({query.where})"
        order_by = ", ".join([ts, *(quote_identifier(col) for col in self.tiebreaker)])
        return (
            f"SELECT * FROM {self._table_ref()} WHERE {conditions} "
            f"ORDER BY {order_by} LIMIT {int(query.limit)} OFFSET {int(query.offset)}"
        )

    def fetch_range(self, query: RangeQuery) -> pa.RecordBatch:
        sql = self.build_sql(query)
        with self._lock:
            try:
                result = self._conn.execute(sql, [query.low, query.high]).to_arrow_table()
            except duckdb.Error as e:
                logger.error("DuckDB query failed: %s\nSQL: %s", e, sql[:500])
                raise TransientQueryError(f"Range query on {self.table!r} failed: {e}") from e
        return to_record_batch(result)
