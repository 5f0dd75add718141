import datetime as dt
import logging

import duckdb
import pyarrow as pa
import pytest

from quackpull.cursor import Cursor
from quackpull.duckdb_source import DuckDBSource
from quackpull.exceptions import ConfigurationError, TransientQueryError
from quackpull.extractor import ExtractorConfig, TimeExtractor
from quackpull.schema import Int, Schema, Timestamp
from quackpull.source import DataSource, RangeQuery

from .conftest import EventSchema, ids, make_events, ts


@pytest.fixture
def source():
    source = DuckDBSource("events", tiebreaker=["id"])
    source.create_table(EventSchema)
    return source


def query(**kwargs) -> RangeQuery:
    defaults = {"field": "updated_at", "low": ts(0), "high": ts(1000), "offset": 0, "limit": 1000}
    defaults.update(kwargs)
    return RangeQuery(**defaults)


class TestDuckDBSourceSchema:
    def test_implements_protocol(self, source):
        assert isinstance(source, DataSource)

    def test_schema_reflects_table(self, source):
        schema = source.schema

        assert schema.names == ["id", "kind", "updated_at"]
        assert pa.types.is_timestamp(schema.field("updated_at").type)

    def test_missing_table(self):
        source = DuckDBSource("missing", tiebreaker=["id"])

        with pytest.raises(ConfigurationError, match="Cannot read schema"):
            source.schema

    def test_unknown_tiebreaker(self):
        source = DuckDBSource("events", tiebreaker=["uuid"])
        source.create_table(EventSchema)

        with pytest.raises(ConfigurationError, match="uuid"):
            source.schema

    def test_tiebreaker_required(self):
        with pytest.raises(ConfigurationError, match="tiebreaker"):
            DuckDBSource("events", tiebreaker=[])

    def test_extractor_resolves_against_table(self, source):
        extractor = TimeExtractor(ExtractorConfig(source=source, time_field="updated_at"))

        assert extractor.time_field.resolution == dt.timedelta(microseconds=1)

    def test_extractor_rejects_unknown_field(self, source):
        with pytest.raises(ConfigurationError):
            TimeExtractor(ExtractorConfig(source=source, time_field="created_at"))


class TestDuckDBSourceQuery:
    def test_build_sql(self, source):
        sql = source.build_sql(query(where="kind = 'insert'", offset=5, limit=10))

        assert sql == (
            'SELECT * FROM events WHERE "updated_at" BETWEEN $1 AND $2 AND (kind = \'insert\') '
            'ORDER BY "updated_at", "id" LIMIT 10 OFFSET 5'
        )

    def test_orders_by_time_then_tiebreaker(self, source):
        table = make_events([5, 1, 5, 3, 5])
        source.insert(table.take([4, 2, 0, 3, 1]))

        result = source.fetch_range(query())

        assert ids(result) == [2, 4, 1, 3, 5]

    def test_bounds_are_inclusive(self, source):
        source.insert(make_events([0, 10, 20, 30]))

        result = source.fetch_range(query(low=ts(10), high=ts(20)))

        assert ids(result) == [2, 3]

    def test_offset_and_limit(self, source):
        source.insert(make_events([0, 1, 1, 1, 2]))

        result = source.fetch_range(query(low=ts(1), offset=1, limit=2))

        assert ids(result) == [3, 4]

    def test_where(self, source):
        source.insert(make_events([0, 1, 2], kinds=["insert", "delete", "insert"]))

        result = source.fetch_range(query(where="kind = 'insert'"))

        assert ids(result) == [1, 3]

    def test_empty_result_keeps_schema(self, source):
        result = source.fetch_range(query())

        assert result.num_rows == 0
        assert result.schema.names == ["id", "kind", "updated_at"]

    @pytest.mark.filterwarnings("error::DeprecationWarning")
    def test_fetch_does_not_use_deprecated_arrow_calls(self, source):
        source.insert(make_events([0, 1]))

        assert ids(source.fetch_range(query())) == [1, 2]

    def test_failure_raises_transient_query_error(self, source, caplog):
        with caplog.at_level(logging.ERROR, logger="quackpull.duckdb_source"):
            with pytest.raises(TransientQueryError) as excinfo:
                source.fetch_range(query(where="no_such_function(kind)"))

        assert isinstance(excinfo.value.__cause__, duckdb.Error)
        assert any("DuckDB query failed" in record.getMessage() for record in caplog.records)


class TestExtractionOverDuckDB:
    def test_tie_boundary_scenario(self, source):
        source.insert(make_events(list(range(300)) + [1000] * 1200))
        extractor = TimeExtractor(ExtractorConfig(source=source, time_field="updated_at"))

        first = extractor.fetch(Cursor(start=ts(0)))
        second = extractor.fetch(first.cursor)
        third = extractor.fetch(second.cursor)

        assert len(first) == 1000
        assert first.cursor.row == 700
        assert len(second) == 500
        assert second.cursor.row == 0
        assert third.batch is None
        assert sorted(ids(first.batch) + ids(second.batch)) == list(range(1, 1501))

    def test_shared_connection(self):
        conn = duckdb.connect()
        conn.execute("SET TimeZone = 'UTC'")
        conn.execute("CREATE TABLE orders (order_id INTEGER, placed_at TIMESTAMPTZ)")
        conn.execute(
            """
            INSERT INTO orders VALUES
                (3, TIMESTAMPTZ '2024-01-01 12:00:01+00'),
                (1, TIMESTAMPTZ '2024-01-01 12:00:01+00'),
                (2, TIMESTAMPTZ '2024-01-01 12:00:00+00')
            """
        )
        source = DuckDBSource("orders", tiebreaker=["order_id"], connection=conn)
        extractor = TimeExtractor(ExtractorConfig(source=source, time_field="placed_at"))

        steps = list(extractor.drain(Cursor(start=ts(0), batch_size=2)))

        assert [step.batch.column("order_id").to_pylist() for step in steps] == [[2, 1], [3]]

    def test_second_resolution_column(self):
        class Reading(Schema):
            id = Int()
            taken_at = Timestamp(unit="s", timezone=False)

        source = DuckDBSource("readings", tiebreaker=["id"])
        source.create_table(Reading)
        source.connection.execute(
            """
            INSERT INTO readings VALUES
                (1, TIMESTAMP '2024-01-01 12:00:00'),
                (2, TIMESTAMP '2024-01-01 12:00:05'),
                (3, TIMESTAMP '2024-01-01 12:00:05')
            """
        )
        extractor = TimeExtractor(ExtractorConfig(source=source, time_field="taken_at"))

        result = extractor.fetch(Cursor(start=dt.datetime(2024, 1, 1, 12, 0, 0)))

        assert result.batch.column("id").to_pylist() == [1, 2, 3]
        assert result.cursor.start == dt.datetime(2024, 1, 1, 12, 0, 6)
        assert result.cursor.row == 0
