import dataclasses
import datetime as dt
import logging
import time
import typing

import pyarrow as pa
import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError, TokenError

from quackpull.cursor import Cursor, advance
from quackpull.exceptions import ConfigurationError
from quackpull.source import DataSource, RangeQuery
from quackpull.time_field import TimeField, resolve_time_field

Clock = typing.Callable[[], dt.datetime]


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclasses.dataclass(frozen=True)
class ExtractorConfig:
    """What to extract: a source, its time column and an optional SQL filter."""

    source: DataSource
    time_field: str
    where: str | None = None
    resolution: dt.timedelta | None = None
    name: str | None = None


@dataclasses.dataclass(frozen=True)
class Extraction:
    """Outcome of one fetch: the batch (None when idle) and the cursor to keep."""

    batch: pa.RecordBatch | None
    cursor: Cursor

    @property
    def has_batch(self) -> bool:
        return self.batch is not None

    def __len__(self) -> int:
        return 0 if self.batch is None else self.batch.num_rows


def _parse_predicate(where: str, schema: pa.Schema) -> str:
    try:
        parsed = sqlglot.parse_one(where, dialect="duckdb")
    except (ParseError, TokenError) as e:
        raise ConfigurationError(f"Invalid filter predicate {where!r}: {e}") from e

    if not isinstance(parsed, exp.Condition):
        raise ConfigurationError(f"Filter predicate must be a boolean condition, got {where!r}")

    known = {name.lower() for name in schema.names}
    unknown = sorted({col.name for col in parsed.find_all(exp.Column) if col.name.lower() not in known})
    if unknown:
        raise ConfigurationError(f"Filter predicate references unknown columns: {', '.join(unknown)}")

    return parsed.sql(dialect="duckdb")


class TimeExtractor:
    """Pulls successive pages of rows ordered by a timestamp column.

    The extractor holds no progress of its own. Each :meth:`fetch` takes the
    caller's :class:`Cursor` and hands back the batch together with the next
    cursor; the caller persists it once the batch has been handled. Calls
    against one cursor must be serialized by the caller.
    """

    def __init__(
        self,
        config: ExtractorConfig,
        *,
        logger: logging.Logger | None = None,
        clock: Clock | None = None,
    ):
        self.config = config
        self.name = config.name or type(self).__name__.removesuffix("Extractor").lower()
        self._source = config.source
        self._clock = clock or utc_now
        self._logger = logger or logging.getLogger(f"{__name__}.{self.name}")

        schema = self._source.schema
        self.time_field: TimeField = resolve_time_field(schema, config.time_field, config.resolution)
        self.where = _parse_predicate(config.where, schema) if config.where else None

    def fetch(self, cursor: Cursor) -> Extraction:
        """Fetch the next batch after ``cursor``.

        Query failures propagate unchanged; the cursor passed in stays valid
        and the call can be repeated.
        """
        if not cursor.enabled:
            self._logger.debug("%s: extraction disabled", self.name)
            return Extraction(batch=None, cursor=cursor)

        aligned = self._align(cursor)
        now = self.time_field.coerce(self._clock())
        if aligned.is_idle(now):
            self._logger.debug("%s: window empty at %s (start=%s)", self.name, now, aligned.start)
            return Extraction(batch=None, cursor=cursor)

        window_end = aligned.window_end(now)
        query = RangeQuery(
            field=self.time_field.name,
            low=aligned.start,
            high=window_end,
            where=self.where,
            offset=aligned.row,
            limit=aligned.batch_size,
        )

        started = time.perf_counter()
        batch = self._source.fetch_range(query)
        elapsed_ms = (time.perf_counter() - started) * 1000

        if batch.num_rows == 0:
            self._logger.debug("%s: no rows in [%s, %s] after %d", self.name, aligned.start, window_end, aligned.row)
            return Extraction(batch=None, cursor=cursor)

        next_cursor = advance(aligned, self.time_field.values(batch), self.time_field.resolution)
        self._logger.info(
            "%s: fetched %d rows in [%s, %s] skip=%d in %.1fms, next start=%s row=%d",
            self.name,
            batch.num_rows,
            aligned.start,
            window_end,
            aligned.row,
            elapsed_ms,
            next_cursor.start,
            next_cursor.row,
        )
        return Extraction(batch=batch, cursor=next_cursor)

    def drain(self, cursor: Cursor) -> typing.Iterator[Extraction]:
        """Fetch repeatedly, threading the cursor through, until a fetch comes back empty."""
        while True:
            extraction = self.fetch(cursor)
            if extraction.batch is None:
                return
            yield extraction
            cursor = extraction.cursor

    def _align(self, cursor: Cursor) -> Cursor:
        start = self.time_field.coerce(cursor.start)
        end = self.time_field.coerce(cursor.end) if cursor.end is not None else None
        if start is cursor.start and end is cursor.end:
            return cursor
        return dataclasses.replace(cursor, start=start, end=end)
