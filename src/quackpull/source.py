import dataclasses
import datetime as dt
import typing

import pyarrow as pa


@dataclasses.dataclass(frozen=True)
class RangeQuery:
    """One page of a time-range scan; both bounds are inclusive."""

    field: str
    low: dt.datetime
    high: dt.datetime
    where: str | None = None
    offset: int = 0
    limit: int = 1000


@typing.runtime_checkable
class DataSource(typing.Protocol):
    """A store that can answer ordered, paginated time-range queries.

    ``fetch_range`` must order rows by the time field and then by a
    deterministic secondary key, so that rows sharing one instant come back
    in the same order on every call. Offsets into a tie group rely on it.
    """

    @property
    def schema(self) -> pa.Schema: ...

    def fetch_range(self, query: RangeQuery) -> pa.RecordBatch: ...
