import datetime as dt

import pyarrow as pa
import pytest

from quackpull.schema import Int, Schema, String, Timestamp
from quackpull.testing import FakeClock

BASE = dt.datetime(2024, 1, 1, 12, 0, 0, tzinfo=dt.timezone.utc)
TS_TYPE = pa.timestamp("us", tz="UTC")


class EventSchema(Schema):
    id = Int()
    kind = String()
    updated_at = Timestamp()


def ts(seconds: int) -> dt.datetime:
    """Timestamp relative to BASE (12:00:00)."""
    return BASE + dt.timedelta(seconds=seconds)


def make_events(offsets: list[int], kinds: list[str] | None = None, first_id: int = 1) -> pa.Table:
    """One event per offset; ids ascend from ``first_id``."""
    return pa.table(
        {
            "id": pa.array(range(first_id, first_id + len(offsets)), type=pa.int32()),
            "kind": pa.array(kinds if kinds is not None else ["update"] * len(offsets), type=pa.string()),
            "updated_at": pa.array([ts(o) for o in offsets], type=TS_TYPE),
        }
    )


def ids(batch: pa.RecordBatch | None) -> list[int]:
    return [] if batch is None else batch.column("id").to_pylist()


@pytest.fixture
def clock():
    return FakeClock(BASE + dt.timedelta(days=1))
