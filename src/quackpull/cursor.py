import dataclasses
import datetime as dt
import typing

import pyarrow as pa
import pyarrow.compute as pc

DEFAULT_BATCH_SIZE = 1000


@dataclasses.dataclass(frozen=True)
class Cursor:
    """Extraction progress over one time field.

    ``start`` is the watermark: the inclusive lower bound of the next window.
    ``row`` counts the rows at exactly ``start`` that an earlier full page
    already delivered.
    """

    start: dt.datetime
    row: int = 0
    end: dt.datetime | None = None
    batch_size: int = DEFAULT_BATCH_SIZE
    enabled: bool = True

    def __post_init__(self):
        if self.row < 0:
            raise ValueError(f"Cursor row must be non-negative, got {self.row}")
        if self.batch_size <= 0:
            raise ValueError(f"Cursor batch_size must be positive, got {self.batch_size}")

    def window_end(self, now: dt.datetime) -> dt.datetime:
        if self.end is not None and self.end < now:
            return self.end
        return now

    def is_idle(self, now: dt.datetime) -> bool:
        """True when a fetch at ``now`` has nothing to query."""
        if not self.enabled:
            return True
        window_end = self.window_end(now)
        if self.start > window_end:
            return True
        # A boundary pinned at the window end by a full page still has ties to read.
        return self.start == window_end and self.row == 0

    def to_dict(self) -> dict[str, typing.Any]:
        return {
            "start": self.start.isoformat(),
            "row": self.row,
            "end": self.end.isoformat() if self.end is not None else None,
            "batch_size": self.batch_size,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: typing.Mapping[str, typing.Any]) -> "Cursor":
        end = data.get("end")
        return cls(
            start=dt.datetime.fromisoformat(data["start"]),
            row=int(data.get("row", 0)),
            end=dt.datetime.fromisoformat(end) if end else None,
            batch_size=int(data.get("batch_size", DEFAULT_BATCH_SIZE)),
            enabled=bool(data.get("enabled", True)),
        )


def advance(
    cursor: Cursor,
    times: pa.Array | pa.ChunkedArray,
    resolution: dt.timedelta,
) -> Cursor:
    """Compute the cursor that follows a successfully retrieved batch.

    ``times`` is the batch's time column in ascending order. A full page pins
    the watermark on its last instant and counts the rows already seen there,
    since more rows may share that instant. A partial page drained the window,
    so the watermark moves one ``resolution`` step past the last instant.
    """
    if len(times) == 0:
        return cursor

    last_scalar = times[len(times) - 1]
    last: dt.datetime = last_scalar.as_py()

    if len(times) < cursor.batch_size:
        return dataclasses.replace(cursor, start=last + resolution, row=0)

    tie_count: int = pc.sum(pc.equal(times, last_scalar)).as_py()
    if last == cursor.start:
        # Whole page sat on the old watermark; the offset keeps growing.
        row = cursor.row + tie_count
    else:
        row = tie_count
    return dataclasses.replace(cursor, start=last, row=row)
