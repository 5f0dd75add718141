import dataclasses
import datetime as dt

import pyarrow as pa

from quackpull.exceptions import ConfigurationError

UNIT_RESOLUTIONS = {
    "s": dt.timedelta(seconds=1),
    "ms": dt.timedelta(milliseconds=1),
    "us": dt.timedelta(microseconds=1),
}


@dataclasses.dataclass(frozen=True)
class TimeField:
    """A resolved timestamp column.

    ``resolution`` is the smallest step between two distinct values the store
    can hold; the extractor moves a drained watermark past its last instant
    by exactly this step.
    """

    name: str
    type: pa.TimestampType
    resolution: dt.timedelta

    @property
    def tz(self) -> str | None:
        return self.type.tz

    def coerce(self, value: dt.datetime) -> dt.datetime:
        """Align a datetime with the column's timezone awareness."""
        if self.tz is not None:
            if value.tzinfo is None:
                return value.replace(tzinfo=dt.timezone.utc)
            return value
        if value.tzinfo is not None:
            return value.astimezone(dt.timezone.utc).replace(tzinfo=None)
        return value

    def values(self, batch: pa.RecordBatch) -> pa.Array:
        return batch.column(self.name)


def resolve_time_field(
    schema: pa.Schema,
    name: str,
    resolution: dt.timedelta | None = None,
) -> TimeField:
    index = schema.get_field_index(name)
    if index < 0:
        raise ConfigurationError(f"Time field {name!r} not found in schema (fields: {', '.join(schema.names)})")

    field_type = schema.field(index).type
    if not pa.types.is_timestamp(field_type):
        raise ConfigurationError(f"Time field {name!r} must be a timestamp, got {field_type}")
    if field_type.unit not in UNIT_RESOLUTIONS:
        raise ConfigurationError(f"Time field {name!r} has unsupported unit {field_type.unit!r}")

    unit_resolution = UNIT_RESOLUTIONS[field_type.unit]
    if resolution is None:
        resolution = unit_resolution
    elif resolution <= dt.timedelta(0):
        raise ConfigurationError(f"Resolution must be positive, got {resolution}")
    elif resolution < unit_resolution:
        raise ConfigurationError(
            f"Resolution {resolution} is finer than the {field_type.unit!r} unit of time field {name!r}"
        )

    return TimeField(name=name, type=field_type, resolution=resolution)
