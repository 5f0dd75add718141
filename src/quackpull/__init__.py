"""Quackpull - Incremental time-window extraction."""

# Core API
from quackpull.cursor import DEFAULT_BATCH_SIZE, Cursor, advance
from quackpull.extractor import Extraction, ExtractorConfig, TimeExtractor
from quackpull.runner import Runner

# Errors
from quackpull.exceptions import ConfigurationError, QuackpullError, TransientQueryError

# Time fields
from quackpull.time_field import TimeField, resolve_time_field

# Schema types
from quackpull.schema import (
    Bool,
    Float,
    Int,
    Long,
    Schema,
    String,
    Timestamp,
)

# DuckDB backends
from quackpull.cursor_store import DuckDBCursorStore
from quackpull.duckdb_source import DuckDBSource

# Protocols (for custom sources/sinks)
from quackpull.sink import Sink
from quackpull.source import DataSource, RangeQuery

__all__ = [
    # Core
    "Cursor",
    "DEFAULT_BATCH_SIZE",
    "advance",
    "Extraction",
    "ExtractorConfig",
    "TimeExtractor",
    "Runner",
    # Errors
    "QuackpullError",
    "ConfigurationError",
    "TransientQueryError",
    # Time
    "TimeField",
    "resolve_time_field",
    # Schema
    "Schema",
    "String",
    "Int",
    "Long",
    "Float",
    "Bool",
    "Timestamp",
    # Backends
    "DuckDBCursorStore",
    "DuckDBSource",
    # Protocols
    "DataSource",
    "RangeQuery",
    "Sink",
]
