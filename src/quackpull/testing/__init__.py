"""Testing utilities for quackpull."""

from quackpull.testing.fake_clock import FakeClock
from quackpull.testing.fake_sink import FakeSink
from quackpull.testing.fake_source import FakeSource

__all__ = [
    "FakeClock",
    "FakeSink",
    "FakeSource",
]
