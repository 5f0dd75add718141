import logging
import typing

from quackpull.cursor import Cursor
from quackpull.extractor import TimeExtractor
from quackpull.sink import Sink

logger = logging.getLogger(__name__)


class CursorStore(typing.Protocol):
    def load(self, key: str) -> Cursor | None: ...

    def save(self, key: str, cursor: Cursor) -> None: ...


class Runner:
    """Moves batches from an extractor to a sink, one cursor key at a time.

    The advanced cursor is saved only after the sink accepted the batch, so a
    failure anywhere leaves the stored cursor where it was and the next run
    repeats the same fetch.
    """

    def __init__(
        self,
        extractor: TimeExtractor,
        store: CursorStore,
        key: str,
        sink: Sink,
        *,
        initial: Cursor | None = None,
    ):
        self._extractor = extractor
        self._store = store
        self._key = key
        self._sink = sink
        self._initial = initial

    def current_cursor(self) -> Cursor:
        cursor = self._store.load(self._key)
        if cursor is not None:
            return cursor
        if self._initial is None:
            raise LookupError(f"No cursor stored for {self._key!r} and no initial cursor given")
        return self._initial

    def run_once(self) -> int:
        """Extract and deliver one batch. Returns the number of rows delivered."""
        extraction = self._extractor.fetch(self.current_cursor())
        if extraction.batch is None:
            return 0
        self._sink.write(extraction.batch)
        self._store.save(self._key, extraction.cursor)
        return extraction.batch.num_rows

    def run(self) -> int:
        """Deliver batches until the extractor has nothing more. Returns the total row count."""
        total = 0
        while True:
            rows = self.run_once()
            if rows == 0:
                break
            total += rows
        logger.info("%s: delivered %d rows", self._key, total)
        return total
