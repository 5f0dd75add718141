import typing

import pyarrow as pa


@typing.runtime_checkable
class Sink(typing.Protocol):
    def write(self, batch: pa.RecordBatch) -> None: ...
