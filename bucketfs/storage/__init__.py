from __future__ import annotations

import io
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from types import TracebackType
from typing import Protocol

from bucketfs.errors import annotated

ZERO_TIME = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class Range:
    start: int
    end: int | None

    @classmethod
    def span(cls, start: int, end: int) -> Range:
        """Header form of the half-open span [start, end)."""
        return cls(start=start, end=end - 1)

    def header(self) -> str:
        return f"bytes={self.start}-{'' if self.end is None else self.end}"


@dataclass
class ObjectMetadata:
    etag: str
    total: int
    last_modified: datetime = ZERO_TIME


@dataclass
class ListEntry:
    key: str
    size: int = 0
    last_modified: datetime = ZERO_TIME


class StorageBackend(Protocol):
    def put(self, key: str, body: bytes) -> None: ...

    def get(self, key: str, range: Range | None = None) -> bytes: ...

    def head(self, key: str) -> ObjectMetadata: ...

    def delete(self, key: str) -> None: ...

    def list_objects(self, key_prefix: str, max_keys: int | None = None) -> list[ListEntry]: ...


class ObjectWriter(io.RawIOBase):
    """Writable stream that uploads to `key` when closed.

    Data is spooled in memory and moves to a temporary file past
    `max_memory` bytes. Leaving a `with` block through an exception
    discards the upload.
    """

    def __init__(self, backend: StorageBackend, key: str, max_memory: int = 8 * 1024 * 1024) -> None:
        super().__init__()
        self.backend = backend
        self.key = key
        self._spool = tempfile.SpooledTemporaryFile(max_size=max_memory, mode="w+b")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} key={self.key!r} closed={self.closed}>"

    def writable(self) -> bool:
        return True

    def write(self, b: bytes | bytearray | memoryview) -> int:  # type: ignore[override]
        if self.closed:
            raise ValueError("write to closed ObjectWriter")
        return self._spool.write(b)

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._spool.seek(0)
            with annotated("create", self.key):
                self.backend.put(self.key, self._spool.read())
        finally:
            self._spool.close()
            super().close()

    def discard(self) -> None:
        if not self.closed:
            self._spool.close()
            super().close()

    def __del__(self) -> None:
        # a writer dropped without close() uploads nothing
        self.discard()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            self.discard()
        else:
            self.close()
