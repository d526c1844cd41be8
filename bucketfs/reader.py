from __future__ import annotations

import io
import logging

from bucketfs.errors import UsageError, annotated
from bucketfs.storage import Range, StorageBackend

logger = logging.getLogger(__name__)

# extra read-lengths pulled past the requested span on autofetch
OVERFETCH_FACTOR = 4


class RangeCachedReader(io.RawIOBase):
    """Seekable reader over one object that holds a single fetched byte window.

    Offsets are absolute positions in the object. `fetch(start, end)` loads
    the half-open span [start, end) and moves the cursor to `start`; reads
    inside the window never touch the backend. With `autofetch` a read that
    leaves the window fetches the requested span plus `OVERFETCH_FACTOR`
    times its length; without it such a read raises `UsageError`.

    The object length is never known, so seeking relative to the end is not
    supported. Instances are not safe to share between threads.
    """

    def __init__(self, backend: StorageBackend, key: str, autofetch: bool = True) -> None:
        super().__init__()
        self.backend = backend
        self.key = key
        self.autofetch = autofetch
        self._buffer: io.BytesIO | None = None
        self._start = 0
        self._end = 0
        self._pos = 0

    def __repr__(self) -> str:
        return f"<{type(self).__name__} key={self.key!r} window={self.window}>"

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    @property
    def window(self) -> tuple[int, int] | None:
        if self._buffer is None:
            return None
        return self._start, self._end

    def is_fetched(self, start: int, end: int) -> bool:
        return self._buffer is not None and start <= end and start >= self._start and end <= self._end

    def _ensure_open(self) -> None:
        if self.closed:
            raise ValueError("I/O operation on closed reader")

    def _release(self) -> None:
        if self._buffer is not None:
            self._buffer.close()
        self._buffer = None
        self._start = 0
        self._end = 0

    def fetch(self, start: int, end: int) -> None:
        self._ensure_open()
        with annotated("fetch", self.key):
            self._fetch(start, end)

    def _fetch(self, start: int, end: int) -> None:
        if start < 0 or start > end:
            raise UsageError(f"invalid fetch range {start}-{end}")
        if self.is_fetched(start, end):
            logger.debug("Already fetched %d-%d (fetched range is %d-%d)", start, end, self._start, self._end)
            return

        # the old window goes first; if the request fails the reader stays empty
        self._release()
        data = b""
        if end > start:
            data = self.backend.get(self.key, Range.span(start, end))
        self._buffer = io.BytesIO(data)
        self._start = start
        self._end = end
        self._pos = start

    def readinto(self, b: bytearray | memoryview) -> int:  # type: ignore[override]
        self._ensure_open()
        with annotated("read", self.key):
            return self._readinto(b)

    def _readinto(self, b: bytearray | memoryview) -> int:
        size = len(b)
        if size == 0:
            return 0
        start, end = self._pos, self._pos + size
        if not self.is_fetched(start, end):
            if not self.autofetch:
                raise UsageError(
                    f"range {start}-{end} not fetched ({self._start}-{self._end} fetched; offset {self._pos})"
                )
            fetch_end = end + size * OVERFETCH_FACTOR
            logger.debug(
                "Autofetching range %d-%d because read of unfetched %d-%d attempted (%d bytes)",
                start, fetch_end, start, end, size,
            )
            self._fetch(start, fetch_end)
        buffer = self._buffer
        if buffer is None:
            raise UsageError(f"range {start}-{end} not fetched")
        buffer.seek(self._pos - self._start)
        count = buffer.readinto(b)
        self._pos += count
        return count

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        self._ensure_open()
        with annotated("seek", self.key):
            return self._seek(offset, whence)

    def _seek(self, offset: int, whence: int) -> int:
        if whence == io.SEEK_END:
            raise UsageError("seek relative to end of object is not supported")
        if self._buffer is None:
            raise UsageError("must fetch before seek")
        if whence == io.SEEK_SET:
            target = offset
        elif whence == io.SEEK_CUR:
            target = self._pos + offset
        else:
            raise ValueError(f"invalid whence ({whence})")
        if target < 0:
            raise ValueError(f"negative seek position {target}")
        self._pos = target
        return target

    def close(self) -> None:
        self._release()
        super().close()
