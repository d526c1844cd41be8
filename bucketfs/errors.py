from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager


class BucketFSError(Exception):
    """Base error for bucketfs operations."""

    op: str | None = None
    path: str | None = None

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def annotate(self, op: str, path: str) -> None:
        # keep the innermost operation if an error crosses two layers
        if self.op is None:
            self.op = op
            self.path = path

    def __str__(self) -> str:
        if self.op is None:
            return self.message
        return f"{self.op} {self.path}: {self.message}"


class NotFoundError(BucketFSError):
    """Key or prefix does not exist."""


class BackendStatusError(BucketFSError):
    def __init__(self, status_code: int, body: bytes = b"") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"unwanted http status {status_code}: {body!r}")


class DecodeError(BucketFSError):
    """Listing response could not be parsed."""


class UsageError(BucketFSError):
    """Reader called in a state that does not allow the operation."""


@contextmanager
def annotated(op: str, path: str) -> Iterator[None]:
    """Tag any BucketFSError escaping the block with `op` and `path`."""
    try:
        yield
    except BucketFSError as exc:
        exc.annotate(op, path)
        raise
