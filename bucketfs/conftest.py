from dataclasses import dataclass, field
from typing import Any

import pytest

from bucketfs.fs import BucketFS
from bucketfs.storage import ListEntry, ObjectMetadata, Range
from bucketfs.storage.memory import InMemoryBackend


@dataclass
class CountingBackend(InMemoryBackend):
    """In-memory backend that records every call made against it."""

    calls: list[tuple[Any, ...]] = field(default_factory=list)

    def put(self, key: str, body: bytes) -> None:
        self.calls.append(("put", key))
        super().put(key, body)

    def get(self, key: str, range: Range | None = None) -> bytes:
        self.calls.append(("get", key, range))
        return super().get(key, range)

    def head(self, key: str) -> ObjectMetadata:
        self.calls.append(("head", key))
        return super().head(key)

    def delete(self, key: str) -> None:
        self.calls.append(("delete", key))
        super().delete(key)

    def list_objects(self, key_prefix: str, max_keys: int | None = None) -> list[ListEntry]:
        self.calls.append(("list", key_prefix, max_keys))
        return super().list_objects(key_prefix, max_keys)

    def gets(self) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == "get"]


@pytest.fixture
def backend() -> CountingBackend:
    return CountingBackend()


@pytest.fixture
def fs(backend: CountingBackend) -> BucketFS:
    return BucketFS(backend)
