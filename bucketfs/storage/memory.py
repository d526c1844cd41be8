from dataclasses import dataclass, field
from datetime import datetime, timezone
from hashlib import md5

from bucketfs.errors import NotFoundError
from bucketfs.storage import ListEntry, ObjectMetadata, Range, StorageBackend


@dataclass
class Object:
    body: bytes
    last_modified: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class InMemoryBackend(StorageBackend):
    storage: dict[str, Object] = field(default_factory=dict)

    def _lookup(self, key: str) -> Object:
        try:
            return self.storage[key]
        except KeyError:
            raise NotFoundError(f"no such key: {key}") from None

    def put(self, key: str, body: bytes) -> None:
        self.storage[key] = Object(body=bytes(body))

    def get(self, key: str, range: Range | None = None) -> bytes:
        data = self._lookup(key).body
        if range is None:
            return data
        return data[range.start : range.end + 1 if range.end is not None else len(data)]

    def head(self, key: str) -> ObjectMetadata:
        obj = self._lookup(key)
        return ObjectMetadata(
            etag=md5(obj.body).hexdigest(),
            total=len(obj.body),
            last_modified=obj.last_modified,
        )

    def delete(self, key: str) -> None:
        self.storage.pop(key, None)

    def list_objects(self, key_prefix: str, max_keys: int | None = None) -> list[ListEntry]:
        entries = [
            ListEntry(key=key, size=len(obj.body), last_modified=obj.last_modified)
            for key, obj in sorted(self.storage.items())
            if key.startswith(key_prefix)
        ]
        if max_keys is not None:
            entries = entries[:max_keys]
        return entries
