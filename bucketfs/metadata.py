from __future__ import annotations

import enum
import posixpath
from dataclasses import dataclass
from datetime import datetime

from bucketfs.storage import ZERO_TIME, ListEntry, ObjectMetadata


class Kind(enum.Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class FileMetadata:
    name: str
    size: int
    kind: Kind
    mod_time: datetime = ZERO_TIME
    etag: str = ""

    @property
    def is_dir(self) -> bool:
        return self.kind is Kind.DIRECTORY

    @classmethod
    def directory(cls, name: str) -> FileMetadata:
        # the backend keeps nothing per prefix, so there is nothing to report
        return cls(name=name, size=0, kind=Kind.DIRECTORY)

    @classmethod
    def from_head(cls, name: str, head: ObjectMetadata) -> FileMetadata:
        return cls(name=name, size=head.total, kind=Kind.FILE, mod_time=head.last_modified, etag=head.etag)

    @classmethod
    def from_listing(cls, entry: ListEntry) -> FileMetadata:
        return cls(
            name=posixpath.basename(entry.key),
            size=entry.size,
            kind=Kind.FILE,
            mod_time=entry.last_modified,
        )
