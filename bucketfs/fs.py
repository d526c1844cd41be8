from __future__ import annotations

import io
import logging

import httpx

from bucketfs.config import S3Config
from bucketfs.errors import UsageError, annotated
from bucketfs.metadata import FileMetadata
from bucketfs.paths import ROOT, PathMapper, clean
from bucketfs.reader import RangeCachedReader
from bucketfs.resolver import DirectoryResolver
from bucketfs.storage import ObjectWriter, StorageBackend
from bucketfs.storage.s3 import S3Storage, split_bucket_url

logger = logging.getLogger(__name__)


class BucketFS:
    """Directory tree view of a flat object store.

    Directories are inferred from key prefixes: `a/b` is a directory as soon
    as any key starts with `a/b/`, and it wins over an object stored at `a/b`.
    Directories cannot be created or removed on their own.
    """

    def __init__(self, backend: StorageBackend, prefix: str = "") -> None:
        self.backend = backend
        self.paths = PathMapper(prefix)
        self.resolver = DirectoryResolver(backend, self.paths)

    @classmethod
    def from_url(cls, url: str, config: S3Config, client: httpx.Client | None = None) -> BucketFS:
        """Build a filesystem from `https://host/bucket[/key/prefix]`.

        The first path segment names the bucket; the rest becomes the key
        prefix every path is resolved under.
        """
        bucket_url, prefix = split_bucket_url(url)
        return cls(S3Storage(client or httpx.Client(), bucket_url, config), prefix=prefix)

    def __str__(self) -> str:
        return f"bucket filesystem over {self.backend!r} at {self.paths.prefix or '/'}"

    def _object_key(self, op: str, path: str) -> str:
        key = self.paths.key(path)
        if clean(path) == ROOT:
            # an empty key addresses the bucket itself
            with annotated(op, key or "/"):
                raise UsageError("the root directory is not an object")
        return key

    def open(self, path: str) -> io.BytesIO:
        key = self._object_key("open", path)
        with annotated("open", key):
            return io.BytesIO(self.backend.get(key))

    def open_range_cached(self, path: str, autofetch: bool = True) -> RangeCachedReader:
        key = self._object_key("open", path)
        return RangeCachedReader(self.backend, key, autofetch=autofetch)

    def read_dir(self, path: str) -> list[FileMetadata]:
        # keys more than one level down are returned as well, named by their last segment
        prefix = self.paths.dir_prefix(path)
        with annotated("readdir", self.paths.key(path)):
            return [FileMetadata.from_listing(entry) for entry in self.backend.list_objects(prefix)]

    def lstat(self, path: str) -> FileMetadata:
        with annotated("lstat", self.paths.key(path)):
            return self.resolver.lstat(path)

    def stat(self, path: str) -> FileMetadata:
        with annotated("stat", self.paths.key(path)):
            return self.resolver.stat(path)

    def create(self, path: str) -> ObjectWriter:
        """Open `path` for writing; the object is replaced when the writer closes."""
        key = self._object_key("create", path)
        return ObjectWriter(self.backend, key)

    def remove(self, path: str) -> None:
        key = self._object_key("remove", path)
        with annotated("remove", key):
            self.backend.delete(key)

    def mkdir(self, path: str) -> None:
        logger.debug("mkdir %r: no directories in an object store", path)

    def mkdir_all(self, path: str) -> None:
        logger.debug("mkdir_all %r: no directories in an object store", path)

