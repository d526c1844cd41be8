from __future__ import annotations

import posixpath
from dataclasses import dataclass

from bucketfs.metadata import FileMetadata
from bucketfs.paths import ROOT, PathMapper, clean
from bucketfs.storage import StorageBackend


@dataclass
class DirectoryResolver:
    backend: StorageBackend
    paths: PathMapper

    def lstat(self, path: str) -> FileMetadata:
        path = clean(path)
        if path == ROOT:
            return FileMetadata.directory(".")

        name = posixpath.basename(path)
        # any key below path/ makes it a directory, even if an object named path exists too
        if self.backend.list_objects(self.paths.dir_prefix(path), max_keys=1):
            return FileMetadata.directory(name)

        head = self.backend.head(self.paths.key(path))
        return FileMetadata.from_head(name, head)

    # no symlinks in an object store
    stat = lstat
