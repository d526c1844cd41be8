from bucketfs.config import S3Config
from bucketfs.errors import BackendStatusError, BucketFSError, DecodeError, NotFoundError, UsageError
from bucketfs.fs import BucketFS
from bucketfs.metadata import FileMetadata, Kind
from bucketfs.reader import OVERFETCH_FACTOR, RangeCachedReader

__all__ = [
    "BackendStatusError",
    "BucketFS",
    "BucketFSError",
    "DecodeError",
    "FileMetadata",
    "Kind",
    "NotFoundError",
    "OVERFETCH_FACTOR",
    "RangeCachedReader",
    "S3Config",
    "UsageError",
]
