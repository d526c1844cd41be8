from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from urllib.parse import quote, urlsplit, urlunsplit

import httpx
from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.client import BaseClient
from botocore.config import Config as BotoConfig
from botocore.credentials import Credentials
from botocore.exceptions import ClientError
from botocore.parsers import ResponseParserError
from botocore.session import get_session

from bucketfs.config import S3Config
from bucketfs.errors import BackendStatusError, DecodeError, NotFoundError
from bucketfs.storage import ZERO_TIME, ListEntry, ObjectMetadata, Range, StorageBackend

logger = logging.getLogger(__name__)


def split_bucket_url(url: str) -> tuple[str, str]:
    """Split `https://host/bucket[/key/prefix]` into the bucket URL and the key prefix."""
    parts = urlsplit(url)
    bucket, _, prefix = parts.path.strip("/").partition("/")
    if not bucket:
        raise ValueError(f"bucket URL {url!r} has no bucket name")
    return urlunsplit((parts.scheme, parts.netloc, f"/{bucket}", "", "")), prefix


@contextmanager
def translate_errors(key: str) -> Iterator[None]:
    """Re-raise botocore failures as bucketfs errors."""
    try:
        yield
    except ClientError as exc:
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 500)
        error = exc.response.get("Error", {})
        if status == 404 or error.get("Code") in ("404", "NoSuchKey", "NotFound"):
            raise NotFoundError(f"no such key: {key}") from exc
        raise BackendStatusError(status, error.get("Message", "").encode()) from exc
    except ResponseParserError as exc:
        raise DecodeError(f"malformed S3 response: {exc}") from exc


@dataclass
class S3Storage(StorageBackend):
    client: httpx.Client
    bucket_url: str
    config: S3Config
    page_size: int = 1000
    bucket: str = field(init=False)
    s3: BaseClient = field(init=False, repr=False)
    _credentials: Credentials = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.bucket_url = self.bucket_url.rstrip("/")
        parts = urlsplit(self.bucket_url)
        self.bucket = parts.path.strip("/")
        if not self.bucket or "/" in self.bucket:
            raise ValueError(f"{self.bucket_url!r} does not name a single bucket")
        self._credentials = Credentials(
            self.config.access_key_id,
            self.config.secret_access_key,
            self.config.session_token,
        )
        self.s3 = get_session().create_client(
            "s3",
            region_name=self.config.region,
            endpoint_url=urlunsplit((parts.scheme, parts.netloc, "", "", "")),
            aws_access_key_id=self.config.access_key_id,
            aws_secret_access_key=self.config.secret_access_key,
            aws_session_token=self.config.session_token,
            config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "path"}),
        )

    @classmethod
    @contextmanager
    def connect(cls, bucket_url: str, config: S3Config, page_size: int = 1000) -> Iterator[S3Storage]:
        with httpx.Client() as client:
            storage = cls(client, bucket_url, config, page_size)
            try:
                yield storage
            finally:
                storage.s3.close()

    def _object_url(self, key: str) -> str:
        return f"{self.bucket_url}/{quote(key, safe='/~')}"

    def put(self, key: str, body: bytes) -> None:
        with translate_errors(key):
            self.s3.put_object(Bucket=self.bucket, Key=key, Body=body)

    def get(self, key: str, range: Range | None = None) -> bytes:
        url = self._object_url(key)
        headers = {} if range is None else {"Range": range.header()}
        request = AWSRequest(method="GET", url=url, headers=headers)
        S3SigV4Auth(self._credentials, "s3", self.config.region).add_auth(request)
        # send() without stream=True reads the whole body, releasing the connection
        response = self.client.send(self.client.build_request("GET", url, headers=dict(request.headers.items())))
        if response.status_code == 416:
            # range starts past the end of the object
            return b""
        if response.status_code == 404:
            raise NotFoundError(f"no such key: {key}")
        if response.status_code not in (200, 206):
            raise BackendStatusError(response.status_code, response.content)
        return response.content

    def head(self, key: str) -> ObjectMetadata:
        with translate_errors(key):
            response = self.s3.head_object(Bucket=self.bucket, Key=key)
        return ObjectMetadata(
            etag=response.get("ETag", "").strip('"'),
            total=response.get("ContentLength", 0),
            last_modified=response.get("LastModified", ZERO_TIME),
        )

    def delete(self, key: str) -> None:
        with translate_errors(key):
            self.s3.delete_object(Bucket=self.bucket, Key=key)

    def iter_objects(self, key_prefix: str, max_keys: int | None = None) -> Iterator[list[ListEntry]]:
        """Yield ListObjectsV2 pages under `key_prefix`, stopping after `max_keys` entries."""
        if max_keys is not None and max_keys <= 0:
            return
        remaining = max_keys
        page_size = self.page_size if max_keys is None else min(self.page_size, max_keys)
        paginator = self.s3.get_paginator("list_objects_v2")
        pages = paginator.paginate(Bucket=self.bucket, Prefix=key_prefix, PaginationConfig={"PageSize": page_size})
        with translate_errors(key_prefix):
            for page in pages:
                entries = [
                    ListEntry(
                        key=obj["Key"],
                        size=obj.get("Size", 0),
                        last_modified=obj.get("LastModified", ZERO_TIME),
                    )
                    for obj in page.get("Contents", [])
                ]
                logger.debug("Listed %d keys under %r (more: %s)", len(entries), key_prefix, page.get("IsTruncated"))
                if remaining is not None:
                    entries = entries[:remaining]
                    remaining -= len(entries)
                yield entries
                if remaining == 0:
                    return

    def list_objects(self, key_prefix: str, max_keys: int | None = None) -> list[ListEntry]:
        return [entry for page in self.iter_objects(key_prefix, max_keys) for entry in page]
