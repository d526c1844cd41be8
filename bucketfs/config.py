from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class S3Config:
    access_key_id: str
    secret_access_key: str = field(repr=False)
    region: str = "us-east-1"
    session_token: str | None = field(default=None, repr=False)


@dataclass
class GatewayConfig:
    bucket_url: str
    s3: S3Config
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> GatewayConfig:
        env = os.environ if environ is None else environ
        s3 = S3Config(
            access_key_id=env["AWS_ACCESS_KEY_ID"],
            secret_access_key=env["AWS_SECRET_ACCESS_KEY"],
            region=env.get("AWS_REGION", "us-east-1"),
            session_token=env.get("AWS_SESSION_TOKEN") or None,
        )
        return cls(
            bucket_url=env["BUCKETFS_BUCKET_URL"],
            s3=s3,
            host=env.get("BUCKETFS_HOST", "127.0.0.1"),
            port=int(env.get("BUCKETFS_PORT", "8000")),
        )
