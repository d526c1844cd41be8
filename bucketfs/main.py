from contextlib import ExitStack

import anyio

from bucketfs.api import make_app
from bucketfs.config import GatewayConfig
from bucketfs.fs import BucketFS
from bucketfs.storage.s3 import S3Storage, split_bucket_url


async def main() -> None:
    import uvicorn

    config = GatewayConfig.from_env()
    bucket_url, prefix = split_bucket_url(config.bucket_url)
    with ExitStack() as stack:
        storage = stack.enter_context(S3Storage.connect(bucket_url, config.s3))
        fs = BucketFS(storage, prefix=prefix)
        # TO TEST: swap in an in-memory bucket instead of S3
        # from bucketfs.storage.memory import InMemoryBackend
        # fs = BucketFS(InMemoryBackend())
        app = make_app(fs)

        server = uvicorn.Server(uvicorn.Config(app, host=config.host, port=config.port))
        await server.serve()


if __name__ == "__main__":
    anyio.run(main)
