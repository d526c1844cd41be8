from dataclasses import asdict, dataclass
from datetime import timezone
from email.utils import format_datetime
from typing import Annotated

from anyio import to_thread
from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Path, Request, Response
from fastapi.responses import JSONResponse

from bucketfs.errors import BackendStatusError, BucketFSError, DecodeError, NotFoundError, UsageError
from bucketfs.fs import BucketFS
from bucketfs.metadata import FileMetadata
from bucketfs.storage import ZERO_TIME, Range

router = APIRouter()


def get_fs(request: Request) -> BucketFS:
    return request.app.state.fs


FS = Annotated[BucketFS, Depends(get_fs)]


@router.get("/health")
def health() -> Response:
    return Response(status_code=200)


def range_from_header(range: Annotated[str | None, Header()] = None) -> Range | None:
    if range is None:
        return None
    if not range.startswith("bytes="):
        raise HTTPException(status_code=400, detail="Invalid range header")
    start, sep, end = range[6:].partition("-")
    if not sep or not start.isdigit() or (end and not end.isdigit()):
        raise HTTPException(status_code=400, detail="Invalid range header")
    parsed = Range(start=int(start), end=int(end) if end else None)
    if parsed.end is not None and parsed.end < parsed.start:
        raise HTTPException(status_code=400, detail="Invalid range header")
    return parsed


def metadata_headers(info: FileMetadata) -> dict[str, str]:
    headers = {
        "Content-Length": str(info.size),
        "X-Bucketfs-Kind": info.kind.value,
        "Accept-Ranges": "bytes",
    }
    if info.etag:
        headers["ETag"] = f'"{info.etag}"'
    if info.mod_time != ZERO_TIME:
        headers["Last-Modified"] = format_datetime(info.mod_time.astimezone(timezone.utc), usegmt=True)
    return headers


@dataclass
class Entry:
    name: str
    size: int
    is_dir: bool
    mod_time: str | None


def entry(info: FileMetadata) -> Entry:
    mod_time = None if info.mod_time == ZERO_TIME else info.mod_time.isoformat()
    return Entry(name=info.name, size=info.size, is_dir=info.is_dir, mod_time=mod_time)


@router.get("/fs/{path:path}")
def download(
    fs: FS,
    path: Annotated[str, Path()],
    range: Annotated[Range | None, Depends(range_from_header)],
) -> Response:
    info = fs.stat(path)
    if info.is_dir:
        return JSONResponse([asdict(entry(child)) for child in fs.read_dir(path)])
    if range is None:
        headers = metadata_headers(info)
        del headers["Content-Length"]
        with fs.open(path) as body:
            return Response(content=body.read(), headers=headers)

    end = info.size - 1 if range.end is None else min(range.end, info.size - 1)
    if range.start > end:
        return Response(status_code=416, headers={"Content-Range": f"bytes */{info.size}"})
    with fs.open_range_cached(path, autofetch=False) as reader:
        reader.fetch(range.start, end + 1)
        data = reader.read(end + 1 - range.start)
    headers = {
        "Content-Range": f"bytes {range.start}-{end}/{info.size}",
        "Content-Length": str(len(data)),
        "Accept-Ranges": "bytes",
    }
    if info.etag:
        headers["ETag"] = f'"{info.etag}"'
    return Response(status_code=206, content=data, headers=headers)


@router.head("/fs/{path:path}")
def head(fs: FS, path: Annotated[str, Path()]) -> Response:
    return Response(headers=metadata_headers(fs.stat(path)))


def write_object(fs: BucketFS, path: str, body: bytes) -> None:
    with fs.create(path) as writer:
        writer.write(body)


@router.put("/fs/{path:path}")
async def upload(request: Request, fs: FS, path: Annotated[str, Path()]) -> Response:
    body = await request.body()
    await to_thread.run_sync(write_object, fs, path, body)
    return Response(status_code=201)


@router.delete("/fs/{path:path}")
def remove(fs: FS, path: Annotated[str, Path()]) -> Response:
    fs.remove(path)
    return Response(status_code=204)


def error_response(request: Request, exc: Exception) -> Response:
    if isinstance(exc, NotFoundError):
        status = 404
    elif isinstance(exc, UsageError):
        status = 400
    elif isinstance(exc, (BackendStatusError, DecodeError)):
        status = 502
    else:
        status = 500
    return JSONResponse({"detail": str(exc)}, status_code=status)


def make_app(fs: BucketFS) -> FastAPI:
    app = FastAPI()
    app.include_router(router)
    app.state.fs = fs
    app.add_exception_handler(BucketFSError, error_response)
    return app
