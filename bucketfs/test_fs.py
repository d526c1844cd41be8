import io

import httpx
import pytest

from bucketfs.config import S3Config
from bucketfs.conftest import CountingBackend
from bucketfs.errors import NotFoundError, UsageError
from bucketfs.fs import BucketFS
from bucketfs.storage.s3 import S3Storage


def write(fs: BucketFS, path: str, data: bytes) -> None:
    with fs.create(path) as writer:
        writer.write(data)


@pytest.mark.parametrize(
    "data",
    [b"", b"x", bytes(range(256)) * 300],
    ids=["empty", "single-byte", "large"],
)
def test_create_then_open_round_trips(fs: BucketFS, data: bytes) -> None:
    write(fs, "dir/file.bin", data)
    with fs.open("dir/file.bin") as f:
        assert f.read() == data


def test_create_overwrites(fs: BucketFS) -> None:
    write(fs, "f", b"first version")
    write(fs, "f", b"second")
    assert fs.open("f").read() == b"second"
    assert fs.stat("f").size == 6


def test_failed_write_is_discarded(fs: BucketFS, backend: CountingBackend) -> None:
    with pytest.raises(RuntimeError):
        with fs.create("f") as writer:
            writer.write(b"partial")
            raise RuntimeError("boom")
    assert backend.storage == {}
    with pytest.raises(ValueError):
        writer.write(b"more")


def test_writer_is_a_raw_stream(fs: BucketFS) -> None:
    writer = fs.create("f")
    assert isinstance(writer, io.RawIOBase)
    assert writer.writable()
    with io.BufferedWriter(writer, buffer_size=4) as buffered:
        buffered.write(b"hello ")
        buffered.write(b"world")
    assert writer.closed
    assert fs.open("f").read() == b"hello world"


def test_remove_then_stat_is_not_found(fs: BucketFS) -> None:
    write(fs, "a/b.txt", b"hello")
    fs.remove("a/b.txt")

    with pytest.raises(NotFoundError) as exc_info:
        fs.stat("a/b.txt")
    assert exc_info.value.op == "stat"
    assert exc_info.value.path == "a/b.txt"
    with pytest.raises(NotFoundError):
        fs.stat("a")


def test_remove_missing_object_succeeds(fs: BucketFS, backend: CountingBackend) -> None:
    fs.remove("never/created")
    assert backend.calls == [("delete", "never/created")]


def test_mkdir_has_no_backend_effect(fs: BucketFS, backend: CountingBackend) -> None:
    fs.mkdir("a")
    fs.mkdir_all("a/b/c")
    fs.mkdir("")
    assert backend.calls == []
    assert backend.storage == {}


def test_open_missing_names_operation(fs: BucketFS) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        fs.open("/missing.txt")
    assert str(exc_info.value) == "open missing.txt: no such key: missing.txt"


def test_read_dir(fs: BucketFS) -> None:
    write(fs, "a/b.txt", b"hello")
    write(fs, "a/c.txt", b"hi")
    write(fs, "ab.txt", b"not inside a")

    entries = fs.read_dir("a")
    assert [(e.name, e.size, e.is_dir) for e in entries] == [("b.txt", 5, False), ("c.txt", 2, False)]


def test_read_dir_passes_deeper_keys_through(fs: BucketFS) -> None:
    write(fs, "a/b.txt", b"1")
    write(fs, "a/sub/deep.txt", b"22")

    assert [e.name for e in fs.read_dir("a")] == ["b.txt", "deep.txt"]


def test_read_dir_root_and_missing(fs: BucketFS) -> None:
    write(fs, "top.txt", b"1")
    write(fs, "a/b.txt", b"2")

    assert sorted(e.name for e in fs.read_dir("/")) == ["b.txt", "top.txt"]
    assert fs.read_dir("nothing/here") == []


def test_prefix_scopes_every_operation(backend: CountingBackend) -> None:
    fs = BucketFS(backend, prefix="tenant")
    write(fs, "a/b.txt", b"hello")

    assert list(backend.storage) == ["tenant/a/b.txt"]
    assert fs.stat("a").is_dir
    assert fs.stat("/").is_dir
    assert [e.name for e in fs.read_dir("")] == ["b.txt"]
    fs.remove("a/b.txt")
    assert backend.storage == {}


def test_hello_scenario(fs: BucketFS, backend: CountingBackend) -> None:
    write(fs, "a/b.txt", b"hello")

    entries = fs.read_dir("a")
    assert len(entries) == 1
    assert (entries[0].name, entries[0].size) == ("b.txt", 5)

    reader = fs.open_range_cached("a/b.txt")
    reader.fetch(0, 2)
    assert reader.read(2) == b"he"
    assert reader.window == (0, 2)

    backend.calls.clear()
    assert reader.seek(0) == 0
    assert reader.read(5) == b"hello"
    assert len(backend.gets()) == 1
    assert reader.window == (0, 25)
    reader.close()


def test_from_url_splits_bucket_and_prefix() -> None:
    with httpx.Client() as client:
        fs = BucketFS.from_url(
            "https://s3.us-west-2.amazonaws.com/mybucket/some/prefix/",
            S3Config("AKID", "SECRET", region="us-west-2"),
            client=client,
        )
        assert isinstance(fs.backend, S3Storage)
        assert fs.backend.bucket_url == "https://s3.us-west-2.amazonaws.com/mybucket"
        assert fs.paths.key("x.txt") == "some/prefix/x.txt"

        with pytest.raises(ValueError):
            BucketFS.from_url("https://s3.amazonaws.com/", S3Config("AKID", "SECRET"), client=client)


@pytest.mark.parametrize("path", ["", "/", ".", "a/.."])
def test_root_is_not_an_object(fs: BucketFS, backend: CountingBackend, path: str) -> None:
    write(fs, "a/b.txt", b"hello")
    backend.calls.clear()

    with pytest.raises(UsageError, match="root directory is not an object") as exc_info:
        fs.remove(path)
    assert exc_info.value.op == "remove"
    with pytest.raises(UsageError):
        fs.open(path)
    with pytest.raises(UsageError):
        fs.open_range_cached(path)
    with pytest.raises(UsageError):
        fs.create(path)
    assert backend.calls == []
    assert list(backend.storage) == ["a/b.txt"]


def test_prefix_root_is_not_an_object(backend: CountingBackend) -> None:
    fs = BucketFS(backend, prefix="tenant")
    with pytest.raises(UsageError) as exc_info:
        fs.remove("/")
    assert str(exc_info.value) == "remove tenant: the root directory is not an object"
    assert backend.calls == []
