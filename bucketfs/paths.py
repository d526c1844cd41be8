import posixpath
from dataclasses import dataclass

ROOT = ""


def clean(path: str) -> str:
    # anchoring at "/" makes ".." above the root collapse into the root
    cleaned = posixpath.normpath("/" + path.replace("\\", "/"))
    return cleaned.lstrip("/")


@dataclass(frozen=True)
class PathMapper:
    prefix: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "prefix", clean(self.prefix))

    def key(self, path: str) -> str:
        path = clean(path)
        if not self.prefix:
            return path
        if path == ROOT:
            return self.prefix
        return f"{self.prefix}/{path}"

    def dir_prefix(self, path: str) -> str:
        """Listing prefix for everything below `path`."""
        key = self.key(path)
        return f"{key}/" if key else ""
