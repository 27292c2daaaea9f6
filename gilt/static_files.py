"""Static file descriptors.

Static files are everything in the source tree that is not a document:
images, stylesheets, files without front matter. They are copied verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .errors import FileSystemError


@dataclass(frozen=True)
class StaticFile:
    """A non-document file of the site.

    Attributes:
        path: Absolute path to the file.
        relative_path: Posix path relative to the site source.
        size: Size in bytes.
        modified_time: Modification time (UTC).
        collection: Collection the file belongs to, if any.
    """

    path: Path
    relative_path: str
    size: int
    modified_time: datetime
    collection: str | None = None

    @classmethod
    def from_path(
        cls, path: Path, source: Path, collection: str | None = None
    ) -> StaticFile:
        """Describe a file on disk.

        Raises:
            FileSystemError: If the file cannot be stat'ed.
        """
        relative_path = path.relative_to(source).as_posix()
        try:
            stat = path.stat()
        except OSError as exc:
            raise FileSystemError(
                "Failed to read file stats", file=relative_path, cause=exc
            ) from exc
        return cls(
            path=path,
            relative_path=relative_path,
            size=stat.st_size,
            modified_time=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            collection=collection,
        )

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def basename(self) -> str:
        return self.path.stem

    @property
    def extname(self) -> str:
        return self.path.suffix

    @property
    def url(self) -> str:
        """Output URL; collection files drop the leading underscore."""
        path = self.relative_path.lstrip("/")
        if self.collection and path.startswith(f"_{self.collection}/"):
            path = path[1:]
        return "/" + path

    def to_liquid(self) -> dict[str, Any]:
        return {
            "path": self.url,
            "relative_path": self.relative_path,
            "name": self.name,
            "basename": self.basename,
            "extname": self.extname,
            "size": self.size,
            "modified_time": self.modified_time,
            "collection": self.collection,
            "url": self.url,
        }
