"""Document model for Gilt.

A Document is one source file of the site: a page, a post, a collection
member, a layout or an include. It holds the parsed front matter and the raw
body; everything else (title, date, tags, ...) is computed from those on
read.

Key classes:
- DocumentKind: The five kinds of documents.
- Document: Dataclass representing one source file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from .config import apply_front_matter_defaults
from .errors import FileSystemError, FrontMatterError
from .frontmatter import FrontMatterParseError, parse_front_matter
from .utils import (
    extract_date_from_name,
    normalize_list,
    parse_date,
    slugify,
    strip_date_prefix,
    titleize,
)


class DocumentKind(str, Enum):
    """Kind of a document, fixed at construction."""

    PAGE = "page"
    POST = "post"
    COLLECTION = "collection"
    LAYOUT = "layout"
    INCLUDE = "include"


_TEMPLATE_KINDS = frozenset({DocumentKind.LAYOUT, DocumentKind.INCLUDE})


@dataclass
class Document:
    """Represents one source file with front matter and body.

    Attributes:
        path: Absolute path to the file.
        relative_path: Path relative to the site source, in posix form. This
            is the key used by the dependency graph and the registries.
        kind: Kind of document.
        data: Front matter merged with configured defaults.
        content: Raw body with leading whitespace trimmed.
        mtime: Modification time of the file (UTC).
        collection: Collection name for collection members.
        url: Output URL, assigned during URL generation.
    """

    path: Path
    relative_path: str
    kind: DocumentKind
    data: dict[str, Any]
    content: str
    mtime: datetime
    collection: str | None = None
    url: str | None = field(default=None, compare=False)

    @classmethod
    def from_data(
        cls,
        path: Path | str,
        source: Path | str,
        kind: DocumentKind,
        collection: str | None,
        mtime: datetime,
        data: dict[str, Any],
        content: str,
    ) -> Document:
        """Build a Document from already-loaded values without touching disk.

        Args:
            path: Absolute path to the file.
            source: Site source directory.
            kind: Kind of document.
            collection: Collection name, if any.
            mtime: File modification time.
            data: Front matter (defaults already applied).
            content: Body text.

        Returns:
            The Document.
        """
        path = Path(path)
        return cls(
            path=path,
            relative_path=path.relative_to(Path(source)).as_posix(),
            kind=DocumentKind(kind),
            data=data,
            content=content,
            mtime=mtime,
            collection=collection,
        )

    @classmethod
    def from_text(
        cls,
        path: Path | str,
        source: Path | str,
        kind: DocumentKind,
        text: str,
        mtime: datetime,
        collection: str | None = None,
        config: dict[str, Any] | None = None,
    ) -> Document:
        """Build a Document from file content the caller already read.

        Produces the same Document as ``load`` for the same inputs.

        Raises:
            FrontMatterError: If the front matter block is malformed.
        """
        path = Path(path)
        relative_path = path.relative_to(Path(source)).as_posix()
        try:
            front_matter, body = parse_front_matter(text)
        except FrontMatterParseError as exc:
            raise FrontMatterError(
                f"Failed to parse front matter: {exc}", file=relative_path, cause=exc
            ) from exc
        # Front matter defaults never apply to layouts or includes.
        if config is not None and kind not in _TEMPLATE_KINDS:
            doc_type = DocumentKind(kind).value
            if kind == DocumentKind.COLLECTION and collection:
                doc_type = collection
            front_matter = apply_front_matter_defaults(
                relative_path, doc_type, front_matter, config
            )
        return cls.from_data(
            path, source, kind, collection, mtime, front_matter, body.lstrip()
        )

    @classmethod
    def load(
        cls,
        path: Path | str,
        source: Path | str,
        kind: DocumentKind,
        collection: str | None = None,
        config: dict[str, Any] | None = None,
    ) -> Document:
        """Read a file from disk and build a Document.

        Args:
            path: Absolute path to the file.
            source: Site source directory.
            kind: Kind of document.
            collection: Collection name for collection members.
            config: Site configuration; when given, ``encoding`` is honoured
                and front matter defaults are applied to content documents.

        Returns:
            The Document.

        Raises:
            FileSystemError: If the file cannot be stat'ed or read.
            FrontMatterError: If the front matter block is malformed.
        """
        path = Path(path)
        relative_path = path.relative_to(Path(source)).as_posix()
        try:
            mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        except OSError as exc:
            raise FileSystemError(
                "Failed to read file stats", file=relative_path, cause=exc
            ) from exc
        encoding = (config or {}).get("encoding") or "utf-8"
        try:
            text = path.read_text(encoding=encoding)
        except (OSError, UnicodeDecodeError, LookupError) as exc:
            raise FileSystemError(
                f"Failed to read file: {exc}", file=relative_path, cause=exc
            ) from exc
        return cls.from_text(path, source, kind, text, mtime, collection, config)

    @property
    def extname(self) -> str:
        return self.path.suffix

    @property
    def basename(self) -> str:
        """File name without its extension."""
        return self.path.stem

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def has_front_matter(self) -> bool:
        return bool(self.data)

    @property
    def title(self) -> str:
        """Front matter ``title``.

        Posts and collection members fall back to their titleized filename
        (``2024-01-15-hello-world.md`` -> ``Hello World``), others to the
        basename.
        """
        title = self.data.get("title")
        if title:
            return str(title)
        if self.kind in (DocumentKind.POST, DocumentKind.COLLECTION):
            return titleize(self.name)
        return self.basename

    @property
    def date(self) -> datetime | None:
        """Publish date as an aware datetime.

        Front matter ``date`` wins; posts fall back to their
        ``YYYY-MM-DD-`` filename prefix, normalized to midnight UTC.
        """
        parsed = parse_date(self.data.get("date"))
        if parsed is not None:
            return parsed
        if self.kind == DocumentKind.POST:
            return extract_date_from_name(self.basename)
        return None

    @property
    def published(self) -> bool:
        if self.data.get("published") is False:
            return False
        if self.data.get("draft") is True:
            return False
        return True

    @property
    def layout(self) -> str | None:
        layout = self.data.get("layout")
        return str(layout) if layout else None

    @property
    def permalink(self) -> str | None:
        permalink = self.data.get("permalink")
        return str(permalink) if permalink else None

    @property
    def categories(self) -> list[str]:
        return normalize_list(self.data.get("categories"), self.data.get("category"))

    @property
    def tags(self) -> list[str]:
        return normalize_list(self.data.get("tags"), self.data.get("tag"))

    @property
    def slug(self) -> str:
        """Front matter ``slug`` or the slugified basename without date prefix."""
        if self.data.get("slug"):
            return str(self.data["slug"])
        return slugify(strip_date_prefix(self.basename)) or "index"

    @property
    def excerpt(self) -> str:
        """Content up to the first excerpt separator (a blank line by default)."""
        if "excerpt" in self.data:
            return str(self.data["excerpt"])
        separator = self.data.get("excerpt_separator") or "\n\n"
        return self.content.split(separator, 1)[0].strip()

    def to_liquid(self) -> dict[str, Any]:
        """Return the mapping templates see as ``page`` (or a list entry).

        Front matter keys come first and computed fields override them, the
        way Jekyll exposes ``page.title`` and friends.
        """
        context = dict(self.data)
        context.update(
            {
                "path": self.relative_path,
                "relative_path": self.relative_path,
                "type": self.kind.value,
                "collection": self.collection,
                "name": self.name,
                "basename": self.basename,
                "extname": self.extname,
                "slug": self.slug,
                "title": self.title,
                "date": self.date,
                "published": self.published,
                "layout": self.layout,
                "permalink": self.permalink,
                "categories": self.categories,
                "tags": self.tags,
                "url": self.url,
                "content": self.content,
                "excerpt": self.excerpt,
            }
        )
        return context

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"Document({self.kind.value}: {self.relative_path})"
