"""Site model for Gilt.

The Site scans a Jekyll-style source tree once and classifies every regular
file:

- ``_layouts/**``: layouts, keyed by path without extension (``default``).
- ``_includes/**``: includes, keyed by path relative to the includes root.
- ``_data/**``: data files, merged into ``site.data``.
- ``_posts/**``: posts named ``YYYY-MM-DD-title.ext``.
- ``_<name>/**``: members of the configured collection ``name``.
- anything else with valid front matter: a page.
- everything else: a static file.

Excluded paths (configured excludes, the destination, dot and underscore
prefixed entries that are not recognized above) never show up anywhere.
"""

from __future__ import annotations

import fnmatch
from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import load_config, markdown_extensions, merge_config
from .data import load_data_dir, merge_preserving
from .document import Document, DocumentKind
from .errors import FileSystemError
from .frontmatter import has_front_matter
from .plugins import PluginRegistry
from .static_files import StaticFile
from .utils import POST_FILENAME_RE, is_within

HTML_EXTENSIONS = {".html", ".htm"}
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def create_site_from_config(config_path: Path | str = "_config.yml") -> Site:
    """Create a Site from a configuration file.

    A missing configuration file is not an error: the built-in defaults are
    used with the file's directory as source.

    Args:
        config_path: Path to ``_config.yml``.

    Returns:
        A new, not yet read, Site.
    """
    config = load_config(config_path)
    source = config.get("source") or Path(config_path).resolve().parent
    return Site(source, config)


class Site:
    """A Jekyll-style site and all of its documents.

    Attributes:
        source: Absolute source directory.
        destination: Absolute destination directory.
        config: Merged configuration.
        pages: Pages, in scan order.
        posts: Posts, newest first.
        layouts: Layout name -> Document.
        includes: Include path -> Document.
        collections: Collection name -> Documents.
        data: Data loaded from the data directory (plus plugin-seeded keys).
        static_files: Non-document files.
        plugins: Plugin registry owned by this site.
    """

    def __init__(
        self,
        source: Path | str,
        config: dict[str, Any] | None = None,
        plugins: PluginRegistry | None = None,
    ):
        """Initialize the site.

        Args:
            source: Source directory.
            config: Configuration values; merged over the defaults.
            plugins: Optional plugin registry; a fresh one is created otherwise.

        Raises:
            FileSystemError: If the source directory does not exist.
        """
        self.source = Path(source).resolve()
        if not self.source.is_dir():
            raise FileSystemError(
                f"Source directory does not exist: {self.source}", file=str(self.source)
            )
        self.config = merge_config(config, self.source)
        self.config["source"] = str(self.source)
        self.destination = Path(self.config["destination"]).resolve()
        if is_within(self.destination, self.source):
            dest_rel = self.destination.relative_to(self.source).as_posix()
            if dest_rel != "." and dest_rel not in self.config["exclude"]:
                self.config["exclude"].append(dest_rel)

        self.pages: list[Document] = []
        self.posts: list[Document] = []
        self.layouts: dict[str, Document] = {}
        self.includes: dict[str, Document] = {}
        self.collections: dict[str, list[Document]] = {}
        self.data: dict[str, Any] = {}
        self.static_files: list[StaticFile] = []
        self.plugins = plugins or PluginRegistry()

        self._markdown_ext = markdown_extensions(self.config)
        self._scanned: set[str] = set()
        self._file_data_keys: set[str] = set()

    @property
    def layouts_dir(self) -> Path:
        return self.source / self.config.get("layouts_dir", "_layouts")

    @property
    def includes_dir(self) -> Path:
        return self.source / self.config.get("includes_dir", "_includes")

    @property
    def data_dir(self) -> Path:
        return self.source / self.config.get("data_dir", "_data")

    def read(self) -> None:
        """Scan the source tree and populate the site.

        Documents and data keys set before the scan (by plugins) are kept;
        file-sourced data never overwrites an existing key.

        Raises:
            FileSystemError: If a document cannot be read.
            FrontMatterError: If a document has malformed front matter.
        """
        previous = self._scanned
        self._scanned = set()

        self.layouts = self._keep_seeded_map(self.layouts, previous)
        self.includes = self._keep_seeded_map(self.includes, previous)
        self._read_layouts()
        self._read_includes()
        self._read_data()

        seeded_pages = [d for d in self.pages if d.relative_path not in previous]
        seeded_posts = [d for d in self.posts if d.relative_path not in previous]
        seeded_collections = {
            name: [d for d in docs if d.relative_path not in previous]
            for name, docs in self.collections.items()
        }
        self.pages, self.posts, self.static_files = [], [], []
        self.collections = {}

        self._read_posts()
        self.posts = seeded_posts + self.posts
        self.sort_posts()
        self._read_collections()
        for name, docs in seeded_collections.items():
            self.collections[name] = docs + self.collections.get(name, [])
        self._read_pages_and_static_files()
        self.pages = seeded_pages + self.pages

    def sort_posts(self) -> None:
        """Sort posts newest first; equal dates keep their scan order."""
        self.posts = sorted(self.posts, key=lambda d: d.date or _EPOCH, reverse=True)

    def _keep_seeded_map(
        self, mapping: dict[str, Document], previous: set[str]
    ) -> dict[str, Document]:
        return {k: d for k, d in mapping.items() if d.relative_path not in previous}

    def _load(
        self, path: Path, kind: DocumentKind, collection: str | None = None
    ) -> Document:
        document = Document.load(path, self.source, kind, collection, self.config)
        self._scanned.add(document.relative_path)
        return document

    def _read_layouts(self) -> None:
        for path in self._walk(self.layouts_dir, recognized=True):
            name = path.relative_to(self.layouts_dir).with_suffix("").as_posix()
            if name in self.layouts:
                continue
            self.layouts[name] = self._load(path, DocumentKind.LAYOUT)

    def _read_includes(self) -> None:
        for path in self._walk(self.includes_dir, recognized=True):
            key = path.relative_to(self.includes_dir).as_posix()
            if key in self.includes:
                continue
            self.includes[key] = self._load(path, DocumentKind.INCLUDE)

    def _read_data(self) -> None:
        for key in self._file_data_keys:
            self.data.pop(key, None)
        preexisting = set(self.data)
        loaded = load_data_dir(self.data_dir, self.is_excluded)
        merge_preserving(self.data, loaded)
        self._file_data_keys = set(loaded) - preexisting

    def _read_posts(self) -> None:
        posts_dir = self.source / "_posts"
        for path in self._walk(posts_dir, recognized=True):
            if not self.is_document_ext(path) or not POST_FILENAME_RE.match(path.name):
                continue
            self.posts.append(self._load(path, DocumentKind.POST))

    def _read_collections(self) -> None:
        for name, options in self.config.get("collections", {}).items():
            if name == "posts":
                continue
            collection_dir = self.source / f"_{name}"
            documents: list[Document] = []
            for path in self._walk(collection_dir, recognized=True):
                if self.is_document_ext(path):
                    documents.append(
                        self._load(path, DocumentKind.COLLECTION, collection=name)
                    )
                elif options.get("output"):
                    self._add_static_file(path, collection=name)
            self.collections[name] = documents

    def _read_pages_and_static_files(self) -> None:
        encoding = self.config.get("encoding") or "utf-8"
        special_dirs = (self.layouts_dir, self.includes_dir, self.data_dir)
        for path in self._walk(self.source):
            if any(is_within(path, special) for special in special_dirs):
                continue
            try:
                stat = path.stat()
                with open(path, "rb") as f:
                    raw = f.read()
            except OSError as exc:
                raise FileSystemError(
                    f"Failed to read file: {exc}",
                    file=path.relative_to(self.source).as_posix(),
                    cause=exc,
                ) from exc
            text = None
            if raw.startswith(b"---"):
                try:
                    text = raw.decode(encoding)
                except (UnicodeDecodeError, LookupError):
                    text = None
            if text is not None and has_front_matter(text):
                mtime = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
                document = Document.from_text(
                    path, self.source, DocumentKind.PAGE, text, mtime, config=self.config
                )
                self._scanned.add(document.relative_path)
                self.pages.append(document)
            else:
                self._add_static_file(path)

    def _add_static_file(self, path: Path, collection: str | None = None) -> None:
        try:
            self.static_files.append(StaticFile.from_path(path, self.source, collection))
        except FileSystemError as exc:
            print(f"Warning: Failed to read static file {path}: {exc.message}")

    def _walk(self, directory: Path, recognized: bool = False) -> Iterator[Path]:
        """Yield files below a directory, skipping excluded entries.

        Args:
            directory: Directory to walk.
            recognized: True when walking a recognized special directory, in
                which nested underscore directories are allowed.
        """
        if not directory.is_dir() or self.is_excluded(directory):
            return
        for entry in sorted(directory.iterdir()):
            if self.is_excluded(entry):
                continue
            if not self._is_included_name(entry.name, recognized):
                continue
            if entry.is_dir():
                yield from self._walk(entry, recognized)
            elif entry.is_file():
                yield entry

    def _is_included_name(self, name: str, recognized: bool) -> bool:
        if name in self.config.get("include", []):
            return True
        if name.startswith((".", "#")) or name.endswith("~"):
            return False
        if name.startswith("_") and not recognized:
            return False
        return True

    def is_excluded(self, path: Path) -> bool:
        """Check whether a path is excluded from the site.

        The destination directory and everything matching an ``exclude``
        pattern (exact path, directory prefix or glob) is excluded.
        """
        if is_within(path, self.destination):
            return True
        try:
            rel = path.resolve().relative_to(self.source).as_posix()
        except ValueError:
            return True
        if rel == ".":
            return False
        for pattern in self.config.get("exclude", []):
            pattern = str(pattern).strip("/")
            if not pattern:
                continue
            if rel == pattern or rel.startswith(pattern + "/"):
                return True
            if fnmatch.fnmatch(rel, pattern) or fnmatch.fnmatch(path.name, pattern):
                return True
        return False

    def is_document_ext(self, path: Path) -> bool:
        """Check whether a file in a posts/collection directory is a document."""
        ext = path.suffix.lower()
        return ext in self._markdown_ext or ext in HTML_EXTENSIONS

    def get_all_documents(self) -> list[Document]:
        """Return pages, posts, layouts, includes and collection documents."""
        documents = [
            *self.pages,
            *self.posts,
            *self.layouts.values(),
            *self.includes.values(),
        ]
        for docs in self.collections.values():
            documents.extend(docs)
        return documents

    def get_layout(self, name: str) -> Document | None:
        return self.layouts.get(name)

    def get_include(self, path: str) -> Document | None:
        return self.includes.get(path)

    def get_collection(self, name: str) -> list[Document]:
        return self.collections.get(name, [])

    def find_document(self, relative_path: str) -> Document | None:
        """Look up any document by its path relative to the source."""
        for document in self.get_all_documents():
            if document.relative_path == relative_path:
                return document
        return None

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"Site({self.source}, {len(self.pages)} pages, {len(self.posts)} posts)"
