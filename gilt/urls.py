"""URL generation for Gilt.

Derives the output URL of every document and maps URLs to output paths
below the destination directory.

Posts follow the site's ``permalink`` setting, either a named style or a
pattern of ``:placeholders``. Pages map their source path to a URL
(``about.md`` -> ``/about.html``, ``docs/index.md`` -> ``/docs/``).
Collection members use their collection's ``permalink`` pattern, or
``/<collection>/<name>.html``. A ``permalink`` in front matter always wins.
"""

from __future__ import annotations

import posixpath
import re
from datetime import datetime
from pathlib import PurePosixPath
from typing import Any

from .config import markdown_extensions
from .document import Document, DocumentKind
from .plugins import PluginRegistry
from .utils import slugify, strip_date_prefix

POST_STYLES = {
    "date": "/:categories/:year/:month/:day/:title:output_ext",
    "pretty": "/:categories/:year/:month/:day/:title/",
    "ordinal": "/:categories/:year/:y_day/:title:output_ext",
    "none": "/:categories/:title:output_ext",
}

_PLACEHOLDER_RE = re.compile(r":([a-z_]+)")


class UrlGenerator:
    """Assigns URLs to documents.

    Attributes:
        config: Site configuration.
        plugins: Converter registry used to find each document's output
            extension; without one, markdown extensions map to ``.html``.
    """

    def __init__(self, config: dict[str, Any], plugins: PluginRegistry | None = None):
        self.config = config
        self.plugins = plugins
        self._markdown_ext = markdown_extensions(config)

    def output_ext(self, document: Document) -> str:
        """Return the extension the rendered document is written with."""
        ext = document.extname
        if self.plugins is not None:
            converter = self.plugins.find_converter(ext)
            if converter is not None:
                return converter.output_ext(ext)
        if ext.lower() in self._markdown_ext:
            return ".html"
        return ext

    def generate(self, document: Document) -> str:
        """Compute a document's URL and store it on ``document.url``.

        Args:
            document: Page, post or collection member.

        Returns:
            The URL, always starting with ``/``.
        """
        if document.permalink:
            url = self.expand(document.permalink, document)
        elif document.kind == DocumentKind.POST:
            url = self._post_url(document)
        elif document.kind == DocumentKind.COLLECTION:
            url = self._collection_url(document)
        else:
            url = self._page_url(document)
        document.url = url
        return url

    def _post_url(self, document: Document) -> str:
        style = str(self.config.get("permalink") or "date")
        return self.expand(POST_STYLES.get(style, style), document)

    def _page_url(self, document: Document) -> str:
        rel = PurePosixPath(document.relative_path)
        parent = "" if str(rel.parent) == "." else f"{rel.parent.as_posix()}/"
        if rel.stem == "index":
            return f"/{parent}"
        return f"/{parent}{rel.stem}{self.output_ext(document)}"

    def _collection_url(self, document: Document) -> str:
        options = self.config.get("collections", {}).get(document.collection or "", {})
        pattern = options.get("permalink") if isinstance(options, dict) else None
        if pattern:
            return self.expand(str(pattern), document)
        return f"/{document.collection}/{document.basename}{self.output_ext(document)}"

    def placeholders(self, document: Document) -> dict[str, str]:
        """Return the values available to permalink patterns."""
        date = document.date or document.mtime
        title_source = document.data.get("slug") or strip_date_prefix(document.basename)
        rel = PurePosixPath(document.relative_path)
        if document.collection:
            collection_rel = PurePosixPath(*rel.parts[1:]) if len(rel.parts) > 1 else rel
            path = collection_rel.with_suffix("").as_posix()
        else:
            path = "" if str(rel.parent) == "." else rel.parent.as_posix()
        categories = []
        for category in document.categories:
            category = category.lower()
            if category not in categories:
                categories.append(category)
        return {
            "year": f"{date.year:04d}",
            "short_year": f"{date.year % 100:02d}",
            "month": f"{date.month:02d}",
            "i_month": str(date.month),
            "short_month": date.strftime("%b"),
            "long_month": date.strftime("%B"),
            "day": f"{date.day:02d}",
            "i_day": str(date.day),
            "y_day": f"{_day_of_year(date):03d}",
            "week": f"{date.isocalendar()[1]:02d}",
            "hour": f"{date.hour:02d}",
            "minute": f"{date.minute:02d}",
            "second": f"{date.second:02d}",
            "title": slugify(title_source, mode="pretty", cased=True),
            "slug": slugify(title_source),
            "name": slugify(document.basename),
            "basename": document.basename,
            "categories": "/".join(categories),
            "collection": document.collection or "",
            "path": path,
            "output_ext": self.output_ext(document),
        }

    def expand(self, pattern: str, document: Document) -> str:
        """Expand ``:placeholders`` in a permalink pattern.

        Unknown placeholders are left as written. Empty segments collapse,
        so ``/:categories/:title.html`` without categories is ``/title.html``.
        """
        values = self.placeholders(document)
        url = _PLACEHOLDER_RE.sub(
            lambda m: values.get(m.group(1), m.group(0)), pattern
        )
        return _clean_url(url)


def _day_of_year(date: datetime) -> int:
    return date.timetuple().tm_yday


def _clean_url(url: str) -> str:
    trailing = url.endswith("/")
    url = re.sub(r"/{2,}", "/", "/" + url.strip())
    if trailing and not url.endswith("/"):
        url += "/"
    return url


def output_path(url: str) -> str:
    """Map a URL to a file path relative to the destination directory.

    ``/`` becomes ``index.html``, directory URLs get an ``index.html`` and
    extensionless URLs are treated as directories.

    Examples:
        >>> output_path("/2024/01/15/hello.html")
        '2024/01/15/hello.html'
        >>> output_path("/docs/")
        'docs/index.html'
    """
    path = url.lstrip("/")
    if not path:
        return "index.html"
    if path.endswith("/"):
        return f"{path}index.html"
    if posixpath.splitext(path)[1]:
        return path
    return f"{path}/index.html"
