"""Template rendering for Gilt.

The Renderer wraps a Jinja2 environment configured for Jekyll-style sites:

- Undefined variables render as empty strings (``ChainableUndefined``).
- ``{% include %}``, ``{% include_cached %}`` and ``{% include_relative %}``
  come from ``gilt.tags``; ``{% import %}`` and ``{% extends %}`` load from
  the site's include registry.
- Jekyll filters replace the Jinja built-ins of the same name.

Rendering a document converts its body with the matching ConverterPlugin,
renders it as a template, then walks the layout chain. Every layout and
include used along the way is recorded in the DependencyTracker.

Key classes:
- Renderer: Renders template text and documents.
- IncludeLoader: Jinja loader serving ``site.includes`` to imports.
"""

from __future__ import annotations

import threading
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from jinja2 import BaseLoader, ChainableUndefined, Environment, Template, TemplateNotFound
from jinja2 import TemplateError as JinjaTemplateError
from jinja2 import Undefined
from jinja2.ext import Extension
from markupsafe import Markup

from .converters import IDENTITY_CONVERTER, markdown_to_html
from .dependencies import DependencyTracker
from .document import Document
from .errors import (
    CircularLayoutError,
    GiltError,
    IncludeNotFoundError,
    LayoutNotFoundError,
    TemplateError,
)
from .filters import FILTERS
from .tags import IncludeExtension, IncludeRelativeExtension

if TYPE_CHECKING:
    from collections.abc import Callable

    from .site import Site


@dataclass
class _RenderState:
    """Per-render bookkeeping; never shared between concurrent renders."""

    document: Document
    layouts: list[str] = field(default_factory=list)
    includes: set[str] = field(default_factory=set)


_state: ContextVar[_RenderState | None] = ContextVar("gilt_render_state", default=None)


class IncludeLoader(BaseLoader):
    """Serve ``{% import %}``, ``{% from %}`` and ``{% extends %}`` templates
    from the site's include registry.

    The environment is created with ``cache_size=0`` so this loader sees
    every load and can record it as a dependency of the current document.
    """

    def __init__(self, renderer: Renderer):
        self.renderer = renderer

    def get_source(
        self, environment: Environment, template: str
    ) -> tuple[str, str | None, Callable[[], bool] | None]:
        include = self.renderer.site.get_include(template)
        if include is None:
            raise TemplateNotFound(template)
        self.renderer.record_include(include.relative_path)
        return include.content, str(include.path), lambda: False


_ERROR_LABELS = {
    "TypeError": "Type error",
    "AttributeError": "Attribute error",
    "KeyError": "Missing key",
    "ValueError": "Invalid value",
    "ZeroDivisionError": "Division by zero",
}


def _is_absolute_url(url: str) -> bool:
    return url.startswith(("http://", "https://", "//"))


class Renderer:
    """Jekyll-compatible renderer backed by Jinja2.

    Attributes:
        site: Site whose layouts, includes and data are used.
        tracker: Dependency tracker receiving layout/include usage.
        env: The Jinja2 environment; extend it via ``register_filter`` and
            ``register_extension``.
    """

    def __init__(self, site: Site, tracker: DependencyTracker | None = None):
        """Initialize the renderer.

        Args:
            site: Site to render.
            tracker: Optional dependency tracker; a fresh one is created
                otherwise.
        """
        self.site = site
        self.tracker = tracker if tracker is not None else DependencyTracker()
        self.env = Environment(
            loader=IncludeLoader(self),
            autoescape=False,
            undefined=ChainableUndefined,
            cache_size=0,
        )
        self.env.extend(gilt_renderer=self)
        self.env.filters.update(FILTERS)
        self.env.filters["relative_url"] = self.relative_url
        self.env.filters["absolute_url"] = self.absolute_url
        self.env.filters["markdownify"] = self.markdownify
        self.register_extension(IncludeRelativeExtension)
        self.register_extension(IncludeExtension)

        self._lock = threading.Lock()
        self._site_context: dict[str, Any] | None = None
        self._templates: dict[tuple[str, str], Template] = {}

    # --- extension surface ------------------------------------------------

    def register_filter(self, name: str, func: Callable[..., Any]) -> None:
        """Register (or replace) a template filter.

        Args:
            name: Filter name used in templates.
            func: Callable receiving the filtered value first.
        """
        self.env.filters[name] = func

    def register_extension(self, extension: type[Extension] | str) -> None:
        """Register a Jinja extension providing custom tags.

        Extensions reach this renderer through ``environment.gilt_renderer``.
        """
        self.env.add_extension(extension)

    # --- site context cache -------------------------------------------------

    def preload_site_data(self) -> None:
        """Build the site-wide template context now instead of on first use."""
        with self._lock:
            if self._site_context is None:
                self._site_context = self._build_site_context()

    def invalidate_site_cache(self) -> None:
        """Discard the cached site context and compiled templates."""
        with self._lock:
            self._site_context = None
            self._templates.clear()

    def site_context(self) -> dict[str, Any]:
        """Return the ``site`` mapping templates see, building it if needed."""
        self.preload_site_data()
        assert self._site_context is not None
        return self._site_context

    def _build_site_context(self) -> dict[str, Any]:
        site = self.site
        pages = [d.to_liquid() for d in site.pages]
        posts = [d.to_liquid() for d in site.posts]
        collections = {
            name: [d.to_liquid() for d in docs] for name, docs in site.collections.items()
        }
        documents = [d for docs in collections.values() for d in docs]
        collections["posts"] = posts

        context = dict(site.config)
        context.update(
            {
                "time": datetime.now(timezone.utc),
                "pages": pages,
                "posts": posts,
                "collections": collections,
                "documents": documents,
                "data": site.data,
                "static_files": [f.to_liquid() for f in site.static_files],
                "categories": _group_posts(posts, "categories"),
                "tags": _group_posts(posts, "tags"),
            }
        )
        for name, docs in collections.items():
            context.setdefault(name, docs)
        return context

    # --- rendering ------------------------------------------------------------

    @staticmethod
    def current_document() -> Document | None:
        """Return the document being rendered in this context, if any."""
        state = _state.get()
        return state.document if state is not None else None

    def record_include(self, relative_path: str) -> None:
        """Note that the current document used an include."""
        state = _state.get()
        if state is not None:
            state.includes.add(relative_path)

    def compile_template(self, key: str, source: str) -> Template:
        """Compile template source, reusing earlier compilations of it.

        Args:
            key: Path of the file the source came from.
            source: Template source.

        Returns:
            The compiled template.
        """
        cache_key = (key, source)
        with self._lock:
            template = self._templates.get(cache_key)
        if template is None:
            template = self.env.from_string(source)
            with self._lock:
                self._templates.setdefault(cache_key, template)
        return template

    def render(self, template_text: str, context: dict[str, Any] | None = None) -> str:
        """Render template text against a context.

        ``site`` is provided unless the context defines it.

        Args:
            template_text: Jinja template source.
            context: Template variables.

        Returns:
            Rendered text.

        Raises:
            TemplateError: If the template is invalid or fails to render.
        """
        variables = {"site": self.site_context()}
        variables.update(context or {})
        return self._render_text(None, template_text, variables, None)

    def render_document(self, document: Document) -> str:
        """Render a document: convert, render the body, then apply layouts.

        Args:
            document: Document to render.

        Returns:
            The final output.

        Raises:
            LayoutNotFoundError: If a layout in the chain does not exist.
            CircularLayoutError: If the layout chain loops.
            IncludeError: If an include cannot be resolved.
            TemplateError: For any other template failure.
        """
        state = _RenderState(document)
        token = _state.set(state)
        try:
            converter = self.site.plugins.find_converter(document.extname) or IDENTITY_CONVERTER
            body = converter.convert(document.content, document, self.site)
            page = document.to_liquid()
            context = {"site": self.site_context(), "page": page}
            content = self._render_text(
                document.relative_path, body, context, document.relative_path
            )
            return self._apply_layouts(document, content, page, state)
        finally:
            _state.reset(token)
            self.tracker.track_document(document, state.layouts, state.includes)

    def _apply_layouts(
        self,
        document: Document,
        content: str,
        page: dict[str, Any],
        state: _RenderState,
    ) -> str:
        visited: list[str] = []
        name = document.layout
        while name:
            if name in visited:
                raise CircularLayoutError(visited + [name], file=document.relative_path)
            layout = self.site.get_layout(name)
            if layout is None:
                raise LayoutNotFoundError(name, file=document.relative_path)
            visited.append(name)
            state.layouts.append(layout.relative_path)
            context = {
                "site": self.site_context(),
                "page": {**page, "content": content},
                "layout": layout.data,
                "content": content,
            }
            content = self._render_text(
                layout.relative_path, layout.content, context, layout.relative_path
            )
            name = layout.layout
        return content

    def _render_text(
        self,
        key: str | None,
        source: str,
        context: dict[str, Any],
        file: str | None,
    ) -> str:
        try:
            if key is None:
                template = self.env.from_string(source)
            else:
                template = self.compile_template(key, source)
            return template.render(context)
        except TemplateNotFound as exc:
            raise IncludeNotFoundError(str(exc.name), file=file) from exc
        except GiltError:
            raise
        except JinjaTemplateError as exc:
            raise TemplateError(f"Template error: {exc}", file=file, cause=exc) from exc
        except Exception as exc:
            kind = type(exc).__name__
            raise TemplateError(
                f"{_ERROR_LABELS.get(kind, kind)}: {exc}", file=file, cause=exc
            ) from exc

    # --- context-bound filters ------------------------------------------------

    def relative_url(self, value: Any) -> str:
        """Prefix a site-relative URL with ``baseurl``."""
        baseurl = str(self.site.config.get("baseurl") or "").strip("/")
        baseurl = f"/{baseurl}" if baseurl else ""
        url = "" if value is None or isinstance(value, Undefined) else str(value)
        if not url:
            return baseurl
        if _is_absolute_url(url):
            return url
        return baseurl + (url if url.startswith("/") else f"/{url}")

    def absolute_url(self, value: Any) -> str:
        """Prefix a site-relative URL with ``url`` and ``baseurl``."""
        url = "" if value is None or isinstance(value, Undefined) else str(value)
        if _is_absolute_url(url):
            return url
        site_url = str(self.site.config.get("url") or "").rstrip("/")
        return site_url + self.relative_url(url)

    def markdownify(self, value: Any) -> Markup:
        """Convert markdown text with the site's markdown converter."""
        text = "" if value is None or isinstance(value, Undefined) else str(value)
        converter = self.site.plugins.find_converter(".md")
        if converter is None:
            return Markup(markdown_to_html(text))
        return Markup(converter.convert(text, self.current_document(), self.site))


def _group_posts(posts: list[dict[str, Any]], key: str) -> dict[str, list[dict[str, Any]]]:
    groups: dict[str, list[dict[str, Any]]] = {}
    for post in posts:
        for value in post.get(key) or []:
            groups.setdefault(value, []).append(post)
    return groups
