"""Jekyll include tags for the Jinja environment.

``{% include "path" %}`` and ``{% include_cached "path" %}`` resolve against
the site's include registry and share one implementation, which reuses each
compiled include across uses.
``{% include_relative "path" %}`` includes a file relative to the directory
of the document being rendered.

All three tags accept optional ``name=value`` parameters, exposed to the
included template as ``include.name``:

    {% include "card.html" title=page.title %}

Included templates see the caller's variables, including loop and
``{% set %}`` locals.

The extensions find their Renderer through ``environment.gilt_renderer``,
which the Renderer sets with ``Environment.extend``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from jinja2 import nodes
from jinja2.ext import Extension
from jinja2.lexer import TOKEN_BLOCK_BEGIN, TOKEN_NAME, Token, TokenStream
from jinja2.runtime import Context
from markupsafe import Markup

from .errors import (
    IncludeNotAFileError,
    IncludeNotFoundError,
    IncludePathTraversalError,
)
from .frontmatter import parse_front_matter
from .utils import is_within

if TYPE_CHECKING:
    from jinja2.parser import Parser

    from .renderer import Renderer


class _IncludeExtension(Extension, ABC):
    """Shared parsing for include-style tags: a path plus keyword params."""

    def parse(self, parser: Parser) -> nodes.Node:
        lineno = next(parser.stream).lineno
        path = parser.parse_expression()
        params = []
        while parser.stream.current.type != "block_end":
            parser.stream.skip_if("comma")
            key = parser.stream.expect("name")
            parser.stream.expect("assign")
            params.append(nodes.Pair(nodes.Const(key.value), parser.parse_expression()))
        call = self.call_method(
            "_render_include",
            [path, nodes.Dict(params), nodes.DerivedContextReference()],
            lineno=lineno,
        )
        return nodes.Output([call], lineno=lineno)

    @property
    def renderer(self) -> Renderer:
        return self.environment.gilt_renderer  # type: ignore[attr-defined]

    @abstractmethod
    def _render_include(
        self, path: Any, params: dict[str, Any], context: Context
    ) -> Markup:
        """Render the included file against the caller's context.

        Args:
            path: Evaluated path expression.
            params: Evaluated ``name=value`` parameters.
            context: The caller's context, locals included.
        """

    def _render_template(
        self, key: str, source: str, params: dict[str, Any], context: Context
    ) -> Markup:
        template = self.renderer.compile_template(key, source)
        return Markup(template.render({**context.get_all(), "include": params}))


class IncludeRelativeExtension(_IncludeExtension):
    """``{% include_relative %}``: include a file next to the current document.

    Paths resolve against the including document's directory (the source
    root when rendering plain text). The resolved path must stay inside the
    site source, exist and be a regular file.
    """

    tags = {"include_relative"}

    def _render_include(
        self, path: Any, params: dict[str, Any], context: Context
    ) -> Markup:
        renderer = self.renderer
        source = renderer.site.source
        document = renderer.current_document()
        base_dir = document.path.parent if document is not None else source
        name = str(path)
        file_ref = document.relative_path if document is not None else None

        target = (base_dir / name).resolve()
        if not is_within(target, source):
            raise IncludePathTraversalError(name, file=file_ref)
        if not target.exists():
            raise IncludeNotFoundError(name, file=file_ref)
        if not target.is_file():
            raise IncludeNotAFileError(name, file=file_ref)

        encoding = renderer.site.config.get("encoding") or "utf-8"
        _, body = parse_front_matter(target.read_text(encoding=encoding))
        relative_path = target.relative_to(source).as_posix()
        renderer.record_include(relative_path)
        return self._render_template(relative_path, body, params, context)


class IncludeExtension(_IncludeExtension):
    """``{% include %}`` and ``{% include_cached %}`` from the include registry.

    Jinja parses its own ``include`` keyword before consulting extensions,
    so ``filter_stream`` renames that tag to ``include_cached`` and both
    spellings reach ``_render_include``.
    """

    tags = {"include_cached"}

    def filter_stream(self, stream: TokenStream) -> Iterator[Token]:
        after_block_begin = False
        for token in stream:
            if after_block_begin and token.test("name:include"):
                token = Token(token.lineno, TOKEN_NAME, "include_cached")
            after_block_begin = token.type == TOKEN_BLOCK_BEGIN
            yield token

    def _render_include(
        self, path: Any, params: dict[str, Any], context: Context
    ) -> Markup:
        renderer = self.renderer
        name = str(path)
        include = renderer.site.get_include(name)
        if include is None:
            document = renderer.current_document()
            raise IncludeNotFoundError(
                name, file=document.relative_path if document is not None else None
            )
        renderer.record_include(include.relative_path)
        return self._render_template(
            include.relative_path, include.content, params, context
        )
