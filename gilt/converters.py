"""Content converters for Gilt.

Converters turn a document body into output markup before it is rendered
as a template. They are ConverterPlugin implementations looked up by file
extension in the site's PluginRegistry; a body whose extension no converter
matches passes through unchanged.

Key classes:
- MarkdownConverter: Markdown to HTML with mistune and Pygments.
- IdentityConverter: Returns content unchanged.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

import mistune

from .config import markdown_extensions
from .plugins import ConverterPlugin, ConverterPriority, PluginRegistry

if TYPE_CHECKING:
    from .document import Document
    from .site import Site


_TEMPLATE_TAG_RE = re.compile(r"\{\{.*?\}\}|\{%.*?%\}|\{#.*?#\}", re.DOTALL)
_PLACEHOLDER_RE = re.compile(r"GILTTAG(\d+)X")


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Args:
        text: The heading text (may contain inline HTML).

    Returns:
        Slug suitable for anchor links.
    """
    slug = _PLACEHOLDER_RE.sub("", re.sub(r"<[^>]+>", "", text)).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


class _HighlightRenderer(mistune.HTMLRenderer):
    """HTML renderer adding heading ids and Pygments code highlighting."""

    def __init__(self):
        super().__init__(escape=False)
        self._seen_ids: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        base = _generate_heading_id(text) or "section"
        repeats = self._seen_ids.get(base, -1) + 1
        self._seen_ids[base] = repeats
        anchor = f"{base}-{repeats}" if repeats else base
        return f'<h{level} id="{anchor}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a fenced code block, highlighted when a language is given."""
        if info:
            from pygments import highlight
            from pygments.formatters import HtmlFormatter
            from pygments.lexers import get_lexer_by_name
            from pygments.util import ClassNotFound

            try:
                lexer = get_lexer_by_name(info.split()[0], stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                formatter = HtmlFormatter(nowrap=False, cssclass="highlight")
                return highlight(code, lexer, formatter)
        escaped = code.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
        lang_class = f' class="language-{info.split()[0]}"' if info else ""
        return f"<pre><code{lang_class}>{escaped}</code></pre>\n"


def markdown_to_html(text: str) -> str:
    """Convert markdown text to HTML.

    Args:
        text: Markdown source.

    Returns:
        HTML string.
    """
    markdown = mistune.create_markdown(
        renderer=_HighlightRenderer(),
        plugins=["strikethrough", "footnotes", "table", "url"],
    )
    return markdown(text)


def markdown_with_template_tags(text: str) -> str:
    """Convert markdown, leaving ``{{ }}``, ``{% %}`` and ``{# #}`` intact.

    Tags are swapped for inert placeholders during conversion so markdown
    escaping never touches the quotes and operators inside them.
    """
    tags: list[str] = []

    def _stash(match: re.Match[str]) -> str:
        tags.append(match.group(0))
        return f"GILTTAG{len(tags) - 1}X"

    html = markdown_to_html(_TEMPLATE_TAG_RE.sub(_stash, text))
    if not tags:
        return html
    return _PLACEHOLDER_RE.sub(lambda m: tags[int(m.group(1))], html)


class MarkdownConverter(ConverterPlugin):
    """Converts markdown documents to HTML.

    The handled extensions come from the ``markdown_ext`` setting.
    """

    name = "markdown"
    priority = ConverterPriority.NORMAL

    def __init__(self, config: dict[str, Any] | None = None):
        self.extensions = markdown_extensions(config)

    def matches(self, ext: str) -> bool:
        return ext.lower() in self.extensions

    def output_ext(self, ext: str) -> str:
        return ".html"

    def convert(self, content: str, document: Document | None, site: Site | None) -> str:
        return markdown_with_template_tags(content)


class IdentityConverter(ConverterPlugin):
    """Passes content through unchanged; used for unmatched extensions."""

    name = "identity"
    priority = ConverterPriority.LOW

    def matches(self, ext: str) -> bool:
        return True

    def output_ext(self, ext: str) -> str:
        return ext

    def convert(self, content: str, document: Document | None, site: Site | None) -> str:
        return content


IDENTITY_CONVERTER = IdentityConverter()


def install_default_converters(
    registry: PluginRegistry, config: dict[str, Any] | None
) -> PluginRegistry:
    """Register the markdown converter unless one is already registered.

    Args:
        registry: Registry to populate.
        config: Site configuration.

    Returns:
        The registry.
    """
    if not any(isinstance(c, MarkdownConverter) for c in registry.converters):
        registry.register(MarkdownConverter(config))
    return registry


def create_default_registry(config: dict[str, Any] | None = None) -> PluginRegistry:
    """Create a registry holding the built-in converters."""
    return install_default_converters(PluginRegistry(), config)
