"""Plugin API for Gilt.

Three kinds of plugins extend the build:
- Plugin: registers filters and template extensions on the Renderer and may
  seed or adjust site data.
- GeneratorPlugin: runs after the site is read and before rendering; may
  return extra files to write and extra documents to render.
- ConverterPlugin: converts a document body (markdown to HTML, ...) based on
  its file extension.

A plugin class may derive from several of these bases. The PluginRegistry
belongs to one Site and keeps a priority-ordered list per capability.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .document import Document
    from .renderer import Renderer
    from .site import Site


class GeneratorPriority:
    """Default generator priorities (lower runs first)."""

    HIGH = 10
    NORMAL = 50
    LOW = 90
    LOWEST = 100


class ConverterPriority:
    """Default converter priorities (lower is checked first)."""

    HIGH = 10
    NORMAL = 50
    LOW = 90


class Plugin(ABC):
    """Basic plugin that registers filters/tags with the renderer."""

    name: str = "plugin"
    priority: int = 50

    @abstractmethod
    def register(self, renderer: Renderer, site: Site) -> None:
        """Register filters, extensions or data.

        Args:
            renderer: Renderer to extend.
            site: Site being built.
        """
        ...


@dataclass
class GeneratedFile:
    """A file produced by a generator.

    Attributes:
        path: Output path relative to the destination directory.
        content: File content.
    """

    path: str
    content: str


@dataclass
class GeneratedDocument:
    """A document produced by a generator, rendered like any other.

    Attributes:
        document: The document to add.
        collection: Collection to add it to, if any.
        is_page: Whether to add it to ``site.pages``.
    """

    document: Document
    collection: str | None = None
    is_page: bool = False


@dataclass
class GeneratorResult:
    files: list[GeneratedFile] = field(default_factory=list)
    documents: list[GeneratedDocument] = field(default_factory=list)


class GeneratorPlugin(ABC):
    """Creates additional content after the site is read."""

    name: str = "generator"
    priority: int = GeneratorPriority.NORMAL

    @abstractmethod
    def generate(self, site: Site, renderer: Renderer) -> GeneratorResult | None:
        """Generate content for the site.

        Args:
            site: The site with all documents loaded.
            renderer: Renderer, for generators that render templates.

        Returns:
            Files and documents to add, or None when the generator only
            modified the site in place.
        """
        ...


class ConverterPlugin(ABC):
    """Converts document content from one format to another."""

    name: str = "converter"
    priority: int = ConverterPriority.NORMAL

    @abstractmethod
    def matches(self, ext: str) -> bool:
        """Check whether this converter handles a file extension.

        Args:
            ext: Extension including the dot, e.g. ``.md``.
        """
        ...

    @abstractmethod
    def output_ext(self, ext: str) -> str:
        """Return the output extension for an input extension."""
        ...

    @abstractmethod
    def convert(self, content: str, document: Document | None, site: Site | None) -> str:
        """Convert content.

        Args:
            content: Source content.
            document: Document being converted, for metadata access.
            site: Site, for configuration access.

        Returns:
            Converted content.
        """
        ...


class PluginRegistry:
    """Registry of plugins keyed by capability.

    Each capability list is kept sorted by ascending priority; plugins with
    equal priority keep their registration order.
    """

    def __init__(self) -> None:
        self._basic: list[Plugin] = []
        self._generators: list[GeneratorPlugin] = []
        self._converters: list[ConverterPlugin] = []

    def register(self, plugin: Plugin | GeneratorPlugin | ConverterPlugin) -> None:
        """Register a plugin under every capability it implements.

        Args:
            plugin: Plugin instance.

        Raises:
            TypeError: If the object implements none of the plugin bases.
        """
        registered = False
        if isinstance(plugin, Plugin):
            self._basic.append(plugin)
            self._basic.sort(key=lambda p: p.priority)
            registered = True
        if isinstance(plugin, GeneratorPlugin):
            self._generators.append(plugin)
            self._generators.sort(key=lambda p: p.priority)
            registered = True
        if isinstance(plugin, ConverterPlugin):
            self._converters.append(plugin)
            self._converters.sort(key=lambda p: p.priority)
            registered = True
        if not registered:
            raise TypeError(f"Not a plugin: {plugin!r}")

    @property
    def basic(self) -> list[Plugin]:
        return list(self._basic)

    @property
    def generators(self) -> list[GeneratorPlugin]:
        return list(self._generators)

    @property
    def converters(self) -> list[ConverterPlugin]:
        return list(self._converters)

    def find_converter(self, ext: str) -> ConverterPlugin | None:
        """Return the first converter matching an extension, or None."""
        for converter in self._converters:
            if converter.matches(ext):
                return converter
        return None

    def clear(self) -> None:
        self._basic.clear()
        self._generators.clear()
        self._converters.clear()


def register_plugins(renderer: Renderer, site: Site) -> None:
    """Call ``register`` on every basic plugin of the site.

    Args:
        renderer: Renderer to extend.
        site: Site owning the plugin registry.
    """
    for plugin in site.plugins.basic:
        plugin.register(renderer, site)
