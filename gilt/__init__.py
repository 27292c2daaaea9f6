"""Gilt static site generator.

Gilt reads a Jekyll-style source tree (pages, posts, collections, layouts,
includes and data files), renders every document through Jinja2 with a
Jekyll-compatible filter set, wraps the result in its (possibly nested)
layouts and writes a static site.

The pieces, leaves first:
- dependencies: document -> layout/include graph for incremental rebuilds.
- document: one source file with parsed front matter and body.
- site: the scanned source tree and its lookup accessors.
- renderer: the Jinja2 environment, filters, include tags and layout chain.
- build: the build driver that ties them together.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
