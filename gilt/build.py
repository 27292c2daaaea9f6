"""Site building for Gilt.

The Builder drives one build of a site:

1. register basic plugins (once), then read the source tree;
2. assign URLs and run generator plugins;
3. render every published page, post and output collection member;
4. write the rendered documents, generated files and static files.

Render failures are collected per document as BuildError rather than
aborting the batch. ``rebuild`` re-renders only what a set of changed files
affects, using the dependency graph recorded by the Renderer.

Key classes and functions:
- Builder: Full and incremental builds.
- BuildResult: What a build produced.
- build_site: Convenience wrapper building a site from a source directory.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jinja2 import TemplateSyntaxError

from .config import load_config
from .converters import install_default_converters
from .dependencies import DependencyTracker
from .document import Document
from .errors import BuildError, ConfigError, GiltError
from .plugins import GeneratedDocument, GeneratedFile, register_plugins
from .renderer import Renderer
from .site import Site
from .urls import UrlGenerator, output_path
from .utils import ensure_clean_dir, is_within


@dataclass
class BuildResult:
    """Result of a site build.

    Attributes:
        documents: Documents rendered (successfully or not).
        files: Files written below the destination.
        errors: One BuildError per failed document or write.
        destination: Directory the site was written to.
    """

    documents: list[Document] = field(default_factory=list)
    files: list[Path] = field(default_factory=list)
    errors: list[BuildError] = field(default_factory=list)
    destination: Path | None = None

    @property
    def success(self) -> bool:
        return not self.errors


class Builder:
    """Builds a site into its destination directory.

    Attributes:
        site: Site to build.
        renderer: Renderer used for every document.
        tracker: Dependency graph shared with the renderer.
        urls: URL generator.
        workers: Number of render threads (1 renders in the calling thread).
        clean: Whether to empty the destination before a full build.
    """

    def __init__(
        self,
        site: Site,
        renderer: Renderer | None = None,
        workers: int = 1,
        clean: bool = True,
    ):
        self.site = site
        install_default_converters(site.plugins, site.config)
        self.renderer = renderer or Renderer(site)
        self.tracker: DependencyTracker = self.renderer.tracker
        self.urls = UrlGenerator(site.config, site.plugins)
        self.workers = max(int(workers), 1)
        self.clean = clean
        self._plugins_registered = False
        self._generated_documents: list[Document] = []
        self._generated_files: list[GeneratedFile] = []

    @property
    def destination(self) -> Path:
        return self.site.destination

    def build(self) -> BuildResult:
        """Run a full build.

        Returns:
            BuildResult with per-document errors collected.

        Raises:
            ConfigError: If the destination would overwrite the source.
            FileSystemError: If a source document cannot be read.
            FrontMatterError: If a source document has malformed front matter.
        """
        self._check_destination()
        if not self._plugins_registered:
            register_plugins(self.renderer, self.site)
            self._plugins_registered = True

        self._discard_generated()
        self.site.read()
        self.tracker.clear()
        self.renderer.invalidate_site_cache()

        self._assign_urls(self._all_documents())
        self._run_generators()
        self._assign_urls(d for d in self._all_documents() if d.url is None)
        self.renderer.preload_site_data()

        if self.clean:
            ensure_clean_dir(self.destination)
        else:
            self.destination.mkdir(parents=True, exist_ok=True)

        result = BuildResult(destination=self.destination)
        self._render_and_write(self.renderable_documents(), result)
        for generated in self._generated_files:
            written = self._write_generated(generated)
            if written is not None:
                result.files.append(written)
        result.files.extend(self._copy_static_files())
        return result

    def rebuild(self, changed_paths: Iterable[str]) -> BuildResult:
        """Re-render only the documents affected by changed files.

        The site is re-read first so content changes are picked up; a
        document is re-rendered when its own source changed or when a
        layout/include it used changed.

        Args:
            changed_paths: Paths relative to the site source.

        Returns:
            BuildResult for the re-rendered documents and copied files.
        """
        changed = set(changed_paths)
        self._discard_generated()
        self.site.read()
        self.renderer.invalidate_site_cache()
        self._assign_urls(self._all_documents())
        self._run_generators()
        self._assign_urls(d for d in self._all_documents() if d.url is None)
        self.renderer.preload_site_data()
        self.destination.mkdir(parents=True, exist_ok=True)

        affected = set(changed)
        for path in changed:
            affected.update(self.tracker.get_reverse_dependencies(path))
        data_prefix = self.site.data_dir.relative_to(self.site.source).as_posix() + "/"
        if any(path.startswith(data_prefix) for path in changed):
            documents = self.renderable_documents()
        else:
            documents = [
                d for d in self.renderable_documents() if d.relative_path in affected
            ]
        for document in documents:
            self.tracker.forget(document.relative_path)

        result = BuildResult(destination=self.destination)
        self._render_and_write(documents, result)
        for generated in self._generated_files:
            written = self._write_generated(generated)
            if written is not None:
                result.files.append(written)
        static = [f for f in self.site.static_files if f.relative_path in changed]
        result.files.extend(self._copy_static_files(static))
        return result

    def renderable_documents(self) -> list[Document]:
        """Return published pages, posts and output collection members."""
        documents = [d for d in self.site.pages if d.published]
        documents.extend(d for d in self.site.posts if d.published)
        collections = self.site.config.get("collections", {})
        for name, docs in self.site.collections.items():
            if collections.get(name, {}).get("output"):
                documents.extend(d for d in docs if d.published)
        return documents

    def _check_destination(self) -> None:
        if is_within(self.site.source, self.destination):
            raise ConfigError(
                f"Destination {self.destination} must not contain the source directory"
            )

    def _all_documents(self) -> list[Document]:
        documents = [*self.site.pages, *self.site.posts]
        for docs in self.site.collections.values():
            documents.extend(docs)
        return documents

    def _assign_urls(self, documents: Iterable[Document]) -> None:
        for document in documents:
            self.urls.generate(document)

    def _run_generators(self) -> None:
        self._generated_files = []
        for generator in self.site.plugins.generators:
            generated = generator.generate(self.site, self.renderer)
            if generated is None:
                continue
            self._generated_files.extend(generated.files)
            for entry in generated.documents:
                self._add_generated_document(entry)
        self.renderer.invalidate_site_cache()

    def _add_generated_document(self, entry: GeneratedDocument) -> None:
        document = entry.document
        if entry.is_page or not entry.collection:
            self.site.pages.append(document)
        elif entry.collection == "posts":
            self.site.posts.append(document)
            self.site.sort_posts()
        else:
            self.site.collections.setdefault(entry.collection, []).append(document)
        self._generated_documents.append(document)

    def _discard_generated(self) -> None:
        """Drop documents added by generators in a previous build."""
        if not self._generated_documents:
            return
        generated = {id(d) for d in self._generated_documents}
        self.site.pages = [d for d in self.site.pages if id(d) not in generated]
        self.site.posts = [d for d in self.site.posts if id(d) not in generated]
        for name, docs in self.site.collections.items():
            self.site.collections[name] = [d for d in docs if id(d) not in generated]
        self._generated_documents = []

    def _render_one(self, document: Document) -> tuple[Document, str | None, BuildError | None]:
        try:
            return document, self.renderer.render_document(document), None
        except Exception as exc:
            return document, None, BuildError(
                document.path,
                _format_error_message(exc),
                exc,
                file=document.relative_path,
            )

    def _render_and_write(self, documents: list[Document], result: BuildResult) -> None:
        if self.workers > 1 and len(documents) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                outcomes = list(pool.map(self._render_one, documents))
        else:
            outcomes = [self._render_one(d) for d in documents]

        for document, rendered, error in outcomes:
            result.documents.append(document)
            if error is not None:
                result.errors.append(error)
                continue
            try:
                result.files.append(self._write_document(document, rendered or ""))
            except (OSError, GiltError) as exc:
                result.errors.append(
                    BuildError(
                        document.path,
                        _format_error_message(exc),
                        exc,
                        file=document.relative_path,
                    )
                )

    def _target(self, relative: str) -> Path:
        target = self.destination / relative
        if not is_within(target, self.destination):
            raise GiltError(
                f"Output path '{relative}' resolves outside the destination directory"
            )
        return target

    def _write_document(self, document: Document, rendered: str) -> Path:
        """Write a rendered document to the destination.

        Raises:
            GiltError: If the document's URL points outside the destination.
        """
        target = self._target(output_path(document.url or "/"))
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            f.write(rendered)
        return target

    def _write_generated(self, generated: GeneratedFile) -> Path | None:
        try:
            target = self._target(generated.path.lstrip("/"))
        except GiltError as exc:
            print(f"Warning: Skipping generated file: {exc.message}")
            return None
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            f.write(generated.content)
        return target

    def _copy_static_files(self, static_files: list | None = None) -> list[Path]:
        copied = []
        for static in self.site.static_files if static_files is None else static_files:
            target = self._target(static.url.lstrip("/"))
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(static.path, target)
            copied.append(target)
        return copied


def _format_error_message(exc: BaseException) -> str:
    """Turn a render or write failure into the message shown to the user.

    Template syntax errors keep their line number and other Gilt errors show
    their own message. Anything else is prefixed with its exception type.
    """
    cause = exc.cause if isinstance(exc, GiltError) else None
    if isinstance(cause, TemplateSyntaxError):
        return f"Template syntax error on line {cause.lineno}: {cause.message}"
    if isinstance(exc, GiltError):
        return exc.message
    return f"{type(exc).__name__}: {exc}"


def build_site(
    source: Path | str,
    config_path: Path | str | None = None,
    destination: Path | str | None = None,
    overrides: dict[str, Any] | None = None,
    workers: int = 1,
) -> BuildResult:
    """Build the site in ``source``.

    Args:
        source: Site source directory.
        config_path: Configuration file; defaults to ``<source>/_config.yml``.
        destination: Optional output directory overriding the configuration.
        overrides: Extra configuration values applied last.
        workers: Number of render threads.

    Returns:
        BuildResult of the build.
    """
    source = Path(source)
    config = load_config(config_path or source / "_config.yml")
    config["source"] = str(source.resolve())
    if destination is not None:
        config["destination"] = str(Path(destination).resolve())
    config.update(overrides or {})
    site = Site(source, config)
    return Builder(site, workers=workers).build()
