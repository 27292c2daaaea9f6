"""Command-line interface for Gilt.

This module defines the CLI commands using Click framework.

Commands:
- new: Scaffold a new Jekyll-style site.
- build: Build the site into the destination directory.
- watch: Build, then rebuild incrementally whenever sources change.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import click

from . import __version__
from .errors import BuildError, GiltError


@click.group()
@click.version_option(version=__version__, prog_name="gilt")
def cli():
    """Gilt, a Jekyll-compatible static site generator."""


def _site_options(func):
    func = click.option(
        "--config",
        "config_path",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Configuration file (default: <source>/_config.yml)",
    )(func)
    func = click.option(
        "--destination",
        "-d",
        type=click.Path(file_okay=False, path_type=Path),
        default=None,
        help="Output directory (overrides the configuration)",
    )(func)
    func = click.option(
        "--source",
        "-s",
        type=click.Path(exists=True, file_okay=False, path_type=Path),
        default=Path("."),
        show_default=True,
        help="Site source directory",
    )(func)
    return func


def _report_errors(errors: list[BuildError]) -> None:
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    for error in errors:
        click.echo(click.style(f"  File: {error.file}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {error.message}", fg="white"), err=True)


@cli.command()
@click.argument("name")
def new(name: str):
    """Scaffold a new site in NAME."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )
    _scaffold(target)
    click.echo(f"New site created at {target}")


@cli.command()
@_site_options
@click.option("--workers", type=int, default=1, show_default=True, help="Render threads")
def build(source: Path, destination: Path | None, config_path: Path | None, workers: int):
    """Build the site into the destination directory."""
    from .build import build_site

    try:
        result = build_site(
            source, config_path=config_path, destination=destination, workers=workers
        )
    except GiltError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  Error: {exc.formatted()}", fg="white"), err=True)
        raise SystemExit(1) from None
    if result.errors:
        _report_errors(result.errors)
        raise SystemExit(1)
    click.echo(f"Built {len(result.documents)} documents into {result.destination}")


@cli.command()
@_site_options
def watch(source: Path, destination: Path | None, config_path: Path | None):
    """Build the site, then rebuild on every change."""
    from .build import Builder
    from .config import load_config
    from .site import Site
    from .watcher import SiteWatcher

    config_file = config_path or source / "_config.yml"
    try:
        config = load_config(config_file)
        config["source"] = str(source.resolve())
        if destination is not None:
            config["destination"] = str(destination.resolve())
        builder = Builder(Site(source, config))
        result = builder.build()
    except GiltError as exc:
        raise click.ClickException(exc.formatted()) from None
    if result.errors:
        _report_errors(result.errors)
    click.echo(f"Built {len(result.documents)} documents into {result.destination}")
    click.echo(f"Watching {builder.site.source} for changes. Press Ctrl+C to stop.")
    SiteWatcher(builder, config_path=config_file).run_forever()


def main():
    """Entry point for the CLI."""
    cli()


def _scaffold(root: Path) -> None:
    today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    files = {
        "_config.yml": "title: My Site\nbaseurl: \"\"\nurl: \"\"\n",
        "_layouts/default.html": (
            "<!DOCTYPE html>\n<html>\n<head><title>{{ page.title }} | "
            "{{ site.title }}</title></head>\n<body>\n"
            "{% include \"header.html\" %}\n{{ content }}\n</body>\n</html>\n"
        ),
        "_layouts/post.html": (
            "---\nlayout: default\n---\n<article>\n<h1>{{ page.title }}</h1>\n"
            "<time>{{ page.date | date_to_string }}</time>\n{{ content }}\n</article>\n"
        ),
        "_includes/header.html": (
            "<header><a href=\"{{ '/' | relative_url }}\">{{ site.title }}</a></header>\n"
        ),
        "index.md": (
            "---\nlayout: default\ntitle: Home\n---\n# Welcome\n\n"
            "<ul>\n{% for post in site.posts %}\n"
            "  <li><a href=\"{{ post.url | relative_url }}\">{{ post.title }}</a></li>\n"
            "{% endfor %}\n</ul>\n"
        ),
        f"_posts/{today}-welcome.md": (
            "---\nlayout: post\ntitle: Welcome\n---\nYour first post.\n"
        ),
    }
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
