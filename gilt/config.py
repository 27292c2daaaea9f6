"""Site configuration for Gilt.

Loads ``_config.yml``, merges it over Jekyll-compatible defaults and applies
front matter defaults (the ``defaults:`` rules) to documents.

Key functions:
- load_config: Load configuration from a YAML file, falling back to defaults.
- merge_config: Merge a user configuration over the defaults.
- apply_front_matter_defaults: Resolve ``defaults:`` rules for one document.
- markdown_extensions: Extensions treated as markdown.
"""

from __future__ import annotations

import copy
import fnmatch
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

DEFAULT_EXCLUDES = [
    "_site",
    ".sass-cache",
    ".jekyll-cache",
    ".jekyll-metadata",
    "gemfiles",
    "Gemfile",
    "Gemfile.lock",
    "node_modules",
    "vendor",
]

DEFAULT_MARKDOWN_EXT = "markdown,mkdown,mkdn,mkd,md"

DEFAULT_CONFIG: dict[str, Any] = {
    "source": ".",
    "destination": "_site",
    "layouts_dir": "_layouts",
    "includes_dir": "_includes",
    "data_dir": "_data",
    "collections": {},
    "markdown": "kramdown",
    "markdown_ext": DEFAULT_MARKDOWN_EXT,
    "permalink": "date",
    "encoding": "utf-8",
    "url": "",
    "baseurl": "",
    "exclude": list(DEFAULT_EXCLUDES),
    "include": [".htaccess"],
    "defaults": [],
    "plugins": [],
    "paginate": None,
    "paginate_path": "/page:num/",
    "timezone": "UTC",
}

_TYPE_ALIASES = {
    "pages": "page",
    "posts": "post",
    "layouts": "layout",
    "includes": "include",
}


def default_config(source_dir: Path | str = ".") -> dict[str, Any]:
    """Return a fresh copy of the default configuration for a source tree.

    Args:
        source_dir: Directory holding the site sources.

    Returns:
        Configuration dict with ``source`` and ``destination`` resolved.
    """
    source = Path(source_dir).resolve()
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["source"] = str(source)
    config["destination"] = str(source / "_site")
    return config


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def normalize_collections(collections: Any) -> dict[str, dict[str, Any]]:
    """Normalize the ``collections`` setting to a name -> options mapping.

    Jekyll accepts either a list of names or a mapping. ``output`` defaults
    to False, except for ``posts``.

    Args:
        collections: Raw ``collections`` value from configuration.

    Returns:
        Mapping of collection name to its options.
    """
    if not collections:
        return {}
    if isinstance(collections, (list, tuple)):
        collections = {str(name): {} for name in collections}
    normalized: dict[str, dict[str, Any]] = {}
    for name, options in collections.items():
        options = dict(options) if isinstance(options, dict) else {}
        options.setdefault("output", name == "posts")
        normalized[str(name)] = options
    return normalized


def merge_config(
    user_config: dict[str, Any] | None, source_dir: Path | str = "."
) -> dict[str, Any]:
    """Merge user configuration over the defaults.

    Nested mappings merge recursively, ``exclude`` lists are combined and
    de-duplicated, and relative ``source``/``destination`` paths resolve
    against ``source_dir`` (the directory holding the config file).

    Args:
        user_config: Configuration values supplied by the user.
        source_dir: Directory relative paths are resolved against.

    Returns:
        The merged configuration.
    """
    user_config = dict(user_config or {})
    base_dir = Path(source_dir).resolve()
    defaults = default_config(base_dir)
    merged = _deep_merge(defaults, user_config)

    excludes: list[str] = []
    for pattern in [*DEFAULT_EXCLUDES, *(user_config.get("exclude") or [])]:
        if pattern not in excludes:
            excludes.append(pattern)
    merged["exclude"] = excludes

    if user_config.get("source"):
        merged["source"] = str((base_dir / str(user_config["source"])).resolve())
    if user_config.get("destination"):
        merged["destination"] = str(
            (base_dir / str(user_config["destination"])).resolve()
        )
    elif user_config.get("source"):
        merged["destination"] = str(Path(merged["source"]) / "_site")

    merged["collections"] = normalize_collections(merged.get("collections"))
    return merged


def load_config(config_path: Path | str = "_config.yml") -> dict[str, Any]:
    """Load site configuration from a YAML file.

    A missing file is not an error: the defaults for the file's directory
    are returned instead.

    Args:
        config_path: Path to ``_config.yml``.

    Returns:
        Configuration dict with defaults applied.

    Raises:
        ConfigError: If the file exists but cannot be read or parsed, or does
            not contain a mapping.
    """
    path = Path(config_path).resolve()
    if not path.exists():
        return merge_config({}, path.parent)
    try:
        with open(path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(
            f"Failed to parse configuration file: {exc}", file=str(path), cause=exc
        ) from exc
    except OSError as exc:
        raise ConfigError(
            f"Failed to read configuration file: {exc}", file=str(path), cause=exc
        ) from exc
    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ConfigError("Configuration file is empty or invalid", file=str(path))
    return merge_config(loaded, path.parent)


def markdown_extensions(config: dict[str, Any] | None) -> set[str]:
    """Return the set of file extensions treated as markdown.

    Args:
        config: Site configuration (``markdown_ext`` is a comma-separated list).

    Returns:
        Lowercase extensions including the leading dot, e.g. ``{".md"}``.
    """
    raw = (config or {}).get("markdown_ext") or DEFAULT_MARKDOWN_EXT
    return {
        "." + ext.strip().lstrip(".").lower()
        for ext in str(raw).split(",")
        if ext.strip()
    }


def _scope_matches_type(scope_type: str | None, doc_type: str) -> bool:
    if not scope_type:
        return True
    return scope_type == doc_type or _TYPE_ALIASES.get(scope_type) == doc_type


def _scope_matches_path(scope_path: str | None, relative_path: str) -> bool:
    pattern = (scope_path or "").strip().strip("/")
    if pattern in ("", "."):
        return True
    if any(ch in pattern for ch in "*?["):
        return fnmatch.fnmatch(relative_path, pattern) or fnmatch.fnmatch(
            relative_path, pattern + "/*"
        )
    return relative_path == pattern or relative_path.startswith(pattern + "/")


def _scope_specificity(scope: dict[str, Any]) -> tuple[int, int]:
    pattern = str(scope.get("path") or "").strip().strip("/")
    depth = 0 if pattern in ("", ".") else len(pattern.split("/"))
    return depth, 1 if scope.get("type") else 0


def apply_front_matter_defaults(
    relative_path: str,
    doc_type: str,
    front_matter: dict[str, Any],
    config: dict[str, Any] | None,
) -> dict[str, Any]:
    """Apply configured front matter defaults to a document.

    Every rule whose scope matches contributes its values. Rules are applied
    from least to most specific (path depth first, then type-scoped over
    type-less, then declaration order), so the most specific value wins.
    The document's own front matter always overrides the defaults.

    Args:
        relative_path: Document path relative to the site source.
        doc_type: Document kind (``page``, ``post``) or the collection name.
        front_matter: The document's own front matter.
        config: Site configuration holding the ``defaults`` rules.

    Returns:
        A new dict with defaults and front matter merged.
    """
    rules = (config or {}).get("defaults") or []
    if not rules:
        return dict(front_matter)
    rel = Path(relative_path).as_posix()
    matching: list[tuple[tuple[int, int], int, dict[str, Any]]] = []
    for index, rule in enumerate(rules):
        if not isinstance(rule, dict):
            continue
        scope = rule.get("scope") or {}
        if not _scope_matches_type(scope.get("type"), doc_type):
            continue
        if not _scope_matches_path(scope.get("path"), rel):
            continue
        matching.append((_scope_specificity(scope), index, rule.get("values") or {}))

    result: dict[str, Any] = {}
    for _, _, values in sorted(matching, key=lambda item: (item[0], item[1])):
        result = _deep_merge(result, values)
    result.update(front_matter)
    return result
