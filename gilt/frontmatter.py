"""YAML front matter parsing.

A front matter block is a ``---`` line at the very start of a file, YAML
content, and a closing ``---`` (or ``...``) line. Anything else, including
a file that opens with ``---`` but never closes it, has no front matter.
"""

from __future__ import annotations

import re
from typing import Any

import yaml

FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(?P<yaml>.*?)^(?:---|\.\.\.)[ \t]*\r?$\n?",
    re.DOTALL | re.MULTILINE,
)


class FrontMatterParseError(ValueError):
    """Raised when a front matter block exists but is not valid YAML mapping."""


def has_front_matter(text: str) -> bool:
    """Check whether text starts with a complete front matter block.

    Args:
        text: Raw file content.

    Returns:
        True if both the opening and the closing delimiter are present.
    """
    return FRONTMATTER_RE.match(text) is not None


def parse_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Split raw content into front matter data and body.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (front matter dict, remaining content). Content without a
        front matter block is returned unchanged with an empty dict.

    Raises:
        FrontMatterParseError: If the block is not valid YAML or not a mapping.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group("yaml"))
    except yaml.YAMLError as exc:
        raise FrontMatterParseError(str(exc)) from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise FrontMatterParseError(
            f"front matter must be a mapping, got {type(data).__name__}"
        )
    return data, text[match.end() :]
