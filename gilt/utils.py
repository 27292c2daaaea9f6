"""Utility functions for Gilt.

String, date and path helpers shared by the document model, the site
scanner, the filters and the URL generator.

Key functions:
    slugify: Jekyll-compatible slug generation with modes.
    titleize: Convert filenames to human-readable titles.
    extract_date_from_name: Extract a UTC-midnight date from a filename prefix.
    parse_date: Coerce front matter / template values to aware datetimes.
    normalize_list: Normalize list-or-string front matter fields.
    is_within: Path containment check used by the traversal guards.
    ensure_clean_dir: Empty (or create) the destination directory.
"""

from __future__ import annotations

import re
import shutil
import unicodedata
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any

DATE_PREFIX_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})-")
POST_FILENAME_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})-(.+)\.[^.]+$")

_SLUGIFY_PATTERNS = {
    "raw": re.compile(r"\s+"),
    "default": re.compile(r"[^\w]+|_+"),
    "pretty": re.compile(r"[^\w._~!$&'()+,;=@]+|_+"),
    "ascii": re.compile(r"[^a-zA-Z0-9]+"),
    "latin": re.compile(r"[^a-zA-Z0-9]+"),
}

_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%a, %d %b %Y %H:%M:%S %z",
)


def slugify(value: Any, mode: str = "default", cased: bool = False) -> str:
    """Slugify a string the way Jekyll's ``slugify`` filter does.

    Modes:
        none: return the string unchanged (apart from casing).
        raw: replace runs of whitespace with hyphens.
        default: replace runs of non-alphanumeric characters with hyphens.
        pretty: like default but keep ``._~!$&'()+,;=@``.
        ascii: keep only ASCII letters and digits.
        latin: transliterate accents to ASCII first, then behave like ascii.

    Args:
        value: Value to slugify; ``None`` becomes an empty string.
        mode: One of the modes above; unknown modes fall back to default.
        cased: Keep the original letter case when true.

    Returns:
        The slug.

    Examples:
        >>> slugify("Hello, World!")
        'hello-world'
    """
    if value is None:
        return ""
    text = str(value)
    if mode == "none":
        return text if cased else text.lower()
    if mode == "latin":
        text = (
            unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
        )
    pattern = _SLUGIFY_PATTERNS.get(mode, _SLUGIFY_PATTERNS["default"])
    slug = pattern.sub("-", text)
    slug = re.sub(r"-{2,}", "-", slug).strip("-")
    return slug if cased else slug.lower()


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Removes date prefixes (YYYY-MM-DD), replaces hyphens and underscores
    with spaces, and capitalizes each word.

    Examples:
        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'
    """
    base = strip_date_prefix(Path(filename).stem)
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def strip_date_prefix(name: str) -> str:
    """Remove a leading ``YYYY-MM-DD-`` prefix from a filename stem."""
    return DATE_PREFIX_RE.sub("", name, count=1)


def extract_date_from_name(name: str) -> datetime | None:
    """Extract a date from a filename with a YYYY-MM-DD- prefix.

    The result is midnight UTC of that calendar day, so the same filename
    yields the same instant on every build machine.

    Args:
        name: Filename or stem.

    Returns:
        Timezone-aware datetime if a valid date prefix is found, None otherwise.

    Examples:
        >>> extract_date_from_name("2024-01-15-hello-world")
        datetime.datetime(2024, 1, 15, 0, 0, tzinfo=datetime.timezone.utc)
    """
    match = DATE_PREFIX_RE.match(name)
    if not match:
        return None
    try:
        return datetime(
            int(match.group(1)),
            int(match.group(2)),
            int(match.group(3)),
            tzinfo=timezone.utc,
        )
    except ValueError:
        return None


def parse_date(value: Any) -> datetime | None:
    """Coerce a value to a timezone-aware datetime.

    Accepts datetimes (naive ones are taken as UTC), dates (UTC midnight),
    epoch numbers, ``"now"``/``"today"`` and the common textual formats
    found in front matter.

    Args:
        value: Value to coerce.

    Returns:
        Aware datetime, or None when the value cannot be interpreted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    text = str(value).strip()
    if not text:
        return None
    if text in ("now", "today"):
        return datetime.now(timezone.utc)
    if text.isdigit():
        return parse_date(int(text))
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        parsed = None
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def normalize_list(plural: Any, singular: Any = None) -> list[str]:
    """Normalize a categories/tags style field to a list of strings.

    Lists are kept (items stringified), a singular-key string becomes a
    one-element list, and a plural string is split on whitespace.

    Args:
        plural: Value of the plural key (``tags``, ``categories``).
        singular: Value of the singular key (``tag``, ``category``).

    Returns:
        Ordered list of strings; empty or whitespace-only input gives ``[]``.
    """
    if isinstance(plural, (list, tuple)):
        return [str(item) for item in plural if item is not None]
    if isinstance(singular, str):
        return [singular] if singular.strip() else []
    if isinstance(plural, str):
        return plural.split()
    if isinstance(singular, (list, tuple)):
        return [str(item) for item in singular if item is not None]
    return []


def is_within(path: Path, root: Path) -> bool:
    """Check whether ``path`` resolves to ``root`` or somewhere below it.

    Args:
        path: Candidate path.
        root: Directory that must contain the candidate.

    Returns:
        True if the resolved path stays inside the resolved root.
    """
    try:
        path.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(str(path))
    path.mkdir(parents=True, exist_ok=True)
