"""Jekyll-compatible template filters.

These functions reproduce the semantics of Liquid's standard filters and
Jekyll's additions so that sites behave the same under Jinja2. Filters that
need site configuration (``relative_url``, ``absolute_url``) or the
converter registry (``markdownify``) are bound by the Renderer.

Undefined template values reach filters as Jinja ``Undefined`` objects and
are treated like ``None`` throughout.
"""

from __future__ import annotations

import functools
import json
import math
import re
from collections.abc import Callable, Mapping
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any
from urllib.parse import quote, quote_plus

from jinja2 import Undefined

from .utils import parse_date, slugify

_INT_RE = re.compile(r"^\s*[+-]?\d+\s*$")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_ENTITY_RE = re.compile(r"&(?:[a-zA-Z][a-zA-Z0-9]*|#\d+|#[xX][0-9a-fA-F]+);")
_STRIP_HTML_RE = re.compile(
    r"<script.*?</script>|<!--.*?-->|<style.*?</style>", re.DOTALL | re.IGNORECASE
)
_TAG_RE = re.compile(r"<.*?>", re.DOTALL)
_URI_SAFE = "!#$&'()*+,/:;=?@[]~%"


def _missing(value: Any) -> bool:
    return value is None or isinstance(value, Undefined)


def _text(value: Any) -> str:
    """Stringify a value the way Liquid does (nil -> "", true -> "true")."""
    if _missing(value):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _as_list(value: Any) -> list[Any]:
    if _missing(value):
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, Mapping) or isinstance(value, str):
        return [value]
    try:
        return list(value)
    except TypeError:
        return [value]


def _count(value: Any, default: int = 1) -> int:
    if _missing(value):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def item_property(item: Any, key: Any) -> Any:
    """Read a (dotted) property from a mapping or object.

    Args:
        item: Mapping, object or list.
        key: Property name; ``a.b`` reads nested values.

    Returns:
        The value, or None when any step is missing.
    """
    if _missing(key):
        return item
    current = item
    for part in str(key).split("."):
        if _missing(current):
            return None
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, (list, tuple)) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else None
        else:
            current = getattr(current, part, None)
    return None if isinstance(current, Undefined) else current


# --- Strings ---------------------------------------------------------------


def upcase(value: Any) -> str:
    return _text(value).upper()


def downcase(value: Any) -> str:
    return _text(value).lower()


def capitalize(value: Any) -> str:
    return _text(value).capitalize()


def strip(value: Any) -> str:
    return _text(value).strip()


def lstrip(value: Any) -> str:
    return _text(value).lstrip()


def rstrip(value: Any) -> str:
    return _text(value).rstrip()


def escape(value: Any) -> str:
    """HTML-escape ``& < > " '``."""
    return (
        _text(value)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


def escape_once(value: Any) -> str:
    """Escape HTML without double-escaping existing entities."""
    text = _text(value)
    parts: list[str] = []
    last = 0
    for match in _ENTITY_RE.finditer(text):
        parts.append(escape(text[last : match.start()]))
        parts.append(match.group(0))
        last = match.end()
    parts.append(escape(text[last:]))
    return "".join(parts)


def xml_escape(value: Any) -> str:
    """Escape text for use in XML (``& < > "``)."""
    if _missing(value):
        return ""
    return (
        _text(value)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def cgi_escape(value: Any) -> str:
    """Form-encode a string (spaces become ``+``)."""
    return quote_plus(_text(value))


def uri_escape(value: Any) -> str:
    """Percent-encode a URI, keeping reserved characters and existing escapes."""
    return quote(_text(value), safe=_URI_SAFE)


def strip_html(value: Any) -> str:
    return _TAG_RE.sub("", _STRIP_HTML_RE.sub("", _text(value)))


def strip_newlines(value: Any) -> str:
    return re.sub(r"\r?\n", "", _text(value))


def newline_to_br(value: Any) -> str:
    return re.sub(r"\r?\n", "<br />\n", _text(value))


def normalize_whitespace(value: Any) -> str:
    return re.sub(r"\s+", " ", _text(value)).strip()


def append(value: Any, suffix: Any) -> str:
    return _text(value) + _text(suffix)


def prepend(value: Any, prefix: Any) -> str:
    return _text(prefix) + _text(value)


def remove(value: Any, target: Any) -> str:
    return _text(value).replace(_text(target), "")


def remove_first(value: Any, target: Any) -> str:
    return _text(value).replace(_text(target), "", 1)


def replace(value: Any, target: Any, replacement: Any = "") -> str:
    return _text(value).replace(_text(target), _text(replacement))


def replace_first(value: Any, target: Any, replacement: Any = "") -> str:
    return _text(value).replace(_text(target), _text(replacement), 1)


def split(value: Any, separator: Any = " ") -> list[str]:
    text = _text(value)
    sep = _text(separator)
    if not text:
        return []
    if sep == " ":
        return text.split()
    if sep == "":
        return list(text)
    return text.split(sep)


def truncate(value: Any, length: Any = 50, ellipsis: Any = "...") -> str:
    """Shorten a string to ``length`` characters including the ellipsis."""
    text = _text(value)
    length = _count(length, 50)
    ellipsis = _text(ellipsis)
    if len(text) <= length:
        return text
    keep = max(length - len(ellipsis), 0)
    return text[:keep] + ellipsis


def truncatewords(value: Any, words: Any = 15, ellipsis: Any = "...") -> str:
    """Shorten a string to ``words`` words, appending the ellipsis if cut."""
    parts = _text(value).split()
    words = max(_count(words, 15), 1)
    if len(parts) <= words:
        return " ".join(parts)
    return " ".join(parts[:words]) + _text(ellipsis)


def number_of_words(value: Any) -> int:
    return len(_text(value).split())


def jekyll_slugify(value: Any, mode: Any = "default") -> str:
    return slugify(None if _missing(value) else value, _text(mode) or "default")


def array_to_sentence_string(value: Any, connector: Any = "and") -> str:
    """Join a list as an English sentence: ``a, b, and c``."""
    items = [_text(item) for item in _as_list(value)]
    connector = _text(connector) or "and"
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    if len(items) == 2:
        return f"{items[0]} {connector} {items[1]}"
    return f"{', '.join(items[:-1])}, {connector} {items[-1]}"


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S %z").strip()
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, "to_liquid"):
        return value.to_liquid()
    if isinstance(value, (set, tuple)):
        return list(value)
    if isinstance(value, Undefined):
        return None
    return str(value)


def jsonify(value: Any) -> str:
    """Serialize a value to compact JSON."""
    if isinstance(value, Undefined):
        value = None
    return json.dumps(
        value, default=_json_default, ensure_ascii=False, separators=(",", ":")
    )


def inspect(value: Any) -> str:
    return jsonify(value)


def default(value: Any, fallback: Any = "") -> Any:
    """Return ``fallback`` when value is nil, undefined or an empty string.

    ``False`` and ``0`` are values, not missing.
    """
    if _missing(value) or value == "":
        return fallback
    return value


# --- Arrays ------------------------------------------------------------------


def _same(left: Any, right: Any) -> bool:
    return _text(left) == _text(right)


def where(value: Any, prop: Any, target: Any = None) -> list[Any]:
    """Keep items whose property equals ``target`` (compared as strings).

    List-valued properties match when they contain ``target``.
    """
    matched = []
    for item in _as_list(value):
        found = item_property(item, prop)
        if isinstance(found, (list, tuple)):
            if any(_same(entry, target) for entry in found):
                matched.append(item)
        elif _same(found, target):
            matched.append(item)
    return matched


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    ">": lambda a, b: a > b,
    "<": lambda a, b: a < b,
    ">=": lambda a, b: a >= b,
    "<=": lambda a, b: a <= b,
    "contains": lambda a, b: b in a,
}


def where_exp(value: Any, prop: Any, operator: Any, target: Any) -> list[Any]:
    """Keep items for which ``item[prop] <operator> target`` holds."""
    compare = _OPERATORS.get(_text(operator))
    if compare is None:
        return []
    matched = []
    for item in _as_list(value):
        try:
            if compare(item_property(item, prop), target):
                matched.append(item)
        except TypeError:
            continue
    return matched


def group_by(value: Any, prop: Any) -> list[dict[str, Any]]:
    """Group items by a property, keeping first-seen group order."""
    groups: dict[str, list[Any]] = {}
    for item in _as_list(value):
        groups.setdefault(_text(item_property(item, prop)), []).append(item)
    return [
        {"name": name, "items": items, "size": len(items)}
        for name, items in groups.items()
    ]


def _compare(left: Any, right: Any) -> int:
    try:
        if left < right:
            return -1
        if left > right:
            return 1
        return 0
    except TypeError:
        left_text, right_text = _text(left), _text(right)
        return (left_text > right_text) - (left_text < right_text)


def _sorted(value: Any, prop: Any, key: Callable[[Any], Any], nils: str) -> list[Any]:
    items = _as_list(value)
    present = [i for i in items if not _missing(item_property(i, prop))]
    absent = [i for i in items if _missing(item_property(i, prop))]
    present.sort(
        key=functools.cmp_to_key(
            lambda a, b: _compare(key(item_property(a, prop)), key(item_property(b, prop)))
        )
    )
    return absent + present if nils == "first" else present + absent


def sort(value: Any, prop: Any = None, nils: Any = "first") -> list[Any]:
    """Sort items (optionally by property); nil values go first by default."""
    return _sorted(value, prop, lambda v: v, _text(nils) or "first")


def sort_natural(value: Any, prop: Any = None) -> list[Any]:
    """Case-insensitive sort, optionally by property; nil values go last."""
    return _sorted(
        value,
        prop,
        lambda v: v.casefold() if isinstance(v, str) else v,
        "last",
    )


def uniq(value: Any, prop: Any = None) -> list[Any]:
    seen: list[Any] = []
    result = []
    for item in _as_list(value):
        marker = item_property(item, prop) if not _missing(prop) else item
        if marker in seen:
            continue
        seen.append(marker)
        result.append(item)
    return result


def map_property(value: Any, prop: Any) -> list[Any]:
    return [item_property(item, prop) for item in _as_list(value)]


def find(value: Any, prop: Any, target: Any = None) -> Any:
    for item in where(value, prop, target):
        return item
    return None


def compact(value: Any, prop: Any = None) -> list[Any]:
    return [item for item in _as_list(value) if not _missing(item_property(item, prop))]


def concat(value: Any, other: Any) -> list[Any]:
    return _as_list(value) + _as_list(other)


def push(value: Any, item: Any, count: Any = 1) -> list[Any]:
    """Append ``item`` ``count`` times; non-positive counts change nothing."""
    items = _as_list(value)
    return items + [item] * max(_count(count), 0)


def pop(value: Any, count: Any = 1) -> list[Any]:
    """Remove ``count`` items from the end."""
    items = _as_list(value)
    count = _count(count)
    return items[:-count] if count > 0 else items


def shift(value: Any, count: Any = 1) -> list[Any]:
    """Remove ``count`` items from the start."""
    items = _as_list(value)
    count = _count(count)
    return items[count:] if count > 0 else items


def unshift(value: Any, item: Any, count: Any = 1) -> list[Any]:
    """Prepend ``item`` ``count`` times; non-positive counts change nothing."""
    items = _as_list(value)
    return [item] * max(_count(count), 0) + items


def first(value: Any) -> Any:
    if isinstance(value, str):
        return value[:1]
    items = _as_list(value)
    return items[0] if items else None


def last(value: Any) -> Any:
    if isinstance(value, str):
        return value[-1:]
    items = _as_list(value)
    return items[-1] if items else None


def size(value: Any) -> int:
    if _missing(value):
        return 0
    try:
        return len(value)
    except TypeError:
        return 0


def join(value: Any, separator: Any = " ") -> str:
    if isinstance(value, str):
        return value
    return _text(separator).join(_text(item) for item in _as_list(value))


def reverse(value: Any) -> Any:
    if isinstance(value, str):
        return value[::-1]
    return list(reversed(_as_list(value)))


def slice_(value: Any, offset: Any, length: Any = 1) -> Any:
    """Return ``length`` items/characters starting at ``offset`` (may be negative)."""
    sequence = value if isinstance(value, str) else _as_list(value)
    start = _count(offset, 0)
    if start < 0:
        start += len(sequence)
    if start < 0:
        return sequence[:0]
    return sequence[start : start + max(_count(length, 1), 0)]


# --- Numbers -----------------------------------------------------------------


def to_number(value: Any) -> int | float:
    """Coerce to int or float; unparsable input gives 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    text = _text(value).strip()
    if _INT_RE.match(text):
        return int(text)
    try:
        return float(text)
    except ValueError:
        return 0


def _numeric(result: float, *operands: int | float) -> int | float:
    if all(isinstance(operand, int) for operand in operands):
        return int(result)
    return result


def plus(value: Any, operand: Any) -> int | float:
    a, b = to_number(value), to_number(operand)
    return _numeric(a + b, a, b)


def minus(value: Any, operand: Any) -> int | float:
    a, b = to_number(value), to_number(operand)
    return _numeric(a - b, a, b)


def times(value: Any, operand: Any) -> int | float:
    a, b = to_number(value), to_number(operand)
    return _numeric(a * b, a, b)


def divided_by(value: Any, operand: Any) -> int | float:
    """Divide; integer operands use floor division.

    Raises:
        ZeroDivisionError: If the divisor is zero.
    """
    a, b = to_number(value), to_number(operand)
    if isinstance(a, int) and isinstance(b, int):
        return a // b
    return a / b


def modulo(value: Any, operand: Any) -> int | float:
    a, b = to_number(value), to_number(operand)
    return a % b


def round_(value: Any, digits: Any = 0) -> int | float:
    """Round half away from zero; zero digits returns an int."""
    digits = _count(digits, 0)
    try:
        number = Decimal(str(to_number(value)))
        rounded = number.quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return 0
    return int(rounded) if digits <= 0 else float(rounded)


def ceil(value: Any) -> int:
    return int(math.ceil(to_number(value)))


def floor(value: Any) -> int:
    return int(math.floor(to_number(value)))


def at_least(value: Any, minimum: Any) -> int | float:
    return max(to_number(value), to_number(minimum))


def at_most(value: Any, maximum: Any) -> int | float:
    return min(to_number(value), to_number(maximum))


def abs_(value: Any) -> int | float:
    return abs(to_number(value))


def to_integer(value: Any) -> int:
    """Convert to an integer; unparsable input gives 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    text = _text(value)
    match = _LEADING_INT_RE.match(text)
    if match:
        return int(match.group(1))
    try:
        return int(float(text))
    except ValueError:
        return 0


# --- Dates -------------------------------------------------------------------


def _ordinal(day: int) -> str:
    if 10 <= day % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def _stringify_date(value: Any, month_fmt: str, kind: Any, style: Any) -> str:
    parsed = parse_date(None if _missing(value) else value)
    if parsed is None:
        return ""
    month = parsed.strftime(month_fmt)
    if _text(kind) == "ordinal":
        day = _ordinal(parsed.day)
        if _text(style) == "US":
            return f"{month} {day}, {parsed.year}"
        return f"{day} {month} {parsed.year}"
    return f"{parsed.day:02d} {month} {parsed.year}"


def date_filter(value: Any, fmt: Any = None) -> str:
    """Format a date with strftime; unparsable input renders as ''."""
    parsed = parse_date(None if _missing(value) else value)
    if parsed is None:
        return ""
    fmt = _text(fmt)
    if not fmt:
        return _text(value)
    try:
        return parsed.strftime(fmt)
    except ValueError:
        return ""


def date_to_xmlschema(value: Any) -> str:
    parsed = parse_date(None if _missing(value) else value)
    return parsed.isoformat() if parsed else ""


def date_to_rfc822(value: Any) -> str:
    parsed = parse_date(None if _missing(value) else value)
    return parsed.strftime("%a, %d %b %Y %H:%M:%S %z") if parsed else ""


def date_to_string(value: Any, kind: Any = None, style: Any = None) -> str:
    """Format as ``15 Jan 2024`` (or ordinal variants)."""
    return _stringify_date(value, "%b", kind, style)


def date_to_long_string(value: Any, kind: Any = None, style: Any = None) -> str:
    """Format as ``15 January 2024`` (or ordinal variants)."""
    return _stringify_date(value, "%B", kind, style)


FILTERS: dict[str, Callable[..., Any]] = {
    # strings
    "upcase": upcase,
    "downcase": downcase,
    "capitalize": capitalize,
    "strip": strip,
    "lstrip": lstrip,
    "rstrip": rstrip,
    "escape": escape,
    "escape_once": escape_once,
    "xml_escape": xml_escape,
    "cgi_escape": cgi_escape,
    "uri_escape": uri_escape,
    "strip_html": strip_html,
    "strip_newlines": strip_newlines,
    "newline_to_br": newline_to_br,
    "normalize_whitespace": normalize_whitespace,
    "append": append,
    "prepend": prepend,
    "remove": remove,
    "remove_first": remove_first,
    "replace": replace,
    "replace_first": replace_first,
    "split": split,
    "truncate": truncate,
    "truncatewords": truncatewords,
    "number_of_words": number_of_words,
    "slugify": jekyll_slugify,
    "array_to_sentence_string": array_to_sentence_string,
    "jsonify": jsonify,
    "inspect": inspect,
    "default": default,
    # arrays
    "where": where,
    "where_exp": where_exp,
    "group_by": group_by,
    "sort": sort,
    "sort_natural": sort_natural,
    "uniq": uniq,
    "map": map_property,
    "find": find,
    "compact": compact,
    "concat": concat,
    "push": push,
    "pop": pop,
    "shift": shift,
    "unshift": unshift,
    "first": first,
    "last": last,
    "size": size,
    "join": join,
    "reverse": reverse,
    "slice": slice_,
    # numbers
    "plus": plus,
    "minus": minus,
    "times": times,
    "divided_by": divided_by,
    "modulo": modulo,
    "round": round_,
    "ceil": ceil,
    "floor": floor,
    "at_least": at_least,
    "at_most": at_most,
    "abs": abs_,
    "to_integer": to_integer,
    # dates
    "date": date_filter,
    "date_to_xmlschema": date_to_xmlschema,
    "date_to_rfc822": date_to_rfc822,
    "date_to_string": date_to_string,
    "date_to_long_string": date_to_long_string,
}
