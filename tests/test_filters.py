from datetime import datetime, timezone

import pytest
from jinja2 import Undefined

from gilt import filters as f


# --- Strings -------------------------------------------------------------------


def test_case_filters_handle_missing_values():
    assert f.upcase("abc") == "ABC"
    assert f.downcase("ABC") == "abc"
    assert f.capitalize("hello world") == "Hello world"
    assert f.upcase(None) == ""
    assert f.upcase(Undefined()) == ""
    assert f.downcase(True) == "true"


def test_escape_family():
    assert f.escape("<a href='x'>&</a>") == "&lt;a href=&#39;x&#39;&gt;&amp;&lt;/a&gt;"
    assert f.escape_once("&lt;b&gt; & <i>") == "&lt;b&gt; &amp; &lt;i&gt;"
    assert f.xml_escape("a & 'b' <c> \"d\"") == "a &amp; 'b' &lt;c&gt; &quot;d&quot;"
    assert f.xml_escape(None) == ""
    assert f.cgi_escape("foo, bar; baz?") == "foo%2C+bar%3B+baz%3F"
    assert f.uri_escape("foo, bar \\baz?") == "foo,%20bar%20%5Cbaz?"


def test_whitespace_filters():
    assert f.strip("  x  ") == "x"
    assert f.lstrip("  x  ") == "x  "
    assert f.rstrip("  x  ") == "  x"
    assert f.strip_newlines("a\nb\r\nc") == "abc"
    assert f.newline_to_br("a\nb") == "a<br />\nb"
    assert f.normalize_whitespace("  a \n\t b  ") == "a b"


def test_strip_html():
    html = "<p>Hi <script>alert(1)</script><b>there</b><!-- c --></p>"
    assert f.strip_html(html) == "Hi there"


def test_string_editing():
    assert f.append("file", ".html") == "file.html"
    assert f.prepend("world", "hello ") == "hello world"
    assert f.remove("a-b-c", "-") == "abc"
    assert f.remove_first("a-b-c", "-") == "ab-c"
    assert f.replace("a-b-c", "-", "+") == "a+b+c"
    assert f.replace_first("a-b-c", "-", "+") == "a+b-c"
    assert f.split("a,b,c", ",") == ["a", "b", "c"]
    assert f.split("a b  c") == ["a", "b", "c"]
    assert f.split("", ",") == []


def test_truncate_counts_the_ellipsis():
    text = "Ground control to Major Tom."
    assert f.truncate(text, 20) == "Ground control to..."
    assert f.truncate(text, 25, ", and so on") == "Ground control, and so on"
    assert f.truncate("short", 20) == "short"
    assert f.truncate(text, 2) == "..."


def test_truncatewords():
    text = "Ground control to Major Tom."
    assert f.truncatewords(text, 3) == "Ground control to..."
    assert f.truncatewords(text, 3, "--") == "Ground control to--"
    assert f.truncatewords(text) == text
    assert f.number_of_words(text) == 5


def test_slugify_and_sentence():
    assert f.jekyll_slugify("Hello, World!") == "hello-world"
    assert f.jekyll_slugify(None) == ""
    assert f.array_to_sentence_string(["a", "b", "c"]) == "a, b, and c"
    assert f.array_to_sentence_string(["a", "b"], "or") == "a or b"
    assert f.array_to_sentence_string(["a"]) == "a"
    assert f.array_to_sentence_string([]) == ""


def test_jsonify():
    value = {"a": [1, "é"], "when": datetime(2024, 1, 15, 8, 30, tzinfo=timezone.utc)}
    assert f.jsonify(value) == '{"a":[1,"é"],"when":"2024-01-15 08:30:00 +0000"}'
    assert f.jsonify(Undefined()) == "null"


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, "fallback"),
        (Undefined(), "fallback"),
        ("", "fallback"),
        (False, False),
        (0, 0),
        ([], []),
        ("value", "value"),
    ],
)
def test_default_only_replaces_nil_and_empty_string(value, expected):
    assert f.default(value, "fallback") == expected


# --- Arrays --------------------------------------------------------------------


POSTS = [
    {"title": "A", "category": "news", "tags": ["x", "y"], "n": 2},
    {"title": "B", "category": "blog", "tags": ["y"], "n": None},
    {"title": "C", "category": "news", "tags": [], "n": 1},
]


def test_where_and_find():
    assert [p["title"] for p in f.where(POSTS, "category", "news")] == ["A", "C"]
    assert [p["title"] for p in f.where(POSTS, "tags", "y")] == ["A", "B"]
    assert [p["title"] for p in f.where(POSTS, "n", "2")] == ["A"]
    assert f.find(POSTS, "category", "blog")["title"] == "B"
    assert f.find(POSTS, "category", "none") is None
    assert f.where(None, "category", "news") == []


def test_where_exp_operators():
    assert [p["title"] for p in f.where_exp(POSTS, "n", ">=", 1)] == ["A", "C"]
    assert [p["title"] for p in f.where_exp(POSTS, "tags", "contains", "x")] == ["A"]
    assert [p["title"] for p in f.where_exp(POSTS, "category", "!=", "news")] == ["B"]
    assert f.where_exp(POSTS, "n", "~", 1) == []


def test_group_by_keeps_first_seen_order():
    groups = f.group_by(POSTS, "category")
    assert [(g["name"], g["size"]) for g in groups] == [("news", 2), ("blog", 1)]
    assert [p["title"] for p in groups[0]["items"]] == ["A", "C"]


def test_sort_places_nils():
    assert [p["title"] for p in f.sort(POSTS, "n")] == ["B", "C", "A"]
    assert [p["title"] for p in f.sort(POSTS, "n", "last")] == ["C", "A", "B"]
    assert f.sort([3, 1, 2]) == [1, 2, 3]
    assert f.sort_natural(["b", "A", "c"]) == ["A", "b", "c"]


def test_uniq_map_compact_concat():
    assert f.uniq([1, 1, 2, 1]) == [1, 2]
    assert [p["title"] for p in f.uniq(POSTS, "category")] == ["A", "B"]
    assert f.map_property(POSTS, "title") == ["A", "B", "C"]
    assert f.map_property([{"a": {"b": 1}}], "a.b") == [1]
    assert f.compact([1, None, 2]) == [1, 2]
    assert [p["title"] for p in f.compact(POSTS, "n")] == ["A", "C"]
    assert f.concat([1], [2, 3]) == [1, 2, 3]


def test_push_pop_shift_unshift_do_not_mutate():
    items = [1, 2, 3]
    assert f.push(items, 4) == [1, 2, 3, 4]
    assert f.push(items, 4, 2) == [1, 2, 3, 4, 4]
    assert f.push(items, 4, 0) == items
    assert f.pop(items) == [1, 2]
    assert f.pop(items, 2) == [1]
    assert f.pop(items, 0) == items
    assert f.shift(items) == [2, 3]
    assert f.shift(items, -1) == items
    assert f.unshift(items, 0) == [0, 1, 2, 3]
    assert items == [1, 2, 3]


def test_sequence_accessors():
    assert f.first([1, 2]) == 1
    assert f.last([1, 2]) == 2
    assert f.first([]) is None
    assert f.first("abc") == "a"
    assert f.size([1, 2, 3]) == 3
    assert f.size("abcd") == 4
    assert f.size(Undefined()) == 0
    assert f.join([1, "a", None]) == "1 a "
    assert f.join(["a", "b"], ", ") == "a, b"
    assert f.reverse([1, 2, 3]) == [3, 2, 1]
    assert f.reverse("abc") == "cba"


def test_slice():
    assert f.slice_("Liquid", 0) == "L"
    assert f.slice_("Liquid", 2, 5) == "quid"
    assert f.slice_("Liquid", -3, 2) == "ui"
    assert f.slice_([1, 2, 3, 4], 1, 2) == [2, 3]
    assert f.slice_([1, 2], -5) == []


# --- Numbers -------------------------------------------------------------------


def test_arithmetic_keeps_integers():
    assert f.plus(1, 2) == 3 and isinstance(f.plus(1, 2), int)
    assert f.plus("1", "2.5") == 3.5
    assert f.minus(5, "2") == 3
    assert f.times(2, 3) == 6
    assert f.times("abc", 3) == 0
    assert f.divided_by(7, 2) == 3
    assert f.divided_by(-7, 2) == -4
    assert f.divided_by(7, 2.0) == 3.5
    assert f.modulo(7, 3) == 1


def test_divided_by_zero_raises():
    with pytest.raises(ZeroDivisionError):
        f.divided_by(1, 0)


def test_rounding():
    assert f.round_(2.5) == 3
    assert isinstance(f.round_(2.5), int)
    assert f.round_(-2.5) == -3
    assert f.round_("3.14159", 2) == 3.14
    assert f.ceil("1.2") == 2
    assert f.floor(1.8) == 1
    assert f.abs_("-3") == 3


def test_clamps_and_conversions():
    assert f.at_least(3, 5) == 5
    assert f.at_most(3, 5) == 3
    assert f.to_number("42") == 42
    assert f.to_number("4.5") == 4.5
    assert f.to_number("nope") == 0
    assert f.to_integer("42abc") == 42
    assert f.to_integer("3.7") == 3
    assert f.to_integer(True) == 1
    assert f.to_integer("x") == 0


# --- Dates ---------------------------------------------------------------------


JAN_15 = datetime(2024, 1, 15, tzinfo=timezone.utc)


def test_date_strings():
    assert f.date_to_string(JAN_15) == "15 Jan 2024"
    assert f.date_to_string(JAN_15, "ordinal") == "15th Jan 2024"
    assert f.date_to_string(JAN_15, "ordinal", "US") == "Jan 15th, 2024"
    assert f.date_to_long_string(JAN_15) == "15 January 2024"
    assert f.date_to_long_string("2024-03-02", "ordinal") == "2nd March 2024"
    assert f.date_to_string("2024-03-11", "ordinal") == "11th Mar 2024"


def test_machine_date_formats():
    assert f.date_to_xmlschema(JAN_15) == "2024-01-15T00:00:00+00:00"
    assert f.date_to_rfc822(JAN_15) == "Mon, 15 Jan 2024 00:00:00 +0000"


def test_date_filter():
    assert f.date_filter("2024-01-15", "%Y/%m") == "2024/01"
    assert f.date_filter(JAN_15, "%b %d") == "Jan 15"
    assert f.date_filter("2024-01-15") == "2024-01-15"


@pytest.mark.parametrize(
    "func", [f.date_to_string, f.date_to_xmlschema, f.date_to_rfc822, f.date_to_long_string]
)
def test_unparsable_dates_render_empty(func):
    assert func("not a date") == ""
    assert func(None) == ""


def test_filter_table_uses_liquid_names():
    assert f.FILTERS["map"] is f.map_property
    assert f.FILTERS["round"] is f.round_
    assert f.FILTERS["date"] is f.date_filter
    assert f.FILTERS["slugify"] is f.jekyll_slugify
