from pathlib import Path

import pytest

from gilt.errors import (
    IncludeNotAFileError,
    IncludeNotFoundError,
    IncludePathTraversalError,
)
from gilt.renderer import Renderer
from gilt.site import Site


def _make_site(root: Path, files: dict[str, str]) -> Site:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    site = Site(root)
    site.read()
    return site


def _render_page(site: Site, relative_path: str) -> tuple[Renderer, str]:
    renderer = Renderer(site)
    return renderer, renderer.render_document(site.find_document(relative_path))


def test_include_relative_resolves_next_to_document(tmp_path):
    site = _make_site(
        tmp_path,
        {
            "docs/guide.html": '---\ntitle: Guide\n---\n[{% include_relative "snippets/intro.txt" %}]',
            "docs/snippets/intro.txt": "Intro for {{ page.title }}",
        },
    )
    renderer, output = _render_page(site, "docs/guide.html")
    assert output == "[Intro for Guide]"
    assert renderer.tracker.get_dependencies("docs/guide.html") == ["docs/snippets/intro.txt"]


def test_include_relative_strips_front_matter_and_passes_params(tmp_path):
    site = _make_site(
        tmp_path,
        {
            "index.html": '---\n---\n{% include_relative "part.html" name="World" %}',
            "part.html": "---\nignored: true\n---\nHello {{ include.name }}",
        },
    )
    _, output = _render_page(site, "index.html")
    assert output == "Hello World"


def test_include_relative_parent_directory_inside_source(tmp_path):
    site = _make_site(
        tmp_path,
        {
            "shared.txt": "shared",
            "blog/post.html": '---\n---\n{% include_relative "../shared.txt" %}',
        },
    )
    _, output = _render_page(site, "blog/post.html")
    assert output == "shared"


def test_include_relative_rejects_traversal(tmp_path):
    source = tmp_path / "site"
    (tmp_path / "secret.txt").write_text("secret", encoding="utf-8")
    site = _make_site(source, {"index.html": '---\n---\n{% include_relative "../secret.txt" %}'})
    with pytest.raises(IncludePathTraversalError) as excinfo:
        _render_page(site, "index.html")
    assert "resolves outside the source directory" in str(excinfo.value)
    assert excinfo.value.file == "index.html"


def test_include_relative_missing_file(tmp_path):
    site = _make_site(tmp_path, {"index.html": '---\n---\n{% include_relative "missing.txt" %}'})
    with pytest.raises(IncludeNotFoundError) as excinfo:
        _render_page(site, "index.html")
    assert "File not found" in str(excinfo.value)


def test_include_relative_directory(tmp_path):
    site = _make_site(
        tmp_path,
        {
            "index.html": '---\n---\n{% include_relative "folder" %}',
            "folder/file.txt": "x",
        },
    )
    with pytest.raises(IncludeNotAFileError) as excinfo:
        _render_page(site, "index.html")
    assert "Path is not a file" in str(excinfo.value)


def test_include_relative_without_document_uses_source_root(tmp_path):
    site = _make_site(tmp_path, {"note.txt": "root note"})
    assert Renderer(site).render('{% include_relative "note.txt" %}') == "root note"


def test_include_cached_with_params(tmp_path):
    site = _make_site(
        tmp_path,
        {
            "_includes/card.html": "<div>{{ include.title }}/{{ page.title }}</div>",
            "index.html": (
                '---\ntitle: Home\n---\n'
                '{% include_cached "card.html" title="One" %}'
                '{% include_cached "card.html", title=page.title %}'
            ),
        },
    )
    renderer, output = _render_page(site, "index.html")
    assert output == "<div>One/Home</div><div>Home/Home</div>"
    assert renderer.tracker.get_dependencies("index.html") == ["_includes/card.html"]


def test_include_cached_missing(tmp_path):
    site = _make_site(tmp_path, {"index.html": '---\n---\n{% include_cached "nope.html" %}'})
    with pytest.raises(IncludeNotFoundError) as excinfo:
        _render_page(site, "index.html")
    assert excinfo.value.name == "nope.html"
    assert excinfo.value.file == "index.html"


@pytest.mark.parametrize("tag", ["include", "include_cached"])
def test_include_sees_loop_locals_and_params(tmp_path, tag):
    site = _make_site(
        tmp_path,
        {
            "_includes/card.html": "[{{ p }}|{{ include.t }}]",
            "index.html": (
                "---\n---\n"
                f'{{% for p in [1, 2] %}}{{% {tag} "card.html" t=p %}}{{% endfor %}}'
            ),
        },
    )
    renderer, output = _render_page(site, "index.html")
    assert output == "[1|1][2|2]"
    assert renderer.tracker.get_dependencies("index.html") == ["_includes/card.html"]


def test_include_and_include_cached_render_alike(tmp_path):
    site = _make_site(
        tmp_path,
        {
            "_includes/greet.html": "{{ who }}:{{ include.greeting | default('hi') }}",
            "index.html": (
                '---\n---\n{% set who = "Ann" %}'
                '{%- include "greet.html" greeting="hello" -%}|'
                '{%- include_cached "greet.html" greeting="hello" -%}|'
                '{% include "greet.html" %}'
            ),
        },
    )
    _, output = _render_page(site, "index.html")
    assert output == "Ann:hello|Ann:hello|Ann:hi"


def test_import_loads_from_includes(tmp_path):
    site = _make_site(
        tmp_path,
        {
            "_includes/macros.html": "{% macro badge(x) %}<b>{{ x }}</b>{% endmacro %}",
            "index.html": '---\n---\n{% import "macros.html" as m %}{{ m.badge("new") }}',
        },
    )
    renderer, output = _render_page(site, "index.html")
    assert output == "<b>new</b>"
    assert renderer.tracker.get_dependencies("index.html") == ["_includes/macros.html"]
