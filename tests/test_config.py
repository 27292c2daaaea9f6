from pathlib import Path

import pytest

from gilt.config import (
    DEFAULT_EXCLUDES,
    apply_front_matter_defaults,
    load_config,
    markdown_extensions,
    merge_config,
    normalize_collections,
)
from gilt.errors import ConfigError


def test_load_config_missing_file_uses_defaults(tmp_path):
    config = load_config(tmp_path / "_config.yml")
    assert config["source"] == str(tmp_path.resolve())
    assert config["destination"] == str(tmp_path.resolve() / "_site")
    assert config["markdown"] == "kramdown"
    assert config["layouts_dir"] == "_layouts"
    for pattern in DEFAULT_EXCLUDES:
        assert pattern in config["exclude"]


def test_load_config_merges_user_values(tmp_path):
    (tmp_path / "_config.yml").write_text(
        "title: Blog\nbaseurl: /blog\nexclude: [drafts, README.md]\n"
        "collections: [recipes]\ndestination: public\n",
        encoding="utf-8",
    )
    config = load_config(tmp_path / "_config.yml")
    assert config["title"] == "Blog"
    assert config["baseurl"] == "/blog"
    assert "drafts" in config["exclude"]
    assert "node_modules" in config["exclude"]
    assert config["collections"] == {"recipes": {"output": False}}
    assert Path(config["destination"]) == (tmp_path / "public").resolve()


@pytest.mark.parametrize("content", ["- a\n- b\n", "key: [unclosed\n"])
def test_load_config_invalid_raises(tmp_path, content):
    path = tmp_path / "_config.yml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_empty_config_file_uses_defaults(tmp_path):
    (tmp_path / "_config.yml").write_text("", encoding="utf-8")
    config = load_config(tmp_path / "_config.yml")
    assert config["permalink"] == "date"


def test_merge_config_is_idempotent(tmp_path):
    once = merge_config({"exclude": ["tmp"]}, tmp_path)
    twice = merge_config(once, tmp_path)
    assert twice["exclude"] == once["exclude"]
    assert twice["destination"] == once["destination"]


def test_normalize_collections():
    assert normalize_collections(None) == {}
    assert normalize_collections(["docs"]) == {"docs": {"output": False}}
    assert normalize_collections({"posts": None}) == {"posts": {"output": True}}
    assert normalize_collections({"docs": {"output": True, "permalink": "/d/:name"}}) == {
        "docs": {"output": True, "permalink": "/d/:name"}
    }


def test_markdown_extensions():
    assert markdown_extensions(None) == {".markdown", ".mkdown", ".mkdn", ".mkd", ".md"}
    assert markdown_extensions({"markdown_ext": "md, .TXT"}) == {".md", ".txt"}


def test_front_matter_defaults_precedence():
    config = {
        "defaults": [
            {"scope": {"path": ""}, "values": {"layout": "default", "author": "site"}},
            {"scope": {"path": "", "type": "posts"}, "values": {"layout": "post"}},
            {"scope": {"path": "blog"}, "values": {"author": "blog team"}},
            {"scope": {"path": "blog/news", "type": "pages"}, "values": {"layout": "news"}},
        ]
    }
    post = apply_front_matter_defaults("_posts/2024-01-01-a.md", "post", {}, config)
    assert post == {"layout": "post", "author": "site"}

    page = apply_front_matter_defaults("blog/news/today.md", "page", {}, config)
    assert page == {"layout": "news", "author": "blog team"}

    own = apply_front_matter_defaults(
        "blog/news/today.md", "page", {"layout": "custom"}, config
    )
    assert own["layout"] == "custom"


def test_front_matter_defaults_glob_and_collection():
    config = {
        "defaults": [
            {"scope": {"path": "docs/*.md"}, "values": {"toc": True}},
            {"scope": {"type": "recipes"}, "values": {"layout": "recipe"}},
        ]
    }
    assert apply_front_matter_defaults("docs/intro.md", "page", {}, config) == {"toc": True}
    assert apply_front_matter_defaults("docs/intro.html", "page", {}, config) == {}
    assert apply_front_matter_defaults("_recipes/cake.md", "recipes", {}, config) == {
        "layout": "recipe"
    }
