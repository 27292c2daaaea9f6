from pathlib import Path

from watchdog.events import DirModifiedEvent, FileModifiedEvent, FileMovedEvent

from gilt.build import Builder
from gilt.site import Site
from gilt.watcher import SiteWatcher, _ChangeHandler


def _create_site(root: Path, files: dict[str, str]) -> Path:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


def _built_watcher(root: Path, files: dict[str, str], **kwargs) -> SiteWatcher:
    _create_site(root, files)
    builder = Builder(Site(root, {"title": "Initial"}))
    builder.build()
    kwargs.setdefault("debounce_seconds", 0)
    return SiteWatcher(builder, **kwargs)


SITE = {
    "_includes/nav.html": "<nav></nav>",
    "index.html": '---\n---\n{% include "nav.html" %}{{ site.title }}',
    "about.html": "---\n---\nabout",
    "node_modules/pkg.js": "x",
}


def test_change_rebuilds_dependents(tmp_path, capsys):
    results = []
    watcher = _built_watcher(tmp_path, SITE, on_rebuild=results.append)
    nav = tmp_path / "_includes" / "nav.html"
    nav.write_text("<nav>v2</nav>", encoding="utf-8")

    result = watcher.handle_change(nav)
    assert result is not None and result.success
    assert [d.relative_path for d in result.documents] == ["index.html"]
    assert results == [result]
    assert (tmp_path / "_site" / "index.html").read_text(encoding="utf-8") == "<nav>v2</nav>Initial"
    assert "Change detected in _includes/nav.html; rebuilding..." in capsys.readouterr().out


def test_ignored_paths(tmp_path):
    watcher = _built_watcher(tmp_path, SITE)
    assert watcher.handle_change(tmp_path / "_site" / "index.html") is None
    assert watcher.handle_change(tmp_path / "node_modules" / "pkg.js") is None
    assert watcher.handle_change(tmp_path.parent / "elsewhere.txt") is None


def test_rapid_changes_are_debounced(tmp_path):
    watcher = _built_watcher(tmp_path, SITE, debounce_seconds=60)
    about = tmp_path / "about.html"
    assert watcher.handle_change(about) is not None
    assert watcher.handle_change(about) is None
    assert watcher.handle_change(tmp_path / "index.html") is not None


def test_config_change_triggers_full_build(tmp_path, capsys):
    watcher = _built_watcher(tmp_path, SITE)
    old_builder = watcher.builder
    config = tmp_path / "_config.yml"
    config.write_text("title: Reloaded\n", encoding="utf-8")

    result = watcher.handle_change(config)
    assert result is not None and result.success
    assert watcher.builder is not old_builder
    assert watcher.site.config["title"] == "Reloaded"
    assert (tmp_path / "_site" / "index.html").read_text(encoding="utf-8") == "<nav></nav>Reloaded"
    assert "Configuration changed; rebuilding site..." in capsys.readouterr().out


def test_errors_are_printed(tmp_path, capsys):
    watcher = _built_watcher(tmp_path, SITE)

    (tmp_path / "about.html").write_text("---\nlayout: gone\n---\nx", encoding="utf-8")
    result = watcher.handle_change(tmp_path / "about.html")
    assert result is not None and not result.success
    assert 'Layout "gone" not found' in capsys.readouterr().out

    (tmp_path / "about.html").write_text("---\ntitle: [oops\n---\nx", encoding="utf-8")
    assert watcher.handle_change(tmp_path / "about.html") is None
    out = capsys.readouterr().out
    assert "Error: about.html - Failed to parse front matter" in out


def test_start_and_stop(tmp_path):
    watcher = _built_watcher(tmp_path, SITE)
    watcher.start()
    try:
        assert watcher._observer is not None
    finally:
        watcher.stop()
    assert watcher._observer is None


class _RecordingWatcher:
    def __init__(self):
        self.paths = []

    def handle_change(self, path):
        self.paths.append(path)


def test_change_handler_filters_events(tmp_path):
    recorder = _RecordingWatcher()
    handler = _ChangeHandler(recorder)
    handler.dispatch(FileModifiedEvent(str(tmp_path / "a.md")))
    handler.dispatch(DirModifiedEvent(str(tmp_path)))
    handler.dispatch(FileMovedEvent(str(tmp_path / "old.md"), str(tmp_path / "new.md")))
    assert recorder.paths == [tmp_path / "a.md", tmp_path / "new.md"]
