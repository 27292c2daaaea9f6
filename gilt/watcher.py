"""Watch mode for Gilt.

Watches the site source with watchdog and rebuilds incrementally: a changed
file re-renders only the documents that use it. Changing the configuration
file reloads it and runs a full build. Changes below the destination are
ignored.

Key classes:
- SiteWatcher: Owns the observer and dispatches rebuilds.
- _ChangeHandler: watchdog event handler forwarding file changes.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .build import Builder, BuildResult
from .config import load_config
from .errors import GiltError
from .site import Site
from .utils import is_within

_RELEVANT_EVENTS = {"created", "modified", "deleted", "moved"}


class SiteWatcher:
    """Rebuilds a site whenever its sources change.

    Attributes:
        builder: Builder used for rebuilds; replaced when the config changes.
        config_path: Configuration file whose changes trigger a full build.
        on_rebuild: Optional callback receiving each BuildResult.
    """

    def __init__(
        self,
        builder: Builder,
        config_path: Path | str | None = None,
        on_rebuild: Callable[[BuildResult], None] | None = None,
        debounce_seconds: float = 0.05,
    ):
        self.builder = builder
        source = builder.site.source
        self.config_path = Path(config_path or source / "_config.yml").resolve()
        self.on_rebuild = on_rebuild
        self._debounce_seconds = debounce_seconds
        self._last_change: dict[str, float] = {}
        self._lock = threading.Lock()
        self._observer: Observer | None = None

    @property
    def site(self) -> Site:
        return self.builder.site

    def start(self) -> None:
        """Start observing the source tree (and the config file's folder)."""
        handler = _ChangeHandler(self)
        observer = Observer()
        observer.schedule(handler, str(self.site.source), recursive=True)
        if not is_within(self.config_path, self.site.source):
            observer.schedule(handler, str(self.config_path.parent), recursive=False)
        observer.start()
        self._observer = observer

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    def run_forever(self) -> None:  # pragma: no cover - integration path
        self.start()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def handle_change(self, path: Path | str) -> BuildResult | None:
        """Rebuild for one changed file.

        Args:
            path: Absolute path of the changed file.

        Returns:
            The BuildResult, or None when the change was ignored.
        """
        path = Path(path).resolve()
        if path != self.config_path:
            if is_within(path, self.site.destination):
                return None
            if not is_within(path, self.site.source) or self.site.is_excluded(path):
                return None

        with self._lock:
            now = time.monotonic()
            key = str(path)
            if now - self._last_change.get(key, float("-inf")) < self._debounce_seconds:
                return None
            self._last_change[key] = now
            try:
                if path == self.config_path:
                    print("Configuration changed; rebuilding site...")
                    self._reload_config()
                    result = self.builder.build()
                else:
                    rel = path.relative_to(self.site.source).as_posix()
                    print(f"Change detected in {rel}; rebuilding...")
                    result = self.builder.rebuild([rel])
            except GiltError as exc:
                print(f"Error: {exc.formatted()}")
                return None

        for error in result.errors:
            print(f"Error: {error}")
        if self.on_rebuild is not None:
            self.on_rebuild(result)
        return result

    def _reload_config(self) -> None:
        old = self.builder
        config = load_config(self.config_path)
        site = Site(old.site.source, config, plugins=old.site.plugins)
        self.builder = Builder(site, workers=old.workers, clean=old.clean)


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, watcher: SiteWatcher):
        super().__init__()
        self.watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _RELEVANT_EVENTS:
            return
        path = getattr(event, "dest_path", "") or event.src_path
        self.watcher.handle_change(Path(str(path)))
