"""Dependency tracking for incremental rebuilds.

The tracker records, for every rendered document, the layouts and includes
it used. When a shared file changes, ``get_reverse_dependencies`` tells the
build driver which documents must be re-rendered.

All keys are paths relative to the site source.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .document import Document


class DependencyTracker:
    """Directed graph of document -> dependency file.

    Recording is idempotent and thread-safe, so documents rendered
    concurrently can record their dependencies without racing.
    """

    def __init__(self):
        self._dependencies: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def add_dependency(self, document_path: str, dependency_path: str) -> None:
        """Record that a document depends on another file.

        Args:
            document_path: Path of the document.
            dependency_path: Path of the layout/include it used.
        """
        with self._lock:
            self._dependencies.setdefault(document_path, set()).add(dependency_path)

    def get_dependencies(self, document_path: str) -> list[str]:
        """Return the dependencies recorded for a document, sorted."""
        with self._lock:
            return sorted(self._dependencies.get(document_path, ()))

    def get_reverse_dependencies(self, file_path: str) -> list[str]:
        """Find all documents that depend on a file.

        Args:
            file_path: Path of a layout/include.

        Returns:
            Sorted list of document paths that used the file.
        """
        with self._lock:
            return sorted(
                doc for doc, deps in self._dependencies.items() if file_path in deps
            )

    def track_document(
        self,
        document: Document,
        layout_paths: Iterable[str] = (),
        include_paths: Iterable[str] = (),
    ) -> None:
        """Record the layouts and includes a document was rendered with."""
        for path in [*layout_paths, *include_paths]:
            self.add_dependency(document.relative_path, path)

    def forget(self, document_path: str) -> None:
        """Drop everything recorded for one document."""
        with self._lock:
            self._dependencies.pop(document_path, None)

    def clear(self) -> None:
        """Clear all dependency information."""
        with self._lock:
            self._dependencies.clear()

    def stats(self) -> dict[str, int]:
        """Return the number of tracked documents and total edges."""
        with self._lock:
            return {
                "document_count": len(self._dependencies),
                "total_dependencies": sum(
                    len(deps) for deps in self._dependencies.values()
                ),
            }

    def __contains__(self, document_path: str) -> bool:
        with self._lock:
            return document_path in self._dependencies

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"DependencyTracker({len(self._dependencies)} documents)"
