"""Error types for Gilt.

Every error carries the offending file (relative to the site source, when
known) and the underlying cause, so the build driver can report which file
failed and why without parsing messages.

Error families:
- ConfigError: configuration file unreadable or invalid.
- FileSystemError: a source file could not be read or stat'ed.
- FrontMatterError: a front matter block is present but malformed.
- TemplateError: render-time failures (missing/circular layouts, includes).
- BuildError: any failure while building a single document.
"""

from __future__ import annotations

from pathlib import Path


class GiltError(Exception):
    """Base class for all Gilt errors.

    Attributes:
        message: Human-readable error message.
        file: Path of the offending file, relative to the site source.
        cause: The original exception, if any.
    """

    def __init__(
        self,
        message: str,
        file: str | None = None,
        cause: BaseException | None = None,
    ):
        self.message = message
        self.file = file
        self.cause = cause
        super().__init__(message)

    def formatted(self) -> str:
        """Return the message prefixed with file context and cause.

        Returns:
            A string like ``about.md - Failed to parse - Caused by: ...``.
        """
        parts: list[str] = []
        if self.file:
            parts.append(self.file)
        parts.append(self.message)
        if self.cause is not None:
            parts.append(f"Caused by: {self.cause}")
        return " - ".join(parts)


class ConfigError(GiltError):
    """Configuration file could not be read or is not a mapping."""


class FileSystemError(GiltError):
    """A file could not be stat'ed or read."""


class FrontMatterError(GiltError):
    """A front matter block is present but malformed."""


class TemplateError(GiltError):
    """Base class for errors raised while rendering templates."""


class LayoutNotFoundError(TemplateError):
    """A document names a layout that is not in the layout registry."""

    def __init__(self, layout: str, file: str | None = None):
        self.layout = layout
        super().__init__(f'Layout "{layout}" not found', file=file)


class CircularLayoutError(TemplateError):
    """A layout chain refers back to a layout already visited."""

    def __init__(self, chain: list[str], file: str | None = None):
        self.chain = list(chain)
        super().__init__(
            "Circular layout reference detected: " + " -> ".join(self.chain),
            file=file,
        )


class IncludeError(TemplateError):
    """Base class for include resolution failures."""


class IncludeNotFoundError(IncludeError):
    """The include does not exist."""

    def __init__(self, name: str, file: str | None = None):
        self.name = name
        super().__init__(f"File not found: '{name}'", file=file)


class IncludeNotAFileError(IncludeError):
    """The include path points at a directory."""

    def __init__(self, name: str, file: str | None = None):
        self.name = name
        super().__init__(f"Path is not a file: '{name}'", file=file)


class IncludePathTraversalError(IncludeError):
    """The include path escapes the site source directory."""

    def __init__(self, name: str, file: str | None = None):
        self.name = name
        super().__init__(
            f"Include path '{name}' resolves outside the source directory",
            file=file,
        )


class BuildError(GiltError):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: BaseException | None = None,
        file: str | None = None,
    ):
        self.source_path = source_path
        self.original_error = original_error
        super().__init__(message, file=file or str(source_path), cause=original_error)

    def __str__(self) -> str:
        return f"{self.source_path}: {self.message}"
