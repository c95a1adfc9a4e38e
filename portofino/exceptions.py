"""Application-level exception types.

Convention:
- ``ResourceNotFoundError`` and ``PageNotActiveError`` are safe to report to
  clients; the global handlers map them to 404.
- ``DefinitionLoadError`` and ``DefinitionSaveError`` wrap parse and I/O
  failures on ``page.xml``/``configuration.xml``. Their details are logged
  server-side and replaced by a generic message in responses.
"""

from __future__ import annotations


class ResourceNotFoundError(Exception):
    """Raised when a location is missing or is not a directory."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Resource not found or not a directory: {path}")
        self.path = path


class PageNotActiveError(Exception):
    """Raised when a page definition cannot be served.

    The cached entry is in error state (the file was deleted or could not be
    reloaded) or the initial load failed.
    """

    def __init__(self, path: str) -> None:
        super().__init__(f"Page not active: {path}")
        self.path = path


class DefinitionLoadError(Exception):
    """Raised when a page or configuration document cannot be read or parsed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Could not load {path}: {reason}")
        self.path = path
        self.reason = reason


class DefinitionSaveError(Exception):
    """Raised when a page or configuration document cannot be written."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Could not save {path}: {reason}")
        self.path = path
        self.reason = reason


class InvalidOperationError(Exception):
    """Raised for operations a resource does not support, e.g. re-parenting the root."""
