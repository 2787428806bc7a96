"""Centralized customized exceptions for bindkit.

All binding errors derive from BindingError so host frameworks can catch a
single type. Internal code should prefer explicit imports:

    from bindkit.core.exception import InvalidPath
"""

from __future__ import annotations

__all__ = [
    "BindingError",
    "ConfigurationError",
    "InvalidPath",
    "RemoteConnectionError",
    "HostKeyRejected",
    "RemoteIOError",
    "RemoteFileNotFound",
    "UnsupportedOperation",
]


class BindingError(RuntimeError):
    """Base error for binding failures."""


class ConfigurationError(BindingError, ValueError):
    """Raised when binding properties are invalid or incomplete."""


class InvalidPath(BindingError, ValueError):
    """Raised when a file name would resolve outside the configured root."""

    def __init__(self, message: str, *, root: str | None = None, file_name: str | None = None):
        super().__init__(message)
        self.root = root
        self.file_name = file_name


class RemoteConnectionError(BindingError):
    """Transport dial, authentication or session teardown failure."""


class HostKeyRejected(RemoteConnectionError):
    """Raised by a host-key policy when the server key is not trusted."""


class RemoteIOError(BindingError):
    """Failure of list/fetch/write against an established session."""

    def __init__(self, message: str, *, operation: str | None = None, path: str | None = None):
        super().__init__(message)
        self.operation = operation
        self.path = path


class RemoteFileNotFound(RemoteIOError):
    """The remote side reported that the path does not exist."""


class UnsupportedOperation(BindingError):
    """Requested operation kind is not one of list/get/create."""

    def __init__(self, operation: str):
        super().__init__(f"Operation not implemented: {operation!r}")
        self.operation = operation
