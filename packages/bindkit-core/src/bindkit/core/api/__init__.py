"""Public, stable API surface for bindkit.

If you're writing session drivers or embedding the binding in a host
framework, import from **`bindkit.core.api`**.

Everything outside this package is considered internal and may change without
notice, even in minor releases.
"""

from __future__ import annotations

# Binding
from bindkit.core.binding import SftpBinding, SessionFactory, new_file_name
from bindkit.core.codec import normalize_payload
from bindkit.core.component import load_component
# Common exceptions
from bindkit.core.exception import (
    BindingError,
    ConfigurationError,
    HostKeyRejected,
    InvalidPath,
    RemoteConnectionError,
    RemoteFileNotFound,
    RemoteIOError,
    UnsupportedOperation,
)
from bindkit.core.hostkeys import AcceptAllPolicy, PinnedKeyPolicy, TrustOnFirstUsePolicy, build_policy
from bindkit.core.observability import MetricsSink
from bindkit.core.paths import ResolvedPath, resolve, secure_join
# Registries
from bindkit.core.registry.sessions import get_session, list_sessions, register_session
# Settings
from bindkit.core.runtime.settings import Settings, load_settings
# Session contract
from bindkit.core.sessions import require
from bindkit.core.sessions.base import RemoteSession, SessionInit
from bindkit.core.sessions.memory import MemoryFilesystem, MemorySession
from bindkit.core.spec import InvokeRequest, InvokeResponse, OperationKind, SftpConfig

__all__ = [
    # binding
    "SftpBinding",
    "SessionFactory",
    "new_file_name",
    "normalize_payload",
    "load_component",
    # spec
    "InvokeRequest",
    "InvokeResponse",
    "OperationKind",
    "SftpConfig",
    # paths
    "ResolvedPath",
    "resolve",
    "secure_join",
    # sessions
    "RemoteSession",
    "SessionInit",
    "MemoryFilesystem",
    "MemorySession",
    "require",
    # host keys
    "AcceptAllPolicy",
    "PinnedKeyPolicy",
    "TrustOnFirstUsePolicy",
    "build_policy",
    # settings / observability
    "Settings",
    "load_settings",
    "MetricsSink",
    # registries
    "register_session",
    "get_session",
    "list_sessions",
    # exceptions
    "BindingError",
    "ConfigurationError",
    "InvalidPath",
    "RemoteConnectionError",
    "HostKeyRejected",
    "RemoteIOError",
    "RemoteFileNotFound",
    "UnsupportedOperation",
]
