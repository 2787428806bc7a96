from __future__ import annotations

import posixpath
import threading
from typing import Dict, List, Optional

from bindkit.core.exception import RemoteConnectionError, RemoteFileNotFound, RemoteIOError
from bindkit.core.registry.sessions import register_session
from bindkit.core.sessions.base import SessionInit


class MemoryFilesystem:
    """Dict-backed remote filesystem. Files keep insertion order."""

    def __init__(self) -> None:
        self.files: Dict[str, bytes] = {}
        self.dirs: set[str] = set()
        self._lock = threading.Lock()

    @staticmethod
    def _norm(path: str) -> str:
        return posixpath.normpath(path or ".")

    def is_dir(self, path: str) -> bool:
        return self._norm(path) in self.dirs

    def mkdir_recursive(self, path: str) -> None:
        d = self._norm(path)
        with self._lock:
            while d not in ("", ".", "/"):
                if d in self.files:
                    raise RemoteIOError(f"error creating directory {d}: is a file", operation="mkdir", path=d)
                self.dirs.add(d)
                d = posixpath.dirname(d)

    def seed(self, path: str, data: bytes) -> None:
        self.mkdir_recursive(posixpath.dirname(self._norm(path)))
        with self._lock:
            self.files[self._norm(path)] = bytes(data)

    def listdir(self, path: str) -> List[str]:
        d = self._norm(path)
        with self._lock:
            if d not in self.dirs and d not in (".", "/"):
                raise RemoteFileNotFound(f"list {path} failed: no such directory", operation="list", path=path)
            return [posixpath.basename(p) for p in self.files if posixpath.dirname(p) == ("" if d == "." else d)]

    def read(self, path: str) -> bytes:
        p = self._norm(path)
        with self._lock:
            if p in self.dirs:
                raise RemoteIOError(f"fetch {path} failed: is a directory", operation="fetch", path=path)
            if p not in self.files:
                raise RemoteFileNotFound(f"fetch {path} failed: no such file", operation="fetch", path=path)
            return self.files[p]


# Shared stores keyed by host:port so consecutive sessions see each other's writes.
_STORES: Dict[str, MemoryFilesystem] = {}
_STORES_LOCK = threading.Lock()


def shared_filesystem(address: str) -> MemoryFilesystem:
    with _STORES_LOCK:
        if address not in _STORES:
            _STORES[address] = MemoryFilesystem()
        return _STORES[address]


def reset_shared_filesystems() -> None:
    with _STORES_LOCK:
        _STORES.clear()


@register_session("sftp", "memory")
class MemorySession:
    """
    In-memory session with the same semantics as the SFTP one.

    Counts connect/close calls and can be told to fail any capability:

        s = MemorySession(filesystem=fs, failures={"fetch": RemoteIOError("boom")})
    """

    def __init__(
        self,
        init: Optional[SessionInit] = None,
        *,
        filesystem: Optional[MemoryFilesystem] = None,
        failures: Optional[Dict[str, Exception]] = None,
    ):
        if filesystem is None:
            filesystem = shared_filesystem(init.config.address) if init is not None else MemoryFilesystem()
        self.filesystem = filesystem
        self.failures = dict(failures or {})
        self.connected = False
        self.connect_calls = 0
        self.close_calls = 0
        self.calls: List[tuple] = []

    def _maybe_fail(self, op: str) -> None:
        exc = self.failures.get(op)
        if exc is not None:
            raise exc

    def _require_connected(self) -> None:
        if not self.connected:
            raise RemoteConnectionError("memory session is not connected")

    def connect(self) -> None:
        self.connect_calls += 1
        self._maybe_fail("connect")
        self.connected = True

    def close(self) -> None:
        self.close_calls += 1
        was_connected = self.connected
        self.connected = False
        if was_connected:
            self._maybe_fail("close")

    def list(self, path: str) -> List[str]:
        self._require_connected()
        self.calls.append(("list", path))
        self._maybe_fail("list")
        return self.filesystem.listdir(path)

    def fetch(self, path: str) -> bytes:
        self._require_connected()
        self.calls.append(("fetch", path))
        self._maybe_fail("fetch")
        return self.filesystem.read(path)

    def write(self, path: str, data: bytes) -> None:
        self._require_connected()
        self.calls.append(("write", path, bytes(data)))
        self._maybe_fail("write")
        self.filesystem.mkdir_recursive(posixpath.dirname(posixpath.normpath(path)))
        if self.filesystem.is_dir(path):
            raise RemoteIOError(f"write {path} failed: is a directory", operation="write", path=path)
        self.filesystem.seed(path, data)
