from __future__ import annotations

from dataclasses import dataclass
from typing import List, Protocol, runtime_checkable

from bindkit.core.spec import SftpConfig


@runtime_checkable
class RemoteSession(Protocol):
    """
    Remote filesystem capability contract.

    A session is one authenticated connection, used for exactly one binding
    call and then discarded. It is the only component performing network I/O.

    Sessions should:
      - fail connect() with RemoteConnectionError and never retry
      - fail list/fetch/write with RemoteIOError (operation + path attached)
      - release remote file handles before returning, also on error
      - treat close() on a never-connected session as a no-op
    """

    def connect(self) -> None: ...

    def close(self) -> None: ...

    def list(self, path: str) -> List[str]:
        """Names of the non-directory entries of ``path``, in remote order."""
        ...

    def fetch(self, path: str) -> bytes: ...

    def write(self, path: str, data: bytes) -> None:
        """Create missing parent directories, then create/truncate ``path``."""
        ...


@dataclass
class SessionInit:
    kind: str
    driver: str
    config: SftpConfig
    timeout: float = 30.0
