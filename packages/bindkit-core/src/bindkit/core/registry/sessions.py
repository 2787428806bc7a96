from __future__ import annotations

from typing import Dict, Tuple, Type

from bindkit.core.sessions.base import RemoteSession, SessionInit
from bindkit.core.spec import SftpConfig

SESSION_KIND = "sftp"


class SessionRegistry:
    """
    Registry + factory for remote session drivers.

    Supports decorator registration:
        @registry.register("sftp", "paramiko")
        class ParamikoSession: ...

    And factory instantiation that binds the validated binding config:
        session = registry.create(kind="sftp", driver="paramiko", config=cfg, timeout=30)
    """

    def __init__(self) -> None:
        self._items: Dict[Tuple[str, str], Type] = {}

    def register(self, kind: str, driver: str):
        def deco(cls):
            self._items[(kind, driver)] = cls
            return cls
        return deco

    def get(self, kind: str, driver: str):
        key = (kind, driver)
        if key not in self._items:
            avail = sorted([f"{k}:{d}" for (k, d) in self._items.keys()])
            raise KeyError(f"Unknown session driver: {kind}:{driver}. Loaded: {avail}")
        return self._items[key]

    def list(self) -> list[str]:
        return sorted([f"{k}:{d}" for (k, d) in self._items.keys()])

    def create(self, *, kind: str, driver: str, config: SftpConfig, timeout: float = 30.0) -> RemoteSession:
        Cls = self.get(kind, driver)
        return Cls(SessionInit(kind=kind, driver=driver, config=config, timeout=timeout))


# Singleton registry used by core + plugins
REGISTRY = SessionRegistry()


def register_session(kind: str, driver: str):
    return REGISTRY.register(kind, driver)


def get_session(kind: str, driver: str):
    return REGISTRY.get(kind, driver)


def list_sessions() -> list[str]:
    return REGISTRY.list()
