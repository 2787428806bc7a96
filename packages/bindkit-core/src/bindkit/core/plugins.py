"""Extra session drivers.

A plugin provides one or more ``sftp`` session drivers through
``@register_session("sftp", "<driver>")`` and is picked up from:

- installed distributions exposing an entry point in the ``bindkit.sessions``
  group; the entry point name is the driver it must register;
- ``*.py`` files directly under ``Settings.plugin_paths`` (names starting with
  ``_`` are helpers and skipped); each file must register at least one driver.

A plugin that fails to import, or that imports but registers no driver, is a
ConfigurationError in strict mode and a logged warning otherwise.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from importlib.metadata import entry_points
from pathlib import Path
from typing import List, Set

from bindkit.core.exception import ConfigurationError
from bindkit.core.registry.sessions import SESSION_KIND, list_sessions

log = logging.getLogger("bindkit.core.plugins")

ENTRY_POINT_GROUP = "bindkit.sessions"


def _session_drivers() -> Set[str]:
    prefix = SESSION_KIND + ":"
    return {name[len(prefix):] for name in list_sessions() if name.startswith(prefix)}


def _reject(message: str, *, strict: bool, cause: BaseException | None = None) -> None:
    if strict:
        raise ConfigurationError(message) from cause
    log.warning("%s; continuing", message, exc_info=cause is not None)


def load_entry_point_drivers(*, strict: bool = True, group: str = ENTRY_POINT_GROUP) -> List[str]:
    """Load driver plugins from installed distributions. Returns newly registered drivers."""
    before = _session_drivers()
    for ep in entry_points().select(group=group):
        try:
            obj = ep.load()
            # a module registers on import; a function is a register() hook
            if inspect.isfunction(obj):
                obj()
        except Exception as e:
            _reject(f"Failed loading session plugin {ep.name!r} ({ep.value})", strict=strict, cause=e)
            continue
        if ep.name not in _session_drivers():
            _reject(
                f"Session plugin {ep.name!r} did not register driver {SESSION_KIND}:{ep.name}",
                strict=strict,
            )
    return sorted(_session_drivers() - before)


def _module_name(py: Path) -> str:
    return "bindkit_session_plugin_" + "_".join(py.with_suffix("").parts[-2:]).replace("-", "_")


def _load_driver_file(py: Path, *, strict: bool) -> None:
    mod_name = _module_name(py)
    if mod_name in sys.modules:
        return
    before = _session_drivers()
    try:
        spec = importlib.util.spec_from_file_location(mod_name, py)
        if spec is None or spec.loader is None:
            raise ImportError(f"no loader for {py}")
        mod = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(mod)
    except Exception as e:
        _reject(f"Failed loading session plugin file {py}", strict=strict, cause=e)
        return
    sys.modules[mod_name] = mod
    if not _session_drivers() - before:
        _reject(f"Session plugin file {py} registered no {SESSION_KIND} driver", strict=strict)


def load_path_drivers(paths: List[str], *, strict: bool = True) -> List[str]:
    """Load driver plugins from directories. Returns newly registered drivers."""
    before = _session_drivers()
    for raw in paths:
        if not raw:
            continue
        root = Path(raw).expanduser().resolve()
        if not root.is_dir():
            _reject(f"Plugin path not found: {root}", strict=strict)
            continue
        # helper modules next to the drivers must be importable
        if str(root) not in sys.path:
            sys.path.insert(0, str(root))
        for py in sorted(root.glob("*.py")):
            if not py.name.startswith("_"):
                _load_driver_file(py, strict=strict)
    return sorted(_session_drivers() - before)


def load_session_plugins(*, settings) -> List[str]:
    added = load_entry_point_drivers(strict=settings.plugin_strict)
    added += load_path_drivers(settings.plugin_paths, strict=settings.plugin_strict)
    if added:
        log.info("session drivers loaded from plugins: %s", ", ".join(added))
    return added


__all__ = ["ENTRY_POINT_GROUP", "load_entry_point_drivers", "load_path_drivers", "load_session_plugins"]
