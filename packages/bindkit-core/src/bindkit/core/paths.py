"""Confine caller supplied file names to the binding root.

Remote paths are POSIX paths regardless of the local platform, so every
computation here goes through ``posixpath``. Nothing in this module touches
the network, the local filesystem or the process working directory.

    >>> resolve("download", "../download/a.txt").absolute
    'download/a.txt'
    >>> resolve("/srv/data", "/etc/passwd").absolute
    '/srv/data/etc/passwd'
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import List, Optional

from bindkit.core.exception import InvalidPath


@dataclass(frozen=True)
class ResolvedPath:
    absolute: str
    relative_to_root: str


def _normalize_root(root: str) -> str:
    if not root or not root.strip():
        raise InvalidPath("root path must not be empty", root=root)
    if "\x00" in root:
        raise InvalidPath("root path contains a NUL byte", root=root)
    return posixpath.normpath(root)


def _components(path: str) -> List[str]:
    # normpath output: "." for the empty relative path, "/" for the fs root.
    if path == ".":
        return []
    if path == "/":
        return [""]
    return path.split("/")


def relative_to_root(root: str, absolute: str) -> str:
    """Strip ``root`` from ``absolute`` on the component level.

    Returns "." when ``absolute`` is the root itself.
    """
    root_n = _normalize_root(root)
    abs_n = posixpath.normpath(absolute) if absolute else "."
    base = _components(root_n)
    parts = _components(abs_n)
    if parts[: len(base)] != base:
        raise InvalidPath(f"{absolute!r} is not located under root {root!r}", root=root, file_name=absolute)
    rest = parts[len(base):]
    # A relative root such as "." or "../data" keeps leading ".." after normpath.
    if ".." in rest:
        raise InvalidPath(f"{absolute!r} escapes root {root!r}", root=root, file_name=absolute)
    rest = [p for p in rest if p]
    return "/".join(rest) if rest else "."


def secure_join(root: str, file_name: Optional[str]) -> str:
    """Join ``file_name`` onto ``root`` and refuse anything that leaves it.

    Leading slashes are dropped, so absolute-looking names are re-rooted
    under ``root``. A name that climbs above the root with ``..`` is rejected
    instead of being clamped.
    """
    root_n = _normalize_root(root)
    name = file_name or ""
    if "\x00" in name:
        raise InvalidPath("file name contains a NUL byte", root=root, file_name=file_name)
    name = name.lstrip("/")
    if not name:
        return root_n
    joined = posixpath.normpath(posixpath.join(root_n, name))
    try:
        relative_to_root(root_n, joined)
    except InvalidPath as e:
        raise InvalidPath(
            f"file name {file_name!r} resolves outside root {root!r}", root=root, file_name=file_name
        ) from e
    return joined


def resolve(root: str, file_name: Optional[str]) -> ResolvedPath:
    absolute = secure_join(root, file_name)
    return ResolvedPath(absolute=absolute, relative_to_root=relative_to_root(root, absolute))


__all__ = ["ResolvedPath", "relative_to_root", "secure_join", "resolve"]
