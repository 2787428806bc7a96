"""bindkit core package.

Public entrypoints:
- bindkit.core.api: stable API surface for integrations/plugins
- bindkit.core.binding.SftpBinding: the SFTP output binding

Internal modules may change without notice.
"""

from __future__ import annotations

# Ensure built-in session drivers are registered on import.
from bindkit.core.sessions import memory as _memory  # noqa: F401
from bindkit.core.sessions import sftp as _sftp  # noqa: F401

from bindkit.core.binding import SftpBinding

__all__ = ["SftpBinding"]
