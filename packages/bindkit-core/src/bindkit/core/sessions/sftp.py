from __future__ import annotations

import errno
import logging
import posixpath
import stat
from typing import List

from bindkit.core.exception import RemoteConnectionError, RemoteFileNotFound, RemoteIOError
from bindkit.core.hostkeys import TrustOnFirstUsePolicy, build_policy
from bindkit.core.registry.sessions import register_session
from bindkit.core.sessions import require
from bindkit.core.sessions.base import SessionInit

log = logging.getLogger("bindkit.core.sessions.sftp")


def _io_error(operation: str, path: str, exc: BaseException) -> RemoteIOError:
    missing = isinstance(exc, FileNotFoundError) or getattr(exc, "errno", None) == errno.ENOENT
    cls = RemoteFileNotFound if missing else RemoteIOError
    return cls(f"{operation} {path} failed: {exc}", operation=operation, path=path)


@register_session("sftp", "paramiko")
class ParamikoSession:
    """
    SFTP session backed by paramiko.

    One instance per binding call: connect() dials and authenticates, the
    capability methods run against the opened SFTP channel, close() tears
    both the channel and the SSH transport down.
    """

    def __init__(self, init: SessionInit):
        self.kind = init.kind
        self.driver = init.driver
        self.config = init.config
        self.timeout = float(init.config.timeout or init.timeout)
        self._ssh = None
        self._sftp = None
        # failures a live SFTP channel can raise; set once paramiko is imported
        self._errors: tuple = (OSError, EOFError)

    def _load_key(self, paramiko, path: str):
        """Any key type paramiko understands (RSA, ECDSA, Ed25519)."""
        unknown_key_type = require("paramiko.pkey:UnknownKeyType")
        try:
            return paramiko.PKey.from_path(path, passphrase=self.config.password or None)
        except (paramiko.SSHException, unknown_key_type, OSError, ValueError) as e:
            raise RemoteConnectionError(f"Unable to load private key {path}: {e}") from e

    def connect(self) -> None:
        paramiko = require("paramiko")
        cfg = self.config
        policy = build_policy(cfg)

        ssh = paramiko.SSHClient()
        try:
            if isinstance(policy, TrustOnFirstUsePolicy):
                policy.prepare(ssh)
            ssh.set_missing_host_key_policy(policy)
            kwargs = dict(
                port=int(cfg.port),
                username=cfg.username,
                timeout=self.timeout,
                allow_agent=False,
                look_for_keys=False,
            )
            if cfg.private_key_path:
                key = self._load_key(paramiko, cfg.private_key_path)
                ssh.connect(cfg.host, pkey=key, **kwargs)
            else:
                ssh.connect(cfg.host, password=cfg.password, **kwargs)
            sftp = ssh.open_sftp()
        except RemoteConnectionError:
            ssh.close()
            raise
        except (paramiko.SSHException, OSError, EOFError) as e:
            ssh.close()
            log.error("Unable to connect to %s", cfg.address)
            raise RemoteConnectionError(f"SFTP connect to {cfg.address} failed: {e}") from e

        self._ssh = ssh
        self._sftp = sftp
        self._errors = (OSError, EOFError, paramiko.SSHException)
        log.debug("connected to %s as %s", cfg.address, cfg.username)

    def close(self) -> None:
        sftp, ssh = self._sftp, self._ssh
        self._sftp = None
        self._ssh = None
        if ssh is None:
            return
        try:
            try:
                if sftp is not None:
                    sftp.close()
            finally:
                ssh.close()
        except Exception as e:
            raise RemoteConnectionError(f"SFTP close for {self.config.address} failed: {e}") from e

    def _client(self):
        if self._sftp is None:
            raise RemoteConnectionError("SFTP session is not connected")
        return self._sftp

    def list(self, path: str) -> List[str]:
        sftp = self._client()
        try:
            attrs = sftp.listdir_attr(path)
        except self._errors as e:
            raise _io_error("list", path, e) from e
        out: List[str] = []
        for attr in attrs:
            if attr.filename in (".", ".."):
                continue
            if attr.st_mode is not None and stat.S_ISDIR(attr.st_mode):
                continue
            out.append(attr.filename)
        return out

    def fetch(self, path: str) -> bytes:
        sftp = self._client()
        try:
            with sftp.open(path, "rb") as f:
                return f.read()
        except self._errors as e:
            raise _io_error("fetch", path, e) from e

    def mkdir_recursive(self, remote_dir: str) -> None:
        sftp = self._client()
        if remote_dir in ("", ".", "/"):
            return
        parts = []
        d = remote_dir
        while d not in ("", ".", "/"):
            parts.append(d)
            d = posixpath.dirname(d)
        for p in reversed(parts):
            try:
                sftp.stat(p)
                continue
            except (IOError, OSError):
                pass
            except self._errors as e:
                raise RemoteIOError(f"error checking directory {p}: {e}", operation="mkdir", path=p) from e
            try:
                sftp.mkdir(p)
            except self._errors as e:
                raise RemoteIOError(f"error creating directory {p}: {e}", operation="mkdir", path=p) from e

    def write(self, path: str, data: bytes) -> None:
        sftp = self._client()
        self.mkdir_recursive(posixpath.dirname(path))
        try:
            with sftp.open(path, "wb") as f:
                f.write(data)
        except self._errors as e:
            raise _io_error("write", path, e) from e
        log.debug("wrote file: %s. numBytes: %d", path, len(data))
