"""Host-key trust policies for the paramiko session.

paramiko accepts any object exposing ``missing_host_key(client, hostname, key)``
as a missing-host-key policy, so the policies here do not subclass paramiko
types and the module imports without paramiko installed.

Policies:
- accept-all: any key is accepted, a warning is logged on every connect
- pinned: the server key must match the configured ``hostKey``
- tofu: unknown hosts are recorded in ``knownHostsPath``; paramiko itself
  rejects a known host presenting a different key
"""

from __future__ import annotations

import base64
import hashlib
import logging
from pathlib import Path

from bindkit.core.exception import ConfigurationError, HostKeyRejected
from bindkit.core.spec import SftpConfig

log = logging.getLogger("bindkit.core.hostkeys")


def fingerprint(key) -> str:
    """OpenSSH style fingerprint: ``SHA256:<base64 without padding>``."""
    digest = hashlib.sha256(key.asbytes()).digest()
    return "SHA256:" + base64.b64encode(digest).decode("ascii").rstrip("=")


class AcceptAllPolicy:
    def missing_host_key(self, client, hostname: str, key) -> None:
        log.warning("No host key validation configured; accepting %s key for %s", key.get_name(), hostname)
        log.info("host=%s fingerprint=%s", hostname, fingerprint(key))


class PinnedKeyPolicy:
    """Accept only the configured key.

    ``expected`` may be an OpenSSH fingerprint (``SHA256:...``), a
    known_hosts/authorized_keys style ``<type> <base64>`` line or the bare
    base64 key blob.
    """

    def __init__(self, expected: str):
        self.expected = expected.strip()

    def matches(self, key) -> bool:
        if self.expected.startswith("SHA256:"):
            return self.expected.rstrip("=") == fingerprint(key)
        fields = self.expected.split()
        if len(fields) >= 2:
            return fields[0] == key.get_name() and fields[1] == key.get_base64()
        return self.expected == key.get_base64()

    def missing_host_key(self, client, hostname: str, key) -> None:
        if not self.matches(key):
            raise HostKeyRejected(
                f"Host key for {hostname} does not match the pinned key "
                f"(got {key.get_name()} {fingerprint(key)})"
            )
        log.debug("pinned host key matched for %s", hostname)


class TrustOnFirstUsePolicy:
    def __init__(self, known_hosts_path: str):
        self.known_hosts_path = str(Path(known_hosts_path).expanduser())

    def prepare(self, client) -> None:
        """Load the known-hosts file into ``client``, creating it if needed."""
        p = Path(self.known_hosts_path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.touch(exist_ok=True)
        client.load_host_keys(str(p))

    def missing_host_key(self, client, hostname: str, key) -> None:
        log.warning("Trusting new host %s on first use (%s)", hostname, fingerprint(key))
        client.get_host_keys().add(hostname, key.get_name(), key)
        client.save_host_keys(self.known_hosts_path)


def build_policy(config: SftpConfig):
    name = config.effective_host_key_policy
    if name == "accept-all":
        return AcceptAllPolicy()
    if name == "pinned":
        return PinnedKeyPolicy(config.host_key or "")
    if name == "tofu":
        return TrustOnFirstUsePolicy(config.known_hosts_path or "")
    raise ConfigurationError(f"Unknown host key policy: {name}")


__all__ = ["fingerprint", "AcceptAllPolicy", "PinnedKeyPolicy", "TrustOnFirstUsePolicy", "build_policy"]
