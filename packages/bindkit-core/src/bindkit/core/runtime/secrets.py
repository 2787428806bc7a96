"""Secrets hook loader.

Binding properties usually carry the SFTP password. Deployments that keep it
encrypted can plug in a decoder instead of putting clear text in the
component file.

Config:
- BINDKIT_SECRETS_MODULE: import module that exposes decode(value)->str
- BINDKIT_SECRETS_PATH: python file path that exposes decode(value)->str

Behavior:
- when a provider is configured, SftpBinding.init passes the password through decode(value)
- os.environ is never mutated
"""

from __future__ import annotations

import importlib
import importlib.util
from dataclasses import dataclass
from pathlib import Path
from typing import Callable


DecodeFn = Callable[[str], str]


@dataclass
class SecretsProvider:
    decode: DecodeFn


def _enforce_hook_contract(m: object, *, origin: str) -> None:
    """Only decode may be a public callable of a hook."""

    public_callables: list[str] = []
    for name in dir(m):
        if name.startswith("_") or name == "decode":
            continue
        if callable(getattr(m, name, None)):
            public_callables.append(name)

    if public_callables:
        raise TypeError(
            f"Secrets hook {origin} defines unsupported public callables: {sorted(public_callables)}. "
            "Only 'decode' is allowed (helpers must be private, e.g. _helper())."
        )


def _provider_from(m: object, *, origin: str) -> SecretsProvider:
    _enforce_hook_contract(m, origin=origin)
    dec = getattr(m, "decode", None)
    if not callable(dec):
        raise TypeError(f"Secrets hook {origin} must define callable decode(value: str) -> str")
    return SecretsProvider(decode=dec)


def _load_from_module(mod_name: str) -> SecretsProvider:
    return _provider_from(importlib.import_module(mod_name), origin=f"module:{mod_name}")


def _load_from_path(path: str) -> SecretsProvider:
    p = Path(path).expanduser().resolve()
    if not p.exists():
        raise FileNotFoundError(f"Secrets path not found: {p}")

    spec = importlib.util.spec_from_file_location(f"bindkit_secrets_{p.stem}", p)
    if not spec or not spec.loader:
        raise RuntimeError(f"Unable to load secrets module from path: {p}")

    m = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(m)
    return _provider_from(m, origin=f"path:{p}")


def load_secrets_provider(*, secrets_module: str | None, secrets_path: str | None) -> SecretsProvider | None:
    if secrets_module:
        return _load_from_module(secrets_module)
    if secrets_path:
        return _load_from_path(secrets_path)
    return None
