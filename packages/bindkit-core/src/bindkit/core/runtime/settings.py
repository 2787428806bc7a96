from __future__ import annotations

import os
from importlib import import_module
from typing import List

from pydantic import BaseModel, Field


class Settings(BaseModel):
    # Defaults are static. Use load_settings(env=...) to read from an env snapshot.
    log_level: str = "INFO"

    # Observability
    # - log_format: "text" (default) or "json". When json, bindkit logs emit a single JSON
    #   object per line, suitable for log aggregation.
    log_format: str = "text"

    # Optional metrics sink module (exposes METRICS: MetricsSink)
    metrics_module: str | None = None

    # Extra session drivers
    plugin_paths: List[str] = Field(default_factory=list)
    plugin_strict: bool = True

    # Secrets hook: load decode() from module or file path
    secrets_module: str | None = None
    secrets_path: str | None = None

    # Transport
    # - connect_timeout: seconds, used when the binding properties do not set "timeout"
    connect_timeout: float = 30.0

    # List failures are reported as a generic "unable to list files" error by default
    # (cause chained + logged). True propagates the underlying error unchanged.
    list_error_passthrough: bool = False

    @classmethod
    def from_env(cls, env: dict[str, str], overrides: dict | None = None) -> "Settings":
        """Build Settings from an explicit env snapshot (does not read os.environ)."""
        def g(key: str, default: str | None = None) -> str | None:
            return env.get(key, default)  # type: ignore[return-value]

        data = {
            "log_level": g("BINDKIT_LOG_LEVEL", "INFO"),
            "log_format": g("BINDKIT_LOG_FORMAT", "text"),
            "metrics_module": g("BINDKIT_METRICS_MODULE") or None,
            "plugin_paths": [p for p in (g("BINDKIT_PLUGIN_PATHS", "") or "").split(",") if p],
            "plugin_strict": (g("BINDKIT_PLUGIN_STRICT", "true") or "true").lower() == "true",
            "secrets_module": g("BINDKIT_SECRETS_MODULE") or None,
            "secrets_path": g("BINDKIT_SECRETS_PATH") or None,
            "connect_timeout": float(g("BINDKIT_CONNECT_TIMEOUT", "30") or 30),
            "list_error_passthrough": (g("BINDKIT_LIST_ERROR_PASSTHROUGH", "false") or "false").lower() == "true",
        }
        if overrides:
            data.update(overrides)
        return cls(**data)


def load_settings(overrides: dict | None = None, *, env: dict[str, str] | None = None) -> Settings:
    """Load settings from (1) env snapshot, (2) optional settings module, (3) explicit overrides.

    If env is not provided, we build a snapshot from os.environ.
    """
    env2 = {k: str(v) for k, v in os.environ.items()} if env is None else env
    s = Settings.from_env(env2)
    mod = env2.get("BINDKIT_SETTINGS_MODULE")
    if mod:
        m = import_module(mod)
        data = getattr(m, "SETTINGS", {})
        if not isinstance(data, dict):
            raise TypeError("BINDKIT_SETTINGS_MODULE must expose SETTINGS: dict")
        s = s.model_copy(update=data)
    if overrides:
        s = s.model_copy(update=overrides)
    return s
