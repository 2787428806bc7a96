from __future__ import annotations

import json
import logging
import time
from importlib import import_module
from typing import Any

from bindkit.core.runtime.settings import Settings

log = logging.getLogger("bindkit.core.observability")


class MetricsSink:
    """Optional metrics sink.

    Users can provide a module via BINDKIT_METRICS_MODULE exposing METRICS: MetricsSink.
    """

    def on_invoke_start(self, *, operation: str, file_name: str) -> None:  # pragma: no cover
        return None

    def on_invoke_end(self, *, operation: str, file_name: str, status: str, duration_ms: int) -> None:  # pragma: no cover
        return None


def load_metrics_sink(settings: Settings) -> MetricsSink:
    mod = settings.metrics_module
    if not mod:
        return MetricsSink()
    m = import_module(mod)
    sink = getattr(m, "METRICS", None)
    if sink is None:
        raise AttributeError(f"{mod} must expose METRICS")
    return sink


def ensure_logging(settings: Settings) -> None:
    fmt = '%(asctime)s - (%(threadName)-10s) - %(name)s - %(levelname)s - %(message)s'
    if (settings.log_format or "text").lower() == "json":
        # JSON payload already includes timestamp; keep formatter minimal.
        fmt = "%(message)s"
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=fmt,
    )


def _now_ms() -> int:
    return int(time.time() * 1000)


def _dur_ms(t0: float, t1: float) -> int:
    return int((t1 - t0) * 1000)


def log_event(logger: logging.Logger, *, settings: Settings, level: int, event: str, **fields: Any) -> None:
    """Emit an event log.

    - text format: one-liner `event key=value ...`
    - json format: one JSON object per line
    """
    if settings.log_format.lower() == "json":
        payload = {"ts_ms": _now_ms(), "event": event, **fields}
        logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
        return

    parts = [event]
    for k, v in fields.items():
        parts.append(f"{k}={v}")
    logger.log(level, " ".join(parts))


class InvocationObserver:
    """Times a single binding call and reports it to the log and the metrics sink."""

    def __init__(self, *, settings: Settings, logger: logging.Logger, metrics: MetricsSink | None = None):
        self.settings = settings
        self.logger = logger
        self.metrics = metrics if metrics is not None else load_metrics_sink(settings)

    def start(self, *, operation: str, file_name: str) -> float:
        log_event(self.logger, settings=self.settings, level=logging.DEBUG, event="invoke_start", operation=operation, file_name=file_name)
        try:
            self.metrics.on_invoke_start(operation=operation, file_name=file_name)
        except Exception:
            # Metrics must never break a call.
            log.warning("InvocationObserver.start failed", exc_info=True)
        return time.perf_counter()

    def end(self, t0: float, *, operation: str, file_name: str, status: str, error: str | None = None) -> int:
        dur = _dur_ms(t0, time.perf_counter())
        level = logging.INFO if status == "SUCCESS" else logging.ERROR
        log_event(self.logger, settings=self.settings, level=level, event="invoke_end", operation=operation, file_name=file_name, status=status, duration_ms=dur, error=error)
        try:
            self.metrics.on_invoke_end(operation=operation, file_name=file_name, status=status, duration_ms=dur)
        except Exception:
            log.warning("InvocationObserver.end failed", exc_info=True)
        return dur
