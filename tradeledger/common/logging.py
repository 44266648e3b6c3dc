"""
Structured JSON logging + per-run correlation IDs (stdlib-only).

One JSON object per line. Every line carries:
- service, env, version, sha (resolved once per formatter from args or env)
- run_id (bound for the lifetime of one P&L report computation)
- event_type, severity, message, logger
- any `extra=` fields, e.g. `record_index`, `reason`, `trade_id`

Reconciliation problems that do not stop a run (dropped records, degraded
pricing, skipped item entries) go through `log_event` with a stable
`event_type`, so they can be grepped or counted downstream.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator, Optional, TextIO


_RUN_ID: ContextVar[Optional[str]] = ContextVar("run_id", default=None)

# Everything a bare LogRecord carries; whatever else shows up came in via `extra=`.
_LOGRECORD_ATTRS: frozenset[str] = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {
    "message",
    "asctime",
    "taskName",
}
_INJECTED_ATTRS: frozenset[str] = frozenset(
    {"service", "env", "version", "sha", "run_id", "event_type", "severity", "timestamp"}
)

_SEVERITY_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}
_SEVERITIES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _one_line(v: Any, *, max_len: int) -> str:
    if v is None:
        return ""
    s = " ".join(str(v).splitlines()).strip()
    return s if len(s) <= max_len else s[: max_len - 1] + "…"


def _first_env(names: tuple[str, ...], default: str) -> str:
    for name in names:
        v = (os.getenv(name) or "").strip()
        if v:
            return _one_line(v, max_len=128)
    return default


def _severity(level: str | int | None) -> str:
    if isinstance(level, int):
        level = logging.getLevelName(level)
    s = str(level or "INFO").strip().upper()
    s = _SEVERITY_ALIASES.get(s, s)
    return s if s in _SEVERITIES else "INFO"


@dataclass(frozen=True)
class ServiceMetadata:
    service: str
    env: str
    version: str
    sha: str

    @classmethod
    def resolve(
        cls,
        *,
        service: str | None = None,
        env: str | None = None,
        version: str | None = None,
        sha: str | None = None,
    ) -> "ServiceMetadata":
        """Explicit values win; otherwise the usual deploy env vars, then defaults."""
        return cls(
            service=_one_line(service, max_len=128) or _first_env(("SERVICE_NAME", "OTEL_SERVICE_NAME"), "tradeledger"),
            env=_one_line(env, max_len=64) or _first_env(("ENVIRONMENT", "ENV", "APP_ENV"), "unknown"),
            version=_one_line(version, max_len=128) or _first_env(("APP_VERSION", "VERSION"), "unknown"),
            sha=_one_line(sha, max_len=64) or _first_env(("GIT_SHA", "GITHUB_SHA", "COMMIT_SHA"), "unknown"),
        )


def get_run_id() -> Optional[str]:
    return _RUN_ID.get()


@contextmanager
def bind_run_id(*, run_id: str | None = None) -> Iterator[str]:
    """
    Bind a run id for the duration of one report computation.

    Nested binds restore the outer id on exit.
    """
    rid = _one_line(run_id, max_len=128) or uuid.uuid4().hex
    token = _RUN_ID.set(rid)
    try:
        yield rid
    finally:
        _RUN_ID.reset(token)


class JsonLogFormatter(logging.Formatter):
    def __init__(
        self,
        *,
        service: str | None = None,
        env: str | None = None,
        version: str | None = None,
        sha: str | None = None,
    ) -> None:
        super().__init__()
        self._meta = ServiceMetadata.resolve(service=service, env=env, version=version, sha=sha)

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (format required by logging)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "severity": _severity(getattr(record, "severity", None) or record.levelname),
            "service": self._meta.service,
            "env": self._meta.env,
            "version": self._meta.version,
            "sha": self._meta.sha,
            "run_id": getattr(record, "run_id", None) or get_run_id(),
            "event_type": _one_line(getattr(record, "event_type", None), max_len=128) or "log",
            "message": _one_line(record.getMessage(), max_len=4000),
            "logger": record.name,
        }

        if record.exc_info:
            payload["exception"] = "".join(traceback.format_exception(*record.exc_info))[-8000:]
        elif record.stack_info:
            payload["stack"] = record.stack_info[-8000:]

        for k, v in record.__dict__.items():
            if k in _LOGRECORD_ATTRS or k in _INJECTED_ATTRS or k.startswith("_"):
                continue
            payload[k] = v

        # Decimals, sets and the like fall back to str().
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)


def init_structured_logging(
    *,
    service: str | None = None,
    env: str | None = None,
    version: str | None = None,
    sha: str | None = None,
    level: str | int | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    Route the root logger through a single JSON-lines handler.

    Writes to stdout unless `stream` is given (the CLI passes stderr so the
    report itself owns stdout). Safe to call repeatedly; the last call wins.
    """
    lvl = _severity(level or os.getenv("LOG_LEVEL"))
    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.setFormatter(JsonLogFormatter(service=service, env=env, version=version, sha=sha))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(lvl)
    logging.captureWarnings(True)


def log_event(
    logger: logging.Logger,
    event_type: str,
    *,
    severity: str = "INFO",
    message: str | None = None,
    **fields: Any,
) -> None:
    """
    Emit a semantic event with a stable `event_type`.

    `fields` become top-level JSON keys; they must not reuse LogRecord
    attribute names (`name`, `module`, `args`, ...).
    """
    lvl = logging.getLevelName(_severity(severity))
    if not logger.isEnabledFor(lvl):
        return
    logger.log(lvl, message or event_type, extra={"event_type": event_type, **fields})
