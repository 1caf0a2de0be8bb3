from __future__ import annotations

"""
clusterkit.core.log
===================

Structured logging for the orchestrator:
- per-unit-of-work context (cluster, namespace, workflow_id, pod) via contextvars,
- JSON formatter for production, compact human formatter for local runs,
- a LoggerAdapter that accepts arbitrary keyword fields,
- switches for stdout handlers and levels, driven by env when desired.

The library is silent until an application (or the test suite) enables a handler.
"""

import contextvars
import json
import logging
import os
import sys
from collections.abc import Mapping
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any, ClassVar, Final

__all__ = [
    "bind_context",
    "configure_from_env",
    "disable_stdout_logging",
    "enable_stdout_logging",
    "get_logger",
    "log_context",
    "set_level",
    "swallow",
]

# ---------- Context ----------

_log_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "clusterkit_log_ctx", default=None
)


def _ctx_copy() -> dict[str, Any]:
    ctx = _log_context.get()
    return dict(ctx) if ctx else {}


def bind_context(**fields: Any) -> None:
    """Merge fields into the current structured log context (None values are dropped)."""
    ctx = _ctx_copy()
    ctx.update({k: v for k, v in fields.items() if v is not None})
    _log_context.set(ctx)


@contextmanager
def log_context(**fields: Any):
    """
    Add fields to the log context for the duration of the block.

    Each asyncio task gets its own copy of the context, so concurrent promotion
    events or clone requests never see each other's fields.
    """
    token = _log_context.set({**_ctx_copy(), **{k: v for k, v in fields.items() if v is not None}})
    try:
        yield
    finally:
        _log_context.reset(token)


# ---------- Formatters ----------

_STD_ATTRS: Final[frozenset[str]] = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "asctime",
    }
)

# Context keys shown inline by the human formatter.
_HUMAN_KEYS: Final[tuple[str, ...]] = ("cluster", "namespace", "pod", "workflow_id")


def _iso_utc_ms(ts: float) -> str:
    dt = datetime.fromtimestamp(ts, tz=UTC)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line: ts, level, logger, message, bound context,
    keyword extras and (optionally) exception details.
    """

    def __init__(self, *, include_stack: bool = False) -> None:
        super().__init__()
        self.include_stack = include_stack

    def format(self, record: logging.LogRecord) -> str:
        out: dict[str, Any] = {
            "ts": _iso_utc_ms(record.created),
            "level": record.levelname,
            "logger": record.name,
        }
        msg = record.getMessage()
        if msg:
            out["message"] = msg

        ctx = _log_context.get()
        if ctx:
            out.update(ctx)

        for k, v in record.__dict__.items():
            if k in _STD_ATTRS or k in out:
                continue
            out[k] = v

        if record.exc_info:
            exc_type, exc, _tb = record.exc_info
            err = out.setdefault("error", {})
            err["type"] = exc_type.__name__ if exc_type else "Exception"
            err["message"] = str(exc) if exc else None
            if self.include_stack:
                err["stack"] = self.formatException(record.exc_info)
        elif record.exc_text:
            out.setdefault("error", {})["stack"] = record.exc_text

        return json.dumps(out, ensure_ascii=False, separators=(",", ":"), default=str)


class HumanFormatter(logging.Formatter):
    """Compact single-line formatter for local debugging."""

    default_time_format = "%Y-%m-%d %H:%M:%S"
    default_msec_format = "%s.%03d"

    def format(self, record: logging.LogRecord) -> str:
        s = f"{self.formatTime(record)} {record.levelname:<5} {record.name}: {record.getMessage()}"
        ctx = _log_context.get()
        if ctx:
            compact = {k: ctx[k] for k in _HUMAN_KEYS if ctx.get(k) is not None}
            if compact:
                s += "  [" + ", ".join(f"{k}={v}" for k, v in compact.items()) + "]"
        if record.exc_info:
            s += "\n" + self.formatException(record.exc_info)
        return s


# ---------- Filters / adapter ----------


class ContextFilter(logging.Filter):
    """Copy the bound context onto the record so handlers can route on it."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = _log_context.get()
        if ctx:
            for k, v in ctx.items():
                record.__dict__.setdefault(k, v)
        return True


class _LevelBand(logging.Filter):
    def __init__(self, *, low: int = logging.NOTSET, high: int = logging.CRITICAL) -> None:
        super().__init__()
        self.low = low
        self.high = high

    def filter(self, record: logging.LogRecord) -> bool:
        return self.low <= record.levelno <= self.high


class _KwExtraAdapter(logging.LoggerAdapter):
    """
    Adapter that moves unknown keyword arguments into `extra`, so callers write
    `log.info("msg", event="...", cluster=...)`.
    """

    _passthrough: ClassVar[frozenset[str]] = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})

    def process(self, msg, kwargs):
        extra = kwargs.get("extra")
        if not isinstance(extra, dict):
            extra = {}
        for k in [k for k in kwargs if k not in self._passthrough]:
            v = kwargs.pop(k)
            key = f"field_{k}" if k in _STD_ATTRS else k
            extra.setdefault(key, v)
        kwargs["extra"] = extra
        return msg, kwargs


# ---------- Configuration ----------

_ROOT_NAME = "clusterkit"
_stdout_handler_key = "_clusterkit_stdout_handler"
_stderr_handler_key = "_clusterkit_stderr_handler"
_configured = False


def _bootstrap_minimal() -> None:
    global _configured
    if _configured:
        return
    lg = logging.getLogger(_ROOT_NAME)
    lg.setLevel(logging.DEBUG)
    if not any(isinstance(h, logging.NullHandler) for h in lg.handlers):
        lg.addHandler(logging.NullHandler())
    if not any(isinstance(f, ContextFilter) for f in lg.filters):
        lg.addFilter(ContextFilter())
    _configured = True


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    lvl = logging.getLevelName(level.upper())
    if not isinstance(lvl, int):
        raise ValueError(f"Invalid level name: {level!r}")
    return lvl


def get_logger(name: str | None = None) -> logging.LoggerAdapter:
    """Return a keyword-friendly adapter for `clusterkit.<name>`."""
    _bootstrap_minimal()
    base = logging.getLogger(_ROOT_NAME)
    return _KwExtraAdapter(base.getChild(name) if name else base, {})


def set_level(level: int | str) -> None:
    logging.getLogger(_ROOT_NAME).setLevel(_resolve_level(level))


def enable_stdout_logging(
    *,
    level: int | str = logging.DEBUG,
    json_output: bool = True,
    include_stack: bool = False,
    pretty: bool = False,
    route_errors_to_stderr: bool = False,
) -> None:
    """
    Attach stream handlers. `pretty` wins over `json_output`; with
    `route_errors_to_stderr` ERROR+ goes to stderr and the rest to stdout.
    """
    lvl = _resolve_level(level)
    _bootstrap_minimal()
    lg = logging.getLogger(_ROOT_NAME)
    disable_stdout_logging()

    fmt: logging.Formatter
    if pretty:
        fmt = HumanFormatter()
    elif json_output:
        fmt = JsonFormatter(include_stack=include_stack)
    else:
        fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    h_out = logging.StreamHandler(sys.stdout)
    h_out.set_name(_stdout_handler_key)
    h_out.setLevel(lvl)
    h_out.setFormatter(fmt)
    lg.addHandler(h_out)

    if route_errors_to_stderr:
        h_out.addFilter(_LevelBand(high=logging.WARNING))
        h_err = logging.StreamHandler(sys.stderr)
        h_err.set_name(_stderr_handler_key)
        h_err.setLevel(max(lvl, logging.ERROR))
        h_err.addFilter(_LevelBand(low=logging.ERROR))
        h_err.setFormatter(fmt)
        lg.addHandler(h_err)


def disable_stdout_logging() -> None:
    lg = logging.getLogger(_ROOT_NAME)
    for h in list(lg.handlers):
        if h.get_name() in (_stdout_handler_key, _stderr_handler_key):
            lg.removeHandler(h)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes", "on")


def configure_from_env() -> None:
    """
    Honors:
      - CLUSTERKIT_LOG_STDOUT=1 -> enable stdout
      - CLUSTERKIT_LOG_LEVEL=DEBUG|INFO|...
      - CLUSTERKIT_LOG_PRETTY=1 -> human formatter instead of JSON
      - CLUSTERKIT_LOG_STACK=1 -> include stack traces in JSON logs
    """
    level = os.getenv("CLUSTERKIT_LOG_LEVEL", "INFO")
    pretty = _env_flag("CLUSTERKIT_LOG_PRETTY")
    _bootstrap_minimal()
    set_level(level)
    if _env_flag("CLUSTERKIT_LOG_STDOUT"):
        enable_stdout_logging(
            level=level,
            json_output=not pretty,
            include_stack=_env_flag("CLUSTERKIT_LOG_STACK"),
            pretty=pretty,
        )
    else:
        disable_stdout_logging()


# ---------- Exception swallowing with trace ----------


@contextmanager
def swallow(
    *,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
    level: int = logging.DEBUG,
    code: str,
    msg: str | None = None,
    expected: bool = True,
    extra: Mapping[str, Any] | None = None,
):
    """
    Log and suppress an exception. Reserved for best-effort paths such as
    shutdown; orchestration steps always propagate their failures.

        with swallow(logger=log, code="bus.stop", msg="consumer stop failed"):
            await consumer.stop()
    """
    base = logger or get_logger("swallow")
    adapter = base if isinstance(base, logging.LoggerAdapter) else _KwExtraAdapter(base, {})
    try:
        yield
    except Exception as e:
        payload: dict[str, Any] = {"code": code, "expected": expected}
        if extra:
            payload.update(extra)
        adapter.log(level, msg or "Suppressed exception", exc_info=e, **payload)


_bootstrap_minimal()
