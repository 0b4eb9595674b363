from __future__ import annotations

"""
Structured logging for zkpredicates.

structlog renders every event, and stdlib ``logging`` (uvicorn, httpx) is
routed through the same handler so the stream has one format: JSON lines by
default, the console renderer in dev.

Two scrubbing rules run before rendering, at any nesting depth:

- values under a private key (attribute values, witnesses, credentials) are
  replaced with ``"***"``;
- strings longer than ``MAX_VALUE_CHARS`` are clipped. Public signals and
  requirement bounds arrive from untrusted callers and may be arbitrarily
  long.

Quick start
-----------
    from zkpredicates.logging import configure_from_settings, get_logger

    configure_from_settings()          # once, on process start
    log = get_logger(__name__)
    log.info("proof_generated", circuit="range_check", elapsed_ms=812.4)
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, merge_contextvars, unbind_contextvars

if TYPE_CHECKING:
    from .config import Settings


# ------------------------------ Scrubbing ------------------------------------

SECRET_KEYS = frozenset({"authorization", "token", "api_key", "password", "secret"})

# Names that carry attribute values known only to the prover.
PRIVATE_KEYS = frozenset({"private_inputs", "private_value", "private", "witness", "inputs", "value"})

REDACT_KEYS = SECRET_KEYS | PRIVATE_KEYS

MAX_VALUE_CHARS = 160

_MASK = "***"


def clip(value: str, limit: int = MAX_VALUE_CHARS) -> str:
    if len(value) <= limit:
        return value
    return f"{value[:32]}...<{len(value)} chars>"


def _scrub_value(value: Any, depth: int) -> Any:
    if isinstance(value, str):
        return clip(value)
    if depth <= 0:
        return value
    if isinstance(value, dict):
        return {
            k: (_MASK if isinstance(k, str) and k.lower() in REDACT_KEYS and v is not None
                else _scrub_value(v, depth - 1))
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_scrub_value(v, depth - 1) for v in value]
    return value


def scrub(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Processor: mask private/secret keys and clip oversized strings, nested up to 4 levels."""
    for k in list(event_dict):
        if k == "event":
            continue
        v = event_dict[k]
        if k.lower() in REDACT_KEYS and v is not None:
            event_dict[k] = _MASK
        else:
            event_dict[k] = _scrub_value(v, 4)
    return event_dict


# ------------------------------ Setup ----------------------------------------


def _shared_processors(service_name: str, include_stacktrace: bool) -> List[Any]:
    def _ensure_service(_: Any, __: str, ev: Dict[str, Any]) -> Dict[str, Any]:
        ev.setdefault("service", service_name)
        return ev

    chain: List[Any] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        merge_contextvars,
        structlog.processors.StackInfoRenderer(),
    ]
    if include_stacktrace:
        chain.append(structlog.processors.format_exc_info)
    chain += [scrub, structlog.processors.UnicodeDecoder(), _ensure_service]
    return chain


def setup_logging(
    *,
    service_name: str = "zkpredicates",
    level: str | int = "INFO",
    log_format: str = "json",
    include_stacktrace: Optional[bool] = None,
    quiet: Iterable[str] = ("asyncio", "httpcore", "httpx"),
) -> logging.Handler:
    """
    Configure structlog and the stdlib root logger; returns the installed handler.

    ``include_stacktrace`` defaults to on for JSON (tracebacks become a field)
    and off for console, whose renderer prints them itself.
    """
    if isinstance(level, str):
        level = level.upper()
    log_format = log_format.lower()
    if include_stacktrace is None:
        include_stacktrace = log_format == "json"

    shared = _shared_processors(service_name, include_stacktrace)
    if log_format == "console":
        renderer: Any = structlog.dev.ConsoleRenderer(colors=True, sort_keys=False)
    else:
        renderer = structlog.processors.JSONRenderer(sort_keys=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=[structlog.stdlib.add_logger_name, *shared],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers = [handler]
        lg.propagate = False
        lg.setLevel(level)
    for name in quiet:
        logging.getLogger(name).setLevel("WARNING")
    return handler


def configure_from_settings(settings: Optional["Settings"] = None, *, level: Optional[str] = None) -> logging.Handler:
    """setup_logging() with level and format taken from ZKP_LOG_LEVEL / ZKP_LOG_FORMAT."""
    from .config import get_settings

    cfg = settings or get_settings()
    return setup_logging(level=level or cfg.log_level, log_format=cfg.log_format)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Module logger. Resolution is lazy, so loggers created at import time pick
    up whatever configuration is active when they first emit.
    """
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


# ------------------------------ Request context -------------------------------


def bind_request_context(**kv: Any) -> None:
    """Bind request-scoped pairs (request_id, path, ...) into contextvars; empty values are skipped."""
    payload = {k: v for k, v in kv.items() if v}
    if payload:
        bind_contextvars(**payload)


def clear_request_context(*keys: str) -> None:
    if keys:
        unbind_contextvars(*keys)
    else:
        clear_contextvars()


__all__ = [
    "MAX_VALUE_CHARS",
    "PRIVATE_KEYS",
    "REDACT_KEYS",
    "SECRET_KEYS",
    "clip",
    "scrub",
    "setup_logging",
    "configure_from_settings",
    "get_logger",
    "bind_request_context",
    "clear_request_context",
]
