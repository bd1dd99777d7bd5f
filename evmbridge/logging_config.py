"""
Structured logging for the bridge service.

structlog renders every record, including the stdlib ``logging`` calls made by
the registry, fee model, planner and tracker. RPC endpoints frequently embed
provider API keys in their path or query string, so a redaction step runs
before rendering.
"""

import logging
import re
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog

from .config import settings

# Alchemy/Infura style keys live in the path, others in the query string
_PATH_KEY = re.compile(r"(https?://[^/\s]+/(?:v2|v3|rpc)/)[A-Za-z0-9_\-]{16,}")
_QUERY_KEY = re.compile(r"((?:api[_-]?key|apikey|key|token)=)[^&\s'\"]+", re.IGNORECASE)


def redact_secrets(text: str) -> str:
    text = _PATH_KEY.sub(r"\1***", text)
    return _QUERY_KEY.sub(r"\1***", text)


def _redact_processor(logger: Any, method_name: str, event_dict: dict) -> dict:
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = redact_secrets(value)
    return event_dict


def setup_logging(log_level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Override log level (default: ``settings.log_level``)
        json_logs: Force JSON (True) or console (False) output. By default
            JSON is used unless the level is DEBUG.
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    if json_logs is None:
        json_logs = settings.log_json if settings.log_json is not None else level != logging.DEBUG

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: structlog.types.Processor
    if json_logs:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            _redact_processor,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[*shared_processors, _redact_processor],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # httpx logs every request URL at INFO, RPC keys included
    for name in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.stdlib.get_logger(name)


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Bind ``fields`` (operation, chains, tx hash) to every record logged inside the block."""
    with structlog.contextvars.bound_contextvars(**{k: v for k, v in fields.items() if v is not None}):
        yield
