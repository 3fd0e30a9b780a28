"""structlog setup for the share service.

Every entry carries the request id of the HTTP request that produced it
(see ``RequestIDMiddleware`` in ``calendar_share.main``). Values under
credential-looking keys are masked before rendering; share tokens are
expected to be logged only as prefixes (``redact_token``).

    from calendar_share.observability.logging import get_logger

    logger = get_logger(__name__)
    logger.info("share_applied", action="get_data", organization_id="org_1")
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any

import structlog

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

_MASKED_KEYS = frozenset({"authorization", "apikey", "service_role_key", "jwt_secret", "token_hash"})
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")

_configured = False


def _add_request_id(logger: Any, method_name: str, event_dict: dict) -> dict:
    request_id = request_id_ctx.get()
    if request_id is not None:
        event_dict.setdefault("request_id", request_id)
    return event_dict


def _mask_credentials(logger: Any, method_name: str, event_dict: dict) -> dict:
    for key in _MASKED_KEYS.intersection(event_dict):
        event_dict[key] = "<redacted>"
    return event_dict


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        _add_request_id,
        _mask_credentials,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(*, level: str = "INFO", json_output: bool = True) -> None:
    """Route structlog through stdlib logging with one stdout handler.

    Only the first call takes effect, so repeated ``create_app()`` calls
    (tests, reloads) do not stack handlers.
    """
    global _configured
    if _configured:
        return
    _configured = True

    structlog.configure(
        processors=[*_shared_processors(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
