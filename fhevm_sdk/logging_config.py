"""
Structured logging configuration using structlog.

SDK modules log through ``logging.getLogger(__name__)``. ``setup_logging``
attaches a structlog formatter to the ``fhevm_sdk`` logger: colored console
output at DEBUG level, JSON lines otherwise. The SDK never calls it on
import; applications opt in once at startup.
"""

import logging
import sys
from typing import Any, MutableMapping, Optional, TextIO

import structlog

from .config import settings


SDK_LOGGER = "fhevm_sdk"

# Event keys that carry signatures or key material
SECRET_KEYS = ("signature", "public_key", "publicKey", "private_key")


def redact(secret: Optional[str], keep: int = 10) -> str:
    """Shorten a signature or key for log output."""
    if not secret:
        return "<empty>"
    if len(secret) <= keep:
        return secret
    return f"{secret[:keep]}..."


def redact_secrets(
    logger: Any,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """structlog processor shortening secret-bearing fields."""
    for key in SECRET_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str):
            event_dict[key] = redact(value)
    return event_dict


def setup_logging(
    log_level: Optional[str] = None,
    json_logs: Optional[bool] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Route SDK log records through structlog.

    Args:
        log_level: Override log level (default: from settings.log_level)
        json_logs: Force JSON (True) or console (False) rendering; by default
            DEBUG renders to the console and every other level to JSON
        stream: Output stream (default: stdout)

    Returns:
        The configured ``fhevm_sdk`` logger
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    if json_logs is None:
        json_logs = level != logging.DEBUG

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    sdk_logger = logging.getLogger(SDK_LOGGER)
    sdk_logger.handlers.clear()
    sdk_logger.addHandler(handler)
    sdk_logger.setLevel(level)
    sdk_logger.propagate = False

    for name in ("httpcore", "httpx", "web3", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)

    return sdk_logger
