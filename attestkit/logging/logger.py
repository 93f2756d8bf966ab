"""
Logger Implementation
=====================

structlog configuration shared by the library and the verifier service.

Events are snake_case names with keyword fields. Two things never reach a
sink in clear text: secrets (keys, tokens, nonces) and the raw identity
attributes a proof is built from. Commitments, nullifiers and kinds are
public and are logged as-is.
"""

import logging
import sys
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor


if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger


REDACTED = "***REDACTED***"

# Substring matches
SECRET_MARKERS = ("password", "api_key", "secret", "token", "authorization", "private_key", "nonce")

# Exact matches; "name" alone would catch logger_name and circuit names
IDENTITY_FIELDS = frozenset({"reference_id", "uid", "name", "date_of_birth", "dob", "record"})

QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "uvicorn.access")


class AttributeRedactor:
    """Processor masking secrets and identity attributes at any nesting depth."""

    def __init__(
        self,
        secret_markers: Iterable[str] = SECRET_MARKERS,
        identity_fields: Iterable[str] = IDENTITY_FIELDS,
    ) -> None:
        self.secret_markers = tuple(secret_markers)
        self.identity_fields = frozenset(identity_fields)

    def is_sensitive(self, key: str) -> bool:
        lowered = key.lower()
        return lowered in self.identity_fields or any(m in lowered for m in self.secret_markers)

    def _scrub(self, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {
                k: REDACTED if self.is_sensitive(str(k)) else self._scrub(v)
                for k, v in value.items()
            }
        if isinstance(value, (list, tuple)):
            return type(value)(self._scrub(v) for v in value)
        return value

    def __call__(self, logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event = event_dict.pop("event", None)
        scrubbed = self._scrub(event_dict)
        if event is not None:
            scrubbed["event"] = event
        return scrubbed


redact_attributes = AttributeRedactor()


def _service_stamp(service_name: str, version: str) -> Processor:
    def stamp(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service_name)
        event_dict.setdefault("version", version)
        return event_dict

    return stamp


def _renderer(json_logs: bool) -> tuple[Processor, Processor]:
    """Exception processor and final renderer for the chosen output mode."""
    if json_logs:
        return structlog.processors.format_exc_info, structlog.processors.JSONRenderer()
    console = structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=10),
    )
    return structlog.dev.set_exc_info, console


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    service_name: str = "attestkit",
) -> None:
    """
    Route structlog and stdlib logging through one stdout handler.

    Args:
        log_level: Logging level name
        json_logs: JSON lines (production) instead of console rendering
        service_name: Value of the ``service`` field on every event
    """
    from attestkit import __version__

    level = log_level.upper()
    exc_processor, renderer = _renderer(json_logs)

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        _service_stamp(service_name, __version__),
        redact_attributes,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        exc_processor,
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> "BoundLogger":
    """Structured logger; pass ``__name__``."""
    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """
    Attach fields to every event logged from the current async context.

    Example:
        bind_context(challenge_id=challenge.challenge_id)
        logger.info("challenge_consumed")  # carries challenge_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
