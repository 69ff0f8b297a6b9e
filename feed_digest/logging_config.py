"""structlog configuration.

Log lines are structured events: {level, message (the event name), context}.
When persistence is enabled, info/warning/error events are also written to
the storage `logs` table so operators can read them back through the API.
"""

import logging
from typing import Optional

import structlog
from structlog.typing import EventDict, WrappedLogger

from .config.settings import settings
from .errors import PersistenceError

PERSISTED_LEVELS = {"info", "warning", "error", "critical"}

# Keys structlog adds itself; everything else is context
_RESERVED_KEYS = {"event", "level", "timestamp", "exc_info"}


class PersistLogEntries:
    """Processor mirroring log events into storage."""

    def __init__(self, storage):
        self.storage = storage

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        level = event_dict.get("level", method_name)
        if level == "warn":
            level = "warning"
        if level not in PERSISTED_LEVELS:
            return event_dict

        context = {k: v for k, v in event_dict.items() if k not in _RESERVED_KEYS}
        try:
            self.storage.add_log(level, str(event_dict.get("event", "")), context)
        except PersistenceError as e:
            # The log line still reaches the console
            event_dict["log_persist_error"] = str(e)
        return event_dict


def configure_logging(storage=None, json_output: Optional[bool] = None, level: int = logging.INFO) -> None:
    """Configure structlog for the process."""
    if json_output is None:
        json_output = settings.log_json

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if storage is not None and settings.persist_logs:
        processors.append(PersistLogEntries(storage))
    if json_output:
        processors.extend([structlog.processors.format_exc_info, structlog.processors.JSONRenderer()])
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
