"""
Structured logging for the tracker.

structlog renders each event as a JSON string and passes it to the stdlib root
logger; the root handler wraps records with python-json-logger so third-party
log lines (uvicorn, pymongo) come out as JSON too.
"""
import logging
import sys
from typing import Any, Dict, List, Optional

import structlog
from pythonjsonlogger.json import JsonFormatter

from settings import Settings, get_settings

QUIET_LOGGERS = ("pymongo", "mongomock")


def _processors(settings: Settings) -> List[Any]:
    def add_service(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", settings.app_name)
        event_dict.setdefault("env", settings.app_env)
        return event_dict

    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        add_service,
        structlog.processors.JSONRenderer(),
    ]


def _stdout_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter("%(levelname)s %(name)s %(message)s"))
    return handler


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Point structlog and the root logger at stdout. Calling it again replaces the handler."""
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level)

    structlog.configure(
        processors=_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers[:] = [_stdout_handler()]
    root.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.get_logger(__name__).debug("logging_configured", log_level=settings.log_level)
