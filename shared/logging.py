"""
Structured logging for the Accounts Access Layer.

Log lines are JSON. Every line emitted while a request is being handled
carries that request's ``request_id`` and, when the caller identified one,
the acting ``admin_id``.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
admin_id_var: ContextVar[Optional[str]] = ContextVar("admin_id", default=None)


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Route structlog through stdlib logging and render JSON to stdout."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            add_service_context,
            add_correlation_context,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )
    get_logger(f"{service_name}.logging").debug("Logging configured", log_level=log_level)


def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    # Logger names look like "accounts.cache"
    logger_name = event_dict.get("logger", "")
    if "." in logger_name:
        event_dict.setdefault("service", logger_name.split(".", 1)[0])
    return event_dict


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Attach the current request and admin identifiers, when set."""
    for key, var in (("request_id", request_id_var), ("admin_id", admin_id_var)):
        value = var.get()
        if value:
            event_dict.setdefault(key, value)
    return event_dict


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind ``request_id`` (or a fresh UUID) to the current context and return it."""
    request_id = request_id or str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def set_admin_context(admin_id: Optional[str] = None):
    if admin_id:
        admin_id_var.set(admin_id)


def clear_context():
    request_id_var.set(None)
    admin_id_var.set(None)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
