"""Structured logging for the SMS bot.

Every record is one JSON line on stdout. Guest phone numbers in a record's
context are masked so logs can be shared with staff tools.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

SERVICE_NAME = "smsbot"

# Client libraries log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine")

PHONE_FIELDS = frozenset({"phone_number", "to"})


def mask_phone_number(phone_number: Optional[str]) -> str:
    """010-1234-5678 -> 010****5678. Short values are masked entirely."""
    digits = "".join(ch for ch in (phone_number or "") if ch.isdigit())
    if len(digits) < 8:
        return "*" * len(digits)
    return f"{digits[:3]}{'*' * (len(digits) - 7)}{digits[-4:]}"


def _masked(context: dict) -> dict:
    return {key: mask_phone_number(str(value)) if key in PHONE_FIELDS else value for key, value in context.items()}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if context:
            log_data["context"] = _masked(context)

        if record.exc_info:
            log_data["error_type"] = record.exc_info[0].__name__
            log_data["exception"] = self.formatException(record.exc_info)

        # Guest messages are Korean; keep them readable
        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{SERVICE_NAME}.{name}")


class SenderLogger(logging.LoggerAdapter):
    """Binds one inbound exchange (sender, ids) to every record; per-call `context=` adds to it."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context = {**self.extra, **(kwargs.pop("context", None) or {})}
        if context:
            kwargs["extra"] = {"context": context}
        return msg, kwargs
