"""
EventSync Logging Configuration
Structured logging with bound context for services and requests
"""
import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOG_LEVEL = os.environ.get("EVENTSYNC_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("EVENTSYNC_LOG_FORMAT", "json")  # json or text


def _error_context(error: BaseException) -> Dict[str, Any]:
    return {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "traceback": "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        ),
    }


class StructuredLogger:
    """Thin wrapper over ``logging`` that attaches keyword context to each record.

    ``bind`` returns a child sharing the same underlying logger with extra
    fields merged into every call.
    """

    def __init__(self, name: str, context: Optional[Dict[str, Any]] = None):
        self.name = name
        self.context = dict(context or {})
        self.logger = logging.getLogger(name)

        # One handler per underlying logger, however many wrappers exist
        if not self.logger.handlers:
            self.logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(StructuredFormatter() if LOG_FORMAT == "json" else TextFormatter())
            self.logger.addHandler(handler)
            self.logger.propagate = False

    def bind(self, **context) -> "StructuredLogger":
        return StructuredLogger(self.name, {**self.context, **context})

    def _log(self, level: int, message: str, context: Dict[str, Any]) -> None:
        if not self.logger.isEnabledFor(level):
            return
        self.logger.log(level, message, extra={
            "context": {**self.context, **context},
            "logger_name": self.name,
        })

    def debug(self, message: str, **context):
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, **context):
        self._log(logging.INFO, message, context)

    def warning(self, message: str, **context):
        self._log(logging.WARNING, message, context)

    def error(self, message: str, error: Optional[BaseException] = None, **context):
        if error is not None:
            context.update(_error_context(error))
        self._log(logging.ERROR, message, context)

    def critical(self, message: str, error: Optional[BaseException] = None, **context):
        if error is not None:
            context.update(_error_context(error))
        self._log(logging.CRITICAL, message, context)


class StructuredFormatter(logging.Formatter):
    """One JSON object per line"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": getattr(record, "logger_name", record.name),
            "message": record.getMessage(),
        }
        log_data.update(getattr(record, "context", {}))
        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Readable single-line output for local development"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    DIM = "\033[90m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S")
        line = f"{color}{timestamp} {record.levelname:<8}{self.RESET} {record.getMessage()}"

        context = getattr(record, "context", {})
        fields = " ".join(f"{k}={v}" for k, v in context.items() if k != "traceback")
        if fields:
            line += f" {self.DIM}{fields}{self.RESET}"
        if "traceback" in context:
            line += "\n" + context["traceback"]
        return line


api_logger = StructuredLogger("eventsync.api")
db_logger = StructuredLogger("eventsync.db")


def get_logger(name: str) -> StructuredLogger:
    """Logger under the ``eventsync`` namespace"""
    return StructuredLogger(f"eventsync.{name}")
