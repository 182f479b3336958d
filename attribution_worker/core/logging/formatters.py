"""
Logging formatters for the Attribution Worker
"""

import json
import logging
from datetime import datetime
from typing import Optional


class StructuredFormatter(logging.Formatter):
    """Formatter that emits one JSON object per record with call-site info"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "process": record.process,
        }

        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class JSONFormatter(logging.Formatter):
    """JSON formatter for machine-readable logs"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable console formatter with colors"""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset = self.COLORS["RESET"]
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")

        formatted = f"{color}[{timestamp}] {record.levelname:8s} {record.name}: {record.getMessage()}{reset}"

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


class SimpleFormatter(logging.Formatter):
    """Plain formatter for basic logging"""

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None):
        super().__init__(
            fmt or "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt or "%Y-%m-%d %H:%M:%S",
        )


def build_formatter(formatter_type: str) -> logging.Formatter:
    """Pick a formatter by its configured name"""
    if formatter_type == "console":
        return ConsoleFormatter()
    if formatter_type == "json":
        return JSONFormatter()
    if formatter_type == "structured":
        return StructuredFormatter()
    return SimpleFormatter()
