"""Logging configuration for Open Killer."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

EXTRA_FIELDS = ("platform", "command", "exit_code", "pid", "port", "duration_ms")


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name in EXTRA_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored console formatter for interactive use."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now().strftime("%H:%M:%S")

        extras = []
        if hasattr(record, "platform"):
            extras.append(f"platform={record.platform}")
        if hasattr(record, "command"):
            extras.append(f"cmd={record.command}")
        if hasattr(record, "exit_code"):
            extras.append(f"exit={record.exit_code}")
        if hasattr(record, "pid"):
            extras.append(f"pid={record.pid}")
        if hasattr(record, "duration_ms"):
            extras.append(f"{record.duration_ms:.1f}ms")

        extra_str = f" [{', '.join(extras)}]" if extras else ""

        message = f"{timestamp} {color}{record.levelname:8}{self.RESET} {record.name}: {record.getMessage()}{extra_str}"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


def setup_logging(
    debug: bool = False, json_logs: bool = False, stream: TextIO | None = None
) -> None:
    """Configure application logging.

    Args:
        debug: Enable debug level logging
        json_logs: Use JSON format (ignored when debug is on)
        stream: Output stream, stdout by default
    """
    level = logging.DEBUG if debug else logging.INFO

    handler = logging.StreamHandler(stream or sys.stdout)

    if json_logs and not debug:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ConsoleFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for existing_handler in root_logger.handlers[:]:
        root_logger.removeHandler(existing_handler)

    root_logger.addHandler(handler)

    # asyncio logs slow callbacks at debug level
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging configured: level={logging.getLevelName(level)}, json={json_logs}")
