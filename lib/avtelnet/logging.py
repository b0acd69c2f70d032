"""Structured logging for the telnet client."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Per-line send/receive records sit below DEBUG
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Default logger
_logger: logging.Logger | None = None
_json_mode = False


def setup_logging(
    level: int = logging.INFO,
    json_output: bool = False,
    log_file: str | None = None,
) -> None:
    """Set up logging configuration.

    Parameters
    ----------
    level : int, optional
        Logging level, by default logging.INFO
    json_output : bool, optional
        Enable JSON output format, by default False
    log_file : str | None, optional
        Log file path, by default None (stderr)
    """
    global _logger, _json_mode

    _json_mode = json_output
    _logger = logging.getLogger("lib.avtelnet")
    _logger.setLevel(level)
    _logger.handlers.clear()

    formatter: logging.Formatter = JsonFormatter() if json_output else TextFormatter()

    # stdout is reserved for received lines in the CLI
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JsonFormatter() if json_output else TextFormatter())
        _logger.addHandler(file_handler)

    _logger.addHandler(handler)


def get_logger() -> logging.Logger:
    """Get the framework logger.

    Returns
    -------
    logging.Logger
        Logger instance
    """
    global _logger

    if _logger is None:
        setup_logging()

    return _logger


def escape(text: str) -> str:
    """Render text for log display.

    Printable ASCII is kept, ``\\n`` and ``\\r`` are spelled out and every other
    character becomes ``\\uXXXX``. Never applied to data on the wire.

    Parameters
    ----------
    text : str
        Text to render

    Returns
    -------
    str
        Display-safe text
    """
    parts = []
    for char in text:
        if 32 <= ord(char) < 127:
            parts.append(char)
        elif char == "\n":
            parts.append("\\n")
        elif char == "\r":
            parts.append("\\r")
        else:
            parts.append(f"\\u{ord(char):04X}")
    return "".join(parts)


class ClientLogger(logging.LoggerAdapter):
    """Logger adapter stamping the device address on every record."""

    def __init__(self, logger: logging.Logger, address: str) -> None:
        super().__init__(logger, {"address": address})

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("address", self.extra["address"])
        kwargs["extra"] = extra
        return msg, kwargs

    def trace(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(TRACE, msg, *args, **kwargs)


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Parameters
        ----------
        record : logging.LogRecord
            Log record

        Returns
        -------
        str
            JSON-formatted log entry
        """
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields
        if hasattr(record, "address"):
            log_data["address"] = record.address
        if hasattr(record, "epoch"):
            log_data["epoch"] = record.epoch

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class TextFormatter(logging.Formatter):
    """Plain text formatter with an address prefix."""

    def __init__(self) -> None:
        """Initialize text formatter."""
        super().__init__(
            fmt="[%(asctime)s] [%(levelname)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as text.

        Parameters
        ----------
        record : logging.LogRecord
            Log record

        Returns
        -------
        str
            Text-formatted log entry
        """
        address = getattr(record, "address", None)
        if not address:
            return super().format(record)

        # Prefix without leaking into other handlers sharing the record
        original = record.msg
        record.msg = f"[{address}] {original}"
        try:
            return super().format(record)
        finally:
            record.msg = original
