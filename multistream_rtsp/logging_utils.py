"""
Structured Logging Utilities
=============================

Logging bootstrap for the RTSP server.

- setup_structured_logging: JSON (python-json-logger) or human-readable output
- ComponentLogger: LoggerAdapter that stamps every record with its component
- trace_context: per-connection trace id propagated through contextvars

Human-facing console output (banner, "Added stream", connection blocks) is not
logging; it goes through click.echo in the server and tracker.
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# ============================================================================
# Trace Context
# ============================================================================

trace_id_var: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)


def get_trace_id() -> Optional[str]:
    """Return the trace id of the current context, if any."""
    return trace_id_var.get()


def generate_trace_id(prefix: str = "trace") -> str:
    """
    Build a new trace id.

    Args:
        prefix: Leading label (e.g. "conn", "startup")

    Returns:
        Trace id formatted as {prefix}-{short_uuid}
    """
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


@contextmanager
def trace_context(trace_id: Optional[str] = None):
    """
    Bind a trace id for everything logged inside the block.

    Usage:
        with trace_context("conn-3"):
            logger.info("Client connected", extra={"event": "client_connected"})
    """
    if trace_id is None:
        trace_id = generate_trace_id()

    token = trace_id_var.set(trace_id)
    try:
        yield trace_id
    finally:
        trace_id_var.reset(token)


# ============================================================================
# Logger Setup
# ============================================================================


class HumanReadableFormatter(logging.Formatter):
    """Single-line formatter: time | level | component | event | message."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(component)-16s | %(event)-20s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "component"):
            record.component = record.name.split(".")[-1]
        if not hasattr(record, "event"):
            record.event = "-"
        return super().format(record)


class AutoFlushStreamHandler(logging.StreamHandler):
    """StreamHandler that flushes after every record."""

    def emit(self, record):
        super().emit(record)
        self.flush()


def _build_json_formatter(indent: Optional[int]) -> logging.Formatter:
    from pythonjsonlogger import jsonlogger

    class ServerJsonFormatter(jsonlogger.JsonFormatter):
        def add_fields(self, log_record, record, message_dict):
            super().add_fields(log_record, record, message_dict)

            if "levelname" in log_record:
                log_record["level"] = log_record.pop("levelname")
            if "name" in log_record:
                log_record["logger"] = log_record.pop("name")

            current_trace_id = get_trace_id()
            if current_trace_id and "trace_id" not in log_record:
                log_record["trace_id"] = current_trace_id

    return ServerJsonFormatter(
        "%(timestamp)s %(levelname)s %(name)s %(message)s",
        timestamp=True,
        json_indent=indent,
    )


def setup_structured_logging(
    level: str = "INFO",
    json_format: bool = False,
    indent: Optional[int] = None,
    output_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: Emit JSON records instead of the human-readable line
        indent: JSON indent (None = compact)
        output_file: Log file path; rotated when set, stderr otherwise
        max_bytes: Rotation threshold per file
        backup_count: Rotated files to keep

    Raises:
        ValueError: If level is not a known logging level name
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level!r}")

    if json_format:
        formatter = _build_json_formatter(indent)
    else:
        formatter = HumanReadableFormatter()

    if output_file:
        log_path = Path(output_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            filename=str(log_path),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    else:
        # stdout is reserved for the banner and connection blocks
        handler = AutoFlushStreamHandler(sys.stderr)

    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)


# ============================================================================
# ComponentLogger
# ============================================================================


class ComponentLogger(logging.LoggerAdapter):
    """
    LoggerAdapter that adds 'component' and 'trace_id' to every record.

    Usage:
        >>> logger = ComponentLogger(logging.getLogger(__name__), {"component": "registry"})
        >>> logger.info("Stream registered", extra={"event": "stream_registered"})

    Precedence: caller extra > adapter extra > trace id from context.
    """

    def process(self, msg, kwargs):
        extra = dict(self.extra)

        trace_id = get_trace_id()
        if trace_id:
            extra["trace_id"] = trace_id

        if "extra" in kwargs:
            extra.update(kwargs["extra"])

        kwargs["extra"] = extra
        return msg, kwargs


def get_component_logger(name: str, component: str) -> ComponentLogger:
    """Return a ComponentLogger for logger `name` tagged with `component`."""
    return ComponentLogger(logging.getLogger(name), {"component": component})


__all__ = [
    "setup_structured_logging",
    "trace_context",
    "get_trace_id",
    "generate_trace_id",
    "ComponentLogger",
    "get_component_logger",
    "HumanReadableFormatter",
]
