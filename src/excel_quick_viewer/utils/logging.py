"""Structured logging for the Excel quick viewer.

Every message can carry ``key=value`` fields, and every record is prefixed
with the fields bound to the current context (request id, file being
decoded, anything bound through ``LogContext``)::

    logger = get_logger(__name__)

    with LogContext(file_path="/data/report.xlsx", sheet="Summary"):
        logger.info("Decoding workbook", sheets=3)
    # [file=/data/report.xlsx sheet=Summary] Decoding workbook | sheets=3

    with timed_operation(logger, "catalog_refresh") as metrics:
        metrics.folders_scanned = 2
"""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import Any

DEFAULT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Field names with dedicated accessors; rendered first, in this order
_REQUEST_ID = "request_id"
_FILE = "file"
_RESERVED = (_REQUEST_ID, _FILE)

_log_context: ContextVar[dict[str, Any] | None] = ContextVar(
    "excel_quick_viewer_log_context", default=None
)


def _current() -> dict[str, Any]:
    return _log_context.get() or {}


def _bind(key: str, value: Any) -> None:
    fields = dict(_current())
    if value is None:
        fields.pop(key, None)
    else:
        fields[key] = value
    _log_context.set(fields)


def get_request_id() -> str | None:
    """Request ID bound to the current context, if any."""
    return _current().get(_REQUEST_ID)


def set_request_id(request_id: str | None) -> None:
    """Bind a request ID to the current context; None unbinds it."""
    _bind(_REQUEST_ID, request_id)


def get_file_path() -> str | None:
    return _current().get(_FILE)


def set_file_path(file_path: str | None) -> None:
    _bind(_FILE, file_path)


def get_extra_context() -> dict[str, Any]:
    """Context fields other than the request ID and file path."""
    return {k: v for k, v in _current().items() if k not in _RESERVED}


def set_extra_context(context: dict[str, Any]) -> None:
    """Replace the extra fields, keeping the request ID and file path."""
    fields = {k: v for k, v in _current().items() if k in _RESERVED}
    fields.update(context)
    _log_context.set(fields)


def clear_context() -> None:
    _log_context.set(None)


def _context_prefix() -> str:
    fields = _current()
    ordered = [(key, fields[key]) for key in _RESERVED if key in fields]
    ordered.extend((k, v) for k, v in fields.items() if k not in _RESERVED)
    return " ".join(f"{key}={value}" for key, value in ordered)


_COUNTERS = (
    "sheets_decoded",
    "cells_scanned",
    "matches_found",
    "folders_scanned",
    "files_found",
)


@dataclass
class PerformanceMetrics:
    """Counters and wall time collected while an operation runs.

    Attributes:
        operation: Name of the measured operation.
        sheets_decoded: Sheets produced by a decode.
        cells_scanned: Grid cells visited.
        matches_found: Search matches produced.
        folders_scanned: Folders listed by a catalog refresh.
        files_found: Catalog entries produced.
        extra: Free-form fields appended to the log line.
    """

    operation: str
    sheets_decoded: int = 0
    cells_scanned: int = 0
    matches_found: int = 0
    folders_scanned: int = 0
    files_found: int = 0
    extra: dict[str, Any] = field(default_factory=dict)
    started_at: float = field(default_factory=time.perf_counter)
    finished_at: float | None = None

    @property
    def duration_seconds(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.perf_counter()
        return end - self.started_at

    def finish(self) -> None:
        self.finished_at = time.perf_counter()

    def to_dict(self) -> dict[str, Any]:
        """Fields for the log line; counters still at zero are left out."""
        data: dict[str, Any] = {
            "operation": self.operation,
            "duration_seconds": round(self.duration_seconds, 4),
        }
        for name in _COUNTERS:
            value = getattr(self, name)
            if value:
                data[name] = value
        data.update(self.extra)
        return data


class StructuredLogFormatter(logging.Formatter):
    """Formatter that prefixes each message with the bound context fields."""

    def format(self, record: logging.LogRecord) -> str:
        prefix = _context_prefix()
        if not prefix:
            return super().format(record)

        # Format a copy so other handlers see the record unchanged
        prefixed = logging.makeLogRecord(record.__dict__)
        prefixed.msg = f"[{prefix}] {record.getMessage()}"
        prefixed.args = None
        return super().format(prefixed)


class StructuredLogger:
    """Thin wrapper over ``logging.Logger`` that renders keyword fields.

    ``logger.info("Folder added", folder="/data")`` logs
    ``Folder added | folder=/data``.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._logger = logging.getLogger(name)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @staticmethod
    def render(message: str, fields: dict[str, Any]) -> str:
        if not fields:
            return message
        pairs = ", ".join(f"{key}={value}" for key, value in fields.items())
        return f"{message} | {pairs}"

    def log(
        self, level: int, message: str, *, exc_info: bool = False, **fields: Any
    ) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, self.render(message, fields), exc_info=exc_info)

    def debug(self, message: str, **fields: Any) -> None:
        self.log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self.log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self.log(logging.WARNING, message, **fields)

    def error(self, message: str, exc_info: bool = False, **fields: Any) -> None:
        self.log(logging.ERROR, message, exc_info=exc_info, **fields)

    def exception(self, message: str, **fields: Any) -> None:
        """Log at ERROR level with the active exception's traceback."""
        self.log(logging.ERROR, message, exc_info=True, **fields)

    def log_performance(self, metrics: PerformanceMetrics) -> None:
        self.info(f"Performance: {metrics.operation}", **metrics.to_dict())


class LogContext:
    """Bind fields to every log record emitted inside the ``with`` block.

    ``file_path`` and ``request_id`` populate the dedicated fields; other
    keywords are added as extra fields. The previous context is restored
    on exit, so blocks nest.
    """

    def __init__(self, **fields: Any) -> None:
        self._fields = fields
        self._token: Token[dict[str, Any] | None] | None = None

    def __enter__(self) -> "LogContext":
        fields = dict(_current())
        for key, value in self._fields.items():
            if value is None:
                continue
            fields[_FILE if key == "file_path" else key] = value
        self._token = _log_context.set(fields)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


@contextmanager
def timed_operation(
    logger: StructuredLogger,
    operation: str,
) -> Iterator[PerformanceMetrics]:
    """Time the ``with`` block and log its metrics when it ends.

    The metrics are logged even when the block raises, with
    ``status=failed`` added.
    """
    metrics = PerformanceMetrics(operation=operation)
    try:
        yield metrics
    except Exception:
        metrics.extra["status"] = "failed"
        raise
    finally:
        metrics.finish()
        logger.log_performance(metrics)


def configure_logging(
    level: int | str = logging.INFO,
    format_string: str | None = None,
    use_structured_formatter: bool = True,
) -> None:
    """Install a single stderr handler on the root logger.

    Args:
        level: Level as an int or a name such as ``"INFO"``.
        format_string: ``logging`` format string; DEFAULT_FORMAT if None.
        use_structured_formatter: Prefix records with the bound context.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    formatter_class = (
        StructuredLogFormatter if use_structured_formatter else logging.Formatter
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter_class(format_string or DEFAULT_FORMAT))
    logging.basicConfig(level=level, handlers=[handler], force=True)


def get_logger(name: str) -> StructuredLogger:
    """Return a StructuredLogger for ``name`` (normally ``__name__``)."""
    return StructuredLogger(name)
