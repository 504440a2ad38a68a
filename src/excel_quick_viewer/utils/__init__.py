"""Utilities package for the Excel quick viewer.

This package provides:
- Centralized exception classes (exceptions.py)
- Structured logging utilities (logging.py)
"""

from excel_quick_viewer.utils.exceptions import (
    CatalogError,
    DecodeError,
    ErrorCode,
    FileError,
    FileReadError,
    FileStatError,
    FolderScanError,
    HTTPStatusMixin,
    SettingsIOError,
    UnsupportedFormatError,
    ValidationError,
    ViewerError,
    ViewerFileNotFoundError,
)
from excel_quick_viewer.utils.logging import (
    LogContext,
    StructuredLogger,
    get_logger,
    get_request_id,
    set_request_id,
)

__all__ = [
    # Exceptions
    "CatalogError",
    "DecodeError",
    "ErrorCode",
    "FileError",
    "FileReadError",
    "FileStatError",
    "FolderScanError",
    "HTTPStatusMixin",
    "SettingsIOError",
    "UnsupportedFormatError",
    "ValidationError",
    "ViewerError",
    "ViewerFileNotFoundError",
    # Logging
    "LogContext",
    "StructuredLogger",
    "get_logger",
    "get_request_id",
    "set_request_id",
]
