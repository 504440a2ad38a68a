"""Error types raised by the viewer services.

Every error carries an ``ErrorCode`` and the HTTP status the API answers
with. The code's first digit names the area that failed::

    ViewerError
    ├── FileError                 E1  reading or stat-ing a file
    │   ├── ViewerFileNotFoundError
    │   ├── FileReadError
    │   └── FileStatError
    ├── DecodeError               E2  turning bytes into a workbook
    │   └── UnsupportedFormatError
    ├── CatalogError              E3  listing registered folders
    │   └── FolderScanError
    ├── SettingsIOError           E4  the persisted settings record
    └── ValidationError           E9  bad request input

Only DecodeError is meant to reach the user. The rest are logged where
they happen and degrade to an empty or default result.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable identifiers reported in logs and API error bodies."""

    FILE_NOT_FOUND = "E1001"
    FILE_READ_ERROR = "E1002"
    FILE_STAT_ERROR = "E1003"

    DECODE_FAILED = "E2001"
    UNSUPPORTED_FORMAT = "E2002"
    CORRUPT_WORKBOOK = "E2003"

    CATALOG_ERROR = "E3001"
    FOLDER_SCAN_FAILED = "E3002"

    SETTINGS_LOAD_FAILED = "E4001"
    SETTINGS_SAVE_FAILED = "E4002"

    OPEN_EXTERNAL_FAILED = "E5001"

    INTERNAL_ERROR = "E9001"
    VALIDATION_ERROR = "E9002"


def _merge_details(
    details: dict[str, Any] | None, **fields: Any
) -> dict[str, Any]:
    """Copy ``details`` and add the non-empty ``fields``."""
    merged = dict(details or {})
    merged.update((key, value) for key, value in fields.items() if value)
    return merged


class HTTPStatusMixin:
    """Adds the ``http_status`` class attribute the API responds with."""

    http_status: int = 500

    def get_http_status(self) -> int:
        return self.http_status


class ViewerError(Exception, HTTPStatusMixin):
    """Root of the viewer's error types.

    Attributes:
        message: Text shown in logs and in the API ``detail`` field.
        error_code: One of ``ErrorCode``.
        details: Structured context such as the offending path.
    """

    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Error body for API responses; ``details`` only when present."""
        body: dict[str, Any] = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details:
            body["details"] = self.details
        return body

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"


class FileError(ViewerError):
    """A file on disk could not be accessed."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.FILE_READ_ERROR,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message, error_code, _merge_details(details, file_path=file_path)
        )
        self.file_path = file_path


class ViewerFileNotFoundError(FileError):
    """The path does not exist.

    Not called FileNotFoundError so the builtin stays usable alongside it.
    """

    http_status: int = 404

    def __init__(
        self,
        file_path: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message or f"File not found: {file_path}",
            error_code=ErrorCode.FILE_NOT_FOUND,
            file_path=file_path,
            details=details,
        )


class FileReadError(FileError):
    """The file exists but its bytes cannot be read.

    Args:
        file_path: Path that could not be read.
        reason: Short description taken from the OS error.
    """

    def __init__(
        self,
        file_path: str,
        reason: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            f"Unable to read {file_path}: {reason}",
            error_code=ErrorCode.FILE_READ_ERROR,
            file_path=file_path,
            details=details,
        )
        self.reason = reason


class FileStatError(FileError):
    """The size of a catalog entry cannot be determined."""

    def __init__(self, file_path: str, reason: str) -> None:
        super().__init__(
            f"Unable to stat {file_path}: {reason}",
            error_code=ErrorCode.FILE_STAT_ERROR,
            file_path=file_path,
        )
        self.reason = reason


class DecodeError(ViewerError):
    """Bytes could not be decoded into a workbook.

    This is the only error the viewer shows to the user; its message is
    rendered in place of the grid.
    """

    http_status: int = 422

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.DECODE_FAILED,
        file_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message, error_code, _merge_details(details, file_name=file_name)
        )
        self.file_name = file_name


class UnsupportedFormatError(DecodeError):
    """The bytes are not a recognizable spreadsheet container.

    ``detected_mime`` is whatever libmagic reported, recorded in the
    details as ``detected_mime_type``.
    """

    def __init__(
        self,
        message: str,
        detected_mime: str | None = None,
        file_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            error_code=ErrorCode.UNSUPPORTED_FORMAT,
            file_name=file_name,
            details=_merge_details(details, detected_mime_type=detected_mime),
        )
        self.detected_mime = detected_mime


class CatalogError(ViewerError):
    """Listing the registered folders failed."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CATALOG_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)


class FolderScanError(CatalogError):
    """A registered folder cannot be listed."""

    def __init__(self, folder_path: str, reason: str) -> None:
        super().__init__(
            f"Failed to scan folder {folder_path}: {reason}",
            error_code=ErrorCode.FOLDER_SCAN_FAILED,
            details={"folder_path": folder_path},
        )
        self.folder_path = folder_path
        self.reason = reason


class SettingsIOError(ViewerError):
    """The settings record cannot be loaded or saved.

    Args:
        message: What went wrong.
        error_code: SETTINGS_LOAD_FAILED or SETTINGS_SAVE_FAILED.
        settings_path: Location of the settings file.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.SETTINGS_SAVE_FAILED,
        settings_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            error_code,
            _merge_details(details, settings_path=settings_path),
        )
        self.settings_path = settings_path


class ValidationError(ViewerError):
    """A request carried invalid input, such as a sheet index out of range."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message, ErrorCode.VALIDATION_ERROR, _merge_details(details, field=field)
        )
        self.field = field
