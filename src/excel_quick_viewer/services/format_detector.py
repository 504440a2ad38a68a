"""Spreadsheet container detection.

This module classifies raw workbook bytes as an Office Open XML package
(``.xlsx``/``.xlsm``) or a legacy BIFF compound document (``.xls``), using
magic bytes first and the file extension when libmagic only recognizes the
generic container.
"""

from enum import Enum
from pathlib import Path

import magic

from excel_quick_viewer.utils.exceptions import UnsupportedFormatError
from excel_quick_viewer.utils.logging import get_logger

logger = get_logger(__name__)

__all__ = [
    "SpreadsheetFormat",
    "FormatDetector",
    "EXTENSION_TO_FORMAT",
    "MIME_TO_FORMAT",
]


class SpreadsheetFormat(str, Enum):
    """Container family of a workbook."""

    OOXML = "ooxml"
    BIFF = "biff"


EXTENSION_TO_FORMAT: dict[str, SpreadsheetFormat] = {
    ".xlsx": SpreadsheetFormat.OOXML,
    ".xlsm": SpreadsheetFormat.OOXML,
    ".xls": SpreadsheetFormat.BIFF,
}

MIME_TO_FORMAT: dict[str, SpreadsheetFormat] = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": (
        SpreadsheetFormat.OOXML
    ),
    "application/vnd.ms-excel.sheet.macroenabled.12": SpreadsheetFormat.OOXML,
    "application/vnd.ms-excel": SpreadsheetFormat.BIFF,
}

# Generic containers that libmagic reports when it cannot see inside
ZIP_CONTAINER_MIMES = {"application/zip", "application/x-zip-compressed"}
OLE_CONTAINER_MIMES = {
    "application/cdfv2",
    "application/x-ole-storage",
    "application/cdf",
}
UNKNOWN_BINARY_MIMES = {"application/octet-stream"}


class FormatDetector:
    """Detects which decoder a workbook's bytes need."""

    def __init__(self) -> None:
        self._magic = magic.Magic(mime=True)

    def detect(self, content: bytes, file_name: str | None = None) -> SpreadsheetFormat:
        """Classify workbook bytes.

        Priority:
        1. A spreadsheet MIME type from magic bytes
        2. A generic ZIP or OLE container, refined by the extension
        3. An unidentifiable binary, classified by extension alone

        Args:
            content: Raw file bytes.
            file_name: Optional file name used for extension fallback.

        Returns:
            The container family.

        Raises:
            UnsupportedFormatError: If the bytes are not a spreadsheet container.
        """
        if not content:
            raise UnsupportedFormatError(
                "The file is empty and cannot be opened as a spreadsheet.",
                file_name=file_name,
            )

        extension = Path(file_name).suffix.lower() if file_name else ""
        from_extension = EXTENSION_TO_FORMAT.get(extension)
        detected_mime = self._detect_mime(content)

        if detected_mime in MIME_TO_FORMAT:
            detected = MIME_TO_FORMAT[detected_mime]
            if from_extension and from_extension != detected:
                logger.warning(
                    "File extension does not match detected spreadsheet type",
                    extension=extension,
                    detected_mime=detected_mime,
                )
            return detected

        if detected_mime in ZIP_CONTAINER_MIMES:
            return SpreadsheetFormat.OOXML

        if detected_mime in OLE_CONTAINER_MIMES:
            return SpreadsheetFormat.BIFF

        if (detected_mime is None or detected_mime in UNKNOWN_BINARY_MIMES) and (
            from_extension is not None
        ):
            return from_extension

        raise UnsupportedFormatError(
            f"Not a spreadsheet file: {file_name or 'content'} "
            f"({detected_mime or 'unknown format'})",
            detected_mime=detected_mime,
            file_name=file_name,
        )

    def _detect_mime(self, content: bytes) -> str | None:
        """Detect the lower-cased MIME type from magic bytes, or None on failure."""
        try:
            detected = self._magic.from_buffer(content)
        except Exception as e:
            logger.warning(
                "Magic detection failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        return detected.lower() if detected else None

    @staticmethod
    def get_supported_extensions() -> list[str]:
        """Get list of supported file extensions."""
        return sorted(EXTENSION_TO_FORMAT.keys())
