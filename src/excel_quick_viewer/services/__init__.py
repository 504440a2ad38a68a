"""Services for the Excel quick viewer."""

from excel_quick_viewer.services.file_catalog import FileCatalog
from excel_quick_viewer.services.folder_registry import FolderRegistry
from excel_quick_viewer.services.format_detector import (
    FormatDetector,
    SpreadsheetFormat,
)
from excel_quick_viewer.services.search_engine import SearchEngine
from excel_quick_viewer.services.settings_store import SettingsStore
from excel_quick_viewer.services.workbook_decoder import WorkbookDecoder

__all__ = [
    "FileCatalog",
    "FolderRegistry",
    "FormatDetector",
    "SearchEngine",
    "SettingsStore",
    "SpreadsheetFormat",
    "WorkbookDecoder",
]
