"""Spreadsheet files found in the registered folders.

Each folder is scanned on its own worker thread. A folder that cannot be
listed is logged and contributes no files, and a file whose size cannot be
read is dropped, so one bad folder never hides the others.
"""

from __future__ import annotations

import asyncio
import locale
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from excel_quick_viewer.config import settings
from excel_quick_viewer.utils.exceptions import FileStatError, FolderScanError
from excel_quick_viewer.utils.logging import get_logger, timed_operation
from excel_quick_viewer.workbook import ExcelFile, FolderGroup

logger = get_logger(__name__)

try:
    locale.setlocale(locale.LC_COLLATE, "")
except locale.Error:
    pass


def folder_display_name(path: str) -> str:
    """Last component of a Windows or POSIX folder path, or the path itself."""
    separator = "\\" if "\\" in path else "/"
    parts = [part for part in path.split(separator) if part]
    return parts[-1] if parts else path


def collation_key(text: str) -> str:
    return locale.strxfrm(text.casefold())


def sort_catalog(files: Iterable[ExcelFile]) -> list[ExcelFile]:
    """Order entries by folder display name, then by file name."""
    return sorted(
        files,
        key=lambda f: (collation_key(f.folder_name or ""), collation_key(f.name)),
    )


def format_file_size(size: int) -> str:
    """Human readable size as shown next to each file."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def group_by_folder(
    files: Iterable[ExcelFile],
    expanded: Mapping[str, bool] | None = None,
) -> list[FolderGroup]:
    """Group catalog entries by their folder, preserving catalog order."""
    expanded = expanded or {}
    groups: dict[str, FolderGroup] = {}
    for entry in files:
        key = entry.folder_path or ""
        group = groups.get(key)
        if group is None:
            group = FolderGroup(
                folder_name=entry.folder_name or folder_display_name(key),
                folder_path=key,
                files=[],
                expanded=expanded.get(key, True),
            )
            groups[key] = group
        group.files.append(entry)
    return list(groups.values())


@dataclass
class CatalogOptions:
    """Which directory entries count as spreadsheets."""

    extensions: list[str] = field(
        default_factory=lambda: settings.spreadsheet_extensions_list
    )
    lock_file_prefix: str = field(default_factory=lambda: settings.lock_file_prefix)


class FileCatalog:
    """Scan registered folders for spreadsheet files."""

    def __init__(self, options: CatalogOptions | None = None) -> None:
        self.options = options or CatalogOptions()
        self._files: list[ExcelFile] = []

    @property
    def files(self) -> list[ExcelFile]:
        return list(self._files)

    def is_spreadsheet_name(self, name: str) -> bool:
        lower = name.lower()
        return any(lower.endswith(ext) for ext in self.options.extensions) and (
            not name.startswith(self.options.lock_file_prefix)
        )

    async def refresh(self, folder_paths: Iterable[str]) -> list[ExcelFile]:
        """Scan every folder concurrently and publish the merged, sorted result."""
        paths = list(folder_paths)
        with timed_operation(logger, "catalog_refresh") as metrics:
            results = await asyncio.gather(
                *(self._scan_contained(path) for path in paths)
            )
            merged = sort_catalog(entry for entries in results for entry in entries)
            metrics.folders_scanned = len(paths)
            metrics.files_found = len(merged)

        self._files = merged
        return self.files

    async def _scan_contained(self, folder_path: str) -> list[ExcelFile]:
        try:
            return await asyncio.to_thread(self.scan_folder, folder_path)
        except FolderScanError as e:
            logger.warning(
                "Folder skipped",
                folder=e.folder_path,
                reason=e.reason,
                error_code=e.error_code.value,
            )
            return []

    def scan_folder(self, folder_path: str) -> list[ExcelFile]:
        """List spreadsheet files directly inside ``folder_path``.

        Raises:
            FolderScanError: If the folder cannot be listed.
        """
        folder_name = folder_display_name(folder_path)
        try:
            with os.scandir(folder_path) as it:
                entries = [entry for entry in it if self.is_spreadsheet_name(entry.name)]
        except OSError as e:
            raise FolderScanError(folder_path, e.strerror or str(e)) from e

        files: list[ExcelFile] = []
        for entry in entries:
            try:
                size = self._stat_size(entry)
            except FileStatError as e:
                logger.debug("File dropped from catalog", path=e.file_path, reason=e.reason)
                continue
            if size is None:
                continue
            files.append(
                ExcelFile(
                    name=entry.name,
                    path=os.path.join(folder_path, entry.name),
                    size=size,
                    folder_name=folder_name,
                    folder_path=folder_path,
                )
            )
        return files

    @staticmethod
    def _stat_size(entry: os.DirEntry[str]) -> int | None:
        """Size of a regular file; None for directories and other non-files.

        Raises:
            FileStatError: If the entry cannot be stat'ed.
        """
        try:
            if not entry.is_file():
                return None
            return entry.stat().st_size
        except OSError as e:
            raise FileStatError(entry.path, e.strerror or str(e)) from e
