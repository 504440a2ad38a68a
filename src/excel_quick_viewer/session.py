"""Viewer state shared by the presentation layer.

A ViewerSession owns everything a front end renders: the registered
folders, the file catalog and its expanded folder groups, the selected
workbook with its active sheet, and the search state. It applies the
invalidation rules between them:

- changing the folder list refreshes the catalog
- selecting a file clears the query, resets the active sheet and replaces
  the workbook wholesale
- a current search match on another sheet makes that sheet active
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

from excel_quick_viewer.services.file_catalog import FileCatalog, group_by_folder
from excel_quick_viewer.services.folder_registry import FolderRegistry
from excel_quick_viewer.services.host_bridge import open_externally
from excel_quick_viewer.services.search_engine import SearchEngine
from excel_quick_viewer.services.workbook_decoder import WorkbookDecoder
from excel_quick_viewer.utils.exceptions import (
    DecodeError,
    FileError,
    ValidationError,
    ViewerError,
)
from excel_quick_viewer.utils.logging import LogContext, get_logger
from excel_quick_viewer.workbook import (
    ExcelFile,
    FolderGroup,
    ParsedWorkbook,
    SheetData,
)

logger = get_logger(__name__)


class ViewerSession:
    """State container for one viewer window."""

    def __init__(
        self,
        registry: FolderRegistry | None = None,
        catalog: FileCatalog | None = None,
        decoder: WorkbookDecoder | None = None,
        search: SearchEngine | None = None,
        opener: Callable[[str], bool] = open_externally,
    ) -> None:
        self.registry = registry or FolderRegistry()
        self.catalog = catalog or FileCatalog()
        self.decoder = decoder or WorkbookDecoder()
        self.search = search or SearchEngine()
        self._opener = opener

        self.workbook: ParsedWorkbook | None = None
        self.selected_file_path: str | None = None
        self.active_sheet = 0
        self.error: ViewerError | None = None
        self.is_loading = False
        self.expanded: dict[str, bool] = {}

        self._catalog_stale = False
        self._selection_token = 0

        self.registry.subscribe(self._on_folders_changed)
        self.search.subscribe(self._follow_current_match)

    # ------------------------------------------------------------------ #
    # Folders and catalog
    # ------------------------------------------------------------------ #

    async def start(self) -> None:
        """Load the persisted folder list and scan it."""
        self.registry.load()
        await self.refresh_catalog()

    async def add_folder(self, path: str) -> bool:
        added = self.registry.add(path)
        if self._catalog_stale:
            await self.refresh_catalog()
        return added

    async def remove_folder(self, path: str) -> bool:
        removed = self.registry.remove(path)
        if self._catalog_stale:
            await self.refresh_catalog()
        return removed

    async def refresh_catalog(self) -> list[ExcelFile]:
        folder_paths = self.registry.folder_paths
        files = await self.catalog.refresh(folder_paths)
        self._catalog_stale = False
        # New folders start expanded; flags of removed folders are dropped
        self.expanded = {path: self.expanded.get(path, True) for path in folder_paths}
        return files

    @property
    def files(self) -> list[ExcelFile]:
        return self.catalog.files

    @property
    def folder_groups(self) -> list[FolderGroup]:
        return group_by_folder(self.catalog.files, self.expanded)

    def set_folder_expanded(self, folder_path: str, expanded: bool) -> None:
        if folder_path not in self.expanded:
            raise ValidationError(
                f"Folder is not registered: {folder_path}", field="folder_path"
            )
        self.expanded[folder_path] = expanded

    def toggle_folder(self, folder_path: str) -> bool:
        """Flip a folder group's expanded flag and return the new value."""
        self.set_folder_expanded(folder_path, not self.expanded.get(folder_path, True))
        return self.expanded[folder_path]

    def _on_folders_changed(self, folder_paths: list[str]) -> None:
        self._catalog_stale = True

    # ------------------------------------------------------------------ #
    # Workbook
    # ------------------------------------------------------------------ #

    async def select_file(self, path: str) -> ParsedWorkbook | None:
        """Decode ``path`` and make it the active workbook.

        On failure the workbook is cleared and ``error`` holds the reason.
        When a newer selection starts before this one finishes, this
        result is discarded.
        """
        self._selection_token += 1
        token = self._selection_token

        self.selected_file_path = path
        self.active_sheet = 0
        self.search.set_query("")
        self.error = None
        self.is_loading = True

        with LogContext(file_path=path):
            try:
                workbook = await asyncio.to_thread(self.decoder.decode_path, path)
            except (DecodeError, FileError) as e:
                if token != self._selection_token:
                    logger.debug("Discarding failure of superseded selection")
                    return None
                logger.warning(
                    "Workbook could not be opened",
                    error=e.message,
                    error_code=e.error_code.value,
                )
                self._set_workbook(None)
                self.error = e
                self.is_loading = False
                return None

            if token != self._selection_token:
                logger.debug("Discarding superseded workbook")
                return None

            self._set_workbook(workbook)
            self.is_loading = False
            return workbook

    def clear(self) -> None:
        """Close the active workbook and forget any error."""
        self._selection_token += 1
        self.selected_file_path = None
        self.error = None
        self.is_loading = False
        self.active_sheet = 0
        self._set_workbook(None)

    @property
    def selected_file_name(self) -> str | None:
        if self.selected_file_path is None:
            return None
        return Path(self.selected_file_path).name

    @property
    def current_sheet(self) -> SheetData | None:
        if self.workbook is None or not self.workbook.sheets:
            return None
        return self.workbook.sheets[self.active_sheet]

    def set_active_sheet(self, index: int) -> None:
        if self.workbook is None or not 0 <= index < len(self.workbook.sheets):
            raise ValidationError(f"No sheet at index {index}", field="index")
        self.active_sheet = index

    def open_selected_externally(self) -> bool:
        if self.selected_file_path is None:
            return False
        return self._opener(self.selected_file_path)

    def _set_workbook(self, workbook: ParsedWorkbook | None) -> None:
        self.workbook = workbook
        self.search.set_workbook(workbook)

    # ------------------------------------------------------------------ #
    # Search
    # ------------------------------------------------------------------ #

    def set_query(self, query: str) -> None:
        self.search.set_query(query)

    def go_to_next(self) -> None:
        self.search.go_to_next()

    def go_to_prev(self) -> None:
        self.search.go_to_prev()

    @property
    def current_match_row(self) -> int | None:
        """Row to scroll to: the current match's row if it is on the active sheet."""
        match = self.search.current_match
        if match is None or match.sheet_index != self.active_sheet:
            return None
        return match.row

    def _follow_current_match(self, engine: SearchEngine) -> None:
        match = engine.current_match
        if match is not None and match.sheet_index != self.active_sheet:
            self.active_sheet = match.sheet_index
