"""Dataclasses representing a decoded workbook and the folder catalog."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

CellValue = Union[str, int, float, bool, None]
"""A displayable cell value. ``None`` marks an absent cell, not an empty string."""


@dataclass
class SheetData:
    """A single worksheet decoded into a bounded, rectangular grid."""

    name: str
    headers: list[str]
    data: list[list[CellValue]]
    col_widths: list[float]

    @property
    def row_count(self) -> int:
        return len(self.data)

    @property
    def column_count(self) -> int:
        return len(self.headers)


@dataclass
class ParsedWorkbook:
    """A decoded workbook with its sheets in source order."""

    file_name: str
    sheets: list[SheetData] = field(default_factory=list)

    @property
    def sheet_names(self) -> list[str]:
        return [sheet.name for sheet in self.sheets]


@dataclass(frozen=True, order=True)
class SearchMatch:
    """Zero-based coordinates of a matching cell."""

    sheet_index: int
    row: int
    col: int


@dataclass
class ExcelFile:
    """A spreadsheet file listed in the folder catalog."""

    name: str
    path: str
    size: int
    folder_name: str | None = None
    folder_path: str | None = None


@dataclass
class FolderGroup:
    """Catalog entries of one registered folder, as shown in the file tree."""

    folder_name: str
    folder_path: str
    files: list[ExcelFile]
    expanded: bool = True
