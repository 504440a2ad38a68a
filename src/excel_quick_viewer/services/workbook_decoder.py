"""Decode workbook bytes into bounded, display-ready sheet grids."""

from __future__ import annotations

import io
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Any

import xlrd
from openpyxl import load_workbook
from openpyxl.chartsheet import Chartsheet
from openpyxl.utils import column_index_from_string, get_column_letter
from openpyxl.utils.units import DEFAULT_COLUMN_WIDTH
from openpyxl.worksheet.worksheet import Worksheet

from excel_quick_viewer.config import settings
from excel_quick_viewer.services.format_detector import (
    FormatDetector,
    SpreadsheetFormat,
)
from excel_quick_viewer.services.host_bridge import read_file_bytes
from excel_quick_viewer.utils.exceptions import DecodeError, ErrorCode
from excel_quick_viewer.utils.logging import LogContext, get_logger, timed_operation
from excel_quick_viewer.workbook import CellValue, ParsedWorkbook, SheetData

logger = get_logger(__name__)

# BIFF column widths are stored in 1/256ths of a character
BIFF_WIDTH_UNITS_PER_CHAR = 256


@dataclass
class DecodeOptions:
    """Options controlling how much of each sheet is decoded."""

    max_columns: int = field(default_factory=lambda: settings.max_columns)
    max_rows: int = field(default_factory=lambda: settings.max_rows)
    default_column_width: float = field(
        default_factory=lambda: settings.default_column_width
    )
    pixels_per_character: float = field(
        default_factory=lambda: settings.pixels_per_character
    )


@dataclass
class ColumnWidthHint:
    """Width information a workbook declares for one column."""

    width_px: float | None = None
    width_chars: float | None = None


def resolve_column_width(
    hint: ColumnWidthHint | None,
    *,
    pixels_per_character: float,
    default_width: float,
) -> float:
    """Resolve a column's display width in pixels.

    An explicit pixel width wins, then a character width converted with
    ``pixels_per_character``, then ``default_width``.
    """
    if hint is None:
        return default_width
    if hint.width_px:
        return float(hint.width_px)
    if hint.width_chars:
        return hint.width_chars * pixels_per_character
    return default_width


def column_headers(column_count: int) -> list[str]:
    """Spreadsheet-style column labels: A..Z, AA, AB, ..."""
    return [get_column_letter(index + 1) for index in range(column_count)]


def display_value(value: Any) -> CellValue:
    """Convert a raw cell value into what the grid shows.

    Text, numbers and booleans keep their type. Dates, times and durations
    have no grid type of their own and become display strings.
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    if isinstance(value, timedelta):
        return str(value)
    return str(value)


def retain_rows(rows: Iterable[list[CellValue]]) -> list[list[CellValue]]:
    """Drop leading and trailing all-absent rows, keeping interior blank rows."""
    retained: list[list[CellValue]] = []
    for row in rows:
        if retained or any(cell is not None for cell in row):
            retained.append(row)

    while retained and all(cell is None for cell in retained[-1]):
        retained.pop()
    return retained


class WorkbookDecoder:
    """Decode ``.xlsx``/``.xlsm`` workbooks with openpyxl and ``.xls`` with xlrd."""

    def __init__(
        self,
        options: DecodeOptions | None = None,
        format_detector: FormatDetector | None = None,
    ) -> None:
        self.options = options or DecodeOptions()
        self._detector = format_detector or FormatDetector()

    def decode(self, content: bytes, file_name: str) -> ParsedWorkbook:
        """Decode workbook bytes.

        Args:
            content: Raw file contents.
            file_name: Display name of the workbook.

        Returns:
            ParsedWorkbook with every sheet in source order, chartsheets included.

        Raises:
            DecodeError: If the bytes are not a spreadsheet or are corrupt.
        """
        with LogContext(file_path=file_name), timed_operation(
            logger, "decode_workbook"
        ) as metrics:
            spreadsheet_format = self._detector.detect(content, file_name)
            if spreadsheet_format is SpreadsheetFormat.BIFF:
                sheets = self._decode_biff(content, file_name)
            else:
                sheets = self._decode_ooxml(content, file_name)

            metrics.sheets_decoded = len(sheets)
            metrics.cells_scanned = sum(
                sheet.row_count * sheet.column_count for sheet in sheets
            )
            logger.info(
                "Workbook decoded",
                format=spreadsheet_format.value,
                sheets=len(sheets),
            )
            return ParsedWorkbook(file_name=file_name, sheets=sheets)

    def decode_path(self, path: str | Path) -> ParsedWorkbook:
        """Read a workbook from disk and decode it under its base name."""
        content = read_file_bytes(path)
        return self.decode(content, Path(path).name)

    # ------------------------------------------------------------------ #
    # Office Open XML
    # ------------------------------------------------------------------ #

    def _decode_ooxml(self, content: bytes, file_name: str) -> list[SheetData]:
        try:
            workbook = load_workbook(
                filename=io.BytesIO(content), data_only=True, read_only=False
            )
        except Exception as e:
            raise DecodeError(
                f"Unable to open {file_name}: {e}",
                error_code=ErrorCode.CORRUPT_WORKBOOK,
                file_name=file_name,
            ) from e

        try:
            return [
                self._decode_ooxml_sheet(workbook[name]) for name in workbook.sheetnames
            ]
        except Exception as e:
            raise DecodeError(
                f"Unable to read sheets of {file_name}: {e}",
                error_code=ErrorCode.CORRUPT_WORKBOOK,
                file_name=file_name,
            ) from e
        finally:
            workbook.close()

    def _decode_ooxml_sheet(self, sheet: Worksheet | Chartsheet) -> SheetData:
        if isinstance(sheet, Chartsheet):
            # No cells; keeps its tab position with a single empty column
            return self._build_sheet(sheet.title, [], 1, {})

        last_row = min(sheet.max_row or 1, self.options.max_rows)
        last_col = min(sheet.max_column or 1, self.options.max_columns)

        rows = (
            [display_value(value) for value in row]
            for row in sheet.iter_rows(
                min_row=1,
                max_row=last_row,
                min_col=1,
                max_col=last_col,
                values_only=True,
            )
        )
        return self._build_sheet(
            sheet.title, rows, last_col, self._ooxml_width_hints(sheet, last_col)
        )

    @staticmethod
    def _ooxml_width_hints(
        sheet: Worksheet, last_col: int
    ) -> dict[int, ColumnWidthHint]:
        """Collect character widths, expanding dimensions that span columns.

        openpyxl fills in DEFAULT_COLUMN_WIDTH for a <col> that declares no
        width (hidden or style-only columns), so that value counts as absent.
        """
        hints: dict[int, ColumnWidthHint] = {}
        for key, dimension in sheet.column_dimensions.items():
            if not dimension.width or dimension.width == DEFAULT_COLUMN_WIDTH:
                continue
            start = dimension.min or column_index_from_string(key)
            end = dimension.max or start
            for index in range(start, min(end, last_col) + 1):
                hints[index - 1] = ColumnWidthHint(width_chars=dimension.width)
        return hints

    # ------------------------------------------------------------------ #
    # Legacy BIFF
    # ------------------------------------------------------------------ #

    def _decode_biff(self, content: bytes, file_name: str) -> list[SheetData]:
        try:
            book = xlrd.open_workbook(file_contents=content, formatting_info=True)
        except Exception as e:
            raise DecodeError(
                f"Unable to open {file_name}: {e}",
                error_code=ErrorCode.CORRUPT_WORKBOOK,
                file_name=file_name,
            ) from e

        try:
            return [self._decode_biff_sheet(book, sheet) for sheet in book.sheets()]
        except Exception as e:
            raise DecodeError(
                f"Unable to read sheets of {file_name}: {e}",
                error_code=ErrorCode.CORRUPT_WORKBOOK,
                file_name=file_name,
            ) from e
        finally:
            book.release_resources()

    def _decode_biff_sheet(self, book: Any, sheet: Any) -> SheetData:
        last_row = min(max(sheet.nrows, 1), self.options.max_rows)
        last_col = min(max(sheet.ncols, 1), self.options.max_columns)

        def cells(row_index: int) -> list[CellValue]:
            row: list[CellValue] = []
            for col_index in range(last_col):
                if row_index < sheet.nrows and col_index < sheet.ncols:
                    cell = sheet.cell(row_index, col_index)
                    row.append(self._biff_value(book, cell.ctype, cell.value))
                else:
                    row.append(None)
            return row

        hints = {
            index: ColumnWidthHint(width_chars=info.width / BIFF_WIDTH_UNITS_PER_CHAR)
            for index, info in sheet.colinfo_map.items()
            if index < last_col and info.width
        }
        return self._build_sheet(
            sheet.name, (cells(r) for r in range(last_row)), last_col, hints
        )

    @staticmethod
    def _biff_value(book: Any, ctype: int, value: Any) -> CellValue:
        """Map an xlrd cell to a grid value."""
        if ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
            return None
        if ctype == xlrd.XL_CELL_BOOLEAN:
            return bool(value)
        if ctype == xlrd.XL_CELL_ERROR:
            return xlrd.error_text_from_code.get(value, "#ERR!")
        if ctype == xlrd.XL_CELL_DATE:
            try:
                return display_value(xlrd.xldate_as_datetime(value, book.datemode))
            except (xlrd.xldate.XLDateError, OverflowError, ValueError):
                return value
        if ctype == xlrd.XL_CELL_NUMBER:
            if isinstance(value, float) and value.is_integer():
                return int(value)
            return value
        return display_value(value)

    # ------------------------------------------------------------------ #
    # Shared
    # ------------------------------------------------------------------ #

    def _build_sheet(
        self,
        name: str,
        rows: Iterable[list[CellValue]],
        column_count: int,
        width_hints: dict[int, ColumnWidthHint],
    ) -> SheetData:
        widths = [
            resolve_column_width(
                width_hints.get(index),
                pixels_per_character=self.options.pixels_per_character,
                default_width=self.options.default_column_width,
            )
            for index in range(column_count)
        ]
        return SheetData(
            name=name,
            headers=column_headers(column_count),
            data=retain_rows(rows),
            col_widths=widths,
        )
