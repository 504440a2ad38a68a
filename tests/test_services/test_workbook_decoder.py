"""Tests for the workbook decoder."""

from __future__ import annotations

import io
import re
import zipfile
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import xlrd
from openpyxl import Workbook
from openpyxl.chart import BarChart, Reference

from excel_quick_viewer.services.format_detector import (
    FormatDetector,
    SpreadsheetFormat,
)
from excel_quick_viewer.services.workbook_decoder import (
    ColumnWidthHint,
    DecodeOptions,
    WorkbookDecoder,
    column_headers,
    display_value,
    resolve_column_width,
    retain_rows,
)
from excel_quick_viewer.utils.exceptions import (
    DecodeError,
    ErrorCode,
    UnsupportedFormatError,
    ViewerFileNotFoundError,
)


def _save(wb: Workbook) -> bytes:
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def _replace_cols(content: bytes, cols_xml: str) -> bytes:
    """Swap the <col> elements of the first sheet for ``cols_xml``."""
    source = zipfile.ZipFile(io.BytesIO(content))
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as target:
        for item in source.infolist():
            data = source.read(item.filename)
            if item.filename == "xl/worksheets/sheet1.xml":
                text = re.sub(r"<col\b[^>]*/>", cols_xml, data.decode("utf-8"))
                data = text.encode("utf-8")
            target.writestr(item, data)
    return buffer.getvalue()


class TestHelpers:
    def test_column_headers(self) -> None:
        assert column_headers(3) == ["A", "B", "C"]
        headers = column_headers(51)
        assert headers[25] == "Z"
        assert headers[26] == "AA"
        assert headers[-1] == "AY"

    def test_column_headers_empty(self) -> None:
        assert column_headers(0) == []

    def test_resolve_width_prefers_pixels(self) -> None:
        hint = ColumnWidthHint(width_px=120, width_chars=10)
        assert resolve_column_width(hint, pixels_per_character=7.5, default_width=80) == 120

    def test_resolve_width_from_characters(self) -> None:
        hint = ColumnWidthHint(width_chars=10)
        assert resolve_column_width(hint, pixels_per_character=7.5, default_width=80) == 75

    def test_resolve_width_default(self) -> None:
        assert resolve_column_width(None, pixels_per_character=7.5, default_width=80) == 80
        assert (
            resolve_column_width(
                ColumnWidthHint(), pixels_per_character=7.5, default_width=80
            )
            == 80
        )

    def test_retain_rows_drops_leading_and_trailing_blank_rows(self) -> None:
        rows = [
            [None, None],
            ["a", None],
            [None, None],
            [None, "b"],
            [None, None],
            [None, None],
        ]
        assert retain_rows(rows) == [["a", None], [None, None], [None, "b"]]

    def test_retain_rows_all_blank(self) -> None:
        assert retain_rows([[None], [None]]) == []

    def test_display_value_passthrough(self) -> None:
        assert display_value("x") == "x"
        assert display_value(3) == 3
        assert display_value(1.5) == 1.5
        assert display_value(True) is True
        assert display_value(None) is None

    def test_display_value_temporal(self) -> None:
        assert display_value(datetime(2024, 1, 15)) == "2024-01-15"
        assert display_value(datetime(2024, 1, 15, 9, 30)) == "2024-01-15 09:30:00"
        assert display_value(date(2024, 1, 15)) == "2024-01-15"
        assert display_value(time(9, 5, 1)) == "09:05:01"
        assert display_value(timedelta(hours=1)) == "1:00:00"


class TestDecodeOoxml:
    def test_two_sheet_workbook(
        self, xlsx_bytes: Callable[[dict[str, list[list[Any]]]], bytes]
    ) -> None:
        content = xlsx_bytes({"Sheet1": [["Foo", 42]], "Sheet2": [["foobar"]]})

        workbook = WorkbookDecoder().decode(content, "two.xlsx")

        assert workbook.file_name == "two.xlsx"
        assert workbook.sheet_names == ["Sheet1", "Sheet2"]
        first, second = workbook.sheets
        assert first.headers == ["A", "B"]
        assert first.data == [["Foo", 42]]
        assert second.headers == ["A"]
        assert second.data == [["foobar"]]

    def test_grid_is_rectangular(
        self, xlsx_bytes: Callable[[dict[str, list[list[Any]]]], bytes]
    ) -> None:
        content = xlsx_bytes({"S": [["Name", "Qty", "Note"], ["Apple", 3], ["Pear"]]})

        sheet = WorkbookDecoder().decode(content, "s.xlsx").sheets[0]

        assert sheet.data == [
            ["Name", "Qty", "Note"],
            ["Apple", 3, None],
            ["Pear", None, None],
        ]
        assert all(len(row) == len(sheet.headers) for row in sheet.data)
        assert len(sheet.col_widths) == len(sheet.headers)

    def test_cell_types(self) -> None:
        wb = Workbook()
        ws = wb.active
        ws.title = "Types"
        ws["A1"] = "text"
        ws["B1"] = 10
        ws["C1"] = 2.5
        ws["D1"] = True
        ws["E1"] = datetime(2024, 1, 15)

        sheet = WorkbookDecoder().decode(_save(wb), "types.xlsx").sheets[0]

        assert sheet.data == [["text", 10, 2.5, True, "2024-01-15"]]

    def test_leading_blank_rows_dropped_interior_kept(self) -> None:
        wb = Workbook()
        ws = wb.active
        ws["A3"] = "x"
        ws["A5"] = "y"

        sheet = WorkbookDecoder().decode(_save(wb), "gaps.xlsx").sheets[0]

        assert sheet.data == [["x"], [None], ["y"]]

    def test_empty_sheet(self) -> None:
        wb = Workbook()
        wb.active.title = "Empty"

        sheet = WorkbookDecoder().decode(_save(wb), "empty.xlsx").sheets[0]

        assert sheet.name == "Empty"
        assert sheet.data == []
        assert sheet.headers == ["A"]
        assert sheet.col_widths == [80.0]

    def test_column_and_row_caps(self) -> None:
        wb = Workbook()
        ws = wb.active
        for r in range(1, 6):
            ws.append([f"r{r}c{c}" for c in range(1, 6)])

        decoder = WorkbookDecoder(DecodeOptions(max_columns=3, max_rows=2))
        sheet = decoder.decode(_save(wb), "big.xlsx").sheets[0]

        assert sheet.headers == ["A", "B", "C"]
        assert sheet.data == [["r1c1", "r1c2", "r1c3"], ["r2c1", "r2c2", "r2c3"]]

    def test_default_column_cap(self) -> None:
        wb = Workbook()
        wb.active.append(list(range(60)))

        sheet = WorkbookDecoder().decode(_save(wb), "wide.xlsx").sheets[0]

        assert len(sheet.headers) == 51
        assert sheet.headers[-1] == "AY"
        assert sheet.data[0][-1] == 50

    def test_default_row_cap(self) -> None:
        wb = Workbook()
        ws = wb.active
        for r in range(10_005):
            ws.append([r])

        sheet = WorkbookDecoder().decode(_save(wb), "long.xlsx").sheets[0]

        assert len(sheet.data) == 10_001
        assert sheet.data[-1] == [10_000]

    def test_column_widths(self) -> None:
        wb = Workbook()
        ws = wb.active
        ws.append(["a", "b", "c"])
        ws.column_dimensions["B"].width = 20

        sheet = WorkbookDecoder().decode(_save(wb), "widths.xlsx").sheets[0]

        assert sheet.col_widths == [80.0, 150.0, 80.0]

    def test_column_without_declared_width_uses_default(self) -> None:
        wb = Workbook()
        ws = wb.active
        ws.append(["a", "b"])
        ws.column_dimensions["B"].hidden = True
        content = _replace_cols(_save(wb), '<col hidden="1" min="2" max="2"/>')

        sheet = WorkbookDecoder().decode(content, "hidden.xlsx").sheets[0]

        assert sheet.col_widths == [80.0, 80.0]

    def test_chartsheet_keeps_its_position(self) -> None:
        wb = Workbook()
        data = wb.active
        data.title = "Data"
        data.append(["x", 1])
        data.append(["y", 2])
        chart = BarChart()
        chart.add_data(Reference(data, min_col=2, min_row=1, max_row=2))
        wb.create_chartsheet("Chart").add_chart(chart)
        wb.create_sheet("After").append(["foo"])

        workbook = WorkbookDecoder().decode(_save(wb), "charts.xlsx")

        assert workbook.sheet_names == ["Data", "Chart", "After"]
        chart_sheet = workbook.sheets[1]
        assert chart_sheet.headers == ["A"]
        assert chart_sheet.data == []
        assert chart_sheet.col_widths == [80.0]
        assert workbook.sheets[2].data == [["foo"]]

    def test_not_a_spreadsheet(self) -> None:
        with pytest.raises(DecodeError):
            WorkbookDecoder().decode(b"just some plain text\n", "notes.xlsx")

    def test_empty_content(self) -> None:
        with pytest.raises(UnsupportedFormatError):
            WorkbookDecoder().decode(b"", "empty.xlsx")

    def test_corrupt_package(self) -> None:
        with pytest.raises(DecodeError):
            WorkbookDecoder().decode(b"PK\x03\x04" + b"\x00" * 64, "broken.xlsx")


class TestDecodePath:
    def test_decode_path_uses_base_name(
        self, xlsx_file: Callable[..., Path]
    ) -> None:
        path = xlsx_file({"Sheet1": [["hello"]]}, name="report.xlsx")

        workbook = WorkbookDecoder().decode_path(path)

        assert workbook.file_name == "report.xlsx"
        assert workbook.sheets[0].data == [["hello"]]

    def test_decode_path_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ViewerFileNotFoundError) as exc_info:
            WorkbookDecoder().decode_path(tmp_path / "missing.xlsx")
        assert exc_info.value.error_code == ErrorCode.FILE_NOT_FOUND


def _biff_cell(ctype: int, value: Any) -> SimpleNamespace:
    return SimpleNamespace(ctype=ctype, value=value)


def _biff_book(cells: list[list[SimpleNamespace]], colinfo: dict[int, Any]) -> MagicMock:
    sheet = MagicMock()
    sheet.name = "Legacy"
    sheet.nrows = len(cells)
    sheet.ncols = max(len(row) for row in cells)
    sheet.cell.side_effect = lambda r, c: cells[r][c]
    sheet.colinfo_map = colinfo

    book = MagicMock()
    book.datemode = 0
    book.sheets.return_value = [sheet]
    return book


class TestDecodeBiff:
    @pytest.fixture
    def biff_detector(self) -> MagicMock:
        detector = MagicMock(spec=FormatDetector)
        detector.detect.return_value = SpreadsheetFormat.BIFF
        return detector

    def test_cell_values_and_widths(self, biff_detector: MagicMock) -> None:
        cells = [
            [
                _biff_cell(xlrd.XL_CELL_TEXT, "Name"),
                _biff_cell(xlrd.XL_CELL_NUMBER, 42.0),
                _biff_cell(xlrd.XL_CELL_NUMBER, 1.5),
            ],
            [
                _biff_cell(xlrd.XL_CELL_BOOLEAN, 1),
                _biff_cell(xlrd.XL_CELL_DATE, 45306.0),
                _biff_cell(xlrd.XL_CELL_ERROR, 0x07),
            ],
            [
                _biff_cell(xlrd.XL_CELL_EMPTY, ""),
                _biff_cell(xlrd.XL_CELL_BLANK, ""),
                _biff_cell(xlrd.XL_CELL_EMPTY, ""),
            ],
        ]
        book = _biff_book(cells, {1: SimpleNamespace(width=256 * 10)})

        with patch(
            "excel_quick_viewer.services.workbook_decoder.xlrd.open_workbook",
            return_value=book,
        ) as open_workbook:
            workbook = WorkbookDecoder(format_detector=biff_detector).decode(
                b"\xd0\xcf\x11\xe0", "legacy.xls"
            )

        open_workbook.assert_called_once()
        book.release_resources.assert_called_once()
        sheet = workbook.sheets[0]
        assert sheet.name == "Legacy"
        assert sheet.headers == ["A", "B", "C"]
        assert sheet.data == [
            ["Name", 42, 1.5],
            [True, "2024-01-15", "#DIV/0!"],
        ]
        assert sheet.col_widths == [80.0, 75.0, 80.0]

    def test_open_failure_is_decode_error(self, biff_detector: MagicMock) -> None:
        with patch(
            "excel_quick_viewer.services.workbook_decoder.xlrd.open_workbook",
            side_effect=xlrd.XLRDError("Unsupported format"),
        ):
            with pytest.raises(DecodeError) as exc_info:
                WorkbookDecoder(format_detector=biff_detector).decode(
                    b"\xd0\xcf\x11\xe0", "legacy.xls"
                )

        assert exc_info.value.error_code == ErrorCode.CORRUPT_WORKBOOK
        assert exc_info.value.details["file_name"] == "legacy.xls"
