from __future__ import annotations

import io
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook

from excel_quick_viewer.services.settings_store import JsonFileStorage, SettingsStore
from excel_quick_viewer.utils.logging import clear_context
from excel_quick_viewer.workbook import ParsedWorkbook, SheetData

SheetRows = dict[str, list[list[Any]]]


def build_xlsx(sheets: SheetRows) -> bytes:
    """Serialize ``{sheet name: rows}`` into workbook bytes."""
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(name)
        for row in rows:
            ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture(autouse=True)
def _clean_log_context() -> None:
    clear_context()


@pytest.fixture
def xlsx_bytes() -> Callable[[SheetRows], bytes]:
    return build_xlsx


@pytest.fixture
def xlsx_file(tmp_path: Path) -> Callable[..., Path]:
    """Write a workbook to disk and return its path."""

    def _write(sheets: SheetRows, name: str = "book.xlsx") -> Path:
        path = tmp_path / name
        path.write_bytes(build_xlsx(sheets))
        return path

    return _write


@pytest.fixture
def two_sheet_workbook() -> ParsedWorkbook:
    """Sheet 1 holds "Foo" and 42, sheet 2 holds "foobar"."""
    return ParsedWorkbook(
        file_name="two.xlsx",
        sheets=[
            SheetData(
                name="Sheet1",
                headers=["A", "B"],
                data=[["Foo", 42]],
                col_widths=[80.0, 80.0],
            ),
            SheetData(
                name="Sheet2",
                headers=["A"],
                data=[["foobar"]],
                col_widths=[80.0],
            ),
        ],
    )


@pytest.fixture
def settings_path(tmp_path: Path) -> Path:
    return tmp_path / "config" / "settings.json"


@pytest.fixture
def settings_store(settings_path: Path) -> SettingsStore:
    return SettingsStore(storage=JsonFileStorage(settings_path), key="test-settings-v1")
