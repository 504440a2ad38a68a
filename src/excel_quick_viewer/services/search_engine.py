"""Full-text search over a decoded workbook.

The engine keeps a query, the ordered list of matching cells and a pointer
to the current match. Matches are recomputed whenever the query or the
workbook changes, and the pointer returns to the first match each time.
Listeners are notified after every recompute or pointer move so that a
view can follow the current match to its sheet.
"""

from __future__ import annotations

from collections.abc import Callable

from excel_quick_viewer.utils.logging import get_logger
from excel_quick_viewer.workbook import CellValue, ParsedWorkbook, SearchMatch

logger = get_logger(__name__)

SearchListener = Callable[["SearchEngine"], None]


def stringify_cell(value: CellValue) -> str:
    """Render a cell value the way the grid displays it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def find_matches(workbook: ParsedWorkbook | None, query: str) -> list[SearchMatch]:
    """Scan every sheet, row and column for cells containing ``query``.

    The comparison is case-insensitive and uses the query as typed; only
    the emptiness check looks at the stripped query.
    """
    if workbook is None or not query.strip():
        return []

    needle = query.lower()
    results: list[SearchMatch] = []
    for sheet_index, sheet in enumerate(workbook.sheets):
        for row_index, row in enumerate(sheet.data):
            for col_index, cell in enumerate(row):
                if cell is not None and needle in stringify_cell(cell).lower():
                    results.append(SearchMatch(sheet_index, row_index, col_index))
    return results


class SearchEngine:
    """Search state for the active workbook."""

    def __init__(self, workbook: ParsedWorkbook | None = None) -> None:
        self._workbook = workbook
        self._query = ""
        self._matches: list[SearchMatch] = []
        self._match_set: frozenset[SearchMatch] = frozenset()
        self._current_index = 0
        self._listeners: list[SearchListener] = []

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #

    @property
    def workbook(self) -> ParsedWorkbook | None:
        return self._workbook

    @property
    def query(self) -> str:
        return self._query

    @property
    def matches(self) -> list[SearchMatch]:
        return list(self._matches)

    @property
    def total_matches(self) -> int:
        return len(self._matches)

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current_match(self) -> SearchMatch | None:
        if not self._matches:
            return None
        return self._matches[self._current_index]

    def subscribe(self, listener: SearchListener) -> Callable[[], None]:
        """Register a change listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #

    def set_workbook(self, workbook: ParsedWorkbook | None) -> None:
        """Bind a new workbook and recompute matches for the current query."""
        self._workbook = workbook
        self._recompute()

    def set_query(self, query: str) -> None:
        """Replace the query and recompute matches."""
        self._query = query
        self._recompute()

    def go_to_next(self) -> None:
        """Move to the next match, wrapping from the last to the first."""
        if not self._matches:
            return
        self._current_index = (self._current_index + 1) % len(self._matches)
        self._notify()

    def go_to_prev(self) -> None:
        """Move to the previous match, wrapping from the first to the last."""
        if not self._matches:
            return
        self._current_index = (self._current_index - 1) % len(self._matches)
        self._notify()

    # ------------------------------------------------------------------ #
    # Point queries
    # ------------------------------------------------------------------ #

    def is_match(self, sheet_index: int, row: int, col: int) -> bool:
        return SearchMatch(sheet_index, row, col) in self._match_set

    def is_current_match(self, sheet_index: int, row: int, col: int) -> bool:
        current = self.current_match
        return current is not None and current == SearchMatch(sheet_index, row, col)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _recompute(self) -> None:
        self._matches = find_matches(self._workbook, self._query)
        self._match_set = frozenset(self._matches)
        self._current_index = 0
        if self._query.strip():
            logger.debug(
                "Search recomputed",
                query=self._query,
                matches=len(self._matches),
            )
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
