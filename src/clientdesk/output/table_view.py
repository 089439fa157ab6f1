"""Tabular view: renders a projected page and emits user interactions.

The view holds no list state of its own. Sorting, paging and row activation are
reported to the owning controller through callbacks; the controller updates its
state, recomputes the projection and renders again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Sequence

from ..api.projection import PageState, SortState, total_pages

Record = Mapping[str, Any]

SORT_ASC_MARK = "▲"
SORT_DESC_MARK = "▼"


@dataclass(frozen=True)
class ColumnSpec:
    key: str
    header: str
    sortable: bool = False
    render: Optional[Callable[[Any, Record], Any]] = None

    def cell(self, record: Record) -> str:
        value = record.get(self.key)
        if self.render is not None:
            value = self.render(value, record)
        return "" if value is None else str(value)


@dataclass
class RenderedTable:
    headers: List[str]
    rows: List[List[str]] = field(default_factory=list)
    empty: bool = False
    empty_message: str = "No results"
    footer: Optional[str] = None
    has_previous: bool = False
    has_next: bool = False


class TableView:
    """Render contract for one page of records against a column set."""

    def __init__(
        self,
        columns: Sequence[ColumnSpec],
        *,
        on_sort_request: Optional[Callable[[str], None]] = None,
        on_row_activate: Optional[Callable[[Record], None]] = None,
        on_page_request: Optional[Callable[[int], None]] = None,
        dense: bool = False,
        empty_message: str = "No results",
    ):
        keys = [c.key for c in columns]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            raise ValueError(f"Duplicate column keys: {', '.join(duplicates)}")
        self.columns = list(columns)
        self.on_sort_request = on_sort_request
        self.on_row_activate = on_row_activate
        self.on_page_request = on_page_request
        self.dense = dense
        self.empty_message = empty_message
        self._items: List[Record] = []
        self._page_state: Optional[PageState] = None

    def _column(self, key: str) -> ColumnSpec:
        for column in self.columns:
            if column.key == key:
                return column
        raise ValueError(f"Unknown column: {key}")

    def toggle_density(self) -> None:
        self.dense = not self.dense

    def request_sort(self, column_key: str) -> None:
        """Header activation; only sortable columns emit a sort request."""
        column = self._column(column_key)
        if not column.sortable:
            raise ValueError(f"Column is not sortable: {column_key}")
        if self.on_sort_request:
            self.on_sort_request(column_key)

    def activate_row(self, index: int) -> Record:
        """Row interaction on the last rendered page (0-based position)."""
        if not 0 <= index < len(self._items):
            raise IndexError(f"No row at position {index}")
        record = self._items[index]
        if self.on_row_activate:
            self.on_row_activate(record)
        return record

    def request_page(self, target: int) -> int:
        """Clamp ``target`` into [1, total_pages] and emit it."""
        state = self._page_state
        last = total_pages(state.total_count, state.page_size) if state else 1
        clamped = min(max(1, target), last)
        if self.on_page_request:
            self.on_page_request(clamped)
        return clamped

    def next_page(self) -> int:
        current = self._page_state.current_page if self._page_state else 1
        return self.request_page(current + 1)

    def previous_page(self) -> int:
        current = self._page_state.current_page if self._page_state else 1
        return self.request_page(current - 1)

    def _header_label(self, column: ColumnSpec, sort: Optional[SortState]) -> str:
        if sort is not None and column.sortable and sort.key == column.key:
            return f"{column.header} {SORT_DESC_MARK if sort.descending else SORT_ASC_MARK}"
        return column.header

    def render(
        self,
        items: Sequence[Record],
        page_state: Optional[PageState] = None,
        sort: Optional[SortState] = None,
    ) -> RenderedTable:
        self._items = list(items)
        self._page_state = page_state

        table = RenderedTable(
            headers=[self._header_label(c, sort) for c in self.columns],
            rows=[[c.cell(record) for c in self.columns] for record in self._items],
            empty=not self._items,
            empty_message=self.empty_message,
        )
        if page_state is not None:
            table.footer = f"Page {page_state.current_page} of {page_state.total_pages}"
            table.has_previous = page_state.current_page > 1
            table.has_next = page_state.current_page < page_state.total_pages
        return table

    def render_text(
        self,
        items: Sequence[Record],
        page_state: Optional[PageState] = None,
        sort: Optional[SortState] = None,
    ) -> str:
        """Fixed-width text rendering for terminals."""
        table = self.render(items, page_state, sort)
        widths = [len(h) for h in table.headers]
        for row in table.rows:
            for i, cell in enumerate(row):
                widths[i] = max(widths[i], len(cell))

        def line(cells: Sequence[str]) -> str:
            return "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(cells)).rstrip()

        total_width = sum(widths) + 2 * (len(widths) - 1)
        lines = [line(table.headers)]
        if not self.dense:
            lines.append("-" * total_width)
        if table.empty:
            lines.append(table.empty_message.center(total_width).rstrip())
        else:
            lines.extend(line(row) for row in table.rows)
        if table.footer:
            if not self.dense:
                lines.append("-" * total_width)
            nav = []
            if table.has_previous:
                nav.append("[prev]")
            if table.has_next:
                nav.append("[next]")
            lines.append(" ".join([table.footer, *nav]))
        return "\n".join(lines)
