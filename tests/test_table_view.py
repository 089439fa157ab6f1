"""Tests for the tabular view render contract."""

import pytest

from clientdesk.api.projection import PageState, SortState
from clientdesk.output.table_view import ColumnSpec, TableView

COLUMNS = [
    ColumnSpec("name", "Name", sortable=True),
    ColumnSpec("email", "Email"),
    ColumnSpec("city", "City", sortable=True),
]

ROWS = [
    {"id": "c1", "name": "Anna", "email": "anna@example.com", "city": "Rome"},
    {"id": "c2", "name": "Marco", "email": "marco@example.com", "city": None},
]


def test_render_marks_active_sort_column():
    table = TableView(COLUMNS).render(ROWS, PageState(1, 10, 2), SortState("name", "desc"))

    assert table.headers == ["Name ▼", "Email", "City"]
    assert table.rows == [["Anna", "anna@example.com", "Rome"], ["Marco", "marco@example.com", ""]]
    assert table.footer == "Page 1 of 1"
    assert not table.has_previous
    assert not table.has_next


def test_empty_page_shows_empty_message():
    view = TableView(COLUMNS, empty_message="Nothing here")
    table = view.render([], PageState(1, 10, 0))

    assert table.empty
    assert "Nothing here" in view.render_text([], PageState(1, 10, 0))


def test_duplicate_column_keys_rejected():
    with pytest.raises(ValueError, match="Duplicate column keys: name"):
        TableView([ColumnSpec("name", "Name"), ColumnSpec("name", "Again")])


def test_sort_request_only_for_sortable_columns():
    requested = []
    view = TableView(COLUMNS, on_sort_request=requested.append)

    view.request_sort("city")
    assert requested == ["city"]

    with pytest.raises(ValueError, match="not sortable"):
        view.request_sort("email")
    with pytest.raises(ValueError, match="Unknown column"):
        view.request_sort("phone")


def test_row_activation_reports_record():
    activated = []
    view = TableView(COLUMNS, on_row_activate=activated.append)
    view.render(ROWS, PageState(1, 10, 2))

    assert view.activate_row(1) is ROWS[1]
    assert activated == [ROWS[1]]
    with pytest.raises(IndexError):
        view.activate_row(2)


def test_page_requests_are_clamped():
    requested = []
    view = TableView(COLUMNS, on_page_request=requested.append)
    view.render(ROWS, PageState(3, 10, 25))

    assert view.next_page() == 3
    assert view.previous_page() == 2
    assert view.request_page(0) == 1
    assert view.request_page(99) == 3
    assert requested == [3, 2, 1, 3]


def test_render_text_navigation_and_density():
    view = TableView(COLUMNS)
    text = view.render_text(ROWS, PageState(2, 1, 2))

    assert text.splitlines()[0].startswith("Name")
    assert "---" in text
    assert text.splitlines()[-1] == "Page 2 of 2 [prev]"

    view.toggle_density()
    dense = view.render_text(ROWS, PageState(1, 1, 2))
    assert "---" not in dense
    assert dense.splitlines()[-1] == "Page 1 of 2 [next]"


def test_column_render_function_formats_cell():
    column = ColumnSpec("budget", "Budget", render=lambda value, record: f"{value:.2f}" if value is not None else "")
    assert column.cell({"budget": 1500}) == "1500.00"
    assert column.cell({}) == ""
