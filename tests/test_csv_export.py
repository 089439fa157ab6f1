"""Tests for CSV encoding and file export."""

import csv
from io import StringIO

import pytest

import clientdesk.api.export as export_mod
from clientdesk.api.export import (
    BOM,
    default_delimiter,
    download_csv,
    export_clients_rows,
    export_projects_rows,
    to_csv,
    to_csv_value,
)


def test_fields_with_delimiter_and_quotes_are_quoted():
    rows = [{"id": 1, "name": "Bob,Jr"}, {"id": 2, "name": 'Al"ice'}]

    text = to_csv(rows, ",")

    assert text == 'id,name\n1,"Bob,Jr"\n2,"Al""ice"'


def test_header_follows_first_row_and_missing_keys_are_empty():
    rows = [{"b": "x", "a": "y"}, {"a": "only-a"}, {"b": "z", "a": None, "extra": "ignored"}]

    lines = to_csv(rows, ",").split("\n")

    assert lines[0] == "b,a"
    assert lines[1] == "x,y"
    assert lines[2] == ",only-a"
    assert lines[3] == "z,"


def test_semicolon_delimiter_only_quotes_semicolons():
    rows = [{"name": "Bob,Jr", "city": "Rome;Lazio"}]
    assert to_csv(rows, ";") == 'name;city\nBob,Jr;"Rome;Lazio"'


def test_newlines_inside_fields_are_quoted():
    rows = [{"id": 1, "description": "line one\nline two"}]
    assert to_csv(rows, ",") == 'id,description\n1,"line one\nline two"'


def test_empty_rows_encode_to_empty_string():
    assert to_csv([], ",") == ""


def test_to_csv_value_renders_none_as_empty():
    assert to_csv_value(None) == ""
    assert to_csv_value(0) == "0"
    assert to_csv_value(12.5) == "12.5"


def test_default_delimiter_depends_on_decimal_point():
    assert default_delimiter(",") == ";"
    assert default_delimiter(".") == ","
    assert default_delimiter() in (",", ";")


def test_standard_reader_recovers_the_rows():
    rows = [
        {"id": "1", "name": "Bob,Jr", "note": 'said "hi"'},
        {"id": "2", "name": "Al\nice", "note": ""},
    ]

    parsed = list(csv.reader(StringIO(to_csv(rows, ",")), delimiter=","))

    assert parsed[0] == ["id", "name", "note"]
    assert parsed[1:] == [[r["id"], r["name"], r["note"]] for r in rows]


def test_download_csv_writes_bom_prefixed_file(tmp_path):
    rows = [{"id": 1, "name": "Bob,Jr"}]

    path = download_csv("clients.csv", rows, delimiter=",", out_dir=tmp_path)

    assert path == tmp_path / "clients.csv"
    content = path.read_text(encoding="utf-8")
    assert content.startswith(BOM)
    assert content[len(BOM):] == 'id,name\n1,"Bob,Jr"'
    # no temporary files left behind
    assert [p.name for p in tmp_path.iterdir()] == ["clients.csv"]


def test_download_csv_appends_extension_and_overwrites(tmp_path):
    download_csv("projects", [{"id": 1}], delimiter=",", out_dir=tmp_path)
    path = download_csv("projects", [{"id": 2}], delimiter=",", out_dir=tmp_path)

    assert path.name == "projects.csv"
    assert path.read_text(encoding="utf-8-sig") == "id\n2"


def test_export_rows_use_fixed_column_order():
    clients = [{"id": "c1", "name": "Anna", "email": "a@x.it", "company": "Acme", "city": None, "address": "Via Roma"}]
    projects = [{"id": "p1", "title": "Site", "client_id": "c1", "status": "ACTIVE", "budget": 0.0}]

    client_row = export_clients_rows(clients)[0]
    project_row = export_projects_rows(projects)[0]

    assert list(client_row) == ["id", "name", "email", "company", "city", "phone", "created_at"]
    assert client_row["city"] == ""
    assert "address" not in client_row
    assert list(project_row) == ["id", "title", "description", "client_id", "created_at", "status", "budget"]
    assert project_row["budget"] == 0.0


def test_default_delimiter_reads_the_active_locale(monkeypatch):
    monkeypatch.setattr(export_mod.locale, "localeconv", lambda: {"decimal_point": ","})
    assert default_delimiter() == ";"
    assert to_csv([{"a": 1, "b": 2}]) == "a;b\n1;2"

    monkeypatch.setattr(export_mod.locale, "localeconv", lambda: {"decimal_point": "."})
    assert default_delimiter() == ","


def test_multi_character_delimiter_is_rejected():
    with pytest.raises(ValueError, match="single character"):
        to_csv([{"id": 1}], ";;")
