"""Export API: CSV/JSON export of client and project lists."""

import csv
import json
import locale
import os
import tempfile
from io import StringIO
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from ..utils.logging import get_logger
from ..utils.time import utc_now_z
from .clients_api import client_searchable_text, list_clients
from .projection import FieldFilter, SortState, filter_and_sort
from .projects_api import list_projects, project_searchable_text

logger = get_logger(__name__)

BOM = "\ufeff"

CLIENT_EXPORT_COLUMNS = ["id", "name", "email", "company", "city", "phone", "created_at"]
PROJECT_EXPORT_COLUMNS = ["id", "title", "description", "client_id", "created_at", "status", "budget"]


def default_delimiter(decimal_point: Optional[str] = None) -> str:
    """
    Pick the CSV delimiter spreadsheet tools expect for a locale.

    Locales that write decimals with a comma expect semicolon-separated
    files. Pass ``decimal_point`` explicitly to bypass the locale probe.
    """
    if decimal_point is None:
        try:
            decimal_point = locale.localeconv().get("decimal_point") or "."
        except locale.Error:
            decimal_point = "."
    return ";" if "," in decimal_point else ","


def to_csv_value(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def to_csv(rows: Sequence[Mapping[str, Any]], delimiter: Optional[str] = None) -> str:
    """
    Encode rows as CSV text.

    The header is the key order of the first row; every row is mapped by
    header name so a missing key becomes an empty cell. Fields containing the
    delimiter, a double quote or a newline are quoted with internal quotes
    doubled. Lines are joined with ``\\n``. Empty input encodes to "".
    """
    if delimiter and len(delimiter) != 1:
        raise ValueError(f"CSV delimiter must be a single character, got {delimiter!r}")
    if not rows:
        return ""
    delimiter = delimiter or default_delimiter()
    headers = list(rows[0].keys())

    output_buffer = StringIO()
    writer = csv.writer(
        output_buffer,
        delimiter=delimiter,
        quotechar='"',
        quoting=csv.QUOTE_MINIMAL,
        lineterminator="\n",
    )
    writer.writerow(headers)
    for row in rows:
        writer.writerow([to_csv_value(row.get(h)) for h in headers])
    return output_buffer.getvalue().rstrip("\n")


def download_csv(
    filename: str,
    rows: Sequence[Mapping[str, Any]],
    delimiter: Optional[str] = None,
    out_dir: Optional[Path] = None,
) -> Path:
    """
    Write rows as a BOM-prefixed UTF-8 CSV file and return its path.

    The file is written to a temporary handle in the target directory and
    renamed into place, so readers never observe a partial export.
    """
    text = to_csv(rows, delimiter)
    return save_csv_text(filename, text, out_dir)


def save_csv_text(filename: str, text: str, out_dir: Optional[Path] = None) -> Path:
    target_dir = Path(out_dir) if out_dir else Path.cwd()
    target_dir.mkdir(parents=True, exist_ok=True)
    if not filename.lower().endswith(".csv"):
        filename = f"{filename}.csv"
    target = target_dir / filename

    fd, tmp_name = tempfile.mkstemp(prefix=".export-", suffix=".csv", dir=target_dir)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(BOM + text)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info("Exported %s", target)
    return target


def export_clients_rows(clients: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Shape client records into the export column set."""
    return [
        {
            "id": c.get("id"),
            "name": c.get("name"),
            "email": c.get("email"),
            "company": c.get("company"),
            "city": c.get("city") or "",
            "phone": c.get("phone") or "",
            "created_at": c.get("created_at") or "",
        }
        for c in clients
    ]


def export_projects_rows(projects: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Shape project records into the export column set."""
    return [
        {
            "id": p.get("id"),
            "title": p.get("title"),
            "description": p.get("description") or "",
            "client_id": p.get("client_id"),
            "created_at": p.get("created_at") or "",
            "status": p.get("status") or "",
            "budget": "" if p.get("budget") is None else p.get("budget"),
        }
        for p in projects
    ]


def _render(
    rows: List[Dict[str, Any]],
    filename: str,
    format: str,
    out: Path | None,
    delimiter: Optional[str],
) -> str:
    if format == "json":
        export_data = {
            "export_schema_version": "1",
            "exported_at_utc": utc_now_z(),
            "data": rows,
        }
        output = json.dumps(export_data, indent=2, sort_keys=True)
        if out:
            if out.is_dir():
                out = out / Path(filename).with_suffix(".json").name
            out.write_text(output, encoding="utf-8")
            return f"Exported to {out}"
        return output
    elif format == "csv":
        if out:
            if out.is_dir():
                path = download_csv(filename, rows, delimiter=delimiter, out_dir=out)
            else:
                path = download_csv(out.name or filename, rows, delimiter=delimiter, out_dir=out.parent)
            return f"Exported to {path}"
        return to_csv(rows, delimiter)
    else:
        raise ValueError(f"Unsupported format: {format}")


def export_clients(
    session: Session,
    query: str | None = None,
    city: str | None = None,
    sort: SortState | None = None,
    format: str = "csv",
    out: Path | None = None,
    delimiter: str | None = None,
) -> str:
    """
    Export the full filtered client list (no pagination).

    Args:
        session: SQLAlchemy session
        query: Free-text query over name/email/company
        city: Exact city filter or None for all
        sort: Sort state (defaults to name ascending)
        format: Export format ("csv" or "json")
        out: Output file or existing directory (if None, returns as string)
        delimiter: CSV delimiter (None picks the locale default)

    Returns:
        Exported data as string (if out is None) or a confirmation line
    """
    records = [c.model_dump() for c in list_clients(session)]
    filtered = filter_and_sort(
        records,
        query=query,
        filters=[FieldFilter("city", city)],
        sort=sort or SortState("name"),
        searchable=client_searchable_text,
    )
    return _render(export_clients_rows(filtered), "clients.csv", format, out, delimiter)


def export_projects(
    session: Session,
    query: str | None = None,
    client_id: str | None = None,
    sort: SortState | None = None,
    format: str = "csv",
    out: Path | None = None,
    delimiter: str | None = None,
) -> str:
    """
    Export the full filtered project list (no pagination).

    Args:
        session: SQLAlchemy session
        query: Free-text query over title/description
        client_id: Exact client filter or None for all
        sort: Sort state (defaults to title ascending)
        format: Export format ("csv" or "json")
        out: Output file or existing directory (if None, returns as string)
        delimiter: CSV delimiter (None picks the locale default)

    Returns:
        Exported data as string (if out is None) or a confirmation line
    """
    records = [p.model_dump() for p in list_projects(session)]
    filtered = filter_and_sort(
        records,
        query=query,
        filters=[FieldFilter("client_id", client_id)],
        sort=sort or SortState("title"),
        searchable=project_searchable_text,
    )
    return _render(export_projects_rows(filtered), "projects.csv", format, out, delimiter)
