"""Projects API: canonical query/mutation surface for project data."""

from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from ..database.client_repo import find_client_by_id
from ..database.project_repo import (
    delete_project_row,
    find_project_by_id,
    insert_project_row,
    list_project_rows,
)
from ..database.sqlite_client import StoreError, commit_or_rollback
from ..utils.logging import get_logger
from .errors import ApiError, FormValidationError
from .models import ProjectFields, ProjectRecord

if TYPE_CHECKING:
    from ..database.schema import Project

logger = get_logger(__name__)

PROJECT_STATUSES = ("ACTIVE", "ON_HOLD", "COMPLETED")


def project_searchable_text(record: Mapping[str, Any]) -> str:
    """Title and description joined for free-text search."""
    return " ".join(str(record.get(k) or "") for k in ("title", "description"))


def _project_row_to_record(project_row: "Project") -> ProjectRecord:
    return ProjectRecord(
        id=project_row.project_id,
        title=project_row.title,
        description=project_row.description,
        client_id=project_row.client_id,
        status=project_row.status or "ACTIVE",
        budget=project_row.budget,
        created_at=project_row.created_at_utc,
    )


def validate_project_fields(fields: Mapping[str, Any]) -> ProjectFields:
    """
    Trim form input and check required fields.

    Raises:
        FormValidationError: Title or client missing, bad status or budget
    """
    title = str(fields.get("title") or "").strip()
    client_id = str(fields.get("client_id") or "").strip()
    missing = [name for name, value in (("title", title), ("client_id", client_id)) if not value]
    if missing:
        raise FormValidationError("Title and client are required", fields=missing)

    status = str(fields.get("status") or "ACTIVE").strip().upper()
    if status not in PROJECT_STATUSES:
        raise FormValidationError(f"Unknown status: {status}", fields=["status"])

    budget = fields.get("budget")
    if budget in (None, ""):
        budget = None
    else:
        try:
            budget = float(budget)
        except (TypeError, ValueError):
            raise FormValidationError("Budget must be a number", fields=["budget"])

    description = str(fields.get("description") or "").strip() or None
    return ProjectFields(
        title=title,
        client_id=client_id,
        description=description,
        status=status,
        budget=budget,
    )


def resolve_client_filter(
    clients: Sequence[Mapping[str, Any]],
    client_id: Optional[str] = None,
    client_name: Optional[str] = None,
) -> Optional[str]:
    """
    Turn a client pre-filter (by ID or by exact name) into a client ID.

    An explicit ID wins; a name that matches no client yields None.
    """
    if client_id:
        return client_id
    if client_name:
        for client in clients:
            if client.get("name") == client_name:
                return client.get("id")
    return None


def list_projects(session: Session, client_id: Optional[str] = None) -> List[ProjectRecord]:
    """All projects (optionally for one client), newest first."""
    return [_project_row_to_record(row) for row in list_project_rows(session, client_id=client_id)]


def create_project(session: Session, fields: Mapping[str, Any] | ProjectFields) -> ProjectRecord:
    """
    Create a project for an existing client and commit.

    Raises:
        FormValidationError: Required fields missing (nothing is written)
        ApiError: Unknown client or write failure
    """
    if not isinstance(fields, ProjectFields):
        fields = validate_project_fields(fields)
    if not find_client_by_id(session, fields.client_id):
        raise ApiError("Client not found", status_code=404)
    project_row = insert_project_row(session, **fields.model_dump())
    try:
        commit_or_rollback(session)
    except StoreError as exc:
        logger.warning("Failed to create project %r: %s", fields.title, exc)
        raise ApiError(f"Could not create project: {exc}") from exc
    return _project_row_to_record(project_row)


def delete_project(session: Session, project_id: str) -> None:
    """
    Delete a project and commit.

    Raises:
        ApiError: Unknown project or write failure
    """
    project_row = find_project_by_id(session, project_id)
    if not project_row:
        raise ApiError("Project not found", status_code=404)
    delete_project_row(session, project_row)
    try:
        commit_or_rollback(session)
    except StoreError as exc:
        logger.warning("Failed to delete project %s: %s", project_id, exc)
        raise ApiError(f"Could not delete project: {exc}") from exc
