"""Clients API: canonical query/mutation surface for client data."""

from typing import TYPE_CHECKING, Any, List, Mapping, Optional

from sqlalchemy.orm import Session

from ..database.client_repo import (
    count_projects_for_client,
    delete_client_row,
    find_client_by_id,
    insert_client_row,
    list_client_rows,
)
from ..database.sqlite_client import StoreError, commit_or_rollback
from ..utils.logging import get_logger
from .errors import ApiError, FormValidationError
from .models import ClientFields, ClientRecord

if TYPE_CHECKING:
    from ..database.schema import Client

logger = get_logger(__name__)

REQUIRED_CLIENT_FIELDS = ("name", "email", "company")


def client_searchable_text(record: Mapping[str, Any]) -> str:
    """Name, email and company joined for free-text search."""
    return " ".join(str(record.get(k) or "") for k in ("name", "email", "company"))


def _client_row_to_record(client_row: "Client") -> ClientRecord:
    return ClientRecord(
        id=client_row.client_id,
        name=client_row.name,
        email=client_row.email,
        company=client_row.company,
        city=client_row.city,
        phone=client_row.phone,
        address=client_row.address,
        created_at=client_row.created_at_utc,
    )


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def validate_client_fields(fields: Mapping[str, Any]) -> ClientFields:
    """
    Trim form input and check required fields.

    Raises:
        FormValidationError: If name, email or company is missing or blank
    """
    cleaned = {key: _clean(fields.get(key)) for key in ClientFields.model_fields}
    missing = [key for key in REQUIRED_CLIENT_FIELDS if not cleaned.get(key)]
    if missing:
        raise FormValidationError("Name, email and company are required", fields=missing)
    return ClientFields(**cleaned)


def list_clients(session: Session) -> List[ClientRecord]:
    """All clients, newest first."""
    return [_client_row_to_record(row) for row in list_client_rows(session)]


def get_client(session: Session, client_id: str) -> Optional[ClientRecord]:
    client_row = find_client_by_id(session, client_id)
    if not client_row:
        return None
    return _client_row_to_record(client_row)


def create_client(session: Session, fields: Mapping[str, Any] | ClientFields) -> ClientRecord:
    """
    Create a client and commit.

    Args:
        session: SQLAlchemy session
        fields: Raw form fields or already validated ClientFields

    Returns:
        The created ClientRecord

    Raises:
        FormValidationError: Required fields missing (nothing is written)
        ApiError: The write failed
    """
    if not isinstance(fields, ClientFields):
        fields = validate_client_fields(fields)
    client_row = insert_client_row(session, **fields.model_dump())
    try:
        commit_or_rollback(session)
    except StoreError as exc:
        logger.warning("Failed to create client %s: %s", fields.email, exc)
        raise ApiError(f"Could not create client: {exc}") from exc
    return _client_row_to_record(client_row)


def delete_client(session: Session, client_id: str) -> None:
    """
    Delete a client and commit.

    Raises:
        ApiError: Unknown client, client still owns projects, or write failure
    """
    client_row = find_client_by_id(session, client_id)
    if not client_row:
        raise ApiError("Client not found", status_code=404)
    if count_projects_for_client(session, client_id) > 0:
        raise ApiError("Client has associated projects", status_code=409)
    delete_client_row(session, client_row)
    try:
        commit_or_rollback(session)
    except StoreError as exc:
        logger.warning("Failed to delete client %s: %s", client_id, exc)
        raise ApiError(f"Could not delete client: {exc}") from exc
