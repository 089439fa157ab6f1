"""Repository for clients table operations."""

from typing import List, Optional

from sqlalchemy.orm import Session

from ..utils.id_generator import new_client_id
from ..utils.logging import get_logger
from ..utils.time import utc_now_z
from .schema import Client, Project

logger = get_logger(__name__)


def insert_client_row(
    session: Session,
    *,
    name: str,
    email: str,
    company: str,
    city: Optional[str] = None,
    phone: Optional[str] = None,
    address: Optional[str] = None,
    client_id: Optional[str] = None,
    created_at_utc: Optional[str] = None,
) -> Client:
    """
    Insert a new client row (caller commits).

    Args:
        session: SQLAlchemy session
        name: Display name (required)
        email: Contact email (required)
        company: Company name (required)
        city: Optional city
        phone: Optional phone number
        address: Optional postal address
        client_id: Explicit ID (generated when omitted)
        created_at_utc: Explicit ISO 8601 timestamp (now when omitted)

    Returns:
        Client row
    """
    if not name or not email or not company:
        raise ValueError("Client requires name, email and company")

    client_row = Client(
        client_id=client_id or new_client_id(),
        name=name,
        email=email,
        company=company,
        city=city,
        phone=phone,
        address=address,
        created_at_utc=created_at_utc or utc_now_z(),
    )
    session.add(client_row)
    logger.debug(f"Created new client: {client_row.client_id}")
    return client_row


def find_client_by_id(session: Session, client_id: str) -> Optional[Client]:
    """Get client by ID."""
    return session.query(Client).filter(Client.client_id == client_id).first()


def list_client_rows(session: Session) -> List[Client]:
    """All clients, newest first (matches the prepend order of the views)."""
    return (
        session.query(Client)
        .order_by(Client.created_at_utc.desc(), Client.client_id.desc())
        .all()
    )


def count_projects_for_client(session: Session, client_id: str) -> int:
    return session.query(Project).filter(Project.client_id == client_id).count()


def delete_client_row(session: Session, client_row: Client) -> None:
    """Delete a client row (caller commits)."""
    session.delete(client_row)
    logger.debug(f"Deleted client: {client_row.client_id}")
