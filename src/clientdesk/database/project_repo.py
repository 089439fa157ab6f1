"""Repository for projects table operations."""

from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..utils.id_generator import new_project_id
from ..utils.logging import get_logger
from ..utils.time import utc_now_z
from .schema import Project

logger = get_logger(__name__)


def insert_project_row(
    session: Session,
    *,
    title: str,
    client_id: str,
    description: Optional[str] = None,
    status: str = "ACTIVE",
    budget: Optional[float] = None,
    project_id: Optional[str] = None,
    created_at_utc: Optional[str] = None,
) -> Project:
    """
    Insert a new project row (caller commits).

    Args:
        session: SQLAlchemy session
        title: Project title (required)
        client_id: Owning client ID (required)
        description: Optional free-text description
        status: Lifecycle status (default ACTIVE)
        budget: Optional budget amount
        project_id: Explicit ID (generated when omitted)
        created_at_utc: Explicit ISO 8601 timestamp (now when omitted)

    Returns:
        Project row
    """
    if not title or not client_id:
        raise ValueError("Project requires title and client_id")

    project_row = Project(
        project_id=project_id or new_project_id(),
        title=title,
        description=description,
        client_id=client_id,
        status=status,
        budget=budget,
        created_at_utc=created_at_utc or utc_now_z(),
    )
    session.add(project_row)
    logger.debug(f"Created new project: {project_row.project_id} for {client_id}")
    return project_row


def find_project_by_id(session: Session, project_id: str) -> Optional[Project]:
    """Get project by ID."""
    return session.query(Project).filter(Project.project_id == project_id).first()


def list_project_rows(session: Session, client_id: Optional[str] = None) -> List[Project]:
    """All projects (optionally for one client), newest first."""
    query = session.query(Project)
    if client_id:
        query = query.filter(Project.client_id == client_id)
    return query.order_by(Project.created_at_utc.desc(), Project.project_id.desc()).all()


def count_projects_by_status(session: Session) -> Dict[str, int]:
    rows = session.query(Project.status, func.count(Project.project_id)).group_by(Project.status).all()
    return {status: count for status, count in rows}


def sum_project_budgets(session: Session) -> float:
    total = session.query(func.sum(Project.budget)).scalar()
    return float(total or 0.0)


def delete_project_row(session: Session, project_row: Project) -> None:
    """Delete a project row (caller commits)."""
    session.delete(project_row)
    logger.debug(f"Deleted project: {project_row.project_id}")
