"""Summary API: KPI figures for the dashboard header."""

from sqlalchemy.orm import Session

from ..database.client_repo import list_client_rows
from ..database.project_repo import count_projects_by_status, sum_project_budgets
from .models import DashboardSummary


def get_summary(session: Session) -> DashboardSummary:
    """
    Compute dashboard KPIs.

    Args:
        session: SQLAlchemy session

    Returns:
        DashboardSummary with client/project counts, active projects and total budget
    """
    by_status = count_projects_by_status(session)
    return DashboardSummary(
        client_count=len(list_client_rows(session)),
        project_count=sum(by_status.values()),
        active_project_count=by_status.get("ACTIVE", 0),
        total_budget=sum_project_budgets(session),
        projects_by_status=dict(sorted(by_status.items())),
    )
