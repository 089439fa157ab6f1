"""Pydantic models exchanged by the API layer.

Records leave the API as these models; controllers and the projection work on
their ``model_dump()`` mappings so the list pipeline stays entity-agnostic.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ClientRecord(BaseModel):
    id: str
    name: str
    email: str
    company: str
    city: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[str] = None  # ISO 8601 UTC


class ProjectRecord(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    client_id: str
    status: str = "ACTIVE"
    budget: Optional[float] = None
    created_at: Optional[str] = None  # ISO 8601 UTC


class ClientFields(BaseModel):
    """Validated input for creating a client (strings already trimmed)."""
    name: str
    email: str
    company: str
    city: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class ProjectFields(BaseModel):
    """Validated input for creating a project (strings already trimmed)."""
    title: str
    client_id: str
    description: Optional[str] = None
    status: str = "ACTIVE"
    budget: Optional[float] = None


class DataBundle(BaseModel):
    """Result of the bulk load backing both list views."""
    clients: List[ClientRecord] = Field(default_factory=list)
    projects: List[ProjectRecord] = Field(default_factory=list)


class DashboardSummary(BaseModel):
    """KPI figures shown above the lists."""
    client_count: int = 0
    project_count: int = 0
    active_project_count: int = 0
    total_budget: float = 0.0
    projects_by_status: Dict[str, int] = Field(default_factory=dict)
