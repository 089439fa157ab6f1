"""Projects view controller."""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..api.models import DataBundle, ProjectFields
from ..api.projection import SortState
from ..api.export import export_projects_rows
from ..api.projects_api import (
    project_searchable_text,
    resolve_client_filter,
    validate_project_fields,
)
from ..output.table_view import ColumnSpec
from .list_controller import ListController, Record

MISSING_CLIENT = "—"


class ProjectsController(ListController):
    """Projects list; also keeps the clients for name lookup and the client filter."""

    filter_field = "client_id"
    default_sort = SortState("title")
    export_filename = "projects.csv"

    clients: Tuple[Dict[str, Any], ...] = ()

    def searchable_text(self, record: Record) -> str:
        return project_searchable_text(record)

    def client_name(self, client_id: Any, _record: Optional[Record] = None) -> str:
        for client in self.clients:
            if client.get("id") == client_id:
                return client.get("name") or MISSING_CLIENT
        return MISSING_CLIENT

    def columns(self) -> List[ColumnSpec]:
        return [
            ColumnSpec("title", "Title", sortable=True),
            ColumnSpec("description", "Description"),
            ColumnSpec("client_id", "Client", render=self.client_name),
            ColumnSpec("status", "Status", sortable=True),
            ColumnSpec("budget", "Budget", render=lambda v, _r: "" if v is None else f"{v:,.2f}"),
        ]

    def export_rows(self, records: Sequence[Record]) -> List[Dict[str, Any]]:
        return export_projects_rows(records)

    def _collection_from(self, bundle: DataBundle) -> List[Dict[str, Any]]:
        return [p.model_dump() for p in bundle.projects]

    def _apply_bundle(self, bundle: DataBundle) -> None:
        self.clients = tuple(c.model_dump() for c in bundle.clients)
        super()._apply_bundle(bundle)

    def client_options(self) -> List[Tuple[str, str]]:
        """(id, name) pairs for the client filter, in collection order."""
        return [(c["id"], c.get("name") or MISSING_CLIENT) for c in self.clients]

    def apply_prefilter(self, client_id: Optional[str] = None, client_name: Optional[str] = None) -> bool:
        """
        Pre-select the client filter from navigation parameters.

        An ID applies directly; a name applies only once the clients are loaded
        and one of them matches exactly. Returns True if the filter changed.
        """
        resolved = resolve_client_filter(self.clients, client_id=client_id, client_name=client_name)
        if not resolved:
            return False
        self.set_filter(resolved)
        return True

    def _validate(self, fields: Mapping[str, Any]) -> ProjectFields:
        return validate_project_fields(fields)

    def _backend_create(self, fields: ProjectFields):
        return self.backend.create_project(fields.model_dump())

    def _backend_delete(self, record_id: str) -> None:
        self.backend.delete_project(record_id)
