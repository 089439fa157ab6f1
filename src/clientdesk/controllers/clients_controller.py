"""Clients view controller."""

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..api.backend import ApiBackend
from ..api.clients_api import client_searchable_text, validate_client_fields
from ..api.export import export_clients_rows
from ..api.models import ClientFields, DataBundle
from ..api.projection import SortState
from ..notify.email import EmailNotifier, SendResult
from ..output.table_view import ColumnSpec
from .list_controller import ListController, Record


class ClientsController(ListController):
    filter_field = "city"
    default_sort = SortState("name")
    export_filename = "clients.csv"

    def __init__(
        self,
        backend: ApiBackend,
        *,
        page_size: int = 10,
        on_row_activate: Optional[Callable[[Record], None]] = None,
        notifier: Optional[EmailNotifier] = None,
    ):
        super().__init__(backend, page_size=page_size, on_row_activate=on_row_activate)
        self.notifier = notifier
        self.last_notification: Optional[SendResult] = None

    def searchable_text(self, record: Record) -> str:
        return client_searchable_text(record)

    def columns(self) -> List[ColumnSpec]:
        return [
            ColumnSpec("name", "Name", sortable=True),
            ColumnSpec("email", "Email"),
            ColumnSpec("company", "Company"),
            ColumnSpec("city", "City", sortable=True),
        ]

    def export_rows(self, records: Sequence[Record]) -> List[Dict[str, Any]]:
        return export_clients_rows(records)

    def _collection_from(self, bundle: DataBundle) -> List[Dict[str, Any]]:
        return [c.model_dump() for c in bundle.clients]

    def cities(self) -> List[str]:
        return self.filter_options()

    def _validate(self, fields: Mapping[str, Any]) -> ClientFields:
        return validate_client_fields(fields)

    def _backend_create(self, fields: ClientFields):
        return self.backend.create_client(fields.model_dump())

    def _backend_delete(self, record_id: str) -> None:
        self.backend.delete_client(record_id)

    def _after_create(self, record: Dict[str, Any]) -> None:
        if self.notifier is not None:
            self.last_notification = self.notifier.send_welcome_email(record)
