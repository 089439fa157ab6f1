"""Page-level controller shared by the Clients and Projects views.

A controller owns the full collection fetched from the backend plus the
transient list state (query, field filter, sort, page). Every read goes
through the projection; every mutation replaces the collection as a whole.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..api.backend import ApiBackend, CancellationToken
from ..api.errors import ApiError, ClientDeskError, FetchCancelled, FormValidationError
from ..api.export import download_csv
from ..api.models import DataBundle
from ..api.projection import (
    FieldFilter,
    PageState,
    Projection,
    SortState,
    clamp_page,
    distinct_values,
    filter_and_sort,
    paginate,
    toggle_sort,
)
from ..output.table_view import ColumnSpec, TableView
from ..utils.logging import get_logger

logger = get_logger(__name__)

Record = Mapping[str, Any]

IDLE = "idle"
LOADING = "loading"
READY = "ready"
ERROR = "error"


@dataclass(frozen=True)
class LoadTicket:
    generation: int
    token: CancellationToken


class ListController:
    """Base controller; subclasses define the entity-specific pieces."""

    filter_field: str = ""
    default_sort: SortState = SortState("id")
    export_filename: str = "export.csv"

    def __init__(
        self,
        backend: ApiBackend,
        *,
        page_size: int = 10,
        on_row_activate: Optional[Callable[[Record], None]] = None,
    ):
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.backend = backend
        self.page_size = page_size
        self.on_row_activate = on_row_activate

        self.status = IDLE
        self.error: Optional[str] = None
        self.records: Tuple[Dict[str, Any], ...] = ()

        self.query = ""
        self.filter_value: Optional[str] = None
        self.sort = self.default_sort
        self.page = 1

        self.form_error: Optional[str] = None
        self.action_error: Optional[str] = None
        self.selected: Optional[Record] = None

        self._generation = 0
        self._token: Optional[CancellationToken] = None

    # -- entity hooks -----------------------------------------------------

    def searchable_text(self, record: Record) -> str:
        raise NotImplementedError

    def columns(self) -> List[ColumnSpec]:
        raise NotImplementedError

    def export_rows(self, records: Sequence[Record]) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def _collection_from(self, bundle: DataBundle) -> Sequence[Dict[str, Any]]:
        raise NotImplementedError

    def _apply_bundle(self, bundle: DataBundle) -> None:
        self.records = tuple(self._collection_from(bundle))

    # -- loading ----------------------------------------------------------

    def begin_load(self) -> LoadTicket:
        """Start a new load generation, abandoning any load still in flight."""
        if self._token is not None:
            self._token.cancel()
        self._generation += 1
        self._token = CancellationToken()
        self.status = LOADING
        self.error = None
        return LoadTicket(self._generation, self._token)

    def _is_current(self, ticket: LoadTicket) -> bool:
        return ticket.generation == self._generation and not ticket.token.cancelled

    def complete_load(self, ticket: LoadTicket, bundle: DataBundle) -> bool:
        """Replace the collection with ``bundle`` unless a newer load superseded it."""
        if not self._is_current(ticket):
            logger.debug("Dropping stale load result (generation %s)", ticket.generation)
            return False
        self._apply_bundle(bundle)
        self.status = READY
        self.page = clamp_page(self.page, len(self.records), self.page_size)
        return True

    def fail_load(self, ticket: LoadTicket, error: Exception) -> bool:
        if not self._is_current(ticket):
            return False
        self.records = ()
        self.status = ERROR
        self.error = getattr(error, "message", None) or str(error)
        logger.warning("Load failed: %s", self.error)
        return True

    def load(self) -> bool:
        """Fetch the full collection; returns True when this load was applied."""
        ticket = self.begin_load()
        try:
            bundle = self.backend.fetch_all(ticket.token)
        except FetchCancelled:
            logger.debug("Load generation %s cancelled", ticket.generation)
            return False
        except ClientDeskError as exc:
            self.fail_load(ticket, exc)
            return False
        return self.complete_load(ticket, bundle)

    def unmount(self) -> None:
        """Abandon an in-flight load and reset transient list state."""
        if self._token is not None:
            self._token.cancel()
            self._token = None
        if self.status == LOADING:
            self.status = IDLE
        self.query = ""
        self.filter_value = None
        self.sort = self.default_sort
        self.page = 1

    # -- list state -------------------------------------------------------

    def set_query(self, query: str) -> None:
        self.query = query or ""
        self.page = 1

    def set_filter(self, value: Optional[str]) -> None:
        self.filter_value = value or None
        self.page = 1

    def request_sort(self, key: str) -> None:
        self.sort = toggle_sort(self.sort, key)

    def set_page(self, page: int) -> None:
        self.page = clamp_page(page, len(self.filtered()), self.page_size)

    def _filters(self) -> List[FieldFilter]:
        if not self.filter_field:
            return []
        return [FieldFilter(self.filter_field, self.filter_value)]

    def filtered(self) -> List[Record]:
        """Full filtered, sorted collection (what export writes)."""
        return filter_and_sort(
            self.records,
            query=self.query,
            filters=self._filters(),
            sort=self.sort,
            searchable=self.searchable_text,
        )

    def view(self) -> Projection:
        """Current page; ``page`` is clamped into range on every recompute."""
        ordered = self.filtered()
        self.page = clamp_page(self.page, len(ordered), self.page_size)
        return Projection(
            items=paginate(ordered, self.page, self.page_size),
            page_state=PageState(self.page, self.page_size, len(ordered)),
        )

    def filter_options(self) -> List[str]:
        return distinct_values(self.records, self.filter_field) if self.filter_field else []

    # -- presentation -----------------------------------------------------

    def _row_activated(self, record: Record) -> None:
        self.selected = record
        if self.on_row_activate:
            self.on_row_activate(record)

    def table_view(self, dense: bool = False) -> TableView:
        return TableView(
            self.columns(),
            on_sort_request=self.request_sort,
            on_row_activate=self._row_activated,
            on_page_request=self.set_page,
            dense=dense,
        )

    def render_text(self, dense: bool = False) -> str:
        if self.status == ERROR:
            return f"Error: {self.error}"
        if self.status == LOADING:
            return "Loading..."
        projection = self.view()
        return self.table_view(dense).render_text(projection.items, projection.page_state, self.sort)

    def export_csv(self, out_dir: Optional[Path] = None, delimiter: Optional[str] = None) -> Path:
        """Write the full filtered set (not just the current page) as CSV."""
        return download_csv(
            self.export_filename,
            self.export_rows(self.filtered()),
            delimiter=delimiter,
            out_dir=out_dir,
        )

    # -- mutations --------------------------------------------------------

    def _validate(self, fields: Mapping[str, Any]) -> Any:
        raise NotImplementedError

    def _backend_create(self, fields: Any) -> Any:
        raise NotImplementedError

    def _backend_delete(self, record_id: str) -> None:
        raise NotImplementedError

    def _after_create(self, record: Dict[str, Any]) -> None:
        """Hook for side effects after a successful create."""

    def create(self, fields: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Validate, create through the backend and prepend the new record.

        Validation failures never reach the backend. Any failure leaves the
        collection unchanged and sets ``form_error``.
        """
        self.form_error = None
        try:
            validated = self._validate(fields)
        except FormValidationError as exc:
            self.form_error = exc.message
            return None
        try:
            created = self._backend_create(validated)
        except ApiError as exc:
            self.form_error = exc.message
            return None
        record = created.model_dump()
        self.records = (record, *self.records)
        self._after_create(record)
        return record

    def delete(self, record_id: str) -> bool:
        """Delete through the backend, then drop the record from the collection."""
        self.action_error = None
        try:
            self._backend_delete(record_id)
        except ApiError as exc:
            self.action_error = exc.message
            return False
        self.records = tuple(r for r in self.records if r.get("id") != record_id)
        self.page = clamp_page(self.page, len(self.filtered()), self.page_size)
        return True
