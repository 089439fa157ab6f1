"""Backend contract consumed by the list controllers.

``LocalBackend`` serves the contract from the SQLite store; the HTTP variant
lives in ``clientdesk.retrieval.http_backend``.
"""

import threading
from typing import Any, Mapping, Optional, Protocol

from sqlalchemy.orm import Session

from ..database.sqlite_client import StoreError, store_errors
from ..utils.logging import get_logger
from .clients_api import create_client, delete_client, list_clients
from .errors import ApiError, FetchCancelled
from .models import ClientRecord, DataBundle, ProjectRecord
from .projects_api import create_project, delete_project, list_projects

logger = get_logger(__name__)


class CancellationToken:
    """Cooperative cancellation flag shared between a view and its fetch."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise FetchCancelled()


class ApiBackend(Protocol):
    def fetch_all(self, token: Optional[CancellationToken] = None) -> DataBundle: ...

    def create_client(self, fields: Mapping[str, Any]) -> ClientRecord: ...

    def delete_client(self, client_id: str) -> None: ...

    def create_project(self, fields: Mapping[str, Any]) -> ProjectRecord: ...

    def delete_project(self, project_id: str) -> None: ...


class LocalBackend:
    """ApiBackend backed by a SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session

    def fetch_all(self, token: Optional[CancellationToken] = None) -> DataBundle:
        token = token or CancellationToken()
        token.raise_if_cancelled()
        try:
            with store_errors(self.session):
                clients = list_clients(self.session)
                token.raise_if_cancelled()
                projects = list_projects(self.session)
        except StoreError as exc:
            logger.warning("Failed to load clients and projects: %s", exc)
            raise ApiError(f"Could not load data: {exc}") from exc
        token.raise_if_cancelled()
        return DataBundle(clients=clients, projects=projects)

    def create_client(self, fields: Mapping[str, Any]) -> ClientRecord:
        return create_client(self.session, fields)

    def delete_client(self, client_id: str) -> None:
        delete_client(self.session, client_id)

    def create_project(self, fields: Mapping[str, Any]) -> ProjectRecord:
        return create_project(self.session, fields)

    def delete_project(self, project_id: str) -> None:
        delete_project(self.session, project_id)
