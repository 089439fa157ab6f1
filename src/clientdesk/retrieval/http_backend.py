"""HTTP implementation of the backend contract (remote dashboard API)."""

import json
from typing import Any, Dict, List, Mapping, Optional

import requests

from ..api.backend import CancellationToken
from ..api.clients_api import validate_client_fields
from ..api.errors import ApiError
from ..api.models import ClientRecord, DataBundle, ProjectRecord
from ..api.projects_api import validate_project_fields
from ..utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 20
USER_AGENT = "clientdesk/0.1"
CHUNK_SIZE = 16 * 1024

# Remote payloads use camelCase keys
_CAMEL_KEYS = {"createdAt": "created_at", "clientId": "client_id"}


def _snake_keys(payload: Mapping[str, Any]) -> Dict[str, Any]:
    return {_CAMEL_KEYS.get(key, key): value for key, value in payload.items()}


def _camel_keys(payload: Mapping[str, Any]) -> Dict[str, Any]:
    reverse = {v: k for k, v in _CAMEL_KEYS.items()}
    return {reverse.get(key, key): value for key, value in payload.items() if value is not None}


def _to_client(payload: Mapping[str, Any]) -> ClientRecord:
    data = _snake_keys(payload)
    data["id"] = str(data.get("id"))
    return ClientRecord(**{k: v for k, v in data.items() if k in ClientRecord.model_fields})


def _to_project(payload: Mapping[str, Any]) -> ProjectRecord:
    data = _snake_keys(payload)
    data["id"] = str(data.get("id"))
    data["client_id"] = str(data.get("client_id"))
    if not data.get("status"):
        data.pop("status", None)
    return ProjectRecord(**{k: v for k, v in data.items() if k in ProjectRecord.model_fields})


class HttpBackend:
    """ApiBackend speaking JSON to a remote dashboard API."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()

    def _get_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        }

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _error_message(self, status_code: int, body: bytes) -> str:
        try:
            payload = json.loads(body) if body else None
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            message = payload.get("error") or payload.get("message")
            if message:
                return str(message)
        return f"HTTP {status_code}"

    def _read_body(self, response: requests.Response, token: Optional[CancellationToken]) -> bytes:
        """Read the body in chunks, abandoning the download once ``token`` is cancelled."""
        chunks = []
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if token is not None:
                token.raise_if_cancelled()
            chunks.append(chunk)
        return b"".join(chunks)

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: Optional[Dict[str, Any]] = None,
        token: Optional[CancellationToken] = None,
    ) -> Any:
        if token is not None:
            token.raise_if_cancelled()
        try:
            response = self.http.request(
                method,
                self._url(path),
                json=json_body,
                headers=self._get_headers(),
                timeout=self.timeout,
                stream=True,
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError(f"Network error: {e}") from e

        try:
            if token is not None:
                token.raise_if_cancelled()
            try:
                body = self._read_body(response, token)
            except requests.RequestException as e:
                logger.warning("%s %s failed while reading: %s", method, path, e)
                raise ApiError(f"Network error: {e}") from e
            if not response.ok:
                raise ApiError(self._error_message(response.status_code, body), status_code=response.status_code)
            if response.status_code == 204 or not body:
                return None
            try:
                return json.loads(body)
            except ValueError as e:
                raise ApiError(f"Invalid JSON from {path}") from e
        finally:
            response.close()

    def fetch_all(self, token: Optional[CancellationToken] = None) -> DataBundle:
        """Load both collections; abandons the fetch as soon as ``token`` is cancelled."""
        token = token or CancellationToken()
        clients_payload: List[Mapping[str, Any]] = self._request("GET", "clients", token=token) or []
        projects_payload: List[Mapping[str, Any]] = self._request("GET", "projects", token=token) or []
        token.raise_if_cancelled()
        return DataBundle(
            clients=[_to_client(item) for item in clients_payload],
            projects=[_to_project(item) for item in projects_payload],
        )

    def create_client(self, fields: Mapping[str, Any]) -> ClientRecord:
        validated = validate_client_fields(fields)
        payload = self._request("POST", "clients", json_body=_camel_keys(validated.model_dump()))
        return _to_client(payload)

    def delete_client(self, client_id: str) -> None:
        self._request("DELETE", f"clients/{client_id}")

    def create_project(self, fields: Mapping[str, Any]) -> ProjectRecord:
        validated = validate_project_fields(fields)
        payload = self._request("POST", "projects", json_body=_camel_keys(validated.model_dump()))
        return _to_project(payload)

    def delete_project(self, project_id: str) -> None:
        self._request("DELETE", f"projects/{project_id}")
