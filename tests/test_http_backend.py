"""Tests for the HTTP backend against a fake requests session."""

import json

import pytest
import requests

from clientdesk.api.backend import CancellationToken
from clientdesk.api.errors import ApiError, FetchCancelled, FormValidationError
from clientdesk.retrieval.http_backend import HttpBackend


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None, piece_size=None, on_chunk=None):
        self.status_code = status_code
        if text is None:
            text = "" if payload is None else json.dumps(payload)
        self.content = text.encode("utf-8")
        self.piece_size = piece_size
        self.on_chunk = on_chunk
        self.chunks_read = 0
        self.closed = False

    @property
    def ok(self):
        return self.status_code < 400

    def iter_content(self, chunk_size=1):
        size = self.piece_size or chunk_size
        for start in range(0, len(self.content), size):
            self.chunks_read += 1
            if self.on_chunk is not None:
                self.on_chunk(self.chunks_read)
            yield self.content[start:start + size]

    def close(self):
        self.closed = True


class FakeHttp:
    """Stands in for requests.Session; replies from a (method, url) routing table."""

    def __init__(self, routes, on_request=None):
        self.routes = routes
        self.on_request = on_request
        self.requests = []

    def request(self, method, url, json=None, headers=None, timeout=None, stream=False):
        self.requests.append(
            {"method": method, "url": url, "json": json, "headers": headers, "timeout": timeout, "stream": stream}
        )
        if self.on_request is not None:
            self.on_request(method, url)
        reply = self.routes[(method, url)]
        if isinstance(reply, Exception):
            raise reply
        return reply


BASE = "http://api.test/api"

CLIENTS_PAYLOAD = [
    {"id": 1, "name": "Anna", "email": "anna@example.com", "company": "Acme", "city": "Rome", "createdAt": "2025-01-01T00:00:00Z"},
]
PROJECTS_PAYLOAD = [
    {"id": 7, "title": "Website", "clientId": 1, "status": None, "budget": 100},
]


def test_fetch_all_maps_camel_case_payloads():
    http = FakeHttp({
        ("GET", f"{BASE}/clients"): FakeResponse(payload=CLIENTS_PAYLOAD),
        ("GET", f"{BASE}/projects"): FakeResponse(payload=PROJECTS_PAYLOAD),
    })
    backend = HttpBackend(BASE + "/", timeout=5, http=http)

    bundle = backend.fetch_all()

    assert bundle.clients[0].id == "1"
    assert bundle.clients[0].created_at == "2025-01-01T00:00:00Z"
    assert bundle.projects[0].client_id == "1"
    assert bundle.projects[0].status == "ACTIVE"
    assert http.requests[0]["timeout"] == 5
    assert http.requests[0]["headers"]["Accept"] == "application/json"


def test_error_body_message_is_surfaced():
    http = FakeHttp({("DELETE", f"{BASE}/clients/1"): FakeResponse(409, {"error": "Client has associated projects"})})

    with pytest.raises(ApiError) as excinfo:
        HttpBackend(BASE, http=http).delete_client("1")

    assert excinfo.value.message == "Client has associated projects"
    assert excinfo.value.status_code == 409


def test_error_without_body_uses_status_code():
    response = FakeResponse(500, text="<html>oops</html>")
    http = FakeHttp({("GET", f"{BASE}/clients"): response})

    with pytest.raises(ApiError, match="HTTP 500"):
        HttpBackend(BASE, http=http).fetch_all()
    assert response.closed


def test_network_error_becomes_api_error():
    http = FakeHttp({("GET", f"{BASE}/clients"): requests.ConnectionError("connection refused")})

    with pytest.raises(ApiError, match="Network error: connection refused"):
        HttpBackend(BASE, http=http).fetch_all()


def test_cancelled_token_stops_fetch_between_requests():
    token = CancellationToken()

    def cancel_after_clients(method, url):
        if url.endswith("/clients"):
            token.cancel()

    http = FakeHttp(
        {
            ("GET", f"{BASE}/clients"): FakeResponse(payload=CLIENTS_PAYLOAD),
            ("GET", f"{BASE}/projects"): FakeResponse(payload=PROJECTS_PAYLOAD),
        },
        on_request=cancel_after_clients,
    )

    with pytest.raises(FetchCancelled):
        HttpBackend(BASE, http=http).fetch_all(token)
    assert [r["url"] for r in http.requests] == [f"{BASE}/clients"]


def test_create_client_posts_validated_payload():
    created = dict(CLIENTS_PAYLOAD[0], id=2, name="Marco")
    http = FakeHttp({("POST", f"{BASE}/clients"): FakeResponse(201, created)})

    record = HttpBackend(BASE, http=http).create_client({"name": " Marco ", "email": "m@example.com", "company": "Globex"})

    assert record.id == "2"
    assert http.requests[0]["json"] == {"name": "Marco", "email": "m@example.com", "company": "Globex"}


def test_create_project_sends_camel_case_and_validates_first():
    created = {"id": 9, "title": "Audit", "clientId": 1, "status": "ACTIVE"}
    http = FakeHttp({("POST", f"{BASE}/projects"): FakeResponse(201, created)})
    backend = HttpBackend(BASE, http=http)

    with pytest.raises(FormValidationError):
        backend.create_project({"title": "Audit"})
    assert http.requests == []

    record = backend.create_project({"title": "Audit", "client_id": "1"})
    assert record.client_id == "1"
    assert http.requests[0]["json"] == {"title": "Audit", "clientId": "1", "status": "ACTIVE"}


def test_delete_with_no_content_returns_none():
    http = FakeHttp({("DELETE", f"{BASE}/projects/9"): FakeResponse(204)})
    assert HttpBackend(BASE, http=http).delete_project("9") is None


def test_cancel_during_body_download_stops_reading():
    token = CancellationToken()
    many_clients = [dict(CLIENTS_PAYLOAD[0], id=i) for i in range(50)]

    def cancel_on_second_chunk(chunks_read):
        if chunks_read == 2:
            token.cancel()

    response = FakeResponse(payload=many_clients, piece_size=64, on_chunk=cancel_on_second_chunk)
    http = FakeHttp({("GET", f"{BASE}/clients"): response})

    with pytest.raises(FetchCancelled):
        HttpBackend(BASE, http=http).fetch_all(token)

    assert http.requests[0]["stream"] is True
    assert response.chunks_read == 2
    assert len(response.content) > 2 * 64
    assert response.closed


def test_connection_drop_while_reading_body_is_api_error():
    def drop(_chunks_read):
        raise requests.exceptions.ChunkedEncodingError("connection broken")

    response = FakeResponse(payload=CLIENTS_PAYLOAD, on_chunk=drop)
    http = FakeHttp({("GET", f"{BASE}/clients"): response})

    with pytest.raises(ApiError, match="Network error: connection broken"):
        HttpBackend(BASE, http=http).fetch_all()
    assert response.closed
