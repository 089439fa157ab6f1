import uuid
from datetime import UTC, datetime


def new_client_id() -> str:
    return f"CLI-{datetime.now(UTC).strftime('%Y%m%d')}-{uuid.uuid4().hex[:8]}"


def new_project_id() -> str:
    return f"PRJ-{datetime.now(UTC).strftime('%Y%m%d')}-{uuid.uuid4().hex[:8]}"
