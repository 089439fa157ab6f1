"""Tests for time and ID utilities."""

import re
from datetime import datetime, timedelta, timezone

import pytest

from clientdesk.utils.id_generator import new_client_id, new_project_id
from clientdesk.utils.time import to_utc_z, utc_now_z


def test_utc_now_z_ends_with_z_only():
    result = utc_now_z()
    assert result.endswith("Z")
    assert "+00:00" not in result


def test_to_utc_z_raises_on_naive_datetime():
    with pytest.raises(ValueError, match="Naive datetime not allowed"):
        to_utc_z(datetime.now())


def test_to_utc_z_converts_non_utc_timezone():
    est = timezone(timedelta(hours=-5))
    result = to_utc_z(datetime(2025, 12, 23, 12, 0, 0, tzinfo=est))

    assert result.startswith("2025-12-23T17:00:00")
    assert result.endswith("Z")


def test_generated_ids_have_prefix_date_and_suffix():
    client_id = new_client_id()
    project_id = new_project_id()

    assert re.fullmatch(r"CLI-\d{8}-[0-9a-f]{8}", client_id)
    assert re.fullmatch(r"PRJ-\d{8}-[0-9a-f]{8}", project_id)
    assert new_client_id() != client_id
