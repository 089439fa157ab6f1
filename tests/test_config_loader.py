"""Tests for config loading and validation."""

import pytest
import yaml

from clientdesk.config.loader import (
    DEFAULT_CONFIG,
    get_email_config,
    get_export_delimiter,
    get_page_size,
    get_sqlite_path,
    load_config,
    resolve_config,
    validate_config,
    write_default_config,
)


def test_default_config_is_valid():
    validate_config(DEFAULT_CONFIG)


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_resolve_config_merges_file_over_defaults(tmp_path):
    path = tmp_path / "clientdesk.config.yaml"
    path.write_text(yaml.safe_dump({"views": {"page_size": 25}, "export": {"delimiter": ";"}}), encoding="utf-8")

    config = resolve_config(path)

    assert get_page_size(config) == 25
    assert get_export_delimiter(config) == ";"
    assert get_sqlite_path(config) == "clientdesk.db"
    assert config["export"]["out_dir"] == "."


def test_resolve_config_without_file_returns_defaults(tmp_path):
    assert resolve_config(tmp_path / "none.yaml") == DEFAULT_CONFIG


def test_invalid_values_are_reported_with_paths(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.safe_dump({"views": {"page_size": 0}, "email": {"port": "smtp"}}), encoding="utf-8")

    with pytest.raises(ValueError) as excinfo:
        load_config(path)

    message = str(excinfo.value)
    assert message.startswith("Invalid config:")
    assert "$.views.page_size" in message
    assert "$.email.port" in message


def test_non_mapping_config_is_rejected():
    with pytest.raises(ValueError, match="Config must be a dictionary"):
        validate_config(["not", "a", "mapping"])


def test_write_default_config_round_trips(tmp_path):
    path = write_default_config(tmp_path / "clientdesk.config.yaml")
    assert load_config(path) == DEFAULT_CONFIG


def test_email_config_from_file_and_env():
    config = dict(DEFAULT_CONFIG, email={"host": "smtp.example.com", "user": "u", "password": "p", "sender": "a@b.it"})

    email = get_email_config(config, environ={"EMAIL_PASS": "from-env"})

    assert email.host == "smtp.example.com"
    assert email.password == "from-env"
    assert email.configured
