from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from jsonschema import Draft202012Validator

from ..notify.email import EmailConfig

DEFAULT_CONFIG_PATH = Path("clientdesk.config.yaml")

DEFAULT_CONFIG: Dict[str, Any] = {
    "version": 1,
    "storage": {
        "sqlite_path": "clientdesk.db",
    },
    "views": {
        "page_size": 10,
    },
    "export": {
        "delimiter": None,  # None: semicolon for comma-decimal locales, else comma
        "out_dir": ".",
    },
    "api": {
        "base_url": None,  # set to use a remote API instead of the local database
        "timeout_seconds": 20,
    },
    "email": {
        "host": None,
        "port": 587,
        "secure": False,
        "user": None,
        "password": None,
        "sender": None,
    },
}

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "version": {"type": "integer", "minimum": 1},
        "storage": {
            "type": "object",
            "properties": {"sqlite_path": {"type": "string", "minLength": 1}},
        },
        "views": {
            "type": "object",
            "properties": {"page_size": {"type": "integer", "minimum": 1}},
        },
        "export": {
            "type": "object",
            "properties": {
                "delimiter": {"type": ["string", "null"], "minLength": 1, "maxLength": 1},
                "out_dir": {"type": "string"},
            },
        },
        "api": {
            "type": "object",
            "properties": {
                "base_url": {"type": ["string", "null"]},
                "timeout_seconds": {"type": "number", "exclusiveMinimum": 0},
            },
        },
        "email": {
            "type": "object",
            "properties": {
                "host": {"type": ["string", "null"]},
                "port": {"type": "integer", "minimum": 1, "maximum": 65535},
                "secure": {"type": "boolean"},
                "user": {"type": ["string", "null"]},
                "password": {"type": ["string", "null"]},
                "sender": {"type": ["string", "null"]},
            },
        },
    },
}


def _format_error_path(error) -> str:
    if not error.absolute_path:
        return "$"
    return ".".join(("$", *map(str, error.absolute_path)))


def validate_config(config: Any) -> None:
    """
    Validate a loaded config document against CONFIG_SCHEMA.

    Raises:
        ValueError: Listing every violation as ``path: message``
    """
    if not isinstance(config, dict):
        raise ValueError("Config must be a dictionary")
    validator = Draft202012Validator(CONFIG_SCHEMA)
    errors = sorted(validator.iter_errors(config), key=lambda e: list(e.absolute_path))
    if errors:
        details = "; ".join(f"{_format_error_path(e)}: {e.message}" for e in errors)
        raise ValueError(f"Invalid config: {details}")


def _merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    merged = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> Dict[str, Any]:
    """
    Load and validate the YAML config file.

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the document fails schema validation
    """
    cfg_path = path or DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    validate_config(config)
    return config


def resolve_config(path: Path | None = None) -> Dict[str, Any]:
    """Defaults merged with the config file when it exists."""
    try:
        return _merge(DEFAULT_CONFIG, load_config(path))
    except FileNotFoundError:
        return deepcopy(DEFAULT_CONFIG)


def write_default_config(path: Path | None = None) -> Path:
    cfg_path = path or DEFAULT_CONFIG_PATH
    cfg_path.write_text(yaml.safe_dump(DEFAULT_CONFIG, sort_keys=False), encoding="utf-8")
    return cfg_path


def get_sqlite_path(config: Mapping[str, Any]) -> str:
    return config.get("storage", {}).get("sqlite_path") or DEFAULT_CONFIG["storage"]["sqlite_path"]


def get_page_size(config: Mapping[str, Any]) -> int:
    return int(config.get("views", {}).get("page_size") or DEFAULT_CONFIG["views"]["page_size"])


def get_export_delimiter(config: Mapping[str, Any]) -> Optional[str]:
    return config.get("export", {}).get("delimiter")


def get_email_config(config: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None) -> EmailConfig:
    """File settings with EMAIL_* environment variables taking precedence."""
    return EmailConfig.from_env(environ, base=EmailConfig.from_mapping(config.get("email")))
