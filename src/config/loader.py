"""Layered configuration: ``config/config.yaml`` under environment Settings.

The YAML file holds tunables that rarely change per deployment (prompt
temperatures, token limits).  Everything :class:`Settings` knows about is
laid over it section by section, so a value set through the environment
or ``.env`` always wins over the file::

    yaml:     {"ingestion": {"summary_max_tokens": 200}}
    settings: {"ingestion": {"retention_window_seconds": 300}}
    merged:   {"ingestion": {"summary_max_tokens": 200, "retention_window_seconds": 300}}
"""

from pathlib import Path
from typing import Any

import yaml

from src.config.settings import Settings
from src.utils.errors import ConfigurationError


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Return the merged configuration tree.

    A missing file is treated as empty.  A file that is not valid YAML, or
    whose top level is not a mapping, raises ``ConfigurationError``.
    """
    merged = _read_yaml(Path(path))
    _deep_merge(merged, _settings_sections(settings or Settings()))
    return merged


def _read_yaml(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        return {}
    try:
        loaded = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(
            message=f"Could not parse {config_path}: {exc}", provider_name="yaml"
        ) from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigurationError(message=f"{config_path} must contain a mapping at the top level")
    return loaded


def _settings_sections(settings: Settings) -> dict[str, dict[str, Any]]:
    return {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
            "api_prefix": settings.api_prefix,
        },
        "inference": {
            "base_url": settings.ollama_base_url,
            "default_chat_model": settings.default_chat_model,
            "timeout_seconds": settings.model_timeout_seconds,
        },
        "storage": {
            "database_path": settings.database_path,
            "upload_dir": settings.upload_dir,
            "max_upload_mb": settings.max_upload_mb,
        },
        "ingestion": {"retention_window_seconds": settings.retention_window_seconds},
        "query": {"default_top_k": settings.default_top_k},
        "logging": {
            "level": settings.log_level,
            "request_log_path": settings.request_log_path,
        },
    }


def _deep_merge(base: dict, overrides: dict) -> None:
    """Merge ``overrides`` into ``base`` in place, recursing into nested dicts."""
    for key, value in overrides.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _deep_merge(current, value)
        else:
            base[key] = value
