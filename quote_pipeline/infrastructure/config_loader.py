"""Configuration loading from YAML/JSON files and the environment."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from ..domain.config import PipelineConfig
from ..domain.exceptions import ConfigurationError

ENV_DATABASE = "QUOTE_PIPELINE_DB"
ENV_HTTP_PORT = "QUOTE_PIPELINE_HTTP_PORT"
ENV_DROP = "QUOTE_PIPELINE_DROP"


def read_config_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML or JSON configuration file into a dictionary."""
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    content = config_path.read_text()
    try:
        if config_path.suffix == ".json":
            data = json.loads(content)
        else:
            data = yaml.safe_load(content) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Invalid configuration file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")
    return data


def apply_env_overrides(data: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    """Overlay the supported environment variables onto raw configuration."""
    merged = dict(data)
    audit = dict(merged.get("audit") or {})
    storage = dict(audit.get("storage") or {})

    if env.get(ENV_DATABASE):
        storage["database"] = env[ENV_DATABASE]
    if env.get(ENV_DROP):
        audit["drop"] = env[ENV_DROP].strip().lower() in ("1", "true", "yes", "on")
    if env.get(ENV_HTTP_PORT):
        try:
            merged["http_port"] = int(env[ENV_HTTP_PORT])
        except ValueError as e:
            raise ConfigurationError(
                f"{ENV_HTTP_PORT} must be an integer", field="http_port"
            ) from e

    if storage:
        audit["storage"] = storage
    if audit:
        merged["audit"] = audit
    return merged


def load_pipeline_config(
    path: str | Path | None = None, env: Mapping[str, str] | None = None
) -> PipelineConfig:
    """Load and validate the pipeline configuration.

    Args:
        path: Optional YAML/JSON file; defaults are used when omitted
        env: Environment to read overrides from (default: os.environ)

    Raises:
        ConfigurationError: If the file is missing or the result is invalid
    """
    data = read_config_file(path) if path else {}
    data = apply_env_overrides(data, os.environ if env is None else env)
    return PipelineConfig.from_mapping(data)
