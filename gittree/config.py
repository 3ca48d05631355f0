# gittree/config.py
"""
Configuration loading and validation.

Responsibilities:
- Load YAML configuration
- Validate against JSON Schema
- Expose a normalised config object

This module does NOT:
- interact with git
- classify commits
- render history
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import json
import yaml
from jsonschema import Draft202012Validator


class ConfigError(RuntimeError):
    pass


DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parent / "schema.json"


@dataclass(frozen=True)
class Config:
    tips: Dict[str, Any] = field(default_factory=dict)
    log: Dict[str, Any] = field(default_factory=dict)


def _load_schema(schema_path: Path) -> Dict[str, Any]:
    """
    Load JSON Schema from a schema.json file.
    """
    try:
        raw = schema_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read schema file: {schema_path}") from e

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Schema is not valid JSON: {schema_path}") from e

    if not isinstance(parsed, dict):
        raise ConfigError(f"Schema must be a JSON object: {schema_path}")

    return parsed


def _load_yaml(config_path: Path) -> Dict[str, Any]:
    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config: {config_path}") from e

    # An empty file means "all defaults"
    if raw is None:
        return {}

    if not isinstance(raw, dict):
        raise ConfigError(f"Config must be a mapping at top level: {config_path}")

    return raw


def load_config(config_path: Optional[Path], schema_path: Path = DEFAULT_SCHEMA_PATH) -> Config:
    """
    Load and validate configuration.

    A missing config_path yields the defaults. Raises ConfigError on
    validation failure.
    """
    if config_path is None:
        return Config()

    raw_config = _load_yaml(config_path)
    schema = _load_schema(schema_path)

    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(raw_config), key=lambda e: list(e.path))

    if errors:
        messages = []
        for err in errors:
            path = ".".join(str(p) for p in err.path)
            prefix = path if path else "<root>"
            messages.append(f"{prefix}: {err.message}")
        raise ConfigError("Invalid configuration:\n" + "\n".join(messages))

    return Config(
        tips=dict(raw_config.get("tips") or {}),
        log=dict(raw_config.get("log") or {}),
    )
