# reorder/config.py
"""
Configuration loading and validation.

Responsibilities:
- Load YAML configuration
- Validate against JSON Schema
- Expose a normalised config object

This module does NOT:
- interact with git
- compute the reorder script
- perform rewrites
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import json
import yaml
from jsonschema import Draft202012Validator


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class RangeConfig:
    base: Optional[str]  # last retained commit, None for the root


@dataclass(frozen=True)
class ReorderConfig:
    move: Tuple[str, ...]
    after: Optional[str]


@dataclass(frozen=True)
class Config:
    range: RangeConfig
    reorder: ReorderConfig


def default_schema_path() -> Path:
    """
    schema.json ships inside the package, next to this module.
    """
    return Path(__file__).resolve().parent / "schema.json"


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

    if raw is None:
        raise ConfigError(f"Config is empty: {config_path}")

    if not isinstance(raw, dict):
        raise ConfigError(f"Config must be a mapping at top level: {config_path}")

    return raw


def parse_config(raw_config: Dict[str, Any], schema: Dict[str, Any]) -> Config:
    """
    Validate an already loaded mapping against the schema and build a Config.
    """
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(raw_config), key=lambda e: [str(p) for p in e.path])

    if errors:
        messages = []
        for err in errors:
            path = ".".join(str(p) for p in err.path)
            prefix = path if path else "<root>"
            messages.append(f"{prefix}: {err.message}")
        raise ConfigError("Invalid configuration:\n" + "\n".join(messages))

    range_raw = raw_config.get("range") or {}
    reorder_raw = raw_config["reorder"]

    base = range_raw.get("base")
    after = reorder_raw.get("after")

    return Config(
        range=RangeConfig(base=str(base) if base is not None else None),
        reorder=ReorderConfig(
            move=tuple(str(h) for h in reorder_raw["move"]),
            after=str(after) if after is not None else None,
        ),
    )


def load_config(config_path: Path, schema_path: Path) -> Config:
    """
    Load and validate configuration.

    Raises ConfigError on validation failure.
    """
    raw_config = _load_yaml(config_path)
    schema = _load_schema(schema_path)
    return parse_config(raw_config, schema)
