"""
Configuration Loader (``startupcall_config.loader``).

Responsibility
--------------
Loads a YAML configuration document and parses it into the frozen
``startupcall_config.schema`` dataclasses.  Runtime callers use
``startupcall_config.get_active_config()`` instead of this module.

Invariants enforced
-------------------
* Unknown sections and unknown keys are rejected with ``ValueError`` naming
  the offending key; a typo never silently falls back to a default.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  document for configuration identity.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Bad values  -> ``ValueError``.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from startupcall_config.schema import (
    ApiConfig,
    BudgetConfig,
    DatabaseConfig,
    NotificationConfig,
    PlatformConfig,
    ReviewConfig,
    SponsorshipConfig,
)

_SECTIONS: dict[str, type] = {
    "database": DatabaseConfig,
    "review": ReviewConfig,
    "sponsorship": SponsorshipConfig,
    "budget": BudgetConfig,
    "notifications": NotificationConfig,
    "api": ApiConfig,
}

_TOP_LEVEL_KEYS = frozenset({"name", "environment", *_SECTIONS})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration root must be a mapping: {path}")
    return data


def parse_section(name: str, data: dict[str, Any] | None) -> Any:
    """Build the dataclass for section ``name`` from its YAML mapping."""
    section_cls = _SECTIONS[name]
    data = data or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration section {name!r} must be a mapping")
    known = {f.name: f for f in dataclasses.fields(section_cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ValueError(f"Unknown key(s) in {name!r}: {', '.join(unknown)}")
    values: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, list):
            value = tuple(value)
        values[key] = value
    try:
        return section_cls(**values)
    except TypeError as exc:
        raise ValueError(f"Invalid configuration section {name!r}: {exc}") from exc


def parse_config(data: dict[str, Any]) -> PlatformConfig:
    """Parse a full configuration document."""
    unknown = sorted(set(data) - _TOP_LEVEL_KEYS)
    if unknown:
        raise ValueError(f"Unknown configuration section(s): {', '.join(unknown)}")
    sections = {name: parse_section(name, data.get(name)) for name in _SECTIONS}
    return PlatformConfig(
        name=str(data.get("name", "startupcall")),
        environment=str(data.get("environment", "development")),
        checksum=compute_checksum(data),
        **sections,
    )


def merge_overrides(data: dict[str, Any], overrides: dict[str, dict[str, Any]]) -> dict[str, Any]:
    """Return a copy of ``data`` with per-section key overrides applied."""
    merged = {key: (dict(value) if isinstance(value, dict) else value) for key, value in data.items()}
    for section, values in overrides.items():
        merged.setdefault(section, {})
        merged[section] = {**(merged[section] or {}), **values}
    return merged


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 over the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
