"""
startupcall_config -- single public entrypoint for platform configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component may read configuration
    files or environment variables directly.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Environment variables are read here and nowhere else:
        ``STARTUPCALL_CONFIG``                alternate YAML document
        ``DATABASE_URL``                      database.url
        ``STARTUPCALL_EXPOSE_ERROR_DETAILS``  api.expose_error_details
    - Every successful load emits a ``config_loaded`` log entry carrying the
      checksum of the effective document.

Failure modes:
    - ``FileNotFoundError`` -- the requested YAML document does not exist.
    - ``ValueError`` -- unknown keys or invalid values.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from startupcall_config.loader import load_yaml_file, merge_overrides, parse_config
from startupcall_config.schema import (
    ApiConfig,
    BudgetConfig,
    DatabaseConfig,
    NotificationConfig,
    PlatformConfig,
    ReviewConfig,
    SponsorshipConfig,
)
from startupcall_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


def _parse_flag(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {raw!r}")


def _env_overrides(environ: Mapping[str, str]) -> dict[str, dict[str, Any]]:
    overrides: dict[str, dict[str, Any]] = {}
    if environ.get("DATABASE_URL"):
        overrides.setdefault("database", {})["url"] = environ["DATABASE_URL"]
    if "STARTUPCALL_EXPOSE_ERROR_DETAILS" in environ:
        overrides.setdefault("api", {})["expose_error_details"] = _parse_flag(
            "STARTUPCALL_EXPOSE_ERROR_DETAILS",
            environ["STARTUPCALL_EXPOSE_ERROR_DETAILS"],
        )
    return overrides


def get_active_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> PlatformConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML document to load.  Defaults to
            ``$STARTUPCALL_CONFIG`` or the bundled ``sets/default.yaml``.
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        A validated, frozen ``PlatformConfig``.
    """
    env = os.environ if environ is None else environ
    path = config_path or Path(env.get("STARTUPCALL_CONFIG") or DEFAULT_CONFIG_PATH)

    data = merge_overrides(load_yaml_file(path), _env_overrides(env))
    config = parse_config(data)

    _logger.info(
        "config_loaded",
        extra={
            "config_path": str(path),
            "config_name": config.name,
            "environment": config.environment,
            "checksum": config.checksum,
            "dialect": config.database.url.split(":", 1)[0],
        },
    )
    return config


__all__ = [
    "ApiConfig",
    "BudgetConfig",
    "DatabaseConfig",
    "NotificationConfig",
    "PlatformConfig",
    "ReviewConfig",
    "SponsorshipConfig",
    "get_active_config",
]
