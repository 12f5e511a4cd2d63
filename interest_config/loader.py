"""
Settings Loader (``interest_config.loader``).

Responsibility
--------------
Loads a deployment settings YAML file and parses it into the frozen
``interest_config.schema`` dataclasses.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Amounts and period bounds are unsigned integers; booleans are rejected
  where an integer is expected.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  document for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from interest_config.schema import DeploymentSettings, InterestDefaults

_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_unsigned(value: Any, name: str) -> int:
    """
    Parse a non-negative integer.  Strings of decimal digits are accepted so
    that budgets wider than YAML's native integers can be written quoted.
    """
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, str):
        value = value.strip().replace("_", "")
        if not value.isdigit():
            raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
        return int(value)
    if not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    return value


def parse_defaults(data: dict[str, Any] | None) -> InterestDefaults:
    """Parse the optional ``interest`` block."""
    if not data:
        return InterestDefaults()
    start_paused = data.get("start_paused", False)
    if not isinstance(start_paused, bool):
        raise ValueError(f"start_paused must be a boolean, got {start_paused!r}")
    return InterestDefaults(
        settlement_token=data.get("settlement_token"),
        weekly_interest_budget=parse_unsigned(
            data.get("weekly_interest_budget", 0), "weekly_interest_budget"
        ),
        periods_to_distribute=parse_unsigned(
            data.get("periods_to_distribute", 0), "periods_to_distribute"
        ),
        start_paused=start_paused,
    )


def parse_settings(data: dict[str, Any]) -> DeploymentSettings:
    """
    Parse a ``DeploymentSettings`` from a dict.

    Raises:
        KeyError: if a required key is missing.
        ValueError: if a value has the wrong type or range.
    """
    log_level = str(data.get("log_level", "INFO")).upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"Unknown log_level: {log_level!r}")

    accounts = data["accounts"]
    return DeploymentSettings(
        settings_id=data["settings_id"],
        version=parse_unsigned(data["version"], "version"),
        database_url=data["database"]["url"],
        admin_id=accounts["admin_id"],
        funding_account=accounts["funding_account"],
        operator_id=accounts["operator_id"],
        log_level=log_level,
        defaults=parse_defaults(data.get("interest")),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def load_settings_file(path: Path) -> DeploymentSettings:
    """Load and parse one settings file."""
    return parse_settings(load_yaml_file(path))
