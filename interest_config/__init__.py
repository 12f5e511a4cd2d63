"""
interest_config -- deployment bootstrap settings.

Responsibility:
    Provides the single way to obtain deployment settings at runtime through
    ``get_active_settings()``.  Settings are read from a YAML file, parsed
    into frozen ``DeploymentSettings`` and traced with their checksum.

Architecture position:
    Configuration -- sits above ``interest_kernel``.  The kernel MUST NEVER
    import from ``interest_config``; ``bootstrap_config`` pushes the settings
    into the kernel through ConfigService.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``KeyError`` / ``ValueError`` -- missing or malformed fields.

Audit relevance:
    Every successful ``get_active_settings()`` call emits an
    ``INTEREST_CONFIG_TRACE`` log entry with the settings id, version and
    checksum, tying distribution runs to the exact settings that set them up.
"""

from __future__ import annotations

import os
from pathlib import Path

from interest_config.bootstrap import bootstrap_config, bootstrap_runtime, init_runtime
from interest_config.loader import compute_checksum, load_settings_file, load_yaml_file, parse_settings
from interest_config.schema import DeploymentSettings, InterestDefaults
from interest_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_SETTINGS_FILE = Path(__file__).parent / "sets" / "default.yaml"

SETTINGS_ENV_VAR = "INTEREST_SETTINGS_FILE"


def load_settings(path: Path | str) -> DeploymentSettings:
    """Load and parse the settings file at ``path``."""
    return load_settings_file(Path(path))


def get_active_settings(path: Path | str | None = None) -> DeploymentSettings:
    """
    The public settings entrypoint.

    Resolution order: explicit ``path``, then the ``INTEREST_SETTINGS_FILE``
    environment variable, then the packaged ``sets/default.yaml``.
    """
    resolved = Path(path or os.environ.get(SETTINGS_ENV_VAR) or _DEFAULT_SETTINGS_FILE)
    settings = load_settings(resolved)

    _logger.info(
        "INTEREST_CONFIG_TRACE",
        extra={
            "trace_type": "INTEREST_CONFIG_TRACE",
            "settings_id": settings.settings_id,
            "settings_version": settings.version,
            "checksum": settings.checksum,
            "source": str(resolved),
        },
    )
    return settings


__all__ = [
    "DeploymentSettings",
    "InterestDefaults",
    "SETTINGS_ENV_VAR",
    "bootstrap_config",
    "bootstrap_runtime",
    "compute_checksum",
    "get_active_settings",
    "init_runtime",
    "load_settings",
    "load_yaml_file",
    "parse_settings",
]
