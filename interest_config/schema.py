"""
DeploymentSettings schema.

The human-authored bootstrap artifact for one deployment: where the ledger
lives, who administers it, which account funds payouts, and the initial
interest configuration.  YAML files are parsed into these types by the
loader; nothing at runtime reads YAML directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class InterestDefaults:
    """Initial InterestConfig values applied by bootstrap_config()."""

    settlement_token: str | None = None
    weekly_interest_budget: int = 0
    periods_to_distribute: int = 0
    start_paused: bool = False


@dataclass(frozen=True)
class DeploymentSettings:
    """Complete bootstrap settings for one deployment."""

    settings_id: str
    version: int
    database_url: str
    admin_id: str
    funding_account: str
    operator_id: str
    log_level: str = "INFO"
    defaults: InterestDefaults = field(default_factory=InterestDefaults)
    checksum: str = ""
