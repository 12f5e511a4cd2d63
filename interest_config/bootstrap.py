"""
Apply DeploymentSettings to a running kernel.

``bootstrap_config`` brings the configuration row in line with the settings
through ConfigService's audited setters, skipping values that already hold,
so re-running it against an initialized database is a no-op.
``bootstrap_runtime`` does the same against the configured database in its
own committed transaction.
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from interest_config.schema import DeploymentSettings
from interest_kernel.db.engine import (
    create_tables,
    init_engine_from_url,
    is_postgres,
    session_scope,
)
from interest_kernel.domain.dtos import InterestConfig
from interest_kernel.logging_config import configure_logging, get_logger
from interest_kernel.services.config_service import ConfigService

logger = get_logger("config.bootstrap")


def init_runtime(settings: DeploymentSettings) -> Engine:
    """Configure logging at the settings' level and initialize the engine."""
    configure_logging(level=settings.log_level)
    return init_engine_from_url(settings.database_url)


def bootstrap_config(service: ConfigService, settings: DeploymentSettings) -> InterestConfig:
    """
    Initialize the configuration row and apply the settings' defaults.

    Raises:
        AlreadySetError: the row belongs to a different administrator.
        UnauthorizedError: propagated from the setters if the administrator
            changed since the row was created.
    """
    admin = settings.admin_id
    defaults = settings.defaults
    config = service.initialize(admin)
    applied: list[str] = []

    if defaults.settlement_token and defaults.settlement_token != config.settlement_token:
        config = service.set_settlement_token(defaults.settlement_token, actor_id=admin)
        applied.append("settlement_token")

    if defaults.weekly_interest_budget != config.weekly_interest_budget:
        config = service.set_weekly_interest_budget(defaults.weekly_interest_budget, actor_id=admin)
        applied.append("weekly_interest_budget")

    if defaults.periods_to_distribute != config.periods_to_distribute:
        config = service.set_periods_to_distribute(defaults.periods_to_distribute, actor_id=admin)
        applied.append("periods_to_distribute")

    if defaults.start_paused and not config.paused:
        config = service.pause(actor_id=admin)
        applied.append("paused")

    logger.info(
        "config_bootstrapped",
        extra={
            "settings_id": settings.settings_id,
            "settings_version": settings.version,
            "checksum": settings.checksum,
            "applied": applied,
        },
    )
    return config


def bootstrap_runtime(settings: DeploymentSettings) -> InterestConfig:
    """
    Bring up a deployment from its settings in one committed transaction.

    Initializes logging and the engine, creates missing tables and applies
    the configuration defaults.
    """
    init_runtime(settings)
    create_tables()
    with session_scope() as session:
        config = bootstrap_config(ConfigService(session), settings)

    logger.info(
        "runtime_bootstrapped",
        extra={"settings_id": settings.settings_id, "postgres": is_postgres()},
    )
    return config
