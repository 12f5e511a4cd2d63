"""
ConfigService -- the administrative configuration store.

Responsibility:
    Owns the single InterestConfigModel row: settlement token, weekly
    interest budget, period bound, pause flag and administrator identity.
    Every mutation is gated on the administrator, audited, and logged as
    ``config_changed``.

Architecture position:
    Kernel > Services.  Read by DistributionEngine once per call through
    ``get_config()``, which returns a frozen InterestConfig snapshot.

Invariants enforced:
    - Only ``admin_id`` may mutate the row.
    - The settlement token is never the null identity, and setting it to its
      current value is rejected so no-op administrative calls are surfaced.
    - Budget and period bound are unsigned.
    - Lowering the period bound never invalidates records already written
      for higher periods; it only affects future validation.

Failure modes:
    - ConfigNotInitializedError: initialize() was never called.
    - UnauthorizedError: caller is not the administrator.
    - InvalidTokenError / InvalidAdminError: null identity supplied.
    - AlreadySetError: token or pause state already holds the requested value.
    - ValueError: negative budget or period bound.

Audit relevance:
    Each change writes a hash-chained AuditEvent with the previous and new
    values in the caller's transaction.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from interest_kernel.db.types import is_null_identity, require_uint256
from interest_kernel.domain.clock import Clock, SystemClock
from interest_kernel.domain.dtos import InterestConfig
from interest_kernel.exceptions import (
    AlreadySetError,
    ConfigNotInitializedError,
    InvalidAdminError,
    InvalidTokenError,
    UnauthorizedError,
)
from interest_kernel.logging_config import get_logger
from interest_kernel.models.audit_event import AuditAction
from interest_kernel.models.interest_config import DEFAULT_CONFIG_KEY, InterestConfigModel
from interest_kernel.services.auditor_service import AuditorService
from interest_kernel.services.base import BaseService

logger = get_logger("services.config")


class ConfigService(BaseService[InterestConfigModel]):
    """
    Administrative configuration store.

    Contract:
        Setters take the calling identity as ``actor_id`` and return the
        resulting InterestConfig snapshot.  Changes are flushed, not
        committed.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT validate that the token exists on the settlement side.
    """

    def __init__(
        self,
        session: Session,
        auditor: AuditorService | None = None,
        clock: Clock | None = None,
        config_key: str = DEFAULT_CONFIG_KEY,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._auditor = auditor or AuditorService(session, self._clock)
        self._config_key = config_key

    @property
    def config_key(self) -> str:
        return self._config_key

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _load(self, for_update: bool = False) -> InterestConfigModel:
        stmt = select(InterestConfigModel).where(
            InterestConfigModel.config_key == self._config_key
        )
        if for_update:
            stmt = stmt.with_for_update()
        row = self.session.execute(stmt).scalar_one_or_none()
        if row is None:
            raise ConfigNotInitializedError(self._config_key)
        return row

    @staticmethod
    def _to_dto(row: InterestConfigModel) -> InterestConfig:
        return InterestConfig(
            admin_id=row.admin_id,
            settlement_token=row.settlement_token,
            weekly_interest_budget=row.weekly_interest_budget,
            periods_to_distribute=row.periods_to_distribute,
            paused=row.paused,
        )

    def is_initialized(self) -> bool:
        row = self.session.execute(
            select(InterestConfigModel.id).where(
                InterestConfigModel.config_key == self._config_key
            )
        ).scalar_one_or_none()
        return row is not None

    def get_config(self) -> InterestConfig:
        """
        Snapshot of the configuration in force.

        Raises:
            ConfigNotInitializedError: initialize() was never called.
        """
        return self._to_dto(self._load())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, admin_id: str) -> InterestConfig:
        """
        Create the empty configuration row owned by ``admin_id``.

        Calling again with the same administrator returns the existing
        snapshot unchanged.

        Raises:
            InvalidAdminError: admin_id is the null identity.
            AlreadySetError: the row exists with a different administrator.
        """
        if is_null_identity(admin_id):
            raise InvalidAdminError(admin_id)

        existing = self.session.execute(
            select(InterestConfigModel).where(
                InterestConfigModel.config_key == self._config_key
            )
        ).scalar_one_or_none()
        if existing is not None:
            if existing.admin_id != admin_id:
                raise AlreadySetError("admin_id", existing.admin_id)
            logger.info(
                "config_already_initialized",
                extra={"config_key": self._config_key, "admin_id": admin_id},
            )
            return self._to_dto(existing)

        row = InterestConfigModel(
            config_key=self._config_key,
            admin_id=admin_id,
            settlement_token=None,
            weekly_interest_budget=0,
            periods_to_distribute=0,
            paused=False,
            created_by_id=admin_id,
        )
        self.session.add(row)
        self.session.flush()
        self._auditor.record_config_initialized(self._config_key, admin_id)

        logger.info(
            "config_initialized",
            extra={"config_key": self._config_key, "admin_id": admin_id},
        )
        return self._to_dto(row)

    # ------------------------------------------------------------------
    # Setters
    # ------------------------------------------------------------------

    def _require_admin(self, row: InterestConfigModel, actor_id: str, operation: str) -> None:
        if actor_id != row.admin_id:
            logger.warning(
                "config_change_unauthorized",
                extra={"actor_id": actor_id, "operation": operation},
            )
            raise UnauthorizedError(actor_id, operation)

    def _apply(
        self,
        row: InterestConfigModel,
        field: str,
        new_value,
        action: AuditAction,
        actor_id: str,
    ) -> InterestConfig:
        old_value = getattr(row, field)
        setattr(row, field, new_value)
        row.updated_by_id = actor_id
        self.session.flush()
        self._auditor.record_config_changed(
            self._config_key, action, field, old_value, new_value, actor_id,
        )
        logger.info(
            "config_changed",
            extra={
                "config_key": self._config_key,
                "field": field,
                "old_value": None if old_value is None else str(old_value),
                "new_value": None if new_value is None else str(new_value),
                "actor_id": actor_id,
            },
        )
        return self._to_dto(row)

    def set_settlement_token(self, token_id: str, *, actor_id: str) -> InterestConfig:
        """
        Raises:
            UnauthorizedError: actor is not the administrator.
            InvalidTokenError: token_id is the null identity.
            AlreadySetError: token_id is already the configured token.
        """
        row = self._load(for_update=True)
        self._require_admin(row, actor_id, "set_settlement_token")
        if is_null_identity(token_id):
            raise InvalidTokenError(token_id)
        if token_id == row.settlement_token:
            raise AlreadySetError("settlement_token", token_id)
        return self._apply(
            row, "settlement_token", token_id, AuditAction.SETTLEMENT_TOKEN_SET, actor_id,
        )

    def set_periods_to_distribute(self, periods: int, *, actor_id: str) -> InterestConfig:
        """
        Replace the period bound.  Records already written for periods at or
        above the new bound stay valid.
        """
        row = self._load(for_update=True)
        self._require_admin(row, actor_id, "set_periods_to_distribute")
        if periods < 0:
            raise ValueError(f"periods_to_distribute must be non-negative, got {periods}")
        return self._apply(
            row, "periods_to_distribute", periods, AuditAction.PERIODS_TO_DISTRIBUTE_SET, actor_id,
        )

    def set_weekly_interest_budget(self, amount: int, *, actor_id: str) -> InterestConfig:
        """Replace the per-period budget.  Applies from the next distribution call."""
        row = self._load(for_update=True)
        self._require_admin(row, actor_id, "set_weekly_interest_budget")
        require_uint256(amount, "weekly_interest_budget")
        return self._apply(
            row, "weekly_interest_budget", amount, AuditAction.WEEKLY_BUDGET_SET, actor_id,
        )

    # ------------------------------------------------------------------
    # Pause and administrator
    # ------------------------------------------------------------------

    def _set_paused(self, paused: bool, actor_id: str) -> InterestConfig:
        operation = "pause" if paused else "unpause"
        row = self._load(for_update=True)
        self._require_admin(row, actor_id, operation)
        if row.paused == paused:
            raise AlreadySetError("paused", paused)

        row.paused = paused
        row.updated_by_id = actor_id
        self.session.flush()
        self._auditor.record_pause_changed(self._config_key, paused, actor_id)

        logger.warning(
            "engine_paused" if paused else "engine_unpaused",
            extra={"config_key": self._config_key, "actor_id": actor_id},
        )
        return self._to_dto(row)

    def pause(self, *, actor_id: str) -> InterestConfig:
        """Stop all distribution calls until unpause()."""
        return self._set_paused(True, actor_id)

    def unpause(self, *, actor_id: str) -> InterestConfig:
        return self._set_paused(False, actor_id)

    def transfer_admin(self, new_admin_id: str, *, actor_id: str) -> InterestConfig:
        """
        Hand the administrative role to ``new_admin_id``.

        The previous administrator loses all rights immediately.

        Raises:
            UnauthorizedError: actor is not the administrator.
            InvalidAdminError: new_admin_id is the null identity.
        """
        row = self._load(for_update=True)
        self._require_admin(row, actor_id, "transfer_admin")
        if is_null_identity(new_admin_id):
            raise InvalidAdminError(new_admin_id)

        previous = row.admin_id
        row.admin_id = new_admin_id
        row.updated_by_id = actor_id
        self.session.flush()
        self._auditor.record_admin_transferred(self._config_key, previous, new_admin_id)

        logger.warning(
            "admin_transferred",
            extra={
                "config_key": self._config_key,
                "previous_admin": previous,
                "new_admin": new_admin_id,
            },
        )
        return self._to_dto(row)
