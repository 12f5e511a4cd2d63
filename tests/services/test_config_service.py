"""
Tests for ConfigService.

Verifies:
- Initialization is idempotent for the same administrator
- Every setter is restricted to the administrator
- Token validation (null identity, already set)
- Unsigned budget / period bound
- Pause toggling and administrator hand-over
- Each change is audited and logged
"""

import pytest

from interest_kernel.exceptions import (
    AlreadySetError,
    ConfigNotInitializedError,
    InvalidAdminError,
    InvalidTokenError,
    UnauthorizedError,
)
from interest_kernel.models.audit_event import AuditAction
from interest_kernel.services.auditor_service import CONFIG_ENTITY
from tests.conftest import ADMIN_ID, TOKEN

INTRUDER = "intruder-0001"


class TestInitialization:

    def test_get_config_before_initialize(self, config_service):
        with pytest.raises(ConfigNotInitializedError) as exc_info:
            config_service.get_config()
        assert exc_info.value.config_key == "default"

    def test_initial_values(self, config_service):
        config = config_service.initialize(ADMIN_ID)
        assert config.admin_id == ADMIN_ID
        assert config.settlement_token is None
        assert config.weekly_interest_budget == 0
        assert config.periods_to_distribute == 0
        assert config.paused is False
        assert config_service.is_initialized()

    def test_initialize_twice_same_admin(self, config_service, auditor_service):
        config_service.initialize(ADMIN_ID)
        config_service.initialize(ADMIN_ID)
        trace = auditor_service.get_trace(CONFIG_ENTITY, "default")
        assert len(trace.entries) == 1

    def test_initialize_other_admin_rejected(self, config_service):
        config_service.initialize(ADMIN_ID)
        with pytest.raises(AlreadySetError):
            config_service.initialize(INTRUDER)

    def test_null_admin_rejected(self, config_service):
        with pytest.raises(InvalidAdminError):
            config_service.initialize("0x0000000000000000000000000000000000000000")


class TestSettlementToken:

    def test_set_token(self, config_service, initialized_config):
        config = config_service.set_settlement_token(TOKEN, actor_id=ADMIN_ID)
        assert config.settlement_token == TOKEN
        assert config.token_configured

    @pytest.mark.parametrize("token", [None, "", "0x0000000000000000000000000000000000000000"])
    def test_null_token_rejected(self, config_service, initialized_config, token):
        with pytest.raises(InvalidTokenError):
            config_service.set_settlement_token(token, actor_id=ADMIN_ID)
        assert config_service.get_config().settlement_token is None

    def test_same_token_rejected(self, config_service, initialized_config):
        config_service.set_settlement_token(TOKEN, actor_id=ADMIN_ID)
        with pytest.raises(AlreadySetError) as exc_info:
            config_service.set_settlement_token(TOKEN, actor_id=ADMIN_ID)
        assert exc_info.value.field == "settlement_token"

    def test_replace_token(self, config_service, initialized_config):
        config_service.set_settlement_token(TOKEN, actor_id=ADMIN_ID)
        config = config_service.set_settlement_token("DAI", actor_id=ADMIN_ID)
        assert config.settlement_token == "DAI"


class TestAuthorization:

    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.set_settlement_token(TOKEN, actor_id=INTRUDER),
            lambda s: s.set_weekly_interest_budget(1, actor_id=INTRUDER),
            lambda s: s.set_periods_to_distribute(1, actor_id=INTRUDER),
            lambda s: s.pause(actor_id=INTRUDER),
            lambda s: s.transfer_admin(INTRUDER, actor_id=INTRUDER),
        ],
    )
    def test_non_admin_rejected(self, config_service, initialized_config, call):
        with pytest.raises(UnauthorizedError) as exc_info:
            call(config_service)
        assert exc_info.value.actor_id == INTRUDER
        assert config_service.get_config() == initialized_config


class TestBudgetAndPeriods:

    def test_set_budget(self, config_service, initialized_config):
        assert config_service.set_weekly_interest_budget(700, actor_id=ADMIN_ID).weekly_interest_budget == 700

    def test_budget_beyond_64_bits_persists(self, config_service, initialized_config, session):
        budget = 2**200
        config_service.set_weekly_interest_budget(budget, actor_id=ADMIN_ID)
        session.expire_all()
        assert config_service.get_config().weekly_interest_budget == budget

    def test_negative_budget_rejected(self, config_service, initialized_config):
        with pytest.raises(ValueError):
            config_service.set_weekly_interest_budget(-1, actor_id=ADMIN_ID)

    def test_set_periods(self, config_service, initialized_config):
        assert config_service.set_periods_to_distribute(52, actor_id=ADMIN_ID).periods_to_distribute == 52

    def test_negative_periods_rejected(self, config_service, initialized_config):
        with pytest.raises(ValueError):
            config_service.set_periods_to_distribute(-1, actor_id=ADMIN_ID)

    def test_zero_is_accepted(self, config_service, initialized_config):
        config_service.set_periods_to_distribute(4, actor_id=ADMIN_ID)
        assert config_service.set_periods_to_distribute(0, actor_id=ADMIN_ID).periods_to_distribute == 0


class TestPause:

    def test_pause_and_unpause(self, config_service, initialized_config):
        assert config_service.pause(actor_id=ADMIN_ID).paused is True
        assert config_service.unpause(actor_id=ADMIN_ID).paused is False

    def test_pause_twice_rejected(self, config_service, initialized_config):
        config_service.pause(actor_id=ADMIN_ID)
        with pytest.raises(AlreadySetError):
            config_service.pause(actor_id=ADMIN_ID)

    def test_unpause_when_running_rejected(self, config_service, initialized_config):
        with pytest.raises(AlreadySetError):
            config_service.unpause(actor_id=ADMIN_ID)


class TestAdminTransfer:

    def test_new_admin_takes_over(self, config_service, initialized_config):
        config_service.transfer_admin("admin-0002", actor_id=ADMIN_ID)
        config_service.set_weekly_interest_budget(5, actor_id="admin-0002")
        with pytest.raises(UnauthorizedError):
            config_service.set_weekly_interest_budget(6, actor_id=ADMIN_ID)

    def test_null_new_admin_rejected(self, config_service, initialized_config):
        with pytest.raises(InvalidAdminError):
            config_service.transfer_admin("", actor_id=ADMIN_ID)


class TestAuditAndLogging:

    def test_changes_are_audited_in_order(self, config_service, initialized_config, auditor_service):
        config_service.set_settlement_token(TOKEN, actor_id=ADMIN_ID)
        config_service.set_weekly_interest_budget(700, actor_id=ADMIN_ID)
        config_service.set_weekly_interest_budget(800, actor_id=ADMIN_ID)
        config_service.pause(actor_id=ADMIN_ID)

        trace = auditor_service.get_trace(CONFIG_ENTITY, "default")
        assert [e.action for e in trace.entries] == [
            AuditAction.CONFIG_INITIALIZED.value,
            AuditAction.SETTLEMENT_TOKEN_SET.value,
            AuditAction.WEEKLY_BUDGET_SET.value,
            AuditAction.WEEKLY_BUDGET_SET.value,
            AuditAction.ENGINE_PAUSED.value,
        ]
        change = trace.entries[3].payload
        assert change == {"field": "weekly_interest_budget", "old_value": "700", "new_value": "800"}
        assert auditor_service.validate_chain()

    def test_config_changed_logged(self, config_service, initialized_config, captured_logs):
        config_service.set_periods_to_distribute(12, actor_id=ADMIN_ID)
        logs = [r for r in captured_logs() if r["message"] == "config_changed"]
        assert len(logs) == 1
        assert logs[0]["field"] == "periods_to_distribute"
        assert logs[0]["new_value"] == "12"
        assert logs[0]["old_value"] == "0"
