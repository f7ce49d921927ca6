"""Tests for configuration updates and advisory actions."""

import logging

import pytest
from pydantic import ValidationError

from config import apply_action, apply_update
from models import (
    Configuration,
    RaiseTarget,
    RiskTolerance,
    SetMaxLosses,
    Strategy,
    SwitchStrategy,
)


# ============================================================================
# TestApplyUpdate
# ============================================================================

class TestApplyUpdate:

    def test_returns_new_snapshot(self):
        base = Configuration()
        updated = apply_update(base, {"fixed_amount": 5})
        assert updated.fixed_amount == 5.0
        assert base.fixed_amount == 1.0
        assert updated is not base

    def test_snapshot_is_frozen(self):
        with pytest.raises(Exception):
            Configuration().fixed_amount = 3.0

    def test_numeric_strings_accepted(self):
        updated = apply_update(Configuration(), {"initial_balance": "250.5", "total_events": "30"})
        assert updated.initial_balance == 250.5
        assert updated.total_events == 30

    def test_non_numeric_becomes_zero(self, caplog):
        with caplog.at_level(logging.WARNING):
            updated = apply_update(Configuration(), {"fixed_amount": "abc"})
        assert updated.fixed_amount == 0.0
        assert "fixed_amount" in caplog.text

    def test_negative_becomes_zero(self):
        updated = apply_update(Configuration(), {"session_stop_loss": -10})
        assert updated.session_stop_loss == 0.0

    def test_percent_above_hundred_becomes_zero(self):
        updated = apply_update(Configuration(), {"risk_percentage": 150})
        assert updated.risk_percentage == 0.0

    def test_infinite_becomes_zero(self):
        updated = apply_update(Configuration(), {"payout_percentage": float("inf")})
        assert updated.payout_percentage == 0.0

    def test_boolean_is_not_a_number(self):
        updated = apply_update(Configuration(), {"max_losses_allowed": True})
        assert updated.max_losses_allowed == 0

    def test_enum_values(self):
        updated = apply_update(Configuration(), {"strategy": "FIXED", "risk_tolerance": "HIGH"})
        assert updated.strategy is Strategy.FIXED
        assert updated.risk_tolerance is RiskTolerance.HIGH

    def test_invalid_enum_falls_back_to_default(self):
        base = Configuration(strategy=Strategy.FIXED)
        updated = apply_update(base, {"strategy": "MARTINGALE"})
        assert updated.strategy is Strategy.MASANIELLO

    def test_invalid_flag_falls_back_to_default(self):
        base = Configuration(enable_autopilot=True)
        updated = apply_update(base, {"enable_autopilot": "yes"})
        assert updated.enable_autopilot is False

    def test_unknown_field_ignored(self):
        base = Configuration()
        assert apply_update(base, {"leverage": 100}) == base

    def test_target_wins_clamped_to_total_events(self):
        updated = apply_update(Configuration(), {"total_events": 10, "target_wins": 15})
        assert updated.target_wins == 10


# ============================================================================
# TestApplyAction
# ============================================================================

class TestApplyAction:

    def test_switch_strategy(self):
        updated = apply_action(Configuration(), SwitchStrategy(target=Strategy.PERCENTAGE))
        assert updated.strategy is Strategy.PERCENTAGE
        assert updated.fixed_amount == 1.0

    def test_switch_with_fixed_amount(self):
        action = SwitchStrategy(target=Strategy.FIXED, fixed_amount=2.5)
        updated = apply_action(Configuration(strategy=Strategy.PERCENTAGE), action)
        assert updated.strategy is Strategy.FIXED
        assert updated.fixed_amount == 2.5

    def test_raise_target(self):
        updated = apply_action(Configuration(total_events=20, target_wins=12), RaiseTarget(delta=1))
        assert updated.target_wins == 13

    def test_raise_target_capped(self):
        updated = apply_action(Configuration(total_events=20, target_wins=19), RaiseTarget(delta=2))
        assert updated.target_wins == 20

    def test_set_max_losses(self):
        updated = apply_action(Configuration(), SetMaxLosses(value=7))
        assert updated.max_losses_allowed == 7

    def test_unsupported_action(self):
        with pytest.raises(TypeError):
            apply_action(Configuration(), "RESET_EVERYTHING")


# ============================================================================
# TestConfigurationBounds
# ============================================================================

class TestConfigurationBounds:

    @pytest.mark.parametrize(
        "overrides",
        [
            {"initial_balance": -5},
            {"risk_percentage": 101},
            {"max_drawdown_warning": 150},
            {"payout_percentage": float("nan")},
            {"session_take_profit": float("inf")},
            {"max_losses_allowed": True},
            {"enable_autopilot": "yes"},
        ],
    )
    def test_direct_construction_rejects_bad_values(self, overrides):
        with pytest.raises(ValidationError):
            Configuration(**overrides)

    def test_recovered_update_still_validates(self):
        updated = apply_update(Configuration(), {"max_drawdown_warning": 250, "total_events": -3})
        assert updated.max_drawdown_warning == 0.0
        assert updated.total_events == 0
        assert updated.target_wins == 0
        assert Configuration.model_validate(updated.model_dump()) == updated

    def test_each_rejected_field_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING):
            apply_update(Configuration(), {"fixed_amount": -1, "strategy": "MARTINGALE"})
        assert "fixed_amount" in caplog.text
        assert "strategy" in caplog.text
