"""Tests for the risk-limit safety gate."""

from ledger import Ledger
from models import Configuration, Outcome, ReasonCode, SessionState
from safety import evaluate_safety


def _make_state(balance=100.0, peak=None, drawdown=0.0, wins=0, losses=0) -> SessionState:
    return SessionState(
        initial_balance=100.0,
        current_balance=balance,
        peak_balance=peak if peak is not None else max(balance, 100.0),
        current_drawdown=drawdown,
        total_wins=wins,
        total_losses=losses,
    )


# ============================================================================
# TestIndividualLimits
# ============================================================================

class TestIndividualLimits:

    def test_all_disabled_never_locks(self):
        state = _make_state(balance=1.0, peak=300.0, drawdown=99.0, losses=50)
        lock = evaluate_safety(state, Configuration())
        assert not lock.locked
        assert lock.reasons == []

    def test_drawdown_limit(self):
        state = _make_state(balance=80.0, drawdown=20.0, losses=1)
        lock = evaluate_safety(state, Configuration(max_drawdown_warning=20.0))
        assert lock.locked
        assert lock.codes == {ReasonCode.DRAWDOWN_LIMIT}

    def test_drawdown_below_limit(self):
        state = _make_state(balance=85.0, drawdown=15.0, losses=1)
        assert not evaluate_safety(state, Configuration(max_drawdown_warning=20.0)).locked

    def test_max_losses_counts_total(self):
        state = _make_state(balance=100.0, wins=5, losses=3)
        lock = evaluate_safety(state, Configuration(max_losses_allowed=3))
        assert lock.codes == {ReasonCode.MAX_LOSSES}

    def test_take_profit(self):
        state = _make_state(balance=130.0, wins=4)
        lock = evaluate_safety(state, Configuration(session_take_profit=30.0))
        assert lock.codes == {ReasonCode.TAKE_PROFIT}

    def test_stop_loss(self):
        state = _make_state(balance=70.0, drawdown=30.0, losses=3)
        lock = evaluate_safety(state, Configuration(session_stop_loss=30.0))
        assert lock.codes == {ReasonCode.STOP_LOSS}

    def test_stop_loss_not_reached(self):
        state = _make_state(balance=71.0, drawdown=29.0, losses=3)
        assert not evaluate_safety(state, Configuration(session_stop_loss=30.0)).locked

    def test_profit_measured_from_ledger_start(self):
        # Settings may name a different starting balance than the ledger used.
        state = _make_state(balance=100.85, wins=1)
        config = Configuration(initial_balance=1000.0, session_stop_loss=50.0)
        assert not evaluate_safety(state, config).locked


# ============================================================================
# TestIndependence
# ============================================================================

class TestIndependence:

    def test_rising_balance_never_locks_on_drawdown(self):
        """100 → 300 with the drawdown limit disabled."""
        ledger = Ledger(100.0)
        config = Configuration(max_drawdown_warning=0.0)
        for _ in range(20):
            ledger.append(Outcome.WIN, 10.0, 1.0)
            assert not evaluate_safety(ledger.snapshot(), config).locked
        assert ledger.snapshot().current_balance == 300.0

    def test_multiple_reasons_reported(self):
        state = _make_state(balance=60.0, drawdown=40.0, losses=4)
        config = Configuration(
            max_drawdown_warning=25.0,
            max_losses_allowed=4,
            session_stop_loss=40.0,
            session_take_profit=10.0,
        )
        lock = evaluate_safety(state, config)
        assert lock.locked
        assert lock.codes == {
            ReasonCode.DRAWDOWN_LIMIT,
            ReasonCode.MAX_LOSSES,
            ReasonCode.STOP_LOSS,
        }

    def test_reason_detail_mentions_value(self):
        state = _make_state(balance=100.0, losses=2)
        lock = evaluate_safety(state, Configuration(max_losses_allowed=2))
        assert "2 Losses" in lock.reasons[0].detail
