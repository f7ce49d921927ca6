"""
Derived session statistics for a sequence of resolved trades.

All functions operate on NumPy arrays built from the ledger's trade list.
"""
from __future__ import annotations

from typing import List, Sequence

import numpy as np

from models import Outcome, SessionState, Trade


def pnl_array(trades: Sequence[Trade]) -> np.ndarray:
    return np.array([t.profit_or_loss for t in trades], dtype=np.float64)


def outcome_array(trades: Sequence[Trade]) -> np.ndarray:
    """Boolean array, True where the trade was a win."""
    return np.array([t.outcome is Outcome.WIN for t in trades], dtype=bool)


def compute_session_state(trades: Sequence[Trade], initial_balance: float) -> SessionState:
    """
    Rebuild balance, peak, drawdown and win/loss counts from scratch.

    Args:
        trades:          Ledger contents in sequence order.
        initial_balance: Balance before the first trade.

    Returns:
        A frozen SessionState snapshot.
    """
    if not trades:
        return SessionState(
            initial_balance=initial_balance,
            current_balance=initial_balance,
            peak_balance=initial_balance,
            current_drawdown=0.0,
            total_wins=0,
            total_losses=0,
        )

    # ── Equity curve ────────────────────────────────────────────────────────────
    equity: np.ndarray = initial_balance + np.cumsum(pnl_array(trades))
    current = float(equity[-1])

    # Peak includes the starting balance so an opening loss registers drawdown.
    peak = max(float(initial_balance), float(np.max(equity)))
    drawdown = (peak - current) / peak * 100.0 if peak > 0 else 0.0

    wins = int(np.count_nonzero(outcome_array(trades)))
    return SessionState(
        initial_balance=initial_balance,
        current_balance=current,
        peak_balance=peak,
        current_drawdown=drawdown,
        total_wins=wins,
        total_losses=len(trades) - wins,
    )


def compute_equity_curve(trades: Sequence[Trade], initial_balance: float) -> List[float]:
    """Balance after each trade, prefixed with the starting balance."""
    equity = initial_balance + np.cumsum(pnl_array(trades))
    return [float(initial_balance)] + equity.tolist()


def win_rate(outcomes: np.ndarray) -> float:
    """Fraction of wins in ``outcomes`` (0.0 when empty)."""
    if outcomes.size == 0:
        return 0.0
    return float(np.mean(outcomes))


def roi_percent(state: SessionState) -> float:
    if state.initial_balance <= 0:
        return 0.0
    return state.net_profit / state.initial_balance * 100.0


def is_alternating(outcomes: np.ndarray) -> bool:
    """True when no two neighbouring outcomes are equal."""
    if outcomes.size < 2:
        return False
    return bool(np.all(outcomes[1:] != outcomes[:-1]))
