"""
Stake sizing for the next trade.
"""
from __future__ import annotations

from models import (
    RISK_MULTIPLIERS,
    Configuration,
    MasanielloProgress,
    SessionState,
    Strategy,
)


def masaniello_progress(state: SessionState, config: Configuration) -> MasanielloProgress:
    """Wins still needed and events left in the current Masaniello cycle."""
    remaining_trades = config.total_events - state.total_trades
    remaining_wins = config.target_wins - state.total_wins
    return MasanielloProgress(
        wins_needed=max(0, remaining_wins),
        trades_left=max(0, remaining_trades),
        complete=remaining_trades <= 0 or remaining_wins <= 0,
        success=remaining_wins <= 0,
    )


def masaniello_ratio(remaining_wins: float, remaining_trades: float) -> float:
    """
    Fraction of the balance to commit under Masaniello sizing.

    Staking ``remaining_wins / remaining_trades`` of the bankroll keeps the
    stake flat while wins arrive on schedule and shrinks it when ahead.
    Returns 0 once the target is met or the events are used up.
    """
    if remaining_trades <= 0 or remaining_wins <= 0:
        return 0.0
    return remaining_wins / remaining_trades


def next_stake(state: SessionState, config: Configuration, locked: bool) -> float:
    """
    Amount to commit on the next event.

    Always in ``[0, state.current_balance]``; exactly 0 while locked.
    """
    if locked:
        return 0.0

    balance = state.current_balance
    if config.strategy is Strategy.FIXED:
        amount = config.fixed_amount
    elif config.strategy is Strategy.PERCENTAGE:
        amount = balance * config.risk_percentage / 100.0
    else:
        ratio = masaniello_ratio(
            config.target_wins - state.total_wins,
            config.total_events - state.total_trades,
        )
        if ratio == 0.0:
            return 0.0
        amount = max(0.0, balance * ratio)

    amount *= RISK_MULTIPLIERS[config.risk_tolerance]
    return max(0.0, min(amount, balance))
