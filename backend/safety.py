"""
Risk-limit gate.

Each limit is independent and enabled only when its threshold is nonzero.
There is no automatic unlock: once tripped, the owner must reset the session.
"""
from __future__ import annotations

from typing import List

from models import Configuration, LockReason, LockState, ReasonCode, SessionState


def evaluate_safety(state: SessionState, config: Configuration) -> LockState:
    reasons: List[LockReason] = []
    profit = state.net_profit

    if config.max_drawdown_warning > 0 and state.current_drawdown >= config.max_drawdown_warning:
        reasons.append(LockReason(
            code=ReasonCode.DRAWDOWN_LIMIT,
            detail=f"Max Drawdown Limit Reached ({state.current_drawdown:.2f}%)",
        ))

    # Total losses, not a consecutive streak.
    if config.max_losses_allowed > 0 and state.total_losses >= config.max_losses_allowed:
        reasons.append(LockReason(
            code=ReasonCode.MAX_LOSSES,
            detail=f"Max Losses Limit Reached ({state.total_losses} Losses)",
        ))

    if config.session_take_profit > 0 and profit >= config.session_take_profit:
        reasons.append(LockReason(
            code=ReasonCode.TAKE_PROFIT,
            detail=f"Target Session Profit Achieved (+{profit:.2f})",
        ))

    if config.session_stop_loss > 0 and profit <= -config.session_stop_loss:
        reasons.append(LockReason(
            code=ReasonCode.STOP_LOSS,
            detail=f"Stop Loss Limit Reached (Current: {profit:.2f})",
        ))

    return LockState(locked=bool(reasons), reasons=reasons)
