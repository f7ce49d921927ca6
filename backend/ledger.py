"""
Append-only trade ledger.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from analytics import compute_session_state
from errors import InvalidStakeError
from models import Outcome, SessionState, Trade

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Ledger:
    """
    Records resolved trades and keeps the derived SessionState current.

    Trades are only ever appended; ``reset`` is the single way to remove them.
    """

    def __init__(
        self,
        initial_balance: float,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._initial_balance = float(initial_balance)
        self._clock = clock or _utcnow
        self._trades: List[Trade] = []
        self._state = compute_session_state(self._trades, self._initial_balance)

    @property
    def trades(self) -> List[Trade]:
        return list(self._trades)

    @property
    def initial_balance(self) -> float:
        return self._initial_balance

    def __len__(self) -> int:
        return len(self._trades)

    def append(self, outcome: Outcome, stake: float, payout_multiplier: float) -> Trade:
        """
        Record one resolved event.

        WIN adds ``stake * payout_multiplier``; LOSS subtracts ``stake``.

        Raises:
            InvalidStakeError: If ``stake`` is negative.
        """
        if stake < 0:
            raise InvalidStakeError(f"Stake must be >= 0, got {stake!r}")

        outcome = Outcome(outcome)
        if outcome is Outcome.WIN:
            pnl = stake * payout_multiplier
        else:
            pnl = -stake

        trade = Trade(
            sequence=len(self._trades) + 1,
            stake=stake,
            outcome=outcome,
            payout_multiplier=payout_multiplier,
            profit_or_loss=pnl,
            balance_after=self._state.current_balance + pnl,
            timestamp=self._clock(),
        )
        self._trades.append(trade)
        self._state = compute_session_state(self._trades, self._initial_balance)

        logger.info(
            "Trade #%d %s stake=%.2f pnl=%+.2f balance=%.2f",
            trade.sequence,
            outcome.value,
            stake,
            pnl,
            self._state.current_balance,
        )
        return trade

    def reset(self, initial_balance: Optional[float] = None) -> None:
        """Drop every trade; optionally adopt a new starting balance."""
        if initial_balance is not None:
            self._initial_balance = float(initial_balance)
        self._trades.clear()
        self._state = compute_session_state(self._trades, self._initial_balance)
        logger.info("Ledger reset, initial balance %.2f", self._initial_balance)

    def snapshot(self) -> SessionState:
        return self._state
