"""
Single-owner trading session tying ledger, gate, sizing and insights together.

Every mutation (trade, configuration change, reset, sentiment update) runs
the same synchronous recompute pass: ledger snapshot → safety gate → next
stake → insights.  Projections only run when explicitly requested.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional

import numpy as np

from analytics import compute_equity_curve, roi_percent
from config import apply_action, apply_update
from errors import TradingHaltedError, UnknownInsightError
from insights import generate_insights
from ledger import Ledger
from models import (
    ComparisonRequest,
    Configuration,
    Insight,
    LockState,
    MarketSentiment,
    Outcome,
    SessionState,
    SessionSummary,
    SimulationResult,
    Strategy,
    StrategyComparisonResult,
    Trade,
)
from monte_carlo import compare_strategies, project_next5
from safety import evaluate_safety
from strategy import masaniello_progress, next_stake

logger = logging.getLogger(__name__)

# Mock market feed distribution: 20 % volatile, 20 % bullish, 20 % bearish.
_SENTIMENT_CHOICES = [
    MarketSentiment.HIGH_VOLATILITY,
    MarketSentiment.BULLISH,
    MarketSentiment.BEARISH,
    MarketSentiment.NEUTRAL,
]
_SENTIMENT_WEIGHTS = [0.2, 0.2, 0.2, 0.4]


def sample_sentiment(rng: np.random.Generator) -> MarketSentiment:
    """Draw a simulated market sentiment; the caller decides the cadence."""
    return _SENTIMENT_CHOICES[int(rng.choice(len(_SENTIMENT_CHOICES), p=_SENTIMENT_WEIGHTS))]


class TradingSession:
    """
    In-memory bankroll session.

    Configuration survives ``reset_session``; trades and insights do not.
    """

    def __init__(
        self,
        config: Optional[Configuration] = None,
        sentiment: MarketSentiment = MarketSentiment.NEUTRAL,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._config = config or Configuration()
        self._sentiment = MarketSentiment(sentiment)
        self._clock = clock
        self._ledger = Ledger(self._config.initial_balance, clock=clock)
        self._insights: List[Insight] = []
        self._lock = LockState(locked=False)
        self._stake = 0.0
        self._recompute(refresh_insights=False)

    # ── Recompute pass ──────────────────────────────────────────────────────

    def _recompute(self, refresh_insights: bool = True) -> None:
        state = self._ledger.snapshot()
        lock = evaluate_safety(state, self._config)
        if lock.locked and not self._lock.locked:
            logger.warning(
                "Safety lock engaged: %s", ", ".join(r.detail for r in lock.reasons)
            )
        self._lock = lock
        self._stake = next_stake(state, self._config, lock.locked)
        if refresh_insights:
            now = self._clock() if self._clock else None
            self._insights = generate_insights(
                self._ledger.trades, state, self._config, self._sentiment, self._insights, now=now
            )

    # ── Accessors ───────────────────────────────────────────────────────────

    @property
    def config(self) -> Configuration:
        return self._config

    @property
    def sentiment(self) -> MarketSentiment:
        return self._sentiment

    @property
    def trades(self) -> List[Trade]:
        return self._ledger.trades

    def get_state(self) -> SessionState:
        return self._ledger.snapshot()

    def get_next_stake(self) -> float:
        return self._stake

    def get_lock_state(self) -> LockState:
        return self._lock

    def get_insights(self) -> List[Insight]:
        return list(self._insights)

    def equity_curve(self) -> List[float]:
        return compute_equity_curve(self._ledger.trades, self._ledger.initial_balance)

    def summary(self) -> SessionSummary:
        state = self._ledger.snapshot()
        played = state.total_trades
        return SessionSummary(
            state=state,
            lock=self._lock,
            next_stake=self._stake,
            expected_profit=self._stake * self._config.payout_multiplier,
            net_profit=state.net_profit,
            roi=roi_percent(state),
            win_rate=state.total_wins / played * 100.0 if played else 0.0,
            sentiment=self._sentiment,
            masaniello=(
                masaniello_progress(state, self._config)
                if self._config.strategy is Strategy.MASANIELLO
                else None
            ),
        )

    # ── Mutations ───────────────────────────────────────────────────────────

    def append_trade_result(self, outcome: Outcome) -> Trade:
        """
        Record the outcome of the event staked at the current next stake.

        Raises:
            TradingHaltedError: While the safety gate is locked or the
                Masaniello cycle is complete.
        """
        if self._lock.locked:
            raise TradingHaltedError(
                "Trading is locked: " + "; ".join(r.detail for r in self._lock.reasons)
            )
        state = self._ledger.snapshot()
        if self._config.strategy is Strategy.MASANIELLO:
            progress = masaniello_progress(state, self._config)
            if progress.complete:
                raise TradingHaltedError(
                    "Masaniello target achieved." if progress.success
                    else "Masaniello session ended; reset to start a new one."
                )

        trade = self._ledger.append(Outcome(outcome), self._stake, self._config.payout_multiplier)
        self._recompute()
        return trade

    def update_configuration(self, partial: Mapping[str, Any]) -> Configuration:
        self._config = apply_update(self._config, partial)
        # The starting balance only follows the settings while nothing is recorded.
        if len(self._ledger) == 0 and self._ledger.initial_balance != self._config.initial_balance:
            self._ledger.reset(self._config.initial_balance)
        self._recompute()
        return self._config

    def reset_session(self) -> None:
        self._ledger.reset(self._config.initial_balance)
        self._insights = []
        self._lock = LockState(locked=False)
        self._recompute(refresh_insights=False)
        logger.info("Session reset")

    def update_sentiment(self, sentiment: MarketSentiment) -> None:
        self._sentiment = MarketSentiment(sentiment)
        self._recompute()

    def apply_insight_action(self, insight_id: str) -> Configuration:
        """Apply the suggested action of a current insight, as confirmed by the user."""
        for insight in self._insights:
            if insight.id == insight_id and insight.action is not None:
                self._config = apply_action(self._config, insight.action)
                logger.info("Applied %s from insight %r", insight.action.kind, insight_id)
                self._recompute()
                return self._config
        raise UnknownInsightError(insight_id)

    # ── Projections ─────────────────────────────────────────────────────────

    def run_next5_projection(
        self,
        sentiment: Optional[MarketSentiment] = None,
        rng: Optional[np.random.Generator] = None,
        cancel: Optional[threading.Event] = None,
    ) -> SimulationResult:
        return project_next5(
            self._ledger.snapshot(),
            self._config,
            sentiment or self._sentiment,
            rng if rng is not None else np.random.default_rng(),
            cancel=cancel,
        )

    def run_strategy_comparison(
        self,
        params: Optional[ComparisonRequest] = None,
        rng: Optional[np.random.Generator] = None,
        cancel: Optional[threading.Event] = None,
    ) -> List[StrategyComparisonResult]:
        params = params or ComparisonRequest()
        if rng is None:
            rng = np.random.default_rng(params.seed)
        start = params.start_balance if params.start_balance is not None else self._config.initial_balance
        return compare_strategies(
            start,
            params.trade_count,
            params.estimated_win_rate,
            params.payout,
            rng,
            cancel=cancel,
        )
