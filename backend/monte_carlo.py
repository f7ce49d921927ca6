"""
Vectorised Monte Carlo projections for a binary win/loss bankroll.

Methodology
-----------
Every trial starts from the same balance and steps forward one event at a
time.  At each step a Bernoulli draw decides win or loss for all trials at
once; the stake rule is re-applied to each trial's evolving balance.  Trials
are independent, so the loop runs over steps, never over simulations.

Reproducibility
---------------
Both entry points take an explicit ``numpy.random.Generator``.  The caller
owns the seed policy; a fixed seed gives identical results.

Cancellation
------------
An optional ``threading.Event`` is checked between steps; when set the run
stops with ``SimulationCancelled``.
"""
from __future__ import annotations

import logging
import math
import threading
from typing import Dict, List, Optional

import numpy as np

from errors import SimulationCancelled
from models import (
    Configuration,
    MarketSentiment,
    Recommendation,
    SessionState,
    SimulationResult,
    Strategy,
    StrategyComparisonResult,
)

logger = logging.getLogger(__name__)

NEXT5_SIMULATIONS = 1_000
NEXT5_HORIZON = 5
COMPARISON_SIMULATIONS = 500

# Recommend CONTINUE only above this probability of profit (percent).
CONTINUE_THRESHOLD = 55

# Candidates whose ruin probability is below this (percent) are "safe".
SAFE_BANKRUPTCY_RISK = 5.0

MIN_WIN_PROBABILITY = 0.10
MAX_WIN_PROBABILITY = 0.90

SENTIMENT_OFFSETS: Dict[MarketSentiment, float] = {
    MarketSentiment.HIGH_VOLATILITY: -0.10,
    MarketSentiment.BULLISH: 0.05,
    MarketSentiment.BEARISH: -0.05,
    MarketSentiment.NEUTRAL: 0.0,
}

_FIXED_FRACTION = 0.01
_PERCENT_FRACTION = 0.03

_STRATEGY_NAMES: Dict[Strategy, str] = {
    Strategy.FIXED: "Fixed Amount (1%)",
    Strategy.PERCENTAGE: "Percentage (3%)",
    Strategy.MASANIELLO: "Masaniello (Safe)",
}


def _check_cancel(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise SimulationCancelled("Projection cancelled by caller.")


def _round_percent(hits: int, total: int) -> int:
    """Nearest integer percent, halves rounded up."""
    return int(math.floor(100.0 * hits / total + 0.5))


def adjusted_win_probability(state: SessionState, sentiment: MarketSentiment) -> float:
    """Observed win rate shifted by sentiment and clamped to [0.10, 0.90]."""
    if state.total_trades > 0:
        base = state.total_wins / state.total_trades
    else:
        base = 0.5
    base += SENTIMENT_OFFSETS[MarketSentiment(sentiment)]
    return max(MIN_WIN_PROBABILITY, min(MAX_WIN_PROBABILITY, base))


def project_next5(
    state: SessionState,
    config: Configuration,
    sentiment: MarketSentiment,
    rng: np.random.Generator,
    n_simulations: int = NEXT5_SIMULATIONS,
    horizon: int = NEXT5_HORIZON,
    cancel: Optional[threading.Event] = None,
) -> SimulationResult:
    """
    Simulate the next ``horizon`` trades under percentage staking.

    Args:
        state:         Current session snapshot (start balance, win rate).
        config:        Supplies ``risk_percentage`` and payout.
        sentiment:     Market sentiment shifting the win probability.
        rng:           Seeded NumPy generator.
        n_simulations: Number of independent trials.
        horizon:       Trades per trial.
        cancel:        Optional cancellation token.

    Returns:
        SimulationResult with integer profit probability and mean balance.
    """
    p = adjusted_win_probability(state, sentiment)
    start = state.current_balance
    payout = config.payout_multiplier
    risk = config.risk_percentage / 100.0

    balances = np.full(n_simulations, start, dtype=np.float64)
    for _ in range(horizon):
        _check_cancel(cancel)
        stakes = balances * risk
        wins = rng.random(n_simulations) < p
        balances = np.where(wins, balances + stakes * payout, balances - stakes)

    profitable = int(np.count_nonzero(balances > start))
    prob = _round_percent(profitable, n_simulations)
    projected = float(np.mean(balances))

    logger.info(
        "Next-%d projection: p=%.2f prob_profit=%d%% projected=%.2f",
        horizon,
        p,
        prob,
        projected,
    )
    return SimulationResult(
        next5_trades_prob=prob,
        projected_balance=projected,
        recommendation=Recommendation.CONTINUE if prob > CONTINUE_THRESHOLD else Recommendation.STOP,
        win_probability=p,
    )


def _simulate_candidate(
    strategy: Strategy,
    start_balance: float,
    trade_count: int,
    p: float,
    payout: float,
    target: int,
    rng: np.random.Generator,
    n_simulations: int,
    cancel: Optional[threading.Event],
) -> StrategyComparisonResult:
    balances = np.full(n_simulations, start_balance, dtype=np.float64)
    bankrupt = np.zeros(n_simulations, dtype=bool)
    alive = ~bankrupt

    # Masaniello target shrinks with each win of its trial.
    wins_needed = np.full(n_simulations, target, dtype=np.int64)

    for step in range(trade_count):
        # Ruin only counts while trades remain; the final step's result stands.
        ruined = alive & (balances <= 0)
        bankrupt |= ruined
        alive &= ~ruined
        if not alive.any():
            break
        _check_cancel(cancel)

        if strategy is Strategy.FIXED:
            stakes = np.full(n_simulations, start_balance * _FIXED_FRACTION)
        elif strategy is Strategy.PERCENTAGE:
            stakes = balances * _PERCENT_FRACTION
        else:
            remaining = trade_count - step
            # Never stake more than the trial balance.
            ratios = np.clip(wins_needed / remaining, 0.0, 1.0)
            stakes = balances * ratios

        stakes = np.where(alive, stakes, 0.0)
        wins = rng.random(n_simulations) < p
        balances = np.where(wins, balances + stakes * payout, balances - stakes)
        wins_needed -= (wins & alive).astype(np.int64)

    return StrategyComparisonResult(
        strategy=strategy,
        strategy_name=_STRATEGY_NAMES[strategy],
        final_balance_avg=float(np.mean(balances)),
        bankruptcy_risk=float(np.mean(bankrupt)) * 100.0,
        win_probability=float(np.mean(balances > start_balance)) * 100.0,
    )


def pick_recommended(results: List[StrategyComparisonResult]) -> List[StrategyComparisonResult]:
    """
    Flag exactly one result as recommended.

    Best average ending balance among candidates with ruin risk under 5 %,
    otherwise the candidate with the lowest ruin risk.
    """
    if not results:
        return results
    safe = [r for r in results if r.bankruptcy_risk < SAFE_BANKRUPTCY_RISK]
    if safe:
        best = max(safe, key=lambda r: r.final_balance_avg)
    else:
        best = min(results, key=lambda r: r.bankruptcy_risk)
    return [r.model_copy(update={"recommended": r is best}) for r in results]


def compare_strategies(
    start_balance: float,
    trade_count: int,
    estimated_win_rate: float,
    payout: float,
    rng: np.random.Generator,
    n_simulations: int = COMPARISON_SIMULATIONS,
    cancel: Optional[threading.Event] = None,
) -> List[StrategyComparisonResult]:
    """
    Race Fixed, Percentage and Masaniello sizing over the same horizon.

    Args:
        start_balance:      Balance every trial starts from.
        trade_count:        Events per trial.
        estimated_win_rate: Constant win probability, in percent.
        payout:             Profit multiplier on a win (0.85 for 85 %).
        rng:                Seeded NumPy generator.
        n_simulations:      Trials per candidate.
        cancel:             Optional cancellation token.

    Returns:
        One result per candidate, exactly one of them recommended.
    """
    p = estimated_win_rate / 100.0
    target = math.floor(trade_count * estimated_win_rate / 100)
    results = [
        _simulate_candidate(
            strategy, start_balance, trade_count, p, payout, target, rng, n_simulations, cancel
        )
        for strategy in (Strategy.FIXED, Strategy.PERCENTAGE, Strategy.MASANIELLO)
    ]
    results = pick_recommended(results)

    for r in results:
        logger.info(
            "Comparison %-18s avg=%.2f ruin=%.1f%% profit=%.1f%%%s",
            r.strategy_name,
            r.final_balance_avg,
            r.bankruptcy_risk,
            r.win_probability,
            " *" if r.recommended else "",
        )
    return results

