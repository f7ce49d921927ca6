"""
Rule-based advisory scanner over the trade history.

Every rule is evaluated independently on each pass.  The fresh batch is then
merged with the previous list: the current instance of an identifier replaces
the stale one, results are ordered newest first and only the three most
recent identifiers survive.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
from scipy import stats

from analytics import is_alternating, outcome_array, roi_percent, win_rate
from models import (
    Configuration,
    Insight,
    InsightCategory,
    MarketSentiment,
    Outcome,
    RaiseTarget,
    SessionState,
    SetMaxLosses,
    Severity,
    Strategy,
    SwitchStrategy,
    Trade,
)

logger = logging.getLogger(__name__)

MAX_INSIGHTS = 3
MIN_TRADES = 3

# Thresholds, win rates in percent unless noted.
SOCIAL_MIN_TRADES = 5
SOCIAL_MAX_WIN_RATE = 45.0
MOMENTUM_MIN_TRADES = 8
MOMENTUM_MIN_WIN_RATE = 60.0
RECENT_WINDOW = 5
HOT_STREAK_WIN_RATE = 80.0
DEFENSIVE_WIN_RATE = 20.0
UPGRADE_MIN_TRADES = 5
UPGRADE_MARGIN = 0.15          # fraction, not percent
ALTERNATING_WINDOW = 6
MARTINGALE_FACTOR = 1.5
PROFIT_LOCK_ROI = 15.0


def _insight(now: datetime, **fields) -> Insight:
    return Insight(timestamp=now, **fields)


def _target_probability(wins: int, played: int, config: Configuration, new_target: int) -> float:
    """Binomial chance of reaching ``new_target`` wins at the observed rate."""
    needed = new_target - wins
    remaining = config.total_events - played
    if needed <= 0:
        return 100.0
    if remaining < needed or played == 0:
        return 0.0
    p = wins / played
    return float(stats.binom.sf(needed - 1, remaining, p)) * 100.0


def scan(
    trades: Sequence[Trade],
    state: SessionState,
    config: Configuration,
    now: datetime,
) -> List[Insight]:
    """Run every rule once and return the matches in rule order."""
    if len(trades) < MIN_TRADES:
        return []

    outcomes = outcome_array(trades)
    n = len(trades)
    rate = win_rate(outcomes) * 100.0
    recent_rate = win_rate(outcomes[-RECENT_WINDOW:]) * 100.0
    roi = roi_percent(state)
    found: List[Insight] = []

    # ── Social proof ─────────────────────────────────────────────────────────
    if n >= SOCIAL_MIN_TRADES and rate < SOCIAL_MAX_WIN_RATE and config.strategy is Strategy.PERCENTAGE:
        found.append(_insight(
            now,
            id="collab-masa-suggest",
            category=InsightCategory.SOCIAL,
            title="Community Insight",
            message=(
                "Traders with similar ~40% win rates did better with the "
                "Masaniello strategy than with Percentage staking."
            ),
            severity=Severity.INFO,
            action_label="Try Masaniello",
            action=SwitchStrategy(target=Strategy.MASANIELLO),
        ))

    # ── Momentum forecast ────────────────────────────────────────────────────
    if (
        n >= MOMENTUM_MIN_TRADES
        and config.strategy is Strategy.MASANIELLO
        and bool(np.all(outcomes[-3:]))
        and rate > MOMENTUM_MIN_WIN_RATE
    ):
        found.append(_insight(
            now,
            id="time-series-bull",
            category=InsightCategory.PREDICTION,
            title="Trend Forecast",
            message=(
                "Three straight wins on a strong overall win rate. Consider "
                "raising your Masaniello target to capture the momentum."
            ),
            severity=Severity.SUCCESS,
            action_label="Boost Target (+1)",
            action=RaiseTarget(delta=1),
        ))

    if config.enable_autopilot:
        # ── Autopilot: hot streak ────────────────────────────────────────────
        if recent_rate >= HOT_STREAK_WIN_RATE and config.strategy is Strategy.FIXED:
            found.append(_insight(
                now,
                id="auto-switch-compound",
                category=InsightCategory.AUTOMATION,
                title="Hot Streak Detected!",
                message=(
                    f"You won {recent_rate:.0f}% of your last trades. Switching "
                    "to Percentage mode would compound these gains."
                ),
                severity=Severity.SUCCESS,
                action_label="Switch to Percentage (Compound)",
                action=SwitchStrategy(target=Strategy.PERCENTAGE),
            ))

        # ── Autopilot: defensive ─────────────────────────────────────────────
        if recent_rate <= DEFENSIVE_WIN_RATE and config.strategy is Strategy.PERCENTAGE:
            found.append(_insight(
                now,
                id="auto-switch-defensive",
                category=InsightCategory.AUTOMATION,
                title="Preserve Capital",
                message=(
                    "Recent performance is low. Switch to a Fixed Amount to "
                    "prevent a rapid drawdown."
                ),
                severity=Severity.WARNING,
                action_label="Switch to Fixed (Safe)",
                action=SwitchStrategy(
                    target=Strategy.FIXED,
                    fixed_amount=config.initial_balance * 0.01,
                ),
            ))

        # ── Autopilot: dynamic Masaniello target ─────────────────────────────
        if config.strategy is Strategy.MASANIELLO and n >= UPGRADE_MIN_TRADES and config.total_events > 0:
            expected = config.target_wins / config.total_events
            if state.total_wins / n > expected + UPGRADE_MARGIN:
                new_target = min(config.total_events, config.target_wins + 2)
                if new_target > config.target_wins:
                    chance = _target_probability(state.total_wins, n, config, new_target)
                    found.append(_insight(
                        now,
                        id="masa-dynamic-upgrade",
                        category=InsightCategory.AUTOMATION,
                        title="Performance Exceeding Target",
                        message=(
                            f"You are winning faster than expected. Probability of "
                            f"hitting {new_target} wins is now {chance:.0f}%. Update target?"
                        ),
                        severity=Severity.SUCCESS,
                        action_label=f"Upgrade Target to {new_target}",
                        action=RaiseTarget(delta=new_target - config.target_wins),
                    ))

    # ── Alternating pattern ──────────────────────────────────────────────────
    if n >= ALTERNATING_WINDOW and is_alternating(outcomes[-ALTERNATING_WINDOW:]):
        found.append(_insight(
            now,
            id="pattern-alternating",
            category=InsightCategory.ANOMALY,
            title="Unnatural Pattern Detected",
            message=(
                "W/L/W/L/W/L pattern detected. This often points to an "
                "algorithmic counterparty. Consider pausing."
            ),
            severity=Severity.CRITICAL,
        ))

    # ── Martingale behaviour ─────────────────────────────────────────────────
    last, prev = trades[-1], trades[-2]
    if (
        last.outcome is Outcome.LOSS
        and prev.outcome is Outcome.LOSS
        and last.stake > prev.stake * MARTINGALE_FACTOR
    ):
        found.append(_insight(
            now,
            id="beh-martingale-1",
            category=InsightCategory.BEHAVIOR,
            title="Dangerous Behavior",
            message=(
                f"Martingale detected: -{last.stake:.2f} loss after raising the "
                "stake. A Safety Brake can stop the session."
            ),
            severity=Severity.CRITICAL,
            action_label="Auto-Set Safety Brake",
            action=SetMaxLosses(value=state.total_losses + 3),
        ))

    # ── Profit lock-in ───────────────────────────────────────────────────────
    if roi >= PROFIT_LOCK_ROI and state.net_profit > 0:
        found.append(_insight(
            now,
            id="alert-profit-1",
            category=InsightCategory.PROFIT,
            title="Smart Take Profit",
            message=f"+{roi:.1f}% ROI secured. Lock in profit now?",
            severity=Severity.WARNING,
        ))

    return found


def merge_insights(
    fresh: Iterable[Insight],
    previous: Iterable[Insight],
    limit: int = MAX_INSIGHTS,
) -> List[Insight]:
    """Deduplicate by id (fresh wins), newest first, at most ``limit``."""
    by_id: Dict[str, Insight] = {}
    for item in list(fresh) + list(previous):
        by_id.setdefault(item.id, item)
    # sorted() is stable: equal timestamps keep fresh-before-previous order.
    ordered = sorted(by_id.values(), key=lambda i: i.timestamp, reverse=True)
    return ordered[:limit]


def generate_insights(
    trades: Sequence[Trade],
    state: SessionState,
    config: Configuration,
    sentiment: MarketSentiment,
    previous: Sequence[Insight] = (),
    now: Optional[datetime] = None,
) -> List[Insight]:
    """
    Recompute advisories for the current session.

    Args:
        trades:    Ledger contents.
        state:     Matching SessionState snapshot.
        config:    Current configuration.
        sentiment: Latest market sentiment.  A change triggers a fresh pass;
                   no rule reads it.
        previous:  The list returned by the previous pass.
        now:       Timestamp stamped on new insights (defaults to UTC now).

    Returns:
        At most three insights, unique by id, newest first.
    """
    now = now or datetime.now(timezone.utc)
    fresh = scan(trades, state, config, now)
    if fresh:
        logger.debug("Insight rules matched: %s", [i.id for i in fresh])
    return merge_insights(fresh, previous)
