"""
Pydantic data models for the TradeGuard bankroll core.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Outcome(str, Enum):
    WIN = "WIN"
    LOSS = "LOSS"


class Strategy(str, Enum):
    FIXED = "FIXED"
    PERCENTAGE = "PERCENTAGE"
    MASANIELLO = "MASANIELLO"


class RiskTolerance(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class MarketSentiment(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    HIGH_VOLATILITY = "HIGH_VOLATILITY"
    NEUTRAL = "NEUTRAL"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"
    SUCCESS = "success"


class InsightCategory(str, Enum):
    STRATEGY = "STRATEGY"
    PROFIT = "PROFIT"
    ANOMALY = "ANOMALY"
    BEHAVIOR = "BEHAVIOR"
    AUTOMATION = "AUTOMATION"
    SOCIAL = "SOCIAL"
    PREDICTION = "PREDICTION"


class ReasonCode(str, Enum):
    DRAWDOWN_LIMIT = "DRAWDOWN_LIMIT"
    MAX_LOSSES = "MAX_LOSSES"
    TAKE_PROFIT = "TAKE_PROFIT"
    STOP_LOSS = "STOP_LOSS"


class Recommendation(str, Enum):
    CONTINUE = "CONTINUE"
    STOP = "STOP"


RISK_MULTIPLIERS = {
    RiskTolerance.LOW: 0.8,
    RiskTolerance.MEDIUM: 1.0,
    RiskTolerance.HIGH: 1.2,
}


class Trade(BaseModel):
    """A single resolved win/loss event."""
    model_config = ConfigDict(frozen=True)

    sequence: int
    stake: float
    outcome: Outcome
    payout_multiplier: float    # e.g. 0.85 for an 85 % broker payout
    profit_or_loss: float
    balance_after: float
    timestamp: datetime


class Configuration(BaseModel):
    """
    Immutable settings snapshot.

    Every limit uses 0 to mean "disabled".  Direct construction rejects bad
    values; ``config.apply_update`` recovers them and returns a new snapshot.
    """
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    initial_balance: float = Field(default=100.0, ge=0)
    payout_percentage: float = Field(default=85.0, ge=0)
    strategy: Strategy = Strategy.MASANIELLO
    fixed_amount: float = Field(default=1.0, ge=0)
    risk_percentage: float = Field(default=5.0, ge=0, le=100)
    total_events: int = Field(default=20, ge=0)
    target_wins: int = Field(default=12, ge=0)
    risk_tolerance: RiskTolerance = RiskTolerance.MEDIUM
    enable_autopilot: bool = Field(default=False, strict=True)

    # ── Risk limits ──────────────────────────────────────────────────────────
    max_losses_allowed: int = Field(default=0, ge=0)
    max_drawdown_warning: float = Field(default=0.0, ge=0, le=100)   # percent from peak
    session_take_profit: float = Field(default=0.0, ge=0)
    session_stop_loss: float = Field(default=0.0, ge=0)

    @field_validator(
        "initial_balance",
        "payout_percentage",
        "fixed_amount",
        "risk_percentage",
        "total_events",
        "target_wins",
        "max_losses_allowed",
        "max_drawdown_warning",
        "session_take_profit",
        "session_stop_loss",
        mode="before",
    )
    @classmethod
    def _reject_booleans(cls, value):
        if isinstance(value, bool):
            raise ValueError("boolean is not a number")
        return value

    @property
    def payout_multiplier(self) -> float:
        return self.payout_percentage / 100.0


class SessionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    initial_balance: float
    current_balance: float
    peak_balance: float
    current_drawdown: float     # percent, 0 when peak is 0
    total_wins: int
    total_losses: int

    @property
    def total_trades(self) -> int:
        return self.total_wins + self.total_losses

    @property
    def net_profit(self) -> float:
        return self.current_balance - self.initial_balance


# ── Advisory actions ─────────────────────────────────────────────────────────
# Tagged command values; the caller decides whether to apply them.

class SwitchStrategy(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["SWITCH_STRATEGY"] = "SWITCH_STRATEGY"
    target: Strategy
    fixed_amount: Optional[float] = None


class RaiseTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["RAISE_TARGET"] = "RAISE_TARGET"
    delta: int


class SetMaxLosses(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["SET_MAX_LOSSES"] = "SET_MAX_LOSSES"
    value: int


AdvisoryAction = Union[SwitchStrategy, RaiseTarget, SetMaxLosses]


class Insight(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    category: InsightCategory
    title: str
    message: str
    severity: Severity
    timestamp: datetime
    action_label: Optional[str] = None
    action: Optional[AdvisoryAction] = None


class LockReason(BaseModel):
    code: ReasonCode
    detail: str


class LockState(BaseModel):
    locked: bool
    reasons: List[LockReason] = []

    @property
    def codes(self) -> Set[ReasonCode]:
        return {r.code for r in self.reasons}


class MasanielloProgress(BaseModel):
    wins_needed: int
    trades_left: int
    complete: bool
    success: bool


class SimulationResult(BaseModel):
    """Outcome of the 5-trade forward projection."""
    next5_trades_prob: int          # integer percent, 0-100
    projected_balance: float
    recommendation: Recommendation
    win_probability: float          # adjusted per-trade probability used


class StrategyComparisonResult(BaseModel):
    strategy: Strategy
    strategy_name: str
    final_balance_avg: float
    bankruptcy_risk: float          # percent of trials ruined
    win_probability: float          # percent of trials ending in profit
    recommended: bool = False


# ── API payloads ─────────────────────────────────────────────────────────────

class TradeRequest(BaseModel):
    outcome: Outcome


class SentimentRequest(BaseModel):
    sentiment: MarketSentiment


class ProjectionRequest(BaseModel):
    sentiment: Optional[MarketSentiment] = None
    seed: Optional[int] = None


class ComparisonRequest(BaseModel):
    start_balance: Optional[float] = Field(default=None, gt=0)
    trade_count: int = Field(default=100, ge=1, le=10_000)
    estimated_win_rate: float = Field(default=55.0, ge=0, le=100)
    payout: float = Field(default=0.85, ge=0)
    seed: Optional[int] = None


class SessionSummary(BaseModel):
    state: SessionState
    lock: LockState
    next_stake: float
    expected_profit: float
    net_profit: float
    roi: float                      # percent of initial balance
    win_rate: float                 # percent
    sentiment: MarketSentiment
    masaniello: Optional[MasanielloProgress] = None


class InsightList(BaseModel):
    insights: List[Insight]
