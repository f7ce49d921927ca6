"""
TradeGuard bankroll API: FastAPI backend.

Endpoints
---------
GET   /health                      Health check.
GET   /session                     Balance, lock state, next stake, progress.
GET   /trades                      Recorded trades and equity curve.
POST  /trades                      Record a WIN/LOSS at the current stake.
GET   /config                      Current configuration snapshot.
PATCH /config                      Merge a partial configuration update.
POST  /reset                       Clear trades and insights.
GET   /stake                       Next stake.
GET   /lock                        Safety lock state and reasons.
GET   /insights                    Current advisories.
POST  /insights/{insight_id}/apply Apply an advisory's suggested action.
PUT   /sentiment                   Update the market sentiment input.
POST  /simulate/next5              Monte Carlo projection of the next 5 trades.
POST  /simulate/compare            Fixed vs Percentage vs Masaniello comparison.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

import numpy as np
from fastapi import Body, FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from errors import InvalidStakeError, TradingHaltedError, UnknownInsightError
from models import (
    ComparisonRequest,
    Configuration,
    InsightList,
    LockState,
    ProjectionRequest,
    SentimentRequest,
    SessionSummary,
    SimulationResult,
    StrategyComparisonResult,
    Trade,
    TradeRequest,
)
from session import TradingSession

logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(name)s  %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="TradeGuard Bankroll API",
    description="Stake sizing, safety locks, insights and Monte Carlo projections for win/loss trading.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# One logical owner: every request below goes through this session.
session = TradingSession()


# ── Routes ─────────────────────────────────────────────────────────────────────────

@app.get("/health")
def health() -> Dict[str, str]:
    """Simple liveness check."""
    return {"status": "ok"}


@app.get("/session", response_model=SessionSummary)
def get_session() -> SessionSummary:
    return session.summary()


@app.get("/trades")
def list_trades() -> Dict[str, Any]:
    return {
        "trades": [t.model_dump(mode="json") for t in session.trades],
        "equity_curve": session.equity_curve(),
    }


@app.post("/trades", response_model=Trade)
def record_trade(request: TradeRequest) -> Trade:
    """
    Record the result of the event staked at the current next stake.

    Rejected with 409 while the safety lock is engaged or the Masaniello
    cycle is over.
    """
    try:
        return session.append_trade_result(request.outcome)
    except TradingHaltedError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except InvalidStakeError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@app.get("/config", response_model=Configuration)
def get_config() -> Configuration:
    return session.config


@app.patch("/config", response_model=Configuration)
def update_config(partial: Dict[str, Any] = Body(...)) -> Configuration:
    """
    Merge a partial update.  Invalid values are replaced rather than rejected,
    so this endpoint never fails on content.
    """
    return session.update_configuration(partial)


@app.post("/reset", response_model=SessionSummary)
def reset() -> SessionSummary:
    session.reset_session()
    return session.summary()


@app.get("/stake")
def get_stake() -> Dict[str, float]:
    stake = session.get_next_stake()
    return {
        "next_stake": stake,
        "expected_profit": stake * session.config.payout_multiplier,
    }


@app.get("/lock", response_model=LockState)
def get_lock() -> LockState:
    return session.get_lock_state()


@app.get("/insights", response_model=InsightList)
def get_insights() -> InsightList:
    return InsightList(insights=session.get_insights())


@app.post("/insights/{insight_id}/apply", response_model=Configuration)
def apply_insight(insight_id: str) -> Configuration:
    try:
        return session.apply_insight_action(insight_id)
    except UnknownInsightError:
        raise HTTPException(
            status_code=404,
            detail=f"No actionable insight with id {insight_id!r}.",
        )


@app.put("/sentiment", response_model=SessionSummary)
def update_sentiment(request: SentimentRequest) -> SessionSummary:
    session.update_sentiment(request.sentiment)
    return session.summary()


@app.post("/simulate/next5", response_model=SimulationResult)
async def simulate_next5(request: ProjectionRequest) -> SimulationResult:
    """Run the 5-trade projection off the event loop."""
    rng = np.random.default_rng(request.seed)
    return await run_in_threadpool(session.run_next5_projection, request.sentiment, rng)


@app.post("/simulate/compare", response_model=List[StrategyComparisonResult])
async def simulate_compare(request: ComparisonRequest) -> List[StrategyComparisonResult]:
    """Compare the three staking strategies off the event loop."""
    logger.info(
        "Starting comparison: %d trades, win rate %.1f%%, payout %.2f",
        request.trade_count,
        request.estimated_win_rate,
        request.payout,
    )
    return await run_in_threadpool(session.run_strategy_comparison, request)
