"""
Exception hierarchy for the bankroll core.
"""


class TradeGuardError(Exception):
    """Base class for all domain errors."""


class InvalidStakeError(TradeGuardError, ValueError):
    """A negative stake was proposed to the ledger."""


class InvalidConfigurationError(TradeGuardError, ValueError):
    """A configuration value is non-numeric or out of range."""

    def __init__(self, field: str, value: object, reason: str) -> None:
        super().__init__(f"Invalid value for {field!r}: {value!r} ({reason})")
        self.field = field
        self.value = value
        self.reason = reason


class TradingHaltedError(TradeGuardError):
    """A trade result was submitted while staking is not allowed."""


class UnknownInsightError(TradeGuardError, KeyError):
    """No current insight carries the requested identifier."""


class SimulationCancelled(TradeGuardError):
    """A projection run was cancelled between simulation steps."""
