"""
Configuration updates and advisory-action application.

``Configuration`` snapshots are frozen; both entry points here return a new
snapshot and never mutate the one passed in.  The field bounds live on the
model itself.  Bad values never abort an update: each field the model rejects
is logged and replaced (numbers by 0, enums and flags by their default).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

from pydantic import ValidationError

from errors import InvalidConfigurationError
from models import (
    AdvisoryAction,
    Configuration,
    RaiseTarget,
    SetMaxLosses,
    SwitchStrategy,
)

logger = logging.getLogger(__name__)


def _fallback(field: str) -> Any:
    info = Configuration.model_fields[field]
    if info.annotation is float:
        return 0.0
    if info.annotation is int:
        return 0
    return info.default


def apply_update(config: Configuration, partial: Mapping[str, Any]) -> Configuration:
    """
    Return a new configuration with ``partial`` merged into ``config``.

    Args:
        config:  Current snapshot.
        partial: Field name -> raw value (strings from forms are accepted).

    Returns:
        The updated snapshot.  Invalid values are recovered, not raised.
    """
    data: Dict[str, Any] = config.model_dump()
    for field, value in partial.items():
        if field not in Configuration.model_fields:
            logger.warning("Ignoring unknown configuration field %r", field)
            continue
        data[field] = value

    try:
        merged = Configuration.model_validate(data)
    except ValidationError as exc:
        for error in exc.errors():
            field = str(error["loc"][0])
            rejected = InvalidConfigurationError(field, data[field], error["msg"])
            data[field] = _fallback(field)
            logger.warning("%s; using %r instead", rejected, data[field])
        merged = Configuration.model_validate(data)

    if merged.target_wins > merged.total_events:
        logger.info(
            "target_wins %d exceeds total_events %d; clamping",
            merged.target_wins,
            merged.total_events,
        )
        merged = merged.model_copy(update={"target_wins": merged.total_events})
    return merged


def apply_action(config: Configuration, action: AdvisoryAction) -> Configuration:
    """Interpret an advisory command against ``config``."""
    if isinstance(action, SwitchStrategy):
        changes: Dict[str, Any] = {"strategy": action.target}
        if action.fixed_amount is not None:
            changes["fixed_amount"] = action.fixed_amount
        return config.model_copy(update=changes)

    if isinstance(action, RaiseTarget):
        target = min(config.total_events, config.target_wins + action.delta)
        return config.model_copy(update={"target_wins": target})

    if isinstance(action, SetMaxLosses):
        return config.model_copy(update={"max_losses_allowed": action.value})

    raise TypeError(f"Unsupported advisory action: {action!r}")
