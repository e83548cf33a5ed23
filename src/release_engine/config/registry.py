"""Default rule component registry factory."""

from __future__ import annotations

import logging
from typing import Any

from release_engine.engine.actions import LogVariableChangeAction
from release_engine.engine.conditions import (
    AllConditions,
    AnyCondition,
    ContextSpecificCondition,
    VariableChangedCondition,
    VariableNameCondition,
)
from release_engine.engine.registry import RuleComponentRegistry


def _log_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def default_registry() -> RuleComponentRegistry:
    """Create a fresh registry with the built-in conditions and actions."""
    registry = RuleComponentRegistry()

    def _all(conditions: list[dict[str, Any]]) -> AllConditions:
        return AllConditions(*(registry.build_condition(c) for c in conditions))

    def _any(conditions: list[dict[str, Any]]) -> AnyCondition:
        return AnyCondition(*(registry.build_condition(c) for c in conditions))

    def _names(names: list[str]) -> VariableNameCondition:
        return VariableNameCondition(*names)

    registry.register_condition("context", ContextSpecificCondition)
    registry.register_condition("changed", VariableChangedCondition)
    registry.register_condition("name", _names)
    registry.register_condition("all", _all)
    registry.register_condition("any", _any)

    registry.register_action(
        "log", lambda level="INFO": LogVariableChangeAction(level=_log_level(level))
    )

    return registry
