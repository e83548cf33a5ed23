"""Built-in rule actions."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from release_engine.engine.rules import Action
from release_engine.models import canonical_value

if TYPE_CHECKING:
    from release_engine.engine.rules import RuleInput

_default_logger = logging.getLogger("release_engine.changes")


def _describe(rule_input: RuleInput) -> tuple[str, str]:
    """Render (previous, new) values, masking sensitive variables."""
    new = rule_input.new_variable
    prev_var = rule_input.previous_variable
    sensitive = any(v is not None and v.sensitive for v in (new, prev_var))

    def render(value: object) -> str:
        return "(sensitive)" if sensitive else canonical_value(value)

    if prev_var is not None:
        previous = render(prev_var.value)
    elif rule_input.previous_release is not None:
        previous = render(rule_input.previous_release.metadata.variable_value)
    else:
        previous = "(unset)"
    current = render(new.value) if new is not None else "(unset)"
    return previous, current


class LogVariableChangeAction(Action):
    """Log the variable transition carried by the release."""

    def __init__(self, *, level: int = logging.INFO, logger: logging.Logger | None = None) -> None:
        self.level = level
        self.logger = logger or _default_logger

    async def execute(self, rule_input: RuleInput) -> None:
        release = rule_input.release
        previous, current = _describe(rule_input)
        self.logger.log(
            self.level,
            "Variable %s changed on %s/%s: %s -> %s (release %s)",
            release.trigger_id,
            release.resource_id,
            release.environment_id,
            previous,
            current,
            release.id,
        )


class CallbackAction(Action):
    """Run a plain function or coroutine function with the rule input."""

    def __init__(self, fn: Callable[[RuleInput], Awaitable[None] | None]) -> None:
        self.fn = fn

    async def execute(self, rule_input: RuleInput) -> None:
        result = self.fn(rule_input)
        if inspect.isawaitable(result):
            await result
