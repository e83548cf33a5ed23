"""Rule component registry: config ``type`` strings -> condition/action factories."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from release_engine.engine.errors import UnknownRuleComponentError

if TYPE_CHECKING:
    from release_engine.engine.rules import Action, Condition

ComponentKind = Literal["condition", "action"]


@dataclass(frozen=True)
class RuleComponentRegistration:
    kind: ComponentKind
    component_type: str
    factory: Callable[..., Any]


class RuleComponentRegistry:
    """Registry mapping (kind, type) -> factory.

    A factory is called with the remaining keys of a component spec as
    keyword arguments, e.g. ``{"type": "context", "resource_id": "r1", ...}``.
    """

    def __init__(self) -> None:
        self._registrations: dict[tuple[ComponentKind, str], RuleComponentRegistration] = {}

    def _register(
        self, kind: ComponentKind, component_type: str, factory: Callable[..., Any]
    ) -> None:
        if not component_type:
            raise ValueError(f"{kind} type must be a non-empty string")
        if (kind, component_type) in self._registrations:
            raise ValueError(f"{kind.capitalize()} type already registered: {component_type}")
        self._registrations[(kind, component_type)] = RuleComponentRegistration(
            kind=kind,
            component_type=component_type,
            factory=factory,
        )

    def register_condition(self, component_type: str, factory: Callable[..., Condition]) -> None:
        self._register("condition", component_type, factory)

    def register_action(self, component_type: str, factory: Callable[..., Action]) -> None:
        self._register("action", component_type, factory)

    def get(self, kind: ComponentKind, component_type: str) -> RuleComponentRegistration:
        try:
            return self._registrations[(kind, component_type)]
        except KeyError as e:
            raise UnknownRuleComponentError(kind, component_type) from e

    def _build(self, kind: ComponentKind, spec: Mapping[str, Any]) -> Any:
        params = dict(spec)
        component_type = params.pop("type", None)
        if not isinstance(component_type, str):
            raise ValueError(f"{kind} spec is missing a string 'type'")
        return self.get(kind, component_type).factory(**params)

    def build_condition(self, spec: Mapping[str, Any]) -> Condition:
        return self._build("condition", spec)

    def build_action(self, spec: Mapping[str, Any]) -> Action:
        return self._build("action", spec)
