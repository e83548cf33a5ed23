"""Variable resolution across the resource > deployment > global cascade.

Each tier is a coroutine ``(name, context, storage) -> Variable | None``.
The resolver tries them in order and the first non-``None`` result wins, so
the cascade order is just the order of :data:`DEFAULT_TIERS`.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, TypeVar

from release_engine.models import BaseVariable

if TYPE_CHECKING:
    from release_engine.core.storage import ReleaseStorage
    from release_engine.models import Context, Variable

logger = logging.getLogger(__name__)

Tier = Callable[[str, "Context", "ReleaseStorage"], Awaitable["Variable | None"]]

V = TypeVar("V", bound=BaseVariable)


def _pick(name: str, tier: str, candidates: Sequence[V]) -> V | None:
    """Choose one variable among same-tier matches.

    The newest ``updated_at`` wins; equal timestamps keep storage order.
    """
    if not candidates:
        return None
    if len(candidates) > 1:
        logger.warning(
            "Ambiguous %s match for %s: %s",
            tier,
            name,
            ", ".join(c.id for c in candidates),
        )
    best = candidates[0]
    for candidate in candidates[1:]:
        if candidate.updated_at > best.updated_at:
            best = candidate
    return best


async def resource_tier(name: str, context: Context, storage: ReleaseStorage) -> Variable | None:
    """Variables bound to exactly this resource and environment."""
    candidates = [
        v
        for v in await storage.get_resource_variables()
        if v.name == name
        and v.resource_id == context.resource_id
        and v.environment_id == context.environment_id
    ]
    return _pick(name, "resource", candidates)


async def deployment_tier(name: str, context: Context, storage: ReleaseStorage) -> Variable | None:
    """Variables whose selectors are satisfied by the resource labels.

    Needs a materialized resource; without one the tier is skipped.
    """
    resource = context.resource
    if resource is None:
        resource = await storage.get_resource(context.resource_id)
    if resource is None:
        logger.debug(
            "Skipping deployment tier for %s: resource %s is not available",
            name,
            context.resource_id,
        )
        return None

    candidates = [
        v
        for v in await storage.get_deployment_variables()
        if v.name == name and v.applies_to(resource.labels)
    ]
    return _pick(name, "deployment", candidates)


async def global_tier(name: str, context: Context, storage: ReleaseStorage) -> Variable | None:
    """Workspace-wide defaults."""
    _ = context
    candidates = [v for v in await storage.get_variables() if v.name == name]
    return _pick(name, "global", candidates)


DEFAULT_TIERS: tuple[Tier, ...] = (resource_tier, deployment_tier, global_tier)


class VariableResolver:
    """Resolve a variable name for a context by walking the tier cascade."""

    def __init__(self, storage: ReleaseStorage, tiers: Sequence[Tier] = DEFAULT_TIERS) -> None:
        self._storage = storage
        self._tiers = tuple(tiers)

    @property
    def tiers(self) -> tuple[Tier, ...]:
        return self._tiers

    async def resolve(self, name: str, context: Context) -> Variable | None:
        """Return the highest-priority variable named *name*, or None."""
        for tier in self._tiers:
            variable = await tier(name, context, self._storage)
            if variable is not None:
                logger.debug(
                    "Resolved %s for %s/%s at %s tier (id=%s)",
                    name,
                    context.resource_id,
                    context.environment_id,
                    variable.type,
                    variable.id,
                )
                return variable
        logger.debug("No variable %s for %s/%s", name, context.resource_id, context.environment_id)
        return None

    async def names(self) -> list[str]:
        """Every distinct variable name known to storage, in first-seen order."""
        seen: dict[str, None] = {}
        for variables in (
            await self._storage.get_resource_variables(),
            await self._storage.get_deployment_variables(),
            await self._storage.get_variables(),
        ):
            for v in variables:
                seen.setdefault(v.name, None)
        return list(seen)

    async def resolve_all(self, context: Context) -> list[Variable]:
        """Resolve every known name for *context*; names with no match are omitted."""
        resolved: list[Variable] = []
        for name in await self.names():
            variable = await self.resolve(name, context)
            if variable is not None:
                resolved.append(variable)
        return resolved
