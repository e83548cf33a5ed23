"""Environments, resources and deployments."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(UTC)


class Entity(BaseModel):
    """Base class for stored entities."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    name: str
    updated_at: datetime = Field(default_factory=utcnow)


class Environment(Entity):
    """Logical grouping of resources (e.g. "Production")."""


class Resource(Entity):
    """A deployable target. ``labels`` is what deployment selectors match against."""

    labels: dict[str, str] = Field(default_factory=dict)
    environment_id: str


class Selector(BaseModel):
    """A single ``key == value`` label requirement."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    key: str = Field(min_length=1)
    value: str


def selectors_match(selectors: list[Selector], labels: dict[str, str]) -> bool:
    """Return True when every selector is present and equal in *labels*.

    An empty selector list targets nothing.
    """
    if not selectors:
        return False
    return all(labels.get(s.key) == s.value for s in selectors)


class Deployment(Entity):
    """A class of resources: every resource whose labels satisfy ``selectors``."""

    selectors: list[Selector] = Field(default_factory=list)

    def matches(self, resource: Resource) -> bool:
        return selectors_match(self.selectors, resource.labels)
