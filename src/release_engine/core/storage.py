"""Storage port and the in-memory reference implementation."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable

    from release_engine.models import (
        Deployment,
        DeploymentVariable,
        Environment,
        GlobalVariable,
        Release,
        Resource,
        ResourceVariable,
    )

logger = logging.getLogger(__name__)

ReleaseKey = tuple[str, str, str]


@dataclass(frozen=True)
class ReleaseFilter:
    """Release query. ``None`` fields match anything."""

    trigger_id: str | None = None
    resource_id: str | None = None
    environment_id: str | None = None

    def matches(self, release: Release) -> bool:
        return (
            (self.trigger_id is None or release.trigger_id == self.trigger_id)
            and (self.resource_id is None or release.resource_id == self.resource_id)
            and (self.environment_id is None or release.environment_id == self.environment_id)
        )


class ReleaseStorage:
    """Base class for storage adapters.

    Every accessor is a coroutine: a durable store may suspend on any of them.
    Subclass and override the accessors. ``get_resource`` has a default
    linear-scan implementation and ``write_lock`` defaults to no serialization.
    """

    async def get_environments(self) -> list[Environment]:
        raise NotImplementedError

    async def set_environments(self, environments: Iterable[Environment]) -> None:
        raise NotImplementedError

    async def get_resources(self) -> list[Resource]:
        raise NotImplementedError

    async def set_resources(self, resources: Iterable[Resource]) -> None:
        raise NotImplementedError

    async def get_resource(self, resource_id: str) -> Resource | None:
        """Look up a single resource by id. Return None if it is not stored."""
        for resource in await self.get_resources():
            if resource.id == resource_id:
                return resource
        return None

    async def get_deployments(self) -> list[Deployment]:
        raise NotImplementedError

    async def set_deployments(self, deployments: Iterable[Deployment]) -> None:
        raise NotImplementedError

    async def get_variables(self) -> list[GlobalVariable]:
        raise NotImplementedError

    async def set_variables(self, variables: Iterable[GlobalVariable]) -> None:
        raise NotImplementedError

    async def get_deployment_variables(self) -> list[DeploymentVariable]:
        raise NotImplementedError

    async def set_deployment_variables(self, variables: Iterable[DeploymentVariable]) -> None:
        raise NotImplementedError

    async def get_resource_variables(self) -> list[ResourceVariable]:
        raise NotImplementedError

    async def set_resource_variables(self, variables: Iterable[ResourceVariable]) -> None:
        raise NotImplementedError

    async def append_release(self, release: Release) -> None:
        """Persist a new release. Releases are never updated or deleted."""
        raise NotImplementedError

    async def get_releases(self, release_filter: ReleaseFilter) -> list[Release]:
        """Return matching releases in append order."""
        raise NotImplementedError

    @contextlib.asynccontextmanager
    async def write_lock(self, key: ReleaseKey) -> AsyncIterator[None]:
        """Serialize release writes for one ``(trigger_id, resource_id, environment_id)`` key.

        The default provides no mutual exclusion: concurrent writers for the
        same key may both observe the same latest release.
        """
        _ = key
        yield


class InMemoryReleaseStorage(ReleaseStorage):
    """List-backed storage with linear scans. Never suspends on I/O."""

    def __init__(self) -> None:
        self._environments: list[Environment] = []
        self._resources: list[Resource] = []
        self._deployments: list[Deployment] = []
        self._variables: list[GlobalVariable] = []
        self._deployment_variables: list[DeploymentVariable] = []
        self._resource_variables: list[ResourceVariable] = []
        self._releases: list[Release] = []
        self._locks: dict[ReleaseKey, asyncio.Lock] = {}
        self._lock_users: dict[ReleaseKey, int] = {}

    async def get_environments(self) -> list[Environment]:
        return list(self._environments)

    async def set_environments(self, environments: Iterable[Environment]) -> None:
        self._environments = list(environments)

    async def get_resources(self) -> list[Resource]:
        return list(self._resources)

    async def set_resources(self, resources: Iterable[Resource]) -> None:
        self._resources = list(resources)

    async def get_deployments(self) -> list[Deployment]:
        return list(self._deployments)

    async def set_deployments(self, deployments: Iterable[Deployment]) -> None:
        self._deployments = list(deployments)

    async def get_variables(self) -> list[GlobalVariable]:
        return list(self._variables)

    async def set_variables(self, variables: Iterable[GlobalVariable]) -> None:
        self._variables = list(variables)

    async def get_deployment_variables(self) -> list[DeploymentVariable]:
        return list(self._deployment_variables)

    async def set_deployment_variables(self, variables: Iterable[DeploymentVariable]) -> None:
        self._deployment_variables = list(variables)

    async def get_resource_variables(self) -> list[ResourceVariable]:
        return list(self._resource_variables)

    async def set_resource_variables(self, variables: Iterable[ResourceVariable]) -> None:
        self._resource_variables = list(variables)

    async def append_release(self, release: Release) -> None:
        self._releases.append(release)
        logger.debug("Release appended: id=%s key=%s", release.id, release.key)

    async def get_releases(self, release_filter: ReleaseFilter) -> list[Release]:
        return [r for r in self._releases if release_filter.matches(r)]

    @property
    def releases(self) -> list[Release]:
        """Every stored release in append order (snapshot copy)."""
        return list(self._releases)

    def load_releases(self, releases: Iterable[Release]) -> None:
        """Seed the ledger, e.g. from a persisted release log."""
        self._releases.extend(releases)

    @contextlib.asynccontextmanager
    async def write_lock(self, key: ReleaseKey) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            # Drop the lock once no writer holds or awaits it.
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    @property
    def active_lock_keys(self) -> list[ReleaseKey]:
        """Keys with a writer currently holding or waiting on their lock."""
        return list(self._locks)
