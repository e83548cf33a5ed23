"""Release manager: turns resolved variable values into deduplicated releases."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from release_engine.core.storage import ReleaseFilter
from release_engine.engine.errors import InvalidContextError
from release_engine.engine.resolver import VariableResolver
from release_engine.models import Context, Release, ReleaseMetadata, json_value, values_equal

if TYPE_CHECKING:
    from release_engine.core.storage import ReleaseStorage
    from release_engine.models import Variable

logger = logging.getLogger(__name__)

IdGenerator = Callable[[], str]
Clock = Callable[[], datetime]

ContextLike = Context | Mapping[str, Any]


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


def coerce_context(context: ContextLike) -> Context:
    """Validate a context, raising :class:`InvalidContextError` when malformed."""
    if isinstance(context, Context):
        return context
    try:
        return Context.model_validate(context)
    except ValidationError as exc:
        raise InvalidContextError(str(exc)) from exc


def newest_first(releases: list[Release]) -> list[Release]:
    """Sort by ``created_at`` descending; ties put the latest appended first."""
    return sorted(reversed(releases), key=lambda r: r.created_at, reverse=True)


@dataclass(frozen=True)
class ReleaseRecord:
    """Outcome of recording a variable for a context.

    ``created`` is False when the resolved value matched the latest release
    and that release was returned instead of writing a new one.
    """

    release: Release
    variable: Variable
    previous_release: Release | None
    created: bool


class ReleaseManager:
    """Resolve variables and keep the release ledger for each context.

    Only :meth:`create_release_for_variable` (and the helpers built on it)
    write to storage. The read-compare-append sequence runs inside
    ``storage.write_lock``; it is only atomic if the storage adapter's lock is.
    """

    def __init__(
        self,
        *,
        storage: ReleaseStorage,
        generate_id: IdGenerator | None = None,
        clock: Clock | None = None,
        resolver: VariableResolver | None = None,
    ) -> None:
        self._storage = storage
        self._generate_id = generate_id or _uuid
        self._clock = clock or _utcnow
        self._resolver = resolver or VariableResolver(storage)

    @property
    def storage(self) -> ReleaseStorage:
        return self._storage

    @property
    def resolver(self) -> VariableResolver:
        return self._resolver

    async def get_variable(self, name: str, context: ContextLike) -> Variable | None:
        """Resolve *name* for *context*; None when no tier defines it."""
        return await self._resolver.resolve(name, coerce_context(context))

    async def get_variables_for_context(self, context: ContextLike) -> list[Variable]:
        """Resolve every variable visible to *context*."""
        return await self._resolver.resolve_all(coerce_context(context))

    async def get_latest_release(self, name: str, context: ContextLike) -> Release | None:
        """Most recent release for ``(name, resource_id, environment_id)``."""
        ctx = coerce_context(context)
        releases = await self._storage.get_releases(
            ReleaseFilter(
                trigger_id=name,
                resource_id=ctx.resource_id,
                environment_id=ctx.environment_id,
            )
        )
        ordered = newest_first(releases)
        return ordered[0] if ordered else None

    async def record_variable(self, name: str, context: ContextLike) -> ReleaseRecord | None:
        """Resolve *name* and write a release if its value changed.

        Returns None when the variable does not resolve, including when it was
        deleted after earlier releases were recorded.
        """
        if not name:
            raise ValueError("Variable name must be a non-empty string")
        ctx = coerce_context(context)

        variable = await self._resolver.resolve(name, ctx)
        if variable is None:
            return None

        key = (name, ctx.resource_id, ctx.environment_id)
        async with self._storage.write_lock(key):
            previous = await self.get_latest_release(name, ctx)
            if previous is not None and values_equal(
                previous.metadata.variable_value, variable.value
            ):
                logger.debug("Release %s unchanged for %s", previous.id, key)
                return ReleaseRecord(
                    release=previous,
                    variable=variable,
                    previous_release=previous,
                    created=False,
                )

            release = Release(
                id=self._generate_id(),
                trigger_id=name,
                resource_id=ctx.resource_id,
                environment_id=ctx.environment_id,
                metadata=ReleaseMetadata(
                    variable_type=variable.variable_type,
                    variable_name=name,
                    variable_value=json_value(variable.value),
                ),
                created_at=self._clock(),
            )
            await self._storage.append_release(release)

        logger.info(
            "Created release %s for %s on %s/%s (%s = %s)",
            release.id,
            name,
            ctx.resource_id,
            ctx.environment_id,
            variable.type,
            variable.display_value(),
        )
        return ReleaseRecord(
            release=release,
            variable=variable,
            previous_release=previous,
            created=True,
        )

    async def create_release_for_variable(
        self, name: str, context: ContextLike
    ) -> Release | None:
        """Return a release for the current value of *name* in *context*.

        Calling twice with no value change returns the same release.
        """
        record = await self.record_variable(name, context)
        return record.release if record is not None else None

    async def create_releases_for_context(self, context: ContextLike) -> list[ReleaseRecord]:
        """Record every variable visible to *context*."""
        ctx = coerce_context(context)
        records: list[ReleaseRecord] = []
        for name in await self._resolver.names():
            record = await self.record_variable(name, ctx)
            if record is not None:
                records.append(record)
        return records

    async def get_releases(self, context: ContextLike) -> list[Release]:
        """All releases for the context's resource and environment, newest first."""
        ctx = coerce_context(context)
        releases = await self._storage.get_releases(
            ReleaseFilter(resource_id=ctx.resource_id, environment_id=ctx.environment_id)
        )
        return newest_first(releases)
