"""YAML workspace loading and convenience resolve/release API."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from release_engine.config.loader import ConfigError, load_config
from release_engine.config.registry import default_registry
from release_engine.config.schema import Config, EngineSettings, RuleSpec
from release_engine.core.lock import ReleaseLogLock
from release_engine.core.release_log import ReleaseLog
from release_engine.core.storage import InMemoryReleaseStorage
from release_engine.engine.errors import UnknownRuleComponentError
from release_engine.engine.manager import ReleaseManager, ReleaseRecord, coerce_context
from release_engine.engine.rules import Rule, RuleEngine, RuleEngineResult

if TYPE_CHECKING:
    from pathlib import Path

    from release_engine.engine.manager import ContextLike
    from release_engine.engine.registry import RuleComponentRegistry
    from release_engine.models import Context, Release, Variable

logger = logging.getLogger(__name__)

__all__ = [
    "Config",
    "ConfigError",
    "EngineSettings",
    "ReleaseRun",
    "RuleSpec",
    "build_manager",
    "build_rule_engine",
    "build_storage",
    "history",
    "load",
    "load_config",
    "release",
    "resolve",
    "resolve_all",
]


def load(path: Path | str) -> Config:
    """Load a YAML workspace file."""
    return load_config(path)


async def build_storage(
    config: Config, releases: list[Release] | None = None
) -> InMemoryReleaseStorage:
    """Build an in-memory storage seeded with the workspace entities."""
    storage = InMemoryReleaseStorage()
    await storage.set_environments(config.environments)
    await storage.set_resources(config.resources)
    await storage.set_deployments(config.deployments)
    await storage.set_variables(config.global_variables)
    await storage.set_deployment_variables(config.deployment_variables)
    await storage.set_resource_variables(config.resource_variables)
    if releases:
        storage.load_releases(releases)
    return storage


async def build_manager(config: Config, releases: list[Release] | None = None) -> ReleaseManager:
    """Build a ``ReleaseManager`` over a fresh storage for *config*."""
    return ReleaseManager(storage=await build_storage(config, releases))


def _build_rule(spec: RuleSpec, registry: RuleComponentRegistry) -> Rule:
    try:
        condition = registry.build_condition(spec.condition)
        action = registry.build_action(spec.action)
    except (TypeError, ValueError, UnknownRuleComponentError) as exc:
        raise ConfigError(f"Invalid rule '{spec.id}': {exc}") from exc
    return Rule(id=spec.id, name=spec.name, condition=condition, action=action)


def build_rule_engine(
    config: Config, *, registry: RuleComponentRegistry | None = None
) -> RuleEngine:
    """Build a ``RuleEngine`` from the rules declared in *config*."""
    registry = registry or default_registry()
    rules = [_build_rule(spec, registry) for spec in config.rules]
    return RuleEngine(rules=rules, action_timeout=config.settings.action_timeout)


def _materialize(config: Config, context: ContextLike) -> Context:
    """Attach declared resource/environment objects to a context when available."""
    ctx = coerce_context(context)
    updates: dict[str, Any] = {}
    if ctx.resource is None:
        updates["resource"] = next((r for r in config.resources if r.id == ctx.resource_id), None)
    if ctx.environment is None:
        updates["environment"] = next(
            (e for e in config.environments if e.id == ctx.environment_id), None
        )
    return ctx.model_copy(update=updates)


def resolve(config: Config, name: str, context: ContextLike) -> Variable | None:
    """Resolve a single variable against the workspace."""

    async def _run() -> Variable | None:
        manager = await build_manager(config)
        return await manager.get_variable(name, _materialize(config, context))

    return asyncio.run(_run())


def resolve_all(config: Config, context: ContextLike) -> list[Variable]:
    """Resolve every variable visible to *context*."""

    async def _run() -> list[Variable]:
        manager = await build_manager(config)
        return await manager.get_variables_for_context(_materialize(config, context))

    return asyncio.run(_run())


@dataclass
class ReleaseRun:
    """What a ``release`` call recorded and which rules ran."""

    records: list[ReleaseRecord] = field(default_factory=list)
    rule_results: dict[str, RuleEngineResult] = field(default_factory=dict)

    @property
    def created(self) -> list[ReleaseRecord]:
        return [r for r in self.records if r.created]

    @property
    def unchanged(self) -> list[ReleaseRecord]:
        return [r for r in self.records if not r.created]


async def _record_and_dispatch(
    config: Config,
    context: ContextLike,
    names: list[str] | None,
    log: ReleaseLog,
    registry: RuleComponentRegistry | None,
) -> ReleaseRun:
    ctx = _materialize(config, context)
    manager = await build_manager(config, log.releases)
    engine = build_rule_engine(config, registry=registry)

    run = ReleaseRun()
    if names is None:
        run.records = await manager.create_releases_for_context(ctx)
    else:
        for name in names:
            record = await manager.record_variable(name, ctx)
            if record is not None:
                run.records.append(record)

    for record in run.created:
        run.rule_results[record.release.id] = await engine.process_release(
            record.release,
            record.variable,
            None,
            ctx,
            previous_release=record.previous_release,
        )
    return run


def release(
    config: Config,
    context: ContextLike,
    names: list[str] | None = None,
    *,
    registry: RuleComponentRegistry | None = None,
) -> ReleaseRun:
    """Record releases for *names* (or every visible variable) and run the rules.

    The release log is locked for the whole read-record-save cycle.
    """
    path = config.release_log_path
    with ReleaseLogLock(path, timeout=config.settings.lock_timeout):
        log = ReleaseLog.load_or_create(path)
        run = asyncio.run(_record_and_dispatch(config, context, names, log, registry))
        added = log.extend([r.release for r in run.created])
        if added:
            log.save(path)
        logger.info("Recorded %d new release(s) in %s", added, path)
    return run


def history(config: Config, context: ContextLike) -> list[Release]:
    """Releases recorded for the context, newest first."""

    async def _run() -> list[Release]:
        path = config.release_log_path
        log = ReleaseLog.load_or_create(path)
        manager = await build_manager(config, log.releases)
        return await manager.get_releases(context)

    return asyncio.run(_run())
