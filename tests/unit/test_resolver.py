"""Tests for the variable resolution cascade."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta

import pytest

from release_engine.core.storage import InMemoryReleaseStorage
from release_engine.engine.resolver import (
    DEFAULT_TIERS,
    VariableResolver,
    deployment_tier,
    global_tier,
    resource_tier,
)
from release_engine.models import (
    Context,
    Deployment,
    DeploymentVariable,
    Environment,
    GlobalVariable,
    Resource,
    ResourceVariable,
    Selector,
)

T0 = datetime(2024, 1, 1, tzinfo=UTC)

ENV = Environment(id="env-1", name="Production")
RES = Resource(
    id="res-1",
    name="API Server",
    labels={"type": "backend", "tier": "api"},
    environment_id="env-1",
)
DEPLOY = Deployment(id="deploy-1", name="Backend", selectors=[Selector(key="type", value="backend")])

GLOBAL_API = GlobalVariable(id="var-1", name="API_URL", value="https://api.example.com")
DEPLOY_API = DeploymentVariable(
    id="var-2",
    name="API_URL",
    value="https://api.staging.example.com",
    selectors=[Selector(key="type", value="backend")],
    deployment_id="deploy-1",
)
RESOURCE_API = ResourceVariable(
    id="var-3",
    name="API_URL",
    value="https://api.prod.example.com",
    resource_id="res-1",
    environment_id="env-1",
)
GLOBAL_LOG = GlobalVariable(id="var-4", name="LOG_LEVEL", value="info")

CTX = Context(resource_id="res-1", environment_id="env-1", deployment_id="deploy-1")


async def _storage(
    *,
    resources: list[Resource] | None = None,
    variables: list[GlobalVariable] | None = None,
    deployment_variables: list[DeploymentVariable] | None = None,
    resource_variables: list[ResourceVariable] | None = None,
) -> InMemoryReleaseStorage:
    storage = InMemoryReleaseStorage()
    await storage.set_environments([ENV])
    await storage.set_resources([RES] if resources is None else resources)
    await storage.set_deployments([DEPLOY])
    await storage.set_variables([GLOBAL_API, GLOBAL_LOG] if variables is None else variables)
    await storage.set_deployment_variables(
        [DEPLOY_API] if deployment_variables is None else deployment_variables
    )
    await storage.set_resource_variables(
        [RESOURCE_API] if resource_variables is None else resource_variables
    )
    return storage


def _resolve(storage: InMemoryReleaseStorage, name: str, ctx: Context = CTX):
    return asyncio.run(VariableResolver(storage).resolve(name, ctx))


class TestPriority:
    def test_resource_variable_wins(self) -> None:
        storage = asyncio.run(_storage())
        v = _resolve(storage, "API_URL")
        assert v is not None
        assert v.type == "resourceVariable"
        assert v.value == "https://api.prod.example.com"

    def test_global_only_variable(self) -> None:
        storage = asyncio.run(_storage())
        v = _resolve(storage, "LOG_LEVEL")
        assert v is not None
        assert v.type == "variable"
        assert v.value == "info"

    def test_falls_back_to_deployment_then_global(self) -> None:
        storage = asyncio.run(_storage(resource_variables=[]))
        v = _resolve(storage, "API_URL")
        assert v is not None
        assert v.type == "deploymentVariable"

        asyncio.run(storage.set_deployment_variables([]))
        v = _resolve(storage, "API_URL")
        assert v is not None
        assert v.type == "variable"

    def test_resource_variable_for_other_environment_ignored(self) -> None:
        other_env = RESOURCE_API.model_copy(update={"id": "var-9", "environment_id": "env-2"})
        storage = asyncio.run(_storage(resource_variables=[other_env]))
        v = _resolve(storage, "API_URL")
        assert v is not None
        assert v.type == "deploymentVariable"

    def test_unknown_name_returns_none(self) -> None:
        storage = asyncio.run(_storage())
        assert _resolve(storage, "MISSING") is None

    def test_non_matching_labels_skip_deployment_tier(self) -> None:
        frontend = RES.model_copy(update={"labels": {"type": "frontend"}})
        storage = asyncio.run(_storage(resources=[frontend], resource_variables=[]))
        v = _resolve(storage, "API_URL")
        assert v is not None
        assert v.type == "variable"


class TestMissingResource:
    def test_unknown_resource_skips_deployment_tier(self) -> None:
        storage = asyncio.run(_storage(variables=[GLOBAL_LOG]))
        ctx = Context(resource_id="res-2", environment_id="env-1", deployment_id="deploy-1")
        assert _resolve(storage, "API_URL", ctx) is None

    def test_unknown_resource_still_reaches_global_tier(self) -> None:
        storage = asyncio.run(_storage())
        ctx = Context(resource_id="res-2", environment_id="env-1")
        v = _resolve(storage, "API_URL", ctx)
        assert v is not None
        assert v.type == "variable"

    def test_materialized_resource_in_context(self) -> None:
        storage = asyncio.run(_storage(variables=[GLOBAL_LOG]))
        res2 = Resource(
            id="res-2",
            name="Secondary API",
            labels={"type": "backend", "tier": "secondary"},
            environment_id="env-1",
        )
        ctx = Context(resource_id="res-2", environment_id="env-1", resource=res2)
        v = _resolve(storage, "API_URL", ctx)
        assert v is not None
        assert v.type == "deploymentVariable"
        assert v.value == "https://api.staging.example.com"


class TestTieBreak:
    def test_newest_updated_at_wins(self, caplog: pytest.LogCaptureFixture) -> None:
        old = RESOURCE_API.model_copy(update={"id": "old", "value": "a", "updated_at": T0})
        new = RESOURCE_API.model_copy(
            update={"id": "new", "value": "b", "updated_at": T0 + timedelta(hours=1)}
        )
        storage = asyncio.run(_storage(resource_variables=[old, new]))
        with caplog.at_level(logging.WARNING, logger="release_engine"):
            v = _resolve(storage, "API_URL")
        assert v is not None
        assert v.id == "new"
        assert "Ambiguous resource match for API_URL" in caplog.text

    def test_equal_timestamps_keep_storage_order(self) -> None:
        first = DEPLOY_API.model_copy(update={"id": "first", "updated_at": T0})
        second = DEPLOY_API.model_copy(update={"id": "second", "updated_at": T0})
        storage = asyncio.run(_storage(deployment_variables=[first, second], resource_variables=[]))
        v = _resolve(storage, "API_URL")
        assert v is not None
        assert v.id == "first"


class TestResolveAll:
    def test_one_entry_per_name(self) -> None:
        storage = asyncio.run(_storage())
        resolver = VariableResolver(storage)
        resolved = asyncio.run(resolver.resolve_all(CTX))
        by_name = {v.name: v for v in resolved}
        assert set(by_name) == {"API_URL", "LOG_LEVEL"}
        assert by_name["API_URL"].type == "resourceVariable"
        assert by_name["LOG_LEVEL"].type == "variable"

    def test_matches_single_resolution(self) -> None:
        storage = asyncio.run(_storage(resource_variables=[]))
        resolver = VariableResolver(storage)
        resolved = asyncio.run(resolver.resolve_all(CTX))
        for v in resolved:
            assert asyncio.run(resolver.resolve(v.name, CTX)) == v

    def test_names_without_match_are_omitted(self) -> None:
        only_res2 = RESOURCE_API.model_copy(update={"name": "ONLY_RES2", "resource_id": "res-2"})
        storage = asyncio.run(_storage(resource_variables=[only_res2]))
        resolved = asyncio.run(VariableResolver(storage).resolve_all(CTX))
        assert "ONLY_RES2" not in {v.name for v in resolved}


class TestTiers:
    def test_default_order(self) -> None:
        assert DEFAULT_TIERS == (resource_tier, deployment_tier, global_tier)

    def test_tiers_in_isolation(self) -> None:
        storage = asyncio.run(_storage())
        assert asyncio.run(resource_tier("API_URL", CTX, storage)) == RESOURCE_API
        assert asyncio.run(deployment_tier("API_URL", CTX, storage)) == DEPLOY_API
        assert asyncio.run(global_tier("API_URL", CTX, storage)) == GLOBAL_API

    def test_custom_tier_order(self) -> None:
        storage = asyncio.run(_storage())
        resolver = VariableResolver(storage, tiers=(global_tier, resource_tier))
        v = asyncio.run(resolver.resolve("API_URL", CTX))
        assert v is not None
        assert v.type == "variable"
