"""Shared fixtures for unit tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from release_engine.config import load

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from release_engine.config.schema import Config

_ENGINE_ENV_VARS = (
    "RELEASE_ENGINE_RELEASE_LOG",
    "RELEASE_ENGINE_ACTION_TIMEOUT",
    "RELEASE_ENGINE_LOCK_TIMEOUT",
    "RELEASE_ENGINE_LOG",
    "NO_COLOR",
)


@pytest.fixture(autouse=True)
def _clean_engine_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove RELEASE_ENGINE_* env vars so unit tests don't leak host config."""
    for var in _ENGINE_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., Config]:
    """Factory fixture: write YAML + optional .env, return loaded Config."""

    def _make(yaml_str: str, *, dotenv: str | None = None) -> Config:
        (tmp_path / "config.yaml").write_text(yaml_str)
        if dotenv is not None:
            (tmp_path / ".env").write_text(dotenv)
        return load(tmp_path / "config.yaml")

    return _make


class TickingClock:
    """Deterministic clock: each call is one second after the previous one."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(seconds=1)
        return current


class SequentialIds:
    def __init__(self, prefix: str = "rel") -> None:
        self.prefix = prefix
        self.count = 0

    def __call__(self) -> str:
        self.count += 1
        return f"{self.prefix}-{self.count}"


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def ids() -> SequentialIds:
    return SequentialIds()
