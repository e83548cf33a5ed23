"""Tests for the on-disk release log and its lock."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from release_engine.core.lock import ReleaseLogLock
from release_engine.core.release_log import ReleaseLog, compute_log_digest
from release_engine.engine.errors import ReleaseLogLockError
from release_engine.models import Release, ReleaseMetadata, VariableType

if TYPE_CHECKING:
    from pathlib import Path

T0 = datetime(2024, 1, 1, tzinfo=UTC)


def _release(release_id: str, value: object = "x") -> Release:
    return Release(
        id=release_id,
        trigger_id="API_URL",
        resource_id="res-1",
        environment_id="env-1",
        metadata=ReleaseMetadata(
            variable_type=VariableType.RESOURCE,
            variable_name="API_URL",
            variable_value=value,
        ),
        created_at=T0,
    )


class TestReleaseLog:
    def test_save_and_load_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "log.json"
        log = ReleaseLog()
        log.extend([_release("r1", {"nested": [1, 2]}), _release("r2", True)])
        log.save(path)

        loaded = ReleaseLog.load(path)
        assert loaded == log
        assert loaded.releases[0].metadata.variable_value == {"nested": [1, 2]}
        assert loaded.releases[1].metadata.variable_type is VariableType.RESOURCE

    def test_saved_file_is_plain_json(self, tmp_path: Path) -> None:
        path = tmp_path / "log.json"
        log = ReleaseLog()
        log.extend([_release("r1")])
        log.save(path)
        data = json.loads(path.read_text())
        assert data["version"] == 1
        assert data["serial"] == 1
        assert data["releases"][0]["trigger_type"] == "variable"
        assert data["releases"][0]["metadata"]["variable_type"] == "resourceVariable"

    def test_save_keeps_backup_of_previous_log(self, tmp_path: Path) -> None:
        path = tmp_path / "log.json"
        log = ReleaseLog()
        log.save(path)
        first = path.read_text()

        log.extend([_release("r1")])
        log.save(path)

        backup = tmp_path / "log.json.backup"
        assert backup.read_text() == first
        assert path.read_text() != first
        assert [p.name for p in tmp_path.iterdir() if p.name.startswith(".log.json.")] == []

    def test_save_creates_parent_directories(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "dir" / "log.json"
        ReleaseLog().save(path)
        assert path.exists()

    def test_load_or_create(self, tmp_path: Path) -> None:
        path = tmp_path / "log.json"
        fresh = ReleaseLog.load_or_create(path)
        assert fresh.releases == []
        assert not path.exists()

        fresh.extend([_release("r1")])
        fresh.save(path)
        assert ReleaseLog.load_or_create(path).lineage == fresh.lineage

    def test_extend_skips_known_ids(self) -> None:
        log = ReleaseLog()
        assert log.extend([_release("r1"), _release("r2")]) == 2
        assert log.serial == 1
        assert log.extend([_release("r2"), _release("r3")]) == 1
        assert log.serial == 2
        assert log.extend([_release("r1")]) == 0
        assert log.serial == 2
        assert [r.id for r in log.releases] == ["r1", "r2", "r3"]

    def test_lineage_is_random(self) -> None:
        assert ReleaseLog().lineage != ReleaseLog().lineage


class TestLogDigest:
    def test_digest_ignores_formatting(self, tmp_path: Path) -> None:
        log = ReleaseLog(lineage="l1")
        log.extend([_release("r1")])
        log.save(tmp_path / "log.json")
        assert compute_log_digest(ReleaseLog.load(tmp_path / "log.json")) == compute_log_digest(
            log
        )

    def test_digest_tracks_content(self) -> None:
        log = ReleaseLog(lineage="l1")
        d0 = compute_log_digest(log)
        log.extend([_release("r1")])
        assert compute_log_digest(log) != d0

        other = ReleaseLog(lineage="l2", serial=log.serial, releases=list(log.releases))
        assert compute_log_digest(other) != compute_log_digest(log)


class TestReleaseLogLock:
    def test_lock_file_created_next_to_log(self, tmp_path: Path) -> None:
        path = tmp_path / "log.json"
        with ReleaseLogLock(path):
            assert (tmp_path / "log.json.lock").exists()

    def test_lock_can_be_taken_again(self, tmp_path: Path) -> None:
        path = tmp_path / "log.json"
        with ReleaseLogLock(path):
            pass
        with ReleaseLogLock(path, timeout=0):
            pass

    def test_contended_lock_times_out(self, tmp_path: Path) -> None:
        path = tmp_path / "log.json"
        with ReleaseLogLock(path):
            waiter = ReleaseLogLock(path, timeout=0.05, poll_interval=0.01)
            with pytest.raises(ReleaseLogLockError, match="held by another process"):
                waiter.acquire()
        waiter.acquire()
        waiter.release()

    def test_double_acquire_rejected(self, tmp_path: Path) -> None:
        lock = ReleaseLogLock(tmp_path / "log.json")
        lock.acquire()
        try:
            with pytest.raises(ReleaseLogLockError, match="already held"):
                lock.acquire()
        finally:
            lock.release()

    def test_release_without_acquire_is_noop(self, tmp_path: Path) -> None:
        ReleaseLogLock(tmp_path / "log.json").release()

    def test_flock_failure_raises_lock_error(self, tmp_path: Path) -> None:
        with (
            patch("release_engine.core.lock.fcntl.flock", side_effect=OSError("busy")),
            pytest.raises(ReleaseLogLockError, match="busy"),
        ):
            ReleaseLogLock(tmp_path / "log.json").acquire()
