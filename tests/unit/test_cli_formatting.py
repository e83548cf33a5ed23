from __future__ import annotations

import re
from datetime import UTC, datetime

from release_engine.cli.formatting import (
    format_history,
    format_release,
    format_run,
    format_run_summary,
    format_variable,
    format_variables,
)
from release_engine.config import ReleaseRun
from release_engine.engine.manager import ReleaseRecord
from release_engine.engine.rules import RuleEngineResult, RuleOutcome
from release_engine.models import (
    DeploymentVariable,
    GlobalVariable,
    Release,
    ReleaseMetadata,
    VariableType,
)

T0 = datetime(2024, 1, 1, 12, 30, tzinfo=UTC)

_GLOBAL = GlobalVariable(id="g1", name="LOG_LEVEL", value="info")
_SECRET = GlobalVariable(id="g2", name="DB_PASSWORD", value="hunter2", sensitive=True)
_DEPLOY = DeploymentVariable(
    id="d1", name="REPLICAS", value=3, deployment_id="deploy-1", selectors=[]
)


def _strip_ansi(text: str) -> str:
    return re.sub(r"\x1b\[[0-9;]*m", "", text)


def _release(name: str, value: object, release_id: str = "rel-1") -> Release:
    return Release(
        id=release_id,
        trigger_id=name,
        resource_id="res-1",
        environment_id="env-1",
        metadata=ReleaseMetadata(
            variable_type=VariableType.GLOBAL,
            variable_name=name,
            variable_value=value,
        ),
        created_at=T0,
    )


class TestFormatVariable:
    def test_plain(self) -> None:
        assert format_variable(_GLOBAL, color=False) == 'LOG_LEVEL = "info"  [global] (g1)'

    def test_structured_value(self) -> None:
        var = GlobalVariable(id="g3", name="LIMITS", value={"b": 1, "a": [1, 2]})
        assert format_variable(var, color=False) == 'LIMITS = {"a":[1,2],"b":1}  [global] (g3)'

    def test_sensitive_masked(self) -> None:
        text = format_variable(_SECRET, color=False)
        assert "hunter2" not in text
        assert text == "DB_PASSWORD = (sensitive)  [global] (g2)"

    def test_color_adds_ansi(self) -> None:
        text = format_variable(_DEPLOY, color=True)
        assert "\x1b[" in text
        assert _strip_ansi(text) == "REPLICAS = 3  [deployment] (d1)"


class TestFormatVariables:
    def test_sorted_and_aligned(self) -> None:
        text = format_variables([_GLOBAL, _DEPLOY, _SECRET], color=False)
        assert text.splitlines() == [
            "DB_PASSWORD = (sensitive)  [global]",
            'LOG_LEVEL   = "info"  [global]',
            "REPLICAS    = 3  [deployment]",
        ]

    def test_empty(self) -> None:
        assert format_variables([], color=False) == "No variables resolve for this context."


class TestFormatHistory:
    def test_release_line(self) -> None:
        text = format_release(_release("LOG_LEVEL", "debug"), color=False)
        assert text == '2024-01-01T12:30:00+00:00  rel-1  LOG_LEVEL = "debug"  [global]'

    def test_sensitive_names_masked(self) -> None:
        releases = [_release("DB_PASSWORD", "hunter2"), _release("LOG_LEVEL", "info", "rel-0")]
        text = format_history(releases, color=False, sensitive={"DB_PASSWORD"})
        assert "hunter2" not in text
        assert "DB_PASSWORD = (sensitive)" in text
        assert len(text.splitlines()) == 2

    def test_empty(self) -> None:
        assert format_history([], color=False) == "No releases recorded for this context."


class TestFormatRun:
    def test_created_and_unchanged(self) -> None:
        created = _release("LOG_LEVEL", "debug", "rel-2")
        unchanged = _release("REPLICAS", 3, "rel-1")
        run = ReleaseRun(
            records=[
                ReleaseRecord(created, _GLOBAL, None, True),
                ReleaseRecord(unchanged, _DEPLOY, unchanged, False),
            ],
            rule_results={
                "rel-2": RuleEngineResult(
                    outcomes=[
                        RuleOutcome(rule_id="log-all", matched=True, executed=True),
                        RuleOutcome(rule_id="prod-only", matched=False),
                    ]
                )
            },
        )
        assert format_run(run, color=False).splitlines() == [
            '+ LOG_LEVEL = "debug" (release rel-2)',
            "    rule log-all fired",
            "  REPLICAS = 3 is unchanged (release rel-1)",
        ]
        assert format_run_summary(run, color=False) == (
            "Release: 1 created, 1 unchanged, 0 rule failure(s)."
        )

    def test_empty_run(self) -> None:
        assert format_run(ReleaseRun(), color=False) == "No variables resolve for this context."
        assert format_run_summary(ReleaseRun(), color=False) == (
            "Release: 0 created, 0 unchanged, 0 rule failure(s)."
        )
