"""Terminal rendering for resolved variables, releases and rule results."""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

import typer

from release_engine.models import VariableType, canonical_value

if TYPE_CHECKING:
    from collections.abc import Callable, Collection

    from release_engine.config import ReleaseRun
    from release_engine.models import Release, Variable


class _TierStyle(NamedTuple):
    color: str
    label: str


_TIER_STYLES: dict[VariableType, _TierStyle] = {
    VariableType.RESOURCE: _TierStyle("green", "resource"),
    VariableType.DEPLOYMENT: _TierStyle("yellow", "deployment"),
    VariableType.GLOBAL: _TierStyle("cyan", "global"),
}

_MASK = "(sensitive)"


def styler(color: bool) -> Callable[..., str]:
    """Return ``typer.style`` when *color* is True, otherwise a passthrough."""
    if color:
        return typer.style
    return lambda text, **_kw: text


def _tier(variable_type: VariableType, *, color: bool) -> str:
    s = _TIER_STYLES[variable_type]
    return styler(color)(f"[{s.label}]", fg=s.color)


def format_variable(variable: Variable, *, color: bool = True) -> str:
    """One line: ``NAME = value  [tier] (id)``."""
    return (
        f"{variable.name} = {variable.display_value()}  "
        f"{_tier(variable.variable_type, color=color)} ({variable.id})"
    )


def format_variables(variables: list[Variable], *, color: bool = True) -> str:
    if not variables:
        return "No variables resolve for this context."
    ordered = sorted(variables, key=lambda v: v.name)
    width = max(len(v.name) for v in ordered)
    lines = []
    for v in ordered:
        lines.append(
            f"{v.name.ljust(width)} = {v.display_value()}  "
            f"{_tier(v.variable_type, color=color)}"
        )
    return "\n".join(lines)


def _release_value(release: Release, sensitive: Collection[str]) -> str:
    if release.trigger_id in sensitive:
        return _MASK
    return canonical_value(release.metadata.variable_value)


def format_release(
    release: Release, *, color: bool = True, sensitive: Collection[str] = ()
) -> str:
    """One line: ``<created_at>  <id>  NAME = value  [tier]``."""
    ts = release.created_at.isoformat(timespec="seconds")
    return (
        f"{ts}  {release.id}  {release.trigger_id} = {_release_value(release, sensitive)}  "
        f"{_tier(release.metadata.variable_type, color=color)}"
    )


def format_history(
    releases: list[Release], *, color: bool = True, sensitive: Collection[str] = ()
) -> str:
    if not releases:
        return "No releases recorded for this context."
    return "\n".join(format_release(r, color=color, sensitive=sensitive) for r in releases)


def format_run(run: ReleaseRun, *, color: bool = True, sensitive: Collection[str] = ()) -> str:
    """Render created/unchanged releases followed by rule activity."""
    style = styler(color)
    lines: list[str] = []
    for record in run.records:
        r = record.release
        value = _release_value(r, sensitive)
        if record.created:
            lines.append(style(f"+ {r.trigger_id} = {value} (release {r.id})", fg="green"))
        else:
            lines.append(f"  {r.trigger_id} = {value} is unchanged (release {r.id})")

        result = run.rule_results.get(r.id)
        if result is None:
            continue
        for rule_id in result.fired:
            lines.append(f"    rule {rule_id} fired")
        for error in result.failures:
            lines.append(style(f"    {error}", fg="red"))

    if not lines:
        return "No variables resolve for this context."
    return "\n".join(lines)


def format_run_summary(run: ReleaseRun, *, color: bool = True) -> str:
    style = styler(color)
    failures = sum(len(r.failures) for r in run.rule_results.values())
    summary = (
        f"Release: {len(run.created)} created, {len(run.unchanged)} unchanged, "
        f"{failures} rule failure(s)."
    )
    return style(summary, bold=True, fg="red" if failures else None)
