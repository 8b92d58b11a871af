"""Rich-based console rendering of an evaluation.

:class:`EvaluationDashboard` prints a dimension table, the red flags and
the verdict.  ``use_rich=False`` switches to plain ``print()`` output for
logs and pipes.
"""

from __future__ import annotations

import sys
from collections.abc import Mapping, Sequence
from typing import Any

from rich.console import Console
from rich.table import Table

from deal_qualifier.domain.enums import QualificationVerdict
from deal_qualifier.domain.values import DimensionScore, RedFlag
from deal_qualifier.services.stages import SCORED_DIMENSIONS, ScoringStageSpec


def _score_colour(dimension: DimensionScore, max_score: float) -> str:
    if dimension.degraded:
        return "red"
    ratio = dimension.score / max_score if max_score else 0.0
    if ratio >= 0.7:
        return "green"
    if ratio >= 0.4:
        return "yellow"
    return "red"


def _status(dimension: DimensionScore | None) -> str:
    if dimension is None:
        return "not run"
    if dimension.degraded:
        return "degraded"
    if dimension.reconciled:
        return "reconciled"
    return "ok"


class EvaluationDashboard:
    """Console presentation of a completed evaluation.

    Parameters
    ----------
    use_rich:
        Render tables with colour (default) or fall back to plain text.
    file:
        Output stream.  Defaults to ``sys.stdout``.
    dimensions:
        Scored stages shown in the table, in order.
    """

    def __init__(
        self,
        use_rich: bool = True,
        file: Any = None,
        dimensions: Sequence[ScoringStageSpec] = SCORED_DIMENSIONS,
    ) -> None:
        self._file = file or sys.stdout
        self._use_rich = use_rich
        self._console = Console(file=self._file) if use_rich else None
        self.dimensions = tuple(dimensions)

    def _plain_print(self, *args: Any) -> None:
        print(*args, file=self._file)

    # -- public API --------------------------------------------------------

    def print_evaluation(self, state: Mapping[str, Any]) -> None:
        """Print the score table, red flags and verdict for *state*."""
        if self._console is not None:
            self._print_rich(state)
        else:
            self._print_plain(state)

    def print_progress(self, node_name: str, summary: str) -> None:
        if self._console is not None:
            self._console.print(f"[dim]>[/dim] [bold]{node_name}[/bold] {summary}")
        else:
            self._plain_print(f"> {node_name} {summary}")

    # -- rich ----------------------------------------------------------------

    def _print_rich(self, state: Mapping[str, Any]) -> None:
        assert self._console is not None
        table = Table(
            title=f"Deal Evaluation: {state.get('session_id', '?')}",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("Dimension", style="bold")
        table.add_column("Score", justify="right")
        table.add_column("Max", justify="right")
        table.add_column("Criteria", justify="right")
        table.add_column("Status", justify="center")

        for spec in self.dimensions:
            dimension: DimensionScore | None = state.get(spec.state_key)
            if dimension is None:
                table.add_row(spec.label, "N/A", f"{spec.max_score:.2f}", "-", _status(None))
                continue
            colour = _score_colour(dimension, spec.max_score)
            table.add_row(
                spec.label,
                f"[{colour}]{dimension.score:.2f}[/{colour}]",
                f"{spec.max_score:.2f}",
                str(len(dimension.breakdown)),
                _status(dimension),
            )

        self._console.print()
        self._console.print(table)

        flags: list[RedFlag] = state.get("red_flags") or []
        self._console.print()
        if state.get("red_flags_degraded"):
            self._console.print("[bold red]Red flags:[/bold red] [red]degraded (unparseable output)[/red]")
        elif not flags:
            self._console.print("[bold]Red flags:[/bold] none identified")
        else:
            self._console.print(f"[bold]Red flags ({len(flags)}):[/bold]")
            for flag in flags:
                self._console.print(f"  [red]-[/red] {flag}")

        verdict = state.get("qualification_verdict")
        if isinstance(verdict, QualificationVerdict):
            colour = {"GO": "green", "REVIEW": "yellow", "NO-GO": "red"}[verdict.value]
            self._console.print()
            self._console.print(f"[bold]Verdict:[/bold] [{colour}]{verdict.value}[/{colour}]")
        self._console.print()

    # -- plain ---------------------------------------------------------------

    def _print_plain(self, state: Mapping[str, Any]) -> None:
        self._plain_print()
        self._plain_print(f"Deal Evaluation: {state.get('session_id', '?')}")
        self._plain_print("-" * 60)
        for spec in self.dimensions:
            dimension: DimensionScore | None = state.get(spec.state_key)
            score = "N/A" if dimension is None else f"{dimension.score:.2f}"
            self._plain_print(
                f"  {spec.label:<22} {score:>6} / {spec.max_score:.2f}  [{_status(dimension)}]"
            )
        flags: list[RedFlag] = state.get("red_flags") or []
        self._plain_print()
        if state.get("red_flags_degraded"):
            self._plain_print("Red flags: degraded (unparseable output)")
        else:
            self._plain_print(f"Red flags ({len(flags)}):")
            for flag in flags:
                self._plain_print(f"  - {flag}")
        verdict = state.get("qualification_verdict")
        if isinstance(verdict, QualificationVerdict):
            self._plain_print(f"Verdict: {verdict.value}")
        self._plain_print()
