from collections.abc import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from promptbench.common.models import (
    BenchmarkResult,
    Experiment,
    ExperimentAnalysis,
    ScoreResult,
    SignificanceResult,
)

TEAL = "#2EC4B6"
AMBER = "#FFB000"


_theme = Theme(
    {
        "primary": TEAL,
        "accent": AMBER,
        "bold": "bold",
        "success": "green bold",
        "error": "red bold",
        "warning": "yellow bold",
        "info": "blue bold",
    }
)


_console: Console | None = None


def get_theme() -> Theme:
    return _theme


def get_console(force_terminal: bool | None = None) -> Console:
    global _console

    if _console is None or force_terminal is not None:
        _console = Console(
            theme=_theme,
            force_terminal=force_terminal,
            legacy_windows=False,
        )

    return _console


def success_badge() -> Text:
    return Text("[✓]", style="success")


def error_badge() -> Text:
    return Text("[✗]", style="error")


def _score_style(value: int) -> str:
    if value >= 70:
        return "success"
    if value >= 40:
        return "warning"
    return "error"


def create_score_table(result: ScoreResult, title: str = "Response Quality") -> Table:
    table = Table(title=title, border_style="primary")
    table.add_column("Axis", style="info")
    table.add_column("Score", justify="right")

    rows = [
        ("Clarity", result.clarity_score),
        ("Originality", result.originality_score),
        ("Depth", result.depth_score),
        ("Relevance", result.relevance_score),
    ]
    for name, value in rows:
        table.add_row(name, Text(str(value), style=_score_style(value)))
    table.add_section()
    table.add_row(
        Text("Overall", style="bold"),
        Text(str(result.overall_score), style=f"bold {_score_style(result.overall_score)}"),
    )
    return table


def create_benchmark_table(results: Sequence[BenchmarkResult]) -> Table:
    """Table of benchmark results, best overall score first."""
    table = Table(title="Benchmark Results", border_style="primary")
    table.add_column("Rank", justify="right", style="accent")
    table.add_column("Model", style="info")
    table.add_column("Overall", justify="right")
    table.add_column("Clarity", justify="right")
    table.add_column("Originality", justify="right")
    table.add_column("Depth", justify="right")
    table.add_column("Relevance", justify="right")
    table.add_column("Time (ms)", justify="right")
    table.add_column("Status")

    ranked = sorted(results, key=lambda r: (r.success, r.scores.overall_score), reverse=True)
    for rank, result in enumerate(ranked, start=1):
        s = result.scores
        status = Text("ok", style="success") if result.success else Text("failed", style="error")
        table.add_row(
            str(rank),
            result.model_name,
            Text(str(s.overall_score), style=_score_style(s.overall_score)),
            str(s.clarity_score),
            str(s.originality_score),
            str(s.depth_score),
            str(s.relevance_score),
            str(result.response_time_ms),
            status,
        )
    return table


def create_significance_panel(result: SignificanceResult, title: str = "Significance") -> Panel:
    winner_style = "success" if result.is_significant else "warning"
    body = Text.assemble(
        ("Control rate: ", "info"),
        (f"{result.control_rate:.4f}", "bold accent"),
        ("\n", "default"),
        ("Treatment rate: ", "info"),
        (f"{result.treatment_rate:.4f}", "bold accent"),
        ("\n", "default"),
        ("z-score: ", "info"),
        (f"{result.z_score:.4f}", "bold accent"),
        ("\n", "default"),
        ("p-value: ", "info"),
        (f"{result.p_value:.6f}", "bold accent"),
        ("\n", "default"),
        ("Winner: ", "info"),
        (result.winner, f"bold {winner_style}"),
    )
    if isinstance(result, ExperimentAnalysis):
        body.append_text(
            Text.assemble(
                ("\n", "default"),
                ("Sample size: ", "info"),
                (str(result.sample_size), "bold accent"),
                ("\n", "default"),
                ("Confidence: ", "info"),
                (f"{result.confidence:.2f}%", "bold accent"),
            )
        )
    return Panel(body, title=title, border_style=winner_style)


def create_experiments_table(experiments: Sequence[Experiment]) -> Table:
    table = Table(title="Experiments", border_style="primary")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="info")
    table.add_column("Status")
    table.add_column("Samples", justify="right")
    table.add_column("Control conv.", justify="right")
    table.add_column("Treatment conv.", justify="right")
    table.add_column("Winner")

    for experiment in experiments:
        status_style = "success" if experiment.status == "active" else "dim"
        table.add_row(
            str(experiment.id),
            experiment.test_name,
            Text(experiment.status, style=status_style),
            str(experiment.sample_size),
            str(experiment.control_conversions),
            str(experiment.treatment_conversions),
            experiment.winner or "-",
        )
    return table
