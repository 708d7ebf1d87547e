"""promptbench command line entry point.

Commands:
    score          Score a response against its prompt
    significance   Run the A/B significance test on raw counts
    benchmark      Send a prompt to every configured model and score the replies
    validate-card  Check a card number (length and Luhn checksum)
    serve          Run the HTTP API
    experiment     Create, record, analyze, complete and list stored experiments
"""

import asyncio
from pathlib import Path
from typing import Annotated, NoReturn

import typer

from promptbench.benchmark.client import ChatClient
from promptbench.benchmark.runner import run_benchmark
from promptbench.common.config import ConfigError, Settings
from promptbench.common.display import (
    create_benchmark_table,
    create_experiments_table,
    create_score_table,
    create_significance_panel,
    error_badge,
    get_console,
    success_badge,
)
from promptbench.common.errors import PromptBenchError
from promptbench.common.models import Variant
from promptbench.common.observability import init_observability
from promptbench.common.validation import validate_card_number
from promptbench.common.yaml_config import load_benchmark_config, load_models
from promptbench.experiments.service import ExperimentService
from promptbench.experiments.significance import analyze_experiment
from promptbench.scoring.heuristics import score

app = typer.Typer(help="Score LLM responses and analyze prompt A/B experiments.")
experiment_app = typer.Typer(help="Manage stored A/B experiments.")
app.add_typer(experiment_app, name="experiment")


@app.callback()
def main() -> None:
    """Score LLM responses and analyze prompt A/B experiments."""
    init_observability(Settings())


ExperimentsPathOption = Annotated[
    Path | None,
    typer.Option("--experiments-path", help="Path to experiments.jsonl (default: <data_dir>)"),
]


def _fail(message: str) -> NoReturn:
    get_console().print(error_badge(), f"[error]{message}[/error]")
    raise typer.Exit(code=1)


def _experiment_service(experiments_path: Path | None) -> ExperimentService:
    return ExperimentService(experiments_path or Settings().experiments_path)


def _as_variant(value: str) -> Variant:
    return value.lower()  # type: ignore[return-value]


@app.command("score")
def score_command(
    prompt: Annotated[str, typer.Argument(help="Prompt that produced the response")],
    response: Annotated[
        str | None, typer.Argument(help="Response text (omit when using --response-file)")
    ] = None,
    response_file: Annotated[
        Path | None, typer.Option("--response-file", help="Read the response from a file")
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON instead of a table")] = False,
) -> None:
    """Score a model response on clarity, originality, depth and relevance."""
    console = get_console()
    if response_file is not None:
        if not response_file.exists():
            _fail(f"Response file not found: {response_file}")
        response = response_file.read_text(encoding="utf-8")
    if response is None:
        _fail("Provide a response argument or --response-file")

    result = score(prompt, response)
    if as_json:
        console.print_json(result.model_dump_json())
    else:
        console.print(create_score_table(result))


@app.command("significance")
def significance_command(
    sample_size: Annotated[int, typer.Argument(help="Total observations across both variants")],
    control_conversions: Annotated[int, typer.Argument(help="Control conversions")],
    treatment_conversions: Annotated[int, typer.Argument(help="Treatment conversions")],
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON instead of a panel")] = False,
) -> None:
    """Test whether treatment and control conversion rates differ significantly."""
    console = get_console()
    try:
        result = analyze_experiment(sample_size, control_conversions, treatment_conversions)
    except PromptBenchError as e:
        _fail(str(e))

    if as_json:
        console.print_json(result.model_dump_json())
    else:
        console.print(create_significance_panel(result))


@app.command("benchmark")
def benchmark_command(
    prompt: Annotated[str, typer.Argument(help="Prompt to send to every model")],
    models_path: Annotated[
        str, typer.Option("--models-path", help="YAML file listing models")
    ] = "models.yaml",
    config_path: Annotated[
        str, typer.Option("--config-path", help="YAML file with benchmark settings")
    ] = "config.yaml",
    results_path: Annotated[
        Path | None, typer.Option("--results-path", help="JSONL file results are appended to")
    ] = None,
) -> None:
    """Benchmark a prompt across the configured models."""
    console = get_console()
    settings = Settings()

    if not settings.openrouter_api_key:
        _fail("OPENROUTER_API_KEY is not configured")

    try:
        models = load_models(models_path)
        config = load_benchmark_config(config_path)
    except ConfigError as e:
        _fail(str(e))

    console.print(f"[info]Benchmarking {len(models)} model(s)...[/info]")

    def on_result(result) -> None:
        badge = success_badge() if result.success else error_badge()
        console.print(badge, result.model_name, style="dim")

    try:
        results = asyncio.run(
            run_benchmark(
                prompt,
                models,
                ChatClient(settings),
                config=config,
                results_path=results_path or settings.benchmarks_path,
                on_result=on_result,
            )
        )
    except PromptBenchError as e:
        _fail(str(e))

    console.print()
    console.print(create_benchmark_table(results))


@app.command("validate-card")
def validate_card_command(
    card_number: Annotated[str, typer.Argument(help="Card number, spaces allowed")],
) -> None:
    """Check a card number's length and Luhn checksum."""
    result = validate_card_number(card_number)
    if not result.is_valid:
        _fail("; ".join(result.errors))
    get_console().print(success_badge(), "Card number is valid", style="success")


@app.command("serve")
def serve_command(
    host: Annotated[str, typer.Option("--host", help="Interface to bind")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", help="Port to listen on")] = 8000,
) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("promptbench.api.main:app", host=host, port=port, reload=False)


@experiment_app.command("create")
def experiment_create(
    test_name: Annotated[str, typer.Argument(help="Experiment name")],
    control_variant: Annotated[str, typer.Argument(help="Control prompt or variant label")],
    treatment_variant: Annotated[str, typer.Argument(help="Treatment prompt or variant label")],
    user_id: Annotated[str | None, typer.Option("--user-id", help="Owner of the experiment")] = None,
    experiments_path: ExperimentsPathOption = None,
) -> None:
    """Create a new active experiment."""
    try:
        experiment = _experiment_service(experiments_path).create(
            test_name, control_variant, treatment_variant, user_id=user_id
        )
    except PromptBenchError as e:
        _fail(str(e))
    get_console().print(success_badge(), f"Created experiment [accent]{experiment.id}[/accent]")


@experiment_app.command("record")
def experiment_record(
    experiment_id: Annotated[str, typer.Argument(help="Experiment ID")],
    variant: Annotated[str, typer.Argument(help="control or treatment")],
    converted: Annotated[
        bool, typer.Option("--converted/--not-converted", help="Whether the event converted")
    ] = False,
    experiments_path: ExperimentsPathOption = None,
) -> None:
    """Record one observation for a variant."""
    try:
        experiment = _experiment_service(experiments_path).record(
            experiment_id, _as_variant(variant), converted
        )
    except PromptBenchError as e:
        _fail(str(e))
    get_console().print(
        success_badge(),
        f"Recorded {variant} event (sample size {experiment.sample_size})",
    )


@experiment_app.command("analyze")
def experiment_analyze(
    experiment_id: Annotated[str, typer.Argument(help="Experiment ID")],
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON instead of a panel")] = False,
    experiments_path: ExperimentsPathOption = None,
) -> None:
    """Analyze an experiment's current counts."""
    console = get_console()
    try:
        analysis = _experiment_service(experiments_path).analyze(experiment_id)
    except PromptBenchError as e:
        _fail(str(e))

    if as_json:
        console.print_json(analysis.model_dump_json())
    else:
        console.print(create_significance_panel(analysis, title=f"Experiment {experiment_id}"))


@experiment_app.command("complete")
def experiment_complete(
    experiment_id: Annotated[str, typer.Argument(help="Experiment ID")],
    experiments_path: ExperimentsPathOption = None,
) -> None:
    """Mark an experiment as completed."""
    try:
        _experiment_service(experiments_path).complete(experiment_id)
    except PromptBenchError as e:
        _fail(str(e))
    get_console().print(success_badge(), f"Experiment {experiment_id} completed")


@experiment_app.command("list")
def experiment_list(experiments_path: ExperimentsPathOption = None) -> None:
    """List stored experiments."""
    experiments = _experiment_service(experiments_path).list_experiments()
    console = get_console()
    if not experiments:
        console.print("[warning]No experiments found[/warning]")
        return
    console.print(create_experiments_table(experiments))


if __name__ == "__main__":
    app()
