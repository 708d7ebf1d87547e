"""Tests for the promptbench CLI."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from promptbench.common.models import Experiment
from promptbench.common.persistence import read_jsonl
from promptbench.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Render tables wide enough that cells do not wrap and keep logs under tmp_path."""
    monkeypatch.setenv("COLUMNS", "200")
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    for name in ("LOGGING__LEVEL", "LOGGING__PATH", "LOGFIRE__TOKEN"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("promptbench.common.display._console", None)


@pytest.fixture
def experiments_path(tmp_path: Path) -> Path:
    return tmp_path / "experiments.jsonl"


def _create(experiments_path: Path) -> str:
    result = runner.invoke(
        app,
        [
            "experiment",
            "create",
            "Greeting tone",
            "Be formal.",
            "Be friendly.",
            "--experiments-path",
            str(experiments_path),
        ],
    )
    assert result.exit_code == 0, result.output
    return str(read_jsonl(experiments_path, Experiment)[-1].id)


class TestScoreCommand:
    """Tests for the score command."""

    def test_score_json(self) -> None:
        """--json prints the scores as JSON."""
        result = runner.invoke(app, ["score", "Explain DNS", "", "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["overall_score"] == 21

    def test_score_table(self) -> None:
        """Without --json the scores are printed as a table."""
        result = runner.invoke(app, ["score", "Explain DNS", "DNS maps names to addresses."])

        assert result.exit_code == 0, result.output
        assert "Clarity" in result.output
        assert "Overall" in result.output

    def test_score_from_file(self, tmp_path: Path) -> None:
        """The response can be read from a file."""
        response_file = tmp_path / "response.txt"
        response_file.write_text("", encoding="utf-8")

        result = runner.invoke(
            app, ["score", "Explain DNS", "--response-file", str(response_file), "--json"]
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["clarity_score"] == 20

    def test_missing_response(self) -> None:
        """Omitting both the response and the file fails."""
        result = runner.invoke(app, ["score", "Explain DNS"])

        assert result.exit_code == 1


class TestSignificanceCommand:
    """Tests for the significance command."""

    def test_significance_json(self) -> None:
        """A clear lift reports a treatment win."""
        result = runner.invoke(app, ["significance", "10000", "400", "600", "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["winner"] == "treatment"

    def test_invalid_counts_fail(self) -> None:
        """Conversions above the sample size exit with an error."""
        result = runner.invoke(app, ["significance", "10", "8", "8"])

        assert result.exit_code == 1
        assert "exceed" in result.output


class TestValidateCardCommand:
    """Tests for the validate-card command."""

    def test_valid_card(self) -> None:
        """A Luhn-valid number passes."""
        result = runner.invoke(app, ["validate-card", "4111 1111 1111 1111"])

        assert result.exit_code == 0
        assert "valid" in result.output

    def test_invalid_card(self) -> None:
        """A checksum failure exits with an error."""
        result = runner.invoke(app, ["validate-card", "4111111111111112"])

        assert result.exit_code == 1
        assert "Invalid card number" in result.output


class TestBenchmarkCommand:
    """Tests for the benchmark command."""

    def test_requires_api_key(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without an API key the command fails before calling any model."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("OPENROUTER_API_KEY", "")

        result = runner.invoke(app, ["benchmark", "Explain DNS"])

        assert result.exit_code == 1
        assert "OPENROUTER_API_KEY" in result.output


class TestExperimentCommands:
    """Tests for the experiment command group."""

    def test_lifecycle(self, experiments_path: Path) -> None:
        """Create, record, analyze and complete an experiment."""
        experiment_id = _create(experiments_path)
        path_args = ["--experiments-path", str(experiments_path)]

        for args in (
            ["control", "--converted"],
            ["control", "--not-converted"],
            ["TREATMENT", "--converted"],
        ):
            result = runner.invoke(app, ["experiment", "record", experiment_id, *args, *path_args])
            assert result.exit_code == 0, result.output

        analyzed = runner.invoke(
            app, ["experiment", "analyze", experiment_id, "--json", *path_args]
        )
        assert analyzed.exit_code == 0, analyzed.output
        assert json.loads(analyzed.output)["sample_size"] == 3

        completed = runner.invoke(app, ["experiment", "complete", experiment_id, *path_args])
        assert completed.exit_code == 0, completed.output

        stored = read_jsonl(experiments_path, Experiment)[0]
        assert stored.status == "completed"
        assert stored.control_conversions == 1
        assert stored.treatment_conversions == 1

    def test_record_after_complete_fails(self, experiments_path: Path) -> None:
        """Recording on a completed experiment exits with an error."""
        experiment_id = _create(experiments_path)
        path_args = ["--experiments-path", str(experiments_path)]
        runner.invoke(app, ["experiment", "complete", experiment_id, *path_args])

        result = runner.invoke(
            app, ["experiment", "record", experiment_id, "control", *path_args]
        )

        assert result.exit_code == 1

    def test_unknown_experiment(self, experiments_path: Path) -> None:
        """Analyzing an unknown experiment exits with an error."""
        result = runner.invoke(
            app,
            [
                "experiment",
                "analyze",
                "00000000-0000-0000-0000-000000000000",
                "--experiments-path",
                str(experiments_path),
            ],
        )

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_list(self, experiments_path: Path) -> None:
        """Listing shows stored experiments, or a notice when there are none."""
        empty = runner.invoke(app, ["experiment", "list", "--experiments-path", str(experiments_path)])
        assert "No experiments found" in empty.output

        _create(experiments_path)
        listed = runner.invoke(
            app, ["experiment", "list", "--experiments-path", str(experiments_path)]
        )
        assert listed.exit_code == 0
        assert "Greeting tone" in listed.output


class TestLoggingSettings:
    """Tests for logging settings applied before every command."""

    def test_experiment_command_logs_to_configured_path(
        self, tmp_path: Path, experiments_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """LOGGING__PATH and LOGGING__LEVEL apply to experiment commands."""
        monkeypatch.setenv("LOGGING__PATH", "cli.jsonl")
        monkeypatch.setenv("LOGGING__LEVEL", "info")

        _create(experiments_path)

        log_path = tmp_path / "data" / "cli.jsonl"
        entries = [json.loads(line) for line in log_path.read_text().splitlines()]
        assert any(e["message"] == "Experiment created" for e in entries)
        assert all(e["level"] != "debug" for e in entries)

    def test_warning_level_drops_info_lines(
        self, tmp_path: Path, experiments_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Entries below LOGGING__LEVEL are not written."""
        monkeypatch.setenv("LOGGING__PATH", "cli.jsonl")
        monkeypatch.setenv("LOGGING__LEVEL", "warning")

        _create(experiments_path)

        assert not (tmp_path / "data" / "cli.jsonl").exists()
