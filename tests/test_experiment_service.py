"""Tests for the experiment lifecycle service."""

from pathlib import Path
from uuid import uuid4

import pytest

from promptbench.common.errors import (
    ExperimentNotFoundError,
    ExperimentStateError,
    InvalidInputError,
)
from promptbench.common.models import Experiment
from promptbench.common.persistence import read_jsonl
from promptbench.experiments import ExperimentService


@pytest.fixture
def service(tmp_path: Path) -> ExperimentService:
    return ExperimentService(tmp_path / "experiments.jsonl")


@pytest.fixture
def experiment(service: ExperimentService) -> Experiment:
    return service.create("Greeting tone", "Be formal.", "Be friendly.")


def _record_many(
    service: ExperimentService, experiment_id, variant: str, events: int, conversions: int
) -> None:
    for i in range(events):
        service.record(experiment_id, variant, i < conversions)


class TestCreate:
    """Tests for ExperimentService.create."""

    def test_creates_active_experiment(self, service: ExperimentService) -> None:
        """A new experiment is active, empty and persisted."""
        experiment = service.create(" Greeting tone ", "Be formal.", "Be friendly.", user_id="u1")

        assert experiment.status == "active"
        assert experiment.test_name == "Greeting tone"
        assert experiment.user_id == "u1"
        assert experiment.sample_size == 0
        assert read_jsonl(service.experiments_path, Experiment) == [experiment]

    @pytest.mark.parametrize(
        "args,field",
        [
            (("", "a", "b"), "test_name"),
            (("name", "  ", "b"), "control_variant"),
            (("name", "a", ""), "treatment_variant"),
        ],
    )
    def test_requires_names(self, service: ExperimentService, args: tuple, field: str) -> None:
        """Blank names or variants raise InvalidInputError."""
        with pytest.raises(InvalidInputError) as exc_info:
            service.create(*args)

        assert exc_info.value.field == field


class TestGetAndList:
    """Tests for ExperimentService.get and list_experiments."""

    def test_get_returns_stored_experiment(
        self, service: ExperimentService, experiment: Experiment
    ) -> None:
        """get accepts a UUID or its string form."""
        assert service.get(experiment.id) == experiment
        assert service.get(str(experiment.id)) == experiment

    def test_get_unknown_raises(self, service: ExperimentService, experiment: Experiment) -> None:
        """An unknown or malformed ID raises ExperimentNotFoundError."""
        with pytest.raises(ExperimentNotFoundError):
            service.get(uuid4())
        with pytest.raises(ExperimentNotFoundError):
            service.get("not-a-uuid")

    def test_list_without_file_is_empty(self, service: ExperimentService) -> None:
        """No experiments file means no experiments."""
        assert service.list_experiments() == []

    def test_list_returns_all(self, service: ExperimentService) -> None:
        """Every created experiment is listed in creation order."""
        first = service.create("one", "a", "b")
        second = service.create("two", "a", "b")

        assert [e.id for e in service.list_experiments()] == [first.id, second.id]


class TestRecord:
    """Tests for ExperimentService.record."""

    def test_record_increments_counts(
        self, service: ExperimentService, experiment: Experiment
    ) -> None:
        """Each event grows the sample size; conversions grow the variant count."""
        service.record(experiment.id, "control", True)
        service.record(experiment.id, "treatment", False)
        updated = service.record(experiment.id, "treatment", True)

        assert updated.sample_size == 3
        assert updated.control_conversions == 1
        assert updated.treatment_conversions == 1
        assert service.get(experiment.id) == updated

    def test_record_rejects_unknown_variant(
        self, service: ExperimentService, experiment: Experiment
    ) -> None:
        """Variants other than control and treatment are rejected."""
        with pytest.raises(InvalidInputError) as exc_info:
            service.record(experiment.id, "both", True)

        assert exc_info.value.field == "variant"

    def test_record_unknown_experiment(self, service: ExperimentService) -> None:
        """Recording against a missing experiment raises ExperimentNotFoundError."""
        with pytest.raises(ExperimentNotFoundError):
            service.record(uuid4(), "control", True)

    def test_record_after_complete_is_rejected(
        self, service: ExperimentService, experiment: Experiment
    ) -> None:
        """A completed experiment no longer accepts events and is left unchanged."""
        service.record(experiment.id, "control", True)
        service.complete(experiment.id)

        with pytest.raises(ExperimentStateError):
            service.record(experiment.id, "control", True)

        assert service.get(experiment.id).sample_size == 1

    def test_record_only_touches_target(self, service: ExperimentService) -> None:
        """Recording on one experiment leaves the others unchanged."""
        first = service.create("one", "a", "b")
        second = service.create("two", "a", "b")

        service.record(first.id, "control", True)

        assert service.get(second.id) == second


class TestAnalyze:
    """Tests for ExperimentService.analyze."""

    def test_analyze_empty_experiment(
        self, service: ExperimentService, experiment: Experiment
    ) -> None:
        """An experiment without events analyzes as inconclusive."""
        analysis = service.analyze(experiment.id)

        assert analysis.experiment_id == experiment.id
        assert analysis.sample_size == 0
        assert analysis.winner == "inconclusive"
        assert analysis.p_value == 1.0
        assert analysis.confidence == 0.0

    def test_analyze_stores_results(
        self, service: ExperimentService, experiment: Experiment
    ) -> None:
        """Analysis stores significance, winner and a snapshot on the experiment."""
        _record_many(service, experiment.id, "control", 100, 5)
        _record_many(service, experiment.id, "treatment", 100, 40)

        analysis = service.analyze(experiment.id)
        stored = service.get(experiment.id)

        assert analysis.sample_size == 200
        assert analysis.control_rate == pytest.approx(0.05)
        assert analysis.treatment_rate == pytest.approx(0.40)
        assert analysis.winner == "treatment"
        assert analysis.confidence == pytest.approx((1 - analysis.p_value) * 100)
        assert stored.winner == "treatment"
        assert stored.statistical_significance == pytest.approx(1 - analysis.p_value)
        assert stored.analysis is not None
        assert stored.analysis.z_score == pytest.approx(analysis.z_score)

    def test_analyze_completed_experiment(
        self, service: ExperimentService, experiment: Experiment
    ) -> None:
        """Completed experiments can still be analyzed."""
        service.complete(experiment.id)

        assert service.analyze(experiment.id).winner == "inconclusive"

    def test_analyze_unknown_experiment(self, service: ExperimentService) -> None:
        """Analyzing a missing experiment raises ExperimentNotFoundError."""
        with pytest.raises(ExperimentNotFoundError):
            service.analyze(uuid4())


class TestComplete:
    """Tests for ExperimentService.complete."""

    def test_complete_sets_status_and_end_time(
        self, service: ExperimentService, experiment: Experiment
    ) -> None:
        """Completing marks the experiment completed with an end time."""
        completed = service.complete(experiment.id)

        assert completed.status == "completed"
        assert completed.ended_at is not None
        assert completed.ended_at >= completed.started_at

    def test_complete_twice_is_rejected(
        self, service: ExperimentService, experiment: Experiment
    ) -> None:
        """A completed experiment cannot be completed again."""
        service.complete(experiment.id)

        with pytest.raises(ExperimentStateError):
            service.complete(experiment.id)
