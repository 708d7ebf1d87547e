"""Experiment lifecycle service.

An experiment moves through ``active -> completed``. While active it
accumulates observations through ``record``; ``analyze`` may run at any
time and stores the latest significance figures on the record.

Experiments are persisted one per line in a JSONL file. Every mutation is
a read-modify-write under the file lock, so counts recorded concurrently
are never lost.

Dependencies:
    - promptbench.common.persistence: JSONL persistence utilities
    - promptbench.experiments.significance: significance test
"""

from datetime import UTC, datetime
from pathlib import Path
from uuid import UUID

from promptbench.common.errors import (
    ExperimentNotFoundError,
    ExperimentStateError,
    InvalidInputError,
)
from promptbench.common.logging import get_logger
from promptbench.common.models import (
    AnalysisSnapshot,
    Experiment,
    ExperimentAnalysis,
    Variant,
)
from promptbench.common.persistence import (
    append_jsonl,
    read_jsonl,
    read_jsonl_by_id,
    update_jsonl_by_id,
)
from promptbench.experiments.significance import analyze_counts

logger = get_logger("experiments.service")

VARIANTS: tuple[Variant, ...] = ("control", "treatment")


def _require_name(value: str, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field} is required", field=field)
    return value.strip()


class ExperimentService:
    """Create, record, analyze and complete A/B experiments."""

    def __init__(self, experiments_path: Path | None = None):
        """Initialize ExperimentService.

        Args:
            experiments_path: Path to experiments.jsonl (default: data/experiments.jsonl)
        """
        self._experiments_path = experiments_path or Path("data/experiments.jsonl")

    @property
    def experiments_path(self) -> Path:
        return self._experiments_path

    def create(
        self,
        test_name: str,
        control_variant: str,
        treatment_variant: str,
        user_id: str | None = None,
    ) -> Experiment:
        experiment = Experiment(
            user_id=user_id,
            test_name=_require_name(test_name, "test_name"),
            control_variant=_require_name(control_variant, "control_variant"),
            treatment_variant=_require_name(treatment_variant, "treatment_variant"),
        )
        append_jsonl(self._experiments_path, experiment)
        logger.info(
            "Experiment created",
            {"experiment_id": experiment.id, "test_name": experiment.test_name},
        )
        return experiment

    def get(self, experiment_id: UUID | str) -> Experiment:
        experiment = read_jsonl_by_id(self._experiments_path, experiment_id, Experiment)
        if experiment is None:
            raise ExperimentNotFoundError(str(experiment_id))
        return experiment

    def list_experiments(self) -> list[Experiment]:
        try:
            return read_jsonl(self._experiments_path, Experiment)
        except FileNotFoundError:
            return []

    def _update(self, experiment_id: UUID | str, update) -> Experiment:
        updated = update_jsonl_by_id(self._experiments_path, experiment_id, Experiment, update)
        if updated is None:
            raise ExperimentNotFoundError(str(experiment_id))
        return updated

    def record(self, experiment_id: UUID | str, variant: Variant, converted: bool) -> Experiment:
        """Record one observation for a variant.

        The sample size grows by one per observation; the variant's
        conversion count grows by one when ``converted`` is true.

        Raises:
            InvalidInputError: If variant is not "control" or "treatment"
            ExperimentNotFoundError: If no experiment has this ID
            ExperimentStateError: If the experiment is already completed
        """
        if variant not in VARIANTS:
            raise InvalidInputError(
                f"variant must be one of {', '.join(VARIANTS)}, got {variant!r}",
                field="variant",
            )

        def apply(experiment: Experiment) -> Experiment:
            if experiment.status != "active":
                raise ExperimentStateError(
                    f"Experiment '{experiment.id}' is {experiment.status}; cannot record events"
                )
            updates: dict[str, int] = {"sample_size": experiment.sample_size + 1}
            if converted:
                field = f"{variant}_conversions"
                updates[field] = getattr(experiment, field) + 1
            return experiment.model_copy(update=updates)

        experiment = self._update(experiment_id, apply)
        logger.debug(
            "Event recorded",
            {
                "experiment_id": experiment.id,
                "variant": variant,
                "converted": converted,
                "sample_size": experiment.sample_size,
            },
        )
        return experiment

    def analyze(self, experiment_id: UUID | str) -> ExperimentAnalysis:
        """Run the significance test on the experiment's current counts.

        Stores ``1 - p`` as the statistical significance, the winner and an
        analysis snapshot on the experiment.
        """
        results: list[ExperimentAnalysis] = []

        def apply(experiment: Experiment) -> Experiment:
            result = analyze_counts(experiment.counts)
            results.append(
                ExperimentAnalysis(
                    **result.model_dump(),
                    experiment_id=experiment.id,
                    sample_size=experiment.sample_size,
                    confidence=(1 - result.p_value) * 100,
                )
            )
            return experiment.model_copy(
                update={
                    "statistical_significance": 1 - result.p_value,
                    "winner": result.winner,
                    "analysis": AnalysisSnapshot(
                        control_rate=result.control_rate,
                        treatment_rate=result.treatment_rate,
                        z_score=result.z_score,
                        p_value=result.p_value,
                    ),
                }
            )

        self._update(experiment_id, apply)
        analysis = results[0]
        logger.info(
            "Experiment analyzed",
            {
                "experiment_id": analysis.experiment_id,
                "sample_size": analysis.sample_size,
                "p_value": analysis.p_value,
                "winner": analysis.winner,
            },
        )
        return analysis

    def complete(self, experiment_id: UUID | str) -> Experiment:
        """Mark an active experiment as completed.

        Raises:
            ExperimentNotFoundError: If no experiment has this ID
            ExperimentStateError: If the experiment is already completed
        """

        def apply(experiment: Experiment) -> Experiment:
            if experiment.status == "completed":
                raise ExperimentStateError(f"Experiment '{experiment.id}' is already completed")
            return experiment.model_copy(
                update={"status": "completed", "ended_at": datetime.now(tz=UTC)}
            )

        experiment = self._update(experiment_id, apply)
        logger.info("Experiment completed", {"experiment_id": experiment.id})
        return experiment
