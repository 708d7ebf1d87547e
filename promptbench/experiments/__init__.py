from promptbench.common.models import ExperimentCounts, SignificanceResult
from promptbench.experiments.service import ExperimentService
from promptbench.experiments.significance import analyze_counts, analyze_experiment, normal_cdf

__all__ = [
    "ExperimentCounts",
    "ExperimentService",
    "SignificanceResult",
    "analyze_counts",
    "analyze_experiment",
    "normal_cdf",
]
