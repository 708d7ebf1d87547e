from promptbench.common.models import ScoreInput, ScoreResult
from promptbench.scoring.heuristics import calculate_quality_scores, score

__all__ = [
    "ScoreInput",
    "ScoreResult",
    "calculate_quality_scores",
    "score",
]
