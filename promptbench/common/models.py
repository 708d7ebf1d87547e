from datetime import UTC, datetime
from functools import partial
from typing import Literal, Self
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    ValidationError,
    model_validator,
)

from promptbench.common.errors import InvalidInputError

# Helper for timezone-aware timestamps
_utc_now = partial(datetime.now, tz=UTC)

Variant = Literal["control", "treatment"]
Winner = Literal["control", "treatment", "inconclusive"]
ExperimentStatus = Literal["active", "completed"]

# Largest integer a float holds exactly
MAX_COUNT = 2**53 - 1


def _invalid_input_from(exc: ValidationError) -> InvalidInputError:
    """Convert the first pydantic validation error into an InvalidInputError."""
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    message = first.get("msg", str(exc))
    if field:
        message = f"{field}: {message}"
    return InvalidInputError(message, field=field)


class ScoreInput(BaseModel):
    """Prompt/response pair handed to the quality scorer."""

    model_config = ConfigDict(frozen=True)

    prompt_text: StrictStr
    response_text: StrictStr

    @classmethod
    def from_texts(cls, prompt_text: object, response_text: object) -> Self:
        """Build a ScoreInput, raising InvalidInputError for non-string values.

        Example:
            >>> ScoreInput.from_texts("Explain DNS", "DNS maps names to addresses.").prompt_text
            'Explain DNS'

        Negative case:
            >>> ScoreInput.from_texts(None, "text")
            Traceback (most recent call last):
            ...
            promptbench.common.errors.InvalidInputError: prompt_text: Input should be a valid string
        """
        try:
            return cls(prompt_text=prompt_text, response_text=response_text)
        except ValidationError as e:
            raise _invalid_input_from(e) from e


class ScoreResult(BaseModel):
    clarity_score: int = Field(ge=0, le=100)
    originality_score: int = Field(ge=0, le=100)
    depth_score: int = Field(ge=0, le=100)
    relevance_score: int = Field(ge=0, le=100)
    overall_score: int = Field(ge=0, le=100)

    @classmethod
    def zero(cls) -> Self:
        """Scores reported for a model call that produced no response."""
        return cls(
            clarity_score=0,
            originality_score=0,
            depth_score=0,
            relevance_score=0,
            overall_score=0,
        )


class ExperimentCounts(BaseModel):
    """Snapshot of the accumulated counts of a two-variant experiment."""

    model_config = ConfigDict(frozen=True)

    sample_size: StrictInt = Field(ge=0, le=MAX_COUNT)
    control_conversions: StrictInt = Field(ge=0, le=MAX_COUNT)
    treatment_conversions: StrictInt = Field(ge=0, le=MAX_COUNT)

    @model_validator(mode="after")
    def validate_conversions_within_sample(self) -> Self:
        """Validate that conversions never exceed the number of observations."""
        if self.control_conversions > self.sample_size:
            raise ValueError("control_conversions must not exceed sample_size")
        if self.treatment_conversions > self.sample_size:
            raise ValueError("treatment_conversions must not exceed sample_size")
        if self.control_conversions + self.treatment_conversions > self.sample_size:
            raise ValueError("total conversions must not exceed sample_size")
        return self

    @classmethod
    def from_counts(
        cls, sample_size: object, control_conversions: object, treatment_conversions: object
    ) -> Self:
        """Build an ExperimentCounts, raising InvalidInputError on any violated precondition."""
        try:
            return cls(
                sample_size=sample_size,
                control_conversions=control_conversions,
                treatment_conversions=treatment_conversions,
            )
        except ValidationError as e:
            raise _invalid_input_from(e) from e


class SignificanceResult(BaseModel):
    control_rate: float = Field(ge=0)
    treatment_rate: float = Field(ge=0)
    z_score: float = Field(ge=0)
    p_value: float = Field(ge=0, le=1)
    is_significant: bool
    winner: Winner


class AnalysisSnapshot(BaseModel):
    """Significance figures stored on an experiment after each analysis."""

    control_rate: float
    treatment_rate: float
    z_score: float
    p_value: float
    analyzed_at: datetime = Field(default_factory=_utc_now)


class Experiment(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: str | None = None
    test_name: str
    control_variant: str
    treatment_variant: str
    status: ExperimentStatus = "active"
    sample_size: int = 0
    control_conversions: int = 0
    treatment_conversions: int = 0
    statistical_significance: float | None = None
    winner: Winner | None = None
    analysis: AnalysisSnapshot | None = None
    started_at: datetime = Field(default_factory=_utc_now)
    ended_at: datetime | None = None

    @property
    def counts(self) -> ExperimentCounts:
        return ExperimentCounts.from_counts(
            self.sample_size, self.control_conversions, self.treatment_conversions
        )


class ExperimentAnalysis(SignificanceResult):
    """Significance result for a stored experiment, as returned to callers."""

    experiment_id: UUID
    sample_size: int
    confidence: float


class BenchmarkModel(BaseModel):
    id: str
    name: str
    description: str = ""


class ChatCompletion(BaseModel):
    """Text and usage metadata returned by a chat-completions call."""

    text: str
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None
    cost: float | None = None


class BenchmarkResult(BaseModel):
    """Outcome of sending one benchmark prompt to one model."""

    id: UUID = Field(default_factory=uuid4)
    run_id: str | None = None
    prompt_text: str
    model_id: str
    model_name: str
    response: str
    response_time_ms: int
    scores: ScoreResult
    success: bool
    error: str | None = None
    cost: float | None = None
    timestamp: datetime = Field(default_factory=_utc_now)
