"""Pydantic API models for promptbench HTTP endpoints."""

from typing import Literal

from pydantic import BaseModel

from promptbench.common.models import BenchmarkModel, BenchmarkResult


class ScoreRequest(BaseModel):
    """Request model for scoring a response against its prompt."""

    prompt: str
    response: str


class SignificanceRequest(BaseModel):
    """Request model for a stateless significance test on raw counts."""

    sample_size: int
    control_conversions: int
    treatment_conversions: int


class BenchmarkRequest(BaseModel):
    """Request model for a multi-model benchmark run."""

    prompt: str
    models: list[BenchmarkModel] | None = None


class BenchmarkResponse(BaseModel):
    results: list[BenchmarkResult]


class CreateExperimentRequest(BaseModel):
    test_name: str
    control_variant: str
    treatment_variant: str
    user_id: str | None = None


class RecordEventRequest(BaseModel):
    """Request model for recording one observation on an experiment."""

    variant: Literal["control", "treatment"]
    converted: bool = False


class ErrorResponse(BaseModel):
    error: str
    field: str | None = None
