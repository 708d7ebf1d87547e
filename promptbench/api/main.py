"""FastAPI application exposing promptbench over HTTP.

Endpoints:
    - POST /api/score: heuristic quality scores for a prompt/response pair
    - POST /api/significance: significance test on raw experiment counts
    - POST /api/benchmark: send a prompt to several models and score each reply
    - /api/experiments: create, list, fetch, record, analyze and complete experiments

Error mapping:
    - InvalidInputError -> 400
    - ExperimentNotFoundError -> 404
    - ExperimentStateError -> 409
    - Benchmark requested without an API key -> 503

Every request is tagged with a request ID (echoed in the X-Request-ID
header) that is attached to all log lines written while it is handled.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from promptbench.api.api_models import (
    BenchmarkRequest,
    BenchmarkResponse,
    CreateExperimentRequest,
    ErrorResponse,
    RecordEventRequest,
    ScoreRequest,
    SignificanceRequest,
)
from promptbench.benchmark.client import ChatClient
from promptbench.benchmark.runner import run_benchmark
from promptbench.common.config import Settings
from promptbench.common.errors import (
    ExperimentNotFoundError,
    ExperimentStateError,
    InvalidInputError,
)
from promptbench.common.logging import get_logger, request_context
from promptbench.common.models import (
    Experiment,
    ExperimentAnalysis,
    ScoreResult,
    SignificanceResult,
)
from promptbench.common.observability import init_observability
from promptbench.common.yaml_config import load_benchmark_config, load_models
from promptbench.experiments.service import ExperimentService
from promptbench.experiments.significance import analyze_experiment
from promptbench.scoring.heuristics import score

logger = get_logger("api.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize settings and services on startup."""
    settings = Settings()
    app.state.settings = settings
    app.state.experiment_service = ExperimentService(settings.experiments_path)
    app.state.benchmark_config = load_benchmark_config()
    app.state.benchmark_models = load_models()
    app.state.chat_client = ChatClient(settings) if settings.openrouter_api_key else None
    init_observability(settings)
    logger.info("API started", {"data_dir": settings.data_dir})

    yield


app = FastAPI(title="promptbench", lifespan=lifespan)


@app.middleware("http")
async def bind_request_id(request: Request, call_next):
    with request_context(request.headers.get("X-Request-ID")) as request_id:
        response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


def _error_response(status_code: int, error: str, field: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, field=field)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    logger.warning("Invalid input", {"path": request.url.path, "error": str(exc)})
    return _error_response(400, str(exc), exc.field)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies like any other invalid input."""
    first = exc.errors()[0]
    # Drop the leading "body"/"query"/"path" part of the location
    field = ".".join(str(part) for part in first.get("loc", ())[1:]) or None
    logger.warning("Invalid request", {"path": request.url.path, "error": first.get("msg")})
    return _error_response(400, first.get("msg", "Invalid request"), field)


@app.exception_handler(ExperimentNotFoundError)
async def not_found_handler(request: Request, exc: ExperimentNotFoundError) -> JSONResponse:
    return _error_response(404, str(exc))


@app.exception_handler(ExperimentStateError)
async def state_error_handler(request: Request, exc: ExperimentStateError) -> JSONResponse:
    return _error_response(409, str(exc))


def _experiments(request: Request) -> ExperimentService:
    return request.app.state.experiment_service


@app.post("/api/score", response_model=ScoreResult)
async def score_response(score_request: ScoreRequest) -> ScoreResult:
    return score(score_request.prompt, score_request.response)


@app.post("/api/significance", response_model=SignificanceResult)
async def significance(significance_request: SignificanceRequest) -> SignificanceResult:
    return analyze_experiment(
        significance_request.sample_size,
        significance_request.control_conversions,
        significance_request.treatment_conversions,
    )


@app.post("/api/benchmark", response_model=BenchmarkResponse)
async def benchmark(benchmark_request: BenchmarkRequest, request: Request) -> BenchmarkResponse:
    """Benchmark a prompt across the requested (or configured) models.

    Models that fail are reported with ``success=False`` and zero scores.

    Raises:
        HTTPException: 503 if no OpenRouter API key is configured
    """
    client = request.app.state.chat_client
    if client is None:
        raise HTTPException(status_code=503, detail="OPENROUTER_API_KEY is not configured")

    settings: Settings = request.app.state.settings
    results = await run_benchmark(
        benchmark_request.prompt,
        benchmark_request.models or request.app.state.benchmark_models,
        client,
        config=request.app.state.benchmark_config,
        results_path=settings.benchmarks_path,
    )
    return BenchmarkResponse(results=results)


@app.post("/api/experiments", response_model=Experiment, status_code=201)
async def create_experiment(create_request: CreateExperimentRequest, request: Request) -> Experiment:
    return _experiments(request).create(
        create_request.test_name,
        create_request.control_variant,
        create_request.treatment_variant,
        user_id=create_request.user_id,
    )


@app.get("/api/experiments", response_model=list[Experiment])
async def list_experiments(request: Request) -> list[Experiment]:
    return _experiments(request).list_experiments()


@app.get("/api/experiments/{experiment_id}", response_model=Experiment)
async def get_experiment(experiment_id: str, request: Request) -> Experiment:
    return _experiments(request).get(experiment_id)


@app.post("/api/experiments/{experiment_id}/events", response_model=Experiment)
async def record_event(
    experiment_id: str, event: RecordEventRequest, request: Request
) -> Experiment:
    """Record one observation; 409 once the experiment is completed."""
    return _experiments(request).record(experiment_id, event.variant, event.converted)


@app.post("/api/experiments/{experiment_id}/analyze", response_model=ExperimentAnalysis)
async def analyze(experiment_id: str, request: Request) -> ExperimentAnalysis:
    return _experiments(request).analyze(experiment_id)


@app.post("/api/experiments/{experiment_id}/complete", response_model=Experiment)
async def complete_experiment(experiment_id: str, request: Request) -> Experiment:
    return _experiments(request).complete(experiment_id)
