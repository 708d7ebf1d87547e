"""Concurrent multi-model benchmark.

Sends one prompt to every model in a roster at once, scores each reply
with the heuristic scorer and persists one BenchmarkResult per model.

A model that fails (after the client's own retries) yields a result with
``success=False``, zero scores and the error message; it never aborts the
rest of the run.

Dependencies:
    - promptbench.benchmark.client: chat-completions client
    - promptbench.scoring.heuristics: response quality scoring
    - promptbench.common.persistence: JSONL persistence utilities
"""

import asyncio
import time
import traceback
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol

from promptbench.benchmark.client import (
    AuthenticationError,
    ChatClientError,
    ModelNotFoundError,
    RateLimitError,
    TransientError,
)
from promptbench.common.config import BenchmarkConfig
from promptbench.common.errors import InvalidInputError
from promptbench.common.logging import generate_id, get_logger, request_context, set_run_id
from promptbench.common.models import BenchmarkModel, BenchmarkResult, ChatCompletion, ScoreResult
from promptbench.common.observability import is_logfire_enabled
from promptbench.common.persistence import append_jsonl
from promptbench.scoring.heuristics import score

logger = get_logger("benchmark.runner")

OnResultCallback = Callable[[BenchmarkResult], None]

_ERROR_MESSAGES: dict[type[Exception], str] = {
    RateLimitError: "Rate limited after retries",
    AuthenticationError: "Authentication failed",
    TransientError: "Transient error encountered",
    ModelNotFoundError: "Model not found",
    ChatClientError: "Chat client error",
}


class CompletionClient(Protocol):
    async def complete(
        self, model_id: str, prompt: str, config: BenchmarkConfig | None = None
    ) -> ChatCompletion: ...


def _elapsed_ms(start: float) -> int:
    return int(round((time.perf_counter() - start) * 1000))


def _failed_result(
    model: BenchmarkModel, prompt: str, exception: Exception, response_time_ms: int, run_id: str
) -> BenchmarkResult:
    log_message = _ERROR_MESSAGES.get(type(exception), "Unexpected exception")
    log_context = {"model": model.id, "error": str(exception)}
    if log_message == "Unexpected exception":
        log_context["error_type"] = type(exception).__name__
        log_context["traceback"] = traceback.format_exc()
    logger.error(log_message, log_context)

    return BenchmarkResult(
        run_id=run_id,
        prompt_text=prompt,
        model_id=model.id,
        model_name=model.name,
        response="",
        response_time_ms=response_time_ms,
        scores=ScoreResult.zero(),
        success=False,
        error=str(exception) or type(exception).__name__,
    )


async def _call_and_score(
    model: BenchmarkModel,
    prompt: str,
    client: CompletionClient,
    config: BenchmarkConfig,
    run_id: str,
) -> BenchmarkResult:
    start = time.perf_counter()
    try:
        completion = await client.complete(model.id, prompt, config)
    except Exception as e:
        return _failed_result(model, prompt, e, _elapsed_ms(start), run_id)

    return BenchmarkResult(
        run_id=run_id,
        prompt_text=prompt,
        model_id=model.id,
        model_name=model.name,
        response=completion.text,
        response_time_ms=_elapsed_ms(start),
        scores=score(prompt, completion.text),
        success=True,
        cost=completion.cost,
    )


async def _benchmark_one(
    model: BenchmarkModel,
    prompt: str,
    client: CompletionClient,
    config: BenchmarkConfig,
    run_id: str,
    semaphore: asyncio.Semaphore,
    results_path: Path | None,
    on_result: OnResultCallback | None,
) -> BenchmarkResult:
    async with semaphore:
        with request_context() as request_id:
            if is_logfire_enabled():
                import logfire

                with logfire.span(
                    "benchmark.model",
                    model_id=model.id,
                    run_id=run_id,
                    request_id=request_id,
                ):
                    result = await _call_and_score(model, prompt, client, config, run_id)
            else:
                result = await _call_and_score(model, prompt, client, config, run_id)

            logger.info(
                "Model benchmarked",
                {
                    "model": model.id,
                    "duration_ms": result.response_time_ms,
                    "success": result.success,
                    "overall_score": result.scores.overall_score,
                },
            )

    if results_path is not None:
        append_jsonl(results_path, result)
    if on_result is not None:
        on_result(result)
    return result


async def run_benchmark(
    prompt: str,
    models: Sequence[BenchmarkModel],
    client: CompletionClient,
    config: BenchmarkConfig | None = None,
    results_path: Path | None = None,
    on_result: OnResultCallback | None = None,
) -> list[BenchmarkResult]:
    """Benchmark a prompt across several models concurrently.

    Args:
        prompt: Prompt text sent unchanged to every model
        models: Models to benchmark
        client: Client used for the chat-completion calls
        config: Benchmark configuration (token limit, concurrency)
        results_path: Optional JSONL file each result is appended to
        on_result: Optional callback invoked as each model finishes

    Returns:
        One BenchmarkResult per model, in the order of ``models``

    Raises:
        InvalidInputError: If the prompt is empty or no models are given

    Example:
        >>> results = await run_benchmark("Explain TCP", models, client)
        >>> [r.model_id for r in results] == [m.id for m in models]
        True
    """
    if not isinstance(prompt, str) or not prompt.strip():
        raise InvalidInputError("Prompt is required", field="prompt")
    if not models:
        raise InvalidInputError("At least one model is required", field="models")

    config = config or BenchmarkConfig()
    run_id = generate_id()
    set_run_id(run_id)
    semaphore = asyncio.Semaphore(config.max_concurrent_requests)

    logger.info("Benchmark started", {"models": [m.id for m in models], "run_id": run_id})

    results = await asyncio.gather(
        *[
            _benchmark_one(
                model=model,
                prompt=prompt,
                client=client,
                config=config,
                run_id=run_id,
                semaphore=semaphore,
                results_path=results_path,
                on_result=on_result,
            )
            for model in models
        ]
    )

    succeeded = sum(1 for r in results if r.success)
    logger.info(
        "Benchmark finished",
        {"run_id": run_id, "succeeded": succeeded, "failed": len(results) - succeeded},
    )
    return list(results)
