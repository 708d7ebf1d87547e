"""Chat-completions client for OpenRouter-compatible gateways.

Dependencies:
    - httpx: Async HTTP client for API requests
"""

import httpx

from promptbench.common.api_exceptions import ErrorCategory, raise_for_httpx_status_error
from promptbench.common.config import BenchmarkConfig, Settings
from promptbench.common.errors import PromptBenchError
from promptbench.common.logging import get_logger
from promptbench.common.models import ChatCompletion
from promptbench.common.retry import retry

logger = get_logger(__name__)


class ChatClientError(PromptBenchError):
    """Base exception for chat client errors."""


class AuthenticationError(ChatClientError):
    """Raised when API authentication fails."""


class ModelNotFoundError(ChatClientError):
    """Raised when the requested model ID is unknown to the gateway."""


class RateLimitError(ChatClientError):
    """Raised when API rate limit is exceeded."""


class TransientError(ChatClientError):
    """Raised for transient API errors that can be retried (5xx, connection errors)."""


_HTTPX_ERROR_MAP: dict[ErrorCategory, type[Exception]] = {
    "rate_limit": RateLimitError,
    "transient": TransientError,
    "auth": AuthenticationError,
    "model_not_found": ModelNotFoundError,
}


def _optional_int(value) -> int | None:
    return int(value) if value is not None else None


def parse_completion(data: dict) -> ChatCompletion:
    """Extract the reply text and usage metadata from a chat-completions payload.

    Example:
        >>> parse_completion({"choices": [{"message": {"content": "hi"}}]}).text
        'hi'
        >>> parse_completion({}).text
        ''
    """
    text = ""
    choices = data.get("choices") or []
    if choices:
        message = choices[0].get("message") or {}
        text = message.get("content") or ""

    usage = data.get("usage") or {}
    cost = usage.get("cost", usage.get("total_cost"))

    return ChatCompletion(
        text=text,
        prompt_tokens=_optional_int(usage.get("prompt_tokens")),
        completion_tokens=_optional_int(usage.get("completion_tokens")),
        total_tokens=_optional_int(usage.get("total_tokens")),
        cost=float(cost) if cost is not None else None,
    )


class ChatClient:
    """Client for sending a single user prompt to a hosted model."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the chat client.

        Args:
            settings: Settings object with API key and base URL configuration
            transport: Optional httpx transport, used by tests to stub the network
        """
        self.api_key = settings.openrouter_api_key
        self.base_url = settings.base_url.rstrip("/")
        self.timeout = settings.openrouter_timeout_seconds
        self._transport = transport

    def _build_payload(self, model_id: str, prompt: str, config: BenchmarkConfig) -> dict:
        messages: list[dict[str, str]] = []
        if config.system_prompt:
            messages.append({"role": "system", "content": config.system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload: dict = {
            "model": model_id,
            "messages": messages,
            "max_completion_tokens": config.max_tokens,
        }
        if config.temperature is not None:
            payload["temperature"] = config.temperature
        return payload

    @retry(
        max_retries=3,
        base_delay_seconds=1,
        retryable_exceptions=(RateLimitError, TransientError),
    )
    async def complete(
        self,
        model_id: str,
        prompt: str,
        config: BenchmarkConfig | None = None,
    ) -> ChatCompletion:
        """Send a prompt to a model and return its reply.

        Args:
            model_id: Model identifier (e.g., 'openai/gpt-5-mini')
            prompt: User prompt text
            config: Optional benchmark configuration (max tokens, temperature, system prompt)

        Returns:
            ChatCompletion with the reply text and usage metadata

        Raises:
            RateLimitError: When API rate limit is exceeded (retries 3 times)
            TransientError: For transient errors (5xx, connection, timeout)
            AuthenticationError: When API authentication fails (invalid API key)
            ModelNotFoundError: When the model ID is invalid or unavailable
            ChatClientError: For other API errors
        """
        config = config or BenchmarkConfig()
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=headers,
                    json=self._build_payload(model_id, prompt, config),
                )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise_for_httpx_status_error(
                e, _HTTPX_ERROR_MAP, ChatClientError, model_context=model_id
            )
        except httpx.RequestError as e:
            raise TransientError(f"Request error: {e}") from e
        except ValueError as e:
            raise ChatClientError(f"Malformed response body: {e}") from e

        completion = parse_completion(data)
        logger.info(
            "Chat completion received",
            {
                "model_id": model_id,
                "completion_tokens": completion.completion_tokens,
                "cost": completion.cost,
            },
        )
        return completion
