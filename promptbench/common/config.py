import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 120


class ConfigError(Exception):
    """Raised when a config file or settings value cannot be used."""


class LogfireConfig(BaseModel):
    token: str | None = None
    service_name: str = "promptbench"
    environment: str = "development"

    @property
    def is_enabled(self) -> bool:
        return bool(self.token)


class LoggingConfig(BaseModel):
    """Where JSON log lines go and how verbose they are.

    A relative ``path`` is resolved against ``Settings.data_dir``.
    """

    level: Literal["debug", "info", "warning", "error"] = "info"
    path: Path = Path("logs/promptbench.jsonl")


class BenchmarkConfig(BaseModel):
    max_tokens: int = 500
    temperature: float | None = None
    system_prompt: str = ""
    max_concurrent_requests: int = 6

    @field_validator("max_tokens", "max_concurrent_requests")
    @classmethod
    def require_positive(cls, v: int, info) -> int:
        if v <= 0:
            raise ValueError(f"{info.field_name} must be greater than 0")
        return v


class Settings(BaseSettings):
    """Process settings read from the environment and ``.env``.

    Nested sections use a double underscore, e.g. ``BENCHMARK__MAX_TOKENS=800``
    or ``LOGGING__LEVEL=debug``.
    """

    openrouter_api_key: str = ""
    base_url: str = "https://openrouter.ai/api/v1"
    openrouter_timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    data_dir: Path = Path("data")
    benchmark: BenchmarkConfig = Field(default_factory=BenchmarkConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    logfire: LogfireConfig = Field(default_factory=LogfireConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @property
    def experiments_path(self) -> Path:
        return self.data_dir / "experiments.jsonl"

    @property
    def benchmarks_path(self) -> Path:
        return self.data_dir / "benchmarks.jsonl"

    @property
    def log_path(self) -> Path:
        return self.data_dir / self.logging.path

    @field_validator("openrouter_timeout_seconds", mode="before")
    @classmethod
    def fallback_timeout(cls, v) -> int:
        """Replace a missing, non-numeric or non-positive timeout with the default."""
        if v is None:
            return DEFAULT_TIMEOUT_SECONDS
        try:
            timeout = int(v)
        except (ValueError, TypeError):
            timeout = 0
        if timeout > 0:
            return timeout
        logger.warning(
            "Ignoring OPENROUTER_TIMEOUT_SECONDS=%r, using %ss", v, DEFAULT_TIMEOUT_SECONDS
        )
        return DEFAULT_TIMEOUT_SECONDS
