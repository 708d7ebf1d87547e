from pathlib import Path

import pytest
from pydantic import ValidationError
from pydantic_settings import SettingsConfigDict

from promptbench.common.config import BenchmarkConfig, ConfigError, LoggingConfig, Settings
from promptbench.common.yaml_config import DEFAULT_MODELS, load_benchmark_config, load_models


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in (
        "OPENROUTER_API_KEY",
        "BASE_URL",
        "OPENROUTER_TIMEOUT_SECONDS",
        "DATA_DIR",
        "BENCHMARK__MAX_TOKENS",
        "LOGFIRE__TOKEN",
        "LOGGING__LEVEL",
        "LOGGING__PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def _settings_from(env_file: Path) -> Settings:
    class TestSettings(Settings):
        model_config = SettingsConfigDict(
            env_file=env_file,
            env_file_encoding="utf-8",
            env_nested_delimiter="__",
            extra="ignore",
        )

    return TestSettings()


def test_settings_loads_from_env_file(tmp_path, clean_env):
    env_file = tmp_path / "test.env"
    env_file.write_text("OPENROUTER_API_KEY=test_key_123\nDATA_DIR=/srv/promptbench\n")

    settings = _settings_from(env_file)

    assert settings.openrouter_api_key == "test_key_123"
    assert settings.base_url == "https://openrouter.ai/api/v1"
    assert settings.data_dir == Path("/srv/promptbench")


def test_settings_missing_env_file_loads_defaults(tmp_path, clean_env):
    settings = _settings_from(tmp_path / "nonexistent.env")

    assert settings.openrouter_api_key == ""
    assert settings.openrouter_timeout_seconds == 120
    assert settings.data_dir == Path("data")
    assert settings.logfire.is_enabled is False


def test_settings_data_paths(clean_env):
    settings = Settings(data_dir=Path("/tmp/pb"))

    assert settings.experiments_path == Path("/tmp/pb/experiments.jsonl")
    assert settings.benchmarks_path == Path("/tmp/pb/benchmarks.jsonl")


def test_settings_logging_defaults_under_data_dir(clean_env):
    settings = Settings(data_dir=Path("/tmp/pb"))

    assert settings.logging.level == "info"
    assert settings.log_path == Path("/tmp/pb/logs/promptbench.jsonl")


def test_settings_logging_from_env(tmp_path, clean_env):
    clean_env.setenv("LOGGING__LEVEL", "debug")
    clean_env.setenv("LOGGING__PATH", "audit.jsonl")

    settings = _settings_from(tmp_path / "nonexistent.env")

    assert settings.logging.level == "debug"
    assert settings.log_path == Path("data/audit.jsonl")


def test_logging_config_rejects_unknown_level():
    with pytest.raises(ValidationError):
        LoggingConfig(level="verbose")


def test_settings_nested_benchmark_from_env(tmp_path, clean_env):
    clean_env.setenv("BENCHMARK__MAX_TOKENS", "256")

    settings = _settings_from(tmp_path / "nonexistent.env")

    assert settings.benchmark.max_tokens == 256


def test_settings_logfire_token_from_env(tmp_path, clean_env):
    clean_env.setenv("LOGFIRE__TOKEN", "lf-token")

    settings = _settings_from(tmp_path / "nonexistent.env")

    assert settings.logfire.is_enabled is True
    assert settings.logfire.service_name == "promptbench"


def test_settings_timeout_seconds_from_env(tmp_path, clean_env):
    env_file = tmp_path / "test.env"
    env_file.write_text("OPENROUTER_TIMEOUT_SECONDS=30\n")

    assert _settings_from(env_file).openrouter_timeout_seconds == 30


@pytest.mark.parametrize("value", ["-5", "0", "abc"])
def test_settings_invalid_timeout_uses_default(tmp_path, clean_env, value):
    env_file = tmp_path / "test.env"
    env_file.write_text(f"OPENROUTER_TIMEOUT_SECONDS={value}\n")

    assert _settings_from(env_file).openrouter_timeout_seconds == 120


def test_benchmark_config_defaults():
    config = BenchmarkConfig()

    assert config.max_tokens == 500
    assert config.temperature is None
    assert config.system_prompt == ""
    assert config.max_concurrent_requests == 6


@pytest.mark.parametrize("field", ["max_tokens", "max_concurrent_requests"])
@pytest.mark.parametrize("value", [0, -1])
def test_benchmark_config_rejects_non_positive(field, value):
    with pytest.raises(ValidationError):
        BenchmarkConfig(**{field: value})


def test_load_benchmark_config(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "benchmark:\n"
        "  max_tokens: 300\n"
        "  temperature: 0.7\n"
        "  system_prompt: Answer concisely.\n"
        "  max_concurrent_requests: 3\n"
    )

    config = load_benchmark_config(str(config_file))

    assert config.max_tokens == 300
    assert config.temperature == 0.7
    assert config.system_prompt == "Answer concisely."
    assert config.max_concurrent_requests == 3


def test_load_benchmark_config_missing_file(tmp_path):
    assert load_benchmark_config(str(tmp_path / "missing.yaml")) == BenchmarkConfig()


def test_load_benchmark_config_empty_file(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("")

    assert load_benchmark_config(str(config_file)) == BenchmarkConfig()


def test_load_benchmark_config_partial_values(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("benchmark:\n  max_tokens: 50\n")

    config = load_benchmark_config(str(config_file))

    assert config.max_tokens == 50
    assert config.max_concurrent_requests == 6


def test_load_models(tmp_path):
    models_file = tmp_path / "models.yaml"
    models_file.write_text(
        "models:\n"
        "  - id: openai/gpt-5-mini\n"
        "    name: GPT-5 Mini\n"
        "  - id: google/gemini-2.5-flash\n"
        "    name: Gemini 2.5 Flash\n"
        "    description: Balanced speed & quality\n"
    )

    models = load_models(str(models_file))

    assert [m.id for m in models] == ["openai/gpt-5-mini", "google/gemini-2.5-flash"]
    assert models[0].description == ""
    assert models[1].description == "Balanced speed & quality"


def test_load_models_missing_file_uses_default_roster(tmp_path):
    models = load_models(str(tmp_path / "missing.yaml"))

    assert models == list(DEFAULT_MODELS)
    assert len(models) == 6
    assert models[0].id == "google/gemini-2.5-pro"


def test_load_models_empty_roster(tmp_path):
    models_file = tmp_path / "models.yaml"
    models_file.write_text("models: []\n")

    with pytest.raises(ConfigError):
        load_models(str(models_file))
