import yaml

from promptbench.common.config import BenchmarkConfig, ConfigError
from promptbench.common.models import BenchmarkModel

DEFAULT_MODELS: tuple[BenchmarkModel, ...] = (
    BenchmarkModel(
        id="google/gemini-2.5-pro",
        name="Gemini 2.5 Pro",
        description="Top-tier reasoning & multimodal",
    ),
    BenchmarkModel(
        id="google/gemini-2.5-flash",
        name="Gemini 2.5 Flash",
        description="Balanced speed & quality",
    ),
    BenchmarkModel(
        id="google/gemini-2.5-flash-lite",
        name="Gemini 2.5 Flash Lite",
        description="Ultra-fast inference",
    ),
    BenchmarkModel(id="openai/gpt-5", name="GPT-5", description="State-of-the-art reasoning"),
    BenchmarkModel(id="openai/gpt-5-mini", name="GPT-5 Mini", description="Efficient performance"),
    BenchmarkModel(id="openai/gpt-5-nano", name="GPT-5 Nano", description="Speed optimized"),
)


def load_benchmark_config(path: str = "config.yaml") -> BenchmarkConfig:
    """Load benchmark configuration from a YAML file.

    Args:
        path: Path to the config YAML file

    Returns:
        BenchmarkConfig loaded from the file, or defaults if file doesn't exist
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is None:
            return BenchmarkConfig()
        benchmark_data = data.get("benchmark", {})
        return BenchmarkConfig(**benchmark_data)
    except FileNotFoundError:
        return BenchmarkConfig()


def load_models(path: str = "models.yaml") -> list[BenchmarkModel]:
    """Load the benchmark model roster.

    Falls back to the built-in roster when the file does not exist.

    Raises:
        ConfigError: If the file exists but lists no models
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return list(DEFAULT_MODELS)

    models_data = data.get("models", [])
    if not models_data:
        raise ConfigError(f"{path!r} does not define any models")
    return [BenchmarkModel(**model) for model in models_data]
