"""Structured JSON logging module for promptbench.

Every entry is one JSON object per line with a timestamp, level, logger
name and message, plus the current run and request IDs when they are set.
Benchmark runs set a run ID; each model call and HTTP request sets a
request ID so log lines from concurrent work can be told apart.

Loggers created without an explicit path follow the process-wide
destination set by ``configure_logging``; entries below the configured
minimum level are dropped.
"""

import json
import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

from filelock import FileLock

LogLevel = Literal["debug", "info", "warning", "error"]

LEVEL_ORDER: dict[str, int] = {"debug": 10, "info": 20, "warning": 30, "error": 40}

DEFAULT_LOG_PATH = Path("data/logs/promptbench.jsonl")

_default_path: Path = DEFAULT_LOG_PATH.absolute()
_min_level: int = LEVEL_ORDER["debug"]

_run_id: ContextVar[str | None] = ContextVar("run_id", default=None)
_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)


def configure_logging(log_path: str | Path | None = None, level: LogLevel = "debug") -> None:
    """Set the shared log destination and minimum level.

    Args:
        log_path: File that loggers without an explicit path write to
        level: Entries below this level are discarded
    """
    global _default_path, _min_level

    if level not in LEVEL_ORDER:
        raise ValueError(f"Unknown log level {level!r}; expected one of {', '.join(LEVEL_ORDER)}")
    if log_path is not None:
        _default_path = Path(log_path).absolute()
    _min_level = LEVEL_ORDER[level]


def generate_id() -> str:
    """Generate a UUID string, falling back to an ISO8601 timestamp.

    Example:
        >>> isinstance(generate_id(), str)
        True
    """
    try:
        return str(uuid.uuid4())
    except OSError:
        # No entropy source available
        return datetime.now(tz=UTC).isoformat()


def set_run_id(run_id: str | None) -> None:
    _run_id.set(run_id)


def get_run_id() -> str | None:
    return _run_id.get()


def set_request_id(request_id: str | None) -> None:
    _request_id.set(request_id)


def get_request_id() -> str | None:
    return _request_id.get()


@contextmanager
def request_context(request_id: str | None = None) -> Iterator[str]:
    """Bind a request ID for the duration of a block.

    Example:
        >>> with request_context("req-1") as rid:
        ...     get_request_id() == rid
        True
        >>> get_request_id() is None
        True
    """
    token = _request_id.set(request_id or generate_id())
    try:
        yield _request_id.get()
    finally:
        _request_id.reset(token)


def _jsonable(value: Any) -> Any:
    """Recursively convert a value into something json.dumps accepts."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    return str(value)


class JSONLogger:
    """Logger that appends JSON Lines to a file under a file lock."""

    def __init__(self, name: str, log_path: str | Path | None = None):
        """Create a logger.

        Args:
            name: Logger name written into every entry
            log_path: Fixed destination; None follows ``configure_logging``
        """
        self.name = name
        self._fixed_path = Path(log_path).absolute() if log_path is not None else None

    @property
    def log_path(self) -> Path:
        return self._fixed_path or _default_path

    def _entry(self, level: LogLevel, message: str, metadata: Mapping[str, Any] | None) -> dict:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(tz=UTC).isoformat(),
            "level": level,
            "logger": self.name,
            "message": message,
        }
        for key, value in (("run_id", get_run_id()), ("request_id", get_request_id())):
            if value:
                entry[key] = value
        if metadata:
            entry["metadata"] = _jsonable(metadata)
        return entry

    def log(self, level: LogLevel, message: str, metadata: Mapping[str, Any] | None = None) -> None:
        if LEVEL_ORDER[level] < _min_level:
            return

        line = json.dumps(self._entry(level, message, metadata), ensure_ascii=False)
        path = self.log_path
        path.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(path.with_name(path.name + ".lock")):
            with path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")

    def debug(self, message: str, metadata: Mapping[str, Any] | None = None) -> None:
        self.log("debug", message, metadata)

    def info(self, message: str, metadata: Mapping[str, Any] | None = None) -> None:
        self.log("info", message, metadata)

    def warning(self, message: str, metadata: Mapping[str, Any] | None = None) -> None:
        self.log("warning", message, metadata)

    def error(self, message: str, metadata: Mapping[str, Any] | None = None) -> None:
        self.log("error", message, metadata)


_loggers: dict[str, JSONLogger] = {}


def get_logger(name: str) -> JSONLogger:
    """Return the shared logger for ``name``, creating it on first use.

    Loggers from get_logger write to the destination set by configure_logging.
    """
    return _loggers.setdefault(name, JSONLogger(name))
