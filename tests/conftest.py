import pytest

from promptbench.common import logging as pb_logging


@pytest.fixture(autouse=True)
def isolated_log_config(tmp_path, monkeypatch):
    """Send shared log output to the test's tmp dir at debug level."""
    monkeypatch.setattr(pb_logging, "_default_path", tmp_path / "logs" / "promptbench.jsonl")
    monkeypatch.setattr(pb_logging, "_min_level", pb_logging.LEVEL_ORDER["debug"])
