import io
import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from approvals.config import SchedulerSettings, get_settings
from approvals.logging_config import setup_logging


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("LOG_LEVEL", "ESCALATION_THRESHOLD_DAYS", "CASES_DIR", "CATALOG_PATH"):
        monkeypatch.delenv(f"APPROVALS_{name}", raising=False)


@pytest.fixture
def reset_root_logger():
    root_logger = logging.getLogger()
    level = root_logger.level
    yield
    for h in root_logger.handlers[:]:
        root_logger.removeHandler(h)
        h.close()
    root_logger.setLevel(level)


def test_settings_defaults():
    settings = SchedulerSettings()
    assert settings.LOG_LEVEL == "INFO"
    assert settings.ESCALATION_THRESHOLD_DAYS == 5
    assert settings.CASES_DIR == Path(".approvals/cases")
    assert settings.CATALOG_PATH is None


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("APPROVALS_ESCALATION_THRESHOLD_DAYS", "3")
    monkeypatch.setenv("APPROVALS_CASES_DIR", "/var/approvals")
    monkeypatch.setenv("APPROVALS_CATALOG_PATH", "catalog.json")

    settings = SchedulerSettings()
    assert settings.ESCALATION_THRESHOLD_DAYS == 3
    assert settings.CASES_DIR == Path("/var/approvals")
    assert settings.CATALOG_PATH == Path("catalog.json")


def test_negative_threshold_rejected(monkeypatch):
    monkeypatch.setenv("APPROVALS_ESCALATION_THRESHOLD_DAYS", "-1")
    with pytest.raises(ValidationError):
        SchedulerSettings()


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_setup_logging_writes_to_stream(reset_root_logger):
    stream = io.StringIO()
    setup_logging(stream=stream, level="debug")

    logging.getLogger("approvals.test").debug("hello")
    assert "approvals.test - DEBUG - hello" in stream.getvalue()
    assert len(logging.getLogger().handlers) == 1


def test_setup_logging_unknown_level_falls_back_to_info(reset_root_logger):
    setup_logging(stream=io.StringIO(), level="chatty")
    assert logging.getLogger().level == logging.INFO
