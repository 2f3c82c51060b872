"""
Shared test fixtures for exporter tests.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

import json
from pathlib import Path

import pytest
from exporter.src import health

# All ExporterSettings environment variable names, used for cleanup.
_ALL_EXPORTER_ENV_VARS = (
    "DOMOTICZ_PORT",
    "DOMOTICZ_INTERVAL",
    "DOMOTICZ_HOSTIP",
    "DOMOTICZ_HOSTPORT",
    "DOMOTICZ_HOSTSSL",
    "DOMOTICZ_DEFAULTMETRICS",
    "DOMOTICZ_TIMEOUT",
    "DOMOTICZ_DEBUG",
    "DEBUG",
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def _clean_exporter_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all exporter env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_EXPORTER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _reset_health_state():
    """Reset module-level health state around each test."""
    health.reset()
    yield
    health.reset()


@pytest.fixture()
def domoticz_responses() -> dict:
    """Load Domoticz JSON API fixture payloads."""
    fixture_path = FIXTURES_DIR / "domoticz_responses.json"
    return json.loads(fixture_path.read_text())


@pytest.fixture()
def env_vars_full(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set every exporter environment variable.

    Returns the dict of env var names to values for assertion convenience.
    """
    env = {
        "DOMOTICZ_PORT": "9500",
        "DOMOTICZ_INTERVAL": "30",
        "DOMOTICZ_HOSTIP": "192.168.1.20",
        "DOMOTICZ_HOSTPORT": "8081",
        "DOMOTICZ_HOSTSSL": "false",
        "DOMOTICZ_DEFAULTMETRICS": "true",
        "DOMOTICZ_TIMEOUT": "3.5",
        "DOMOTICZ_DEBUG": "true",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env
