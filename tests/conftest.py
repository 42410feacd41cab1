"""Shared test fixtures for agent_analytics tests."""

import re
from unittest.mock import MagicMock, patch

import pytest

ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")


@pytest.fixture(autouse=True)
def config_dir(tmp_path, monkeypatch):
    """Point the config dir at a temp directory and clear env overrides."""
    path = tmp_path / "agent-analytics"
    monkeypatch.setenv("AGENT_ANALYTICS_CONFIG_DIR", str(path))
    for var in (
        "AGENT_ANALYTICS_API_KEY",
        "AGENT_ANALYTICS_KEY",
        "AGENT_ANALYTICS_URL",
        "AGENT_ANALYTICS_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    yield path


@pytest.fixture
def plain():
    """Strip ANSI escape sequences from rendered output."""
    def _plain(text: str) -> str:
        return ANSI_RE.sub("", text)
    return _plain


@pytest.fixture
def fake_response():
    """Factory for objects shaped like requests.Response."""
    def _make(status=200, body=None, headers=None, invalid_json=False):
        response = MagicMock()
        response.status_code = status
        response.ok = 200 <= status < 400
        response.headers = headers or {}
        if invalid_json:
            response.json.side_effect = ValueError("No JSON object could be decoded")
        else:
            response.json.return_value = {} if body is None else body
        return response
    return _make


@pytest.fixture
def mock_client():
    """Patch the CLI's client factory so commands never hit the network."""
    client = MagicMock()
    with patch("agent_analytics.cli.get_client", return_value=client):
        with patch("agent_analytics.cli.setup_logging"):
            yield client
