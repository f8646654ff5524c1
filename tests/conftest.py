"""
Root conftest.py — Shared Pytest fixtures.

Provides fixtures for:
- A clean credential environment (XRAY_*, JIRA_*, CI).
- Mocked HTTP responses and sessions for the Xray/Jira clients.
- WebdriverIO-style result files and evidence screenshots on disk.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, List
from unittest.mock import MagicMock

import pytest
from loguru import logger

from tests.helpers import PNG_BYTES, wdio_result
from xray_bridge.jira_client.xray_client import XrayClient

ENV_VARS = (
    "XRAY_CLIENT_ID",
    "XRAY_CLIENT_SECRET",
    "JIRA_BASE_URL",
    "JIRA_EMAIL",
    "JIRA_API_TOKEN",
    "CI",
)


# ---------------------------------------------------------------------------
# Environment Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every credential variable from the environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def xray_env(clean_env: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Environment with Xray credentials only."""
    clean_env.setenv("XRAY_CLIENT_ID", "client-id")
    clean_env.setenv("XRAY_CLIENT_SECRET", "client-secret")
    return clean_env


@pytest.fixture
def jira_env(xray_env: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Environment with Xray and Jira credentials."""
    xray_env.setenv("JIRA_BASE_URL", "https://example.atlassian.net")
    xray_env.setenv("JIRA_EMAIL", "qa@example.com")
    xray_env.setenv("JIRA_API_TOKEN", "jira-token")
    return xray_env


@pytest.fixture
def log_messages() -> List[str]:
    """Capture loguru messages emitted during the test."""
    messages: List[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


# ---------------------------------------------------------------------------
# Client Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_session() -> MagicMock:
    """A mock requests.Session with a real headers dict."""
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def xray_client(mock_session: MagicMock) -> XrayClient:
    """XrayClient wired to a mock session."""
    client = XrayClient(base_url="https://xray.example.com/", project_key="TT")
    client._session = mock_session
    return client


@pytest.fixture
def mock_xray() -> MagicMock:
    """A fully mocked XrayClient for sync/report tests."""
    client = MagicMock(spec=XrayClient)
    client.project_key = "TT"
    client.is_authenticated = True
    return client


# ---------------------------------------------------------------------------
# Result File Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def results_dir(tmp_path: Path) -> Path:
    """An empty results directory with an evidence subdirectory."""
    directory = tmp_path / "test-results"
    (directory / "evidence").mkdir(parents=True)
    return directory


@pytest.fixture
def write_result(results_dir: Path) -> Callable[..., Path]:
    """Factory writing a results-<cid>.json file for a spec."""

    def _write(cid: str, spec_file: str, states: List[str]) -> Path:
        path = results_dir / f"results-{cid}.json"
        path.write_text(json.dumps(wdio_result(spec_file, states)), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_evidence(results_dir: Path) -> Callable[[str], Path]:
    """Factory writing a screenshot into the evidence directory."""

    def _write(filename: str) -> Path:
        path = results_dir / "evidence" / filename
        path.write_bytes(PNG_BYTES)
        return path

    return _write
