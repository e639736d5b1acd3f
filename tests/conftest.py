"""Shared test fixtures and configuration."""

from pathlib import Path
import sys

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from tests.support import FakeHost, make_settings  # noqa: E402


# Settings read the environment; keep the host shell from leaking into tests
SETTINGS_ENV = (
    "MANIFEST_URL",
    "BASE_URL",
    "CONCURRENCY",
    "HTTP_TIMEOUT",
    "CANDIDATE_THRESHOLD",
    "FUZZY_THRESHOLD",
    "CANDIDATE_FUZZY_THRESHOLD",
    "FUZZY_LIMIT",
    "FUZZY_STRATEGY",
    "TITLE_WEIGHT",
    "CONTENT_WEIGHT",
    "EXCERPT_LENGTH",
    "LEAD_EXCERPT_LENGTH",
    "LOG_LEVEL",
    "LOG_JSON",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Clear settings env vars and run away from any local .env file."""
    for key in SETTINGS_ENV:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def fake_host():
    return FakeHost()
