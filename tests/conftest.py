"""
Test configuration — ensures repo root is in sys.path + isolation guards.

This allows tests to import from top-level packages (tempo, cli, tests.fixtures).
Every test runs against a throwaway TEMPO_HOME so nothing touches the real
~/.tempo ledger, and the cached settings are reset around each test.
"""

import sys
from pathlib import Path

import pytest

# Add repo root to sys.path so tests can import tempo.*, cli.*, tests.fixtures
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from tempo.config import get_settings  # noqa: E402

from tests.fixtures import DAY  # noqa: E402


# =============================================================================
# ISOLATION GUARD: never read or write the real application home
# =============================================================================


@pytest.fixture(autouse=True)
def isolate_app_home(tmp_path, monkeypatch):
    """Point TEMPO_HOME at a temp dir and drop any TEMPO_CONFIG override."""
    monkeypatch.setenv("TEMPO_HOME", str(tmp_path / "tempo-home"))
    monkeypatch.delenv("TEMPO_CONFIG", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def day():
    """The pinned analysis day (Monday 2026-10-19)."""
    return DAY
