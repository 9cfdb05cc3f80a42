from __future__ import annotations

import os
from pathlib import Path

APP_ENV_HOME = "TEMPO_HOME"
APP_ENV_CONFIG = "TEMPO_CONFIG"


def project_root() -> Path:
    """
    Repository/project root directory.
    Contains tempo/, cli/, config/, tests/.
    """
    return Path(__file__).parent.parent.resolve()


def app_home() -> Path:
    """
    User-writable home for Tempo.
    Override with TEMPO_HOME.
    """
    if os.environ.get(APP_ENV_HOME):
        return Path(os.environ[APP_ENV_HOME]).expanduser().resolve()
    return (Path.home() / ".tempo").resolve()


def config_path() -> Path:
    """
    Reshuffle settings file.

    Resolution order:
    1. TEMPO_CONFIG env var (explicit override)
    2. <project>/config/reshuffle.yaml (default)
    """
    if os.environ.get(APP_ENV_CONFIG):
        return Path(os.environ[APP_ENV_CONFIG]).expanduser().resolve()
    return project_root() / "config" / "reshuffle.yaml"


def data_dir() -> Path:
    d = app_home() / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


def compensation_path() -> Path:
    """Ledger of time owed to deferred optional goals and flexible tasks."""
    return data_dir() / "compensation.json"
