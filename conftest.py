"""
Repository-level pytest configuration.

Provides demo-safe environment defaults (no secrets embedded) and initializes
loguru once for the whole run.

Real projects should load credentials from a secure secret manager in CI/CD.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator

import pytest

from bindup_testsuites.common.logger_setup import init_logger


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return repo root path."""
    return Path(__file__).parent


@pytest.fixture(scope="session", autouse=True)
def _demo_safe_env_defaults() -> Generator[None, None, None]:
    """
    Set demo-safe environment defaults if not already provided by the user/CI,
    then configure logging.
    """
    defaults = {
        "BINDUP_BASE_URL": "http://localhost:3000",
        "LOGGING_LEVEL": "DEBUG",
    }

    for k, v in defaults.items():
        os.environ.setdefault(k, v)

    init_logger()
    yield
