"""
tests/conftest.py

Pytest configuration and shared fixtures for the Trust Engine test suite.

Unit tests never touch a real database or AI provider: repositories are
exercised with a patched get_connection, and the pipeline runs against the
in-memory fakes in tests/helpers.py.
"""

from __future__ import annotations

import os
from typing import Generator

import pytest

# Before trust_engine.config is imported: never read a developer's .env.dev
os.environ.setdefault("ENV_FILE", ".env.test")
os.environ.setdefault("ENVIRONMENT", "dev")

from tests.helpers import FakeDeps  # noqa: E402

# =============================================================================
# GLOBAL TEST CONFIGURATION
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """
    Global pytest configuration.

    Registers custom markers:
      - integration: Tests that require a live Postgres (DATABASE_URL)
    """
    config.addinivalue_line(
        "markers",
        "integration: marks tests as requiring a live database",
    )


@pytest.fixture(autouse=True)
def _fresh_settings() -> Generator[None, None, None]:
    """Every test sees settings built from its own environment."""
    from trust_engine.config import reset_settings

    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def deps() -> FakeDeps:
    """In-memory collaborators for the submission pipeline."""
    return FakeDeps()
