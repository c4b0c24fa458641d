"""Pytest configuration and shared fixtures.

Usage Guide:
- For scheduler and policy tests: use the ``pacing_config`` fixture or
  build variants with tests.factories.make_pacing_config
- For scripted checks: use the ``stub_checker`` fixture or StubChecker
- For validator client tests: use ``mock_http`` to build an
  httpx.AsyncClient backed by httpx.MockTransport
"""

from collections.abc import Callable, Iterator

import httpx
import pytest

from roblox_username_checker.config import PacingConfig, ValidatorConfig, get_settings
from roblox_username_checker.logging import reset_logging
from tests.factories import StubChecker, make_pacing_config

Handler = Callable[[httpx.Request], httpx.Response]


# -----------------------------------------------------------------------------
# Settings Isolation
# -----------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    """Drop cached settings so env changes in one test never leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _quiet_logging() -> Iterator[None]:
    """Start every test without loguru sinks."""
    reset_logging()
    yield
    reset_logging()


# -----------------------------------------------------------------------------
# Pacing Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def pacing_config() -> PacingConfig:
    """Adaptive pacing with default concurrency bounds and no delays."""
    return make_pacing_config()


@pytest.fixture
def stub_checker() -> StubChecker:
    """Checker that reports every username as available."""
    return StubChecker()


# -----------------------------------------------------------------------------
# HTTP Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def validator_config() -> ValidatorConfig:
    """Validator config pointing at a fake endpoint."""
    return ValidatorConfig(base_url="https://validator.test/v1/usernames/validate")


@pytest.fixture
def mock_http() -> Callable[[Handler], httpx.AsyncClient]:
    """Build an httpx.AsyncClient that answers through ``handler``."""

    def _build(handler: Handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _build
