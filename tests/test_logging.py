"""Tests for logging configuration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from loguru import logger

from roblox_username_checker.logging import (
    LogContext,
    bind_batch,
    bind_username,
    get_logger,
    is_configured,
    reset_logging,
    setup_logging,
)

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture(autouse=True)
def _reset_logging_state() -> Generator[None, None, None]:
    """Reset loguru state before and after each test."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def captured() -> Generator[list[str], None, None]:
    """Collect formatted records with their bound extras."""
    messages: list[str] = []
    handler_id = logger.add(
        lambda msg: messages.append(str(msg)),
        format="{extra} | {message}",
        level="DEBUG",
    )
    yield messages
    logger.remove(handler_id)


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_default_level(self) -> None:
        """Test default INFO level setup."""
        setup_logging(level="INFO")
        assert is_configured()

    def test_setup_logging_verbose_overrides_level(self) -> None:
        """Test that verbose flag sets DEBUG level."""
        messages: list[str] = []
        setup_logging(level="WARNING", verbose=True)

        handler_id = logger.add(lambda msg: messages.append(str(msg)))
        try:
            logger.bind(name="test").debug("debug message")
            assert any("debug message" in msg for msg in messages)
        finally:
            logger.remove(handler_id)

    def test_setup_logging_with_file(self, tmp_path: Path) -> None:
        """Test file logging setup."""
        log_file = tmp_path / "test.log"
        setup_logging(level="INFO", log_file=log_file)

        get_logger("test").info("Test file message")

        assert log_file.exists()
        assert "Test file message" in log_file.read_text()

    def test_setup_logging_sets_configured_flag(self) -> None:
        """Test that setup_logging sets the configured flag."""
        assert not is_configured()
        setup_logging(level="INFO")
        assert is_configured()


class TestInterceptHandler:
    """Tests for stdlib logging interception."""

    def test_intercept_stdlib_logging(self) -> None:
        """Test that stdlib logging is routed to loguru."""
        messages: list[str] = []
        setup_logging(level="DEBUG")

        handler_id = logger.add(lambda msg: messages.append(str(msg)))
        try:
            logging.getLogger("roblox_username_checker.roblox.pacing.policy").warning(
                "Hello from stdlib"
            )
            assert any("Hello from stdlib" in msg for msg in messages)
        finally:
            logger.remove(handler_id)

    def test_httpx_quiet_at_info(self) -> None:
        """Test httpx request logs are suppressed below DEBUG."""
        setup_logging(level="INFO")

        assert logging.getLogger("httpx").level >= logging.WARNING
        assert logging.getLogger("httpcore").level >= logging.WARNING

    def test_httpx_verbose_at_debug(self) -> None:
        """Test httpx request logs pass through in verbose mode."""
        setup_logging(level="INFO", verbose=True)

        assert logging.getLogger("httpx").level == logging.DEBUG


class TestContextBinding:
    """Tests for context binding helpers."""

    def test_get_logger_binds_name(self, captured: list[str]) -> None:
        """Test that get_logger binds the module name."""
        get_logger("my_test_module").info("Test message")

        assert any("my_test_module" in msg for msg in captured)

    def test_bind_batch(self, captured: list[str]) -> None:
        """Test bind_batch adds the batch id."""
        bind_batch("a1b2c3d4").info("Batch message")

        output = "".join(captured)
        assert "a1b2c3d4" in output
        assert "bulk" in output

    def test_bind_username(self, captured: list[str]) -> None:
        """Test bind_username adds username context."""
        bind_username("builderman").info("Check message")

        output = "".join(captured)
        assert "builderman" in output
        assert "'name': 'check'" in output

    def test_bind_username_inside_batch_context(self, captured: list[str]) -> None:
        """Test a username logger picks up a contextualized batch id."""
        with LogContext(batch="feedbeef"):
            bind_username("builderman").info("Check message")
        bind_username("builderman").info("Standalone check")

        assert "feedbeef" in captured[0]
        assert "builderman" in captured[0]
        assert "feedbeef" not in captured[1]

    def test_log_context_manager(self, captured: list[str]) -> None:
        """Test LogContext context manager."""
        with LogContext(custom_key="custom_value"):
            logger.info("Inside context")
        logger.info("Outside context")

        assert "custom_value" in captured[0]
        assert "custom_value" not in captured[1]


class TestLogLevels:
    """Tests for log level handling."""

    @pytest.mark.parametrize("level", ["DEBUG", "INFO", "WARNING", "ERROR"])
    def test_log_level_accepted(self, level: str) -> None:
        """Test that various log levels are accepted."""
        setup_logging(level=level)  # type: ignore[arg-type]
        assert is_configured()


class TestResetLogging:
    """Tests for reset_logging function."""

    def test_reset_logging_clears_configured(self) -> None:
        """Test that reset_logging clears the configured flag."""
        setup_logging(level="INFO")
        assert is_configured()

        reset_logging()
        assert not is_configured()
