"""Async client for the Roblox username validation endpoint.

This module performs one availability check per call and normalizes every
upstream response (JSON result, HTML error page, throttling status,
timeout) into a ``CheckOutcome``.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Protocol

import httpx
from pydantic import ValidationError

from roblox_username_checker.config import ValidatorConfig, get_settings
from roblox_username_checker.logging import bind_username, get_logger
from roblox_username_checker.schemas import (
    UPSTREAM_CODE_AVAILABLE,
    UPSTREAM_CODE_FILTERED,
    UPSTREAM_CODE_TAKEN,
    CheckOutcome,
    UpstreamPayload,
)

from .exceptions import ConfigurationError
from .filters import ContentFilter, WordListFilter

logger = get_logger(__name__)

RATE_LIMIT_STATUSES = frozenset({429, 503})


class UsernameChecker(Protocol):
    """Anything that can check a single username without raising."""

    async def check(self, username: str) -> CheckOutcome: ...


def find_rate_limit_marker(body: str, markers: Sequence[str]) -> str | None:
    """Return the first marker contained in ``body``, if any."""
    for marker in markers:
        if marker and marker in body:
            return marker
    return None


def classify_response(
    username: str,
    status_code: int,
    body: str,
    markers: Sequence[str],
) -> CheckOutcome:
    """Classify an upstream HTTP response.

    Rules, first match wins:
        1. 429 / 503 status -> rate limited
        2. body contains a rate limit marker -> rate limited (even on 200,
           the edge returns HTML error pages with a success status)
        3. any other non-2xx status -> transient error with the status
        4. body is not a ``{code, message}`` JSON object -> transient error
        5. code 0/1/2 -> available/taken/filtered, anything else -> error

    Args:
        username: Username the response belongs to
        status_code: HTTP status code
        body: Raw response text
        markers: Body substrings that signal throttling

    Returns:
        The normalized outcome
    """
    if status_code in RATE_LIMIT_STATUSES:
        return CheckOutcome.rate_limited(
            username, "Rate limited by server", code=status_code
        )

    marker = find_rate_limit_marker(body, markers)
    if marker is not None:
        logger.debug("Rate limit marker {!r} in response: {}", marker, body[:100])
        return CheckOutcome.rate_limited(username, "Rate limited by API", code=status_code)

    if not 200 <= status_code < 300:
        return CheckOutcome.transient_error(
            username, f"HTTP error: {status_code}", code=status_code
        )

    try:
        payload = UpstreamPayload.model_validate_json(body)
    except ValidationError:
        logger.debug("Unparseable validation response: {}", body[:200])
        return CheckOutcome.transient_error(
            username, "invalid response format", code=status_code
        )

    message = payload.message or None
    if payload.code == UPSTREAM_CODE_AVAILABLE:
        return CheckOutcome.available(username, message or "Username is available")
    if payload.code == UPSTREAM_CODE_TAKEN:
        return CheckOutcome.taken(username, message or "Username is taken")
    if payload.code == UPSTREAM_CODE_FILTERED:
        return CheckOutcome.filtered(username, message or "Username not appropriate")
    return CheckOutcome.transient_error(
        username,
        message or f"Unexpected validation code: {payload.code}",
        code=payload.code,
    )


class RobloxValidatorClient:
    """Async client for username availability checks.

    Usage:
        async with RobloxValidatorClient() as client:
            outcome = await client.check("builderman")
            print(outcome.kind)

    Or without context manager:
        client = RobloxValidatorClient()
        outcome = await client.check("builderman")
        await client.close()
    """

    def __init__(
        self,
        config: ValidatorConfig | None = None,
        *,
        content_filter: ContentFilter | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the validator client.

        Args:
            config: Validator configuration (uses settings if not provided)
            content_filter: Optional pre-filter. Defaults to a word list
                            filter built from ``config.blocked_words``.
            http_client: Optional externally managed httpx client. It is
                         not closed by ``close()``.

        Raises:
            ConfigurationError: If no endpoint URL is configured.
        """
        self._config = config or get_settings().validator
        if not self._config.base_url:
            raise ConfigurationError("Validator base_url must not be empty")

        if content_filter is None and self._config.blocked_words:
            content_filter = WordListFilter(self._config.blocked_words)
        self._filter = content_filter

        self._client = http_client
        self._owns_client = http_client is None

    @property
    def config(self) -> ValidatorConfig:
        """Get the validator configuration."""
        return self._config

    @property
    def _http(self) -> httpx.AsyncClient:
        """Get or create the httpx client instance."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout_seconds),
                follow_redirects=True,
            )
        return self._client

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": self._config.user_agent,
        }

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> RobloxValidatorClient:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------
    async def check(self, username: str) -> CheckOutcome:
        """Check one username against the validation endpoint.

        Never raises. Timeouts, connection failures, requests httpx cannot
        build and malformed responses are all returned as outcomes.

        Args:
            username: Trimmed, non-empty username

        Returns:
            CheckOutcome describing the result
        """
        log = bind_username(username)

        if self._filter is not None and self._filter(username):
            log.debug("Username blocked by content filter")
            return CheckOutcome.filtered(
                username, "Username contains inappropriate content", code=None
            )

        started = time.perf_counter()
        try:
            response = await self._http.get(
                self._config.base_url,
                params={"username": username, "birthday": self._config.birthday},
                headers=self._headers,
                timeout=self._config.timeout_seconds,
            )
        except httpx.TimeoutException:
            outcome = CheckOutcome.transient_error(username, "timeout")
        except httpx.HTTPError as e:
            outcome = CheckOutcome.transient_error(username, f"network error: {e}")
        except (httpx.InvalidURL, UnicodeError) as e:
            # Raised while building the request, before anything is sent
            outcome = CheckOutcome.transient_error(username, f"invalid request: {e}")
        else:
            outcome = classify_response(
                username,
                response.status_code,
                response.text,
                self._config.rate_limit_markers,
            )

        elapsed_ms = (time.perf_counter() - started) * 1000
        log.debug(
            "Checked in {:.0f}ms: {} ({})",
            elapsed_ms,
            outcome.kind.value,
            outcome.message,
        )
        return outcome.with_elapsed(elapsed_ms)
