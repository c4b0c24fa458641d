"""Test fixtures for Roblox Username Checker."""

from .roblox_responses import (
    AVAILABLE_RESPONSE,
    EDGE_THROTTLE_PAGE,
    EMPTY_MESSAGE_RESPONSE,
    EXTRA_FIELDS_RESPONSE,
    FILTERED_RESPONSE,
    HTML_ERROR_PAGE,
    MISSING_CODE_RESPONSE,
    NOT_JSON_RESPONSE,
    TAKEN_RESPONSE,
    TOO_MANY_REQUESTS_TEXT,
    UNKNOWN_CODE_RESPONSE,
)

__all__ = [
    # JSON results
    "AVAILABLE_RESPONSE",
    "EMPTY_MESSAGE_RESPONSE",
    "EXTRA_FIELDS_RESPONSE",
    "FILTERED_RESPONSE",
    "TAKEN_RESPONSE",
    "UNKNOWN_CODE_RESPONSE",
    # Throttling and error pages
    "EDGE_THROTTLE_PAGE",
    "HTML_ERROR_PAGE",
    "TOO_MANY_REQUESTS_TEXT",
    # Malformed bodies
    "MISSING_CODE_RESPONSE",
    "NOT_JSON_RESPONSE",
]
