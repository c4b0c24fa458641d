"""Pydantic schemas and enums for Roblox Username Checker."""

from .enums import OutcomeKind, OutputFormat, SchedulingStrategy
from .outcome import CheckOutcome
from .upstream import (
    UPSTREAM_CODE_AVAILABLE,
    UPSTREAM_CODE_FILTERED,
    UPSTREAM_CODE_TAKEN,
    UpstreamPayload,
)

__all__ = [
    # Enums
    "OutcomeKind",
    "OutputFormat",
    "SchedulingStrategy",
    # Outcomes
    "CheckOutcome",
    # Upstream API
    "UPSTREAM_CODE_AVAILABLE",
    "UPSTREAM_CODE_FILTERED",
    "UPSTREAM_CODE_TAKEN",
    "UpstreamPayload",
]
