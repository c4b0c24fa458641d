"""Checker exceptions.

Individual check failures never raise; they are encoded as
``CheckOutcome`` values. These exceptions cover misuse of the API.
"""


class CheckerError(Exception):
    """Base exception for username checker errors."""

    pass


class ConfigurationError(CheckerError):
    """Raised when a pacing policy or client is built from inconsistent settings."""

    pass


class BatchInProgressError(CheckerError):
    """Raised when a scheduler is asked to run a second batch concurrently."""

    pass
