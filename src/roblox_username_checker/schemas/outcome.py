"""Outcome of a single username availability check."""

from typing import Self

from pydantic import BaseModel, ConfigDict, Field

from .enums import OutcomeKind

_SUCCESS_KINDS = frozenset({OutcomeKind.AVAILABLE, OutcomeKind.TAKEN, OutcomeKind.FILTERED})


class CheckOutcome(BaseModel):
    """Normalized result of checking one username.

    Every failure mode of the upstream call is encoded here rather than
    raised, so the scheduler can act on it without exception handling.
    """

    model_config = ConfigDict(frozen=True)

    username: str = Field(description="Username that was checked")
    kind: OutcomeKind = Field(description="Outcome classification")
    message: str | None = Field(default=None, description="Human-readable detail")
    code: int | None = Field(
        default=None,
        description="HTTP status or upstream result code, when known",
    )
    elapsed_ms: float | None = Field(
        default=None,
        ge=0.0,
        description="Round-trip time of the check in milliseconds",
    )

    @property
    def is_success(self) -> bool:
        """True for Available, Taken and Filtered."""
        return self.kind in _SUCCESS_KINDS

    @property
    def is_rate_limited(self) -> bool:
        """True if the check should be retried after backoff."""
        return self.kind == OutcomeKind.RATE_LIMITED

    @property
    def is_terminal(self) -> bool:
        """True if this outcome ends processing of the username."""
        return self.kind != OutcomeKind.RATE_LIMITED

    def with_elapsed(self, elapsed_ms: float) -> Self:
        """Return a copy carrying the measured round-trip time."""
        return self.model_copy(update={"elapsed_ms": round(elapsed_ms, 2)})

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, object] = {
            "username": self.username,
            "status": self.kind.value,
        }
        if self.message is not None:
            result["message"] = self.message
        if self.code is not None:
            result["code"] = self.code
        if self.elapsed_ms is not None:
            result["elapsed_ms"] = self.elapsed_ms
        return result

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------
    @classmethod
    def available(cls, username: str, message: str | None = None, code: int = 0) -> Self:
        return cls(username=username, kind=OutcomeKind.AVAILABLE, message=message, code=code)

    @classmethod
    def taken(cls, username: str, message: str | None = None, code: int = 1) -> Self:
        return cls(username=username, kind=OutcomeKind.TAKEN, message=message, code=code)

    @classmethod
    def filtered(cls, username: str, message: str | None = None, code: int | None = 2) -> Self:
        return cls(username=username, kind=OutcomeKind.FILTERED, message=message, code=code)

    @classmethod
    def rate_limited(
        cls, username: str, message: str | None = None, code: int | None = None
    ) -> Self:
        return cls(username=username, kind=OutcomeKind.RATE_LIMITED, message=message, code=code)

    @classmethod
    def transient_error(
        cls, username: str, message: str | None = None, code: int | None = None
    ) -> Self:
        """Create an error outcome (timeout, network, bad response)."""
        return cls(
            username=username,
            kind=OutcomeKind.TRANSIENT_ERROR,
            message=message,
            code=code,
        )
