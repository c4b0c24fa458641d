"""Tests for outcome and upstream schemas."""

import pytest
from pydantic import ValidationError

from roblox_username_checker.schemas import (
    CheckOutcome,
    OutcomeKind,
    UpstreamPayload,
)


class TestCheckOutcome:
    """Tests for CheckOutcome."""

    @pytest.mark.parametrize(
        ("outcome", "success", "terminal"),
        [
            (CheckOutcome.available("a"), True, True),
            (CheckOutcome.taken("a"), True, True),
            (CheckOutcome.filtered("a"), True, True),
            (CheckOutcome.rate_limited("a"), False, False),
            (CheckOutcome.transient_error("a"), False, True),
        ],
    )
    def test_classification(self, outcome: CheckOutcome, success: bool, terminal: bool) -> None:
        """Test success and terminal flags per kind."""
        assert outcome.is_success is success
        assert outcome.is_terminal is terminal
        assert outcome.is_rate_limited is (outcome.kind == OutcomeKind.RATE_LIMITED)

    def test_factory_codes(self) -> None:
        """Test factories default to the upstream result codes."""
        assert CheckOutcome.available("a").code == 0
        assert CheckOutcome.taken("a").code == 1
        assert CheckOutcome.filtered("a").code == 2
        assert CheckOutcome.transient_error("a").code is None

    def test_frozen(self) -> None:
        """Test outcomes are immutable."""
        outcome = CheckOutcome.available("a")

        with pytest.raises(ValidationError):
            outcome.message = "changed"  # type: ignore[misc]

    def test_with_elapsed(self) -> None:
        """Test with_elapsed returns a rounded copy."""
        outcome = CheckOutcome.taken("a")

        timed = outcome.with_elapsed(12.3456)

        assert timed.elapsed_ms == 12.35
        assert outcome.elapsed_ms is None

    def test_to_dict(self) -> None:
        """Test JSON conversion omits unset fields."""
        assert CheckOutcome.transient_error("a").to_dict() == {
            "username": "a",
            "status": "transient_error",
        }
        assert CheckOutcome.available("a", "ok").with_elapsed(5).to_dict() == {
            "username": "a",
            "status": "available",
            "message": "ok",
            "code": 0,
            "elapsed_ms": 5.0,
        }


class TestUpstreamPayload:
    """Tests for the validation endpoint body."""

    def test_parse(self) -> None:
        """Test a well-formed body parses."""
        payload = UpstreamPayload.model_validate_json('{"code": 1, "message": "taken"}')

        assert payload.code == 1
        assert payload.message == "taken"

    def test_message_optional(self) -> None:
        """Test a missing message defaults to empty."""
        assert UpstreamPayload.model_validate_json('{"code": 0}').message == ""

    def test_code_required(self) -> None:
        """Test a body without a code is invalid."""
        with pytest.raises(ValidationError):
            UpstreamPayload.model_validate_json('{"message": "x"}')
