"""Tests for the error hierarchy and its messages.

This module tests:
- Message formatting with address and suggestion
- Scheme suggestions for mistyped addresses
- That every error is a ReporterError
"""

import pytest

from influxreporter.errors import (
    ConfigValidationError,
    ConnectError,
    HealthCheckError,
    InvalidSchemeError,
    MalformedTagError,
    NothingToSendError,
    ReporterError,
    WriteError,
)

VALID_SCHEMES = {"http", "https", "udp"}


class TestReporterError:
    """Tests for ReporterError formatting."""

    def test_message_only(self) -> None:
        """Test the plain message."""
        error = ReporterError("Something failed")

        assert str(error) == "Something failed"
        assert error.address is None
        assert error.suggestion is None

    def test_with_address(self) -> None:
        """Test that the address is appended."""
        error = ReporterError("Write failed", address="http://db:8086")

        assert str(error) == "Write failed (address: http://db:8086)"

    def test_with_suggestion(self) -> None:
        """Test that the suggestion goes on its own line."""
        error = ReporterError("Bad", address="udp://x", suggestion="Fix it")

        assert str(error) == "Bad (address: udp://x)\n  Suggestion: Fix it"

    @pytest.mark.parametrize(
        "error_type",
        [ConnectError, WriteError, HealthCheckError, ConfigValidationError],
    )
    def test_subclasses(self, error_type: type[ReporterError]) -> None:
        """Test that all errors share the base class."""
        error = error_type("boom", address="http://db")

        assert isinstance(error, ReporterError)
        assert error.message == "boom"


class TestInvalidSchemeError:
    """Tests for scheme suggestions."""

    def test_close_match(self) -> None:
        """Test a typo gets a close match."""
        error = InvalidSchemeError("htps", "htps://db", VALID_SCHEMES)

        assert error.scheme == "htps"
        assert error.suggestion == "Did you mean 'https://'?"
        assert "Invalid scheme 'htps'" in str(error)

    def test_no_match_lists_schemes(self) -> None:
        """Test that unrelated schemes list every valid one."""
        error = InvalidSchemeError("", "localhost:8086", VALID_SCHEMES)

        assert error.suggestion == "Use one of: http://, https://, udp://"


class TestOneShotErrors:
    """Tests for one-shot specific errors."""

    def test_malformed_tag(self) -> None:
        """Test the malformed tag message."""
        error = MalformedTagError("start_time", "soon")

        assert error.tag == "start_time"
        assert error.value == "soon"
        assert "'start_time' must be an integer, got 'soon'" in str(error)

    def test_nothing_to_send(self) -> None:
        """Test the nothing-to-send message."""
        error = NothingToSendError("batch_job")

        assert error.measurement == "batch_job"
        assert "batch_job" in str(error)
