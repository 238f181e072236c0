"""Exception hierarchy for influxreporter.

Every failure the reporter can hit maps to one of these classes:

- InvalidSchemeError: destination address has an unroutable scheme
- ConnectError: the transport could not be (re)created
- WriteError: a batch could not be delivered
- HealthCheckError: the liveness probe failed
- MalformedTagError / NothingToSendError: one-shot sender results
- ConfigValidationError: reporter settings failed validation

The looping reporter catches all of these below its construction boundary.
Only the one-shot sender and the constructors raise them to callers.
"""

from difflib import get_close_matches


class ReporterError(Exception):
    """Base exception for reporter errors.

    Attributes:
        message: The main error message
        address: Destination address involved (if applicable)
        suggestion: Helpful suggestion for fixing the error
    """

    def __init__(
        self,
        message: str,
        *,
        address: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        self.message = message
        self.address = address
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with destination and suggestion."""
        parts = [self.message]
        if self.address:
            parts[0] = f"{self.message} (address: {self.address})"
        if self.suggestion:
            parts.append(f"Suggestion: {self.suggestion}")
        return "\n  ".join(parts)


class InvalidSchemeError(ReporterError):
    """Error for destination addresses whose scheme selects no transport."""

    def __init__(self, scheme: str, address: str, valid_schemes: set[str]) -> None:
        self.scheme = scheme
        matches = get_close_matches(scheme, sorted(valid_schemes), n=1, cutoff=0.5)
        if matches:
            suggestion = f"Did you mean '{matches[0]}://'?"
        else:
            suggestion = "Use one of: " + ", ".join(f"{s}://" for s in sorted(valid_schemes))
        super().__init__(
            f"Invalid scheme '{scheme}'",
            address=address,
            suggestion=suggestion,
        )


class ConnectError(ReporterError):
    """Error for transport-level connect failures."""

    pass


class WriteError(ReporterError):
    """Error for a batch that could not be delivered."""

    pass


class HealthCheckError(ReporterError):
    """Error for a failed liveness probe."""

    pass


class MalformedTagError(ReporterError):
    """Error for a reserved tag whose value cannot be promoted to a field."""

    def __init__(self, tag: str, value: str) -> None:
        self.tag = tag
        self.value = value
        super().__init__(
            f"Tag '{tag}' must be an integer, got {value!r}",
            suggestion=f"Pass '{tag}' as a decimal integer string or omit it",
        )


class NothingToSendError(ReporterError):
    """Error for a one-shot send that produced no points."""

    def __init__(self, measurement: str) -> None:
        self.measurement = measurement
        super().__init__(f"No points to send for measurement '{measurement}'")


class ConfigValidationError(ReporterError):
    """Error for reporter configuration validation failures."""

    pass
