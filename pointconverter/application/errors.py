"""Application layer errors for the point converter."""

from typing import Any


class ApplicationError(Exception):
    """Base exception for all application layer errors."""

    def __init__(self, message: str) -> None:
        """
        Initialize application error.

        Args:
            message: Error message
        """
        super().__init__(message)
        self.message = message


class StoreUnavailableError(ApplicationError):
    """Raised when a store handle cannot be established."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Entity store unavailable: {reason}")
        self.reason = reason


class StoreCapabilityError(ApplicationError):
    """Raised when the store cannot perform a requested operation for a class."""

    def __init__(self, operation: str, entity_class: str, reason: str) -> None:
        """
        Initialize store capability error.

        Args:
            operation: Store operation that failed (e.g., "extent")
            entity_class: Name of the entity class involved
            reason: Underlying failure description
        """
        super().__init__(f"Store cannot perform {operation} for {entity_class}: {reason}")
        self.operation = operation
        self.entity_class = entity_class
        self.reason = reason


class ScenarioAssertionError(ApplicationError, AssertionError):
    """Raised when a conversion scenario observes something other than expected."""


class ConversionCountMismatch(ScenarioAssertionError):
    """Raised when a converter call delta does not meet its expectation."""

    def __init__(
        self,
        phase: str,
        direction: str,
        expected: int,
        actual: int,
        comparison: str = "==",
    ) -> None:
        """
        Initialize conversion count mismatch.

        Args:
            phase: Scenario phase the delta belongs to
            direction: "to_datastore" or "to_attribute"
            expected: Expected delta (or bound)
            actual: Observed delta
            comparison: "==" for exact counts, ">=" for lower bounds
        """
        message = (
            f"{phase}: expected {direction} calls {comparison} {expected}, got {actual}"
        )
        super().__init__(message)
        self.phase = phase
        self.direction = direction
        self.expected = expected
        self.actual = actual
        self.comparison = comparison


class PointValueMismatch(ScenarioAssertionError):
    """Raised when a materialized point field does not hold the expected value."""

    def __init__(self, field: str, expected: Any, actual: Any) -> None:
        super().__init__(f"{field}: expected {expected!r}, got {actual!r}")
        self.field = field
        self.expected = expected
        self.actual = actual
