"""Domain errors for the point converter."""


class DomainError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str) -> None:
        """
        Initialize domain error.

        Args:
            message: Error message
        """
        super().__init__(message)
        self.message = message


class MissingCoordinateError(DomainError):
    """Raised when a point coordinate required for formatting is absent."""

    def __init__(self, point_type: str, coordinate: str) -> None:
        """
        Initialize missing coordinate error.

        Args:
            point_type: Name of the point class
            coordinate: Name of the absent coordinate
        """
        message = f"{point_type} has no value for coordinate {coordinate}"
        super().__init__(message)
        self.point_type = point_type
        self.coordinate = coordinate


class InvalidCounterStateError(DomainError):
    """Raised when conversion counts would become negative."""

    def __init__(self, to_datastore: int, to_attribute: int) -> None:
        message = (
            f"Invalid conversion counts: to_datastore={to_datastore}, "
            f"to_attribute={to_attribute}"
        )
        super().__init__(message)
        self.to_datastore = to_datastore
        self.to_attribute = to_attribute
