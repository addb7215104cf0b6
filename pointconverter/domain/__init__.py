"""Domain layer: point value objects and conversion accounting."""

from .counters import ConversionCounter, ConversionCounts, get_conversion_counter
from .errors import DomainError, InvalidCounterStateError, MissingCoordinateError
from .value_objects import ConvertiblePoint, Point

__all__ = [
    "ConversionCounter",
    "ConversionCounts",
    "get_conversion_counter",
    "DomainError",
    "InvalidCounterStateError",
    "MissingCoordinateError",
    "ConvertiblePoint",
    "Point",
]
