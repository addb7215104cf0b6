"""Attribute converters mapping point values to their storage strings.

Stored form is ``"<x>:<y>"``. An absent ``y`` is written as ``0``, so
``Point(3)`` and ``Point(3, 0)`` share one encoding.
"""

import re
from typing import Any, Generic, Optional, TypeVar

from pointconverter.domain.counters import ConversionCounter, get_conversion_counter
from pointconverter.domain.value_objects import ConvertiblePoint, Point
from pointconverter.shared.logging import get_logger

# Character separating x and y in the stored string
SEPARATOR = ":"

_INTEGER_PART = re.compile(r"[+-]?[0-9]+")

P = TypeVar("P", Point, ConvertiblePoint)


def _parse_part(part: str) -> int:
    """Parse one coordinate: optional sign and ASCII digits, nothing else."""
    if not _INTEGER_PART.fullmatch(part):
        raise ValueError(f"invalid integer part {part!r} in stored point")
    return int(part)


class BasePointStringConverter(Generic[P]):
    """Shared conversion policy for both point types."""

    point_class: type

    def __init__(self, counter: Optional[ConversionCounter] = None) -> None:
        self.counter = counter if counter is not None else get_conversion_counter()
        self._logger = get_logger(f"application.converters.{type(self).__name__}")

    def convert_to_datastore(self, attribute_value: Optional[Any]) -> Optional[str]:
        """
        Convert a point to its string representation in the datastore.

        Args:
            attribute_value: Point-like value exposing ``x`` and ``y``, or None

        Returns:
            The ``x:y`` string, or None for a None input
        """
        self.counter.inc_to_datastore_calls()
        datastore_value = None
        if attribute_value is not None:
            y = attribute_value.y
            datastore_value = f"{attribute_value.x}{SEPARATOR}{0 if y is None else y}"
        self._logger.debug(
            "point_converted_to_datastore",
            point_type=type(attribute_value).__name__,
            datastore_value=datastore_value,
        )
        return datastore_value

    def convert_to_attribute(self, datastore_value: Optional[str]) -> Optional[P]:
        """
        Convert a datastore string back to a point.

        Args:
            datastore_value: Stored ``x:y`` string, or None

        Returns:
            The point, or None for a None input or a value that does not
            split into exactly two parts once trailing empty parts are dropped

        Raises:
            ValueError: If either part is not an optionally signed run of ASCII digits
        """
        self.counter.inc_to_attribute_calls()
        attribute_value = None
        if datastore_value is not None:
            parts = datastore_value.split(SEPARATOR)
            # Trailing empty parts do not count, so "1:2:" holds two parts and "1:" one
            while parts and parts[-1] == "":
                parts.pop()
            if len(parts) == 2:
                attribute_value = self.point_class(_parse_part(parts[0]), _parse_part(parts[1]))
            else:
                self._logger.warning(
                    "malformed_point_datastore_value",
                    datastore_value=datastore_value,
                    parts=len(parts),
                )
        self._logger.debug(
            "point_converted_to_attribute",
            point_type=self.point_class.__name__,
            datastore_value=datastore_value,
        )
        return attribute_value

    # Short names for the two directions
    encode = convert_to_datastore
    decode = convert_to_attribute


class PointToStringConverter(BasePointStringConverter[Point]):
    """Converter declared per column for :class:`Point` fields."""

    point_class = Point


class ConvertiblePointToStringConverter(BasePointStringConverter[ConvertiblePoint]):
    """Converter declared on the :class:`ConvertiblePoint` type."""

    point_class = ConvertiblePoint
