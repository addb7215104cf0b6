"""Value Objects for the point converter domain."""

import logging
from dataclasses import dataclass
from typing import ClassVar, Optional

from pointconverter.domain.errors import MissingCoordinateError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Point:
    """A simple point with a mandatory x and an optional y coordinate.

    An omitted ``y`` means "no y provided"; it is not the same value as ``0``
    even though both share one storage encoding.
    """
    x: int
    y: Optional[int] = None

    def __post_init__(self) -> None:
        if isinstance(self.x, bool) or not isinstance(self.x, int):
            raise ValueError("Invalid point x coordinate")
        if self.y is not None and (isinstance(self.y, bool) or not isinstance(self.y, int)):
            raise ValueError("Invalid point y coordinate")

    def get_x(self) -> int:
        return self.x

    def get_y(self) -> Optional[int]:
        return self.y

    def __str__(self) -> str:
        return f"Point(x: {self.x}, y: {self.y})"


@dataclass(frozen=True)
class ConvertiblePoint:
    """A point type whose storage conversion is declared on the type itself.

    Shares the storage format of :class:`Point`, so either can be used as a
    query parameter against a column holding the other.
    """
    x: int
    y: Optional[int] = None

    MISSING_VALUE_DISPLAY: ClassVar[str] = "Missing value getting ConvertiblePoint's values"

    def __post_init__(self) -> None:
        if isinstance(self.x, bool) or not isinstance(self.x, int):
            raise ValueError("Invalid point x coordinate")
        if self.y is not None and (isinstance(self.y, bool) or not isinstance(self.y, int)):
            raise ValueError("Invalid point y coordinate")

    def get_x(self) -> int:
        logger.debug("convertible_point_get_x x=%s", self.x)
        return self.x

    def get_y(self) -> Optional[int]:
        logger.debug("convertible_point_get_y y=%s", self.y)
        return self.y

    def name(self) -> str:
        """Display name of both coordinates.

        Raises:
            MissingCoordinateError: If ``y`` is absent
        """
        y = self.get_y()
        if y is None:
            raise MissingCoordinateError(type(self).__name__, "y")
        return f"x: {self.get_x()}, y: {y}"

    def __str__(self) -> str:
        if self.y is None:
            return self.MISSING_VALUE_DISPLAY
        return f"ConvertiblePoint({self.name()})"
