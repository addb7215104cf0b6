"""SQLAlchemy column types backed by the point attribute converters.

The decorated types hand every bound parameter to ``convert_to_datastore``
and every fetched value to ``convert_to_attribute``. Comparing a column to a
point therefore converts the point, while comparing the column coerced to
``String`` against a plain string leaves the converter out.
"""

from typing import Any, Optional

from sqlalchemy import String
from sqlalchemy.engine import Dialect
from sqlalchemy.types import TypeDecorator

from pointconverter.application.converters import (
    ConvertiblePointToStringConverter,
    PointToStringConverter,
    BasePointStringConverter,
)

# Longest encoding of two 64-bit integers plus separator fits comfortably
POINT_COLUMN_LENGTH = 64


class _PointStringTypeBase(TypeDecorator):
    """Stores a point through an attribute converter as ``VARCHAR``."""

    impl = String(POINT_COLUMN_LENGTH)
    cache_ok = True

    converter_class: type = PointToStringConverter

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        # Reports to the process-wide conversion counter
        self.converter: BasePointStringConverter = self.converter_class()

    @property
    def python_type(self) -> type:
        return self.converter_class.point_class

    def process_bind_param(self, value: Any, dialect: Dialect) -> Optional[str]:
        return self.converter.convert_to_datastore(value)

    def process_literal_param(self, value: Any, dialect: Dialect) -> Optional[str]:
        # Quoting is applied afterwards by the String impl
        return self.converter.convert_to_datastore(value)

    def process_result_value(self, value: Optional[str], dialect: Dialect) -> Any:
        return self.converter.convert_to_attribute(value)


class PointStringType(_PointStringTypeBase):
    """Column type declared per field for :class:`Point` values."""

    cache_ok = True
    converter_class = PointToStringConverter


class ConvertiblePointStringType(_PointStringTypeBase):
    """Column type bound to :class:`ConvertiblePoint` in the declarative type map."""

    cache_ok = True
    converter_class = ConvertiblePointToStringConverter
