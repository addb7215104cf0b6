"""SQLAlchemy models for rect entities with converted point fields.

Both rect classes store ``upper_left`` and ``lower_right`` as strings. They
differ only in where the conversion is declared: ``RectFieldConverted``
names the column type on each field, ``RectTypeConverted`` relies on the
declarative type map entry for :class:`ConvertiblePoint`.

Point columns are deferred, so loading a rect fetches only its identity and
each point is fetched and converted on first access.
"""

from typing import Optional

from sqlalchemy import Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from pointconverter.domain.value_objects import ConvertiblePoint, Point
from pointconverter.infrastructure.persistence.types import (
    ConvertiblePointStringType,
    PointStringType,
)


class Base(DeclarativeBase):
    """Declarative base declaring the conversion of the ConvertiblePoint type."""

    type_annotation_map = {
        ConvertiblePoint: ConvertiblePointStringType(),
    }


class RectFieldConverted(Base):
    """Rect whose point fields each declare the point converter."""

    __tablename__ = "rect_field_converted"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    upper_left: Mapped[Optional[Point]] = mapped_column(PointStringType(), deferred=True)
    lower_right: Mapped[Optional[Point]] = mapped_column(PointStringType(), deferred=True)

    def __repr__(self) -> str:
        return f"RectFieldConverted(id={self.__dict__.get('id')!r})"


class RectTypeConverted(Base):
    """Rect whose point fields are converted through their declared type."""

    __tablename__ = "rect_type_converted"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    upper_left: Mapped[Optional[ConvertiblePoint]] = mapped_column(deferred=True)
    lower_right: Mapped[Optional[ConvertiblePoint]] = mapped_column(deferred=True)

    def __repr__(self) -> str:
        return f"RectTypeConverted(id={self.__dict__.get('id')!r})"
