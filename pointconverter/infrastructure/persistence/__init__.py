"""SQLAlchemy persistence adapter for rect entities."""

from .models import Base, RectFieldConverted, RectTypeConverted
from .store import SqlAlchemyEntityStore, SqlAlchemyStoreFactory
from .types import ConvertiblePointStringType, PointStringType

__all__ = [
    "Base",
    "RectFieldConverted",
    "RectTypeConverted",
    "SqlAlchemyEntityStore",
    "SqlAlchemyStoreFactory",
    "ConvertiblePointStringType",
    "PointStringType",
]
