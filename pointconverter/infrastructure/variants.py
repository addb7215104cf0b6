"""Rect variants wired to their SQLAlchemy models.

Each variant pairs an entity class with a factory for fresh instances and the
point type it accepts as a typed query parameter.
"""

from pointconverter.application.harness import RectVariant
from pointconverter.domain.value_objects import ConvertiblePoint, Point
from pointconverter.infrastructure.persistence.models import RectFieldConverted, RectTypeConverted

FIELD_CONVERTED = RectVariant(
    tag="field_converted",
    entity_class=RectFieldConverted,
    make_entity=RectFieldConverted,
    make_query_point=Point,
)

TYPE_CONVERTED = RectVariant(
    tag="type_converted",
    entity_class=RectTypeConverted,
    make_entity=RectTypeConverted,
    make_query_point=ConvertiblePoint,
)

VARIANTS: tuple[RectVariant, ...] = (FIELD_CONVERTED, TYPE_CONVERTED)

_BY_TAG = {variant.tag: variant for variant in VARIANTS}


def get_variant(tag: str) -> RectVariant:
    """
    Look up a rect variant by tag.

    Raises:
        KeyError: If no variant has that tag
    """
    try:
        return _BY_TAG[tag]
    except KeyError:
        raise KeyError(f"Unknown rect variant {tag!r}; expected one of {sorted(_BY_TAG)}") from None
