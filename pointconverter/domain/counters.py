"""Process-wide accounting of attribute converter invocations."""

import threading
from dataclasses import dataclass
from typing import Optional

from pointconverter.domain.errors import InvalidCounterStateError


@dataclass(frozen=True)
class ConversionCounts:
    """Snapshot of converter calls, split by direction.

    Subtracting an earlier snapshot from a later one yields the delta of an
    operation.
    """
    to_datastore: int = 0
    to_attribute: int = 0

    def __post_init__(self) -> None:
        if self.to_datastore < 0 or self.to_attribute < 0:
            raise InvalidCounterStateError(self.to_datastore, self.to_attribute)

    def __sub__(self, other: "ConversionCounts") -> "ConversionCounts":
        if not isinstance(other, ConversionCounts):
            return NotImplemented
        return ConversionCounts(
            to_datastore=self.to_datastore - other.to_datastore,
            to_attribute=self.to_attribute - other.to_attribute,
        )

    def __add__(self, other: "ConversionCounts") -> "ConversionCounts":
        if not isinstance(other, ConversionCounts):
            return NotImplemented
        return ConversionCounts(
            to_datastore=self.to_datastore + other.to_datastore,
            to_attribute=self.to_attribute + other.to_attribute,
        )

    def to_dict(self) -> dict[str, int]:
        return {"to_datastore": self.to_datastore, "to_attribute": self.to_attribute}


class ConversionCounter:
    """Thread-safe counters for both converter directions.

    Converter implementations call the ``inc_*`` methods as their first
    action. Readers take a :meth:`snapshot` so both values come from the same
    instant.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._to_datastore = 0
        self._to_attribute = 0

    def inc_to_datastore_calls(self) -> int:
        """Count one ``convert_to_datastore`` call and return the new total."""
        with self._lock:
            self._to_datastore += 1
            return self._to_datastore

    def inc_to_attribute_calls(self) -> int:
        """Count one ``convert_to_attribute`` call and return the new total."""
        with self._lock:
            self._to_attribute += 1
            return self._to_attribute

    @property
    def to_datastore_calls(self) -> int:
        with self._lock:
            return self._to_datastore

    @property
    def to_attribute_calls(self) -> int:
        with self._lock:
            return self._to_attribute

    def snapshot(self) -> ConversionCounts:
        with self._lock:
            return ConversionCounts(
                to_datastore=self._to_datastore,
                to_attribute=self._to_attribute,
            )

    def reset(self) -> None:
        """Zero both counts. Only test setup is expected to call this."""
        with self._lock:
            self._to_datastore = 0
            self._to_attribute = 0


# Global counter instance
_counter: Optional[ConversionCounter] = None
_counter_lock = threading.Lock()


def get_conversion_counter() -> ConversionCounter:
    """
    Get the process-wide conversion counter.

    Returns:
        The shared ConversionCounter, created on first use
    """
    global _counter
    if _counter is None:
        with _counter_lock:
            if _counter is None:
                _counter = ConversionCounter()
    return _counter
