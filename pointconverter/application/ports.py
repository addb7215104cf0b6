"""Application ports (interfaces) for the point converter.

This module defines the contract between the verification harness and the
entity store it drives. The store owns transactions, identity, caching and
query execution; the harness only sees these interfaces.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Protocol, TypeVar

from pointconverter.domain.counters import ConversionCounter


class ConvertibleRect(Protocol):
    """Entity shape holding two independently converted point fields."""

    upper_left: Any
    lower_right: Any


E = TypeVar("E")


@dataclass(frozen=True)
class FieldEquals:
    """Filter ``this.<field> == :<parameter>``.

    With ``raw`` set, the parameter is a plain string compared against the
    stored encoding and never passes through the field's converter.
    """
    field: str
    parameter: str
    raw: bool = False


class EntityStore(ABC):
    """Port for one store handle (session) with its current transaction."""

    @abstractmethod
    def begin(self) -> None:
        """Begin a transaction."""
        pass

    @abstractmethod
    def commit(self) -> None:
        """Commit the current transaction, writing pending changes."""
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Roll back the current transaction."""
        pass

    @property
    @abstractmethod
    def is_active(self) -> bool:
        """Whether a transaction is in progress."""
        pass

    @abstractmethod
    def create_and_persist(self, entity: E) -> E:
        """
        Make a new entity persistent.

        Args:
            entity: Transient entity instance

        Returns:
            The same instance, with its identity assigned
        """
        pass

    @abstractmethod
    def get_by_id(self, entity_class: type, oid: Any) -> Optional[Any]:
        """
        Load an entity by identity.

        Args:
            entity_class: Mapped entity class
            oid: Identity returned by :meth:`object_id`

        Returns:
            The entity, or None if it does not exist
        """
        pass

    @abstractmethod
    def object_id(self, entity: Any) -> Any:
        """Return the identity of a persistent entity."""
        pass

    @abstractmethod
    def query(
        self,
        entity_class: type,
        criteria: FieldEquals,
        params: dict[str, Any],
    ) -> list[Any]:
        """
        Run a filtered query.

        Args:
            entity_class: Mapped entity class to query
            criteria: Filter naming the compared field and parameter
            params: Parameter values by name

        Returns:
            Matching entities
        """
        pass

    @abstractmethod
    def extent(self, entity_class: type) -> list[Any]:
        """
        List every persistent instance of a class.

        Raises:
            StoreCapabilityError: If the class cannot be enumerated
        """
        pass

    @abstractmethod
    def delete_all(self, entities: Iterable[Any]) -> None:
        """Delete the given persistent entities."""
        pass

    @abstractmethod
    def evict_all(self, entity_class: type) -> None:
        """Drop cached instances of a class so the next read is cold."""
        pass

    @abstractmethod
    def is_dirty(self, entity: Any) -> bool:
        """Whether the entity has unwritten modifications."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the handle."""
        pass

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        """Whether :meth:`close` has been called."""
        pass


class EntityStoreFactory(ABC):
    """Port for obtaining store handles."""

    @abstractmethod
    def open(self) -> EntityStore:
        """
        Open a new store handle.

        Raises:
            StoreUnavailableError: If no handle can be established
        """
        pass

    @property
    def conversion_counter(self) -> Optional[ConversionCounter]:
        """Counter the store's converters report to, or None if the store cannot tell."""
        return None
