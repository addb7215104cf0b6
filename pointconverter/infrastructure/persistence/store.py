"""SQLAlchemy implementation of the entity store port.

A store factory owns the engine and session factory; each store handle wraps
one ORM session. The point converters run inside SQLAlchemy as column types,
so every flush, load and bound query parameter is visible to the conversion
counter.
"""

from typing import Any, Iterable, Optional

from sqlalchemy import String, bindparam, create_engine, inspect, select, type_coerce
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError, StatementError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pointconverter.application.config import Config, get_config
from pointconverter.application.errors import StoreCapabilityError, StoreUnavailableError
from pointconverter.application.ports import EntityStore, EntityStoreFactory, FieldEquals
from pointconverter.domain.counters import ConversionCounter, get_conversion_counter
from pointconverter.infrastructure.logging.utilities import LoggingPort, log_store_operation
from pointconverter.infrastructure.persistence.models import Base
from pointconverter.shared.logging import get_logger


class SqlAlchemyEntityStore(EntityStore, LoggingPort):
    """Store handle backed by one SQLAlchemy session."""

    def __init__(self, session: Session):
        """
        Initialize store handle.

        Args:
            session: SQLAlchemy session owned by this handle
        """
        super().__init__(logger_name="infrastructure.entity_store")
        self.session = session
        self._closed = False

    def get_component_name(self) -> str:
        return "EntityStore"

    # Transactions

    def begin(self) -> None:
        self.session.begin()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def is_active(self) -> bool:
        return self.session.in_transaction()

    # Object lifecycle

    @log_store_operation("create_and_persist")
    def create_and_persist(self, entity: Any) -> Any:
        """Add the entity and flush so its identity is assigned."""
        self.session.add(entity)
        self.session.flush()
        return entity

    @log_store_operation("get_by_id")
    def get_by_id(self, entity_class: type, oid: Any) -> Optional[Any]:
        return self.session.get(entity_class, oid)

    def object_id(self, entity: Any) -> Any:
        identity = inspect(entity).identity
        if identity is None:
            raise StoreCapabilityError(
                "object_id", type(entity).__name__, "entity has not been flushed"
            )
        return identity[0] if len(identity) == 1 else identity

    @log_store_operation("delete_all")
    def delete_all(self, entities: Iterable[Any]) -> None:
        for entity in entities:
            self.session.delete(entity)

    def is_dirty(self, entity: Any) -> bool:
        return self.session.is_modified(entity)

    # Queries

    @log_store_operation("query")
    def query(
        self,
        entity_class: type,
        criteria: FieldEquals,
        params: dict[str, Any],
    ) -> list[Any]:
        """
        Select entities whose field equals a named parameter.

        A raw criteria compares the stored string itself, so the parameter
        is bound as ``VARCHAR`` and never reaches the field's converter.
        """
        column = getattr(entity_class, criteria.field, None)
        if column is None:
            raise StoreCapabilityError(
                "query", entity_class.__name__, f"unknown field {criteria.field}"
            )

        if criteria.raw:
            clause = type_coerce(column, String) == bindparam(criteria.parameter, type_=String)
        else:
            clause = column == bindparam(criteria.parameter)

        try:
            return list(self.session.scalars(select(entity_class).where(clause), params))
        except DBAPIError as e:
            raise StoreCapabilityError("query", entity_class.__name__, str(e.orig)) from e
        except StatementError:
            # Converter failures while binding parameters
            raise
        except SQLAlchemyError as e:
            raise StoreCapabilityError("query", entity_class.__name__, str(e)) from e

    @log_store_operation("extent")
    def extent(self, entity_class: type) -> list[Any]:
        try:
            return list(self.session.scalars(select(entity_class)))
        except SQLAlchemyError as e:
            raise StoreCapabilityError("extent", entity_class.__name__, str(e)) from e

    # Caching

    def evict_all(self, entity_class: type) -> None:
        """Detach every cached instance of the class from the session."""
        evicted = 0
        for entity in list(self.session.identity_map.values()):
            if isinstance(entity, entity_class):
                self.session.expunge(entity)
                evicted += 1
        self._logger.debug(
            "entity_cache_evicted",
            entity_class=entity_class.__name__,
            evicted=evicted,
        )

    # Handle lifecycle

    def close(self) -> None:
        self.session.close()
        self._closed = True

    @property
    def is_closed(self) -> bool:
        return self._closed


class SqlAlchemyStoreFactory(EntityStoreFactory):
    """Creates SQLAlchemy store handles over one engine."""

    def __init__(self, config: Optional[Config] = None, engine: Optional[Engine] = None):
        """
        Initialize factory and create the rect schema.

        Args:
            config: Configuration supplying DATABASE_URL and DATABASE_ECHO
            engine: Pre-built engine, used instead of one built from config

        Raises:
            StoreUnavailableError: If the engine or schema cannot be created
        """
        self._logger = get_logger("infrastructure.store_factory")
        self.config = config if config is not None else get_config()
        self._disposed = False

        try:
            self.engine = engine if engine is not None else self._create_engine()
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            self._logger.error(
                "store_factory_init_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreUnavailableError(str(e)) from e

        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=True)

        self._logger.info(
            "store_factory_initialized",
            dialect=self.engine.dialect.name,
            in_memory=self.config.uses_in_memory_database,
        )

    def _create_engine(self) -> Engine:
        kwargs: dict[str, Any] = {"echo": self.config.DATABASE_ECHO}
        if self.config.uses_in_memory_database:
            # One shared connection, otherwise every handle sees an empty database
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
        return create_engine(self.config.DATABASE_URL, **kwargs)

    @property
    def conversion_counter(self) -> ConversionCounter:
        # Column types count into the process-wide counter
        return get_conversion_counter()

    def open(self) -> SqlAlchemyEntityStore:
        if self._disposed:
            raise StoreUnavailableError("store factory has been disposed")
        return SqlAlchemyEntityStore(self._session_factory())

    def dispose(self) -> None:
        """Release every pooled connection."""
        self.engine.dispose()
        self._disposed = True
