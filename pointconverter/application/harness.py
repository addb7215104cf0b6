"""Verification harness for attribute converter call accounting.

A rect entity refers to two points that are stored as strings. Each scenario
drives the entity store through one operation shape (create, cold read,
update, query by value, query by encoded string) and checks how many times
each converter direction fired while the store did its work.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Iterator, Optional

from pointconverter.application.config import Config, get_config, setup_logging
from pointconverter.application.converters import SEPARATOR
from pointconverter.application.errors import (
    ConversionCountMismatch,
    PointValueMismatch,
    ScenarioAssertionError,
    StoreCapabilityError,
    StoreUnavailableError,
)
from pointconverter.application.ports import (
    ConvertibleRect,
    EntityStore,
    EntityStoreFactory,
    FieldEquals,
)
from pointconverter.domain.counters import (
    ConversionCounter,
    ConversionCounts,
    get_conversion_counter,
)
from pointconverter.domain.value_objects import Point
from pointconverter.shared.logging import get_logger, with_scenario_context


@dataclass(frozen=True)
class RectVariant:
    """One way of declaring the point conversion on a rect entity.

    ``make_entity`` builds a fresh transient rect; ``make_query_point`` builds
    the value object accepted as a typed query parameter for this variant.
    """
    tag: str
    entity_class: type
    make_entity: Callable[[], ConvertibleRect]
    make_query_point: Callable[[int, int], Any]


@dataclass
class ScenarioReport:
    """Counter deltas observed by one scenario, keyed by phase."""
    name: str
    variant: str
    deltas: dict[str, ConversionCounts] = field(default_factory=dict)
    duration_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "variant": self.variant,
            "deltas": {phase: counts.to_dict() for phase, counts in self.deltas.items()},
            "duration_ms": self.duration_ms,
        }


class ConversionHarness:
    """Drives rect scenarios against an entity store and checks converter deltas."""

    UL_X = 1
    UL_Y = 10
    LR_X = 10
    LR_Y = 1

    # Entity classes whose instances are deleted on tear down, shared by all harnesses
    _tear_down_classes: ClassVar[list[type]] = []

    def __init__(
        self,
        store_factory: EntityStoreFactory,
        counter: Optional[ConversionCounter] = None,
        query_batch_size: int = 5,
    ) -> None:
        if query_batch_size < 3:
            raise ValueError("query_batch_size must be at least 3")
        store_counter = store_factory.conversion_counter
        if counter is None:
            counter = store_counter if store_counter is not None else get_conversion_counter()
        elif store_counter is not None and counter is not store_counter:
            # Deltas would stay zero while the store counts elsewhere
            raise ValueError(
                "counter must be the one the store's converters report to; "
                "pass store_factory.conversion_counter or omit it"
            )
        self._store_factory = store_factory
        self.counter = counter
        self.query_batch_size = query_batch_size
        self._store: Optional[EntityStore] = None
        self._logger = get_logger("application.harness")

    @classmethod
    def from_config(
        cls,
        store_factory: EntityStoreFactory,
        config: Optional[Config] = None,
        counter: Optional[ConversionCounter] = None,
    ) -> "ConversionHarness":
        """
        Build a harness from the given or global config.

        Configures logging from ``LOG_LEVEL``, ``LOG_FORMAT`` and ``ENVIRONMENT``
        and sizes the query scenarios by ``QUERY_BATCH_SIZE``.
        """
        config = config if config is not None else get_config()
        setup_logging(config)
        return cls(store_factory, counter=counter, query_batch_size=config.QUERY_BATCH_SIZE)

    # Store handle management

    def _get_store(self) -> EntityStore:
        """Return the current store handle, opening one if none is held."""
        if self._store is None:
            try:
                self._store = self._store_factory.open()
            except StoreUnavailableError as e:
                self._logger.error("store_open_failed", error=str(e), error_type=type(e).__name__)
                raise
            except Exception as e:
                self._logger.error("store_open_failed", error=str(e), error_type=type(e).__name__)
                raise StoreUnavailableError(str(e)) from e
        return self._store

    def _release_store(self) -> None:
        """Roll back any open transaction and close the current handle."""
        store, self._store = self._store, None
        if store is None or store.is_closed:
            return
        try:
            if store.is_active:
                store.rollback()
        finally:
            store.close()

    def _cold_store(self, entity_class: type) -> EntityStore:
        """Evict cached instances and reopen the store so the next read materializes."""
        self._get_store().evict_all(entity_class)
        self._release_store()
        return self._get_store()

    @property
    def holds_store(self) -> bool:
        return self._store is not None

    @contextmanager
    def _transaction(self, store: EntityStore) -> Iterator[EntityStore]:
        store.begin()
        try:
            yield store
            store.commit()
        finally:
            if store.is_active:
                store.rollback()

    # Set up and tear down

    def set_up(self, variant: RectVariant) -> None:
        """Register the variant's entity class for deletion on tear down."""
        if variant.entity_class not in self._tear_down_classes:
            self._tear_down_classes.append(variant.entity_class)

    def tear_down(self) -> None:
        """Delete every instance of every registered class, then release the store."""
        if not self._tear_down_classes:
            self._release_store()
            return
        store = self._get_store()
        try:
            with self._transaction(store):
                for entity_class in self._tear_down_classes:
                    store.delete_all(self._all_objects(store, entity_class))
        finally:
            self._tear_down_classes.clear()
            self._release_store()

    def _all_objects(self, store: EntityStore, entity_class: type) -> list[Any]:
        try:
            return store.extent(entity_class)
        except StoreCapabilityError as e:
            self._logger.error(
                "entity_extent_failed",
                entity_class=entity_class.__name__,
                error=str(e),
            )
            return []

    @contextmanager
    def scenario(self, variant: RectVariant) -> Iterator["ConversionHarness"]:
        """Run a block between :meth:`set_up` and :meth:`tear_down`."""
        self.set_up(variant)
        try:
            yield self
        finally:
            self.tear_down()

    # Helpers

    def create_rects(self, variant: RectVariant, nr_of_objects: int) -> Optional[Any]:
        """
        Create and persist rect instances in one transaction.

        Rect ``i`` gets ``upper_left = (UL_X + i, UL_Y + i)`` and
        ``lower_right = (LR_X + i, LR_Y + i)``.

        Args:
            variant: Rect variant to instantiate
            nr_of_objects: Number of rects to create

        Returns:
            Identity of the first rect, or None if nothing was created
        """
        if nr_of_objects < 1:
            return None

        oid = None
        store = self._get_store()
        with self._transaction(store):
            for i in range(nr_of_objects):
                rect = variant.make_entity()
                rect.upper_left = Point(self.UL_X + i, self.UL_Y + i)
                rect.lower_right = Point(self.LR_X + i, self.LR_Y + i)
                store.create_and_persist(rect)
                if oid is None:
                    oid = store.object_id(rect)
        return oid

    @contextmanager
    def _measure(self, report: ScenarioReport, phase: str) -> Iterator[None]:
        before = self.counter.snapshot()
        yield
        report.deltas[phase] = self.counter.snapshot() - before

    @contextmanager
    def _run(self, name: str, variant: RectVariant) -> Iterator[ScenarioReport]:
        report = ScenarioReport(name=name, variant=variant.tag)
        with with_scenario_context(name, variant.tag):
            start_time = time.time()
            try:
                yield report
            except ScenarioAssertionError as e:
                self._logger.error(
                    "conversion_scenario_failed",
                    error=str(e),
                    **report.to_dict(),
                )
                raise
            report.duration_ms = (time.time() - start_time) * 1000
            self._logger.info(
                "conversion_scenario_completed",
                **report.to_dict(),
            )

    @staticmethod
    def _expect(
        report: ScenarioReport,
        phase: str,
        to_datastore: int,
        to_attribute: int,
        at_least: tuple[str, ...] = (),
    ) -> None:
        """Check a phase delta; directions named in ``at_least`` are lower bounds."""
        delta = report.deltas[phase]
        for direction, expected, actual in (
            ("to_datastore", to_datastore, delta.to_datastore),
            ("to_attribute", to_attribute, delta.to_attribute),
        ):
            if direction in at_least:
                if actual < expected:
                    raise ConversionCountMismatch(phase, direction, expected, actual, ">=")
            elif actual != expected:
                raise ConversionCountMismatch(phase, direction, expected, actual)

    @staticmethod
    def _check_point(field_name: str, point: Any, x: int, y: int) -> None:
        if point is None:
            raise PointValueMismatch(field_name, (x, y), None)
        actual = (point.x, 0 if point.y is None else point.y)
        if actual != (x, y):
            raise PointValueMismatch(field_name, (x, y), actual)

    @staticmethod
    def _load(store: EntityStore, entity_class: type, oid: Any) -> Any:
        entity = store.get_by_id(entity_class, oid)
        if entity is None:
            raise ScenarioAssertionError(f"{entity_class.__name__} {oid} not found")
        return entity

    @staticmethod
    def _single(results: list[Any]) -> Any:
        if len(results) != 1:
            raise ScenarioAssertionError(f"expected exactly 1 query result, got {len(results)}")
        return results[0]

    # Scenarios

    def run_store_rect(self, variant: RectVariant) -> ScenarioReport:
        """Creating a rect converts each point to the datastore once."""
        with self._run("store_rect", variant) as report:
            with self._measure(report, "create"):
                self.create_rects(variant, 1)
            self._expect(report, "create", to_datastore=2, to_attribute=0)
        return report

    def run_read_rect(self, variant: RectVariant) -> ScenarioReport:
        """A cold read converts each accessed point back to an attribute once."""
        entity_class = variant.entity_class
        with self._run("read_rect", variant) as report:
            oid = self.create_rects(variant, 1)
            store = self._cold_store(entity_class)

            with self._measure(report, "cold_read"):
                with self._transaction(store):
                    rect = self._load(store, entity_class, oid)
                    ul = rect.upper_left
                    lr = rect.lower_right

            self._expect(report, "cold_read", to_datastore=0, to_attribute=2)
            self._check_point("upper_left", ul, self.UL_X, self.UL_Y)
            self._check_point("lower_right", lr, self.LR_X, self.LR_Y)
        return report

    def run_modify_rect(self, variant: RectVariant) -> ScenarioReport:
        """Updating both points decodes the old values and encodes the new ones."""
        entity_class = variant.entity_class
        with self._run("modify_rect", variant) as report:
            oid = self.create_rects(variant, 1)
            store = self._cold_store(entity_class)

            with self._measure(report, "modify"):
                with self._transaction(store):
                    rect = self._load(store, entity_class, oid)
                    # Load the current values before overwriting them
                    rect.lower_right
                    rect.upper_left
                    rect.upper_left = Point(self.UL_X + 1, self.UL_Y + 1)
                    rect.lower_right = Point(self.LR_X + 1, self.LR_Y + 1)
                    if not store.is_dirty(rect):
                        raise ScenarioAssertionError(
                            f"{entity_class.__name__} {oid} is not dirty after update"
                        )

            self._expect(report, "modify", to_datastore=2, to_attribute=2)
        return report

    def run_query_with_point_parameter(self, variant: RectVariant) -> ScenarioReport:
        """Querying with a point parameter converts the parameter for the datastore."""
        entity_class = variant.entity_class
        batch = self.query_batch_size
        with self._run("query_with_point_parameter", variant) as report:
            with self._measure(report, "create"):
                self.create_rects(variant, batch)
            self._expect(report, "create", to_datastore=2 * batch, to_attribute=0)

            store = self._cold_store(entity_class)
            with self._measure(report, "query"):
                with self._transaction(store):
                    point = variant.make_query_point(self.UL_X + 1, self.UL_Y + 1)
                    results = store.query(
                        entity_class,
                        FieldEquals("upper_left", "point"),
                        {"point": point},
                    )
                    rect = self._single(results)
                    ul = rect.upper_left
                    lr = rect.lower_right

            self._check_point("upper_left", ul, self.UL_X + 1, self.UL_Y + 1)
            self._check_point("lower_right", lr, self.LR_X + 1, self.LR_Y + 1)
            # Exact counts for the query path depend on the store
            self._expect(
                report, "query", to_datastore=1, to_attribute=2,
                at_least=("to_datastore", "to_attribute"),
            )
        return report

    def run_query_with_string_parameter(self, variant: RectVariant) -> ScenarioReport:
        """Querying with a pre-encoded string never calls convert_to_datastore."""
        entity_class = variant.entity_class
        batch = self.query_batch_size
        with self._run("query_with_string_parameter", variant) as report:
            with self._measure(report, "create"):
                self.create_rects(variant, batch)
            self._expect(report, "create", to_datastore=2 * batch, to_attribute=0)

            store = self._cold_store(entity_class)
            encoded = f"{self.UL_X + 2}{SEPARATOR}{self.UL_Y + 2}"
            with self._measure(report, "query"):
                with self._transaction(store):
                    results = store.query(
                        entity_class,
                        FieldEquals("upper_left", "str", raw=True),
                        {"str": encoded},
                    )
                    rect = self._single(results)
                    ul = rect.upper_left
                    lr = rect.lower_right

            self._check_point("upper_left", ul, self.UL_X + 2, self.UL_Y + 2)
            self._check_point("lower_right", lr, self.LR_X + 2, self.LR_Y + 2)
            self._expect(
                report, "query", to_datastore=0, to_attribute=2, at_least=("to_attribute",)
            )
        return report

    SCENARIOS: ClassVar[tuple[str, ...]] = (
        "run_store_rect",
        "run_read_rect",
        "run_modify_rect",
        "run_query_with_point_parameter",
        "run_query_with_string_parameter",
    )

    def run_all(self, variant: RectVariant) -> list[ScenarioReport]:
        """Run every scenario against a variant, each with its own set up and tear down."""
        reports = []
        for scenario_name in self.SCENARIOS:
            with self.scenario(variant):
                reports.append(getattr(self, scenario_name)(variant))
        return reports
