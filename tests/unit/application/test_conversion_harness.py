"""Test the conversion harness against an in-memory fake store."""

import logging

import pytest
from structlog.testing import capture_logs

from pointconverter.application.config import Config, get_config, reset_config
from pointconverter.application.converters import PointToStringConverter
from pointconverter.application.errors import (
    ApplicationError,
    ConversionCountMismatch,
    PointValueMismatch,
    ScenarioAssertionError,
    StoreUnavailableError,
)
from pointconverter.application.harness import ConversionHarness, ScenarioReport
from pointconverter.application.ports import EntityStoreFactory
from pointconverter.domain.counters import ConversionCounter, ConversionCounts
from pointconverter.domain.value_objects import Point
from tests.fakes import FAKE_VARIANT, FakeRect, FakeStoreFactory


@pytest.fixture(autouse=True)
def clear_tear_down_registry():
    """The tear down registry is shared by all harnesses."""
    ConversionHarness._tear_down_classes.clear()
    yield
    ConversionHarness._tear_down_classes.clear()


@pytest.fixture
def fake_factory(counter):
    return FakeStoreFactory(converter=PointToStringConverter(counter))


@pytest.fixture
def fake_harness(fake_factory, counter):
    return ConversionHarness(fake_factory, counter=counter)


class BrokenFactory(EntityStoreFactory):
    """Factory failing with a non-store error."""

    def open(self):
        raise OSError("connection refused")


class TestHarnessConstruction:
    """Test ConversionHarness construction."""

    def test_rejects_small_query_batch(self, fake_factory, counter):
        with pytest.raises(ValueError, match="at least 3"):
            ConversionHarness(fake_factory, counter=counter, query_batch_size=2)

    def test_from_config_uses_batch_size(self, fake_factory, counter):
        harness = ConversionHarness.from_config(
            fake_factory, Config({"QUERY_BATCH_SIZE": "7"}), counter=counter
        )
        assert harness.query_batch_size == 7
        assert harness.counter is counter

    def test_from_global_config(self, fake_factory):
        reset_config()
        try:
            get_config({"QUERY_BATCH_SIZE": "4"})
            assert ConversionHarness.from_config(fake_factory).query_batch_size == 4
        finally:
            reset_config()

    def test_from_config_configures_logging(self, fake_factory, counter):
        ConversionHarness.from_config(
            fake_factory,
            Config({"ENVIRONMENT": "test", "LOG_LEVEL": "ERROR", "LOG_FORMAT": "console"}),
            counter=counter,
        )
        assert logging.getLogger().level == logging.ERROR

    def test_defaults_to_store_counter(self, fake_factory, counter):
        assert ConversionHarness(fake_factory).counter is counter

    def test_rejects_counter_the_store_does_not_report_to(self, fake_factory):
        with pytest.raises(ValueError, match="converters report to"):
            ConversionHarness(fake_factory, counter=ConversionCounter())

    def test_accepts_any_counter_when_store_cannot_tell(self, counter):
        assert BrokenFactory().conversion_counter is None
        assert ConversionHarness(BrokenFactory(), counter=counter).counter is counter

    def test_does_not_open_store_eagerly(self, fake_factory, fake_harness):
        assert not fake_harness.holds_store
        assert fake_factory.opened == []


class TestCreateRects:
    """Test rect creation helper."""

    def test_returns_first_identity(self, fake_harness):
        assert fake_harness.create_rects(FAKE_VARIANT, 3) == 1

    def test_stores_offset_points(self, fake_factory, fake_harness):
        fake_harness.create_rects(FAKE_VARIANT, 3)
        assert fake_factory.backend.rows == {
            1: ("1:10", "10:1"),
            2: ("2:11", "11:2"),
            3: ("3:12", "12:3"),
        }

    def test_nothing_created_for_zero(self, fake_factory, fake_harness):
        assert fake_harness.create_rects(FAKE_VARIANT, 0) is None
        assert fake_factory.backend.rows == {}

    def test_commits_once(self, fake_factory, fake_harness):
        fake_harness.create_rects(FAKE_VARIANT, 2)
        assert fake_factory.opened[0].commits == 1


class TestScenarios:
    """Test scenarios pass against a store that converts as expected."""

    def test_store_rect(self, fake_harness):
        with fake_harness.scenario(FAKE_VARIANT):
            report = fake_harness.run_store_rect(FAKE_VARIANT)

        assert report.name == "store_rect"
        assert report.variant == "fake"
        assert report.deltas["create"] == ConversionCounts(to_datastore=2, to_attribute=0)

    def test_read_rect(self, fake_harness):
        with fake_harness.scenario(FAKE_VARIANT):
            report = fake_harness.run_read_rect(FAKE_VARIANT)

        assert report.deltas["cold_read"] == ConversionCounts(to_datastore=0, to_attribute=2)

    def test_read_rect_uses_fresh_store_handle(self, fake_factory, fake_harness):
        with fake_harness.scenario(FAKE_VARIANT):
            fake_harness.run_read_rect(FAKE_VARIANT)

        assert len(fake_factory.opened) >= 2
        assert all(store.is_closed for store in fake_factory.opened)

    def test_modify_rect(self, fake_factory, fake_harness):
        with fake_harness.scenario(FAKE_VARIANT):
            report = fake_harness.run_modify_rect(FAKE_VARIANT)
            assert fake_factory.backend.rows[1] == ("2:11", "11:2")

        assert report.deltas["modify"] == ConversionCounts(to_datastore=2, to_attribute=2)

    def test_query_with_point_parameter(self, fake_harness):
        with fake_harness.scenario(FAKE_VARIANT):
            report = fake_harness.run_query_with_point_parameter(FAKE_VARIANT)

        assert report.deltas["create"] == ConversionCounts(to_datastore=10, to_attribute=0)
        assert report.deltas["query"] == ConversionCounts(to_datastore=1, to_attribute=2)

    def test_query_with_string_parameter(self, fake_harness):
        with fake_harness.scenario(FAKE_VARIANT):
            report = fake_harness.run_query_with_string_parameter(FAKE_VARIANT)

        assert report.deltas["query"] == ConversionCounts(to_datastore=0, to_attribute=2)

    def test_run_all(self, fake_factory, fake_harness):
        reports = fake_harness.run_all(FAKE_VARIANT)

        assert [report.name for report in reports] == [
            "store_rect",
            "read_rect",
            "modify_rect",
            "query_with_point_parameter",
            "query_with_string_parameter",
        ]
        assert fake_factory.backend.rows == {}
        assert not fake_harness.holds_store

    def test_query_batch_size_drives_creation(self, fake_factory, counter):
        harness = ConversionHarness(fake_factory, counter=counter, query_batch_size=3)
        with harness.scenario(FAKE_VARIANT):
            report = harness.run_query_with_string_parameter(FAKE_VARIANT)

        assert report.deltas["create"] == ConversionCounts(to_datastore=6, to_attribute=0)

    def test_report_to_dict(self, fake_harness):
        with fake_harness.scenario(FAKE_VARIANT):
            report = fake_harness.run_store_rect(FAKE_VARIANT)

        data = report.to_dict()
        assert data["name"] == "store_rect"
        assert data["deltas"] == {"create": {"to_datastore": 2, "to_attribute": 0}}
        assert data["duration_ms"] >= 0


class TestScenarioLogging:
    """Test scenario outcome events."""

    def test_completed_scenario_is_logged(self, fake_factory, counter):
        with capture_logs() as logs:
            harness = ConversionHarness(fake_factory, counter=counter)
            with harness.scenario(FAKE_VARIANT):
                harness.run_store_rect(FAKE_VARIANT)

        completed = [log for log in logs if log["event"] == "conversion_scenario_completed"]
        assert len(completed) == 1
        assert completed[0]["name"] == "store_rect"
        assert completed[0]["deltas"] == {"create": {"to_datastore": 2, "to_attribute": 0}}

    def test_failed_scenario_is_logged(self, counter):
        factory = FakeStoreFactory(
            converter=PointToStringConverter(counter),
            store_options={"extra_encodes": 1},
        )
        with capture_logs() as logs:
            harness = ConversionHarness(factory, counter=counter)
            with harness.scenario(FAKE_VARIANT):
                with pytest.raises(ConversionCountMismatch):
                    harness.run_store_rect(FAKE_VARIANT)

        failed = [log for log in logs if log["event"] == "conversion_scenario_failed"]
        assert len(failed) == 1
        assert failed[0]["log_level"] == "error"
        assert "expected to_datastore calls == 2, got 3" in failed[0]["error"]

    def test_unlistable_class_is_logged(self, counter):
        factory = FakeStoreFactory(
            converter=PointToStringConverter(counter),
            store_options={"fail_extent": True},
        )
        with capture_logs() as logs:
            harness = ConversionHarness(factory, counter=counter)
            harness.set_up(FAKE_VARIANT)
            harness.tear_down()

        events = [log for log in logs if log["event"] == "entity_extent_failed"]
        assert events[0]["entity_class"] == "FakeRect"


class TestScenarioFailures:
    """Test scenarios detect stores that convert too often."""

    def test_extra_encode_is_reported(self, counter):
        factory = FakeStoreFactory(
            converter=PointToStringConverter(counter),
            store_options={"extra_encodes": 1},
        )
        harness = ConversionHarness(factory, counter=counter)

        with harness.scenario(FAKE_VARIANT):
            with pytest.raises(ConversionCountMismatch) as exc_info:
                harness.run_store_rect(FAKE_VARIANT)

        error = exc_info.value
        assert error.phase == "create"
        assert error.direction == "to_datastore"
        assert error.expected == 2
        assert error.actual == 3
        assert error.message == "create: expected to_datastore calls == 2, got 3"

    def test_mismatch_is_an_assertion_error(self):
        error = ConversionCountMismatch("query", "to_attribute", 2, 1, ">=")
        assert isinstance(error, ScenarioAssertionError)
        assert isinstance(error, AssertionError)
        assert isinstance(error, ApplicationError)
        assert str(error) == "query: expected to_attribute calls >= 2, got 1"

    def test_lower_bound_accepts_larger_counts(self):
        report = ScenarioReport(name="q", variant="fake")
        report.deltas["query"] = ConversionCounts(to_datastore=4, to_attribute=6)

        ConversionHarness._expect(
            report, "query", 1, 2, at_least=("to_datastore", "to_attribute")
        )

    def test_lower_bound_rejects_smaller_counts(self):
        report = ScenarioReport(name="q", variant="fake")
        report.deltas["query"] = ConversionCounts(to_datastore=0, to_attribute=2)

        with pytest.raises(ConversionCountMismatch) as exc_info:
            ConversionHarness._expect(report, "query", 1, 2, at_least=("to_datastore",))
        assert exc_info.value.comparison == ">="

    def test_point_value_mismatch(self):
        with pytest.raises(PointValueMismatch) as exc_info:
            ConversionHarness._check_point("upper_left", Point(1, 11), 1, 10)
        assert exc_info.value.actual == (1, 11)

    def test_absent_y_is_checked_as_zero(self):
        ConversionHarness._check_point("upper_left", Point(4), 4, 0)

    def test_missing_point_is_a_mismatch(self):
        with pytest.raises(PointValueMismatch):
            ConversionHarness._check_point("lower_right", None, 10, 1)


class TestStoreAvailability:
    """Test the harness fails fast without a store."""

    def test_store_error_propagates(self, counter):
        factory = FakeStoreFactory(converter=PointToStringConverter(counter), fail_open=True)
        harness = ConversionHarness(factory, counter=counter)

        with pytest.raises(StoreUnavailableError, match="fake store is down"):
            harness.run_store_rect(FAKE_VARIANT)
        assert not harness.holds_store

    def test_other_open_errors_are_wrapped(self, counter):
        harness = ConversionHarness(BrokenFactory(), counter=counter)

        with pytest.raises(StoreUnavailableError) as exc_info:
            harness.create_rects(FAKE_VARIANT, 1)
        assert exc_info.value.reason == "connection refused"
        assert isinstance(exc_info.value.__cause__, OSError)


class TestSetUpAndTearDown:
    """Test tear down registry behavior."""

    def test_set_up_is_idempotent(self, fake_harness):
        fake_harness.set_up(FAKE_VARIANT)
        fake_harness.set_up(FAKE_VARIANT)
        assert ConversionHarness._tear_down_classes == [FakeRect]

    def test_registry_is_shared_between_harnesses(self, fake_factory, counter):
        ConversionHarness(fake_factory, counter=counter).set_up(FAKE_VARIANT)
        other = ConversionHarness(fake_factory, counter=counter)
        other.set_up(FAKE_VARIANT)
        assert ConversionHarness._tear_down_classes == [FakeRect]

    def test_tear_down_deletes_registered_instances(self, fake_factory, fake_harness):
        fake_harness.set_up(FAKE_VARIANT)
        fake_harness.create_rects(FAKE_VARIANT, 4)

        fake_harness.tear_down()

        assert fake_factory.backend.rows == {}
        assert ConversionHarness._tear_down_classes == []
        assert not fake_harness.holds_store

    def test_tear_down_without_registrations_opens_nothing(self, fake_factory, fake_harness):
        fake_harness.tear_down()
        assert fake_factory.opened == []

    def test_unlistable_class_is_skipped(self, counter):
        """A class the store cannot enumerate leaves its rows and the tear down succeeds."""
        factory = FakeStoreFactory(
            converter=PointToStringConverter(counter),
            store_options={"fail_extent": True},
        )
        harness = ConversionHarness(factory, counter=counter)
        harness.set_up(FAKE_VARIANT)
        harness.create_rects(FAKE_VARIANT, 2)
        store = factory.opened[-1]
        commits_before = store.commits

        harness.tear_down()

        assert len(factory.backend.rows) == 2
        assert ConversionHarness._tear_down_classes == []
        assert store.commits == commits_before + 1
        assert store.is_closed

    def test_store_released_when_deletion_fails(self, counter):
        factory = FakeStoreFactory(
            converter=PointToStringConverter(counter),
            store_options={"fail_delete": True},
        )
        harness = ConversionHarness(factory, counter=counter)
        harness.set_up(FAKE_VARIANT)
        harness.create_rects(FAKE_VARIANT, 1)

        with pytest.raises(RuntimeError, match="delete failed"):
            harness.tear_down()

        store = factory.opened[-1]
        assert store.rollbacks == 1
        assert store.is_closed
        assert not harness.holds_store
        assert ConversionHarness._tear_down_classes == []

    def test_scenario_tears_down_after_failure(self, counter):
        factory = FakeStoreFactory(
            converter=PointToStringConverter(counter),
            store_options={"extra_encodes": 1},
        )
        harness = ConversionHarness(factory, counter=counter)

        with pytest.raises(ConversionCountMismatch):
            with harness.scenario(FAKE_VARIANT):
                harness.run_store_rect(FAKE_VARIANT)

        assert factory.backend.rows == {}
        assert not harness.holds_store
