"""
Unit tests for the primary product writer.

These tests verify that:
1. Identity resolution follows Id → Sku → Gtin, first match wins
2. New products require a Name column in the data table
3. One commit and at most one created/updated notification per batch
4. Row failures never stop the rest of the batch
"""

from decimal import Decimal

import pytest

from importkit.converters import get_culture
from importkit.data_table import DataTable
from importkit.ingest.memory_store import InMemoryCatalog, RecordingNotificationSink
from importkit.ingest.product_writer import NAME_REQUIRED_MESSAGE, ProductWriter, RowResult
from importkit.result import ImportResult, Severity
from importkit.segmenter import DataSegmenter


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def catalog():
    return InMemoryCatalog()


@pytest.fixture
def notifications():
    return RecordingNotificationSink()


@pytest.fixture
def writer(catalog, notifications):
    return ProductWriter(catalog.products, notifications, store_mappings=catalog.store_mappings)


def read_batch(columns, rows, culture="en-US"):
    """Helper returning the first batch of a table."""
    segmenter = DataSegmenter(DataTable(columns, rows), batch_size=100, culture=get_culture(culture))
    segmenter.read_next_batch()
    return segmenter.current_batch


def write(writer, columns, rows):
    """Helper running one batch through the writer."""
    batch = read_batch(columns, rows)
    result = ImportResult()
    num_written = writer.process(batch, result)
    return batch, result, num_written


# =============================================================================
# IDENTITY RESOLUTION
# =============================================================================

class TestResolution:
    def test_positive_id_wins_over_sku(self, catalog, writer):
        first = catalog.add_product(sku="A", name="First")
        second = catalog.add_product(sku="B", name="Second")

        batch, result, _ = write(writer, ["Id", "Sku", "Name"], [[str(first.id), "B", "Renamed"]])

        assert batch[0].entity.id == first.id
        assert not batch[0].is_new
        assert catalog.products.find_by_id(first.id).name == "Renamed"
        assert catalog.products.find_by_id(second.id).name == "Second"

    @pytest.mark.parametrize("raw_id", ["0", "-4", "abc", ""])
    def test_non_positive_id_falls_back_to_sku(self, catalog, writer, raw_id):
        product = catalog.add_product(sku="A", name="Stored")

        batch, _, _ = write(writer, ["Id", "Sku", "Name"], [[raw_id, "A", "Stored"]])

        assert batch[0].entity.id == product.id

    def test_unknown_id_falls_back_to_sku(self, catalog, writer):
        product = catalog.add_product(sku="A", name="Stored")

        batch, _, _ = write(writer, ["Id", "Sku"], [["999", "A"]])

        assert batch[0].entity.id == product.id

    def test_gtin_is_last_key(self, catalog, writer):
        product = catalog.add_product(gtin="4006381333931", name="Stored")

        batch, _, _ = write(writer, ["Sku", "Gtin"], [["UNKNOWN", "4006381333931"]])

        assert batch[0].entity.id == product.id

    def test_sku_match_is_case_insensitive(self, catalog, writer):
        product = catalog.add_product(sku="abc123", name="Stored")

        batch, _, _ = write(writer, ["Sku"], [["ABC123"]])

        assert batch[0].entity.id == product.id


# =============================================================================
# NEW PRODUCTS
# =============================================================================

class TestNewProducts:
    def test_creates_product_with_defaults(self, catalog, writer):
        batch, result, num_written = write(writer, ["Name", "Price"], [["Widget", "19.99"]])

        product = catalog.products.find_by_id(batch[0].entity.id)
        assert num_written == 1
        assert batch[0].is_new
        assert product.name == "Widget"
        assert product.price == Decimal("19.99")
        assert product.stock_quantity == 10000
        assert product.created_on_utc is not None
        assert product.updated_on_utc is not None
        assert not result.messages

    def test_name_column_required(self, catalog, writer):
        batch, result, num_written = write(writer, ["Sku", "Price"], [["NEW-1", "5"]])

        assert num_written == 0
        assert batch[0].entity is None
        assert batch[0].is_transient
        assert len(catalog.product_table) == 0

        [error] = result.errors
        assert error.message == NAME_REQUIRED_MESSAGE
        assert error.field_name == "Name"
        assert error.row_number == 1

    def test_blank_name_cell_is_allowed_when_column_present(self, catalog, writer):
        batch, result, num_written = write(writer, ["Sku", "Name"], [["NEW-1", ""]])

        assert num_written == 1
        assert not batch[0].is_transient

    def test_duplicate_new_sku_in_batch_fails_second_row(self, catalog, writer):
        batch, result, num_written = write(
            writer, ["Sku", "Name"], [["DUP", "First"], ["DUP", "Second"]]
        )

        assert num_written == 1
        assert not batch[0].is_transient
        assert batch[1].is_transient
        [error] = result.errors
        assert error.row_number == 2
        assert error.field_name == "Sku"


# =============================================================================
# UPDATES
# =============================================================================

class TestUpdates:
    def test_name_change_is_detected(self, catalog, writer):
        product = catalog.add_product(sku="A", name="Old Name")

        batch, _, _ = write(writer, ["Sku", "Name"], [["A", "New Name"]])

        assert batch[0].name_changed
        assert catalog.products.find_by_id(product.id).name == "New Name"

    def test_name_case_change_is_not_a_rename(self, catalog, writer):
        catalog.add_product(sku="A", name="Widget")

        batch, _, _ = write(writer, ["Sku", "Name"], [["A", "WIDGET"]])

        assert not batch[0].name_changed

    def test_absent_columns_are_left_untouched(self, catalog, writer):
        product = catalog.add_product(sku="A", name="Widget", price=Decimal("9.50"), stock_quantity=3)

        write(writer, ["Sku", "Name"], [["A", "Widget"]])

        stored = catalog.products.find_by_id(product.id)
        assert stored.price == Decimal("9.50")
        assert stored.stock_quantity == 3

    def test_conversion_failure_keeps_previous_value(self, catalog, writer):
        product = catalog.add_product(sku="A", name="Widget", price=Decimal("9.50"))

        batch, result, num_written = write(writer, ["Sku", "Price"], [["A", "n/a"]])

        assert num_written == 1
        assert catalog.products.find_by_id(product.id).price == Decimal("9.50")
        [warning] = result.warnings
        assert warning.field_name == "Price"


# =============================================================================
# NOTIFICATIONS AND STORE MAPPINGS
# =============================================================================

class TestNotifications:
    def test_one_created_and_one_updated_per_batch(self, catalog, writer, notifications):
        catalog.add_product(sku="A", name="Existing A")
        catalog.add_product(sku="B", name="Existing B")

        batch, _, num_written = write(
            writer,
            ["Sku", "Name"],
            [["A", "A"], ["NEW-1", "New 1"], ["B", "B"], ["NEW-2", "New 2"]],
        )

        assert num_written == 4
        assert len(notifications.created) == 1
        assert len(notifications.updated) == 1
        assert notifications.created[0] is batch[3].entity
        assert notifications.updated[0] is batch[2].entity

    def test_no_notification_without_successes(self, writer, notifications):
        write(writer, ["Sku"], [["UNKNOWN"]])

        assert notifications.created == []
        assert notifications.updated == []

    def test_store_ids_are_mapped_after_commit(self, catalog, writer):
        batch, _, _ = write(writer, ["Name", "StoreIds"], [["Widget", "2,1"], ["Gadget", ""]])

        assert catalog.store_mappings.get_store_ids(batch[0].entity.id) == [1, 2]
        assert catalog.store_mappings.get_store_ids(batch[1].entity.id) == []


class TestCommitFailure:
    def test_commit_failure_propagates_and_discards_batch(self, catalog, writer, notifications):
        catalog.product_table.fail_next_commit = RuntimeError("connection lost")
        batch = read_batch(["Name"], [["Widget"]])

        with pytest.raises(RuntimeError):
            writer.process(batch, ImportResult())

        assert len(catalog.product_table) == 0
        assert batch[0].entity.id is None
        assert notifications.created == []

    def test_commit_failure_leaves_no_store_mappings(self, catalog, writer):
        existing = catalog.add_product(sku="S1", name="Stored")
        catalog.product_table.fail_next_commit = RuntimeError("connection lost")
        batch = read_batch(["Sku", "Name", "StoreIds"], [["S1", "Stored", "3"], ["S2", "New", "4"]])

        with pytest.raises(RuntimeError):
            writer.process(batch, ImportResult())

        assert catalog.store_mappings.get_store_ids(existing.id) == []
        assert catalog.store_mappings.take_pending() == []

    def test_next_batch_after_commit_failure_maps_only_its_own_rows(self, catalog, writer):
        existing = catalog.add_product(sku="S1", name="Stored")
        catalog.product_table.fail_next_commit = RuntimeError("connection lost")
        with pytest.raises(RuntimeError):
            writer.process(read_batch(["Sku", "Name", "StoreIds"], [["S2", "New", "4"]]), ImportResult())

        write(writer, ["Sku", "Name", "StoreIds"], [["S1", "Stored", "5"]])

        assert catalog.store_mappings.get_store_ids(existing.id) == [5]
        assert catalog.store_mappings.take_pending() == []


class TestRowResult:
    def test_factories(self):
        assert RowResult.ok().success
        failed = RowResult.failed("broken", "Sku")
        assert not failed.success
        assert failed.message == "broken"
        assert failed.field_name == "Sku"

    def test_unexpected_row_exception_is_recorded(self, catalog, notifications):
        class BrokenStore:
            def find_by_id(self, entity_id):
                raise RuntimeError("lookup failed")

            def find_by_alternate_key(self, key, value):
                return None

            def open_batch(self, auto_commit=False):
                return catalog.products.open_batch(auto_commit)

        writer = ProductWriter(BrokenStore(), notifications)
        batch = read_batch(["Id", "Name"], [["5", "Broken"], ["", "Fine"]])
        result = ImportResult()

        assert writer.process(batch, result) == 1
        [error] = result.errors
        assert error.severity is Severity.ERROR
        assert error.row_number == 1
        assert "lookup failed" in error.message
        assert batch[0].is_transient
        assert not batch[1].is_transient
