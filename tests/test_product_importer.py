"""
End-to-end tests for the batched product import.

These tests verify that:
1. Counters and notifications match what was persisted
2. Re-importing the same data is idempotent
3. Failures stay contained (field, row, batch)
4. Abort requests are honoured between batches
"""

from decimal import Decimal

import pytest

from importkit.config import ImportSettings
from importkit.data_table import DataTable
from importkit.ingest import (
    AbortMode,
    ImportExecuteContext,
    InMemoryCatalog,
    ProductImporter,
    ProgressSink,
    RecordingNotificationSink,
)
from importkit.ingest.product_writer import NAME_REQUIRED_MESSAGE
from importkit.result import Severity


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def catalog():
    return InMemoryCatalog()


@pytest.fixture
def notifications():
    return RecordingNotificationSink()


class RecordingProgressSink(ProgressSink):
    def __init__(self):
        self.reports = []

    def report_progress(self, processed, total):
        self.reports.append((processed, total))


def make_importer(catalog, notifications, batch_size=100, parallel=False):
    """Helper returning (importer, settings) wired to the in-memory catalog."""
    settings = ImportSettings(batch_size=batch_size, culture="en-US", parallel_processors=parallel)
    importer = ProductImporter.from_catalog(catalog, notifications=notifications, settings=settings)
    return importer, settings


def run_import(catalog, notifications, columns, rows, batch_size=100, parallel=False, progress=None):
    """Helper running a complete import of the given table."""
    importer, settings = make_importer(catalog, notifications, batch_size, parallel)
    context = ImportExecuteContext.from_settings(DataTable(columns, rows), settings, progress=progress)
    return importer.execute(context)


# =============================================================================
# HAPPY PATH
# =============================================================================

class TestNewProductImport:
    def test_single_new_product(self, catalog, notifications):
        result = run_import(catalog, notifications, ["Id", "Name", "Price"], [["", "Widget", "19.99"]])

        [product] = catalog.product_table.all()
        assert product.name == "Widget"
        assert product.price == Decimal("19.99")
        assert catalog.slugs.get_active_slug(product) == "widget"
        assert len(notifications.created) == 1
        assert notifications.created[0].id == product.id
        assert notifications.updated == []

        assert result.total_records == 1
        assert result.new_records == 1
        assert result.modified_records == 0
        assert result.failed_records == 0
        assert result.start_date_utc is not None
        assert result.end_date_utc >= result.start_date_utc
        assert not result.has_errors

    def test_categories_for_existing_ids_only(self, catalog, notifications):
        catalog.add_categories(5)

        result = run_import(catalog, notifications, ["Sku", "Name", "CategoryIds"], [["ABC123", "Gadget", "5,6"]])

        product = catalog.products.find_by_alternate_key("sku", "ABC123")
        assert [m.category_id for m in catalog.category_mappings.get_mappings(product.id)] == [5]
        assert not result.has_errors
        assert not result.has_warnings

    def test_full_row(self, catalog, notifications, tmp_path):
        catalog.add_categories(1)
        catalog.add_manufacturers(2)
        image = tmp_path / "chair.jpg"
        image.write_bytes(b"chair picture")

        result = run_import(
            catalog,
            notifications,
            ["Sku", "Name", "Name[en]", "CategoryIds", "ManufacturerIds", "Picture1", "StoreIds"],
            [["CH-1", "Chair", "Chair (EN)", "1", "2", str(image), "1"]],
        )

        product = catalog.products.find_by_alternate_key("sku", "CH-1")
        assert result.new_records == 1
        assert catalog.slugs.get_active_slug(product) == "chair"
        assert catalog.localizations.get_localized_value(product, "Name", 1) == "Chair (EN)"
        assert len(catalog.category_mappings.get_mappings(product.id)) == 1
        assert len(catalog.manufacturer_mappings.get_mappings(product.id)) == 1
        assert len(catalog.pictures.get_pictures_for_product(product.id)) == 1
        assert catalog.store_mappings.get_store_ids(product.id) == [1]
        assert not result.messages


# =============================================================================
# IDEMPOTENCE
# =============================================================================

class TestReimport:
    COLUMNS = ["Sku", "Name", "Name[en]", "CategoryIds"]
    ROWS = [["A-1", "Lamp", "Lamp EN", "1,2"], ["A-2", "Desk", "Desk EN", "2"]]

    def test_second_run_creates_nothing(self, catalog, notifications):
        catalog.add_categories(1, 2)

        first = run_import(catalog, notifications, self.COLUMNS, self.ROWS)
        counts = (
            len(catalog.product_table),
            len(catalog.url_record_table),
            len(catalog.localized_property_table),
            len(catalog.product_category_table),
        )
        second = run_import(catalog, notifications, self.COLUMNS, self.ROWS)

        assert first.new_records == 2
        assert second.new_records == 0
        assert second.modified_records == 2
        assert second.affected_records == 2
        assert counts == (2, 2, 2, 3)
        assert (
            len(catalog.product_table),
            len(catalog.url_record_table),
            len(catalog.localized_property_table),
            len(catalog.product_category_table),
        ) == counts

    def test_second_run_in_parallel_mode(self, catalog, notifications):
        catalog.add_categories(1, 2)

        run_import(catalog, notifications, self.COLUMNS, self.ROWS, parallel=True)
        second = run_import(catalog, notifications, self.COLUMNS, self.ROWS, parallel=True)

        assert second.new_records == 0
        assert len(catalog.product_category_table) == 3
        assert len(catalog.url_record_table) == 2


# =============================================================================
# FAILURE CONTAINMENT
# =============================================================================

class TestFailureContainment:
    def test_unparsable_field_keeps_row(self, catalog, notifications):
        rows = [["P1", "One", "1.00"], ["P2", "Two", "abc"], ["P3", "Three", "3.00"]]

        result = run_import(catalog, notifications, ["Sku", "Name", "Price"], rows)

        assert result.new_records == 3
        assert result.failed_records == 0
        [warning] = result.warnings
        assert warning.row_number == 2
        assert warning.field_name == "Price"
        assert catalog.products.find_by_alternate_key("sku", "P2").price == Decimal("0")

    def test_missing_name_column_fails_new_rows_only(self, catalog, notifications):
        catalog.add_product(sku="KNOWN", name="Known", price=Decimal("1"))

        result = run_import(catalog, notifications, ["Sku", "Price"], [["KNOWN", "2"], ["UNKNOWN", "3"]])

        assert result.modified_records == 1
        assert result.failed_records == 1
        [error] = result.errors
        assert error.message == NAME_REQUIRED_MESSAGE
        assert error.row_number == 2
        assert len(catalog.product_table) == 1

    def test_commit_failure_fails_only_its_batch(self, catalog, notifications):
        catalog.product_table.fail_next_commit = RuntimeError("deadlock")

        result = run_import(
            catalog, notifications, ["Name"], [["First"], ["Second"], ["Third"]], batch_size=2
        )

        assert result.failed_records == 2
        assert result.new_records == 1
        [error] = result.errors
        assert error.severity is Severity.ERROR
        assert error.segment == 1
        assert error.field_name == "ProcessProducts"
        assert error.message == "RuntimeError: deadlock"

        [product] = catalog.product_table.all()
        assert product.name == "Third"
        # Dependent stages only saw the surviving batch
        assert [r.slug for r in catalog.url_record_table.all()] == ["third"]

    def test_failing_stage_is_a_segment_error(self, catalog, notifications):
        catalog.add_categories(1)
        catalog.product_category_table.fail_next_commit = RuntimeError("mapping table locked")

        result = run_import(catalog, notifications, ["Name", "CategoryIds"], [["Lamp", "1"]])

        assert result.new_records == 1
        [error] = result.errors
        assert error.field_name == "ProcessProductCategories"
        assert error.segment == 1
        # Other stages of the same batch still committed
        assert len(catalog.url_record_table) == 1


# =============================================================================
# PROGRESS AND ABORT
# =============================================================================

class TestProgressAndAbort:
    def test_progress_is_reported_per_batch(self, catalog, notifications):
        progress = RecordingProgressSink()

        run_import(catalog, notifications, ["Name"], [["A"], ["B"], ["C"]], batch_size=2, progress=progress)

        assert progress.reports == [(0, 3), (2, 3), (3, 3)]

    def test_rows_filling_the_last_batch_exactly(self, catalog, notifications):
        progress = RecordingProgressSink()

        result = run_import(
            catalog, notifications, ["Name"], [["A"], ["B"], ["C"], ["D"]], batch_size=2, progress=progress
        )

        assert progress.reports == [(0, 4), (2, 4), (4, 4)]
        assert result.new_records == 4
        assert len(catalog.product_table) == 4

    def test_empty_table(self, catalog, notifications):
        progress = RecordingProgressSink()

        result = run_import(catalog, notifications, ["Name"], [], progress=progress)

        assert progress.reports == [(0, 0)]
        assert result.total_records == 0
        assert result.new_records == 0
        assert result.failed_records == 0
        assert result.end_date_utc is not None
        assert not result.messages
        assert len(catalog.product_table) == 0

    def test_aborted_run_has_no_final_report(self, catalog, notifications):
        importer, settings = make_importer(catalog, notifications, batch_size=1)
        context = ImportExecuteContext.from_settings(DataTable(["Name"], [["A"], ["B"], ["C"]]), settings)

        class AbortingRecorder(RecordingProgressSink):
            def report_progress(self, processed, total):
                super().report_progress(processed, total)
                context.request_abort()

        context.progress = AbortingRecorder()
        importer.execute(context)

        assert context.progress.reports == [(0, 3)]

    def test_abort_stops_before_next_batch(self, catalog, notifications):
        importer, settings = make_importer(catalog, notifications, batch_size=1)
        context = ImportExecuteContext.from_settings(DataTable(["Name"], [["A"], ["B"], ["C"]]), settings)

        class AbortingProgressSink(ProgressSink):
            def report_progress(self, processed, total):
                context.request_abort()

        context.progress = AbortingProgressSink()
        result = importer.execute(context)

        assert context.abort is AbortMode.SOFT
        assert result.new_records == 1
        assert result.total_records == 3
        assert len(catalog.product_table) == 1
        assert result.end_date_utc is not None

    def test_already_aborted_context_imports_nothing(self, catalog, notifications):
        importer, settings = make_importer(catalog, notifications)
        context = ImportExecuteContext.from_settings(DataTable(["Name"], [["A"]]), settings)
        context.request_abort(AbortMode.HARD)

        result = importer.execute(context)

        assert result.new_records == 0
        assert len(catalog.product_table) == 0


class TestResultReport:
    def test_to_dict(self, catalog, notifications):
        result = run_import(catalog, notifications, ["Sku"], [["NOPE"]])

        report = result.to_dict()
        assert report["failed_records"] == 1
        assert report["messages"][0]["severity"] == "error"
        assert report["messages"][0]["row_number"] == 1
