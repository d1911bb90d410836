"""
Category and manufacturer mapping stages.

Both read a multi-value id column and add one mapping per id that is not
mapped yet and whose target exists. Existing mappings are never removed.
"""

import logging
from typing import Any, Callable, List, Set, Tuple

from ..converters import ConversionError, FieldKind
from ..domain import ProductCategory, ProductManufacturer
from ..result import ImportResult
from ..schema import CATEGORY_IDS_COLUMN, MANUFACTURER_IDS_COLUMN
from ..segmenter import DataSegmenter, ImportRow
from .base import BatchProcessor
from .contracts import CatalogLookup, MappingStore, NotificationSink

logger = logging.getLogger(__name__)


class AssociationProcessor(BatchProcessor):
    """
    Generic product-to-foreign-entity mapping stage.

    Args:
        column: Multi-value id column ("5,6" or "5;6")
        stage_name: Name recorded with segment errors
        store: Mapping storage
        exists: Returns True if the foreign entity exists
        mapping_factory: Builds a mapping from (product_id, foreign_id)
        notifications: Receives the last inserted mapping of each batch
    """

    def __init__(
        self,
        column: str,
        stage_name: str,
        store: MappingStore,
        exists: Callable[[int], bool],
        mapping_factory: Callable[[int, int], Any],
        notifications: NotificationSink
    ):
        self.column = column
        self.stage_name = stage_name
        self._store = store
        self._exists = exists
        self._mapping_factory = mapping_factory
        self._notifications = notifications

    def is_applicable(self, segmenter: DataSegmenter, rows: List[ImportRow]) -> bool:
        return segmenter.has_column(self.column)

    def process(self, rows: List[ImportRow], result: ImportResult) -> int:
        last_inserted = None
        staged: Set[Tuple[int, int]] = set()

        with self._store.open_batch() as batch:
            for row in rows:
                try:
                    foreign_ids = row.get_data_value(self.column, FieldKind.INT_LIST, default=[])
                except ConversionError as e:
                    row.record_field_error(result, self.column, f"Conversion failed: {e}")
                    continue

                try:
                    for foreign_id in foreign_ids:
                        key = (row.entity.id, foreign_id)
                        if key in staged:
                            continue
                        if self._store.find_mapping(*key) is not None:
                            continue
                        if not self._exists(foreign_id):
                            logger.debug(f"Row {row.row_number}: {self.column} id {foreign_id} does not exist")
                            continue

                        mapping = self._mapping_factory(*key)
                        batch.insert(mapping)
                        staged.add(key)
                        last_inserted = mapping
                except Exception as e:
                    logger.warning(f"{self.column} for row {row.row_number} failed: {e}")
                    result.add_warning(str(e), row.get_row_info(), self.column)

            num_written = batch.commit()

        if last_inserted is not None:
            self._notifications.entity_created(last_inserted)

        return num_written


class CategoryMappingProcessor(AssociationProcessor):
    def __init__(self, store: MappingStore, lookup: CatalogLookup, notifications: NotificationSink):
        super().__init__(
            column=CATEGORY_IDS_COLUMN,
            stage_name="ProcessProductCategories",
            store=store,
            exists=lookup.category_exists,
            mapping_factory=lambda product_id, category_id: ProductCategory(
                product_id=product_id,
                category_id=category_id,
                is_featured_product=False,
                display_order=1,
            ),
            notifications=notifications,
        )


class ManufacturerMappingProcessor(AssociationProcessor):
    def __init__(self, store: MappingStore, lookup: CatalogLookup, notifications: NotificationSink):
        super().__init__(
            column=MANUFACTURER_IDS_COLUMN,
            stage_name="ProcessProductManufacturers",
            store=store,
            exists=lookup.manufacturer_exists,
            mapping_factory=lambda product_id, manufacturer_id: ProductManufacturer(
                product_id=product_id,
                manufacturer_id=manufacturer_id,
                is_featured_product=False,
                display_order=1,
            ),
            notifications=notifications,
        )
