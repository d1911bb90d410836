"""
Primary writer: resolves every row of a batch to a product and persists it.

Resolution follows a fixed key priority so re-imports update instead of
duplicating:
- Id: only when the cell parses to a positive integer
- Sku: first alternate business key
- Gtin: second alternate business key

Rows that match nothing become new products, but only if the data table
has a Name column at all. Every accepted row is staged in one product
write batch which is committed exactly once.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from ..converters import ConversionError, FieldKind, is_blank, to_int
from ..domain import Product
from ..fields import FieldSpec, apply_fields
from ..result import ImportResult
from ..schema import (
    CREATED_ON_FIELD,
    GTIN_COLUMN,
    ID_COLUMN,
    NAME_COLUMN,
    PRODUCT_FIELDS,
    SKU_COLUMN,
    STORE_IDS_COLUMN,
)
from ..segmenter import ImportRow
from .contracts import EntityStore, NotificationSink, StoreMappingService, WriteBatch

logger = logging.getLogger(__name__)

NAME_REQUIRED_MESSAGE = "The 'Name' field is required for new products. Skipping row."

# (column, store key) pairs tried after the Id column
ALTERNATE_KEYS: Tuple[Tuple[str, str], ...] = (
    (SKU_COLUMN, "sku"),
    (GTIN_COLUMN, "gtin"),
)


@dataclass(frozen=True)
class RowResult:
    """Outcome of writing a single row."""
    success: bool
    message: Optional[str] = None
    field_name: Optional[str] = None

    @classmethod
    def ok(cls) -> "RowResult":
        return cls(success=True)

    @classmethod
    def failed(cls, message: str, field_name: Optional[str] = None) -> "RowResult":
        return cls(success=False, message=message, field_name=field_name)


class ProductWriter:
    """
    Stage 1 of the import.

    Args:
        store: Product storage
        notifications: Receives the last inserted and last updated product
        store_mappings: Optional store-scope mapping service (StoreIds column)
        fields: Product field table
        debug: Log identity resolution decisions at INFO level
    """

    stage_name = "ProcessProducts"

    def __init__(
        self,
        store: EntityStore,
        notifications: NotificationSink,
        store_mappings: Optional[StoreMappingService] = None,
        fields: Sequence[FieldSpec] = PRODUCT_FIELDS,
        debug: bool = False
    ):
        self._store = store
        self._notifications = notifications
        self._store_mappings = store_mappings
        self._fields = list(fields)
        self._debug = debug

    def resolve(self, row: ImportRow) -> Optional[Product]:
        """
        Find the existing product a row refers to.

        Returns:
            The stored product, or None if no key matched
        """
        raw_id = row.get_raw_value(ID_COLUMN)
        if not is_blank(raw_id):
            try:
                entity_id = to_int(raw_id, row.segmenter.culture)
            except ConversionError:
                entity_id = 0
            if entity_id > 0:
                product = self._store.find_by_id(entity_id)
                if product is not None:
                    if self._debug:
                        logger.info(f"Row {row.row_number}: Id {entity_id} → existing product")
                    return product

        for column, key in ALTERNATE_KEYS:
            value = row.get_data_value(column)
            if not value:
                continue
            product = self._store.find_by_alternate_key(key, value)
            if product is not None:
                if self._debug:
                    logger.info(f"Row {row.row_number}: {column} '{value}' → existing product {product.id}")
                return product

        return None

    def process(self, rows: List[ImportRow], result: ImportResult) -> int:
        """
        Resolve, apply and persist a batch of rows.

        Row problems are recorded in ``result`` and never raised. A failing
        commit is raised to the caller.

        Returns:
            Number of products written by the commit
        """
        last_inserted: Optional[Product] = None
        last_updated: Optional[Product] = None
        # Keys of new products staged in this batch; they cannot be found in storage yet
        staged_keys: Dict[Tuple[str, str], int] = {}

        with self._store.open_batch(auto_commit=False) as batch:
            for row in rows:
                try:
                    outcome = self._process_row(row, batch, result, staged_keys)
                except Exception as e:
                    logger.warning(f"Row {row.row_number} failed: {e}", exc_info=True)
                    outcome = RowResult.failed(f"{type(e).__name__}: {e}")

                if not outcome.success:
                    row.mark_failed()
                    result.add_error(outcome.message, row.get_row_info(), outcome.field_name)
                    continue

                if row.is_new:
                    last_inserted = row.entity
                else:
                    last_updated = row.entity

            num_written = batch.commit()

        if last_inserted is not None:
            self._notifications.entity_created(last_inserted)
        if last_updated is not None:
            self._notifications.entity_updated(last_updated)

        return num_written

    def _process_row(
        self,
        row: ImportRow,
        batch: WriteBatch,
        result: ImportResult,
        staged_keys: Dict[Tuple[str, str], int]
    ) -> RowResult:
        product = self.resolve(row)

        if product is None:
            if not row.segmenter.has_column(NAME_COLUMN):
                return RowResult.failed(NAME_REQUIRED_MESSAGE, NAME_COLUMN)

            for column, key in ALTERNATE_KEYS:
                value = row.get_data_value(column)
                if value and (key, value.lower()) in staged_keys:
                    first_row = staged_keys[(key, value.lower())]
                    return RowResult.failed(
                        f"{column} '{value}' was already imported by row {first_row} of this batch. Skipping row.",
                        column,
                    )
            product = Product()
            if self._debug:
                logger.info(f"Row {row.row_number}: no key matched → new product")

        name = row.get_data_value(NAME_COLUMN)
        row.initialize(product, name or product.name)

        if not row.is_new and name and (product.name or "").lower() != name.lower():
            row.name_changed = True

        apply_fields(row, product, self._fields, result)
        row.set_property(result, product, CREATED_ON_FIELD)
        product.updated_on_utc = datetime.now(timezone.utc)

        if row.is_new:
            batch.insert(product)
            for column, key in ALTERNATE_KEYS:
                value = getattr(product, key)
                if value:
                    staged_keys.setdefault((key, value.lower()), row.row_number)
        else:
            batch.update(product)

        # Queued once the row is staged; applied by the product batch commit
        self._apply_store_mappings(row, product, result)
        return RowResult.ok()

    def _apply_store_mappings(self, row: ImportRow, product: Product, result: ImportResult) -> None:
        if self._store_mappings is None or not row.segmenter.has_column(STORE_IDS_COLUMN):
            return
        try:
            store_ids = row.get_data_value(STORE_IDS_COLUMN, FieldKind.INT_LIST, default=[])
        except ConversionError as e:
            row.record_field_error(result, STORE_IDS_COLUMN, f"Conversion failed: {e}")
            return
        if store_ids:
            self._store_mappings.save_store_mappings(product, store_ids)
