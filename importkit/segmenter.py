"""
Batch segmentation of a data table and the per-row working set.

The segmenter hands out fixed-size batches of ImportRow objects in table
order. Rows are only wrapped when their batch is read, so memory use is
bounded by the batch size and not by the size of the table.
"""

import logging
import math
from typing import Any, Dict, Iterator, List, Optional

from .converters import (
    ConversionError,
    Culture,
    FieldKind,
    convert,
    empty_value,
    get_culture,
    is_blank,
)
from .data_table import DataTable
from .fields import FieldSpec
from .result import ImportResult, RowInfo

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


class ImportRow:
    """
    One data row plus the state the pipeline derives for it.

    A row is transient while its entity has no storage identity. Transient
    rows (and rows whose batch commit failed) are excluded from every stage
    after the primary write.
    """

    def __init__(self, segmenter: "DataSegmenter", row_index: int):
        self._segmenter = segmenter
        self._row_index = row_index
        self._failed = False
        self.entity: Any = None
        self.entity_display_name: Optional[str] = None
        self.is_new = False
        self.name_changed = False
        self.field_errors: Dict[str, str] = {}

    def __repr__(self) -> str:
        return f"ImportRow(row_number={self.row_number}, is_new={self.is_new}, entity={self.entity!r})"

    @property
    def segmenter(self) -> "DataSegmenter":
        return self._segmenter

    @property
    def row_index(self) -> int:
        """0-based position in the data table."""
        return self._row_index

    @property
    def row_number(self) -> int:
        """1-based data row number used in result messages."""
        return self._row_index + 1

    @property
    def is_transient(self) -> bool:
        if self._failed or self.entity is None:
            return True
        return getattr(self.entity, "id", None) is None

    def initialize(self, entity: Any, display_name: Optional[str]) -> None:
        self.entity = entity
        self.entity_display_name = display_name
        self.is_new = getattr(entity, "id", None) is None

    def mark_failed(self) -> None:
        """Exclude the row from later stages (its primary write was lost)."""
        self._failed = True

    def get_row_info(self) -> RowInfo:
        return RowInfo(
            row_number=self.row_number,
            entity_id=getattr(self.entity, "id", None),
            entity_name=self.entity_display_name,
        )

    # -- raw data access ---------------------------------------------------

    def get_raw_value(self, column: str, language_code: Optional[str] = None) -> Any:
        return self._segmenter.table.get_value(self._row_index, column, language_code)

    def get_data_value(
        self,
        column: str,
        kind: FieldKind = FieldKind.STRING,
        language_code: Optional[str] = None,
        default: Any = None
    ) -> Any:
        """
        Typed value of a cell.

        Returns ``default`` for missing columns and blank cells.

        Raises:
            ConversionError: If the cell holds a value that cannot be converted
        """
        raw = self.get_raw_value(column, language_code)
        if is_blank(raw):
            return default
        return convert(raw, kind, self._segmenter.culture)

    # -- field setter ------------------------------------------------------

    def record_field_error(self, result: ImportResult, field_name: str, message: str) -> None:
        self.field_errors[field_name] = message
        result.add_warning(message, self.get_row_info(), field_name)
        logger.debug(f"Row {self.row_number}, field {field_name}: {message}")

    def set_property(self, result: ImportResult, target: Any, spec: FieldSpec) -> bool:
        """
        Set one entity property from its column.

        - column missing from the table: new entities receive the default (if
          any), existing entities are left untouched
        - blank cell: transform, else default, else the kind's empty value
        - otherwise the culture-aware conversion (or the transform)

        A failed conversion is recorded as a field error; the property keeps
        its current value and the row carries on. A value equal to the
        current one is not written again.

        Returns:
            True if the property was changed
        """
        if not self._segmenter.has_column(spec.column):
            if not (self.is_new and spec.has_default):
                return False
            return self._set_if_changed(target, spec, spec.default_value())

        raw = self.get_raw_value(spec.column)
        culture = self._segmenter.culture
        try:
            if spec.transform is not None:
                value = spec.transform(raw, culture)
            elif is_blank(raw):
                value = spec.default_value() if spec.has_default else empty_value(spec.kind)
            else:
                value = convert(raw, spec.kind, culture)
        except ConversionError as e:
            self.record_field_error(result, spec.column, f"Conversion failed: {e}")
            return False

        return self._set_if_changed(target, spec, value)

    @staticmethod
    def _set_if_changed(target: Any, spec: FieldSpec, value: Any) -> bool:
        if spec.getter(target) == value:
            return False
        spec.setter(target, value)
        return True


class DataSegmenter:
    """
    Splits a data table into ordered batches of ImportRow.

    Usage:
        segmenter = DataSegmenter(table, batch_size=100)
        while segmenter.read_next_batch():
            for row in segmenter.current_batch:
                ...
    """

    def __init__(
        self,
        table: DataTable,
        batch_size: int = DEFAULT_BATCH_SIZE,
        culture: Optional[Culture] = None
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self._table = table
        self._batch_size = batch_size
        self.culture: Culture = culture or get_culture(None)
        self._segment_index = -1
        self._current_batch: List[ImportRow] = []

    @property
    def table(self) -> DataTable:
        return self._table

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def total_rows(self) -> int:
        return self._table.total_rows

    @property
    def total_segments(self) -> int:
        return math.ceil(self.total_rows / self._batch_size)

    @property
    def columns(self) -> List[str]:
        return self._table.columns

    def has_column(self, column: str, language_code: Optional[str] = None) -> bool:
        return self._table.has_column(column, language_code)

    @property
    def current_segment(self) -> int:
        """1-based number of the current batch (0 before the first read)."""
        return self._segment_index + 1

    @property
    def current_segment_first_row_index(self) -> int:
        """1-based table index of the first row of the current batch."""
        if self._segment_index < 0:
            return 0
        return self._segment_index * self._batch_size + 1

    @property
    def current_batch(self) -> List[ImportRow]:
        return self._current_batch

    def read_next_batch(self) -> bool:
        """Advance to the next batch. Returns False once the table is exhausted."""
        next_index = self._segment_index + 1
        start = next_index * self._batch_size
        if start >= self.total_rows:
            self._current_batch = []
            return False

        end = min(start + self._batch_size, self.total_rows)
        self._segment_index = next_index
        self._current_batch = [ImportRow(self, i) for i in range(start, end)]
        return True

    def seek(self, segment_index: int) -> None:
        """Position the segmenter so the next read returns batch ``segment_index`` (0-based)."""
        if segment_index < 0 or segment_index > self.total_segments:
            raise IndexError(f"Segment {segment_index} out of range (0..{self.total_segments})")
        self._segment_index = segment_index - 1
        self._current_batch = []

    def reset(self) -> None:
        self.seek(0)

    def __iter__(self) -> Iterator[List[ImportRow]]:
        while self.read_next_batch():
            yield self._current_batch
