"""
Immutable, already-parsed tabular input for an import run.

Column lookups are case-insensitive and O(1) so that the pipeline can ask
"does the dataset carry column X?" before reading a single row and skip
whole processing stages when the answer is no.

Localizable text columns use a language suffix on the same column name,
e.g. ``Name[de]`` carries the German name next to the plain ``Name`` column.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence


class DataTableError(ValueError):
    """Raised when tabular input cannot be turned into a data table."""


def localized_column_name(column: str, language_code: Optional[str] = None) -> str:
    """Build the column name for a language-qualified value (``Name[de]``)."""
    if not language_code:
        return column
    return f"{column}[{language_code}]"


def _column_key(column: str) -> str:
    return column.strip().lower()


class DataTable:
    """Ordered rows of raw values addressed by column name."""

    def __init__(self, columns: Sequence[str], rows: Iterable[Sequence[Any]]):
        """
        Args:
            columns: Header names in file order
            rows: Raw value sequences, one per data row, aligned with columns

        Raises:
            DataTableError: On empty or duplicate (case-insensitive) headers
        """
        self._columns: List[str] = []
        self._index: Dict[str, int] = {}

        for position, column in enumerate(columns):
            if column is None or not str(column).strip():
                raise DataTableError(f"Column {position + 1} has an empty header.")
            name = str(column).strip()
            key = _column_key(name)
            if key in self._index:
                raise DataTableError(f"Duplicate column header: '{name}'.")
            self._index[key] = position
            self._columns.append(name)

        width = len(self._columns)
        self._rows: List[tuple] = []
        for row in rows:
            values = tuple(row)
            if len(values) < width:
                values = values + (None,) * (width - len(values))
            elif len(values) > width:
                values = values[:width]
            self._rows.append(values)

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        columns: Optional[Sequence[str]] = None
    ) -> "DataTable":
        """
        Build a table from dictionaries (as produced by ``csv.DictReader``).

        When ``columns`` is omitted the header is the union of the record keys
        in first-seen order.
        """
        records = list(records)
        if columns is None:
            seen: Dict[str, None] = {}
            for record in records:
                for key in record.keys():
                    if key is not None:
                        seen.setdefault(key, None)
            columns = list(seen)
        return cls(columns, ([record.get(c) for c in columns] for record in records))

    @property
    def columns(self) -> List[str]:
        return list(self._columns)

    @property
    def total_rows(self) -> int:
        return len(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def has_column(self, column: str, language_code: Optional[str] = None) -> bool:
        return _column_key(localized_column_name(column, language_code)) in self._index

    def column_position(self, column: str, language_code: Optional[str] = None) -> Optional[int]:
        return self._index.get(_column_key(localized_column_name(column, language_code)))

    def get_value(self, row_index: int, column: str, language_code: Optional[str] = None) -> Any:
        """Raw value of a cell, or None when the column is not in the table."""
        position = self.column_position(column, language_code)
        if position is None:
            return None
        return self._rows[row_index][position]

    def row_values(self, row_index: int) -> Dict[str, Any]:
        """Raw values of one row keyed by the original header names."""
        return dict(zip(self._columns, self._rows[row_index]))
