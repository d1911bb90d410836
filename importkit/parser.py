import logging
from pathlib import Path
from typing import Optional

from .adapters.csv_adapter import CsvAdapter
from .adapters.excel_adapter import ExcelAdapter
from .data_table import DataTable

logger = logging.getLogger(__name__)


class ImportFileParser:
    """Reads product import files into a DataTable through registered adapters."""

    def __init__(self, register_defaults: bool = True):
        """Initialize the parser.

        Args:
            register_defaults: Register the CSV/TSV and Excel adapters (default: True)
        """
        self.adapters = []
        if register_defaults:
            self.register_adapter(CsvAdapter())
            self.register_adapter(ExcelAdapter())

    def register_adapter(self, adapter):
        """Register a file adapter for parsing.

        Args:
            adapter: Adapter instance with can_handle() and read() methods
        """
        self.adapters.append(adapter)

    def find_adapter(self, file_path: str):
        for adapter in self.adapters:
            if adapter.can_handle(file_path):
                return adapter
        return None

    def parse(self, file_path: str, sheet_name: Optional[str] = None) -> DataTable:
        """Parse an import file.

        Args:
            file_path: Path to the import file
            sheet_name: Worksheet to read (Excel only, default: active sheet)

        Returns:
            DataTable holding the file's header and rows

        Raises:
            ValueError: If no adapter is found for the file
            DataTableError: If the file cannot be read as a table
        """
        adapter = self.find_adapter(file_path)
        if adapter is None:
            raise ValueError(f"No adapter found for {file_path}")

        if sheet_name is not None and isinstance(adapter, ExcelAdapter):
            table = adapter.read(file_path, sheet_name=sheet_name)
        else:
            table = adapter.read(file_path)

        logger.info(f"Parsed {Path(file_path).name}: {table.total_rows} rows, {len(table.columns)} columns")
        return table
