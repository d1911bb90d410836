import logging
from pathlib import Path

import openpyxl

from ..data_table import DataTable

logger = logging.getLogger(__name__)


class ExcelAdapter:
    def can_handle(self, file_path):
        return Path(file_path).suffix.lower() in [".xlsx", ".xlsm"]

    def read(self, file_path, sheet_name=None):
        """Read one worksheet; the first row is the header.

        Columns without a header (often formatted but empty cells) are
        dropped together with their values.
        """
        wb = openpyxl.load_workbook(file_path, read_only=True, data_only=True)
        try:
            ws = wb[sheet_name] if sheet_name else wb.active
            rows = ws.iter_rows(values_only=True)

            header = next(rows, None)
            if header is None:
                return DataTable([], [])

            names = [str(h).strip() if h is not None else "" for h in header]
            positions = [i for i, name in enumerate(names) if name]
            dropped = [i + 1 for i, name in enumerate(names[:max(positions, default=-1) + 1]) if not name]
            if dropped:
                logger.warning(f"{file_path}: ignoring columns without header at positions {dropped}")

            data_rows = []
            for row in rows:
                values = [row[i] if i < len(row) else None for i in positions]
                if any(value is not None and str(value).strip() for value in values):
                    data_rows.append(values)
            return DataTable([names[i] for i in positions], data_rows)
        finally:
            wb.close()
