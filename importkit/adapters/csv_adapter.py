import csv
import logging
from pathlib import Path
from typing import List

import chardet

from ..data_table import DataTable, DataTableError

logger = logging.getLogger(__name__)

FALLBACK_ENCODINGS = ["cp1252", "latin-1"]


class CsvAdapter:
    """CSV adapter reading CSV and TSV product files into a DataTable.

    Handles:
    - Multiple encodings (UTF-8, UTF-8-BOM, Windows-1252, ISO-8859-1, etc.)
    - Different delimiters (comma, semicolon, tab)
    - Ragged rows (padded or truncated to the header width)
    """

    def can_handle(self, file_path: str) -> bool:
        """Check if this adapter can handle the given file."""
        return Path(file_path).suffix.lower() in [".csv", ".tsv"]

    def _detect_encoding(self, file_path: str) -> str:
        """Detect file encoding using chardet, falling back to UTF-8."""
        with open(file_path, "rb") as f:
            raw_data = f.read(10000)

        if raw_data.startswith(b"\xef\xbb\xbf"):
            return "utf-8-sig"

        encoding = chardet.detect(raw_data).get("encoding") or "utf-8"
        if encoding.lower().replace("-", "") in ("utf8", "ascii"):
            return "utf-8"
        return encoding

    def _detect_delimiter(self, file_path: str, sample: str) -> str:
        """Pick the delimiter: tab for .tsv, else the sniffer, else the most frequent in the header."""
        if Path(file_path).suffix.lower() == ".tsv":
            return "\t"

        try:
            return csv.Sniffer().sniff(sample, delimiters=",;\t").delimiter
        except csv.Error:
            pass

        first_line = sample.splitlines()[0] if sample else ""
        counts = {d: first_line.count(d) for d in (",", ";", "\t")}
        return max(counts, key=counts.get) if any(counts.values()) else ","

    def _read_rows(self, file_path: str, encoding: str) -> List[List[str]]:
        with open(file_path, "r", encoding=encoding, newline="") as f:
            sample = f.read(4096)
            f.seek(0)
            delimiter = self._detect_delimiter(file_path, sample)
            return [row for row in csv.reader(f, delimiter=delimiter)]

    def read(self, file_path: str) -> DataTable:
        """Read a CSV/TSV file.

        Args:
            file_path: Path to the CSV/TSV file

        Returns:
            DataTable with the first row as header; columns without a header
            are dropped and an empty file yields an empty table

        Raises:
            FileNotFoundError: If file doesn't exist
            DataTableError: If the file cannot be decoded or parsed
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")
        if path.stat().st_size == 0:
            return DataTable([], [])

        encoding = self._detect_encoding(file_path)
        logger.debug(f"Reading {file_path} as {encoding}")

        try:
            rows = self._read_rows(file_path, encoding)
        except UnicodeDecodeError as e:
            for fallback_encoding in FALLBACK_ENCODINGS:
                try:
                    rows = self._read_rows(file_path, fallback_encoding)
                    logger.warning(f"{file_path}: {encoding} failed, read as {fallback_encoding}")
                    break
                except UnicodeDecodeError:
                    continue
            else:
                raise DataTableError(f"Could not decode file {file_path}: {e}") from e
        except csv.Error as e:
            raise DataTableError(f"Error parsing CSV file {file_path}: {e}") from e

        # Skip fully empty lines
        rows = [row for row in rows if any(cell.strip() for cell in row)]
        if not rows:
            return DataTable([], [])

        # Columns without a header are dropped with their values
        names = [h.strip() for h in rows[0]]
        positions = [i for i, name in enumerate(names) if name]
        dropped = [i + 1 for i, name in enumerate(names[:max(positions, default=-1) + 1]) if not name]
        if dropped:
            logger.warning(f"{file_path}: ignoring columns without header at positions {dropped}")

        data_rows = []
        for row in rows[1:]:
            values = [row[i] if i < len(row) else None for i in positions]
            if any(value and value.strip() for value in values):
                data_rows.append(values)
        return DataTable([names[i] for i in positions], data_rows)
