from .parser import ImportFileParser
from .data_table import DataTable, DataTableError
from .converters import ConversionError, FieldKind, get_culture
from .config import ConfigError, ImportSettings, get_import_settings
from .result import ImportResult, ImportMessage, Severity
from .segmenter import DataSegmenter, ImportRow

__all__ = [
    "ImportFileParser",
    "DataTable",
    "DataTableError",
    "ConversionError",
    "FieldKind",
    "get_culture",
    "ConfigError",
    "ImportSettings",
    "get_import_settings",
    "ImportResult",
    "ImportMessage",
    "Severity",
    "DataSegmenter",
    "ImportRow",
]
