"""Batched product import into a catalog."""

from .context import AbortMode, ImportExecuteContext
from .contracts import (
    Catalog,
    LoggingProgressSink,
    NotificationSink,
    NullNotificationSink,
    ProgressSink,
)
from .memory_store import InMemoryCatalog, RecordingNotificationSink
from .product_importer import ProductImporter
from .product_writer import ProductWriter, RowResult

# NOTE: the PostgreSQL catalog is NOT re-exported here so psycopg2 is only
# imported when it is used:
#   from importkit.ingest.postgres_store import PostgresCatalog

__all__ = [
    "AbortMode",
    "ImportExecuteContext",
    "Catalog",
    "LoggingProgressSink",
    "NotificationSink",
    "NullNotificationSink",
    "ProgressSink",
    "InMemoryCatalog",
    "RecordingNotificationSink",
    "ProductImporter",
    "ProductWriter",
    "RowResult",
]
