"""Per-run execution context handed to the product importer."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..config import ImportSettings
from ..converters import Culture, get_culture
from ..data_table import DataTable
from ..result import ImportResult
from ..segmenter import DEFAULT_BATCH_SIZE
from .contracts import LoggingProgressSink, ProgressSink


class AbortMode(Enum):
    """Abort request state. Checked by the importer before each new batch."""
    NONE = "none"
    SOFT = "soft"
    HARD = "hard"


@dataclass
class ImportExecuteContext:
    data_table: DataTable
    result: ImportResult = field(default_factory=ImportResult)
    progress: ProgressSink = field(default_factory=LoggingProgressSink)
    culture: Culture = field(default_factory=lambda: get_culture(None))
    batch_size: int = DEFAULT_BATCH_SIZE
    abort: AbortMode = AbortMode.NONE

    @classmethod
    def from_settings(
        cls,
        data_table: DataTable,
        settings: ImportSettings,
        progress: Optional[ProgressSink] = None
    ) -> "ImportExecuteContext":
        return cls(
            data_table=data_table,
            progress=progress or LoggingProgressSink(),
            culture=get_culture(settings.culture),
            batch_size=settings.batch_size,
        )

    @property
    def is_aborted(self) -> bool:
        return self.abort is not AbortMode.NONE

    def request_abort(self, mode: AbortMode = AbortMode.SOFT) -> None:
        """Stop the run before the next batch; the running batch completes."""
        self.abort = mode

    def set_progress(self, processed: int, total: int) -> None:
        self.progress.report_progress(processed, total)
