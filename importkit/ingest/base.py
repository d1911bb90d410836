"""Base class for the stages that run after products were written."""

from typing import List

from ..result import ImportResult
from ..segmenter import DataSegmenter, ImportRow


class BatchProcessor:
    """
    A dependent-mapping stage.

    It only ever receives rows whose product was persisted, opens its own
    write batch and isolates failures per row.
    """

    # Name recorded with segment-level errors
    stage_name = ""

    def is_applicable(self, segmenter: DataSegmenter, rows: List[ImportRow]) -> bool:
        """Cheap check whether the data table carries anything for this stage."""
        raise NotImplementedError

    def process(self, rows: List[ImportRow], result: ImportResult) -> int:
        """
        Process a batch of saved rows.

        Returns:
            Number of records written
        """
        raise NotImplementedError
