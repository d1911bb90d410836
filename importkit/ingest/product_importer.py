"""
Batched product import.

For every batch of the data table:
1. the ProductWriter resolves, applies and commits the products
2. the batch is narrowed to rows whose product was persisted
3. each applicable dependent stage (slugs, localizations, categories,
   manufacturers, pictures) runs over the narrowed batch

Every stage runs inside its own error boundary. A stage failure is
recorded as a segment error and the run carries on; only an unreadable
data table ends the run early.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from ..config import ImportSettings, get_import_settings
from ..result import ImportResult
from ..segmenter import DataSegmenter, ImportRow
from .associations import CategoryMappingProcessor, ManufacturerMappingProcessor
from .base import BatchProcessor
from .context import ImportExecuteContext
from .contracts import Catalog, NotificationSink, NullNotificationSink
from .localization import LocalizationProcessor
from .picture_processor import PictureProcessor
from .product_writer import ProductWriter
from .slugs import SlugProcessor

logger = logging.getLogger(__name__)


class ProductImporter:
    """
    Runs the import pipeline over a data table.

    Args:
        writer: Primary product writer
        processors: Dependent stages, in execution order
        parallel_processors: Run the dependent stages of a batch in a thread
            pool. Each stage stays sequential internally.
        max_workers: Thread pool size (defaults to one thread per stage)
        debug: Log per-batch decisions at INFO level
    """

    def __init__(
        self,
        writer: ProductWriter,
        processors: Sequence[BatchProcessor] = (),
        parallel_processors: bool = False,
        max_workers: Optional[int] = None,
        debug: bool = False
    ):
        self._writer = writer
        self._processors = list(processors)
        self._parallel_processors = parallel_processors
        self._max_workers = max_workers
        self._debug = debug

    @property
    def processors(self) -> List[BatchProcessor]:
        return list(self._processors)

    @classmethod
    def from_catalog(
        cls,
        catalog: Catalog,
        notifications: Optional[NotificationSink] = None,
        settings: Optional[ImportSettings] = None,
        image_directory: Optional[str] = None,
        debug: bool = False
    ) -> "ProductImporter":
        """
        Build an importer with the default stages wired to ``catalog``.

        Args:
            catalog: Storage backend providing every collaborator
            notifications: Created/updated notices (default: discarded)
            settings: Import settings (default: read from the environment)
            image_directory: Base directory for relative picture paths
            debug: Log identity resolution decisions
        """
        settings = settings or get_import_settings()
        notifications = notifications or NullNotificationSink()

        writer = ProductWriter(
            catalog.products,
            notifications,
            store_mappings=catalog.store_mappings,
            debug=debug,
        )
        processors = [
            SlugProcessor(catalog.slugs),
            LocalizationProcessor(catalog.localizations, catalog.languages),
            CategoryMappingProcessor(catalog.category_mappings, catalog.lookup, notifications),
            ManufacturerMappingProcessor(catalog.manufacturer_mappings, catalog.lookup, notifications),
            PictureProcessor(
                catalog.pictures,
                catalog.images,
                notifications,
                max_pictures=settings.max_pictures,
                image_directory=image_directory,
            ),
        ]
        return cls(
            writer,
            processors,
            parallel_processors=settings.parallel_processors,
            debug=debug,
        )

    def execute(self, context: ImportExecuteContext) -> ImportResult:
        """
        Import every row of ``context.data_table``.

        An abort request is honoured before the next batch starts; the
        running batch always completes.

        Returns:
            The run's ImportResult (also available as ``context.result``)
        """
        result = context.result
        segmenter = DataSegmenter(context.data_table, context.batch_size, context.culture)

        result.total_records = segmenter.total_rows
        result.start()
        logger.info(
            f"Starting product import: {segmenter.total_rows} rows in "
            f"{segmenter.total_segments} batches of {segmenter.batch_size}"
        )

        try:
            while not context.is_aborted and segmenter.read_next_batch():
                context.set_progress(segmenter.current_segment_first_row_index - 1, segmenter.total_rows)
                self._import_batch(segmenter, result)

            if context.is_aborted:
                logger.warning(f"Product import aborted after segment {segmenter.current_segment}")
            else:
                context.set_progress(segmenter.total_rows, segmenter.total_rows)
        finally:
            result.finish()

        logger.info(
            f"Product import finished: {result.affected_records} saved ({result.new_records} new, "
            f"{result.modified_records} modified), "
            f"{result.failed_records} failed, {len(result.errors)} errors, {len(result.warnings)} warnings"
        )
        return result

    def _import_batch(self, segmenter: DataSegmenter, result: ImportResult) -> None:
        batch = segmenter.current_batch
        segment = segmenter.current_segment

        try:
            num_written = self._writer.process(batch, result)
            if self._debug:
                logger.info(f"Segment {segment}: {num_written} products written")
        except Exception as e:
            logger.error(f"Segment {segment}: {self._writer.stage_name} failed: {e}", exc_info=True)
            result.add_segment_error(e, segment, self._writer.stage_name)
            for row in batch:
                row.mark_failed()

        saved = [row for row in batch if row.entity is not None and not row.is_transient]
        num_new = sum(1 for row in saved if row.is_new)
        result.add_counts(
            new=num_new,
            modified=len(saved) - num_new,
            failed=len(batch) - len(saved),
        )

        if not saved:
            return

        stages = self._processors
        if self._parallel_processors and len(stages) > 1:
            with ThreadPoolExecutor(max_workers=self._max_workers or len(stages)) as pool:
                futures = [
                    pool.submit(self._run_stage, stage, segmenter, saved, result)
                    for stage in stages
                ]
                for future in futures:
                    future.result()
        else:
            for stage in stages:
                self._run_stage(stage, segmenter, saved, result)

    def _run_stage(
        self,
        stage: BatchProcessor,
        segmenter: DataSegmenter,
        rows: List[ImportRow],
        result: ImportResult
    ) -> None:
        segment = segmenter.current_segment
        try:
            if not stage.is_applicable(segmenter, rows):
                logger.debug(f"Segment {segment}: {stage.stage_name} skipped, no matching columns")
                return
            num_written = stage.process(rows, result)
            if self._debug:
                logger.info(f"Segment {segment}: {stage.stage_name} wrote {num_written} records")
        except Exception as e:
            logger.error(f"Segment {segment}: {stage.stage_name} failed: {e}", exc_info=True)
            result.add_segment_error(e, segment, stage.stage_name)
