"""SEO slug stage."""

import logging
from typing import List

from ..domain import UrlRecord
from ..result import ImportResult
from ..schema import PRODUCT_ENTITY_NAME, SENAME_COLUMN
from ..segmenter import DataSegmenter, ImportRow
from ..seo import SlugCache
from .base import BatchProcessor
from .contracts import SlugBatch, SlugService

logger = logging.getLogger(__name__)


class SlugProcessor(BatchProcessor):
    """
    Assigns a unique slug to new products, renamed products and every row
    when the data table has a SeName column.

    Slugs written earlier in the same batch are kept in a SlugCache which
    the slug service consults before storage, so rows of one batch never
    receive the same slug.
    """

    stage_name = "ProcessSlugs"

    def __init__(self, slug_service: SlugService, entity_name: str = PRODUCT_ENTITY_NAME, language_id: int = 0):
        self._slug_service = slug_service
        self._entity_name = entity_name
        self._language_id = language_id

    def is_applicable(self, segmenter: DataSegmenter, rows: List[ImportRow]) -> bool:
        if segmenter.has_column(SENAME_COLUMN):
            return True
        return any(row.is_new or row.name_changed for row in rows)

    def process(self, rows: List[ImportRow], result: ImportResult) -> int:
        if not rows:
            return 0

        has_sename = rows[0].segmenter.has_column(SENAME_COLUMN)
        cache = SlugCache()

        with self._slug_service.open_batch() as batch:
            for row in rows:
                if not (row.is_new or row.name_changed or has_sename):
                    continue
                try:
                    self._process_row(row, batch, cache)
                except Exception as e:
                    logger.warning(f"Slug for row {row.row_number} failed: {e}")
                    result.add_warning(str(e), row.get_row_info(), SENAME_COLUMN)

            return batch.commit()

    def _process_row(self, row: ImportRow, batch: SlugBatch, cache: SlugCache) -> None:
        entity = row.entity
        slug = self._slug_service.validate_slug(
            entity,
            row.get_data_value(SENAME_COLUMN),
            row.entity_display_name or entity.name,
            exclude_existing=not row.is_new,
            extra_lookup=cache.lookup,
        )

        if row.is_new:
            record = UrlRecord(
                entity_id=entity.id,
                entity_name=self._entity_name,
                slug=slug,
                language_id=self._language_id,
                is_active=True,
            )
            batch.insert(record)
        else:
            record = batch.upsert(entity, slug, self._language_id)

        if record is not None:
            cache.add(slug, record)
