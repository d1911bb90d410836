"""
Product picture stage.

Picture1..PictureN hold paths to image files. Each picture is stored
immediately (auto-commit) so a later column of the same row is compared
against it by the duplicate check.
"""

import logging
import os
from typing import List, Optional

from ..domain import ProductPicture
from ..pictures import guess_mime_type, read_picture
from ..result import ImportResult
from ..schema import DEFAULT_MAX_PICTURES, picture_columns
from ..segmenter import DataSegmenter, ImportRow
from ..seo import generate_slug
from .base import BatchProcessor
from .contracts import ImageService, NotificationSink, PictureStore, WriteBatch

logger = logging.getLogger(__name__)

EQUAL_PICTURE_MESSAGE = "Found equal picture in data store. Skipping field."


class PictureProcessor(BatchProcessor):
    """
    Args:
        store: ProductPicture mapping storage
        images: Duplicate detection and picture persistence
        notifications: Receives the last inserted mapping of each batch
        max_pictures: Number of PictureN columns to read
        image_directory: Base directory for relative picture paths
    """

    stage_name = "ProcessProductPictures"

    def __init__(
        self,
        store: PictureStore,
        images: ImageService,
        notifications: NotificationSink,
        max_pictures: int = DEFAULT_MAX_PICTURES,
        image_directory: Optional[str] = None
    ):
        self._store = store
        self._images = images
        self._notifications = notifications
        self._columns = picture_columns(max_pictures)
        self._image_directory = image_directory

    def is_applicable(self, segmenter: DataSegmenter, rows: List[ImportRow]) -> bool:
        return any(segmenter.has_column(column) for column in self._columns)

    def process(self, rows: List[ImportRow], result: ImportResult) -> int:
        last_inserted = None
        num_inserted = 0

        with self._store.open_batch(auto_commit=True) as batch:
            for row in rows:
                for column in self._columns:
                    try:
                        mapping = self._process_picture(row, column, batch, result)
                    except Exception as e:
                        logger.warning(f"{column} for row {row.row_number} failed: {e}")
                        result.add_warning(str(e), row.get_row_info(), column)
                        continue
                    if mapping is not None:
                        last_inserted = mapping
                        num_inserted += 1
            batch.commit()

        if last_inserted is not None:
            self._notifications.entity_created(last_inserted)

        return num_inserted

    def _resolve_path(self, path: str) -> str:
        if self._image_directory and not os.path.isabs(path):
            return os.path.join(self._image_directory, path)
        return path

    def _process_picture(
        self,
        row: ImportRow,
        column: str,
        batch: WriteBatch,
        result: ImportResult
    ) -> Optional[ProductPicture]:
        if not row.segmenter.has_column(column):
            return None
        path = row.get_data_value(column)
        if not path:
            return None

        path = self._resolve_path(path)
        if not os.path.isfile(path):
            logger.debug(f"Row {row.row_number}: {column} file not found: {path}")
            return None

        product = row.entity
        picture_bytes = read_picture(path)
        existing = self._store.get_pictures_for_product(product.id)
        picture_bytes, equal_picture_id = self._images.find_duplicate_among(picture_bytes, existing)
        if not picture_bytes:
            logger.debug(f"Row {row.row_number}: {column} equals picture {equal_picture_id}")
            result.add_info(EQUAL_PICTURE_MESSAGE, row.get_row_info(), column)
            return None

        picture_id = self._images.store(
            picture_bytes,
            guess_mime_type(path),
            generate_slug(row.entity_display_name or product.name),
        )
        mapping = ProductPicture(product_id=product.id, picture_id=picture_id, display_order=1)
        batch.insert(mapping)
        return mapping
