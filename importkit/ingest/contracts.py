"""
Collaborator interfaces consumed by the product import.

Implement these with your actual storage (see ``postgres_store`` and
``memory_store``). The import never touches storage any other way.

Every write goes through a WriteBatch opened by the stage that needs it:
- ``auto_commit=False``: writes are staged and applied by ``commit()``
- ``auto_commit=True``: each write is applied immediately, so inserted
  records receive their id before the next statement runs
"""

import logging
from typing import Any, List, Optional, Sequence, Tuple

from ..domain import Language, Picture, Product, UrlRecord
from ..seo import SlugLookup

logger = logging.getLogger(__name__)


class WriteBatch:
    """
    A stage-scoped unit of work.

    Use as a context manager: leaving the block with an exception rolls the
    batch back, leaving it normally does NOT commit. Commit explicitly.
    """

    def __init__(self, auto_commit: bool = False):
        self.auto_commit = auto_commit

    def insert(self, record: Any) -> None:
        """Stage (or, in auto-commit mode, perform) an insert."""
        raise NotImplementedError

    def update(self, record: Any) -> None:
        """Stage (or, in auto-commit mode, perform) an update."""
        raise NotImplementedError

    def commit(self) -> int:
        """
        Apply all staged writes atomically.

        Returns:
            Number of records written by this batch
        """
        raise NotImplementedError

    def rollback(self) -> None:
        """Discard all staged writes."""
        raise NotImplementedError

    def __enter__(self) -> "WriteBatch":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            try:
                self.rollback()
            except Exception:
                logger.error("Rollback failed", exc_info=True)
        return False


class EntityStore:
    """Product storage."""

    def find_by_id(self, entity_id: int) -> Optional[Product]:
        raise NotImplementedError

    def find_by_alternate_key(self, key: str, value: str) -> Optional[Product]:
        """
        Find a product by a unique business key.

        Args:
            key: "sku" or "gtin"
            value: Key value (exact match)
        """
        raise NotImplementedError

    def open_batch(self, auto_commit: bool = False) -> WriteBatch:
        """Open a write batch for products. Inserts assign ``Product.id``."""
        raise NotImplementedError


class LocalizationBatch(WriteBatch):
    def upsert(self, entity: Any, field_name: str, language_id: int, value: str) -> bool:
        """
        Insert or update the localized value of (entity, field, language).

        Returns:
            False if the stored value is already equal (nothing written)
        """
        raise NotImplementedError


class LocalizationStore:
    def open_batch(self) -> LocalizationBatch:
        raise NotImplementedError


class LanguageService:
    def get_all_languages(self, show_hidden: bool = False) -> List[Language]:
        raise NotImplementedError


class SlugBatch(WriteBatch):
    def upsert(self, entity: Any, slug: str, language_id: int = 0) -> Optional[UrlRecord]:
        """
        Make ``slug`` the active slug of ``entity`` for the language.

        Returns:
            The record written, or None if the active slug was already equal
        """
        raise NotImplementedError


class SlugService:
    def validate_slug(
        self,
        entity: Any,
        candidate: Optional[str],
        fallback: Optional[str],
        exclude_existing: bool,
        extra_lookup: Optional[SlugLookup] = None
    ) -> str:
        """
        Build a unique slug for ``entity``.

        ``extra_lookup`` is consulted before durable storage; it sees slugs
        written earlier in the same uncommitted batch.
        """
        raise NotImplementedError

    def open_batch(self) -> SlugBatch:
        raise NotImplementedError


class MappingStore:
    """Product-to-foreign-entity mappings (categories or manufacturers)."""

    def find_mapping(self, product_id: int, foreign_id: int) -> Optional[Any]:
        raise NotImplementedError

    def open_batch(self) -> WriteBatch:
        raise NotImplementedError


class CatalogLookup:
    def category_exists(self, category_id: int) -> bool:
        raise NotImplementedError

    def manufacturer_exists(self, manufacturer_id: int) -> bool:
        raise NotImplementedError


class PictureStore:
    def get_pictures_for_product(self, product_id: int) -> List[Picture]:
        raise NotImplementedError

    def open_batch(self, auto_commit: bool = True) -> WriteBatch:
        """Open a write batch for ProductPicture mappings."""
        raise NotImplementedError


class ImageService:
    def find_duplicate_among(
        self,
        candidate_bytes: bytes,
        existing: Sequence[Picture]
    ) -> Tuple[Optional[bytes], int]:
        """
        Returns:
            ``(None, duplicate_id)`` when an identical picture exists,
            else ``(bytes_to_store, 0)``
        """
        raise NotImplementedError

    def store(self, picture_bytes: bytes, mime_type: str, name_hint: Optional[str]) -> int:
        """Persist a picture immediately and return its id."""
        raise NotImplementedError


class StoreMappingService:
    def save_store_mappings(self, entity: Any, store_ids: Sequence[int]) -> None:
        """
        Limit ``entity`` to the given stores.

        Takes effect with the next successful product batch commit and is
        discarded when that batch fails or rolls back.
        """
        raise NotImplementedError


class NotificationSink:
    """Receives at most one created and one updated notice per batch and stage."""

    def entity_created(self, entity: Any) -> None:
        raise NotImplementedError

    def entity_updated(self, entity: Any) -> None:
        raise NotImplementedError


class ProgressSink:
    """
    Receives ``(first_row_index - 1, total)`` once per batch before the batch
    is processed, then a final ``(total, total)`` when the run ends without
    an abort. An aborted run gets no final report.
    """

    def report_progress(self, processed: int, total: int) -> None:
        raise NotImplementedError


class NullNotificationSink(NotificationSink):
    def entity_created(self, entity: Any) -> None:
        pass

    def entity_updated(self, entity: Any) -> None:
        pass


class LoggingProgressSink(ProgressSink):
    def report_progress(self, processed: int, total: int) -> None:
        logger.info(f"Import progress: {processed}/{total} rows")


class Catalog:
    """
    All collaborators of one storage backend.

    ``ProductImporter.from_catalog`` wires the default stages from these
    attributes.
    """

    products: EntityStore
    localizations: LocalizationStore
    languages: LanguageService
    slugs: SlugService
    category_mappings: MappingStore
    manufacturer_mappings: MappingStore
    lookup: CatalogLookup
    pictures: PictureStore
    images: ImageService
    store_mappings: StoreMappingService
