"""
In-memory catalog implementing every import collaborator.

Records are kept in dicts per table and copied on the way in and out, so
changes to a loaded entity only become visible after a batch commit. All
tables share one lock; dependent stages may run in parallel threads.
"""

import copy
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .. import seo
from ..domain import (
    Language,
    LocalizedProperty,
    Picture,
    Product,
    ProductCategory,
    ProductManufacturer,
    ProductPicture,
    UrlRecord,
)
from ..pictures import DEFAULT_MIME_TYPE, find_equal_picture
from .contracts import (
    Catalog,
    CatalogLookup,
    EntityStore,
    ImageService,
    LanguageService,
    LocalizationBatch,
    LocalizationStore,
    MappingStore,
    NotificationSink,
    PictureStore,
    SlugBatch,
    SlugLookup,
    SlugService,
    StoreMappingService,
    WriteBatch,
)

logger = logging.getLogger(__name__)

INSERT = "insert"
UPDATE = "update"


class MemoryTable:
    """
    One table of records keyed by their ``id`` attribute.

    ``fail_next_commit`` can be set to an exception instance; the next
    non-empty commit raises it and applies nothing.
    """

    def __init__(self, name: str, lock: threading.RLock):
        self.name = name
        self._lock = lock
        self._records: Dict[int, Any] = {}
        self._next_id = 1
        self.fail_next_commit: Optional[Exception] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def all(self) -> List[Any]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._records.values()]

    def get(self, record_id: int) -> Optional[Any]:
        with self._lock:
            record = self._records.get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def filter(self, predicate: Callable[[Any], bool]) -> List[Any]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._records.values() if predicate(r)]

    def find(self, predicate: Callable[[Any], bool]) -> Optional[Any]:
        with self._lock:
            for record in self._records.values():
                if predicate(record):
                    return copy.deepcopy(record)
        return None

    def apply(self, operations: Sequence[Tuple[str, Any]]) -> int:
        """Apply staged operations all-or-nothing. Inserts get their id assigned."""
        if not operations:
            return 0

        with self._lock:
            if self.fail_next_commit is not None:
                error, self.fail_next_commit = self.fail_next_commit, None
                raise error

            for op, record in operations:
                if op == UPDATE and record.id not in self._records:
                    raise KeyError(f"{self.name} {record.id} does not exist")

            for op, record in operations:
                if op == INSERT:
                    record.id = self._next_id
                    self._next_id += 1
                self._records[record.id] = copy.deepcopy(record)

        logger.debug(f"{self.name}: applied {len(operations)} writes")
        return len(operations)

    def open_batch(self, auto_commit: bool = False) -> "MemoryWriteBatch":
        return MemoryWriteBatch(self, auto_commit)


class MemoryWriteBatch(WriteBatch):
    def __init__(self, table: MemoryTable, auto_commit: bool = False):
        super().__init__(auto_commit)
        self._table = table
        self._staged: List[Tuple[str, Any]] = []

    def insert(self, record: Any) -> None:
        self._write(INSERT, record)

    def update(self, record: Any) -> None:
        self._write(UPDATE, record)

    def _write(self, op: str, record: Any) -> None:
        if self.auto_commit:
            self._table.apply([(op, record)])
        else:
            self._staged.append((op, record))

    def commit(self) -> int:
        staged, self._staged = self._staged, []
        return self._table.apply(staged)

    def rollback(self) -> None:
        self._staged = []


class MemoryProductBatch(MemoryWriteBatch):
    """Product batch that applies queued store mappings once its commit succeeded."""

    def __init__(self, table: MemoryTable, store_mappings: "MemoryStoreMappingService", auto_commit: bool = False):
        super().__init__(table, auto_commit)
        self._store_mappings = store_mappings

    def commit(self) -> int:
        try:
            num_written = super().commit()
        except Exception:
            self._store_mappings.take_pending()
            raise
        self._store_mappings.flush()
        return num_written

    def rollback(self) -> None:
        super().rollback()
        self._store_mappings.take_pending()


class MemoryProductStore(EntityStore):
    ALTERNATE_KEYS = ("sku", "gtin")

    def __init__(self, table: MemoryTable, store_mappings: "MemoryStoreMappingService"):
        self._table = table
        self._store_mappings = store_mappings

    def find_by_id(self, entity_id: int) -> Optional[Product]:
        return self._table.get(entity_id)

    def find_by_alternate_key(self, key: str, value: str) -> Optional[Product]:
        if key not in self.ALTERNATE_KEYS:
            raise ValueError(f"Unknown product key: {key}")
        needle = value.strip().lower()
        return self._table.find(lambda p: (getattr(p, key) or "").strip().lower() == needle)

    def open_batch(self, auto_commit: bool = False) -> WriteBatch:
        return MemoryProductBatch(self._table, self._store_mappings, auto_commit)


class MemoryLocalizationBatch(MemoryWriteBatch, LocalizationBatch):
    def __init__(self, table: MemoryTable):
        super().__init__(table)
        self._pending: Dict[Tuple[int, str, str, int], LocalizedProperty] = {}

    def upsert(self, entity: Any, field_name: str, language_id: int, value: str) -> bool:
        key = (entity.id, type(entity).__name__, field_name, language_id)
        current = self._pending.get(key)
        if current is None:
            current = self._table.find(
                lambda p: (p.entity_id, p.locale_key_group, p.locale_key, p.language_id) == key
            )

        if current is not None and current.locale_value == value:
            return False

        if current is None:
            current = LocalizedProperty(
                entity_id=entity.id,
                locale_key_group=key[1],
                locale_key=field_name,
                language_id=language_id,
                locale_value=value,
            )
        else:
            current.locale_value = value

        self._pending[key] = current
        return True

    def commit(self) -> int:
        for record in self._pending.values():
            self._staged.append((INSERT if record.id is None else UPDATE, record))
        self._pending = {}
        return super().commit()

    def rollback(self) -> None:
        self._pending = {}
        super().rollback()


class MemoryLocalizationStore(LocalizationStore):
    def __init__(self, table: MemoryTable):
        self._table = table

    def get_localized_value(self, entity: Any, field_name: str, language_id: int) -> Optional[str]:
        record = self._table.find(
            lambda p: p.entity_id == entity.id
            and p.locale_key_group == type(entity).__name__
            and p.locale_key == field_name
            and p.language_id == language_id
        )
        return record.locale_value if record is not None else None

    def open_batch(self) -> LocalizationBatch:
        return MemoryLocalizationBatch(self._table)


class MemoryLanguageService(LanguageService):
    def __init__(self, languages: Sequence[Language] = ()):
        self._languages = list(languages)

    def add(self, language: Language) -> None:
        self._languages.append(language)

    def get_all_languages(self, show_hidden: bool = False) -> List[Language]:
        languages = sorted(self._languages, key=lambda lang: (lang.display_order, lang.id))
        if show_hidden:
            return languages
        return [lang for lang in languages if lang.published]


class MemorySlugBatch(MemoryWriteBatch, SlugBatch):
    def upsert(self, entity: Any, slug: str, language_id: int = 0) -> Optional[UrlRecord]:
        entity_name = type(entity).__name__
        records = self._table.filter(
            lambda r: r.entity_id == entity.id
            and r.entity_name == entity_name
            and r.language_id == language_id
        )
        active = next((r for r in records if r.is_active), None)
        if active is not None and active.slug == slug:
            return None

        if active is not None:
            active.is_active = False
            self.update(active)

        # Reactivate a slug this entity held before
        previous = next((r for r in records if r.slug == slug), None)
        if previous is not None:
            previous.is_active = True
            self.update(previous)
            return previous

        record = UrlRecord(
            entity_id=entity.id,
            entity_name=entity_name,
            slug=slug,
            language_id=language_id,
            is_active=True,
        )
        self.insert(record)
        return record


class MemorySlugService(SlugService):
    def __init__(self, table: MemoryTable):
        self._table = table

    def find_by_slug(self, slug: str) -> Optional[UrlRecord]:
        return self._table.find(lambda r: r.slug == slug)

    def get_active_slug(self, entity: Any, language_id: int = 0) -> Optional[str]:
        record = self._table.find(
            lambda r: r.entity_id == entity.id
            and r.entity_name == type(entity).__name__
            and r.language_id == language_id
            and r.is_active
        )
        return record.slug if record is not None else None

    def validate_slug(
        self,
        entity: Any,
        candidate: Optional[str],
        fallback: Optional[str],
        exclude_existing: bool,
        extra_lookup: Optional[SlugLookup] = None
    ) -> str:
        return seo.validate_slug(
            entity,
            type(entity).__name__,
            candidate,
            fallback,
            exclude_existing,
            slug_lookup=self.find_by_slug,
            extra_lookup=extra_lookup,
        )

    def open_batch(self) -> SlugBatch:
        return MemorySlugBatch(self._table)


class MemoryMappingStore(MappingStore):
    def __init__(self, table: MemoryTable, foreign_key: str):
        self._table = table
        self._foreign_key = foreign_key

    def find_mapping(self, product_id: int, foreign_id: int) -> Optional[Any]:
        return self._table.find(
            lambda m: m.product_id == product_id and getattr(m, self._foreign_key) == foreign_id
        )

    def get_mappings(self, product_id: int) -> List[Any]:
        return self._table.filter(lambda m: m.product_id == product_id)

    def open_batch(self) -> WriteBatch:
        return self._table.open_batch()


class MemoryCatalogLookup(CatalogLookup):
    def __init__(self):
        self.category_ids = set()
        self.manufacturer_ids = set()

    def category_exists(self, category_id: int) -> bool:
        return category_id in self.category_ids

    def manufacturer_exists(self, manufacturer_id: int) -> bool:
        return manufacturer_id in self.manufacturer_ids


class MemoryPictureStore(PictureStore):
    def __init__(self, product_pictures: MemoryTable, pictures: MemoryTable):
        self._product_pictures = product_pictures
        self._pictures = pictures

    def get_pictures_for_product(self, product_id: int) -> List[Picture]:
        mappings = self._product_pictures.filter(lambda m: m.product_id == product_id)
        pictures = [self._pictures.get(m.picture_id) for m in mappings]
        return [p for p in pictures if p is not None]

    def open_batch(self, auto_commit: bool = True) -> WriteBatch:
        return self._product_pictures.open_batch(auto_commit)


class MemoryImageService(ImageService):
    def __init__(self, pictures: MemoryTable):
        self._pictures = pictures

    def find_duplicate_among(
        self,
        candidate_bytes: bytes,
        existing: Sequence[Picture]
    ) -> Tuple[Optional[bytes], int]:
        return find_equal_picture(candidate_bytes, existing)

    def store(self, picture_bytes: bytes, mime_type: str, name_hint: Optional[str]) -> int:
        picture = Picture(
            picture_binary=picture_bytes,
            mime_type=mime_type or DEFAULT_MIME_TYPE,
            seo_filename=name_hint or None,
        )
        self._pictures.apply([(INSERT, picture)])
        return picture.id


class MemoryStoreMappingService(StoreMappingService):
    """
    Store mappings keyed by product id.

    Every mapping is queued and only applied by a successful product batch
    commit; a failed or rolled back product batch discards the queue.
    """

    def __init__(self, lock: threading.RLock):
        self._lock = lock
        self._mappings: Dict[int, List[int]] = {}
        self._pending: List[Tuple[Any, List[int]]] = []

    def save_store_mappings(self, entity: Any, store_ids: Sequence[int]) -> None:
        with self._lock:
            self._pending.append((entity, sorted(set(store_ids))))

    def take_pending(self) -> List[Tuple[Any, List[int]]]:
        with self._lock:
            pending, self._pending = self._pending, []
            return pending

    def flush(self) -> None:
        for entity, store_ids in self.take_pending():
            if entity.id is None:
                logger.debug(f"Store mappings {store_ids} dropped, product was not written")
                continue
            with self._lock:
                self._mappings[entity.id] = store_ids

    def get_store_ids(self, product_id: int) -> List[int]:
        with self._lock:
            return list(self._mappings.get(product_id, []))


class RecordingNotificationSink(NotificationSink):
    """Keeps every notice it receives."""

    def __init__(self):
        self._lock = threading.Lock()
        self.created: List[Any] = []
        self.updated: List[Any] = []

    def entity_created(self, entity: Any) -> None:
        with self._lock:
            self.created.append(entity)

    def entity_updated(self, entity: Any) -> None:
        with self._lock:
            self.updated.append(entity)


class InMemoryCatalog(Catalog):
    """
    Catalog backed by Python dicts.

    Usage:
        catalog = InMemoryCatalog()
        catalog.add_categories(5, 6)
        importer = ProductImporter.from_catalog(catalog)
    """

    def __init__(self, languages: Optional[Sequence[Language]] = None):
        self._lock = threading.RLock()

        self.product_table = MemoryTable("Product", self._lock)
        self.url_record_table = MemoryTable("UrlRecord", self._lock)
        self.localized_property_table = MemoryTable("LocalizedProperty", self._lock)
        self.product_category_table = MemoryTable("ProductCategory", self._lock)
        self.product_manufacturer_table = MemoryTable("ProductManufacturer", self._lock)
        self.picture_table = MemoryTable("Picture", self._lock)
        self.product_picture_table = MemoryTable("ProductPicture", self._lock)

        if languages is None:
            languages = [Language(id=1, name="English", unique_seo_code="en")]

        self.store_mappings = MemoryStoreMappingService(self._lock)
        self.products = MemoryProductStore(self.product_table, self.store_mappings)
        self.localizations = MemoryLocalizationStore(self.localized_property_table)
        self.languages = MemoryLanguageService(languages)
        self.slugs = MemorySlugService(self.url_record_table)
        self.category_mappings = MemoryMappingStore(self.product_category_table, "category_id")
        self.manufacturer_mappings = MemoryMappingStore(self.product_manufacturer_table, "manufacturer_id")
        self.lookup = MemoryCatalogLookup()
        self.pictures = MemoryPictureStore(self.product_picture_table, self.picture_table)
        self.images = MemoryImageService(self.picture_table)

    def add_product(self, **fields) -> Product:
        """Insert a product directly (test and demo seeding)."""
        product = Product(**fields)
        self.product_table.apply([(INSERT, product)])
        return product

    def add_categories(self, *category_ids: int) -> None:
        self.lookup.category_ids.update(category_ids)

    def add_manufacturers(self, *manufacturer_ids: int) -> None:
        self.lookup.manufacturer_ids.update(manufacturer_ids)

    def add_language(self, language: Language) -> None:
        self.languages.add(language)

    def add_url_record(self, record: UrlRecord) -> UrlRecord:
        self.url_record_table.apply([(INSERT, record)])
        return record

    def add_category_mapping(self, product_id: int, category_id: int) -> ProductCategory:
        mapping = ProductCategory(product_id=product_id, category_id=category_id)
        self.product_category_table.apply([(INSERT, mapping)])
        return mapping

    def add_manufacturer_mapping(self, product_id: int, manufacturer_id: int) -> ProductManufacturer:
        mapping = ProductManufacturer(product_id=product_id, manufacturer_id=manufacturer_id)
        self.product_manufacturer_table.apply([(INSERT, mapping)])
        return mapping

    def add_product_picture(self, product_id: int, picture_bytes: bytes) -> ProductPicture:
        picture_id = self.images.store(picture_bytes, DEFAULT_MIME_TYPE, None)
        mapping = ProductPicture(product_id=product_id, picture_id=picture_id)
        self.product_picture_table.apply([(INSERT, mapping)])
        return mapping
