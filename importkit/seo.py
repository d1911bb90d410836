"""
SEO slug generation and uniqueness validation.

Uniqueness is checked against durable storage and, first, against an
optional extra lookup. The import passes its per-batch SlugCache as that
extra lookup: slugs written earlier in the same uncommitted batch are not
visible in storage yet, so without the cache two rows named "Widget" would
both end up with "widget".
"""

import logging
from typing import Any, Callable, Dict, Optional

from slugify import slugify

from .converters import is_blank
from .domain import UrlRecord

logger = logging.getLogger(__name__)

MAX_SLUG_LENGTH = 400

# Paths owned by the storefront; never handed out as entity slugs
RESERVED_SLUGS = frozenset({
    "admin", "install", "login", "logout", "register", "cart", "wishlist",
    "checkout", "search", "customer", "account", "blog", "news", "contactus",
    "sitemap", "compare", "recentlyviewedproducts", "newproducts",
})

SlugLookup = Callable[[str], Optional[UrlRecord]]


def generate_slug(text: Optional[str], max_length: int = MAX_SLUG_LENGTH) -> str:
    """URL-safe, lower-case slug of ``text`` (empty string for blank input)."""
    if is_blank(text):
        return ""
    return slugify(str(text), max_length=max_length)


class SlugCache:
    """Slugs written during one slug-processing pass, keyed by final slug."""

    def __init__(self):
        self._records: Dict[str, UrlRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, slug: str) -> bool:
        return slug in self._records

    def add(self, slug: str, record: UrlRecord) -> None:
        self._records[slug] = record

    def lookup(self, slug: str) -> Optional[UrlRecord]:
        return self._records.get(slug)


def validate_slug(
    entity: Any,
    entity_name: str,
    candidate: Optional[str],
    fallback: Optional[str],
    exclude_existing: bool,
    slug_lookup: SlugLookup,
    extra_lookup: Optional[SlugLookup] = None,
    reserved_slugs: frozenset = RESERVED_SLUGS,
    max_length: int = MAX_SLUG_LENGTH
) -> str:
    """
    Turn a candidate into a slug that no other entity holds.

    The slug is built from ``candidate``, then ``fallback``, then the entity
    id. While it is taken (``extra_lookup`` is asked before ``slug_lookup``)
    or reserved, ``-2``, ``-3``, ... is appended.

    Args:
        entity: Entity the slug is for; must have an id
        entity_name: Entity type name stored on url records ("Product")
        candidate: Explicit slug or text to slugify
        fallback: Text used when the candidate slugifies to nothing
        exclude_existing: Accept a slug already held by this same entity.
            False for new entities, which cannot own a slug yet.
        slug_lookup: Durable storage lookup
        extra_lookup: Lookup consulted first (per-batch cache)

    Returns:
        The final slug

    Raises:
        ValueError: If no slug can be built (no text and no entity id)
    """
    slug = generate_slug(candidate, max_length) or generate_slug(fallback, max_length)
    if not slug:
        entity_id = getattr(entity, "id", None)
        if entity_id is None:
            raise ValueError("Cannot build a slug for an entity without name and id.")
        slug = str(entity_id)

    suffix = 2
    final_slug = slug
    while True:
        record = extra_lookup(final_slug) if extra_lookup else None
        if record is None:
            record = slug_lookup(final_slug)
        is_reserved = final_slug in reserved_slugs

        if record is None and not is_reserved:
            break
        if (
            record is not None
            and exclude_existing
            and record.entity_id == getattr(entity, "id", None)
            and record.entity_name == entity_name
        ):
            break

        final_slug = f"{slug}-{suffix}"
        suffix += 1

    if final_slug != slug:
        logger.debug(f"Slug '{slug}' taken, using '{final_slug}'")
    return final_slug
