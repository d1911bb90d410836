"""
Unit tests for slug generation, uniqueness validation and picture fingerprints.
"""

import pytest

from importkit.domain import Picture, Product, UrlRecord
from importkit.pictures import find_equal_picture, guess_mime_type
from importkit.seo import SlugCache, generate_slug, validate_slug


def make_lookup(*records):
    """Helper building a slug lookup over the given url records."""
    by_slug = {r.slug: r for r in records}
    return by_slug.get


class TestGenerateSlug:
    def test_lowercase_and_dashes(self):
        assert generate_slug("Hello World!") == "hello-world"

    def test_blank_text(self):
        assert generate_slug("  ") == ""
        assert generate_slug(None) == ""

    def test_max_length(self):
        assert len(generate_slug("a" * 50, max_length=10)) == 10


class TestValidateSlug:
    def test_free_candidate_is_kept(self):
        slug = validate_slug(Product(id=1), "Product", "Widget", None, False, make_lookup())
        assert slug == "widget"

    def test_falls_back_to_name_then_id(self):
        lookup = make_lookup()

        assert validate_slug(Product(id=1), "Product", "", "Fallback Name", False, lookup) == "fallback-name"
        assert validate_slug(Product(id=9), "Product", "!!!", None, False, lookup) == "9"

    def test_no_text_and_no_id_raises(self):
        with pytest.raises(ValueError):
            validate_slug(Product(), "Product", None, None, False, make_lookup())

    def test_own_slug_accepted_only_when_excluding_existing(self):
        lookup = make_lookup(UrlRecord(entity_id=1, entity_name="Product", slug="widget"))

        assert validate_slug(Product(id=1), "Product", "widget", None, True, lookup) == "widget"
        assert validate_slug(Product(id=1), "Product", "widget", None, False, lookup) == "widget-2"

    def test_same_id_of_other_entity_type_is_taken(self):
        lookup = make_lookup(UrlRecord(entity_id=1, entity_name="Category", slug="widget"))

        assert validate_slug(Product(id=1), "Product", "widget", None, True, lookup) == "widget-2"

    def test_extra_lookup_is_consulted_first(self):
        cache = SlugCache()
        cache.add("widget", UrlRecord(entity_id=2, entity_name="Product", slug="widget"))
        cache.add("widget-2", UrlRecord(entity_id=3, entity_name="Product", slug="widget-2"))

        slug = validate_slug(Product(id=4), "Product", "Widget", None, False, make_lookup(), extra_lookup=cache.lookup)

        assert slug == "widget-3"
        assert "widget" in cache
        assert len(cache) == 2


class TestPictureFingerprints:
    def test_equal_picture_is_found(self):
        stored = [Picture(id=4, picture_binary=b"abc"), Picture(id=5, picture_binary=b"xyz")]

        assert find_equal_picture(b"xyz", stored) == (None, 5)

    def test_new_picture_is_returned(self):
        stored = [Picture(id=4, picture_binary=b"abc")]

        assert find_equal_picture(b"abd", stored) == (b"abd", 0)

    @pytest.mark.parametrize("path,expected", [
        ("photo.png", "image/png"),
        ("photo.JPG", "image/jpeg"),
        ("photo.unknown", "image/jpeg"),
        ("notes.txt", "image/jpeg"),
    ])
    def test_guess_mime_type(self, path, expected):
        assert guess_mime_type(path) == expected
