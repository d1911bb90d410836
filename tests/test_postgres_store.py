"""
Tests for the PostgreSQL catalog helpers that do not need a database.
"""

import pytest

from importkit.config import get_import_settings
from importkit.domain import Picture, UrlRecord
from importkit.ingest.postgres_store import PostgresCatalog, _from_row, _record_values


class TestRowMapping:
    def test_record_values_skip_id(self):
        record = UrlRecord(entity_id=3, entity_name="Product", slug="lamp", id=12)

        values = _record_values(record)

        assert "id" not in values
        assert values["slug"] == "lamp"
        assert values["entity_id"] == 3

    def test_binary_values_are_wrapped(self):
        values = _record_values(Picture(picture_binary=b"\x89PNG"))

        assert not isinstance(values["picture_binary"], bytes)

    def test_from_row_converts_memoryview(self):
        row = {"id": 4, "picture_binary": memoryview(b"abc"), "mime_type": "image/png", "extra": 1}

        picture = _from_row(Picture, row)

        assert picture.id == 4
        assert picture.picture_binary == b"abc"
        assert picture.mime_type == "image/png"

    def test_from_row_none(self):
        assert _from_row(Picture, None) is None


class TestConnection:
    def test_missing_database_url(self, monkeypatch):
        monkeypatch.delenv("IMPORTKIT_DB_URL", raising=False)
        monkeypatch.delenv("DATABASE_URL", raising=False)
        get_import_settings.cache_clear()
        try:
            with pytest.raises(ValueError):
                PostgresCatalog()
        finally:
            get_import_settings.cache_clear()
