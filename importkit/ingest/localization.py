"""Localized property stage (Name[de], ShortDescription[fr], ...)."""

import logging
from typing import List, Optional, Sequence, Tuple

from ..data_table import localized_column_name
from ..domain import Language
from ..result import ImportResult
from ..schema import LOCALIZABLE_FIELDS
from ..segmenter import DataSegmenter, ImportRow
from .base import BatchProcessor
from .contracts import LanguageService, LocalizationStore

logger = logging.getLogger(__name__)


class LocalizationProcessor(BatchProcessor):
    stage_name = "ProcessLocalizations"

    def __init__(
        self,
        store: LocalizationStore,
        languages: LanguageService,
        fields: Sequence[Tuple[str, str]] = LOCALIZABLE_FIELDS
    ):
        self._store = store
        self._language_service = languages
        self._field_columns = [column for column, _ in fields]
        self._languages: Optional[List[Language]] = None

    def _get_languages(self) -> List[Language]:
        # Loaded once per processor; languages do not change during a run
        if self._languages is None:
            self._languages = self._language_service.get_all_languages(show_hidden=True)
        return self._languages

    def _localized_columns(self, segmenter: DataSegmenter) -> List[Tuple[str, Language]]:
        return [
            (column, language)
            for language in self._get_languages()
            for column in self._field_columns
            if segmenter.has_column(column, language.unique_seo_code)
        ]

    def is_applicable(self, segmenter: DataSegmenter, rows: List[ImportRow]) -> bool:
        return bool(self._localized_columns(segmenter))

    def process(self, rows: List[ImportRow], result: ImportResult) -> int:
        if not rows:
            return 0

        columns = self._localized_columns(rows[0].segmenter)
        if not columns:
            return 0

        with self._store.open_batch() as batch:
            for row in rows:
                for column, language in columns:
                    code = language.unique_seo_code
                    try:
                        value = row.get_data_value(column, language_code=code)
                        if value:
                            batch.upsert(row.entity, column, language.id, value)
                    except Exception as e:
                        field_name = localized_column_name(column, code)
                        logger.warning(f"Localization {field_name} for row {row.row_number} failed: {e}")
                        result.add_warning(str(e), row.get_row_info(), field_name)

            return batch.commit()
