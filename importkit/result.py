"""
Import result aggregation.

One ImportResult lives for a whole run. Every stage writes into it: the
primary writer bumps the counters, every stage appends messages keyed by
row number and field name. It is the only failure-reporting surface of the
pipeline, nothing is raised to the caller for row or field problems.
"""

import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class Severity(Enum):
    """Severity of an import message."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class RowInfo:
    """Identifies the data row a message refers to."""
    row_number: int
    entity_id: Optional[int] = None
    entity_name: Optional[str] = None


@dataclass(frozen=True)
class ImportMessage:
    """One info/warning/error entry of an import run."""
    severity: Severity
    message: str
    row_number: Optional[int] = None
    field_name: Optional[str] = None
    segment: Optional[int] = None
    entity_id: Optional[int] = None

    def __str__(self) -> str:
        location = []
        if self.segment is not None:
            location.append(f"segment {self.segment}")
        if self.row_number is not None:
            location.append(f"row {self.row_number}")
        if self.field_name:
            location.append(f"field {self.field_name}")
        where = f" [{', '.join(location)}]" if location else ""
        return f"{self.severity.value.upper()}{where}: {self.message}"


@dataclass
class ImportResult:
    total_records: int = 0
    new_records: int = 0
    modified_records: int = 0
    failed_records: int = 0
    start_date_utc: Optional[datetime] = None
    end_date_utc: Optional[datetime] = None
    messages: List[ImportMessage] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        self.start_date_utc = datetime.now(timezone.utc)

    def finish(self) -> None:
        self.end_date_utc = datetime.now(timezone.utc)

    # -- counters ----------------------------------------------------------

    def add_counts(self, new: int = 0, modified: int = 0, failed: int = 0) -> None:
        with self._lock:
            self.new_records += new
            self.modified_records += modified
            self.failed_records += failed

    @property
    def affected_records(self) -> int:
        return self.new_records + self.modified_records

    # -- messages ----------------------------------------------------------

    def add_message(
        self,
        severity: Severity,
        message: str,
        row_info: Optional[RowInfo] = None,
        field_name: Optional[str] = None,
        segment: Optional[int] = None
    ) -> ImportMessage:
        entry = ImportMessage(
            severity=severity,
            message=message,
            row_number=row_info.row_number if row_info else None,
            field_name=field_name,
            segment=segment,
            entity_id=row_info.entity_id if row_info else None,
        )
        with self._lock:
            self.messages.append(entry)
        return entry

    def add_info(self, message: str, row_info: Optional[RowInfo] = None, field_name: Optional[str] = None) -> ImportMessage:
        return self.add_message(Severity.INFO, message, row_info, field_name)

    def add_warning(self, message: str, row_info: Optional[RowInfo] = None, field_name: Optional[str] = None) -> ImportMessage:
        return self.add_message(Severity.WARNING, message, row_info, field_name)

    def add_error(self, message: str, row_info: Optional[RowInfo] = None, field_name: Optional[str] = None) -> ImportMessage:
        return self.add_message(Severity.ERROR, message, row_info, field_name)

    def add_segment_error(self, exception: BaseException, segment: int, stage: str) -> ImportMessage:
        """Record a failure that hit a whole batch rather than a single row."""
        message = f"{type(exception).__name__}: {exception}"
        return self.add_message(Severity.ERROR, message, field_name=stage, segment=segment)

    def _by_severity(self, severity: Severity) -> List[ImportMessage]:
        with self._lock:
            return [m for m in self.messages if m.severity is severity]

    @property
    def infos(self) -> List[ImportMessage]:
        return self._by_severity(Severity.INFO)

    @property
    def warnings(self) -> List[ImportMessage]:
        return self._by_severity(Severity.WARNING)

    @property
    def errors(self) -> List[ImportMessage]:
        return self._by_severity(Severity.ERROR)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            messages = list(self.messages)
        return {
            "total_records": self.total_records,
            "new_records": self.new_records,
            "modified_records": self.modified_records,
            "failed_records": self.failed_records,
            "start_date_utc": self.start_date_utc.isoformat() if self.start_date_utc else None,
            "end_date_utc": self.end_date_utc.isoformat() if self.end_date_utc else None,
            "messages": [
                {**asdict(m), "severity": m.severity.value} for m in messages
            ],
        }
