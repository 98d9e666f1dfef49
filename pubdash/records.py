"""Publication record type.

One :class:`Publication` per CSV row.  The named fields cover the
columns the dashboard reads; every other column is carried in
``extra`` so new columns in the source file pass through untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from .config import (
    ALIGNMENT_COLUMN_PREFIX,
    CSV_COLUMNS,
    DATE_SEPARATOR,
    UNKNOWN,
)

logger = logging.getLogger(__name__)

RECORD_FIELDS: List[str] = list(CSV_COLUMNS)

DETAIL_LABELS: Dict[str, str] = {
    "title": "Publication",
    "division": "Division",
    "directorate": "Directorate",
    "frequency": "Frequency",
    "output_type": "Output Type",
    "dd": "DD",
    "ba_lead": "BA Lead",
    "alignment": "PO2 Alignment",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def clean_value(value: Any) -> Optional[str]:
    """Normalise a raw cell: blanks and NaN become ``None``, scalars ``str``."""
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    text = value if isinstance(value, str) else str(value)
    # Whitespace-only cells count as blank; otherwise the text is kept as-is
    if not text.strip():
        return None
    return text


def _column_to_field(column: str) -> Optional[str]:
    for name, header in CSV_COLUMNS.items():
        if column == header:
            return name
    if column.startswith(ALIGNMENT_COLUMN_PREFIX):
        return "alignment"
    return None


def naive_utc(value: Optional[datetime] = None) -> datetime:
    """
    Express ``value`` (default: the current time) as a naive UTC datetime.

    Publish dates are stored naive in UTC, so every comparison against them
    goes through here.
    """
    if value is None:
        return datetime.now(timezone.utc).replace(tzinfo=None)
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_publish_dates(value: Optional[str]) -> List[datetime]:
    """Split a ``;``-joined date list, skipping blank and unparseable pieces."""
    if not value:
        return []
    dates: List[datetime] = []
    for piece in value.split(DATE_SEPARATOR):
        piece = piece.strip()
        if not piece:
            continue
        stamp = pd.to_datetime(piece, errors="coerce")
        if pd.isna(stamp):
            logger.debug("Skipping unparseable publish date %r", piece)
            continue
        if stamp.tzinfo is not None:
            stamp = stamp.tz_convert(None)
        dates.append(stamp.to_pydatetime())
    return dates


# ---------------------------------------------------------------------------
# Record type
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Publication:
    title: Optional[str] = None
    directorate: Optional[str] = None
    division: Optional[str] = None
    dd: Optional[str] = None
    ba_lead: Optional[str] = None
    frequency: Optional[str] = None
    output_type: Optional[str] = None
    alignment: Optional[str] = None
    publish_dates: Optional[str] = None
    extra: Mapping[str, Optional[str]] = field(
        default_factory=lambda: MappingProxyType({}), compare=False
    )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Publication":
        """Build a record from a CSV or JSON row keyed by column name."""
        values: Dict[str, Optional[str]] = {}
        extra: Dict[str, Optional[str]] = {}
        for column, raw in row.items():
            name = _column_to_field(str(column))
            if name is None:
                extra[str(column)] = clean_value(raw)
            elif name not in values or values[name] is None:
                values[name] = clean_value(raw)
        return cls(**values, extra=MappingProxyType(extra))

    def to_row(self) -> Dict[str, Optional[str]]:
        """Inverse of :meth:`from_row`, keyed by CSV column name."""
        row: Dict[str, Optional[str]] = {
            header: getattr(self, name) for name, header in CSV_COLUMNS.items()
        }
        row.update(self.extra)
        return row

    def get(self, name: str) -> Optional[str]:
        if name in RECORD_FIELDS:
            return getattr(self, name)
        return self.extra.get(name)

    def category(self, name: str) -> str:
        """Field value used for grouping; missing values group as ``Unknown``."""
        return self.get(name) or UNKNOWN

    def dates(self) -> List[datetime]:
        return parse_publish_dates(self.publish_dates)

    def details(self) -> Dict[str, str]:
        """Label -> value mapping shown in the detail panels."""
        return {
            label: self.get(name) or ""
            for name, label in DETAIL_LABELS.items()
        }


def records_from_rows(rows: Iterable[Mapping[str, Any]]) -> List[Publication]:
    return [Publication.from_row(row) for row in rows]


def records_to_frame(records: Iterable[Publication]) -> pd.DataFrame:
    """One column per named field; missing values stay ``None``."""
    columns = [f.name for f in fields(Publication) if f.name != "extra"]
    data = [{name: getattr(rec, name) for name in columns} for rec in records]
    return pd.DataFrame(data, columns=columns)
