"""
Knowledge snapshot records and JSONL loading utilities.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import json
import logging
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parents[2]
CHUNKS_PATH = ROOT / "data" / "chunks.jsonl"
SCHEDULE_PATH = ROOT / "data" / "schedule.jsonl"


@dataclasses.dataclass(frozen=True)
class ChunkRecord:
    """A single read-only unit of retrievable knowledge."""

    id: str
    section: str
    type: str
    category: str
    text: str
    keywords: FrozenSet[str] = frozenset()
    metadata: Dict[str, Any] = dataclasses.field(default_factory=dict)
    embedding: Optional[Tuple[float, ...]] = None
    order: int = 0

    def field_value(self, name: str) -> Any:
        """Resolve a top-level field or a dotted ``metadata.<key>`` path."""
        if name.startswith("metadata."):
            return self.metadata.get(name.split(".", 1)[1])
        return getattr(self, name, None)


@dataclasses.dataclass(frozen=True)
class ScheduleEvent:
    """A read-only calendar entry or announcement."""

    id: str
    title: str
    description: str = ""
    date: Optional[dt.date] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    time: Optional[str] = None
    category: str = ""
    semester: Optional[int] = None
    type: str = ""
    source: str = ""
    embedding: Optional[Tuple[float, ...]] = None
    order: int = 0

    @property
    def is_range(self) -> bool:
        return self.start_date is not None and self.end_date is not None

    @property
    def sort_date(self) -> Optional[dt.date]:
        return self.date or self.start_date

    def overlaps(self, start: dt.date, end: dt.date) -> bool:
        """True if the event's date (or date range) falls inside [start, end]."""
        if self.is_range:
            return self.start_date <= end and self.end_date >= start  # type: ignore[operator]
        if self.date is None:
            return False
        return start <= self.date <= end

    def field_value(self, name: str) -> Any:
        return getattr(self, name, None)


def _parse_date(value: Any) -> Optional[dt.date]:
    if not value:
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    try:
        return dt.datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except ValueError:
        logger.debug("Unparseable date value: %r", value)
        return None


def _parse_semester(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    text = str(value).strip().lower()
    if text in ("1", "1st", "first"):
        return 1
    if text in ("2", "2nd", "second"):
        return 2
    if text in ("3", "off", "summer"):
        return 3
    return None


def _embedding(obj: Dict[str, Any]) -> Optional[Tuple[float, ...]]:
    emb = obj.get("embedding")
    if not emb:
        return None
    return tuple(float(x) for x in emb)


def chunk_from_dict(obj: Dict[str, Any], order: int = 0) -> ChunkRecord:
    """Build a ChunkRecord from a raw JSON object."""
    return ChunkRecord(
        id=str(obj["id"]),
        section=obj.get("section") or "",
        type=obj.get("type") or "",
        category=obj.get("category") or "",
        text=obj.get("text") or obj.get("content") or "",
        keywords=frozenset(str(k).lower() for k in obj.get("keywords", []) or []),
        metadata=dict(obj.get("metadata") or {}),
        embedding=_embedding(obj),
        order=order,
    )


def event_from_dict(obj: Dict[str, Any], order: int = 0) -> ScheduleEvent:
    """Build a ScheduleEvent from a raw JSON object."""
    start = end = None
    if obj.get("dateType") == "date_range" or (obj.get("startDate") and obj.get("endDate")):
        start = _parse_date(obj.get("startDate"))
        end = _parse_date(obj.get("endDate"))
    return ScheduleEvent(
        id=str(obj.get("id") or obj.get("_id")),
        title=obj.get("title") or "",
        description=obj.get("description") or "",
        date=_parse_date(obj.get("isoDate") or obj.get("date")),
        start_date=start,
        end_date=end,
        time=obj.get("time"),
        category=obj.get("category") or "",
        semester=_parse_semester(obj.get("semester")),
        type=obj.get("type") or "",
        source=obj.get("source") or "",
        embedding=_embedding(obj),
        order=order,
    )


def _iter_jsonl(path: Path) -> Iterable[Dict[str, Any]]:
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            yield json.loads(line)


def load_chunks(path: Path | None = None) -> List[ChunkRecord]:
    """Load chunks from a JSONL snapshot. Ingestion order becomes ``order``."""
    if path is None:
        path = CHUNKS_PATH
    if not path.exists():
        raise FileNotFoundError(f"chunks snapshot not found at {path}")
    chunks: List[ChunkRecord] = []
    seen: set[str] = set()
    for i, obj in enumerate(_iter_jsonl(path)):
        chunk = chunk_from_dict(obj, order=i)
        if chunk.id in seen:
            logger.warning("Duplicate chunk id %s in snapshot; keeping first", chunk.id)
            continue
        seen.add(chunk.id)
        chunks.append(chunk)
    return chunks


def load_events(path: Path | None = None) -> List[ScheduleEvent]:
    """Load schedule events from a JSONL snapshot."""
    if path is None:
        path = SCHEDULE_PATH
    if not path.exists():
        raise FileNotFoundError(f"schedule snapshot not found at {path}")
    return [event_from_dict(obj, order=i) for i, obj in enumerate(_iter_jsonl(path))]
