# licence_scan/extractors/arbiter.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .candidates import CandidateTable, FIELDS
from .dependents import find_dependents
from .patterns import DOC_TYPE
from .scanner import split_lines, scan_lines

logger = logging.getLogger(__name__)

CANONICAL_REQUIRED: Tuple[str, ...] = ("name", "dor", "issue", "valid")
STRICT_REQUIRED: Tuple[str, ...] = ("id",) + CANONICAL_REQUIRED

REQUIRED_FIELD_SETS: Dict[str, Tuple[str, ...]] = {
    "canonical": CANONICAL_REQUIRED,
    "strict": STRICT_REQUIRED,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ExtractedRecord:
    id: str = ""
    name: str = ""
    dor: str = ""
    issue: str = ""
    valid: str = ""
    spouse_partner: str = ""
    other: str = ""
    success: bool = False
    # stamped by the caller's clock, never part of equality
    created_at: datetime = field(default_factory=_utcnow, compare=False)

    def fields(self) -> Dict[str, str]:
        return {f: getattr(self, f) for f in FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": DOC_TYPE,
            **self.fields(),
            "success": self.success,
            "created_at": int(self.created_at.timestamp() * 1000),
        }


def select_best(table: CandidateTable) -> Dict[str, str]:
    """Winning value per field; ties go to the earliest candidate."""
    out: Dict[str, str] = {}
    for f in FIELDS:
        top = table.best(f)
        out[f] = top.value if top else ""
    return out


def is_success(values: Dict[str, str], required: Sequence[str] = CANONICAL_REQUIRED) -> bool:
    return all(values.get(f) for f in required)


def resolve(table: CandidateTable, lines: List[str]) -> Dict[str, str]:
    """Add the dependents candidate to the table, then pick a value per field."""
    name = table.best("name")
    spouse = table.best("spouse_partner")
    found = find_dependents(
        lines,
        name.value if name else None,
        spouse.value if spouse else None,
        spouse.line if spouse else None,
    )
    if found.names:
        if found.explicit:
            table.add("other", ", ".join(found.names), 1.0, found.start, "other-section")
        else:
            table.add("other", ", ".join(found.names), 0.8, found.start, "other-implicit")
    logger.debug("dependents: %d found (explicit=%s, stopped at line %d)",
                 len(found.names), found.explicit, found.stop)
    return select_best(table)


def extract_fields(text: Optional[str],
                   *,
                   now: Optional[datetime] = None,
                   created_at: Optional[datetime] = None,
                   required: Sequence[str] = CANONICAL_REQUIRED) -> Tuple[ExtractedRecord, CandidateTable]:
    """Structured licence record from raw OCR text, plus every candidate considered.

    Never raises on content: missing data shows up as empty fields and
    success=False.
    """
    lines = split_lines(text)
    table = scan_lines(lines, now=now)
    values = resolve(table, lines)
    record = ExtractedRecord(
        **values,
        success=is_success(values, required),
        created_at=created_at or _utcnow(),
    )
    return record, table
