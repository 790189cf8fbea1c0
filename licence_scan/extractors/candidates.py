# licence_scan/extractors/candidates.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

FIELDS: Tuple[str, ...] = ("id", "name", "dor", "issue", "valid", "spouse_partner", "other")


@dataclass(frozen=True)
class CandidateMatch:
    field: str                 # one of FIELDS
    value: str
    confidence: float          # 0..1
    line: int                  # index into the tokenized lines
    pattern: str               # "id-pattern", "name-labeled", "valid-range", ...
    seq: int = 0               # insertion order, breaks confidence ties

    def rank_key(self) -> Tuple[float, int]:
        """Highest confidence first, earliest produced first among equals."""
        return (-self.confidence, self.seq)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "confidence": self.confidence,
            "line": self.line,
            "pattern": self.pattern,
        }


@dataclass
class CandidateTable:
    """Per-field candidate lists, filled in scan order."""
    matches: Dict[str, List[CandidateMatch]] = field(
        default_factory=lambda: {f: [] for f in FIELDS}
    )
    _seq: int = 0

    def add(self, field_name: str, value: str, confidence: float, line: int, pattern: str) -> CandidateMatch:
        if field_name not in self.matches:
            raise KeyError(f"unknown field: {field_name}")
        cand = CandidateMatch(field_name, value, max(0.0, min(1.0, confidence)), line, pattern, self._seq)
        self._seq += 1
        self.matches[field_name].append(cand)
        return cand

    def __getitem__(self, field_name: str) -> List[CandidateMatch]:
        return self.matches[field_name]

    def __iter__(self) -> Iterator[str]:
        return iter(FIELDS)

    def ranked(self, field_name: str) -> List[CandidateMatch]:
        return sorted(self.matches[field_name], key=CandidateMatch.rank_key)

    def best(self, field_name: str) -> Optional[CandidateMatch]:
        ranked = self.ranked(field_name)
        return ranked[0] if ranked else None

    def is_empty(self) -> bool:
        return not any(self.matches[f] for f in FIELDS)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {f: [c.to_dict() for c in self.matches[f]] for f in FIELDS}
