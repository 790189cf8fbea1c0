# licence_scan/extractors/dependents.py
from __future__ import annotations
from typing import Iterable, List, NamedTuple, Optional, Set

from .patterns import (
    OTHER_HEADER_RE, SECTION_HEADER_RE, BARE_NAME_RE, LETTER_NAME_RE,
    ID_RE, DATE_RE, STREET_SUFFIX_RE,
)

# states of the dependents scan
_SEEKING = "seeking"
_IN_SECTION = "in_section"


class DependentsScan(NamedTuple):
    names: List[str]
    stop: int               # line that closed the scan, len(lines) if none did
    explicit: bool          # True when an OTHER header was found
    start: Optional[int]    # header line (explicit) or first dependent line (implicit)


def _claimed(names: Iterable[Optional[str]]) -> Set[str]:
    return {n.strip().lower() for n in names if n and n.strip()}


def _is_bare_name(line: str) -> bool:
    return bool(BARE_NAME_RE.match(line))


def _looks_implicit(line: str) -> bool:
    return (LETTER_NAME_RE.match(line) is not None
            and not ID_RE.search(line)
            and not DATE_RE.search(line)
            and not STREET_SUFFIX_RE.search(line)
            and not SECTION_HEADER_RE.match(line))


def find_explicit_dependents(lines: List[str], claimed: Set[str]) -> DependentsScan:
    """Collect names listed under a bare OTHER header, up to the next section header."""
    state = _SEEKING
    header: Optional[int] = None
    names: List[str] = []
    for i, line in enumerate(lines):
        if state == _SEEKING:
            if OTHER_HEADER_RE.match(line):
                state, header = _IN_SECTION, i
            continue
        if SECTION_HEADER_RE.match(line):
            return DependentsScan(names, i, True, header)
        if _is_bare_name(line) and line.lower() not in claimed:
            names.append(line)
    return DependentsScan(names, len(lines), state == _IN_SECTION, header)


def find_implicit_dependents(lines: List[str], claimed: Set[str], spouse_line: Optional[int]) -> DependentsScan:
    """Name-shaped lines after the spouse/partner line, with no label or data."""
    if spouse_line is None:
        return DependentsScan([], len(lines), False, None)
    names: List[str] = []
    start: Optional[int] = None
    for i in range(spouse_line + 1, len(lines)):
        line = lines[i]
        if _looks_implicit(line) and line.lower() not in claimed:
            if start is None:
                start = i
            names.append(line)
    return DependentsScan(names, len(lines), False, start)


def find_dependents(lines: List[str],
                    name: Optional[str],
                    spouse_partner: Optional[str],
                    spouse_line: Optional[int] = None) -> DependentsScan:
    """Dependents listed on the licence.

    An explicit OTHER section wins; without one, fall back to name-shaped
    lines following the spouse/partner line.
    """
    claimed = _claimed((name, spouse_partner))
    found = find_explicit_dependents(lines, claimed)
    if found.explicit:
        return found
    return find_implicit_dependents(lines, claimed, spouse_line)
