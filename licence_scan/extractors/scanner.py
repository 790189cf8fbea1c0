# licence_scan/extractors/scanner.py
from __future__ import annotations
import logging
import re
from datetime import datetime
from typing import List, Optional

from .candidates import CandidateTable
from .dates import normalize_date, parse_date, age_in_years
from .patterns import (
    ID_RE, DATE_RE, DATE_RANGE_RE,
    NAME_LABEL_RE, NAME_LABEL_ONLY_RE, NAME_NEXT_LINE_RE, NAME_BEFORE_ID_RE,
    SPOUSE_LABEL_RE, NAME_BEFORE_STREET_RE,
    DOR_LABEL_RE, ISSUE_LABEL_RE, VALID_LABEL_RE, KEYWORD_LINE_RE,
)

logger = logging.getLogger(__name__)

MIN_ADULT_AGE = 18
MAX_AGE = 100


def split_lines(text: Optional[str]) -> List[str]:
    """Trimmed, non-blank lines; line numbers index into this list."""
    return [l.strip() for l in (text or "").splitlines() if l.strip()]


def _scan_id(table: CandidateTable, line: str, i: int) -> None:
    m = ID_RE.search(line)
    if m:
        table.add("id", m.group(0), 1.0, i, "id-pattern")


def _scan_name(table: CandidateTable, lines: List[str], line: str, i: int) -> None:
    if KEYWORD_LINE_RE.match(line):
        # bare label, the value may sit on the next line
        if NAME_LABEL_ONLY_RE.match(line) and i + 1 < len(lines):
            nxt = lines[i + 1]
            m = NAME_NEXT_LINE_RE.match(nxt)
            if m and not KEYWORD_LINE_RE.match(nxt) and m.group(1).strip():
                table.add("name", m.group(1).strip(), 0.95, i + 1, "name-next-line")
        return

    m = NAME_LABEL_RE.search(line)
    if m and m.group(1).strip():
        table.add("name", m.group(1).strip(), 1.0, i, "name-labeled")
        return
    m = NAME_BEFORE_ID_RE.match(line)
    if m and m.group(1).strip():
        table.add("name", m.group(1).strip(), 0.9, i, "name-before-id")


def _scan_spouse(table: CandidateTable, line: str, i: int) -> None:
    if KEYWORD_LINE_RE.match(line):
        return
    m = SPOUSE_LABEL_RE.search(line)
    if m and m.group(1).strip():
        table.add("spouse_partner", m.group(1).strip(), 1.0, i, "spouse-labeled")
        return
    m = NAME_BEFORE_STREET_RE.match(line)
    if m and m.group(1).strip():
        table.add("spouse_partner", m.group(1).strip(), 0.8, i, "spouse-before-address")


def _date_after(label_re: re.Pattern, line: str) -> Optional[str]:
    lm = label_re.search(line)
    if not lm:
        return None
    dm = DATE_RE.search(line, lm.end()) or DATE_RE.search(line)
    return dm.group(0) if dm else None


def _scan_labeled_dates(table: CandidateTable, line: str, i: int) -> None:
    dor = _date_after(DOR_LABEL_RE, line)
    if dor:
        table.add("dor", normalize_date(dor), 1.0, i, "dor-labeled")
    issue = _date_after(ISSUE_LABEL_RE, line)
    if issue:
        table.add("issue", normalize_date(issue), 1.0, i, "issue-labeled")

    vm = VALID_LABEL_RE.search(line)
    if vm:
        rm = DATE_RANGE_RE.search(line, vm.end())
        if rm:
            table.add("valid", f"{normalize_date(rm.group(1))} - {normalize_date(rm.group(2))}",
                      1.0, i, "valid-labeled")
        else:
            valid = _date_after(VALID_LABEL_RE, line)
            if valid:
                table.add("valid", normalize_date(valid), 1.0, i, "valid-labeled")


def _has_date_label(line: str) -> bool:
    return any(r.search(line) for r in (DOR_LABEL_RE, ISSUE_LABEL_RE, VALID_LABEL_RE))


def _by_age(tokens: List[str]) -> List[str]:
    # unparseable tokens sort last, input order kept among equals
    def key(tok: str):
        d = parse_date(tok)
        return (d is None, d or datetime.max)
    return sorted(tokens, key=key)


def _scan_unlabeled_dates(table: CandidateTable, line: str, i: int, now: Optional[datetime]) -> None:
    found = list(DATE_RE.finditer(line))
    if not found:
        return

    remaining = found
    rm = DATE_RANGE_RE.search(line)
    if rm:
        table.add("valid", f"{normalize_date(rm.group(1))} - {normalize_date(rm.group(2))}",
                  0.95, i, "valid-range")
        remaining = [m for m in found if not (rm.start() <= m.start() and m.end() <= rm.end())]

    tokens = [m.group(0) for m in remaining]
    if rm and len(tokens) == 2:
        older, newer = _by_age(tokens)
        table.add("dor", normalize_date(older), 0.9, i, "dor-position-oldest")
        table.add("issue", normalize_date(newer), 0.85, i, "issue-position-newer")
    elif not rm and len(tokens) == 3:
        oldest, middle, newest = _by_age(tokens)
        table.add("dor", normalize_date(oldest), 0.9, i, "dor-position-oldest")
        table.add("issue", normalize_date(middle), 0.85, i, "issue-position-middle")
        table.add("valid", normalize_date(newest), 0.8, i, "valid-position-newest")
    elif len(tokens) == 1:
        age = age_in_years(tokens[0], now)
        if age is not None and MIN_ADULT_AGE < age < MAX_AGE:
            table.add("dor", normalize_date(tokens[0]), 0.8, i, "dor-age-range")


def scan(text: Optional[str], now: Optional[datetime] = None) -> CandidateTable:
    """Walk the lines of an OCR text and collect candidate matches per field."""
    return scan_lines(split_lines(text), now=now)


def scan_lines(lines: List[str], now: Optional[datetime] = None) -> CandidateTable:
    table = CandidateTable()
    for i, line in enumerate(lines):
        _scan_id(table, line, i)
        _scan_name(table, lines, line, i)
        _scan_spouse(table, line, i)
        if _has_date_label(line):
            _scan_labeled_dates(table, line, i)
        else:
            _scan_unlabeled_dates(table, line, i, now)
    logger.debug("scanned %d lines: %s", len(lines),
                 {f: len(table[f]) for f in table})
    return table
