# licence_scan/extractors/patterns.py
from __future__ import annotations
import re

PATTERNS_VERSION = "v1.2.0"

DOC_TYPE = "family_season_licence"

_DATE = r"\d{1,2}[/-]\d{1,2}[/-]\d{2,4}"

DATE_RE = re.compile(rf"(?<!\d){_DATE}(?!\d)")
DATE_RANGE_RE = re.compile(rf"(?<!\d)({_DATE})\s*[-–]\s*({_DATE})(?!\d)")
DATE_SPLIT_RE = re.compile(r"[/-]")

ID_RE = re.compile(r"\b\d{6,8}\b")

NAME_LABEL_RE = re.compile(r"\bNAME\b[\s:]+([A-Za-z .-]+)$", re.IGNORECASE)
NAME_LABEL_ONLY_RE = re.compile(r"^NAME[\s:]*$", re.IGNORECASE)
NAME_NEXT_LINE_RE = re.compile(r"^([A-Za-z .-]+?)(?:\s+\d{6,8})?$")
NAME_BEFORE_ID_RE = re.compile(r"^(?:NAME[\s:]+)?([A-Za-z .-]+?)\s+\d{6,8}$", re.IGNORECASE)

SPOUSE_LABEL_RE = re.compile(r"\bSPOUSE\s*/\s*PARTNER\b[\s:]+([A-Za-z .-]+)$", re.IGNORECASE)
STREET_SUFFIX_RE = re.compile(r"\s+(?:Rd|Street|Avenue|Road)\b", re.IGNORECASE)
NAME_BEFORE_STREET_RE = re.compile(r"^([A-Za-z .-]+)\s+(?:Rd|Street|Avenue|Road)\b", re.IGNORECASE)

DOR_LABEL_RE = re.compile(r"\bDOR\b", re.IGNORECASE)
ISSUE_LABEL_RE = re.compile(r"\bISSUED?\b", re.IGNORECASE)
VALID_LABEL_RE = re.compile(r"\bVALID\b", re.IGNORECASE)

# a line that is nothing but a field label
KEYWORD_LINE_RE = re.compile(r"^(?:NAME|DOR|ISSUED?|VALID|SPOUSE\s*/\s*PARTNER|OTHER|Licence)[\s:]*$", re.IGNORECASE)

OTHER_HEADER_RE = re.compile(r"^OTHER\s*$", re.IGNORECASE)
SECTION_HEADER_RE = re.compile(
    r"^(?:NAME|DOR|ISSUED?|VALID|SPOUSE\s*/\s*PARTNER|OTHER|FAMILY\s+SEASON\s+LICENCE|Licence)\b",
    re.IGNORECASE,
)

BARE_NAME_RE = re.compile(r"^[A-Za-z](?:[A-Za-z0-9 -]*[A-Za-z0-9])?$")
LETTER_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z -]+$")
