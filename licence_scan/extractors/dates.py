from __future__ import annotations
import re
from datetime import datetime
from typing import Optional

from .patterns import DATE_SPLIT_RE

_DAYS_PER_YEAR = 365


def normalize_date(token: str) -> str:
    """Rewrite a d/m/y token to DD/MM/YYYY.

    Two digit years always expand to 20yy. Tokens that do not split into
    exactly three groups come back unchanged.
    """
    parts = DATE_SPLIT_RE.split(token or "")
    if len(parts) != 3:
        return token
    day, month, year = parts
    day = re.sub(r"[^\d]", "", day).zfill(2)
    month = month.zfill(2)
    if len(year) == 2:
        year = "20" + year
    return f"{day}/{month}/{year}"


def parse_date(token: str) -> Optional[datetime]:
    try:
        return datetime.strptime(normalize_date(token), "%d/%m/%Y")
    except (TypeError, ValueError):
        return None


def age_in_years(token: str, now: Optional[datetime] = None) -> Optional[float]:
    d = parse_date(token)
    if d is None:
        return None
    now = now or datetime.now()
    if now.tzinfo is not None:
        now = now.astimezone().replace(tzinfo=None)
    return (now - d).days / _DAYS_PER_YEAR
