# licence_scan/export.py
from __future__ import annotations
from typing import Any, Dict, Iterable, List

CSV_HEADER = "id|name|dor|issue|valid|spousePartner|other|createdAt"
_COLUMNS = ("id", "name", "dor", "issue", "valid", "spouse_partner", "other")


def _cell(v: Any) -> str:
    return ("" if v is None else str(v)).replace("|", " ")


def _value(fields: Dict[str, Any], key: str) -> Any:
    v = fields.get(key)
    # stored scans wrap each field as {"value", "locked"}
    return v.get("value") if isinstance(v, dict) else v


def scans_to_csv(scans: Iterable[Dict[str, Any]]) -> str:
    rows: List[str] = [CSV_HEADER]
    for scan in scans:
        fields = scan.get("fields") or {}
        cells = [_value(fields, k) for k in _COLUMNS] + [scan.get("created_at")]
        rows.append("|".join(_cell(c) for c in cells))
    return "\n".join(rows)
