# licence_scan/scans.py
from __future__ import annotations
import json
import logging
import re
import threading
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from licence_scan.extractors.candidates import FIELDS

logger = logging.getLogger(__name__)

STATUSES = ("queued", "processing", "completed", "error")
_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def validate_daily_scans(data: Any) -> bool:
    """Shape check for the stored {day: {"scans": [...]}} mapping."""
    if not isinstance(data, dict):
        return False
    for day, day_data in data.items():
        if not isinstance(day, str) or not _DAY_RE.match(day):
            return False
        if not isinstance(day_data, dict) or not isinstance(day_data.get("scans"), list):
            return False
        for scan in day_data["scans"]:
            if not isinstance(scan, dict):
                return False
            if not all(k in scan for k in ("id", "ocr_text", "fields", "created_at")):
                return False
            if not isinstance(scan["created_at"], int):
                return False
    return True


def _field_entries(values: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    return {f: {"value": str(values.get(f) or ""), "locked": False} for f in FIELDS}


class ScanStore:
    """Scans grouped per day, persisted to a JSON file."""

    def __init__(self, path: Optional[Path] = None, max_items: int = 20, retention_days: int = 30,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.path = Path(path) if path else None
        self.max_items = max_items
        self.retention_days = retention_days
        self._clock = clock
        self._lock = threading.RLock()
        self._days: Dict[str, Dict[str, List[Dict[str, Any]]]] = self._load()

    # ---- persistence

    def _load(self) -> Dict[str, Dict[str, List[Dict[str, Any]]]]:
        if not self.path or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("could not read scan store %s: %s", self.path, e)
            return {}
        if not validate_daily_scans(data):
            logger.warning("ignoring malformed scan store %s", self.path)
            return {}
        return data

    def _save(self) -> None:
        self._purge()
        if not self.path:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._days, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            logger.warning("could not write scan store %s: %s", self.path, e)

    def _purge(self) -> None:
        cutoff = (self._clock() - timedelta(days=self.retention_days)).strftime("%Y-%m-%d")
        for day in [d for d in self._days if d < cutoff]:
            del self._days[day]

    # ---- queries

    def today(self) -> str:
        return self._clock().strftime("%Y-%m-%d")

    def days(self) -> List[str]:
        with self._lock:
            return sorted(self._days, reverse=True)

    def list_scans(self, day: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._days.get(day or self.today(), {}).get("scans", []))

    def all_scans(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [s for d in self.days() for s in self._days[d]["scans"]]

    def get_scan(self, scan_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            for day in self._days.values():
                for scan in day["scans"]:
                    if scan["id"] == scan_id:
                        return scan
        return None

    # ---- mutations

    def add_scan(self, result: Mapping[str, Any], status: str = "completed") -> Dict[str, Any]:
        """Store a pipeline result (see pipeline.extract_text / scan_document)."""
        if status not in STATUSES:
            raise ValueError(f"unknown status: {status}")
        now = self._clock()
        scan = {
            "id": uuid.uuid4().hex,
            "ocr_text": result.get("ocr_text") or "",
            "fields": _field_entries(result.get("fields") or {}),
            "matches": result.get("matches") or {},
            "success": bool(result.get("success")),
            "created_at": int(now.timestamp() * 1000),
            "status": status,
        }
        with self._lock:
            scans = self._days.setdefault(now.strftime("%Y-%m-%d"), {"scans": []})["scans"]
            scans.append(scan)
            del scans[:-self.max_items]
            self._save()
        return scan

    def _require(self, scan_id: str, field_name: str) -> Dict[str, Any]:
        scan = self.get_scan(scan_id)
        if scan is None:
            raise KeyError(f"unknown scan: {scan_id}")
        if field_name not in FIELDS:
            raise KeyError(f"unknown field: {field_name}")
        return scan

    def update_field(self, scan_id: str, field_name: str, value: str) -> Dict[str, Any]:
        with self._lock:
            scan = self._require(scan_id, field_name)
            scan["fields"][field_name]["value"] = value
            self._save()
        return scan

    def lock_field(self, scan_id: str, field_name: str) -> bool:
        """Toggle the lock on one field, returns the new state."""
        with self._lock:
            scan = self._require(scan_id, field_name)
            entry = scan["fields"][field_name]
            entry["locked"] = not entry["locked"]
            self._save()
        return entry["locked"]

    def merge_fields(self, scan_id: str, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Overwrite unlocked, non-empty fields from a re-scan; locked ones stay."""
        with self._lock:
            scan = self.get_scan(scan_id)
            if scan is None:
                raise KeyError(f"unknown scan: {scan_id}")
            for f in FIELDS:
                v = values.get(f)
                if v and not scan["fields"][f]["locked"]:
                    scan["fields"][f]["value"] = str(v)
            self._save()
        return scan

    def delete_scan(self, scan_id: str) -> bool:
        with self._lock:
            for day in self._days.values():
                for i, scan in enumerate(day["scans"]):
                    if scan["id"] == scan_id:
                        del day["scans"][i]
                        self._save()
                        return True
        return False
