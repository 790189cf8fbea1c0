# licence_scan/config.py
from __future__ import annotations
import os
from pathlib import Path
from typing import Optional, Tuple

from licence_scan.extractors.arbiter import REQUIRED_FIELD_SETS, CANONICAL_REQUIRED


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if (raw and raw.strip().isdigit()) else default


class Config:
    """Settings read from the environment at call time."""

    @staticmethod
    def ocr_lang() -> str:
        return os.getenv("OCR_LANG", "eng")

    @staticmethod
    def ocr_mode() -> str:
        return os.getenv("OCR_MODE", "auto")

    @staticmethod
    def max_pages() -> Optional[int]:
        n = _int_env("MAX_PAGES", 0)
        return n if n > 0 else None

    @staticmethod
    def ocr_max_width() -> int:
        return _int_env("OCR_MAX_WIDTH", 1600)

    @staticmethod
    def scan_store_path(instance_path: str) -> Path:
        raw = os.getenv("SCAN_STORE_PATH")
        return Path(raw) if raw else Path(instance_path) / "scans.json"

    @staticmethod
    def scan_max_items() -> int:
        return _int_env("SCAN_MAX_ITEMS", 20)

    @staticmethod
    def scan_retention_days() -> int:
        return _int_env("SCAN_RETENTION_DAYS", 30)

    @staticmethod
    def required_fields() -> Tuple[str, ...]:
        key = (os.getenv("LICENCE_REQUIRED_FIELDS") or "canonical").strip().lower()
        return REQUIRED_FIELD_SETS.get(key, CANONICAL_REQUIRED)
