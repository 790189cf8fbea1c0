# licence_scan/extractors/pipeline.py
from __future__ import annotations
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from .arbiter import extract_fields, CANONICAL_REQUIRED
from .io_image import ocr_image_to_text, pdf_ocr_text, scan_mode
from .patterns import PATTERNS_VERSION

logger = logging.getLogger(__name__)

IMAGE_EXTS = (".png", ".jpg", ".jpeg")
PDF_EXTS = (".pdf",)


def extract_text(text: Optional[str],
                 required: Sequence[str] = CANONICAL_REQUIRED,
                 now: Optional[datetime] = None) -> Dict[str, Any]:
    """Run the field extraction on text that was already recognised."""
    record, table = extract_fields(text, now=now, required=required)
    return {
        "meta": {"version": PATTERNS_VERSION},
        "fields": record.to_dict(),
        "matches": table.to_dict(),
        "success": record.success,
    }


def scan_document(path: str,
                  mode: Optional[str] = None,
                  required: Sequence[str] = CANONICAL_REQUIRED) -> Dict[str, Any]:
    """
    OCR an image or PDF and extract the licence fields from the text.
    mode: one of io_image.SCAN_MODES, unknown ids fall back to "auto"
    """
    p = Path(path)
    ext = p.suffix.lower()

    if ext in IMAGE_EXTS:
        text, info = ocr_image_to_text(p, mode=mode)
    elif ext in PDF_EXTS:
        text, info = pdf_ocr_text(p, mode=mode)
    else:
        result = extract_text("", required=required)
        result["meta"].update({"source": str(p), "warning": f"unsupported_ext:{ext}"})
        result["ocr_text"] = ""
        return result

    result = extract_text(text, required=required)
    result["meta"].update({"source": str(p), "mode": scan_mode(mode or info.get("mode")), "io_info": info})
    result["ocr_text"] = text
    if not result["success"]:
        logger.info("incomplete extraction for %s (ocr confidence=%s)", p.name, info.get("confidence"))
    return result
