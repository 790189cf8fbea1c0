# licence_scan/extractors/io_image.py
from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import cv2
import numpy as np
from PIL import Image, ImageOps
import pytesseract
import pypdfium2 as pdfium

from licence_scan.config import Config

logger = logging.getLogger(__name__)

_WHITELIST = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789/:-.,@ "

# Tesseract presets, picked per scan
SCAN_MODES: Dict[str, Dict[str, Any]] = {
    "auto": {
        "name": "Auto Mode",
        "psm": 3,
        "options": {},
    },
    "auto-whitelist": {
        "name": "Auto Mode - with whitelist",
        "psm": 3,
        "options": {"tessedit_char_whitelist": _WHITELIST},
    },
    "sparse_text_osd": {
        "name": "Sparse Text OSD Mode",
        "psm": 12,
        "options": {},
    },
    "single_block": {
        "name": "(legacy) Single Block",
        "psm": 6,
        "options": {"tessedit_char_whitelist": _WHITELIST, "preserve_interword_spaces": "1"},
    },
}
DEFAULT_MODE = "auto"


def scan_mode(mode: Optional[str]) -> str:
    return mode if mode in SCAN_MODES else DEFAULT_MODE


def _tess_config(mode: str) -> str:
    preset = SCAN_MODES[scan_mode(mode)]
    parts = [f"--oem 1 --psm {preset['psm']}"]
    for k, v in preset["options"].items():
        # the whitelist holds a space, so it has to be quoted
        parts.append(f'-c {k}="{v}"' if " " in str(v) else f"-c {k}={v}")
    return " ".join(parts)


MIN_DESKEW_ANGLE = 1.0
MAX_DESKEW_ANGLE = 30.0


def _touches_border(x: int, y: int, w: int, h: int, shape: Tuple[int, ...]) -> bool:
    H, W = shape[:2]
    return x <= 1 or y <= 1 or x + w >= W - 1 or y + h >= H - 1


def _card_contour(gray: np.ndarray) -> Optional[np.ndarray]:
    """Largest card-shaped contour, light card on dark ground or the reverse."""
    img_area = float(gray.shape[0] * gray.shape[1])
    blur = cv2.GaussianBlur(gray, (5, 5), 0)
    th = cv2.threshold(blur, 0, 255, cv2.THRESH_BINARY | cv2.THRESH_OTSU)[1]
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (5, 5))
    best, best_area = None, 0.0
    for mask in (th, cv2.bitwise_not(th)):
        mask = cv2.morphologyEx(mask, cv2.MORPH_CLOSE, kernel)
        cnts = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)[-2]
        for c in cnts:
            area = cv2.contourArea(c)
            if area < img_area * 0.1:
                continue
            x, y, w, h = cv2.boundingRect(c)
            if _touches_border(x, y, w, h, gray.shape):
                continue
            if not (1.0 <= w / float(h) <= 2.5):
                continue
            if area > best_area:
                best, best_area = c, area
    return best


def skew_angle(gray: np.ndarray) -> Optional[float]:
    """Tilt of the card's long edge in degrees, positive when the right end dips."""
    c = _card_contour(gray)
    if c is None:
        return None
    box = cv2.boxPoints(cv2.minAreaRect(c))
    edges = [(box[i], box[(i + 1) % 4]) for i in range(4)]
    p, q = max(edges, key=lambda e: float(np.hypot(*(e[1] - e[0]))))
    angle = float(np.degrees(np.arctan2(q[1] - p[1], q[0] - p[0])))
    while angle > 45:
        angle -= 90
    while angle <= -45:
        angle += 90
    return angle


def deskew(gray: np.ndarray) -> np.ndarray:
    """Rotate a grayscale photo so the card sits level; the angle is clamped."""
    angle = skew_angle(gray)
    if angle is None or abs(angle) < MIN_DESKEW_ANGLE:
        return gray
    angle = max(-MAX_DESKEW_ANGLE, min(MAX_DESKEW_ANGLE, angle))
    logger.debug("deskewing by %.1f degrees", angle)
    h, w = gray.shape[:2]
    M = cv2.getRotationMatrix2D((w / 2.0, h / 2.0), angle, 1.0)
    return cv2.warpAffine(gray, M, (w, h), flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_REPLICATE)


def preprocess_image(img: Image.Image, max_width: Optional[int] = None) -> Image.Image:
    """Deskew, bounded width, contrast stretch and Otsu binarisation."""
    img = ImageOps.exif_transpose(img)
    gray = cv2.cvtColor(np.asarray(img.convert("RGB")), cv2.COLOR_RGB2GRAY)
    gray = deskew(gray)
    max_width = max_width or Config.ocr_max_width()
    h, w = gray.shape[:2]
    if w > max_width:
        gray = cv2.resize(gray, (max_width, max(1, round(h * max_width / w))), interpolation=cv2.INTER_AREA)
    gray = cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX)
    bw = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY | cv2.THRESH_OTSU)[1]
    return Image.fromarray(bw)


def _render_pdf_to_images(p: Path, dpi: int = 300, max_pages: Optional[int] = None) -> List[Image.Image]:
    doc = pdfium.PdfDocument(str(p))
    n = len(doc)
    limit = min(n, max_pages) if (isinstance(max_pages, int) and max_pages > 0) else n
    imgs: List[Image.Image] = []
    for i in range(limit):
        page = doc.get_page(i)
        imgs.append(page.render(scale=dpi / 72.0).to_pil())
        page.close()
    doc.close()
    return imgs


def _mean_confidence(img: Image.Image, lang: str, config: str) -> Optional[float]:
    data = pytesseract.image_to_data(img, lang=lang, config=config, output_type=pytesseract.Output.DICT)
    confs = [float(c) for c in data.get("conf", []) if float(c) >= 0]
    if not confs:
        return None
    return round(sum(confs) / len(confs) / 100.0, 3)


def _ocr(img: Image.Image, mode: str) -> Tuple[str, Optional[float]]:
    lang, config = Config.ocr_lang(), _tess_config(mode)
    prepared = preprocess_image(img)
    txt = pytesseract.image_to_string(prepared, lang=lang, config=config) or ""
    txt = txt.replace("\u00a0", " ")
    return txt, _mean_confidence(prepared, lang, config)


def ocr_image_to_text(p: Path, mode: Optional[str] = None) -> Tuple[str, Dict]:
    mode = scan_mode(mode or Config.ocr_mode())
    info: Dict = {"engine": "pytesseract", "lang": Config.ocr_lang(), "mode": mode}
    try:
        with Image.open(str(p)) as img:
            txt, conf = _ocr(img, mode)
        info["confidence"] = conf
        return txt, info
    except Exception as e:
        logger.warning("OCR failed for %s: %s", p, e)
        info["error"] = f"ocr_error:{type(e).__name__}:{e}"
        return "", info


def pdf_ocr_text(p: Path, mode: Optional[str] = None) -> Tuple[str, Dict]:
    """OCR every rendered page of a PDF (pypdfium2 -> PIL -> Tesseract)."""
    mode = scan_mode(mode or Config.ocr_mode())
    info: Dict = {"engine": "pytesseract", "lang": Config.ocr_lang(), "mode": mode, "dpi": 300}
    try:
        chunks, confs = [], []
        for img in _render_pdf_to_images(p, dpi=300, max_pages=Config.max_pages()):
            txt, conf = _ocr(img, mode)
            if txt.strip():
                chunks.append(txt)
            if conf is not None:
                confs.append(conf)
        info["confidence"] = round(sum(confs) / len(confs), 3) if confs else None
        return "\n\n".join(chunks).strip(), info
    except Exception as e:
        logger.warning("PDF OCR failed for %s: %s", p, e)
        info["error"] = f"ocr_error:{type(e).__name__}:{e}"
        return "", info
