# licence_scan/main.py
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional
from flask import Flask, Response, request, jsonify
from flask_cors import CORS
from werkzeug.utils import secure_filename

from licence_scan.config import Config
from licence_scan.export import scans_to_csv
from licence_scan.extractors.candidates import FIELDS
from licence_scan.extractors.io_image import SCAN_MODES
from licence_scan.extractors.pipeline import extract_text, scan_document
from licence_scan.scans import ScanStore

logger = logging.getLogger(__name__)

ALLOWED_EXTS = {".pdf", ".png", ".jpg", ".jpeg"}


def create_app(store: Optional[ScanStore] = None) -> Flask:
    app = Flask(__name__)
    CORS(app)

    try:
        (Path(app.instance_path) / "uploads").mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning("could not create instance folder: %s", e)

    app.extensions["scan_store"] = store or ScanStore(
        Config.scan_store_path(app.instance_path),
        max_items=Config.scan_max_items(),
        retention_days=Config.scan_retention_days(),
    )

    def _store() -> ScanStore:
        return app.extensions["scan_store"]

    @app.get("/")
    def root():
        return jsonify({"ok": True, "service": "licence-scan", "path": "/"}), 200

    @app.get("/health")
    def health():
        return jsonify({"ok": True}), 200

    @app.get("/healthz")
    def healthz():
        return jsonify({"ok": True, "service": "licence-scan"}), 200

    @app.get("/debug/info")
    def debug_info():
        import shutil, sys
        bins = {
            "tesseract": shutil.which("tesseract") or "",
            "python": sys.executable,
            "port": os.getenv("PORT", ""),
        }
        return jsonify({"ok": True, "bins": bins, "modes": sorted(SCAN_MODES)}), 200

    @app.post("/extract")
    def api_extract():
        payload = request.get_json(silent=True) or {}
        text = payload.get("text") if payload else request.form.get("text")
        if text is None:
            return _json_err("bad_request", "Missing 'text'", 400)
        if not isinstance(text, str):
            return _json_err("bad_request", "'text' must be a string", 400)
        result = extract_text(text, required=Config.required_fields())
        return jsonify({"ok": True, **result})

    @app.post("/scan")
    def api_scan():
        try:
            file = request.files.get("file")
            if not file or not getattr(file, "filename", ""):
                return _json_err("bad_request", "No file received", 400)
            ext = Path(file.filename).suffix.lower()
            if ext not in ALLOWED_EXTS:
                return _json_err("unsupported_type", f"Unsupported extension: {ext}", 415)

            tmp = Path(app.instance_path) / "uploads"
            tmp.mkdir(parents=True, exist_ok=True)
            dest = tmp / secure_filename(file.filename)
            file.save(dest)

            mode = (request.args.get("mode") or Config.ocr_mode()).lower()
            result = scan_document(str(dest), mode=mode, required=Config.required_fields())
            status = "error" if result["meta"].get("io_info", {}).get("error") else "completed"
            scan = _store().add_scan(result, status=status)
            return jsonify({"ok": True, "scan": scan, "meta": result["meta"], "success": result["success"]})
        except Exception as e:
            logger.exception("scan failed")
            return _json_err("internal_error", str(e), 500)

    @app.get("/scans")
    def api_scans():
        day = request.args.get("day")
        return jsonify({"ok": True, "day": day or _store().today(), "scans": _store().list_scans(day)})

    @app.get("/scans/export.csv")
    def api_export():
        day = request.args.get("day")
        scans = _store().all_scans() if day == "all" else _store().list_scans(day)
        return Response(scans_to_csv(scans), mimetype="text/csv")

    @app.get("/scans/<scan_id>")
    def api_scan_get(scan_id: str):
        scan = _store().get_scan(scan_id)
        if scan is None:
            return _json_err("not_found", f"Unknown scan: {scan_id}", 404)
        return jsonify({"ok": True, "scan": scan})

    @app.delete("/scans/<scan_id>")
    def api_scan_delete(scan_id: str):
        if not _store().delete_scan(scan_id):
            return _json_err("not_found", f"Unknown scan: {scan_id}", 404)
        return jsonify({"ok": True})

    @app.patch("/scans/<scan_id>/fields")
    def api_fields_merge(scan_id: str):
        values: Dict[str, Any] = request.get_json(silent=True) or {}
        unknown = sorted(set(values) - set(FIELDS))
        if unknown:
            return _json_err("bad_request", f"Unknown fields: {', '.join(unknown)}", 400)
        try:
            scan = _store().merge_fields(scan_id, values)
        except KeyError as e:
            return _json_err("not_found", str(e.args[0]), 404)
        return jsonify({"ok": True, "scan": scan})

    @app.put("/scans/<scan_id>/fields/<field_name>")
    def api_field_update(scan_id: str, field_name: str):
        value = (request.get_json(silent=True) or {}).get("value")
        if not isinstance(value, str):
            return _json_err("bad_request", "'value' must be a string", 400)
        try:
            scan = _store().update_field(scan_id, field_name, value)
        except KeyError as e:
            return _json_err("not_found", str(e.args[0]), 404)
        return jsonify({"ok": True, "scan": scan})

    @app.post("/scans/<scan_id>/fields/<field_name>/lock")
    def api_field_lock(scan_id: str, field_name: str):
        try:
            locked = _store().lock_field(scan_id, field_name)
        except KeyError as e:
            return _json_err("not_found", str(e.args[0]), 404)
        return jsonify({"ok": True, "field": field_name, "locked": locked})

    return app


def _json_err(code: str, msg: str, status: int):
    return jsonify({"ok": False, "error": {"code": code, "message": msg}}), status
