import unittest
from datetime import datetime
from unittest import mock

from licence_scan.extractors import pipeline

LICENCE_TEXT = "FAMILY SEASON LICENCE\nNAME John Smith 1234567\n01/01/1982 22/08/2024 01/10/2024 - 30/09/2025\n"


class TestExtractText(unittest.TestCase):
    def test_result_shape(self) -> None:
        result = pipeline.extract_text(LICENCE_TEXT, now=datetime(2025, 6, 1))
        self.assertTrue(result["success"])
        self.assertEqual(result["fields"]["id"], "1234567")
        self.assertEqual(result["fields"]["valid"], "01/10/2024 - 30/09/2025")
        self.assertEqual(result["matches"]["id"][0], {"value": "1234567", "confidence": 1.0,
                                                      "line": 1, "pattern": "id-pattern"})
        self.assertIn("version", result["meta"])


class TestScanDocument(unittest.TestCase):
    def test_image_goes_through_ocr(self) -> None:
        info = {"engine": "pytesseract", "mode": "auto", "confidence": 0.91}
        with mock.patch.object(pipeline, "ocr_image_to_text", return_value=(LICENCE_TEXT, info)) as ocr:
            result = pipeline.scan_document("/tmp/card.JPG", mode="auto")
        ocr.assert_called_once()
        self.assertEqual(result["fields"]["name"], "John Smith")
        self.assertEqual(result["ocr_text"], LICENCE_TEXT)
        self.assertEqual(result["meta"]["io_info"], info)

    def test_pdf_goes_through_pdf_ocr(self) -> None:
        with mock.patch.object(pipeline, "pdf_ocr_text", return_value=("", {"error": "ocr_error:x"})):
            result = pipeline.scan_document("/tmp/card.pdf")
        self.assertFalse(result["success"])
        self.assertEqual(result["fields"]["name"], "")
        self.assertEqual(result["meta"]["io_info"]["error"], "ocr_error:x")

    def test_unsupported_extension(self) -> None:
        result = pipeline.scan_document("/tmp/card.gif")
        self.assertEqual(result["meta"]["warning"], "unsupported_ext:.gif")
        self.assertFalse(result["success"])
