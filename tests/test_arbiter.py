import unittest
from datetime import datetime, timezone

from licence_scan.extractors.arbiter import (
    extract_fields, select_best, is_success,
    CANONICAL_REQUIRED, STRICT_REQUIRED, ExtractedRecord,
)
from licence_scan.extractors.candidates import CandidateTable, FIELDS

NOW = datetime(2025, 6, 1)

FULL_LICENCE = """
    NAME John Smith
    DOR 01/01/1990
    ISSUE 01/01/2024
    VALID 01/01/2025
    SPOUSE/PARTNER Jane Smith
    OTHER
    Child 1
    Child 2
    Licence
"""


class TestExtractFields(unittest.TestCase):
    def test_full_labeled_record(self) -> None:
        record, _ = extract_fields(FULL_LICENCE, now=NOW)
        self.assertEqual(record.fields(), {
            "id": "",
            "name": "John Smith",
            "dor": "01/01/1990",
            "issue": "01/01/2024",
            "valid": "01/01/2025",
            "spouse_partner": "Jane Smith",
            "other": "Child 1, Child 2",
        })
        self.assertTrue(record.success)

    def test_partial_record(self) -> None:
        record, _ = extract_fields("NAME John Smith\nDOR 01/01/1990\nLicence", now=NOW)
        self.assertEqual(record.name, "John Smith")
        self.assertEqual(record.dor, "01/01/1990")
        self.assertEqual((record.issue, record.valid, record.spouse_partner, record.other), ("", "", "", ""))
        self.assertFalse(record.success)

    def test_bare_id_without_label(self) -> None:
        record, _ = extract_fields("12345678\nNAME John Smith\nDOR 01/01/1990", now=NOW)
        self.assertEqual(record.id, "12345678")
        record, _ = extract_fields("ID: 12345678\nNAME John Smith", now=NOW)
        self.assertEqual(record.id, "12345678")

    def test_unlabeled_date_line_with_range(self) -> None:
        text = "NAME John Smith\n01/01/1982 22/08/2024 01/10/2024 - 30/09/2025"
        record, _ = extract_fields(text, now=NOW)
        self.assertEqual(record.dor, "01/01/1982")
        self.assertEqual(record.issue, "22/08/2024")
        self.assertEqual(record.valid, "01/10/2024 - 30/09/2025")
        self.assertTrue(record.success)

    def test_issue_and_valid_on_one_line_leave_dor_empty(self) -> None:
        record, _ = extract_fields("NAME John Smith\nISSUE 22/08/2024 VALID 30/09/2025", now=NOW)
        self.assertEqual((record.issue, record.valid), ("22/08/2024", "30/09/2025"))
        self.assertEqual(record.dor, "")
        self.assertFalse(record.success)

    def test_old_issue_date_is_not_a_dor(self) -> None:
        record, _ = extract_fields("NAME John Smith\nISSUE 01/01/2000\nVALID 01/01/2030", now=NOW)
        self.assertEqual(record.issue, "01/01/2000")
        self.assertEqual(record.dor, "")
        self.assertFalse(record.success)

    def test_bare_labels_only(self) -> None:
        text = "NAME\nDOR\nISSUE\nVALID\nSPOUSE/PARTNER\nOTHER\nLicence"
        record, table = extract_fields(text, now=NOW)
        self.assertEqual(record, ExtractedRecord())
        self.assertFalse(record.success)
        self.assertTrue(table.is_empty())

    def test_empty_and_none_input(self) -> None:
        for text in ("", None, "   \n\n"):
            record, table = extract_fields(text, now=NOW)
            self.assertTrue(all(v == "" for v in record.fields().values()))
            self.assertFalse(record.success)
            self.assertTrue(table.is_empty())

    def test_noise_does_not_raise(self) -> None:
        record, _ = extract_fields("~~ |||| 0/0/0 -- 99/99/99 ##\n\x00\t", now=NOW)
        self.assertFalse(record.success)

    def test_idempotent(self) -> None:
        first = extract_fields(FULL_LICENCE, now=NOW)
        second = extract_fields(FULL_LICENCE, now=NOW)
        self.assertEqual(first[0], second[0])
        self.assertEqual(first[1], second[1])

    def test_created_at_is_injected_and_ignored_by_equality(self) -> None:
        stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
        record, _ = extract_fields(FULL_LICENCE, now=NOW, created_at=stamp)
        self.assertEqual(record.created_at, stamp)
        self.assertEqual(record, extract_fields(FULL_LICENCE, now=NOW)[0])
        self.assertEqual(record.to_dict()["created_at"], 1704067200000)
        self.assertEqual(record.to_dict()["type"], "family_season_licence")

    def test_strict_required_needs_id(self) -> None:
        record, _ = extract_fields(FULL_LICENCE, now=NOW, required=STRICT_REQUIRED)
        self.assertFalse(record.success)
        record, _ = extract_fields("1234567\n" + FULL_LICENCE, now=NOW, required=STRICT_REQUIRED)
        self.assertTrue(record.success)

    def test_labeled_value_beats_heuristic(self) -> None:
        text = "Bob Jones 1234567\nNAME John Smith"
        record, table = extract_fields(text, now=NOW)
        self.assertEqual(record.name, "John Smith")
        self.assertEqual([c.value for c in table["name"]], ["Bob Jones", "John Smith"])

    def test_implicit_dependents_after_spouse_address(self) -> None:
        text = "NAME John Smith\nJane Smith Road\nTom Smith\nAmy Smith"
        record, table = extract_fields(text, now=NOW)
        self.assertEqual(record.spouse_partner, "Jane Smith")
        self.assertEqual(record.other, "Tom Smith, Amy Smith")
        self.assertEqual(table["other"][0].confidence, 0.8)

    def test_explicit_section_skips_holder_and_spouse(self) -> None:
        text = "NAME John Smith\nSPOUSE/PARTNER Jane Smith\nOTHER\nJohn Smith\nJane Smith\nTom\nLicence"
        record, table = extract_fields(text, now=NOW)
        self.assertEqual(record.other, "Tom")
        self.assertEqual((table["other"][0].confidence, table["other"][0].line), (1.0, 2))


class TestSelection(unittest.TestCase):
    def test_highest_confidence_wins(self) -> None:
        table = CandidateTable()
        table.add("name", "Bob", 0.9, 0, "name-before-id")
        table.add("name", "John", 1.0, 3, "name-labeled")
        self.assertEqual(select_best(table)["name"], "John")

    def test_ties_go_to_earliest_candidate(self) -> None:
        table = CandidateTable()
        table.add("dor", "01/01/1980", 0.8, 5, "dor-age-range")
        table.add("dor", "02/02/1981", 0.8, 1, "dor-age-range")
        self.assertEqual(select_best(table)["dor"], "01/01/1980")

    def test_empty_fields_are_blank(self) -> None:
        self.assertEqual(select_best(CandidateTable()), {f: "" for f in FIELDS})

    def test_unknown_field_rejected(self) -> None:
        with self.assertRaises(KeyError):
            CandidateTable().add("address", "x", 1.0, 0, "nope")

    def test_success_uses_required_set(self) -> None:
        values = {"id": "", "name": "a", "dor": "b", "issue": "c", "valid": "d"}
        self.assertTrue(is_success(values, CANONICAL_REQUIRED))
        self.assertFalse(is_success(values, STRICT_REQUIRED))
