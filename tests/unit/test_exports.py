# SPDX-License-Identifier: MIT
"""Tests for CSV exports of student selections."""

import csv
import io

import pytest

from elective_sync.exports import (
    UTF8_BOM,
    course_enrollments_to_csv,
    format_date,
    pending_or_approved,
    selections_to_csv,
    translate_status,
)


def _rows(content):
    return list(csv.reader(io.StringIO(content)))


class TestSelectionsToCsv:
    """Test cases for selections_to_csv."""

    def test_english_export(self, selection_rows):
        """Test headers, rows and date formatting in English."""
        content = selections_to_csv(selection_rows[:2])

        assert _rows(content) == [
            ["Student Name", "Email", "Status", "Selection Date"],
            ["Anna Petrova", "anna@example.edu", "pending", "Mar 5, 2024"],
            ["Ivan Smirnov", "ivan@example.edu", "approved", "Mar 6, 2024"],
        ]

    def test_every_field_is_quoted(self, selection_rows):
        """Test quoting of all fields."""
        first_line = selections_to_csv(selection_rows[:1]).splitlines()[1]

        assert first_line == '"Anna Petrova","anna@example.edu","pending","Mar 5, 2024"'

    def test_russian_export(self, selection_rows):
        """Test localized headers and statuses."""
        rows = _rows(selections_to_csv(selection_rows[:2], language="ru"))

        assert rows[0] == ["Имя студента", "Электронная почта", "Статус", "Дата выбора"]
        assert rows[1][2] == "На рассмотрении"
        assert rows[2][2] == "Утверждено"
        assert rows[1][3] == "5 мар. 2024 г."

    def test_missing_profile_fields(self):
        """Test that missing profile data is written as N/A."""
        rows = _rows(selections_to_csv([{"status": "pending", "profiles": None}]))

        assert rows[1] == ["N/A", "N/A", "pending", "N/A"]

    def test_commas_and_quotes_are_escaped(self):
        """Test values that need CSV escaping."""
        selection = {
            "status": "approved",
            "profiles": {"full_name": 'Smith, John "Jack"', "email": "j@example.edu"},
        }

        rows = _rows(selections_to_csv([selection]))

        assert rows[1][0] == 'Smith, John "Jack"'

    def test_empty_export_has_header_only(self):
        """Test exporting no selections."""
        assert selections_to_csv([]) == '"Student Name","Email","Status","Selection Date"\n'

    def test_bom(self):
        """Test the optional byte order mark."""
        assert selections_to_csv([], include_bom=True).startswith(UTF8_BOM)

    def test_unsupported_language(self):
        """Test language validation."""
        with pytest.raises(ValueError, match="Unsupported language"):
            selections_to_csv([], language="de")


class TestHelpers:
    """Test cases for export helpers."""

    def test_pending_or_approved(self, selection_rows):
        """Test the counting filter."""
        rows = selection_rows + [{"id": 4, "status": "rejected"}]

        assert [r["id"] for r in pending_or_approved(rows)] == [1, 2, 3]

    @pytest.mark.parametrize(
        "status, expected",
        [
            ("approved", "Утверждено"),
            ("pending", "На рассмотрении"),
            ("rejected", "Отклонено"),
        ],
    )
    def test_translate_status_ru(self, status, expected):
        """Test Russian status labels."""
        assert translate_status(status, "ru") == expected

    def test_translate_status_en_is_raw(self):
        """Test that English keeps the stored status."""
        assert translate_status("rejected", "en") == "rejected"

    def test_format_date_keeps_unparsable_value(self):
        """Test that unknown date formats pass through."""
        assert format_date("yesterday") == "yesterday"

    def test_format_date_with_offset(self):
        """Test timestamps with a UTC offset."""
        assert format_date("2024-12-31T23:00:00+00:00") == "Dec 31, 2024"

    def test_course_enrollments(self, selection_rows):
        """Test the per-course export filter."""
        selection_rows[0]["selected_course_ids"] = ["c-1", "c-2"]
        selection_rows[1]["selected_course_ids"] = ["c-2"]
        selection_rows[2]["selected_course_ids"] = ["c-1"]
        selection_rows[2]["status"] = "rejected"

        rows = _rows(course_enrollments_to_csv(selection_rows, "c-1"))

        assert [r[0] for r in rows[1:]] == ["Anna Petrova"]

    @pytest.mark.parametrize(
        "course_id, stored_ids",
        [
            (17, ["17", "18"]),
            ("17", [17, 18]),
        ],
    )
    def test_course_enrollments_match_ids_of_either_type(
        self, selection_rows, course_id, stored_ids
    ):
        """Test that numeric and string course ids are treated as equal."""
        selection_rows[0]["selected_course_ids"] = stored_ids
        selection_rows[1]["selected_course_ids"] = ["180"]

        rows = _rows(course_enrollments_to_csv(selection_rows, course_id))

        assert [r[0] for r in rows[1:]] == ["Anna Petrova"]
