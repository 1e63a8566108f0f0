from datetime import date, timedelta

import pytest

from prismpath.utils.access_code import (
    ACCESS_CODE_ALPHABET,
    format_access_code,
    generate_access_code,
    is_valid_access_code_format,
    normalize_access_code,
)
from prismpath.utils.dates import compliance_status, upcoming_deadlines
from prismpath.utils.password_validator import get_password_strength, validate_password
from prismpath.utils.text import format_ai_response, generate_strategy_id, split_list_lines

TODAY = date(2025, 1, 15)


class TestAccessCodes:
    def test_generated_codes_use_unambiguous_alphabet(self):
        for _ in range(50):
            code = generate_access_code()
            assert len(code) == 6
            assert all(c in ACCESS_CODE_ALPHABET for c in code)
            assert is_valid_access_code_format(code)

    def test_format_validation(self):
        assert is_valid_access_code_format("ABC123")
        assert not is_valid_access_code_format("abc123")
        assert not is_valid_access_code_format("ABC12")
        assert not is_valid_access_code_format("ABC123\n")
        assert not is_valid_access_code_format(None)

    def test_normalize(self):
        assert normalize_access_code(" x7b-29a ") == "X7B29A"
        assert normalize_access_code(None) == ""

    def test_display_format(self):
        assert format_access_code("ABC123") == "ABC-123"
        assert format_access_code("nope") == "nope"
        assert format_access_code("") == ""
        assert format_access_code(None) == ""


class TestComplianceStatus:
    @pytest.mark.parametrize("offset,status,label", [
        (-1, "overdue", "OVERDUE"),
        (0, "critical", "< 1 Month"),
        (30, "critical", "< 1 Month"),
        (31, "warning", "< 3 Months"),
        (90, "warning", "< 3 Months"),
        (180, "notice", "< 6 Months"),
        (181, "compliant", "Compliant"),
    ])
    def test_thresholds(self, offset, status, label):
        result = compliance_status((TODAY + timedelta(days=offset)).isoformat(), today=TODAY)
        assert result == {"status": status, "label": label, "days_remaining": offset}

    def test_missing_and_unparseable(self):
        assert compliance_status("", today=TODAY)["status"] == "none"
        assert compliance_status(None, today=TODAY)["label"] == "No Date"
        assert compliance_status("not a date", today=TODAY)["status"] == "none"

    def test_upcoming_deadlines_sorted_soonest_first(self):
        students = [
            {"id": "a", "name": "A", "next_iep_date": "2025-02-10", "next_504_date": "2025-01-10"},
            {"id": "b", "name": "B", "next_eval_date": "2025-01-20", "next_iep_date": "2026-01-01"},
        ]
        deadlines = upcoming_deadlines(students, within_days=30, today=TODAY)

        assert [(d["student_id"], d["plan"]) for d in deadlines] == [
            ("a", "504 Plan"),
            ("b", "Evaluation"),
            ("a", "IEP"),
        ]
        assert deadlines[0]["status"] == "overdue"


class TestPasswordValidation:
    def test_strong_password(self):
        result = validate_password("Correct-Horse-Battery-9")
        assert result["valid"]
        assert result["errors"] == []
        assert result["strength"] == "strong"

    def test_each_rule_reported(self):
        result = validate_password("short")
        assert not result["valid"]
        assert "Password must be at least 12 characters long" in result["errors"]
        assert "Password must contain at least one uppercase letter" in result["errors"]
        assert "Password must contain at least one number" in result["errors"]
        assert any("symbol" in e for e in result["errors"])

    def test_empty(self):
        assert validate_password("") == {"valid": False, "errors": ["Password is required"], "strength": "weak"}

    def test_strength_levels(self):
        assert validate_password("abc")["strength"] == "weak"
        assert validate_password("abcdefghijkl")["strength"] == "fair"
        assert validate_password("Abcdefghijk1")["strength"] == "good"
        assert get_password_strength("Abcdefghijk1!xyz")["label"] == "Strong"
        assert get_password_strength("")["level"] == 0


class TestText:
    def test_format_ai_response(self):
        raw = "Here are some ideas:\n**Bold** point.Next sentence\n## Heading"
        assert format_ai_response(raw) == "Bold point. Next sentence\n Heading"

    def test_split_list_lines(self):
        text = "Intro line\n1. First step\n2) Second step\n- Third\n• Fourth"
        assert split_list_lines(text) == ["First step", "Second step", "Third", "Fourth"]

    def test_split_without_markers_returns_lines(self):
        assert split_list_lines("alpha\n\n beta ") == ["alpha", "beta"]
        assert split_list_lines("") == []

    def test_strategy_id(self):
        assert generate_strategy_id("  Extended Time (1.5x)! ") == "extended-time-15x"
        assert generate_strategy_id("") is None
        assert generate_strategy_id("!!!").startswith("strategy-")
