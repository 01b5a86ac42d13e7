"""
Tests for services/grading.py: grading bands, roster eligibility and pre-fill.
"""

from datetime import date
from decimal import Decimal

import pytest

from gradebook.models import Exam, Grade, Student, StudentStatus
from gradebook.services.grading import (
    compute_grade,
    eligible_roster,
    format_marks,
    is_eligible,
    parse_mark,
    prefill_marks,
)


def _exam(section=None, class_name="5"):
    return Exam(
        id=1,
        school_id=1,
        name="Midterm",
        subject="Science",
        class_name=class_name,
        section=section,
        exam_date=date(2026, 3, 10),
        total_marks=100,
    )


def _student(sid, class_name="5", section="A", status=StudentStatus.ACTIVE):
    return Student(
        id=sid,
        school_id=1,
        name=f"Student {sid}",
        roll_number=str(sid),
        class_name=class_name,
        section=section,
        status=status,
    )


class TestComputeGrade:
    """Tests for compute_grade."""

    @pytest.mark.parametrize(
        "marks,gpa,letter",
        [
            (100, "4.0", "A+"),
            (90, "4.0", "A+"),
            (85, "3.5", "A"),
            (80, "3.5", "A"),
            (75, "3.0", "B+"),
            (60, "2.5", "B"),
            (55, "2.0", "C+"),
            (40, "1.5", "C"),
            (33, "1.0", "D"),
            (32, "0.0", "F"),
            (0, "0.0", "F"),
        ],
    )
    def test_bands(self, marks, gpa, letter):
        result = compute_grade(marks, 100)
        assert result.gpa == Decimal(gpa)
        assert result.letter_grade == letter

    def test_just_below_a_plus(self):
        result = compute_grade(Decimal("89.99"), 100)
        assert result.percentage == Decimal("89.99")
        assert result.letter_grade == "A"
        assert result.gpa == Decimal("3.5")

    def test_band_uses_exact_ratio(self):
        # 89.995% rounds to 90.00 for display but stays in the A band
        result = compute_grade(Decimal("179.99"), 200)
        assert result.percentage == Decimal("90.00")
        assert result.letter_grade == "A"

    def test_percentage_rounded_half_up(self):
        assert compute_grade(1, 3).percentage == Decimal("33.33")
        assert compute_grade(2, 3).percentage == Decimal("66.67")
        assert compute_grade(Decimal("0.125"), 1).percentage == Decimal("12.50")

    def test_non_hundred_total(self):
        result = compute_grade(45, 50)
        assert result.percentage == Decimal("90.00")
        assert result.letter_grade == "A+"

    def test_accepts_floats_without_noise(self):
        assert compute_grade(72.5, 100).percentage == Decimal("72.50")

    def test_zero_total_raises(self):
        with pytest.raises(ZeroDivisionError):
            compute_grade(10, 0)

    def test_monotonic_in_marks(self):
        previous = None
        for marks in range(0, 101):
            result = compute_grade(marks, 100)
            if previous is not None:
                assert result.percentage >= previous.percentage
                assert result.gpa >= previous.gpa
            previous = result


class TestParseMark:
    """Tests for parse_mark."""

    def test_valid_numbers(self):
        assert parse_mark("85") == Decimal("85")
        assert parse_mark(" 72.5 ") == Decimal("72.5")
        assert parse_mark("-3") == Decimal("-3")

    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", "85abc", "NaN", "Infinity"])
    def test_rejected(self, raw):
        assert parse_mark(raw) is None

    def test_rounded_to_two_decimals(self):
        assert parse_mark("39.995") == Decimal("40.00")
        assert parse_mark("72.504") == Decimal("72.50")
        assert parse_mark("85").as_tuple().exponent == -2

    def test_too_large_to_store(self):
        assert parse_mark("1e30") is None


class TestEligibility:
    """Tests for is_eligible and eligible_roster."""

    def test_exam_without_section_takes_all_sections(self):
        exam = _exam(section=None)
        assert is_eligible(_student(1, section="A"), exam)
        assert is_eligible(_student(2, section="B"), exam)

    def test_exam_section_must_match(self):
        exam = _exam(section="A")
        assert is_eligible(_student(1, section="A"), exam)
        assert not is_eligible(_student(2, section="B"), exam)

    def test_other_class_excluded(self):
        assert not is_eligible(_student(1, class_name="6"), _exam())

    @pytest.mark.parametrize(
        "status", [StudentStatus.INACTIVE, StudentStatus.ALUMNI, StudentStatus.SUSPENDED]
    )
    def test_non_active_excluded(self, status):
        assert not is_eligible(_student(1, status=status), _exam())

    def test_roster_filters(self):
        students = [
            _student(1),
            _student(2, class_name="6"),
            _student(3, status=StudentStatus.INACTIVE),
            _student(4, section="B"),
        ]
        roster = eligible_roster(_exam(), students)
        assert [s.id for s in roster] == [1, 4]


class TestPrefill:
    """Tests for prefill_marks and format_marks."""

    def test_format_marks(self):
        assert format_marks(Decimal("85.00")) == "85"
        assert format_marks(Decimal("72.50")) == "72.5"
        assert format_marks(Decimal("100.00")) == "100"

    def test_prefill(self):
        grades = [
            Grade(id=11, student_id=1, exam_id=1, marks_obtained=Decimal("85.00")),
            Grade(id=12, student_id=2, exam_id=1, marks_obtained=Decimal("40.50")),
        ]
        marks, existing = prefill_marks(grades)
        assert marks == {1: "85", 2: "40.5"}
        assert existing == {1: 11, 2: 12}
