"""
Tests for services/reporting.py: summaries, report cards, tabulation and class performance.
"""

from datetime import date
from decimal import Decimal

import pytest

from gradebook.models import Exam, Grade, Student, StudentStatus
from gradebook.services.grading import compute_grade
from gradebook.services.reporting import (
    FAIL,
    PASS,
    build_report_card,
    build_tabulation,
    class_performance,
    summarize,
)


def _exam(eid, subject, total=100, name="Midterm", class_name="5", semester="Spring", section=None):
    return Exam(
        id=eid,
        school_id=1,
        name=name,
        subject=subject,
        class_name=class_name,
        section=section,
        semester=semester,
        exam_date=date(2026, 3, 10),
        total_marks=total,
    )


def _student(sid, name, class_name="5", section="A"):
    return Student(
        id=sid,
        school_id=1,
        name=name,
        roll_number=str(sid),
        class_name=class_name,
        section=section,
        status=StudentStatus.ACTIVE,
    )


def _grade(student, exam, marks):
    graded = compute_grade(marks, exam.total_marks)
    return Grade(
        student_id=student.id,
        exam_id=exam.id,
        exam=exam,
        marks_obtained=Decimal(str(marks)),
        percentage=graded.percentage,
        gpa=graded.gpa,
        letter_grade=graded.letter_grade,
        exam_date=exam.exam_date,
    )


@pytest.fixture
def exams():
    return [_exam(1, "Mathematics"), _exam(2, "English"), _exam(3, "Science", total=50)]


class TestSummarize:
    """Tests for summarize."""

    def test_empty(self):
        summary = summarize([])
        assert summary.total_grades == 0
        assert summary.average_gpa == Decimal("0")
        assert str(summary.pass_rate) == "0.0"
        assert str(summary.excellence_rate) == "0.0"

    def test_rates(self, exams):
        s = _student(1, "Asha")
        grades = [
            _grade(s, exams[0], 95),   # 4.0
            _grade(s, exams[1], 80),   # 3.5
            _grade(s, exams[0], 30),   # 0.0
        ]
        summary = summarize(grades)
        assert summary.total_grades == 3
        assert summary.average_gpa == Decimal("2.50")
        assert summary.pass_rate == Decimal("66.7")
        assert summary.excellence_rate == Decimal("66.7")


class TestReportCard:
    """Tests for build_report_card."""

    def test_totals_and_pass(self, exams):
        s = _student(1, "Asha")
        grades = [_grade(s, exams[0], 80), _grade(s, exams[1], 70), _grade(s, exams[2], 45)]
        card = build_report_card(s, exams[0], grades)

        assert [r.subject for r in card.rows] == ["English", "Mathematics", "Science"]
        assert card.totals.marks_obtained == Decimal("195")
        assert card.totals.total_marks == 250
        assert card.totals.percentage == Decimal("78.00")
        assert card.totals.result == PASS

    def test_any_failed_subject_fails(self, exams):
        s = _student(1, "Asha")
        grades = [_grade(s, exams[0], 100), _grade(s, exams[1], 100), _grade(s, exams[2], 10)]
        card = build_report_card(s, exams[0], grades)
        assert card.totals.percentage == Decimal("84.00")
        assert card.totals.result == FAIL

    def test_low_overall_fails(self, exams):
        s = _student(1, "Asha")
        # D grades, no F, but overall below 40%
        grades = [_grade(s, exams[0], 35), _grade(s, exams[1], 35)]
        card = build_report_card(s, exams[0], grades)
        assert card.totals.result == FAIL

    def test_other_family_excluded(self, exams):
        s = _student(1, "Asha")
        final = _exam(9, "Mathematics", name="Final")
        other_semester = _exam(10, "English", semester="Autumn")
        grades = [_grade(s, exams[0], 80), _grade(s, final, 20), _grade(s, other_semester, 20)]
        card = build_report_card(s, exams[0], grades)
        assert [r.subject for r in card.rows] == ["Mathematics"]

    def test_no_grades(self, exams):
        card = build_report_card(_student(1, "Asha"), exams[0], [])
        assert card.rows == []
        assert card.totals.percentage == Decimal("0.00")
        assert card.totals.result == FAIL


class TestTabulation:
    """Tests for build_tabulation."""

    def test_ranking_and_missing_grades(self, exams):
        asha = _student(1, "Asha")
        bilal = _student(2, "Bilal")
        grades = [
            _grade(asha, exams[0], 50),
            _grade(asha, exams[1], 50),
            _grade(asha, exams[2], 25),
            _grade(bilal, exams[0], 90),
            _grade(bilal, exams[1], 90),
        ]
        sheet = build_tabulation("5", "A", "Midterm", [asha, bilal], exams, grades)

        assert sheet.subjects == ["English", "Mathematics", "Science"]
        first, second = sheet.students
        assert (first.rank, first.student_id) == (1, 2)
        assert first.total_obtained == Decimal("180")
        assert first.total_max == 250
        assert first.percentage == Decimal("72.0")
        assert first.subjects["Science"].marks_obtained is None
        assert first.result == PASS

        assert (second.rank, second.student_id) == (2, 1)
        assert second.percentage == Decimal("50.0")

    def test_below_pass_mark(self, exams):
        s = _student(1, "Asha")
        sheet = build_tabulation("5", None, "Midterm", [s], exams[:1], [_grade(s, exams[0], 39)])
        assert sheet.students[0].result == FAIL

    def test_section_exams_count_for_their_section_only(self):
        maths_a = _exam(1, "Mathematics", section="A")
        maths_b = _exam(2, "Mathematics", section="B")
        english = _exam(3, "English")
        asha = _student(1, "Asha", section="A")
        chen = _student(2, "Chen", section="B")
        grades = [
            _grade(asha, maths_a, 95),
            _grade(asha, english, 80),
            _grade(chen, maths_b, 60),
            _grade(chen, english, 70),
        ]
        sheet = build_tabulation(
            "5", None, "Midterm", [asha, chen], [maths_a, maths_b, english], grades
        )

        assert sheet.subjects == ["English", "Mathematics"]
        by_id = {row.student_id: row for row in sheet.students}
        assert by_id[1].total_max == 200
        assert by_id[1].total_obtained == Decimal("175")
        assert by_id[1].subjects["Mathematics"].marks_obtained == Decimal("95")
        assert by_id[2].total_max == 200
        assert by_id[2].total_obtained == Decimal("130")
        assert by_id[2].subjects["Mathematics"].marks_obtained == Decimal("60")

    def test_one_section_sheet(self):
        maths_a = _exam(1, "Mathematics", section="A")
        asha = _student(1, "Asha", section="A")
        sheet = build_tabulation("5", "A", "Midterm", [asha], [maths_a], [_grade(asha, maths_a, 95)])

        (row,) = sheet.students
        assert row.total_max == 100
        assert row.percentage == Decimal("95.0")
        assert row.result == PASS

    def test_section_exam_preferred_over_class_exam(self):
        maths_all = _exam(1, "Mathematics", total=50)
        maths_a = _exam(2, "Mathematics", section="A")
        asha = _student(1, "Asha", section="A")
        grades = [_grade(asha, maths_all, 10), _grade(asha, maths_a, 90)]
        sheet = build_tabulation("5", None, "Midterm", [asha], [maths_all, maths_a], grades)

        (row,) = sheet.students
        assert row.total_max == 100
        assert row.total_obtained == Decimal("90")
        assert row.subjects["Mathematics"].marks_obtained == Decimal("90")

    def test_class_exam_when_no_section_exam(self):
        maths_all = _exam(1, "Mathematics")
        maths_a = _exam(2, "Mathematics", section="A")
        bilal = _student(1, "Bilal", section="C")
        sheet = build_tabulation(
            "5", None, "Midterm", [bilal], [maths_all, maths_a], [_grade(bilal, maths_all, 70)]
        )

        (row,) = sheet.students
        assert row.total_max == 100
        assert row.total_obtained == Decimal("70")


class TestClassPerformance:
    """Tests for class_performance."""

    def test_groups_by_class_section(self, exams):
        a1 = _student(1, "Asha", section="A")
        a2 = _student(2, "Bilal", section="A")
        b1 = _student(3, "Chen", section="B")
        grades = [
            _grade(a1, exams[0], 95),   # 4.0
            _grade(a2, exams[0], 55),   # 2.0
            _grade(b1, exams[1], 35),   # 1.0
        ]
        result = class_performance([a1, a2, b1], grades)

        assert [r.class_section for r in result] == ["5-A", "5-B"]
        assert result[0].student_count == 2
        assert result[0].average_gpa == Decimal("3.00")
        assert result[0].subjects == ["Mathematics"]
        assert result[1].average_gpa == Decimal("1.00")

    def test_gpa_recomputed_with_entry_bands(self, exams):
        s = _student(1, "Asha")
        grade = _grade(s, exams[0], 35)
        # A stale stored value must not leak into the class average
        grade.gpa = Decimal("0.0")
        result = class_performance([s], [grade])
        assert result[0].average_gpa == Decimal("1.00")

    def test_class_without_grades(self):
        result = class_performance([_student(1, "Asha")], [])
        assert result[0].grade_count == 0
        assert result[0].average_gpa == Decimal("0.00")
