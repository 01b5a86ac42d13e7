"""Aggregate statistics over grade collections.

All functions here work on already-loaded ORM objects. Grades passed to the
report card, tabulation and class helpers must have their ``exam``
relationship loaded.
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal

from gradebook.models.exam import Exam
from gradebook.models.grade import Grade
from gradebook.models.student import Student
from gradebook.schemas.grade import GradeSummary
from gradebook.schemas.report import (
    ClassPerformance,
    ReportCard,
    ReportCardRow,
    ReportCardTotals,
    TabulationCell,
    TabulationRow,
    TabulationSheet,
)
from gradebook.services.grading import FAILING_LETTER, compute_grade, is_eligible

PASS_PERCENTAGE = Decimal("40")
EXCELLENCE_PERCENTAGE = Decimal("80")

ONE_DECIMAL = Decimal("0.1")
TWO_DECIMALS = Decimal("0.01")

PASS = "PASS"
FAIL = "FAIL"


def _rate(count: int, total: int) -> Decimal:
    """Percentage of ``count`` in ``total`` with one decimal."""
    if total == 0:
        return Decimal("0.0")
    return (Decimal(count) / Decimal(total) * 100).quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


def _mean(values: Sequence[Decimal]) -> Decimal:
    if not values:
        return Decimal("0.00")
    return (sum(values, Decimal("0")) / len(values)).quantize(TWO_DECIMALS, rounding=ROUND_HALF_UP)


def class_section_label(class_name: str, section: str | None) -> str:
    return f"{class_name}-{section}" if section else class_name


def summarize(grades: Sequence[Grade]) -> GradeSummary:
    """Average GPA, pass rate and excellence rate of a grade set."""
    total = len(grades)
    passed = sum(1 for g in grades if g.percentage >= PASS_PERCENTAGE)
    excellent = sum(1 for g in grades if g.percentage >= EXCELLENCE_PERCENTAGE)
    return GradeSummary(
        total_grades=total,
        average_gpa=_mean([g.gpa for g in grades]),
        pass_rate=_rate(passed, total),
        excellence_rate=_rate(excellent, total),
    )


def same_family(exam: Exam, other: Exam) -> bool:
    """Exams of one family share name, class and semester and differ by subject."""
    return (
        other.name == exam.name
        and other.class_name == exam.class_name
        and other.semester == exam.semester
    )


def build_report_card(student: Student, exam: Exam, grades: Iterable[Grade]) -> ReportCard:
    """Build a student's report card for the family of ``exam``.

    The verdict is FAIL when any subject is failed, otherwise PASS when the
    overall percentage reaches the pass mark.
    """
    family = sorted(
        (g for g in grades if g.student_id == student.id and same_family(exam, g.exam)),
        key=lambda g: g.exam.subject,
    )

    rows = [
        ReportCardRow(
            subject=g.exam.subject,
            total_marks=g.exam.total_marks,
            marks_obtained=g.marks_obtained,
            percentage=g.percentage,
            letter_grade=g.letter_grade,
            gpa=g.gpa,
        )
        for g in family
    ]

    obtained = sum((g.marks_obtained for g in family), Decimal("0"))
    maximum = sum(g.exam.total_marks for g in family)
    percentage = (
        (obtained / maximum * 100).quantize(TWO_DECIMALS, rounding=ROUND_HALF_UP)
        if maximum > 0
        else Decimal("0.00")
    )

    if any(g.letter_grade == FAILING_LETTER for g in family):
        result = FAIL
    elif percentage >= PASS_PERCENTAGE:
        result = PASS
    else:
        result = FAIL

    return ReportCard(
        student_id=student.id,
        student_name=student.name,
        roll_number=student.roll_number,
        class_name=student.class_name,
        section=student.section,
        exam_name=exam.name,
        semester=exam.semester,
        exam_date=exam.exam_date,
        rows=rows,
        totals=ReportCardTotals(
            marks_obtained=obtained,
            total_marks=maximum,
            percentage=percentage,
            average_gpa=_mean([g.gpa for g in family]),
            result=result,
        ),
    )


def build_tabulation(
    class_name: str,
    section: str | None,
    exam_name: str,
    students: Sequence[Student],
    exams: Sequence[Exam],
    grades: Iterable[Grade],
) -> TabulationSheet:
    """Rank a class on every subject of one exam family.

    Each student is measured on one exam per subject: the exam of their own
    section when there is one, otherwise the class-wide exam. A missing grade
    counts zero marks but its exam still adds to the maximum.
    """
    subjects = sorted({e.subject for e in exams})
    by_pair = {(g.student_id, g.exam_id): g for g in grades}
    # Section exams before class-wide exams of the same subject
    ordered = sorted(exams, key=lambda e: e.section is None)

    ranked: list[tuple[Decimal, TabulationRow]] = []
    for student in students:
        cells: dict[str, TabulationCell] = {subject: TabulationCell() for subject in subjects}
        obtained = Decimal("0")
        maximum = 0
        taken: set[str] = set()
        for exam in ordered:
            if exam.subject in taken or not is_eligible(student, exam):
                continue
            taken.add(exam.subject)
            grade = by_pair.get((student.id, exam.id))
            if grade:
                cells[exam.subject] = TabulationCell(
                    marks_obtained=grade.marks_obtained,
                    letter_grade=grade.letter_grade,
                )
                obtained += grade.marks_obtained
            maximum += exam.total_marks

        exact = obtained / maximum * 100 if maximum > 0 else Decimal("0")
        ranked.append((exact, TabulationRow(
            rank=0,
            student_id=student.id,
            student_name=student.name,
            roll_number=student.roll_number,
            subjects=cells,
            total_obtained=obtained,
            total_max=maximum,
            percentage=exact.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP),
            result=PASS if exact >= PASS_PERCENTAGE else FAIL,
        )))

    ranked.sort(key=lambda item: item[0], reverse=True)
    rows = []
    for position, (_, row) in enumerate(ranked, start=1):
        rows.append(row.model_copy(update={"rank": position}))

    return TabulationSheet(
        class_name=class_name,
        section=section,
        exam_name=exam_name,
        subjects=subjects,
        students=rows,
    )


def class_performance(students: Iterable[Student], grades: Iterable[Grade]) -> list[ClassPerformance]:
    """Per class-section averages.

    GPA is recomputed from marks and the exam ceiling with the same bands
    used at grade entry, so every screen reports the same value.
    """
    groups: dict[tuple[str, str | None], list[Student]] = defaultdict(list)
    class_of: dict[int, tuple[str, str | None]] = {}
    for student in students:
        key = (student.class_name, student.section)
        groups[key].append(student)
        class_of[student.id] = key

    grades_by_class: dict[tuple[str, str | None], list[Grade]] = defaultdict(list)
    for grade in grades:
        key = class_of.get(grade.student_id)
        if key is not None:
            grades_by_class[key].append(grade)

    results = []
    for key in sorted(groups, key=lambda k: (k[0], k[1] or "")):
        class_name, section = key
        class_grades = grades_by_class.get(key, [])
        gpas = [
            compute_grade(g.marks_obtained, g.exam.total_marks).gpa
            for g in class_grades
            if g.exam.total_marks > 0
        ]
        results.append(ClassPerformance(
            class_name=class_name,
            section=section,
            class_section=class_section_label(class_name, section),
            student_count=len(groups[key]),
            grade_count=len(class_grades),
            average_gpa=_mean(gpas),
            subjects=sorted({g.exam.subject for g in class_grades}),
        ))
    return results
