"""
Tests for the /reports endpoints: report card, tabulation, class performance and exports.
"""

from io import BytesIO

import pytest
from openpyxl import load_workbook

API = "/api/v1/reports"


@pytest.fixture
def graded_class(client, auth_headers, make_student, make_exam):
    asha = make_student("Asha", roll_number="1")
    bilal = make_student("Bilal", roll_number="2")
    maths = make_exam(subject="Mathematics")
    english = make_exam(subject="English")
    science = make_exam(subject="Science", total_marks=50)
    final = make_exam(subject="Mathematics", name="Final")

    entries = [
        (maths, {asha.id: "80", bilal.id: "95"}),
        (english, {asha.id: "70", bilal.id: "90"}),
        (science, {asha.id: "45"}),
        (final, {asha.id: "10"}),
    ]
    for exam, marks in entries:
        response = client.post("/api/v1/grades/bulk", headers=auth_headers, json={
            "examId": exam.id,
            "marks": {str(k): v for k, v in marks.items()},
        })
        assert response.status_code == 200

    return {"asha": asha, "bilal": bilal, "maths": maths, "final": final}


class TestReportCard:
    """Tests for /reports/report-card."""

    def test_report_card(self, client, auth_headers, graded_class):
        response = client.get(f"{API}/report-card", headers=auth_headers, params={
            "student_id": graded_class["asha"].id,
            "exam_id": graded_class["maths"].id,
        })
        assert response.status_code == 200
        card = response.json()
        assert card["examName"] == "Midterm"
        assert [r["subject"] for r in card["rows"]] == ["English", "Mathematics", "Science"]
        assert card["totals"]["marksObtained"] == "195.00"
        assert card["totals"]["totalMarks"] == 250
        assert card["totals"]["percentage"] == "78.00"
        assert card["totals"]["result"] == "PASS"

    def test_failed_subject(self, client, auth_headers, graded_class):
        response = client.get(f"{API}/report-card", headers=auth_headers, params={
            "student_id": graded_class["asha"].id,
            "exam_id": graded_class["final"].id,
        })
        card = response.json()
        assert [r["letterGrade"] for r in card["rows"]] == ["F"]
        assert card["totals"]["result"] == "FAIL"

    def test_unknown_student(self, client, auth_headers, graded_class):
        response = client.get(f"{API}/report-card", headers=auth_headers, params={
            "student_id": 9999,
            "exam_id": graded_class["maths"].id,
        })
        assert response.status_code == 404


class TestTabulation:
    """Tests for /reports/tabulation."""

    def test_ranked(self, client, auth_headers, graded_class):
        response = client.get(f"{API}/tabulation", headers=auth_headers, params={
            "class_name": "5",
            "exam_name": "Midterm",
        })
        assert response.status_code == 200
        sheet = response.json()
        assert sheet["subjects"] == ["English", "Mathematics", "Science"]
        first, second = sheet["students"]
        # Bilal: 185 of 250, Asha: 195 of 250
        assert first["studentName"] == "Asha"
        assert first["rank"] == 1
        assert first["percentage"] == "78.0"
        assert second["studentName"] == "Bilal"
        assert second["percentage"] == "74.0"
        assert second["subjects"]["Science"]["marksObtained"] is None

    def test_unknown_exam_name(self, client, auth_headers, graded_class):
        response = client.get(f"{API}/tabulation", headers=auth_headers, params={
            "class_name": "5",
            "exam_name": "Quiz",
        })
        assert response.status_code == 404

    def test_export(self, client, auth_headers, graded_class):
        response = client.get(f"{API}/tabulation/export", headers=auth_headers, params={
            "class_name": "5",
            "exam_name": "Midterm",
        })
        assert response.status_code == 200
        assert "tabulation_Midterm_5.xlsx" in response.headers["content-disposition"]

        ws = load_workbook(BytesIO(response.content)).active
        assert ws.cell(row=2, column=1).value == "Rank"
        assert ws.cell(row=3, column=3).value == "Asha"


def _save_marks(client, auth_headers, exam, marks):
    response = client.post("/api/v1/grades/bulk", headers=auth_headers, json={
        "examId": exam.id,
        "marks": {str(k): v for k, v in marks.items()},
    })
    assert response.status_code == 200
    assert response.json()["inserted"] == len(marks)


class TestTabulationScope:
    """Tabulation over section exams and repeated exam names."""

    def test_section_filter(self, client, auth_headers, make_student, make_exam):
        ann = make_student("Ann", section="A")
        make_student("Ben", section="B")
        maths_a = make_exam(subject="Mathematics", section="A")
        make_exam(subject="Mathematics", section="B")
        _save_marks(client, auth_headers, maths_a, {ann.id: "95"})

        response = client.get(f"{API}/tabulation", headers=auth_headers, params={
            "class_name": "5",
            "exam_name": "Midterm",
            "section": "A",
        })
        assert response.status_code == 200
        sheet = response.json()
        assert sheet["subjects"] == ["Mathematics"]
        (row,) = sheet["students"]
        assert row["studentName"] == "Ann"
        assert row["totalMax"] == 100
        assert row["percentage"] == "95.0"
        assert row["result"] == "PASS"

    def test_whole_class_uses_each_students_section_exam(
        self, client, auth_headers, make_student, make_exam
    ):
        ann = make_student("Ann", section="A")
        ben = make_student("Ben", section="B")
        maths_a = make_exam(subject="Mathematics", section="A")
        maths_b = make_exam(subject="Mathematics", section="B")
        _save_marks(client, auth_headers, maths_a, {ann.id: "95"})
        _save_marks(client, auth_headers, maths_b, {ben.id: "60"})

        response = client.get(f"{API}/tabulation", headers=auth_headers, params={
            "class_name": "5",
            "exam_name": "Midterm",
        })
        assert response.status_code == 200
        rows = {r["studentName"]: r for r in response.json()["students"]}
        assert rows["Ann"]["totalMax"] == 100
        assert rows["Ann"]["percentage"] == "95.0"
        assert rows["Ben"]["totalMax"] == 100
        assert rows["Ben"]["percentage"] == "60.0"

    def test_exam_name_in_two_semesters(self, client, auth_headers, make_student, make_exam):
        ann = make_student("Ann")
        spring = make_exam(subject="Mathematics", semester="Spring")
        fall = make_exam(subject="Mathematics", semester="Fall")
        _save_marks(client, auth_headers, spring, {ann.id: "95"})
        _save_marks(client, auth_headers, fall, {ann.id: "30"})

        response = client.get(f"{API}/tabulation", headers=auth_headers, params={
            "class_name": "5",
            "exam_name": "Midterm",
        })
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

        response = client.get(f"{API}/tabulation", headers=auth_headers, params={
            "class_name": "5",
            "exam_name": "Midterm",
            "semester": "Spring",
        })
        assert response.status_code == 200
        (row,) = response.json()["students"]
        assert row["totalMax"] == 100
        assert row["percentage"] == "95.0"


class TestClassPerformance:
    """Tests for /reports/class-performance."""

    def test_class_performance(self, client, auth_headers, graded_class):
        response = client.get(f"{API}/class-performance", headers=auth_headers)
        assert response.status_code == 200
        (row,) = response.json()
        assert row["classSection"] == "5-A"
        assert row["studentCount"] == 2
        assert row["gradeCount"] == 6
        assert row["subjects"] == ["English", "Mathematics", "Science"]


class TestGradeExport:
    """Tests for /reports/grades/export."""

    def test_export_one_exam(self, client, auth_headers, graded_class):
        response = client.get(f"{API}/grades/export", headers=auth_headers, params={
            "exam_id": graded_class["maths"].id,
        })
        assert response.status_code == 200
        ws = load_workbook(BytesIO(response.content)).active
        assert [c.value for c in ws[1]][:4] == ["Student", "Exam", "Subject", "Score"]
        assert ws.max_row == 3

    def test_export_all(self, client, auth_headers, graded_class):
        response = client.get(f"{API}/grades/export", headers=auth_headers)
        ws = load_workbook(BytesIO(response.content)).active
        assert ws.max_row == 7
