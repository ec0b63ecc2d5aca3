import pytest

from online_exam.errors import IdentityNotFound
from online_exam.schemas import DirectoryEntry, ExamSummary
from online_exam.services.catalog import discover_exams, pick_default_exam
from online_exam.services.identity import normalize_email, resolve_identity

from conftest import make_row


DIRECTORY = [
    DirectoryEntry(id=1, email=None, class_id=3),
    DirectoryEntry(id=2, email="teacher@school.com", class_id=None),
    DirectoryEntry(id=3, email="Std101@School.com", class_id=7),
]


def test_normalize_email_strips_decorations():
    assert normalize_email("  STD101@school.com (Student) - Approved") == "std101@school.com"
    assert normalize_email(None) == ""


def test_resolve_identity_is_case_insensitive():
    student = resolve_identity("std101@SCHOOL.com", DIRECTORY)
    assert student.id == 3
    assert student.class_id == 7


def test_resolve_identity_unknown_principal():
    with pytest.raises(IdentityNotFound):
        resolve_identity("ghost@school.com", DIRECTORY)


def test_resolve_identity_skips_incomplete_entries():
    with pytest.raises(IdentityNotFound):
        resolve_identity("teacher@school.com", DIRECTORY)


def test_student_record_is_immutable():
    student = resolve_identity("std101@school.com", DIRECTORY)
    with pytest.raises(Exception):
        student.class_id = 9


def test_discover_exams_filters_by_class_and_keeps_first_title():
    rows = [
        make_row(1, "q1", exam_id=4, class_id=7, title="Algebra"),
        make_row(2, "q2", exam_id=5, class_id=9, title="Other class"),
        make_row(3, "q3", exam_id=4, class_id=7, title="Algebra (renamed)"),
        make_row(4, "q4", exam_id=2, class_id=7),
    ]
    exams = discover_exams(7, rows)
    assert exams == [
        ExamSummary(exam_id=4, title="Algebra"),
        ExamSummary(exam_id=2, title="Exam 2"),
    ]


def test_pick_default_exam():
    assert pick_default_exam([]) is None
    assert pick_default_exam([ExamSummary(exam_id=3, title="a")]) == 3
    assert pick_default_exam([
        ExamSummary(exam_id=3, title="a"),
        ExamSummary(exam_id=12, title="b"),
        ExamSummary(exam_id=9, title="c"),
    ]) == 12
