import pytest

from online_exam.errors import ExamClassMismatch
from online_exam.services.dedup import deduplicate_questions, validate_exam_rows
from online_exam.services.reconciler import reconcile_answers

from conftest import PRINCIPAL, make_row


def test_mismatch_fires_even_with_many_rows_under_other_class():
    rows = [make_row(i, f"q{i}", exam_id=5, class_id=9) for i in range(50)]
    with pytest.raises(ExamClassMismatch):
        validate_exam_rows(rows, exam_id=5, class_id=7)


def test_mismatch_on_empty_response():
    with pytest.raises(ExamClassMismatch):
        validate_exam_rows([], exam_id=5, class_id=7)


def test_validate_drops_foreign_rows():
    rows = [
        make_row(1, "q1", exam_id=5, class_id=7),
        make_row(2, "q2", exam_id=5, class_id=9),
        make_row(3, "q3", exam_id=6, class_id=7),
    ]
    assert [r.id for r in validate_exam_rows(rows, exam_id=5, class_id=7)] == [1]


def test_dedup_keeps_first_row_per_trimmed_text():
    rows = [
        make_row(10, "  Same question ", correct=2),
        make_row(11, "Other"),
        make_row(12, "Same question", correct=4),
        make_row(13, "   "),
    ]
    questions = deduplicate_questions(rows)
    assert [q.id for q in questions] == [10, 11]
    assert questions[0].question == "Same question"
    assert questions[0].correct_option == 2
    assert len({q.question for q in questions}) == len(questions)


def test_reconcile_locks_server_answers_for_principal_only():
    rows = [
        make_row(101, "Q1", email="peer@school.com", answer=1),
        make_row(102, "Q2", email="peer@school.com"),
        make_row(201, "Q1 ", email="STD101@school.com (Student) - Approved", answer=3),
        make_row(202, "Q2", email="std101@school.com"),
        make_row(203, "Q2", email="peer@school.com", answer=4),
    ]
    questions = deduplicate_questions(rows)
    answers, locked = reconcile_answers(questions, rows, PRINCIPAL)
    assert answers == {101: 3}
    assert locked == {101}
    for qid in locked:
        assert answers[qid] is not None


def test_reconcile_prefers_answered_row():
    rows = [
        make_row(1, "Q1"),
        make_row(2, "Q1", email=PRINCIPAL),
        make_row(3, "Q1", email=PRINCIPAL, answer=2),
    ]
    questions = deduplicate_questions(rows)
    answers, locked = reconcile_answers(questions, rows, PRINCIPAL)
    assert answers == {1: 2}
    assert locked == {1}
