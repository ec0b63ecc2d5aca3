import asyncio
from typing import Dict, List, Optional

import pytest

from online_exam.schemas import DirectoryEntry, QuestionRow, Session, SubmitPayload
from online_exam.services.engine import ExamSessionEngine


PRINCIPAL = "std101@school.com"


def make_row(
    row_id,
    question,
    exam_id=1,
    class_id=7,
    email=None,
    answer=None,
    result=None,
    correct=None,
    title=None,
):
    return QuestionRow.model_validate({
        "id": row_id,
        "question": question,
        "option_1": "A",
        "option_2": "B",
        "option_3": "C",
        "option_4": "D",
        "correct_option": correct,
        "student_answer": answer,
        "result": result,
        "student_email": email,
        "exam_details": {"id": exam_id, "title": title, "class_id": class_id},
    })


class FakeBackend:
    """Stands in for BackendClient; per-exam rows and optional gates."""

    def __init__(self, students=None, bank=None, exams=None):
        self.students: List[DirectoryEntry] = students or [
            DirectoryEntry(id=1, email="STD101@school.com", class_id=7),
            DirectoryEntry(id=2, email="other@school.com", class_id=9),
        ]
        self.bank: List[QuestionRow] = bank or []
        self.exams: Dict[int, List[QuestionRow]] = exams or {}
        self.gates: Dict[int, asyncio.Event] = {}
        self.fail_exam: Dict[int, Exception] = {}
        self.submitted: List[SubmitPayload] = []
        self.submit_error: Optional[Exception] = None
        self.submit_gate: Optional[asyncio.Event] = None
        self.exam_fetches: List[int] = []
        self.after_submit = None

    async def fetch_students(self):
        return list(self.students)

    async def fetch_question_bank(self, exam_id=None):
        if exam_id is None:
            return list(self.bank)
        self.exam_fetches.append(exam_id)
        gate = self.gates.get(exam_id)
        if gate is not None:
            await gate.wait()
        if exam_id in self.fail_exam:
            raise self.fail_exam[exam_id]
        return list(self.exams.get(exam_id, []))

    async def submit_answers(self, payload):
        if self.submit_gate is not None:
            await self.submit_gate.wait()
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append(payload)
        if self.after_submit is not None:
            self.after_submit(payload)
        return {"updated": len(payload.answers)}


def three_question_exam(email=PRINCIPAL):
    """Exam 1 for class 7: ids 101..103, plus duplicate rows from another student."""
    return [
        make_row(101, "What is 2+2?", email="peer@school.com", correct=2),
        make_row(102, "Capital of France?", email="peer@school.com", correct=1),
        make_row(103, "Largest planet?", email="peer@school.com", correct=3),
        make_row(201, "What is 2+2? ", email=email),
        make_row(202, "Capital of France?", email=email),
    ]


@pytest.fixture
def backend():
    exam_rows = three_question_exam()
    return FakeBackend(bank=exam_rows, exams={1: exam_rows})


@pytest.fixture
def engine(backend):
    return ExamSessionEngine(Session(principal=PRINCIPAL), backend)
