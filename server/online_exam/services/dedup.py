"""
Question Deduplicator.

The question bank holds one row per (question, student) pair. Every exam load
validates class ownership and collapses those rows into canonical questions.
"""
import logging
from typing import Iterable, List, Optional, Set

from online_exam.errors import ExamClassMismatch
from online_exam.schemas import CanonicalQuestion, QuestionRow

logger = logging.getLogger(__name__)


def normalize_question(text: Optional[str]) -> str:
    return (text or "").strip()


def validate_exam_rows(rows: Iterable[QuestionRow], exam_id: int, class_id: int) -> List[QuestionRow]:
    """
    Keep rows of `exam_id` owned by `class_id`.

    Raises ExamClassMismatch when nothing survives, including when the
    response is non-empty but belongs entirely to another class.
    """
    rows = list(rows)
    valid = [
        r for r in rows
        if r.exam_details.class_id == class_id and r.exam_details.id == exam_id
    ]
    if not valid:
        logger.warning(
            "🔒 Exam %s blocked for class %s (%d rows under other classes/exams)",
            exam_id, class_id, len(rows),
        )
        raise ExamClassMismatch(exam_id, class_id)
    return valid


def deduplicate_questions(rows: Iterable[QuestionRow]) -> List[CanonicalQuestion]:
    """First row per unique trimmed question text, in server order."""
    seen: Set[str] = set()
    unique: List[CanonicalQuestion] = []
    for row in rows:
        text = normalize_question(row.question)
        if not text or text in seen:
            continue
        seen.add(text)
        unique.append(CanonicalQuestion(
            id=row.id,
            exam_id=row.exam_details.id,
            question=text,
            options=row.options,
            correct_option=row.correct_option,
        ))
    return unique
