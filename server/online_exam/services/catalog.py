"""
Exam Catalog Discoverer.

Derives the exams visible to a class from the unscoped question-bank feed.
"""
from typing import Dict, Iterable, List, Optional

from online_exam.schemas import ExamSummary, QuestionRow


def discover_exams(class_id: int, rows: Iterable[QuestionRow]) -> List[ExamSummary]:
    """Exams of `class_id` in first-seen order, keeping the first-seen title."""
    found: Dict[int, ExamSummary] = {}
    for row in rows:
        exam = row.exam_details
        if exam.class_id != class_id or exam.id in found:
            continue
        found[exam.id] = ExamSummary(exam_id=exam.id, title=exam.title or f"Exam {exam.id}")
    return list(found.values())


def pick_default_exam(exams: List[ExamSummary]) -> Optional[int]:
    """Greatest exam id is treated as the most recent one."""
    if not exams:
        return None
    return max(exam.exam_id for exam in exams)
