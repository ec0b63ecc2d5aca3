"""
Answer Reconciler.

Merges the answers the server already recorded for the principal into local
state. Every reconciled question becomes locked.
"""
from typing import Dict, Iterable, List, Set, Tuple

from online_exam.schemas import CanonicalQuestion, QuestionRow
from online_exam.services.dedup import normalize_question
from online_exam.services.identity import normalize_email


def principal_rows(rows: Iterable[QuestionRow], principal: str) -> Dict[str, QuestionRow]:
    """
    The principal's row per normalized question text.

    A row that carries an answer wins over an unanswered one; otherwise the
    first row seen is kept.
    """
    key = normalize_email(principal)
    found: Dict[str, QuestionRow] = {}
    for row in rows:
        if not key or normalize_email(row.student_email) != key:
            continue
        text = normalize_question(row.question)
        current = found.get(text)
        if current is None or (current.student_answer is None and row.student_answer is not None):
            found[text] = row
    return found


def reconcile_answers(
    questions: List[CanonicalQuestion],
    rows: Iterable[QuestionRow],
    principal: str,
) -> Tuple[Dict[int, int], Set[int]]:
    """Return (answers, locked) for the canonical questions."""
    mine = principal_rows(rows, principal)
    answers: Dict[int, int] = {}
    locked: Set[int] = set()
    for q in questions:
        row = mine.get(q.question)
        if row is None or row.student_answer is None:
            continue
        answers[q.id] = row.student_answer
        locked.add(q.id)
    return answers, locked
