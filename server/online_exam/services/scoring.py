"""
Score Calculator.

Correctness comes from the server's per-row `result` flag; a missing flag
means the question is ungraded and never counts as incorrect.
"""
from typing import Dict, Iterable, List, Optional, Set

from online_exam.schemas import (
    CanonicalQuestion,
    QuestionDetail,
    QuestionOutcome,
    QuestionRow,
    Score,
)
from online_exam.services.reconciler import principal_rows


def question_outcome(row: Optional[QuestionRow]) -> QuestionOutcome:
    if row is None or row.result is None:
        return QuestionOutcome.UNGRADED
    return QuestionOutcome.CORRECT if row.result else QuestionOutcome.INCORRECT


def _percentage(part: int, total: int) -> int:
    return round(part * 100 / total) if total else 0


def compute_score(questions: List[CanonicalQuestion], rows: Iterable[QuestionRow], principal: str) -> Score:
    mine = principal_rows(rows, principal)
    correct = sum(
        1 for q in questions
        if question_outcome(mine.get(q.question)) is QuestionOutcome.CORRECT
    )
    total = len(questions)
    return Score(correct=correct, total=total, percentage=_percentage(correct, total))


def build_question_details(
    questions: List[CanonicalQuestion],
    rows: Iterable[QuestionRow],
    principal: str,
    answers: Dict[int, int],
    locked: Set[int],
    reveal_answers: bool = False,
) -> List[QuestionDetail]:
    mine = principal_rows(rows, principal)
    details = []
    for q in questions:
        details.append(QuestionDetail(
            id=q.id,
            question=q.question,
            options=q.options,
            chosen_option=answers.get(q.id),
            locked=q.id in locked,
            outcome=question_outcome(mine.get(q.question)),
            correct_option=q.correct_option if reveal_answers else None,
        ))
    return details
