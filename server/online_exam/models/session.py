from dataclasses import dataclass, field
from typing import Dict, List, Set
import enum

from online_exam.schemas import CanonicalQuestion, QuestionRow


class Stage(str, enum.Enum):
    """Named stages of the online-test pipeline"""
    IDLE = "idle"
    RESOLVING_IDENTITY = "resolving_identity"
    DISCOVERING_EXAMS = "discovering_exams"
    NO_EXAMS = "no_exams"
    LOADING_EXAM = "loading_exam"
    READY = "ready"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


@dataclass
class ExamState:
    """Per-exam session state, rebuilt wholesale on every (re)load"""
    exam_id: int
    rows: List[QuestionRow]
    questions: List[CanonicalQuestion]
    answers: Dict[int, int] = field(default_factory=dict)  # {question_id: option}
    locked: Set[int] = field(default_factory=set)
    reveal_answers: bool = False
    submitted: bool = False

    @property
    def question_ids(self) -> Set[int]:
        return {q.id for q in self.questions}

    @property
    def already_taken(self) -> bool:
        return bool(self.locked)

    @property
    def answered_count(self) -> int:
        return sum(1 for q in self.questions if self.answers.get(q.id) is not None)
