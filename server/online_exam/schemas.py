from pydantic import BaseModel, Field
from typing import Optional, List
from enum import Enum


# =============================================================================
# Upstream records (validated at the REST boundary)
# =============================================================================

class StudentRecord(BaseModel):
    """A resolved student. Immutable for the lifetime of a session."""
    id: int
    email: str
    class_id: int

    class Config:
        frozen = True


class DirectoryEntry(BaseModel):
    """A raw student directory row; other pages share the feed, so email/class may be missing."""
    id: int
    email: Optional[str] = None
    class_id: Optional[int] = None


class ExamDescriptor(BaseModel):
    """Exam metadata nested in every question-bank row."""
    id: int
    title: Optional[str] = None
    class_id: int


class QuestionRow(BaseModel):
    """One (question, student) row of the shared question bank."""
    id: int
    question: str
    option_1: str
    option_2: str
    option_3: str
    option_4: str
    correct_option: Optional[int] = Field(default=None, ge=1, le=4)
    student_answer: Optional[int] = Field(default=None, ge=1, le=4)
    result: Optional[bool] = None
    exam_details: ExamDescriptor
    student_email: Optional[str] = None

    @property
    def options(self) -> List[str]:
        return [self.option_1, self.option_2, self.option_3, self.option_4]


# =============================================================================
# Engine values
# =============================================================================

class Session(BaseModel):
    """The authenticated principal an engine acts for."""
    principal: str

    class Config:
        frozen = True


class ExamSummary(BaseModel):
    exam_id: int
    title: str


class CanonicalQuestion(BaseModel):
    """First-seen row per unique question text; the rendering and submission template."""
    id: int
    exam_id: int
    question: str
    options: List[str]
    correct_option: Optional[int] = None


class AnswerEntry(BaseModel):
    id: int
    student_answer: Optional[int] = None


class SubmitPayload(BaseModel):
    """Body of the idempotent save call."""
    exam_id: int
    student_email: str
    answers: List[AnswerEntry]


class Progress(BaseModel):
    answered: int
    total: int
    percentage: int = 0


class Score(BaseModel):
    correct: int
    total: int
    percentage: int = 0


class QuestionOutcome(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    UNGRADED = "ungraded"


class QuestionDetail(BaseModel):
    """Per-question view. `correct_option` is only filled once answers are revealed."""
    id: int
    question: str
    options: List[str]
    chosen_option: Optional[int] = None
    locked: bool = False
    outcome: QuestionOutcome = QuestionOutcome.UNGRADED
    correct_option: Optional[int] = None


class SelectStatus(str, Enum):
    READY = "ready"
    NO_EXAMS = "no_exams"
    SUPERSEDED = "superseded"


class SelectResult(BaseModel):
    status: SelectStatus
    exam_id: Optional[int] = None
    catalog: List[ExamSummary] = []
    question_count: int = 0
    already_taken: bool = False


class SubmitStatus(str, Enum):
    SUBMITTED = "submitted"
    PARTIAL_CONFIRMATION_REQUIRED = "partial_confirmation_required"


class SubmitResult(BaseModel):
    status: SubmitStatus
    exam_id: int
    answered: int
    total: int
    refreshed: bool = False
    reveal_answers: bool = False


# =============================================================================
# HTTP surface
# =============================================================================

class StartSessionRequest(BaseModel):
    """Open (or re-open) an online-test session for a student."""
    principal: str


class SetAnswerRequest(BaseModel):
    option: int


class SubmitAnswersRequest(BaseModel):
    """Submit the selected exam. Set confirm_partial once the student accepts unanswered questions."""
    confirm_partial: bool = False


class SessionSnapshot(BaseModel):
    principal: str
    stage: str
    student: Optional[StudentRecord] = None
    catalog: List[ExamSummary] = []
    selected_exam_id: Optional[int] = None
    already_taken: bool = False
    reveal_answers: bool = False
    progress: Optional[Progress] = None
