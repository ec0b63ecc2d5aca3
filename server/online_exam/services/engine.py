"""
Exam session engine.

Drives the student online-test pipeline for one principal:

    IDLE -> RESOLVING_IDENTITY -> DISCOVERING_EXAMS -> LOADING_EXAM -> READY
         -> SUBMITTING -> SUBMITTED

Every exam (re)load bumps a selection token; results that come back for a
superseded token are discarded. A failed load never clears a usable exam
state, and submits are serialized per exam.
"""
import logging
from typing import List, Optional, Set

from online_exam.errors import (
    ExamNotSelected,
    InvalidOption,
    NetworkFailure,
    OnlineExamError,
    SubmitInProgress,
    SubmitRejected,
    UnknownQuestion,
)
from online_exam.models.session import ExamState, Stage
from online_exam.schemas import (
    AnswerEntry,
    ExamSummary,
    Progress,
    QuestionDetail,
    Score,
    SelectResult,
    SelectStatus,
    Session,
    SessionSnapshot,
    StudentRecord,
    SubmitPayload,
    SubmitResult,
    SubmitStatus,
)
from online_exam.services.backend_client import BackendClient
from online_exam.services.catalog import discover_exams, pick_default_exam
from online_exam.services.dedup import deduplicate_questions, validate_exam_rows
from online_exam.services.identity import resolve_identity
from online_exam.services.reconciler import reconcile_answers
from online_exam.services.scoring import build_question_details, compute_score

logger = logging.getLogger(__name__)

VALID_OPTIONS = (1, 2, 3, 4)


class ExamSessionEngine:
    """Online-test state machine for a single student session."""

    def __init__(self, session: Session, backend: BackendClient):
        self.session = session
        self.backend = backend
        self.stage = Stage.IDLE
        self.student: Optional[StudentRecord] = None
        self._catalog: Optional[List[ExamSummary]] = None
        self._selected_exam_id: Optional[int] = None
        self._state: Optional[ExamState] = None
        self._selection_token = 0
        self._submitting: Set[int] = set()
        self._submitted_exams: Set[int] = set()
        self._loading_token: Optional[int] = None

    # ------------------------------------------------------------------
    # Stage bookkeeping
    # ------------------------------------------------------------------
    def _set_stage(self, stage: Stage) -> None:
        if stage != self.stage:
            logger.debug("[%s] %s -> %s", self.session.principal, self.stage.value, stage.value)
        self.stage = stage

    def _settle(self) -> None:
        """Fall back to the stage implied by whatever state is still held."""
        if self._state is not None and self._state.exam_id == self._selected_exam_id:
            self._set_stage(Stage.SUBMITTED if self._state.submitted else Stage.READY)
        elif self._selected_exam_id is not None and self._loading_token == self._selection_token:
            self._set_stage(Stage.LOADING_EXAM)
        elif self._catalog is not None and not self._catalog:
            self._set_stage(Stage.NO_EXAMS)
        else:
            self._set_stage(Stage.IDLE)

    def _next_token(self) -> int:
        self._selection_token += 1
        return self._selection_token

    def _require_student(self) -> StudentRecord:
        if self.student is None:
            raise ExamNotSelected("Session has not been started")
        return self.student

    def _require_state(self) -> ExamState:
        state = self._state
        if state is None or state.exam_id != self._selected_exam_id:
            raise ExamNotSelected("No exam is loaded")
        return state

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------
    async def start(self) -> SelectResult:
        """Resolve the student, discover their exams and auto-select one."""
        if self.student is None:
            self._set_stage(Stage.RESOLVING_IDENTITY)
            try:
                directory = await self.backend.fetch_students()
                self.student = resolve_identity(self.session.principal, directory)
            except OnlineExamError:
                self._settle()
                raise

        self._set_stage(Stage.DISCOVERING_EXAMS)
        try:
            rows = await self.backend.fetch_question_bank()
        except NetworkFailure:
            self._settle()
            raise

        self._catalog = discover_exams(self.student.class_id, rows)
        logger.info(
            "📚 %d exam(s) for class %s: %s",
            len(self._catalog), self.student.class_id,
            [e.exam_id for e in self._catalog],
        )

        current = self._state
        if current is not None and any(e.exam_id == current.exam_id for e in self._catalog):
            self._settle()
            return self._ready_result(current)
        return await self.select_exam()

    def catalog(self) -> List[ExamSummary]:
        return list(self._catalog or [])

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    async def select_exam(self, exam_id: Optional[int] = None) -> SelectResult:
        """
        Load an exam into the session; without `exam_id` the default pick is
        used. A mismatch or network failure keeps the previously loaded exam.
        """
        self._require_student()
        if exam_id is None:
            exam_id = pick_default_exam(self.catalog())
            if exam_id is None:
                self._next_token()
                self._selected_exam_id = None
                self._state = None
                self._set_stage(Stage.NO_EXAMS)
                return SelectResult(status=SelectStatus.NO_EXAMS, catalog=[])

        self._selected_exam_id = exam_id
        token = self._next_token()
        self._loading_token = token
        self._set_stage(Stage.LOADING_EXAM)
        try:
            state = await self._load_exam(exam_id)
        except OnlineExamError:
            self._clear_loading(token)
            if token != self._selection_token:
                logger.info("Discarding failed load of superseded exam %s", exam_id)
                return SelectResult(status=SelectStatus.SUPERSEDED, exam_id=exam_id, catalog=self.catalog())
            self._selected_exam_id = self._state.exam_id if self._state is not None else None
            self._settle()
            raise

        self._clear_loading(token)
        if token != self._selection_token:
            logger.info("Discarding stale load of exam %s", exam_id)
            return SelectResult(status=SelectStatus.SUPERSEDED, exam_id=exam_id, catalog=self.catalog())

        self._state = state
        self._settle()
        return self._ready_result(state)

    def _clear_loading(self, token: int) -> None:
        if self._loading_token == token:
            self._loading_token = None

    def deselect(self) -> None:
        """Drop the selected exam; in-flight loads for it are ignored when they land."""
        self._next_token()
        self._selected_exam_id = None
        self._state = None
        self._settle()

    async def refresh(self) -> SelectResult:
        """Reconcile the selected exam against the server again."""
        state = self._require_state()
        token = self._next_token()
        try:
            fresh = await self._load_exam(state.exam_id)
        except OnlineExamError:
            if token != self._selection_token:
                logger.info("Discarding failed refresh of superseded exam %s", state.exam_id)
                return SelectResult(status=SelectStatus.SUPERSEDED, exam_id=state.exam_id, catalog=self.catalog())
            logger.warning("Refresh of exam %s failed; keeping current state", state.exam_id)
            raise
        if token != self._selection_token:
            return SelectResult(status=SelectStatus.SUPERSEDED, exam_id=state.exam_id, catalog=self.catalog())
        fresh.submitted = state.submitted
        fresh.reveal_answers = fresh.reveal_answers or state.reveal_answers
        self._state = fresh
        self._settle()
        return self._ready_result(fresh)

    async def _load_exam(self, exam_id: int) -> ExamState:
        student = self._require_student()
        rows = await self.backend.fetch_question_bank(exam_id=exam_id)
        valid = validate_exam_rows(rows, exam_id, student.class_id)
        questions = deduplicate_questions(valid)
        answers, locked = reconcile_answers(questions, valid, self.session.principal)
        logger.info(
            "📝 Exam %s: %d rows -> %d questions, %d locked for %s",
            exam_id, len(valid), len(questions), len(locked), self.session.principal,
        )
        return ExamState(
            exam_id=exam_id,
            rows=valid,
            questions=questions,
            answers=answers,
            locked=locked,
            reveal_answers=bool(locked) or exam_id in self._submitted_exams,
            submitted=exam_id in self._submitted_exams,
        )

    def _ready_result(self, state: ExamState) -> SelectResult:
        return SelectResult(
            status=SelectStatus.READY,
            exam_id=state.exam_id,
            catalog=self.catalog(),
            question_count=len(state.questions),
            already_taken=state.already_taken,
        )

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------
    def set_answer(self, question_id: int, option: int) -> None:
        state = self._require_state()
        if question_id not in state.question_ids:
            raise UnknownQuestion(question_id)
        if question_id in state.locked:
            # server already recorded an answer
            logger.debug("Ignoring answer for locked question %s", question_id)
            return
        if isinstance(option, bool) or option not in VALID_OPTIONS:
            raise InvalidOption(option)
        state.answers[question_id] = option

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------
    def build_payload(self) -> SubmitPayload:
        """One entry per canonical question; unanswered ones are sent as null."""
        state = self._require_state()
        return SubmitPayload(
            exam_id=state.exam_id,
            student_email=self.session.principal,
            answers=[
                AnswerEntry(id=q.id, student_answer=state.answers.get(q.id))
                for q in state.questions
            ],
        )

    async def submit(self, confirm_partial: bool = False) -> SubmitResult:
        self._require_student()
        state = self._require_state()
        exam_id = state.exam_id
        if exam_id in self._submitting:
            raise SubmitInProgress(exam_id)

        payload = self.build_payload()
        total = len(payload.answers)
        answered = sum(1 for a in payload.answers if a.student_answer is not None)
        if answered < total and not confirm_partial:
            return SubmitResult(
                status=SubmitStatus.PARTIAL_CONFIRMATION_REQUIRED,
                exam_id=exam_id,
                answered=answered,
                total=total,
            )

        # the guard spans the save and the re-reconciliation that follows it
        self._submitting.add(exam_id)
        try:
            return await self._send(state, payload, answered, total)
        finally:
            self._submitting.discard(exam_id)

    async def _send(self, state: ExamState, payload: SubmitPayload, answered: int, total: int) -> SubmitResult:
        exam_id = state.exam_id
        self._set_stage(Stage.SUBMITTING)
        try:
            await self.backend.submit_answers(payload)
        except SubmitRejected as e:
            logger.warning("❌ Submit of exam %s rejected: %s", exam_id, e)
            self._settle()
            raise
        except NetworkFailure:
            self._settle()
            raise

        logger.info("✅ %s submitted exam %s (%d/%d answered)", self.session.principal, exam_id, answered, total)
        self._submitted_exams.add(exam_id)
        current = self._state
        if current is not None and current.exam_id == exam_id:
            current.submitted = True
            current.reveal_answers = True
        refreshed = False
        if self._selected_exam_id == exam_id:
            try:
                result = await self.refresh()
                refreshed = result.status is SelectStatus.READY
            except OnlineExamError as e:
                logger.warning("Post-submit refresh of exam %s failed: %s", exam_id, e)
        self._settle()
        return SubmitResult(
            status=SubmitStatus.SUBMITTED,
            exam_id=exam_id,
            answered=answered,
            total=total,
            refreshed=refreshed,
            reveal_answers=True,
        )

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------
    def progress(self) -> Progress:
        state = self._require_state()
        total = len(state.questions)
        answered = state.answered_count
        return Progress(
            answered=answered,
            total=total,
            percentage=round(answered * 100 / total) if total else 0,
        )

    def score(self) -> Score:
        state = self._require_state()
        return compute_score(state.questions, state.rows, self.session.principal)

    def question_details(self) -> List[QuestionDetail]:
        state = self._require_state()
        return build_question_details(
            state.questions,
            state.rows,
            self.session.principal,
            state.answers,
            state.locked,
            reveal_answers=state.reveal_answers,
        )

    @property
    def reveal_answers(self) -> bool:
        return bool(self._state and self._state.reveal_answers)

    def snapshot(self) -> SessionSnapshot:
        state = self._state if self._state and self._state.exam_id == self._selected_exam_id else None
        return SessionSnapshot(
            principal=self.session.principal,
            stage=self.stage.value,
            student=self.student,
            catalog=self.catalog(),
            selected_exam_id=self._selected_exam_id,
            already_taken=bool(state and state.already_taken),
            reveal_answers=bool(state and state.reveal_answers),
            progress=self.progress() if state else None,
        )
