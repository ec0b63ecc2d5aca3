"""
Error taxonomy for the online-test session engine.

Empty catalogs and partially answered submissions are not errors; they are
reported through SelectStatus.NO_EXAMS and
SubmitStatus.PARTIAL_CONFIRMATION_REQUIRED.
"""
from typing import Any, Optional


class OnlineExamError(Exception):
    """Base class for every engine failure."""


class IdentityNotFound(OnlineExamError):
    """The principal has no entry in the student directory."""

    def __init__(self, principal: str):
        super().__init__(f"Student record not found for {principal!r}")
        self.principal = principal


class ExamClassMismatch(OnlineExamError):
    """No row of the requested exam belongs to the student's class."""

    def __init__(self, exam_id: int, class_id: int):
        super().__init__(f"Exam {exam_id} does not belong to class {class_id}")
        self.exam_id = exam_id
        self.class_id = class_id


class NetworkFailure(OnlineExamError):
    """The REST collaborator could not be reached or answered with an error."""

    retryable = True

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(NetworkFailure):
    """The collaborator answered with a payload of the wrong shape."""


class SubmitRejected(OnlineExamError):
    """The submit endpoint refused the payload. `body` is kept verbatim."""

    _ALREADY_SUBMITTED_MARKERS = ("already completed", "already exists", "duplicate")

    def __init__(self, body: Any, status_code: int):
        super().__init__(f"Submit rejected ({status_code}): {self.describe(body)}")
        self.body = body
        self.status_code = status_code

    @staticmethod
    def describe(body: Any) -> str:
        if isinstance(body, dict):
            for key in ("error", "message", "detail"):
                if body.get(key):
                    return str(body[key])
        if body is None:
            return ""
        return str(body)

    @property
    def already_submitted(self) -> bool:
        text = self.describe(self.body).lower()
        return any(marker in text for marker in self._ALREADY_SUBMITTED_MARKERS)


class SubmitInProgress(OnlineExamError):
    """A submit for the same exam is still pending."""

    def __init__(self, exam_id: int):
        super().__init__(f"A submission for exam {exam_id} is already in flight")
        self.exam_id = exam_id


class ExamNotSelected(OnlineExamError):
    """The operation needs a resolved student and a loaded exam."""


class UnknownQuestion(OnlineExamError):
    def __init__(self, question_id: int):
        super().__init__(f"Question {question_id} is not part of the selected exam")
        self.question_id = question_id


class InvalidOption(OnlineExamError):
    def __init__(self, option: Any):
        super().__init__(f"Option must be between 1 and 4, got {option!r}")
        self.option = option
