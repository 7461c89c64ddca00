"""
Plain values and repository interfaces shared by the exam session engine.

The engine (randomizer, answer store, grading, session manager) only talks to
the data layer through the protocols below. The Django implementations live in
``exams.repositories`` and ``assessments.repositories``; tests use in-memory
fakes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ContextManager, List, Optional, Protocol, Sequence, Tuple

MCQ = "mcq"
TRUE_FALSE = "true_false"
FILL_BLANK = "fill_blank"

DRAFT = "draft"
SCHEDULED = "scheduled"
ACTIVE = "active"
COMPLETED = "completed"

IN_PROGRESS = "in_progress"
SUBMITTED = "submitted"


@dataclass(frozen=True)
class OptionData:
    id: str
    text: str
    is_correct: bool = False


@dataclass(frozen=True)
class QuestionData:
    id: str
    question_type: str
    text: str
    marks: int
    options: Tuple[OptionData, ...] = ()
    difficulty: str = "medium"


@dataclass(frozen=True)
class SafeOption:
    id: str
    text: str


@dataclass(frozen=True)
class SafeQuestion:
    """A question as a student may see it before submitting: no answer key."""

    id: str
    question_type: str
    text: str
    marks: int
    options: Tuple[SafeOption, ...] = ()


@dataclass(frozen=True)
class ExamInfo:
    id: str
    school_id: Any
    title: str
    status: str
    duration_minutes: int
    total_marks: int
    pass_mark: int
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None


@dataclass(frozen=True)
class SessionRecord:
    id: str
    exam_id: str
    student_id: Any
    status: str
    time_remaining_sec: int
    started_at: datetime
    score: Optional[int] = None
    submitted_at: Optional[datetime] = None


@dataclass(frozen=True)
class AnswerRecord:
    id: Any
    session_id: str
    question_id: str
    answer: Any
    answered_at: datetime
    is_correct: Optional[bool] = None
    marks_awarded: Optional[int] = None


@dataclass(frozen=True)
class GradedAnswer:
    answer_id: Any
    question_id: str
    is_correct: bool
    marks_awarded: int


@dataclass(frozen=True)
class GradeResult:
    graded: Tuple[GradedAnswer, ...]
    total_score: int


@dataclass(frozen=True)
class StartResult:
    session_id: str
    time_remaining_sec: int
    total_questions: int
    questions: List[SafeQuestion]
    restarted: bool = False


@dataclass(frozen=True)
class SubmitResult:
    session_id: str
    score: int
    total_marks: int
    percentage: float
    passed: bool
    pass_mark: int


@dataclass(frozen=True)
class ReviewItem:
    question: QuestionData
    student_answer: Any
    is_correct: Optional[bool]
    marks_awarded: Optional[int]


@dataclass(frozen=True)
class SessionReview:
    session: SessionRecord
    exam: ExamInfo
    percentage: float
    passed: bool
    items: List[ReviewItem] = field(default_factory=list)


@dataclass(frozen=True)
class ResultSummary:
    session_id: str
    exam_id: str
    exam_title: str
    score: int
    total_marks: int
    pass_mark: int
    percentage: float
    passed: bool
    started_at: datetime
    submitted_at: Optional[datetime]


class ExamRegistry(Protocol):
    def get_exam(self, exam_id, school_id=None) -> Optional[ExamInfo]: ...

    def lock_exam(self, exam_id) -> Optional[ExamInfo]:
        """Re-read the exam inside the current transaction, holding its row lock."""
        ...

    def promote(self, from_status: str, to_status: str, time_field: str, now: datetime) -> List[str]:
        """Set-based status promotion; returns the titles of the promoted exams."""
        ...


class QuestionBank(Protocol):
    def get_questions_for_exam(self, exam_id) -> List[QuestionData]: ...


class SessionStore(Protocol):
    def atomic(self) -> ContextManager: ...

    def find_session(self, exam_id, student_id) -> Optional[SessionRecord]: ...

    def get_session(self, session_id, for_update: bool = False) -> Optional[SessionRecord]: ...

    def create_session(self, exam_id, student_id, time_remaining_sec: int, started_at: datetime) -> SessionRecord: ...

    def delete_session(self, session_id) -> None:
        """Remove a session together with all of its answers."""
        ...

    def upsert_answer(self, session_id, question_id, answer, answered_at: datetime) -> AnswerRecord: ...

    def get_answers(self, session_id) -> List[AnswerRecord]: ...

    def finalize_session(
        self, session_id, graded: Sequence[GradedAnswer], score: int, submitted_at: datetime
    ) -> bool:
        """Write grades and move the session to submitted.

        Returns False, without writing anything, when the session is no longer
        in progress.
        """
        ...

    def submitted_sessions_for(self, student_id) -> List[SessionRecord]: ...
