"""
Session manager: one student's attempt at one exam.

    (not started) --start--> in_progress --submit--> submitted

``submitted`` is terminal. At most one ``in_progress`` session exists per
(exam, student). Grading and the status transition happen in one transaction,
so a failed submit leaves the session ``in_progress`` and safe to retry, and of
two concurrent submits only the first one grades.
"""

import logging
from datetime import timedelta
from typing import Any, Callable, List, Optional

from django.utils import timezone

from .answer_store import AnswerStore
from .domain import (
    ACTIVE,
    IN_PROGRESS,
    SUBMITTED,
    AnswerRecord,
    ExamInfo,
    ExamRegistry,
    QuestionBank,
    ResultSummary,
    ReviewItem,
    SessionRecord,
    SessionReview,
    SessionStore,
    StartResult,
    SubmitResult,
)
from .exceptions import (
    AlreadyCompleted,
    Forbidden,
    InvalidState,
    NotFound,
    SessionExpired,
    ValidationError,
)
from .grading import grade, verdict
from .randomizer import order_questions, redact

logger = logging.getLogger(__name__)

# Starting an exam again while a session is still in progress deletes that
# session and its answers and begins a fresh one. Set to False to resume instead.
RESTART_DISCARDS_PROGRESS = True

DEFAULT_GRACE_SECONDS = 30


class NoQuestions(ValidationError):
    code = "no_questions"
    default_message = "Exam has no questions yet"


class SessionManager:
    def __init__(
        self,
        exams: ExamRegistry,
        questions: QuestionBank,
        sessions: SessionStore,
        clock: Callable = timezone.now,
        restart_discards_progress: bool = RESTART_DISCARDS_PROGRESS,
        grace_seconds: int = DEFAULT_GRACE_SECONDS,
        activity: Optional[Callable] = None,
    ):
        self.exams = exams
        self.questions = questions
        self.sessions = sessions
        self.clock = clock
        self.restart_discards_progress = restart_discards_progress
        self.grace_seconds = grace_seconds
        self.activity = activity
        self.answer_store = AnswerStore(sessions)

    # --- Operations ---

    def start(self, exam_id, caller) -> StartResult:
        if not exam_id:
            raise ValidationError("exam_id is required")
        if caller.role != "student":
            raise Forbidden("Only students can take exams")

        exam = None
        if caller.school_id is not None:
            exam = self.exams.get_exam(exam_id, school_id=caller.school_id)
        if exam is None:
            raise NotFound("Exam not found")

        now = self.clock()
        restarted = False
        with self.sessions.atomic():
            # The scheduler may have moved the exam on since it was read above
            exam = self.exams.lock_exam(exam.id)
            if exam is None:
                raise NotFound("Exam not found")
            if exam.status != ACTIVE:
                raise InvalidState("Exam is not active")

            existing = self.sessions.find_session(exam.id, caller.user_id)
            if existing is not None and existing.status == SUBMITTED:
                raise AlreadyCompleted()

            questions = self.questions.get_questions_for_exam(exam.id)
            if not questions:
                raise NoQuestions()

            if existing is not None:
                if not self.restart_discards_progress:
                    return self._resume(existing, exam, questions, now)
                logger.info(
                    "Discarding in-progress session %s of student %s for exam %s",
                    existing.id, caller.user_id, exam.id,
                )
                self.sessions.delete_session(existing.id)
                restarted = True

            session = self.sessions.create_session(
                exam.id, caller.user_id, exam.duration_minutes * 60, now
            )

        ordered = order_questions(questions, exam.id, caller.user_id)
        logger.info("Student %s started exam %s (session %s)", caller.user_id, exam.id, session.id)
        self._record(caller, "exam_started", f"Started exam: {exam.title}",
                     {"exam_id": str(exam.id), "exam_title": exam.title})
        return StartResult(
            session_id=session.id,
            time_remaining_sec=session.time_remaining_sec,
            total_questions=len(ordered),
            questions=[redact(question) for question in ordered],
            restarted=restarted,
        )

    def answer(self, session_id, question_id, answer: Any, caller) -> AnswerRecord:
        if not question_id:
            raise ValidationError("question_id is required")
        session = self._owned_session(session_id, caller)
        if session.status != IN_PROGRESS:
            raise InvalidState("Exam already submitted")

        now = self.clock()
        self._check_deadline(session, now)

        exam_question_ids = {
            str(question.id) for question in self.questions.get_questions_for_exam(session.exam_id)
        }
        if str(question_id) not in exam_question_ids:
            raise NotFound("Question not found in this exam")

        with self.sessions.atomic():
            # Same row lock as submit(): a session submitted since the read above is refused
            locked = self.sessions.get_session(session.id, for_update=True)
            if locked is None:
                raise NotFound("Session not found")
            return self.answer_store.save(locked, question_id, answer, now)

    def submit(self, session_id, caller) -> SubmitResult:
        session = self._owned_session(session_id, caller)
        if session.status == SUBMITTED:
            raise AlreadyCompleted("Exam already submitted")

        now = self.clock()
        self._check_deadline(session, now)

        exam = self._exam_for(session)
        questions = self.questions.get_questions_for_exam(exam.id)

        with self.sessions.atomic():
            locked = self.sessions.get_session(session.id, for_update=True)
            if locked is None or locked.status != IN_PROGRESS:
                raise AlreadyCompleted("Exam already submitted")
            result = grade(self.sessions.get_answers(session.id), questions)
            if not self.sessions.finalize_session(session.id, result.graded, result.total_score, now):
                raise AlreadyCompleted("Exam already submitted")

        percentage, passed = verdict(result.total_score, exam.total_marks, exam.pass_mark)
        logger.info(
            "Session %s submitted: %s/%s (%s%%) %s",
            session.id, result.total_score, exam.total_marks, percentage,
            "passed" if passed else "failed",
        )
        self._record(
            caller,
            "exam_submitted",
            f"Submitted exam - Score: {result.total_score}/{exam.total_marks} ({percentage}%) - "
            f"{'PASSED' if passed else 'FAILED'}",
            {"exam_title": exam.title, "score": result.total_score,
             "percentage": percentage, "passed": passed},
        )
        return SubmitResult(
            session_id=session.id,
            score=result.total_score,
            total_marks=exam.total_marks,
            percentage=percentage,
            passed=passed,
            pass_mark=exam.pass_mark,
        )

    def review(self, session_id, caller) -> SessionReview:
        """Graded questions of a submitted session, answer key included."""
        session = self._owned_session(session_id, caller)
        if session.status != SUBMITTED:
            raise InvalidState("Session not submitted")

        exam = self._exam_for(session)
        answers = {str(record.question_id): record for record in self.sessions.get_answers(session.id)}
        items = []
        for question in self.questions.get_questions_for_exam(exam.id):
            record = answers.get(str(question.id))
            items.append(
                ReviewItem(
                    question=question,
                    student_answer=record.answer if record else None,
                    is_correct=record.is_correct if record else None,
                    marks_awarded=record.marks_awarded if record else None,
                )
            )
        percentage, passed = verdict(session.score or 0, exam.total_marks, exam.pass_mark)
        return SessionReview(session=session, exam=exam, percentage=percentage, passed=passed, items=items)

    def results_for(self, caller) -> List[ResultSummary]:
        results = []
        exams = {}
        for session in self.sessions.submitted_sessions_for(caller.user_id):
            if session.exam_id not in exams:
                exams[session.exam_id] = self.exams.get_exam(session.exam_id)
            exam = exams[session.exam_id]
            if exam is None:
                continue
            percentage, passed = verdict(session.score or 0, exam.total_marks, exam.pass_mark)
            results.append(
                ResultSummary(
                    session_id=session.id,
                    exam_id=exam.id,
                    exam_title=exam.title,
                    score=session.score or 0,
                    total_marks=exam.total_marks,
                    pass_mark=exam.pass_mark,
                    percentage=percentage,
                    passed=passed,
                    started_at=session.started_at,
                    submitted_at=session.submitted_at,
                )
            )
        return results

    def deadline_for(self, session: SessionRecord):
        return session.started_at + timedelta(seconds=session.time_remaining_sec)

    # --- Helpers ---

    def _owned_session(self, session_id, caller) -> SessionRecord:
        if not session_id:
            raise ValidationError("session_id is required")
        session = self.sessions.get_session(session_id)
        if session is None:
            raise NotFound("Session not found")
        if session.student_id != caller.user_id:
            raise Forbidden()
        return session

    def _exam_for(self, session: SessionRecord) -> ExamInfo:
        exam = self.exams.get_exam(session.exam_id)
        if exam is None:
            raise NotFound("Exam not found")
        return exam

    def _check_deadline(self, session: SessionRecord, now):
        if now > self.deadline_for(session) + timedelta(seconds=self.grace_seconds):
            raise SessionExpired()

    def _resume(self, session, exam, questions, now) -> StartResult:
        elapsed = int((now - session.started_at).total_seconds())
        ordered = order_questions(questions, exam.id, session.student_id)
        logger.info("Resuming session %s for exam %s", session.id, exam.id)
        return StartResult(
            session_id=session.id,
            time_remaining_sec=max(0, session.time_remaining_sec - elapsed),
            total_questions=len(ordered),
            questions=[redact(question) for question in ordered],
        )

    def _record(self, caller, action, description, metadata):
        if self.activity is not None:
            self.activity(caller, action, description, metadata)
