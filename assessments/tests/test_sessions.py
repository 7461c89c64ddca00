from django.test import SimpleTestCase

from assessments.domain import IN_PROGRESS, SUBMITTED
from assessments.exceptions import (
    AlreadyCompleted,
    Forbidden,
    InvalidState,
    NotFound,
    SessionExpired,
    ValidationError,
)
from assessments.sessions import NoQuestions, SessionManager
from users.identity import Identity

from .fakes import (
    FakeClock,
    InMemoryExamRegistry,
    InMemoryQuestionBank,
    InMemorySessionStore,
    fill_blank,
    make_exam,
    mcq,
    student,
)


class SessionManagerTestCase(SimpleTestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.exams = InMemoryExamRegistry(make_exam("exam-1", total_marks=10, pass_mark=50))
        self.questions = InMemoryQuestionBank()
        self.questions.attach("exam-1", mcq("q1", correct="b"), mcq("q2", correct="c"))
        self.store = InMemorySessionStore()
        self.events = []
        self.manager = self.build_manager()
        self.alice = student(1)
        self.bob = student(2)

    def build_manager(self, **kwargs):
        kwargs.setdefault("grace_seconds", 0)
        return SessionManager(
            self.exams, self.questions, self.store, clock=self.clock,
            activity=lambda caller, action, description, metadata: self.events.append(action),
            **kwargs,
        )


class StartTests(SessionManagerTestCase):
    def test_start_creates_session_with_full_time_budget(self):
        result = self.manager.start("exam-1", self.alice)

        session = self.store.get_session(result.session_id)
        self.assertEqual(session.status, IN_PROGRESS)
        self.assertEqual(session.time_remaining_sec, 30 * 60)
        self.assertEqual(result.time_remaining_sec, 30 * 60)
        self.assertEqual(result.total_questions, 2)
        self.assertFalse(result.restarted)
        self.assertEqual(self.events, ["exam_started"])

    def test_start_returns_redacted_questions(self):
        result = self.manager.start("exam-1", self.alice)
        for question in result.questions:
            for option in question.options:
                self.assertFalse(hasattr(option, "is_correct"))

    def test_start_requires_active_exam(self):
        for status in ("draft", "scheduled", "completed"):
            with self.subTest(status=status):
                self.exams.set_status("exam-1", status)
                with self.assertRaises(InvalidState):
                    self.manager.start("exam-1", self.alice)
        self.assertEqual(self.store.sessions, {})

    def test_start_rechecks_status_at_write_time(self):
        # Scheduler completes the exam between the scoped read and the locked re-read
        original_lock = self.exams.lock_exam

        def lock_after_scheduler(exam_id):
            self.exams.set_status("exam-1", "completed")
            return original_lock(exam_id)

        self.exams.lock_exam = lock_after_scheduler
        with self.assertRaises(InvalidState):
            self.manager.start("exam-1", self.alice)
        self.assertEqual(self.store.sessions, {})

    def test_start_unknown_exam(self):
        with self.assertRaises(NotFound):
            self.manager.start("nope", self.alice)

    def test_start_exam_of_another_school(self):
        outsider = Identity(user_id=9, school_id="school-2", role="student")
        with self.assertRaises(NotFound):
            self.manager.start("exam-1", outsider)

    def test_start_without_exam_id(self):
        with self.assertRaises(ValidationError):
            self.manager.start(None, self.alice)

    def test_only_students_start_exams(self):
        teacher = Identity(user_id=5, school_id="school-1", role="teacher")
        with self.assertRaises(Forbidden):
            self.manager.start("exam-1", teacher)

    def test_start_exam_without_questions(self):
        self.exams.add(make_exam("empty"))
        with self.assertRaises(NoQuestions):
            self.manager.start("empty", self.alice)
        self.assertTrue(issubclass(NoQuestions, ValidationError))

    def test_restart_discards_in_progress_session(self):
        first = self.manager.start("exam-1", self.alice)
        self.manager.answer(first.session_id, "q1", {"selected_id": "b"}, self.alice)

        second = self.manager.start("exam-1", self.alice)

        self.assertNotEqual(first.session_id, second.session_id)
        self.assertTrue(second.restarted)
        self.assertIsNone(self.store.get_session(first.session_id))
        self.assertEqual(self.store.get_answers(first.session_id), [])
        live = [s for s in self.store.sessions.values() if s.status == IN_PROGRESS]
        self.assertEqual(len(live), 1)

    def test_restart_keeps_question_order(self):
        self.questions.attach("exam-1", *[mcq(f"extra{i}") for i in range(8)])
        first = self.manager.start("exam-1", self.alice)
        second = self.manager.start("exam-1", self.alice)
        self.assertEqual([q.id for q in first.questions], [q.id for q in second.questions])

    def test_resume_when_restart_policy_is_off(self):
        manager = self.build_manager(restart_discards_progress=False)
        first = manager.start("exam-1", self.alice)
        manager.answer(first.session_id, "q1", {"selected_id": "b"}, self.alice)
        self.clock.advance(minutes=10)

        second = manager.start("exam-1", self.alice)

        self.assertEqual(first.session_id, second.session_id)
        self.assertEqual(second.time_remaining_sec, 20 * 60)
        self.assertEqual(len(self.store.get_answers(first.session_id)), 1)

    def test_start_after_submission_is_already_completed(self):
        result = self.manager.start("exam-1", self.alice)
        self.manager.submit(result.session_id, self.alice)
        with self.assertRaises(AlreadyCompleted):
            self.manager.start("exam-1", self.alice)

    def test_students_are_independent(self):
        alice = self.manager.start("exam-1", self.alice)
        bob = self.manager.start("exam-1", self.bob)
        self.assertNotEqual(alice.session_id, bob.session_id)
        self.assertEqual(len(self.store.sessions), 2)


class AnswerTests(SessionManagerTestCase):
    def setUp(self):
        super().setUp()
        self.session_id = self.manager.start("exam-1", self.alice).session_id

    def test_second_save_replaces_first(self):
        self.manager.answer(self.session_id, "q1", {"selected_id": "a"}, self.alice)
        self.clock.advance(seconds=5)
        self.manager.answer(self.session_id, "q1", {"selected_id": "b"}, self.alice)

        answers = self.store.get_answers(self.session_id)
        self.assertEqual(len(answers), 1)
        self.assertEqual(answers[0].answer, {"selected_id": "b"})
        self.assertEqual(answers[0].answered_at, self.clock.now)
        self.assertIsNone(answers[0].is_correct)
        self.assertIsNone(answers[0].marks_awarded)

    def test_answers_for_different_questions_are_separate_rows(self):
        self.manager.answer(self.session_id, "q1", {"selected_id": "a"}, self.alice)
        self.manager.answer(self.session_id, "q2", {"selected_id": "c"}, self.alice)
        self.assertEqual(len(self.store.get_answers(self.session_id)), 2)

    def test_other_students_session_is_forbidden(self):
        with self.assertRaises(Forbidden):
            self.manager.answer(self.session_id, "q1", {"selected_id": "a"}, self.bob)

    def test_unknown_session(self):
        with self.assertRaises(NotFound):
            self.manager.answer("missing", "q1", {"selected_id": "a"}, self.alice)

    def test_question_outside_exam(self):
        with self.assertRaises(NotFound):
            self.manager.answer(self.session_id, "q99", {"selected_id": "a"}, self.alice)

    def test_missing_fields(self):
        with self.assertRaises(ValidationError):
            self.manager.answer(self.session_id, None, {"selected_id": "a"}, self.alice)
        with self.assertRaises(ValidationError):
            self.manager.answer(self.session_id, "q1", None, self.alice)

    def test_answer_after_submit(self):
        self.manager.submit(self.session_id, self.alice)
        with self.assertRaises(InvalidState):
            self.manager.answer(self.session_id, "q1", {"selected_id": "a"}, self.alice)

    def test_answer_racing_a_submit_keeps_the_graded_row(self):
        self.manager.answer(self.session_id, "q1", {"selected_id": "b"}, self.alice)
        stale = self.store.get_session(self.session_id)
        self.manager.submit(self.session_id, self.alice)

        # The unlocked read still sees the session as in progress
        original = self.store.get_session
        self.store.get_session = lambda session_id, for_update=False: (
            original(session_id, for_update) if for_update else stale
        )

        with self.assertRaises(InvalidState):
            self.manager.answer(self.session_id, "q1", {"selected_id": "a"}, self.alice)

        answer = self.store.get_answers(self.session_id)[0]
        self.assertEqual(answer.answer, {"selected_id": "b"})
        self.assertTrue(answer.is_correct)
        self.assertEqual(answer.marks_awarded, 5)
        self.assertEqual(original(self.session_id).score, 5)

    def test_answer_after_deadline(self):
        self.clock.advance(minutes=30, seconds=1)
        with self.assertRaises(SessionExpired):
            self.manager.answer(self.session_id, "q1", {"selected_id": "a"}, self.alice)

    def test_grace_period_allows_late_network(self):
        manager = self.build_manager(grace_seconds=30)
        self.clock.advance(minutes=30, seconds=20)
        manager.answer(self.session_id, "q1", {"selected_id": "a"}, self.alice)
        self.assertEqual(len(self.store.get_answers(self.session_id)), 1)


class SubmitTests(SessionManagerTestCase):
    def setUp(self):
        super().setUp()
        self.session_id = self.manager.start("exam-1", self.alice).session_id

    def test_half_marks_passes_at_fifty_percent(self):
        self.manager.answer(self.session_id, "q1", {"selected_id": "b"}, self.alice)
        self.manager.answer(self.session_id, "q2", {"selected_id": "a"}, self.alice)

        result = self.manager.submit(self.session_id, self.alice)

        self.assertEqual(result.score, 5)
        self.assertEqual(result.total_marks, 10)
        self.assertEqual(result.percentage, 50.0)
        self.assertTrue(result.passed)

        session = self.store.get_session(self.session_id)
        self.assertEqual(session.status, SUBMITTED)
        self.assertEqual(session.score, 5)
        self.assertEqual(session.submitted_at, self.clock.now)
        graded = {a.question_id: a for a in self.store.get_answers(self.session_id)}
        self.assertTrue(graded["q1"].is_correct)
        self.assertEqual(graded["q1"].marks_awarded, 5)
        self.assertFalse(graded["q2"].is_correct)
        self.assertEqual(graded["q2"].marks_awarded, 0)
        self.assertEqual(self.events, ["exam_started", "exam_submitted"])

    def test_submit_twice_is_already_completed_and_keeps_score(self):
        self.manager.answer(self.session_id, "q1", {"selected_id": "b"}, self.alice)
        self.manager.submit(self.session_id, self.alice)

        with self.assertRaises(AlreadyCompleted):
            self.manager.submit(self.session_id, self.alice)
        self.assertEqual(self.store.get_session(self.session_id).score, 5)

    def test_concurrent_submit_loses_at_write_time(self):
        # Another request finishes the session after our first read
        original = self.questions.get_questions_for_exam
        finished = {}

        def get_questions_for_exam(exam_id):
            if not finished:
                finished["done"] = True
                self.build_manager().submit(self.session_id, self.alice)
            return original(exam_id)

        self.questions.get_questions_for_exam = get_questions_for_exam
        with self.assertRaises(AlreadyCompleted):
            self.manager.submit(self.session_id, self.alice)
        self.assertEqual(self.events.count("exam_submitted"), 1)
        self.assertEqual(self.store.get_session(self.session_id).status, SUBMITTED)

    def test_failure_while_grading_leaves_session_in_progress(self):
        self.manager.answer(self.session_id, "q1", {"selected_id": "b"}, self.alice)
        self.store.fail_finalize = True

        with self.assertRaises(RuntimeError):
            self.manager.submit(self.session_id, self.alice)

        session = self.store.get_session(self.session_id)
        self.assertEqual(session.status, IN_PROGRESS)
        self.assertIsNone(session.score)
        self.assertIsNone(self.store.get_answers(self.session_id)[0].is_correct)

        self.store.fail_finalize = False
        self.assertEqual(self.manager.submit(self.session_id, self.alice).score, 5)

    def test_submit_with_no_answers(self):
        result = self.manager.submit(self.session_id, self.alice)
        self.assertEqual(result.score, 0)
        self.assertFalse(result.passed)

    def test_submit_other_students_session(self):
        with self.assertRaises(Forbidden):
            self.manager.submit(self.session_id, self.bob)
        self.assertEqual(self.store.get_session(self.session_id).status, IN_PROGRESS)

    def test_submit_after_deadline_is_rejected(self):
        self.clock.advance(hours=1)
        with self.assertRaises(SessionExpired):
            self.manager.submit(self.session_id, self.alice)
        self.assertEqual(self.store.get_session(self.session_id).status, IN_PROGRESS)

    def test_zero_total_marks_fails(self):
        self.exams.add(make_exam("free", total_marks=0, pass_mark=0))
        self.questions.attach("free", mcq("f1", marks=1))
        session_id = self.manager.start("free", self.alice).session_id
        self.manager.answer(session_id, "f1", {"selected_id": "b"}, self.alice)

        result = self.manager.submit(session_id, self.alice)
        self.assertEqual(result.percentage, 0.0)
        self.assertFalse(result.passed)


class ReviewAndResultsTests(SessionManagerTestCase):
    def setUp(self):
        super().setUp()
        self.questions.attach("exam-1", fill_blank("q3", expected="Paris", marks=0))
        self.session_id = self.manager.start("exam-1", self.alice).session_id
        self.manager.answer(self.session_id, "q1", {"selected_id": "b"}, self.alice)
        self.manager.answer(self.session_id, "q3", {"text": " paris "}, self.alice)

    def test_review_requires_submission(self):
        with self.assertRaises(InvalidState):
            self.manager.review(self.session_id, self.alice)

    def test_review_lists_every_exam_question(self):
        self.manager.submit(self.session_id, self.alice)
        review = self.manager.review(self.session_id, self.alice)

        items = {item.question.id: item for item in review.items}
        self.assertEqual(list(items), ["q1", "q2", "q3"])
        self.assertTrue(items["q1"].is_correct)
        self.assertEqual(items["q1"].student_answer, {"selected_id": "b"})
        self.assertIsNone(items["q2"].student_answer)
        self.assertTrue(items["q3"].is_correct)
        self.assertTrue(review.passed)

    def test_review_of_someone_else(self):
        self.manager.submit(self.session_id, self.alice)
        with self.assertRaises(Forbidden):
            self.manager.review(self.session_id, self.bob)

    def test_results_only_include_submitted_sessions(self):
        self.assertEqual(self.manager.results_for(self.alice), [])
        self.manager.submit(self.session_id, self.alice)

        results = self.manager.results_for(self.alice)
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0].score, 5)
        self.assertEqual(results[0].percentage, 50.0)
        self.assertEqual(results[0].exam_title, "Exam exam-1")
