from datetime import datetime, timezone

from django.test import SimpleTestCase

from assessments.domain import AnswerRecord, QuestionData
from assessments.grading import grade, is_correct, verdict

from .fakes import fill_blank, mcq

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def response(answer_id, question_id, answer):
    return AnswerRecord(id=answer_id, session_id="s1", question_id=question_id, answer=answer, answered_at=NOW)


class IsCorrectTests(SimpleTestCase):
    def test_mcq_matches_selected_option(self):
        question = mcq("q1", correct="b")
        self.assertTrue(is_correct(question, {"selected_id": "b"}))
        self.assertFalse(is_correct(question, {"selected_id": "a"}))

    def test_mcq_accepts_legacy_key_and_bare_id(self):
        question = mcq("q1", correct="b")
        self.assertTrue(is_correct(question, {"selectedId": "b"}))
        self.assertTrue(is_correct(question, "b"))

    def test_true_false(self):
        question = mcq("tf", correct="a", question_type="true_false")
        self.assertTrue(is_correct(question, {"selected_id": "a"}))
        self.assertFalse(is_correct(question, {"selected_id": "c"}))

    def test_no_correct_option_is_graded_incorrect(self):
        question = mcq("q1", correct="none")
        self.assertFalse(is_correct(question, {"selected_id": "a"}))

    def test_fill_blank_ignores_case_and_surrounding_whitespace(self):
        question = fill_blank("q1", expected="Paris")
        self.assertTrue(is_correct(question, {"text": " paris "}))
        self.assertTrue(is_correct(question, "PARIS"))
        self.assertFalse(is_correct(question, {"text": "Lyon"}))

    def test_malformed_answers_are_incorrect(self):
        self.assertFalse(is_correct(mcq("q1"), {"text": "b"}))
        self.assertFalse(is_correct(fill_blank("q2"), {"selected_id": "x"}))
        self.assertFalse(is_correct(fill_blank("q2"), None))

    def test_fill_blank_without_stored_answer(self):
        question = QuestionData(id="q", question_type="fill_blank", text="?", marks=1)
        self.assertFalse(is_correct(question, {"text": ""}))


class GradeTests(SimpleTestCase):
    def test_one_right_one_wrong(self):
        questions = [mcq("q1", correct="b"), mcq("q2", correct="c")]
        result = grade([response(1, "q1", {"selected_id": "b"}), response(2, "q2", {"selected_id": "a"})], questions)

        self.assertEqual(result.total_score, 5)
        graded = {item.question_id: item for item in result.graded}
        self.assertTrue(graded["q1"].is_correct)
        self.assertEqual(graded["q1"].marks_awarded, 5)
        self.assertFalse(graded["q2"].is_correct)
        self.assertEqual(graded["q2"].marks_awarded, 0)

    def test_mixed_question_types(self):
        questions = [mcq("q1", marks=3), fill_blank("q2", marks=2)]
        result = grade([response(1, "q1", {"selected_id": "b"}), response(2, "q2", {"text": "paris"})], questions)
        self.assertEqual(result.total_score, 5)

    def test_response_for_unknown_question_scores_nothing(self):
        result = grade([response(1, "ghost", {"selected_id": "b"})], [mcq("q1")])
        self.assertEqual(result.total_score, 0)
        self.assertFalse(result.graded[0].is_correct)

    def test_no_responses(self):
        result = grade([], [mcq("q1")])
        self.assertEqual(result.total_score, 0)
        self.assertEqual(result.graded, ())


class VerdictTests(SimpleTestCase):
    def test_pass_mark_is_inclusive(self):
        self.assertEqual(verdict(5, 10, 50), (50.0, True))

    def test_below_pass_mark(self):
        self.assertEqual(verdict(4, 10, 50), (40.0, False))

    def test_zero_total_marks_fails(self):
        self.assertEqual(verdict(0, 0, 0), (0.0, False))

    def test_percentage_is_rounded_for_display(self):
        percentage, passed = verdict(1, 3, 33)
        self.assertEqual(percentage, 33.33)
        self.assertTrue(passed)
