"""
Automatic grading of a finished attempt.

All question types are auto-marked and there is no partial credit: a correct
response earns the question's full marks, anything else earns 0. Nothing here
touches the database; the session manager writes the results back.
"""

from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

from .domain import (
    FILL_BLANK,
    MCQ,
    TRUE_FALSE,
    AnswerRecord,
    GradedAnswer,
    GradeResult,
    QuestionData,
)


def selected_option_id(answer: Any) -> Optional[str]:
    if isinstance(answer, Mapping):
        value = answer.get("selected_id", answer.get("selectedId"))
    else:
        value = answer
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def answer_text(answer: Any) -> Optional[str]:
    if isinstance(answer, Mapping):
        value = answer.get("text")
    else:
        value = answer
    if not isinstance(value, str):
        return None
    return value


def _normalise(text: str) -> str:
    return text.strip().lower()


def is_correct(question: QuestionData, answer: Any) -> bool:
    if question.question_type in (MCQ, TRUE_FALSE):
        correct = next((option for option in question.options if option.is_correct), None)
        if correct is None:
            return False
        return selected_option_id(answer) == str(correct.id)

    if question.question_type == FILL_BLANK:
        if not question.options:
            return False
        given = answer_text(answer)
        if given is None:
            return False
        return _normalise(given) == _normalise(question.options[0].text)

    return False


def grade(responses: Iterable[AnswerRecord], questions: Sequence[QuestionData]) -> GradeResult:
    by_id = {str(question.id): question for question in questions}
    graded = []
    total = 0
    for response in responses:
        question = by_id.get(str(response.question_id))
        correct = question is not None and is_correct(question, response.answer)
        marks = question.marks if correct else 0
        total += marks
        graded.append(
            GradedAnswer(
                answer_id=response.id,
                question_id=response.question_id,
                is_correct=correct,
                marks_awarded=marks,
            )
        )
    return GradeResult(graded=tuple(graded), total_score=total)


def verdict(total_score, total_marks, pass_mark) -> Tuple[float, bool]:
    """Returns (percentage rounded to 2 places, passed)."""
    if not total_marks:
        return 0.0, False
    percentage = total_score / total_marks * 100
    return round(percentage, 2), percentage >= pass_mark
