"""
Per-student question ordering and answer-key redaction.

Every student gets their own, reproducible order for an exam: the order is a
function of ``"{exam_id}:{student_id}"`` only, so restarting or reloading an
attempt shows the same sequence while two students see independent ones.
"""

from typing import Iterator, List, Sequence, TypeVar

from .domain import FILL_BLANK, QuestionData, SafeOption, SafeQuestion

T = TypeVar("T")

LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904223
LCG_MODULUS = 2 ** 32


def string_seed(text: str) -> int:
    """Polynomial rolling hash (h * 31 + c) folded to an unsigned 32-bit seed."""
    h = 0
    for char in text:
        h = ((h << 5) - h + ord(char)) % LCG_MODULUS
    return h


def lcg(seed: int) -> Iterator[int]:
    state = seed % LCG_MODULUS
    while True:
        state = (state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        yield state


def deterministic_shuffle(seed: int, items: Sequence[T]) -> List[T]:
    """Fisher-Yates shuffle driven by ``lcg(seed)``. Returns a new list."""
    result = list(items)
    states = lcg(seed)
    for i in range(len(result) - 1, 0, -1):
        j = next(states) % (i + 1)
        result[i], result[j] = result[j], result[i]
    return result


def order_questions(questions: Sequence[T], exam_id, student_id) -> List[T]:
    return deterministic_shuffle(string_seed(f"{exam_id}:{student_id}"), questions)


def redact(question: QuestionData) -> SafeQuestion:
    # The first option of a fill_blank question is its expected answer
    if question.question_type == FILL_BLANK:
        options = ()
    else:
        options = tuple(SafeOption(id=option.id, text=option.text) for option in question.options)
    return SafeQuestion(
        id=question.id,
        question_type=question.question_type,
        text=question.text,
        marks=question.marks,
        options=options,
    )
