from datetime import datetime
from typing import Any

from .domain import IN_PROGRESS, AnswerRecord, SessionRecord, SessionStore
from .exceptions import InvalidState, ValidationError


class AnswerStore:
    """Saves a student's latest answer to one question of a live session."""

    def __init__(self, sessions: SessionStore):
        self.sessions = sessions

    def save(self, session: SessionRecord, question_id, answer: Any, now: datetime) -> AnswerRecord:
        if session.status != IN_PROGRESS:
            raise InvalidState("Exam already submitted")
        if answer is None or answer == "" or answer == {}:
            raise ValidationError("answer is required")
        # Same (session, question) replaces the previous answer and its timestamp
        return self.sessions.upsert_answer(session.id, question_id, answer, now)
