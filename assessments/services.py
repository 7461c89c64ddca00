from django.conf import settings

from activity.recorder import log_activity
from exams.repositories import DjangoExamRegistry, DjangoQuestionBank

from .repositories import DjangoSessionStore
from .sessions import DEFAULT_GRACE_SECONDS, RESTART_DISCARDS_PROGRESS, SessionManager


def get_session_manager():
    """Session manager wired to the database and the activity feed."""
    return SessionManager(
        exams=DjangoExamRegistry(),
        questions=DjangoQuestionBank(),
        sessions=DjangoSessionStore(),
        restart_discards_progress=getattr(
            settings, 'EXAM_RESTART_DISCARDS_PROGRESS', RESTART_DISCARDS_PROGRESS
        ),
        grace_seconds=getattr(settings, 'EXAM_SESSION_GRACE_SECONDS', DEFAULT_GRACE_SECONDS),
        activity=log_activity,
    )
