"""
Session and answer persistence backed by the Django ORM.
"""

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction

from .domain import AnswerRecord, SessionRecord
from .exceptions import InvalidState
from .models import ExamSession, StudentAnswer


def session_record(session):
    return SessionRecord(
        id=str(session.id),
        exam_id=str(session.exam_id),
        student_id=session.student_id,
        status=session.status,
        time_remaining_sec=session.time_remaining_sec,
        started_at=session.started_at,
        score=session.score,
        submitted_at=session.submitted_at,
    )


def answer_record(answer):
    return AnswerRecord(
        id=answer.id,
        session_id=str(answer.session_id),
        question_id=str(answer.question_id),
        answer=answer.answer,
        answered_at=answer.answered_at,
        is_correct=answer.is_correct,
        marks_awarded=answer.marks_awarded,
    )


class DjangoSessionStore:
    def atomic(self):
        return transaction.atomic()

    def find_session(self, exam_id, student_id):
        sessions = list(ExamSession.objects.filter(exam_id=exam_id, student_id=student_id))
        if not sessions:
            return None
        submitted = [s for s in sessions if s.status == ExamSession.Status.SUBMITTED]
        return session_record(submitted[0] if submitted else sessions[0])

    def get_session(self, session_id, for_update=False):
        queryset = ExamSession.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        try:
            return session_record(queryset.get(pk=session_id))
        except (ExamSession.DoesNotExist, DjangoValidationError, ValueError):
            return None

    def create_session(self, exam_id, student_id, time_remaining_sec, started_at):
        try:
            with transaction.atomic():
                session = ExamSession.objects.create(
                    exam_id=exam_id,
                    student_id=student_id,
                    time_remaining_sec=time_remaining_sec,
                    started_at=started_at,
                )
        except IntegrityError:
            # Another request started this exam for the same student first
            raise InvalidState("An attempt at this exam is already in progress")
        return session_record(session)

    def delete_session(self, session_id):
        StudentAnswer.objects.filter(session_id=session_id).delete()
        ExamSession.objects.filter(pk=session_id).delete()

    def upsert_answer(self, session_id, question_id, answer, answered_at):
        record, _ = StudentAnswer.objects.update_or_create(
            session_id=session_id,
            question_id=question_id,
            defaults={
                'answer': answer,
                'answered_at': answered_at,
                'is_correct': None,
                'marks_awarded': None,
            },
        )
        return answer_record(record)

    def get_answers(self, session_id):
        return [
            answer_record(answer)
            for answer in StudentAnswer.objects.filter(session_id=session_id).order_by('answered_at', 'id')
        ]

    def finalize_session(self, session_id, graded, score, submitted_at):
        with transaction.atomic():
            updated = ExamSession.objects.filter(
                pk=session_id, status=ExamSession.Status.IN_PROGRESS
            ).update(
                status=ExamSession.Status.SUBMITTED,
                score=score,
                submitted_at=submitted_at,
            )
            if not updated:
                return False

            grades = {item.answer_id: item for item in graded}
            answers = list(StudentAnswer.objects.filter(pk__in=grades.keys()))
            for answer in answers:
                answer.is_correct = grades[answer.pk].is_correct
                answer.marks_awarded = grades[answer.pk].marks_awarded
            StudentAnswer.objects.bulk_update(answers, ['is_correct', 'marks_awarded'])
        return True

    def submitted_sessions_for(self, student_id):
        sessions = ExamSession.objects.filter(
            student_id=student_id, status=ExamSession.Status.SUBMITTED
        ).order_by('-submitted_at')
        return [session_record(session) for session in sessions]
