"""
Exam Registry and Question Bank backed by the Django ORM.
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from assessments.domain import ExamInfo, OptionData, QuestionData

from .models import Exam, ExamQuestion

logger = logging.getLogger(__name__)


def exam_info(exam):
    return ExamInfo(
        id=str(exam.id),
        school_id=exam.school_id,
        title=exam.title,
        status=exam.status,
        duration_minutes=exam.duration_minutes,
        total_marks=exam.total_marks,
        pass_mark=exam.pass_mark,
        start_at=exam.start_at,
        end_at=exam.end_at,
    )


def question_data(question):
    return QuestionData(
        id=str(question.id),
        question_type=question.question_type,
        text=question.text,
        marks=question.marks,
        difficulty=question.difficulty,
        options=tuple(
            OptionData(id=str(option.id), text=option.text, is_correct=option.is_correct)
            for option in question.options.all()
        ),
    )


class DjangoExamRegistry:
    def get_exam(self, exam_id, school_id=None):
        queryset = Exam.objects.all()
        if school_id is not None:
            queryset = queryset.filter(school_id=school_id)
        try:
            return exam_info(queryset.get(pk=exam_id))
        except (Exam.DoesNotExist, DjangoValidationError, ValueError):
            return None

    def lock_exam(self, exam_id):
        exam = Exam.objects.select_for_update().filter(pk=exam_id).first()
        return exam_info(exam) if exam else None

    def promote(self, from_status, to_status, time_field, now):
        with transaction.atomic():
            due = list(
                Exam.objects.select_for_update()
                .filter(status=from_status)
                .filter(**{f"{time_field}__isnull": False, f"{time_field}__lte": now})
                .only('id', 'title')
            )
            if not due:
                return []
            Exam.objects.filter(pk__in=[exam.pk for exam in due], status=from_status).update(status=to_status)
        return [exam.title for exam in due]


class DjangoQuestionBank:
    def get_questions_for_exam(self, exam_id):
        links = (
            ExamQuestion.objects.filter(exam_id=exam_id)
            .select_related('question')
            .prefetch_related('question__options')
            .order_by('created_at', 'id')
        )
        return [question_data(link.question) for link in links]
