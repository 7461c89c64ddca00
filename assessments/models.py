# assessments/models.py
import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q

from exams.models import Exam, Question


class ExamSession(models.Model):
    """Tracks a student's specific attempt at an exam."""

    class Status(models.TextChoices):
        IN_PROGRESS = "in_progress", "In progress"
        SUBMITTED = "submitted", "Submitted"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='exam_sessions'
    )
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='sessions')
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.IN_PROGRESS)

    # Time budget fixed at start from the exam's duration
    time_remaining_sec = models.PositiveIntegerField()
    score = models.PositiveIntegerField(null=True, blank=True)  # Set on submit
    started_at = models.DateTimeField()
    submitted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['exam', 'student'],
                condition=Q(status='in_progress'),
                name='one_live_session_per_student',
            ),
        ]
        indexes = [models.Index(fields=['student', 'status'], name='session_student_status_idx')]

    def __str__(self):
        return f"{self.student} - {self.exam.title}"


class StudentAnswer(models.Model):
    """A student's response to one question within a session, plus its grading outcome."""

    session = models.ForeignKey(ExamSession, related_name='answers', on_delete=models.CASCADE)
    # Graded responses outlive bank edits; a question with responses cannot be deleted
    question = models.ForeignKey(Question, on_delete=models.PROTECT, related_name='responses')

    # {"selected_id": ...} for mcq/true_false, {"text": ...} for fill_blank
    answer = models.JSONField()

    # Grading, left empty until the session is submitted
    is_correct = models.BooleanField(null=True)
    marks_awarded = models.PositiveIntegerField(null=True, blank=True)
    answered_at = models.DateTimeField()

    class Meta:
        unique_together = ('session', 'question')
