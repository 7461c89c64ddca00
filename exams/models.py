# cbt_platform/exams/models.py
import uuid

from django.conf import settings
from django.db import models
from django.db.models import Sum

from users.models import School


class Exam(models.Model):
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        SCHEDULED = "scheduled", "Scheduled"
        ACTIVE = "active", "Active"
        COMPLETED = "completed", "Completed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name='exams')
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='created_exams'
    )

    title = models.CharField(max_length=255)
    exam_type = models.CharField(max_length=50, blank=True)  # e.g. "test", "exam", "quiz"
    description = models.TextField(blank=True)

    duration_minutes = models.PositiveIntegerField()
    # Kept equal to the sum of the attached questions' marks
    total_marks = models.PositiveIntegerField(default=0)
    pass_mark = models.PositiveIntegerField(default=50, help_text="Pass mark percentage")

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    start_at = models.DateTimeField(null=True, blank=True)
    end_at = models.DateTimeField(null=True, blank=True)

    questions = models.ManyToManyField(
        'Question', through='ExamQuestion', related_name='exams', blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'start_at'], name='exam_status_start_idx'),
            models.Index(fields=['status', 'end_at'], name='exam_status_end_idx'),
        ]

    def __str__(self):
        return self.title

    def has_submitted_sessions(self):
        return self.sessions.filter(status='submitted').exists()

    def recalculate_total_marks(self):
        total = self.questions.aggregate(total=Sum('marks'))['total'] or 0
        self.total_marks = total
        self.save(update_fields=['total_marks'])
        return total


class Question(models.Model):
    class QuestionType(models.TextChoices):
        MCQ = "mcq", "Multiple Choice"
        TRUE_FALSE = "true_false", "True / False"
        FILL_BLANK = "fill_blank", "Fill in the Blank"

    class Difficulty(models.TextChoices):
        EASY = "easy", "Easy"
        MEDIUM = "medium", "Medium"
        HARD = "hard", "Hard"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name='questions')
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True
    )

    text = models.TextField()
    question_type = models.CharField(max_length=20, choices=QuestionType.choices, default=QuestionType.MCQ)
    difficulty = models.CharField(max_length=20, choices=Difficulty.choices, default=Difficulty.MEDIUM)
    marks = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.text[:50]}..."

    def has_graded_attempts(self):
        """True once an exam this question is attached to has a submitted session."""
        return Exam.objects.filter(exam_questions__question=self, sessions__status='submitted').exists()


class Option(models.Model):
    """An answer choice. For fill_blank questions the single option holds the expected answer."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    question = models.ForeignKey(Question, related_name='options', on_delete=models.CASCADE)
    text = models.CharField(max_length=255)
    is_correct = models.BooleanField(default=False)
    position = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['position']

    def __str__(self):
        return self.text


class ExamQuestion(models.Model):
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='exam_questions')
    question = models.ForeignKey(Question, on_delete=models.CASCADE, related_name='exam_links')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('exam', 'question')
        ordering = ['created_at', 'id']
