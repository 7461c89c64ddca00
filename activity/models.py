from django.conf import settings
from django.db import models

from users.models import School


class ActivityLog(models.Model):
    ACTION_CHOICES = [
        ('exam_created', 'Exam Created'),
        ('exam_started', 'Exam Started'),
        ('exam_submitted', 'Exam Submitted'),
        ('exam_status_changed', 'Exam Status Changed'),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='activity_logs'
    )
    school = models.ForeignKey(School, on_delete=models.CASCADE, null=True, blank=True)
    action = models.CharField(max_length=100, choices=ACTION_CHOICES)
    description = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [models.Index(fields=['user', '-created_at'], name='activity_user_recent_idx')]

    def __str__(self):
        return f"{self.user} - {self.action} - {self.created_at}"
