from django.contrib import admin

from .models import ExamSession, StudentAnswer


class StudentAnswerInline(admin.TabularInline):
    model = StudentAnswer
    extra = 0
    readonly_fields = ('question', 'answer', 'is_correct', 'marks_awarded', 'answered_at')


@admin.register(ExamSession)
class ExamSessionAdmin(admin.ModelAdmin):
    list_display = ('student', 'exam', 'status', 'score', 'started_at', 'submitted_at')
    list_filter = ('status',)
    inlines = [StudentAnswerInline]
