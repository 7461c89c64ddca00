from django.contrib import admin

from .models import Exam, ExamQuestion, Option, Question


class OptionInline(admin.TabularInline):
    model = Option
    extra = 0


class ExamQuestionInline(admin.TabularInline):
    model = ExamQuestion
    extra = 0
    raw_id_fields = ('question',)


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ('title', 'school', 'status', 'start_at', 'end_at', 'total_marks', 'pass_mark')
    list_filter = ('status', 'school')
    readonly_fields = ('total_marks',)
    inlines = [ExamQuestionInline]

    def save_related(self, request, form, formsets, change):
        super().save_related(request, form, formsets, change)
        # Attachments edited inline change the exam's total marks
        form.instance.recalculate_total_marks()


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ('__str__', 'question_type', 'difficulty', 'marks', 'school')
    list_filter = ('question_type', 'difficulty')
    inlines = [OptionInline]

    def save_related(self, request, form, formsets, change):
        super().save_related(request, form, formsets, change)
        for exam in form.instance.exams.all():
            exam.recalculate_total_marks()
