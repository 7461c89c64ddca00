from dataclasses import asdict

from rest_framework import serializers

from .models import ExamSession, StudentAnswer


class StartExamSerializer(serializers.Serializer):
    exam_id = serializers.UUIDField()


class SaveAnswerSerializer(serializers.Serializer):
    session_id = serializers.UUIDField()
    question_id = serializers.UUIDField()
    # {"selected_id": "<option id>"} or {"text": "..."}
    answer = serializers.JSONField()


class SubmitExamSerializer(serializers.Serializer):
    session_id = serializers.UUIDField()


class StudentAnswerSerializer(serializers.ModelSerializer):
    class Meta:
        model = StudentAnswer
        fields = ['id', 'question', 'answer', 'is_correct', 'marks_awarded', 'answered_at']
        read_only_fields = fields


class ExamSessionSerializer(serializers.ModelSerializer):
    """Lightweight serializer for lists / dashboard history."""
    exam_title = serializers.CharField(source='exam.title', read_only=True)

    class Meta:
        model = ExamSession
        fields = ['id', 'exam', 'exam_title', 'status', 'time_remaining_sec', 'score', 'started_at', 'submitted_at']
        read_only_fields = fields


def start_payload(result):
    return {
        "message": "Exam started successfully",
        "session_id": result.session_id,
        "time_remaining_sec": result.time_remaining_sec,
        "total_questions": result.total_questions,
        "restarted": result.restarted,
        "questions": [asdict(question) for question in result.questions],
    }


def review_payload(review):
    questions = []
    for item in review.items:
        question = asdict(item.question)
        question.update(
            student_answer=item.student_answer,
            is_correct=item.is_correct,
            marks_awarded=item.marks_awarded,
        )
        questions.append(question)
    return {
        "session": asdict(review.session),
        "exam": asdict(review.exam),
        "percentage": review.percentage,
        "passed": review.passed,
        "questions": questions,
    }
