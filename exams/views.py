import logging
import uuid

from django.contrib.auth import get_user_model
from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import filters, permissions, serializers, status, views, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from activity.recorder import log_activity
from assessments.grading import verdict
from assessments.models import ExamSession
from assessments.permissions import IsTeacherOrAdmin
from users.identity import Identity

from .models import Exam, ExamQuestion, Question
from .serializers import (
    ExamDetailSerializer,
    ExamListSerializer,
    ExamSerializer,
    ExamStatusSerializer,
    QuestionIdsSerializer,
    QuestionSerializer,
)

logger = logging.getLogger(__name__)


class ExamViewSet(viewsets.ModelViewSet):
    # Enable search on title and type
    filter_backends = [filters.SearchFilter]
    search_fields = ['title', 'exam_type']

    def get_queryset(self):
        user = self.request.user
        queryset = Exam.objects.filter(school_id=user.school_id).select_related('created_by')
        if user.is_student:
            # Students see what they can take now or soon
            return queryset.filter(status__in=[Exam.Status.ACTIVE, Exam.Status.SCHEDULED])
        if user.is_teacher:
            # Teachers only see exams they created
            return queryset.filter(created_by=user)
        return queryset

    def get_serializer_class(self):
        if self.request.user.is_student:
            return ExamListSerializer
        if self.action == 'retrieve':
            return ExamDetailSerializer
        if self.action == 'change_status':
            return ExamStatusSerializer
        if self.action in ['assign_questions', 'remove_questions']:
            return QuestionIdsSerializer
        return ExamSerializer

    def get_permissions(self):
        if self.action in ['list', 'retrieve']:
            return [permissions.IsAuthenticated()]
        return [IsTeacherOrAdmin()]

    def perform_create(self, serializer):
        user = self.request.user
        exam = serializer.save(school_id=user.school_id, created_by=user)
        log_activity(
            Identity.from_user(user), 'exam_created', f"Created exam: {exam.title}",
            {'exam_id': str(exam.id), 'title': exam.title},
        )

    @action(detail=True, methods=['post'], url_path='status')
    def change_status(self, request, pk=None):
        """
        Manual status override.
        Payload: { "status": "draft" | "scheduled" | "active" | "completed" }
        """
        exam = self.get_object()
        serializer = ExamStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        previous = exam.status
        exam.status = serializer.validated_data['status']
        exam.save(update_fields=['status'])
        logger.info("Exam %s status changed %s -> %s by %s", exam.id, previous, exam.status, request.user.pk)
        log_activity(
            Identity.from_user(request.user), 'exam_status_changed',
            f"Changed status of {exam.title} from {previous} to {exam.status}",
            {'exam_id': str(exam.id), 'from': previous, 'to': exam.status},
        )
        return Response({"status": "Exam updated", "exam": ExamSerializer(exam).data})

    @action(detail=True, methods=['post'], url_path='assign-questions')
    def assign_questions(self, request, pk=None):
        """
        Attaches question bank entries to this Exam.
        Payload: { "question_ids": ["<uuid>", ...] }
        """
        exam = self.get_object()
        _refuse_if_graded(exam)
        serializer = QuestionIdsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            attached = set(exam.exam_questions.values_list('question_id', flat=True))
            questions = Question.objects.filter(
                id__in=serializer.validated_data['question_ids'], school_id=exam.school_id
            ).exclude(id__in=attached)
            links = ExamQuestion.objects.bulk_create(
                [ExamQuestion(exam=exam, question=question) for question in questions]
            )
            total = exam.recalculate_total_marks()

        return Response({"status": f"Added {len(links)} questions to {exam.title}", "total_marks": total})

    @action(detail=True, methods=['post'], url_path='remove-questions')
    def remove_questions(self, request, pk=None):
        """
        Detaches questions from the exam, returning them to the bank.
        """
        exam = self.get_object()
        _refuse_if_graded(exam)
        serializer = QuestionIdsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            ExamQuestion.objects.filter(
                exam=exam, question_id__in=serializer.validated_data['question_ids']
            ).delete()
            total = exam.recalculate_total_marks()
        return Response({"status": "Questions returned to bank", "total_marks": total})

    @action(detail=True, methods=['get'])
    def results(self, request, pk=None):
        """Submitted attempts for this exam, best first, with summary analytics."""
        exam = self.get_object()
        sessions = (
            ExamSession.objects.filter(exam=exam, status=ExamSession.Status.SUBMITTED)
            .select_related('student')
            .order_by('-score')
        )

        rows = []
        for session in sessions:
            percentage, passed = verdict(session.score or 0, exam.total_marks, exam.pass_mark)
            rows.append({
                "session_id": str(session.id),
                "student_name": f"{session.student.first_name} {session.student.last_name}".strip(),
                "student_email": session.student.email,
                "score": session.score,
                "percentage": percentage,
                "passed": passed,
                "started_at": session.started_at,
                "submitted_at": session.submitted_at,
            })

        total = len(rows)
        passed_count = sum(1 for row in rows if row["passed"])
        scores = [row["percentage"] for row in rows]
        analytics = {
            "total": total,
            "passed": passed_count,
            "failed": total - passed_count,
            "avg": round(sum(scores) / total, 1) if total else 0,
            "highest": round(max(scores), 1) if total else 0,
            "lowest": round(min(scores), 1) if total else 0,
            "pass_rate": round(passed_count / total * 100, 1) if total else 0,
        }
        return Response({"exam": ExamSerializer(exam).data, "results": rows, "analytics": analytics})

    @action(detail=True, methods=['get'], url_path='missing-students')
    def missing_students(self, request, pk=None):
        """Students of the school who have not started this exam, with in-progress/submitted counts."""
        exam = self.get_object()
        students = get_user_model().objects.filter(
            school_id=exam.school_id, role='student', is_active=True
        ).order_by('last_name', 'first_name')
        taken = dict(ExamSession.objects.filter(exam=exam).values_list('student_id', 'status'))

        missing = [
            {"id": s.pk, "first_name": s.first_name, "last_name": s.last_name, "email": s.email}
            for s in students if s.pk not in taken
        ]
        statuses = [taken[s.pk] for s in students if s.pk in taken]
        return Response({
            "exam": ExamSerializer(exam).data,
            "total_students": len(students),
            "missing": missing,
            "not_started": len(missing),
            "in_progress": statuses.count(ExamSession.Status.IN_PROGRESS),
            "submitted": statuses.count(ExamSession.Status.SUBMITTED),
        })


class QuestionViewSet(viewsets.ModelViewSet):
    serializer_class = QuestionSerializer
    permission_classes = [IsTeacherOrAdmin]

    # Enable Search and Filtering for the Question Bank
    filter_backends = [filters.SearchFilter]
    search_fields = ['text', 'difficulty']

    def get_queryset(self):
        queryset = (
            Question.objects.filter(school_id=self.request.user.school_id)
            .prefetch_related('options')
            .order_by('-created_at')
        )
        # Filter by Exam if provided ?exam_id=<uuid>
        exam_id = self.request.query_params.get('exam_id')
        if exam_id:
            try:
                queryset = queryset.filter(exam_links__exam_id=uuid.UUID(exam_id))
            except ValueError:
                return queryset.none()
        question_type = self.request.query_params.get('question_type')
        if question_type:
            queryset = queryset.filter(question_type=question_type)
        return queryset

    def perform_create(self, serializer):
        serializer.save(school_id=self.request.user.school_id, created_by=self.request.user)

    def perform_update(self, serializer):
        with transaction.atomic():
            question = serializer.save()
            for exam in question.exams.all():
                exam.recalculate_total_marks()

    def perform_destroy(self, instance):
        if instance.responses.exists() or instance.has_graded_attempts():
            raise serializers.ValidationError("Students have answered this question; it can no longer be deleted.")
        with transaction.atomic():
            exams = list(instance.exams.all())
            instance.delete()
            for exam in exams:
                exam.recalculate_total_marks()


class ExamLeaderboardView(views.APIView):
    """Submitted attempts at one exam of the caller's school, best score first."""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, exam_id):
        exam = get_object_or_404(Exam, pk=exam_id, school_id=request.user.school_id)
        sessions = (
            ExamSession.objects.filter(exam=exam, status=ExamSession.Status.SUBMITTED)
            .select_related('student')
            .order_by('-score', 'submitted_at')
        )

        leaderboard = []
        for session in sessions:
            percentage, passed = verdict(session.score or 0, exam.total_marks, exam.pass_mark)
            leaderboard.append({
                "student_id": session.student_id,
                "name": f"{session.student.first_name} {session.student.last_name}".strip(),
                "score": session.score,
                "total_marks": exam.total_marks,
                "percentage": round(percentage, 1),
                "passed": passed,
                "submitted_at": session.submitted_at,
            })
        return Response({
            "exam": {"id": str(exam.id), "title": exam.title,
                     "total_marks": exam.total_marks, "pass_mark": exam.pass_mark},
            "leaderboard": leaderboard,
        })


class OverallLeaderboardView(views.APIView):
    """Students of the caller's school ranked by average percentage over submitted exams."""
    permission_classes = [permissions.IsAuthenticated]
    limit = 50

    def get(self, request):
        sessions = ExamSession.objects.filter(
            status=ExamSession.Status.SUBMITTED,
            student__school_id=request.user.school_id,
            student__role='student',
        ).select_related('student', 'exam')

        by_student = {}
        for session in sessions:
            percentage, passed = verdict(session.score or 0, session.exam.total_marks, session.exam.pass_mark)
            entry = by_student.setdefault(session.student_id, {
                "student_id": session.student_id,
                "name": f"{session.student.first_name} {session.student.last_name}".strip(),
                "percentages": [],
                "exams_passed": 0,
            })
            entry["percentages"].append(percentage)
            entry["exams_passed"] += int(passed)

        leaderboard = []
        for entry in by_student.values():
            percentages = entry.pop("percentages")
            entry.update(
                exams_taken=len(percentages),
                avg_percentage=round(sum(percentages) / len(percentages), 1),
                highest_score=round(max(percentages), 1),
            )
            leaderboard.append(entry)
        leaderboard.sort(key=lambda row: row["avg_percentage"], reverse=True)
        return Response({"leaderboard": leaderboard[:self.limit]})


def _refuse_if_graded(exam):
    # Past attempts keep the total marks they were graded against
    if exam.has_submitted_sessions():
        raise serializers.ValidationError(
            "Students have already submitted this exam; its questions can no longer change."
        )
