from dataclasses import asdict

from rest_framework import permissions, status, views
from rest_framework.response import Response

from users.identity import Identity

from .permissions import IsStudent
from .serializers import (
    SaveAnswerSerializer,
    StartExamSerializer,
    SubmitExamSerializer,
    review_payload,
    start_payload,
)
from .services import get_session_manager

# Engine errors (NotFound, InvalidState, ...) are turned into responses by
# cbt_platform.exception_handler.


class StartExamView(views.APIView):
    """
    Student starts an exam.
    Returns the session id and the student's own question order, answer keys removed.
    """
    permission_classes = [IsStudent]

    def post(self, request):
        serializer = StartExamSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = get_session_manager().start(
            serializer.validated_data['exam_id'], Identity.from_user(request.user)
        )
        return Response(start_payload(result), status=status.HTTP_201_CREATED)


class SaveAnswerView(views.APIView):
    """Autosave of one answer. Saving the same question again replaces the answer."""
    permission_classes = [IsStudent]

    def post(self, request):
        serializer = SaveAnswerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        get_session_manager().answer(
            data['session_id'], data['question_id'], data['answer'], Identity.from_user(request.user)
        )
        return Response({"message": "Answer saved"})


class SubmitExamView(views.APIView):
    """Student submits the attempt. Grades it once and returns the result."""
    permission_classes = [IsStudent]

    def post(self, request):
        serializer = SubmitExamSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = get_session_manager().submit(
            serializer.validated_data['session_id'], Identity.from_user(request.user)
        )
        return Response({"message": "Exam submitted successfully", "result": asdict(result)})


class MyResultsView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        results = get_session_manager().results_for(Identity.from_user(request.user))
        return Response({"results": [asdict(result) for result in results]})


class ExamReviewView(views.APIView):
    """Post-submission review: each question with the student's answer and the answer key."""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, session_id):
        review = get_session_manager().review(session_id, Identity.from_user(request.user))
        return Response(review_payload(review))
