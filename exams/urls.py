from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import ExamLeaderboardView, ExamViewSet, OverallLeaderboardView, QuestionViewSet

router = DefaultRouter()
router.register(r'exams', ExamViewSet, basename='exams')
router.register(r'questions', QuestionViewSet, basename='questions')

urlpatterns = [
    # Leaderboards
    path('leaderboard/', OverallLeaderboardView.as_view(), name='leaderboard'),
    path('leaderboard/exams/<uuid:exam_id>/', ExamLeaderboardView.as_view(), name='exam-leaderboard'),

    path('', include(router.urls)),
]
