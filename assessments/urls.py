from django.urls import path
from .views import ExamReviewView, MyResultsView, SaveAnswerView, StartExamView, SubmitExamView

urlpatterns = [
    # Student Exam Flow
    path('start/', StartExamView.as_view(), name='start_exam'),
    path('answer/', SaveAnswerView.as_view(), name='save_answer'),
    path('submit/', SubmitExamView.as_view(), name='submit_exam'),

    path('results/', MyResultsView.as_view(), name='my_results'),
    path('<uuid:session_id>/review/', ExamReviewView.as_view(), name='exam_review'),
]
