from django.urls import path

from .views import MyActivityView, SchoolActivityView

urlpatterns = [
    path('', MyActivityView.as_view(), name='my-activity'),
    path('school/', SchoolActivityView.as_view(), name='school-activity'),
]
