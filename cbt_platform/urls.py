from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),

    # --- Authentication ---
    path('api/auth/', include('users.urls')),

    # --- Student Exam Taking ---
    path('api/sessions/', include('assessments.urls')),

    # --- Activity Feed ---
    path('api/activity/', include('activity.urls')),

    # --- Exams & Question Bank ---
    path('api/', include('exams.urls')),
]
