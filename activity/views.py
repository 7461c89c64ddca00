from rest_framework import generics, permissions

from assessments.permissions import IsSchoolAdmin

from .models import ActivityLog
from .serializers import ActivityLogSerializer


class MyActivityView(generics.ListAPIView):
    """The caller's most recent activity (?limit=, default 10)."""
    serializer_class = ActivityLogSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return ActivityLog.objects.filter(user=self.request.user)[:_limit(self.request)]


class SchoolActivityView(generics.ListAPIView):
    """Activity across the admin's school, optionally filtered by ?action=."""
    serializer_class = ActivityLogSerializer
    permission_classes = [IsSchoolAdmin]

    def get_queryset(self):
        queryset = ActivityLog.objects.select_related('user').filter(school_id=self.request.user.school_id)
        action = self.request.query_params.get('action')
        if action:
            queryset = queryset.filter(action=action)
        return queryset[:_limit(self.request, default=50)]


def _limit(request, default=10):
    try:
        return max(1, min(int(request.query_params.get('limit', default)), 200))
    except ValueError:
        return default
