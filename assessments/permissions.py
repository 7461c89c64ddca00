from rest_framework import permissions


class IsTeacherOrAdmin(permissions.BasePermission):
    """
    Allows access to teachers and school admins of a school.
    Strictly blocks Students.
    """
    def has_permission(self, request, view):
        # 1. User must be logged in and belong to a school
        if not request.user or not request.user.is_authenticated:
            return False
        if request.user.school_id is None:
            return False

        # 2. Check Role
        return request.user.is_superuser or getattr(request.user, 'role', '') in ['teacher', 'admin']


class IsSchoolAdmin(permissions.BasePermission):
    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return request.user.school_id is not None and request.user.is_school_admin


class IsStudent(permissions.BasePermission):
    message = "Only students can take exams."

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return getattr(request.user, 'role', '') == 'student'
