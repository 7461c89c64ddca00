from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import School, User


@admin.register(User)
class SchoolUserAdmin(UserAdmin):
    list_display = ('email', 'first_name', 'last_name', 'role', 'school', 'is_active')
    list_filter = ('role', 'school', 'is_active')
    fieldsets = UserAdmin.fieldsets + (
        ('School', {'fields': ('role', 'school')}),
    )


admin.site.register(School)
