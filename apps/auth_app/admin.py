"""Django admin registration for staff users."""
from django.contrib import admin

from .models import User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("username", "display_name", "role", "branch_code", "is_active", "is_locked", "failed_login_attempts")
    list_filter = ("role", "is_active", "is_locked")
    search_fields = ("username", "display_name", "employee_id")
    exclude = ("password", "user_permissions", "groups")
    readonly_fields = ("last_login", "last_login_at", "created_at", "updated_at")
    actions = ["unlock_users"]

    @admin.action(description="Unlock selected users and reset failed logins")
    def unlock_users(self, request, queryset):
        queryset.update(is_locked=False, failed_login_attempts=0)
