"""Django admin registration for the audit log (read-only)."""
from django.contrib import admin

from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("event_timestamp", "username", "event_type", "event_category", "success", "record_id")
    list_filter = ("event_type", "event_category", "success")
    search_fields = ("username", "event_type")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
