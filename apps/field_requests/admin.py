"""Django admin registration for FieldAccessRequest (read-only)."""
from django.contrib import admin

from .models import FieldAccessRequest


@admin.register(FieldAccessRequest)
class FieldAccessRequestAdmin(admin.ModelAdmin):
    list_display = ("request_ref", "requester", "account", "field_name", "get_status", "created_at")
    list_filter = ("status", "field_name")
    search_fields = ("request_ref", "ticket_reference")
    raw_id_fields = ("requester", "reviewed_by", "account")

    def get_status(self, obj):
        return obj.current_status()
    get_status.short_description = "Status"

    # Decisions go through the approval API so they are atomic and audited.
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
