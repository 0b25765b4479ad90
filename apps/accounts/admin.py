"""Django admin registration for Account.

Ciphertext columns are excluded: the admin is not a decryption path.
"""
from django.contrib import admin

from .models import Account


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ("pk", "account_number_last4", "holder_name_search", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("account_number_last4", "holder_name_search")
    fields = (
        "account_number_last4", "holder_name_search", "ssn_last4",
        "email_hint", "phone_last4", "status",
    )
    readonly_fields = fields

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        # Deleting an account would cascade through its access requests
        return False
