"""Immutable audit log, stored in a separate database."""
from django.db import models


class ImmutableAuditQuerySet(models.QuerySet):
    """QuerySet that prevents any mutation of audit log rows."""

    def update(self, **kwargs):
        raise PermissionError(
            "Audit logs are immutable and cannot be updated. "
            "Direct ORM update() on AuditLog is not permitted."
        )

    def delete(self):
        raise PermissionError(
            "Audit logs are immutable and cannot be deleted. "
            "Direct ORM delete() on AuditLog is not permitted."
        )


class ImmutableAuditManager(models.Manager):
    """Manager that returns an immutable queryset and blocks bulk mutation."""

    def get_queryset(self):
        return ImmutableAuditQuerySet(self.model, using=self._db)

    def update(self, **kwargs):
        raise PermissionError(
            "Audit logs are immutable and cannot be updated. "
            "Direct ORM update() on AuditLog is not permitted."
        )

    def delete(self):
        raise PermissionError(
            "Audit logs are immutable and cannot be deleted. "
            "Direct ORM delete() on AuditLog is not permitted."
        )


# Event types
FIELD_REQUEST_SUBMIT = "FIELD_REQUEST_SUBMIT"
FIELD_REQUEST_APPROVE = "FIELD_REQUEST_APPROVE"
FIELD_REQUEST_REJECT = "FIELD_REQUEST_REJECT"
FIELD_ACCESS_VIEW = "FIELD_ACCESS_VIEW"
FIELD_ACCESS_DENIED = "FIELD_ACCESS_DENIED"
PENDING_QUEUE_VIEW = "PENDING_QUEUE_VIEW"
LOGIN_SUCCESS = "LOGIN_SUCCESS"
LOGIN_FAILED = "LOGIN_FAILED"
ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
LOGOUT = "LOGOUT"

# Event categories
CATEGORY_ACCESS_REQUEST = "ACCESS_REQUEST"
CATEGORY_ACCESS = "ACCESS"
CATEGORY_AUTHENTICATION = "AUTHENTICATION"


class AuditLog(models.Model):
    """
    Append-only audit trail. The database user for this table
    should have INSERT-only permission (no UPDATE/DELETE).

    user_id is a plain integer, not a foreign key: audit rows live in
    their own database and must outlive the user they describe.
    """

    event_timestamp = models.DateTimeField()
    user_id = models.IntegerField(null=True, blank=True)
    username = models.CharField(max_length=150, null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=500, blank=True, default="")
    event_type = models.CharField(max_length=50)
    event_category = models.CharField(max_length=50)
    success = models.BooleanField()
    table_name = models.CharField(max_length=100, null=True, blank=True)
    record_id = models.BigIntegerField(null=True, blank=True)
    accessed_fields = models.JSONField(null=True, blank=True)
    details = models.JSONField(null=True, blank=True)

    # ImmutableAuditManager raises PermissionError on update() and delete().
    # .create() is intentionally not overridden: appending new rows is the
    # only permitted mutation.
    objects = ImmutableAuditManager()

    class Meta:
        app_label = "audit"
        db_table = "pci_audit_log"
        ordering = ["-event_timestamp"]
        indexes = [
            models.Index(fields=["event_type", "event_timestamp"], name="audit_type_time_idx"),
            models.Index(fields=["user_id", "event_timestamp"], name="audit_user_time_idx"),
        ]

    def __str__(self):
        outcome = "ok" if self.success else "failed"
        return f"{self.event_timestamp} | {self.username or '-'} | {self.event_type} ({outcome})"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise PermissionError("Audit logs are immutable and cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionError("Audit logs are immutable and cannot be deleted.")
