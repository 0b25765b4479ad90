"""Field access requests: the approval record behind every decryption."""
import secrets

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.accounts.models import SENSITIVE_FIELD_CHOICES

STATUS_PENDING = "PENDING"
STATUS_APPROVED = "APPROVED"
STATUS_REJECTED = "REJECTED"
# Never stored: an APPROVED request whose expiry has passed reads as EXPIRED.
STATUS_EXPIRED = "EXPIRED"

STATUS_CHOICES = [
    (STATUS_PENDING, _("Pending")),
    (STATUS_APPROVED, _("Approved")),
    (STATUS_REJECTED, _("Rejected")),
]


def effective_status(status, expires_at, now):
    """Status as every reader must see it at `now`.

    The only place EXPIRED is derived. The active_grants() queryset below
    applies the same rule in SQL; keep the two in step.
    """
    if status == STATUS_APPROVED and (expires_at is None or expires_at <= now):
        return STATUS_EXPIRED
    return status


def generate_request_ref(now=None):
    """Human-quotable reference, e.g. FAR-20261017-9F2C11AB."""
    now = now or timezone.now()
    return f"FAR-{now:%Y%m%d}-{secrets.token_hex(4).upper()}"


class FieldAccessRequestQuerySet(models.QuerySet):

    def pending(self):
        return self.filter(status=STATUS_PENDING)

    def active_grants(self, now=None):
        """APPROVED requests whose expiry is strictly in the future."""
        now = now or timezone.now()
        return self.filter(status=STATUS_APPROVED, access_expires_at__gt=now)

    def for_triple(self, user_id, account_id, field_name):
        return self.filter(requester_id=user_id, account_id=account_id, field_name=field_name)


class FieldAccessRequest(models.Model):
    """A teller's request to see one sensitive field on one account.

    Lifecycle: PENDING -> APPROVED | REJECTED, decided once by an approver.
    APPROVED grants access until access_expires_at, then reads as EXPIRED.
    Nothing ever writes EXPIRED.
    """

    request_ref = models.CharField(max_length=40, unique=True, default=generate_request_ref)
    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="field_requests",
    )
    account = models.ForeignKey(
        "accounts.Account",
        on_delete=models.CASCADE,
        related_name="field_requests",
    )
    field_name = models.CharField(max_length=20, choices=SENSITIVE_FIELD_CHOICES)
    reason = models.TextField()
    ticket_reference = models.CharField(max_length=100, blank=True, default="")
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)

    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True, blank=True,
        related_name="field_requests_reviewed",
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True, default="")
    access_expires_at = models.DateTimeField(null=True, blank=True)
    access_duration_minutes = models.IntegerField(default=30)
    created_at = models.DateTimeField(default=timezone.now)

    objects = FieldAccessRequestQuerySet.as_manager()

    class Meta:
        app_label = "field_requests"
        db_table = "field_access_requests"
        ordering = ["-created_at"]
        constraints = [
            # One outstanding request per (requester, account, field). Decided
            # requests drop out of the condition, so a new one can follow.
            models.UniqueConstraint(
                fields=["requester", "account", "field_name"],
                name="unique_pending_field_request",
                condition=models.Q(status=STATUS_PENDING),
            ),
        ]
        indexes = [
            models.Index(
                fields=["requester", "account", "field_name", "status"],
                name="field_request_grant_idx",
            ),
        ]

    def __str__(self):
        return f"{self.request_ref} ({self.field_name}, {self.status})"

    def current_status(self, now=None):
        return effective_status(self.status, self.access_expires_at, now or timezone.now())

    def is_active_grant(self, now=None):
        return self.current_status(now) == STATUS_APPROVED

    def to_dict(self, now=None):
        return {
            "id": self.pk,
            "request_ref": self.request_ref,
            "requester_id": self.requester_id,
            "account_id": self.account_id,
            "field_name": self.field_name,
            "reason": self.reason,
            "ticket_reference": self.ticket_reference or None,
            "status": self.current_status(now),
            "reviewed_by": self.reviewed_by_id,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "rejection_reason": self.rejection_reason or None,
            "access_expires_at": (
                self.access_expires_at.isoformat() if self.access_expires_at else None
            ),
            "access_duration_minutes": self.access_duration_minutes,
            "created_at": self.created_at.isoformat(),
        }
