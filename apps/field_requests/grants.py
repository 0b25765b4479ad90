"""Authorization predicate: does a user hold an active grant right now?"""
from django.utils import timezone

from .models import FieldAccessRequest


def has_active_access(user_id, account_id, field_name, now=None):
    """True iff an APPROVED, unexpired request exists for this exact triple.

    Always a fresh query against the database. Grants end by expiry alone,
    so any cached answer would outlive the grant it describes. The check is
    a single EXISTS over rows that the approval UPDATE changes atomically,
    so a concurrent approval is observed either wholly or not at all.
    """
    now = now or timezone.now()
    return (
        FieldAccessRequest.objects.active_grants(now)
        .for_triple(user_id, account_id, field_name)
        .exists()
    )


def get_active_grant(user_id, account_id, field_name, now=None):
    """Return the active grant row (latest expiry first), or None."""
    now = now or timezone.now()
    return (
        FieldAccessRequest.objects.active_grants(now)
        .for_triple(user_id, account_id, field_name)
        .order_by("-access_expires_at")
        .first()
    )
