"""Field access request lifecycle: submit, approve, reject, list.

Both state changes are single statements against the database:

- submit inserts inside a savepoint and lets the conditional unique
  constraint reject a second PENDING row for the same triple;
- approve/reject run one UPDATE ... WHERE status = 'PENDING'. Exactly one
  concurrent reviewer can match the row; the other updates nothing and
  gets NotFoundError.

Neither path reads state first and writes second.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.accounts.models import Account, is_sensitive_field
from apps.audit import models as audit
from apps.audit.recorder import record_event
from apps.auth_app.models import can_approve
from fieldgate.errors import (
    AuthorizationError,
    DuplicateRequestError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from fieldgate.ratelimit import get_rate_limiter

from .models import STATUS_APPROVED, STATUS_PENDING, STATUS_REJECTED, FieldAccessRequest

logger = logging.getLogger(__name__)

TABLE_NAME = FieldAccessRequest._meta.db_table
MAX_TICKET_REFERENCE_LENGTH = 100
DEFAULT_REJECTION_REASON = "No reason provided"


def _validate_field_name(field_name):
    if not is_sensitive_field(field_name):
        raise ValidationError("Invalid fieldName")


def _require_approver(user, event_type, request_id, request):
    """Raise AuthorizationError (and audit the attempt) for non-approvers."""
    if user is not None and getattr(user, "is_authenticated", False) and can_approve(user.role):
        return
    record_event(
        event_type,
        audit.CATEGORY_ACCESS_REQUEST,
        False,
        user=user,
        table_name=TABLE_NAME,
        record_id=request_id,
        details={"reason": "insufficient_role"},
        request=request,
    )
    raise AuthorizationError()


def _reject_self_review(request_id, reviewer, event_type, request):
    requester_id = (
        FieldAccessRequest.objects.filter(pk=request_id)
        .values_list("requester_id", flat=True)
        .first()
    )
    if requester_id is not None and requester_id == reviewer.pk:
        record_event(
            event_type,
            audit.CATEGORY_ACCESS_REQUEST,
            False,
            user=reviewer,
            table_name=TABLE_NAME,
            record_id=request_id,
            details={"reason": "self_review"},
            request=request,
        )
        raise AuthorizationError("You cannot review your own request.")


def submit_request(
    requester,
    account_id,
    field_name,
    reason,
    ticket_reference="",
    request=None,
    rate_limiter=None,
    now=None,
):
    """Create a PENDING request. Returns the new FieldAccessRequest."""
    _validate_field_name(field_name)
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A reason is required.")
    ticket_reference = (ticket_reference or "").strip()
    if len(ticket_reference) > MAX_TICKET_REFERENCE_LENGTH:
        raise ValidationError("Ticket reference is too long.")
    if not Account.objects.filter(pk=account_id).exists():
        raise NotFoundError("Account not found")

    limiter = rate_limiter or get_rate_limiter()
    verdict = limiter.check(f"field_request:{requester.pk}")
    if not verdict.allowed:
        logger.warning("Field request rate limit hit for user %s", requester.pk)
        raise RateLimitError(retry_after=max(0, verdict.reset_at - limiter.clock()))

    try:
        with transaction.atomic():
            field_request = FieldAccessRequest.objects.create(
                requester=requester,
                account_id=account_id,
                field_name=field_name,
                reason=reason,
                ticket_reference=ticket_reference,
                status=STATUS_PENDING,
                access_duration_minutes=settings.FIELD_ACCESS_DEFAULT_DURATION_MINUTES,
                created_at=now or timezone.now(),
            )
    except IntegrityError:
        record_event(
            audit.FIELD_REQUEST_SUBMIT,
            audit.CATEGORY_ACCESS_REQUEST,
            False,
            user=requester,
            table_name=TABLE_NAME,
            accessed_fields=[field_name],
            details={"account_id": account_id, "reason": "duplicate_pending"},
            request=request,
        )
        raise DuplicateRequestError()

    record_event(
        audit.FIELD_REQUEST_SUBMIT,
        audit.CATEGORY_ACCESS_REQUEST,
        True,
        user=requester,
        table_name=TABLE_NAME,
        record_id=field_request.pk,
        accessed_fields=[field_name],
        details={
            "account_id": account_id,
            "ticket_reference": ticket_reference or None,
        },
        request=request,
    )
    return field_request


def approve_request(request_id, approver, duration_minutes=None, now=None, request=None):
    """Approve a PENDING request, granting access for duration_minutes."""
    _require_approver(approver, audit.FIELD_REQUEST_APPROVE, request_id, request)
    _reject_self_review(request_id, approver, audit.FIELD_REQUEST_APPROVE, request)

    if duration_minutes is None:
        duration_minutes = settings.FIELD_ACCESS_DEFAULT_DURATION_MINUTES
    max_minutes = settings.FIELD_ACCESS_MAX_DURATION_MINUTES
    if (
        isinstance(duration_minutes, bool)
        or not isinstance(duration_minutes, int)
        or not 1 <= duration_minutes <= max_minutes
    ):
        raise ValidationError(f"Duration must be between 1 and {max_minutes} minutes.")

    now = now or timezone.now()
    expires_at = now + timedelta(minutes=duration_minutes)
    updated = FieldAccessRequest.objects.filter(pk=request_id, status=STATUS_PENDING).update(
        status=STATUS_APPROVED,
        reviewed_by=approver,
        reviewed_at=now,
        access_expires_at=expires_at,
        access_duration_minutes=duration_minutes,
    )
    if not updated:
        raise NotFoundError("Request not found or already processed")

    field_request = FieldAccessRequest.objects.select_related("account").get(pk=request_id)
    record_event(
        audit.FIELD_REQUEST_APPROVE,
        audit.CATEGORY_ACCESS_REQUEST,
        True,
        user=approver,
        table_name=TABLE_NAME,
        record_id=request_id,
        accessed_fields=[field_request.field_name],
        details={
            "requester_id": field_request.requester_id,
            "account_id": field_request.account_id,
            "duration_minutes": duration_minutes,
            "expires_at": expires_at.isoformat(),
        },
        request=request,
    )
    return field_request


def reject_request(request_id, approver, reason="", now=None, request=None):
    """Reject a PENDING request with an optional reason."""
    _require_approver(approver, audit.FIELD_REQUEST_REJECT, request_id, request)
    _reject_self_review(request_id, approver, audit.FIELD_REQUEST_REJECT, request)

    rejection_reason = (reason or "").strip() or DEFAULT_REJECTION_REASON
    now = now or timezone.now()
    updated = FieldAccessRequest.objects.filter(pk=request_id, status=STATUS_PENDING).update(
        status=STATUS_REJECTED,
        reviewed_by=approver,
        reviewed_at=now,
        rejection_reason=rejection_reason,
    )
    if not updated:
        raise NotFoundError("Request not found or already processed")

    record_event(
        audit.FIELD_REQUEST_REJECT,
        audit.CATEGORY_ACCESS_REQUEST,
        True,
        user=approver,
        table_name=TABLE_NAME,
        record_id=request_id,
        details={"reason": rejection_reason},
        request=request,
    )
    return FieldAccessRequest.objects.get(pk=request_id)


def list_my_requests(requester, now=None, limit=100):
    """The requester's own requests, newest first, with effective status."""
    now = now or timezone.now()
    mine = FieldAccessRequest.objects.filter(requester=requester).order_by("-created_at", "-pk")
    return [fr.to_dict(now) for fr in mine[:limit]]


def list_pending_requests(viewer, now=None, limit=100):
    """Pending queue for approvers, longest-waiting first."""
    _require_approver(viewer, audit.PENDING_QUEUE_VIEW, None, None)
    now = now or timezone.now()
    pending = (
        FieldAccessRequest.objects.pending()
        .select_related("requester", "account")
        .order_by("created_at", "pk")[:limit]
    )
    return [
        {
            "id": fr.pk,
            "request_ref": fr.request_ref,
            "requester": fr.requester.get_display_name(),
            "branch_code": fr.requester.branch_code or None,
            "account": f"****{fr.account.account_number_last4}",
            "account_id": fr.account_id,
            "field_name": fr.field_name,
            "reason": fr.reason,
            "ticket_reference": fr.ticket_reference or None,
            "created_at": fr.created_at.isoformat(),
            "minutes_waiting": max(0, int((now - fr.created_at).total_seconds() // 60)),
        }
        for fr in pending
    ]
