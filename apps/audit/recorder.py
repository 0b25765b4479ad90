"""Best-effort writer for the audit trail.

record_event() never raises. A failed audit write is logged and dropped so
it cannot roll back or block the security decision that triggered it.
"""
import logging

from django.utils import timezone

from fieldgate.utils import get_client_ip, get_user_agent

from .models import AuditLog

logger = logging.getLogger(__name__)


def record_event(
    event_type,
    event_category,
    success,
    user=None,
    table_name=None,
    record_id=None,
    accessed_fields=None,
    details=None,
    request=None,
):
    """Append one audit row. Returns the row, or None if the write failed."""
    try:
        authenticated = user is not None and getattr(user, "is_authenticated", False)
        return AuditLog.objects.using("audit").create(
            event_timestamp=timezone.now(),
            user_id=user.pk if authenticated else None,
            username=user.username if authenticated else None,
            ip_address=get_client_ip(request) if request is not None else None,
            user_agent=get_user_agent(request) if request is not None else "",
            event_type=event_type,
            event_category=event_category,
            success=success,
            table_name=table_name,
            record_id=record_id,
            accessed_fields=list(accessed_fields) if accessed_fields else None,
            details=details or None,
        )
    except Exception as e:
        logger.error("Audit logging failed for %s: %s", event_type, e)
        return None
