"""Authorization gateway for sensitive account fields.

read_field() is the only caller of decrypt_field() for account data:

    result = read_field(request.user, account_id, "ssn", request=request)
    if not result.granted:
        # offer the request-submission flow
        ...

A missing grant is a normal outcome (granted=False), not an exception.
Undecryptable ciphertext raises DecryptionError rather than falling back to
masked data, which would misrepresent the grant.
"""
import logging
from collections import namedtuple

from django.utils import timezone

from apps.audit import models as audit
from apps.audit.recorder import record_event
from apps.field_requests.grants import has_active_access
from fieldgate.encryption import decrypt_field
from fieldgate.errors import NotFoundError, ValidationError

from .models import Account, is_sensitive_field

logger = logging.getLogger(__name__)

FieldReadResult = namedtuple("FieldReadResult", ["granted", "field_name", "value"])

TABLE_NAME = Account._meta.db_table


def get_account(account_id):
    try:
        return Account.objects.get(pk=account_id)
    except Account.DoesNotExist:
        raise NotFoundError("Account not found")


def get_account_summary(account_id):
    """Bare lookup: non-sensitive metadata only, no audit row."""
    return get_account(account_id).to_summary()


def read_field(user, account_id, field_name, now=None, request=None):
    """Return the plaintext of one field if the user holds an active grant."""
    if not is_sensitive_field(field_name):
        raise ValidationError("Invalid field parameter")
    account = get_account(account_id)
    now = now or timezone.now()

    if not has_active_access(user.pk, account.pk, field_name, now):
        record_event(
            audit.FIELD_ACCESS_DENIED,
            audit.CATEGORY_ACCESS,
            False,
            user=user,
            table_name=TABLE_NAME,
            record_id=account.pk,
            accessed_fields=[field_name],
            details={"reason": "no_active_grant"},
            request=request,
        )
        return FieldReadResult(granted=False, field_name=field_name, value=None)

    ciphertext = account.get_ciphertext(field_name)
    # DecryptionError propagates; the view audit row below is only written
    # once decryption has fully succeeded.
    value = decrypt_field(ciphertext) if ciphertext else None

    record_event(
        audit.FIELD_ACCESS_VIEW,
        audit.CATEGORY_ACCESS,
        True,
        user=user,
        table_name=TABLE_NAME,
        record_id=account.pk,
        accessed_fields=[field_name],
        request=request,
    )
    return FieldReadResult(granted=True, field_name=field_name, value=value)
