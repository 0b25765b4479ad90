"""Authentication views: local username/password login for staff."""
import logging

from django.contrib.auth import authenticate, login, logout
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET, require_POST
from django_ratelimit.decorators import ratelimit

from apps.audit import models as audit
from apps.audit.recorder import record_event
from fieldgate.errors import AuthenticationError, ValidationError
from fieldgate.utils import read_json_body

from .decorators import api_login_required
from .forms import LoginForm
from .models import LOCKOUT_THRESHOLD, User

logger = logging.getLogger(__name__)

# Same message for every refusal so the response does not reveal whether
# the username exists or the account is locked.
_LOGIN_REFUSED = "Invalid username or password."


@require_POST
@ratelimit(key="ip", rate="5/m", method="POST", block=True)
def login_view(request):
    """Username/password login with per-IP rate limiting and account lockout."""
    form = LoginForm(read_json_body(request))
    if not form.is_valid():
        raise ValidationError("Please enter both username and password.")

    username = form.cleaned_data["username"].strip()
    password = form.cleaned_data["password"]

    try:
        user = User.objects.get(username=username)
    except User.DoesNotExist:
        _audit_failed_login(request, username, "user_not_found")
        raise AuthenticationError(_LOGIN_REFUSED)

    if not user.is_active:
        _audit_failed_login(request, username, "inactive")
        raise AuthenticationError(_LOGIN_REFUSED)

    if not user.is_locked and user.failed_login_attempts >= LOCKOUT_THRESHOLD:
        User.objects.filter(pk=user.pk, is_locked=False).update(is_locked=True)
        user.is_locked = True
        _audit_lockout(request, user)

    if user.is_locked:
        _audit_failed_login(request, username, "account_locked")
        raise AuthenticationError(_LOGIN_REFUSED)

    authenticated = authenticate(request, username=username, password=password)
    if authenticated is None:
        attempts = user.record_failed_login()
        _audit_failed_login(request, username, "invalid_password", attempts=attempts)
        if user.is_locked:
            _audit_lockout(request, user)
        raise AuthenticationError(_LOGIN_REFUSED)

    authenticated.reset_failed_logins()
    login(request, authenticated)
    authenticated.last_login_at = timezone.now()
    authenticated.save(update_fields=["last_login_at"])
    record_event(
        audit.LOGIN_SUCCESS,
        audit.CATEGORY_AUTHENTICATION,
        True,
        user=authenticated,
        table_name=User._meta.db_table,
        record_id=authenticated.pk,
        request=request,
    )
    return JsonResponse({"user": authenticated.to_session_identity()})


@require_POST
@api_login_required
def logout_view(request):
    """Log out and destroy the server-side session."""
    record_event(
        audit.LOGOUT,
        audit.CATEGORY_AUTHENTICATION,
        True,
        user=request.user,
        table_name=User._meta.db_table,
        record_id=request.user.pk,
        request=request,
    )
    logout(request)
    return JsonResponse({"success": True})


@require_GET
@api_login_required
def me_view(request):
    """Identity of the current session."""
    identity = request.user.to_session_identity()
    identity["can_approve"] = request.user.can_approve
    return JsonResponse({"user": identity})


def _audit_failed_login(request, attempted_username, reason, attempts=None):
    """Record failed login attempt in audit log for security monitoring."""
    details = {"attempted_username": attempted_username, "reason": reason}
    if attempts is not None:
        details["failed_attempts"] = attempts
    record_event(
        audit.LOGIN_FAILED,
        audit.CATEGORY_AUTHENTICATION,
        False,
        table_name=User._meta.db_table,
        details=details,
        request=request,
    )


def _audit_lockout(request, user):
    logger.warning("User %s locked after %d failed logins", user.username, user.failed_login_attempts)
    record_event(
        audit.ACCOUNT_LOCKED,
        audit.CATEGORY_AUTHENTICATION,
        True,
        table_name=User._meta.db_table,
        record_id=user.pk,
        details={"username": user.username, "failed_attempts": user.failed_login_attempts},
        request=request,
    )
