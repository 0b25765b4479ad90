"""Access decorators for the JSON API views."""
from functools import wraps

from fieldgate.errors import AuthenticationError, AuthorizationError

from .models import can_approve


def api_login_required(view_func):
    """Require an authenticated session; answer 401 instead of redirecting."""

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            raise AuthenticationError()
        return view_func(request, *args, **kwargs)
    return wrapper


def approver_required(view_func):
    """Require a role from FIELD_REQUEST_APPROVER_ROLES.

    Stack below api_login_required so anonymous callers get 401, not 403.
    """

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not can_approve(getattr(request.user, "role", None)):
            raise AuthorizationError()
        return view_func(request, *args, **kwargs)
    return wrapper
