"""Authentication backend that refuses locked accounts."""
from django.contrib.auth.backends import ModelBackend


class LockoutBackend(ModelBackend):
    """ModelBackend that also rejects users locked after failed logins."""

    def user_can_authenticate(self, user):
        if getattr(user, "is_locked", False):
            return False
        return super().user_can_authenticate(user)
