"""Custom user model for bank staff."""
from django.conf import settings
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models
from django.db.models import F
from django.utils.translation import gettext_lazy as _

# Failed password attempts before the account is locked
LOCKOUT_THRESHOLD = 5

ROLE_TELLER = "TELLER"
ROLE_SUPERVISOR = "SUPERVISOR"
ROLE_MANAGER = "MANAGER"
ROLE_VVIP = "VVIP"
ROLE_ADMIN = "ADMIN"
ROLE_DBA = "DBA"

ROLE_CHOICES = [
    (ROLE_TELLER, _("Teller")),
    (ROLE_SUPERVISOR, _("Supervisor")),
    (ROLE_MANAGER, _("Manager")),
    (ROLE_VVIP, _("VVIP Relationship Manager")),
    (ROLE_ADMIN, _("Administrator")),
    (ROLE_DBA, _("Database Administrator")),
]


def can_approve(role):
    """True when the role is in the configured approver allow-list."""
    return bool(role) and role in settings.FIELD_REQUEST_APPROVER_ROLES


class UserManager(BaseUserManager):
    """Manager for the custom User model."""

    def create_user(self, username, password=None, **extra_fields):
        if not username:
            raise ValueError("Username is required.")
        user = self.model(username=username, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_superuser(self, username, password=None, **extra_fields):
        extra_fields.setdefault("role", ROLE_ADMIN)
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        return self.create_user(username, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Bank employee.

    The role decides what the user may do with field access requests.
    Approval rights come from settings.FIELD_REQUEST_APPROVER_ROLES
    (a flat list), so adding an approver role is a settings change.
    """

    username = models.CharField(max_length=150, unique=True)
    employee_id = models.CharField(max_length=50, unique=True, null=True, blank=True)
    display_name = models.CharField(max_length=255, blank=True, default="")
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_TELLER)
    branch_code = models.CharField(max_length=20, blank=True, default="")

    is_active = models.BooleanField(default=True)
    is_locked = models.BooleanField(
        default=False,
        help_text="Set after repeated failed logins. An administrator must unlock.",
    )
    failed_login_attempts = models.IntegerField(default=0)
    is_staff = models.BooleanField(default=False, help_text="Django admin access.")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    last_login_at = models.DateTimeField(null=True, blank=True)

    objects = UserManager()

    USERNAME_FIELD = "username"
    REQUIRED_FIELDS = ["display_name"]

    class Meta:
        app_label = "auth_app"
        db_table = "users"

    def __str__(self):
        return self.display_name or self.username

    def get_display_name(self):
        return self.display_name or self.username

    @property
    def can_approve(self):
        return can_approve(self.role)

    def record_failed_login(self):
        """Increment the failure counter; lock at the threshold.

        Returns the new attempt count. The increment runs in the database
        so parallel attempts cannot undercount.
        """
        User.objects.filter(pk=self.pk).update(
            failed_login_attempts=F("failed_login_attempts") + 1
        )
        self.refresh_from_db(fields=["failed_login_attempts"])
        if self.failed_login_attempts >= LOCKOUT_THRESHOLD and not self.is_locked:
            User.objects.filter(pk=self.pk, is_locked=False).update(is_locked=True)
            self.is_locked = True
        return self.failed_login_attempts

    def reset_failed_logins(self):
        if self.failed_login_attempts:
            self.failed_login_attempts = 0
            self.save(update_fields=["failed_login_attempts"])

    def to_session_identity(self):
        """The identity shape exposed to API clients."""
        return {
            "id": self.pk,
            "name": self.get_display_name(),
            "username": self.username,
            "role": self.role,
        }
