"""Customer accounts with per-field encrypted sensitive columns."""
from django.db import models
from django.utils.translation import gettext_lazy as _

from fieldgate.encryption import encrypt_field, hash_for_deduplication, mask_field

ACCOUNT_NUMBER = "account_number"
SSN = "ssn"
BALANCE = "balance"
EMAIL = "email"
PHONE = "phone"
ADDRESS = "address"

SENSITIVE_FIELDS = (ACCOUNT_NUMBER, SSN, BALANCE, EMAIL, PHONE, ADDRESS)

SENSITIVE_FIELD_CHOICES = [
    (ACCOUNT_NUMBER, _("Account number")),
    (SSN, _("Social security number")),
    (BALANCE, _("Balance")),
    (EMAIL, _("Email")),
    (PHONE, _("Phone")),
    (ADDRESS, _("Address")),
]


def is_sensitive_field(field_name):
    return field_name in SENSITIVE_FIELDS


def _digits(value):
    return "".join(ch for ch in value if ch.isdigit())


class AccountManager(models.Manager):
    """Manager for Account."""

    def create_with_sensitive(self, holder_name_search="", status="active", **values):
        """Create an account, encrypting each sensitive value given by name."""
        account = self.model(holder_name_search=holder_name_search, status=status)
        for field_name, value in values.items():
            account.set_sensitive(field_name, value)
        account.save(using=self._db)
        return account


class Account(models.Model):
    """
    A customer account.

    Search metadata (last-4 digits, masked hints) is stored in clear so
    staff can find an account. Each sensitive value is encrypted on its own
    in a _<field>_encrypted column. There are deliberately no plaintext
    properties here: the authorization gateway is the only code path that
    decrypts, and only after checking for an active grant.
    """

    STATUS_CHOICES = [
        ("active", _("Active")),
        ("dormant", _("Dormant")),
        ("closed", _("Closed")),
    ]

    account_number_last4 = models.CharField(max_length=4, blank=True, default="", db_index=True)
    account_number_hash = models.CharField(max_length=64, blank=True, default="", db_index=True)
    holder_name_search = models.CharField(max_length=255, blank=True, default="")
    ssn_last4 = models.CharField(max_length=4, blank=True, default="")
    email_hint = models.CharField(max_length=255, blank=True, default="")
    phone_last4 = models.CharField(max_length=4, blank=True, default="")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="active")

    _account_number_encrypted = models.TextField(default="", blank=True)
    _ssn_encrypted = models.TextField(default="", blank=True)
    _balance_encrypted = models.TextField(default="", blank=True)
    _email_encrypted = models.TextField(default="", blank=True)
    _phone_encrypted = models.TextField(default="", blank=True)
    _address_encrypted = models.TextField(default="", blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = AccountManager()

    class Meta:
        app_label = "accounts"
        db_table = "accounts"
        ordering = ["-created_at"]

    def __str__(self):
        return f"Account ****{self.account_number_last4 or '????'}"

    @staticmethod
    def ciphertext_column(field_name):
        if not is_sensitive_field(field_name):
            raise ValueError(f"Not a sensitive field: {field_name!r}")
        return f"_{field_name}_encrypted"

    def get_ciphertext(self, field_name):
        return getattr(self, self.ciphertext_column(field_name))

    def has_value(self, field_name):
        return bool(self.get_ciphertext(field_name))

    def set_sensitive(self, field_name, value):
        """Encrypt value into its column and refresh the matching search hint."""
        value = "" if value is None else str(value)
        setattr(self, self.ciphertext_column(field_name), encrypt_field(value))

        if field_name == ACCOUNT_NUMBER:
            digits = _digits(value)
            self.account_number_last4 = digits[-4:]
            self.account_number_hash = hash_for_deduplication(digits) if digits else ""
        elif field_name == SSN:
            self.ssn_last4 = _digits(value)[-4:]
        elif field_name == PHONE:
            self.phone_last4 = _digits(value)[-4:]
        elif field_name == EMAIL:
            self.email_hint = mask_field(value, EMAIL)

    def to_summary(self):
        """Non-sensitive projection safe to return without a grant."""
        return {
            "id": self.pk,
            "account_number_last4": self.account_number_last4,
            "holder_name_search": self.holder_name_search,
            "ssn_last4": self.ssn_last4,
            "email_hint": self.email_hint,
            "phone_last4": self.phone_last4,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "available_fields": [f for f in SENSITIVE_FIELDS if self.has_value(f)],
        }
