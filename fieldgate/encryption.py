"""
Field-level encryption for sensitive account data.

Values are encrypted by an ordered chain of named strategies, configured in
settings.FIELD_CIPHER_STRATEGIES:

    # Local only (default):
    FIELD_CIPHER_STRATEGIES = ["local"]

    # Vault Transit first, local AES-256-GCM as the fallback:
    FIELD_CIPHER_STRATEGIES = ["vault", "local"]

Encryption uses the first strategy that passes its health check. Decryption
routes on the stored value itself: Vault ciphertexts carry a "vault:" prefix,
everything else is the local layout

    base64( salt[32] | nonce[16] | tag[16] | ciphertext )

The local key is derived from FIELD_ENCRYPTION_MASTER_KEY with scrypt and a
fixed, versioned application salt. The per-value salt is random and stored
alongside the nonce.

Usage:
    from fieldgate.encryption import encrypt_field, decrypt_field

    account._ssn_encrypted = encrypt_field("123-45-6789")
    decrypt_field(account._ssn_encrypted)
"""
import base64
import binascii
import hashlib
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from django.conf import settings
from django.core.checks import Error, register
from django.core.exceptions import ImproperlyConfigured

from fieldgate.errors import FieldGateError
from fieldgate.vault import VAULT_CIPHERTEXT_PREFIX, VaultError, client_from_settings

logger = logging.getLogger(__name__)

SALT_LENGTH = 32
NONCE_LENGTH = 16
TAG_LENGTH = 16
KEY_LENGTH = 32
HEADER_LENGTH = SALT_LENGTH + NONCE_LENGTH + TAG_LENGTH

# Changing this salt changes the derived key: bump the version and
# re-encrypt, never edit in place.
KEY_DERIVATION_SALT = b"fieldgate-encryption-salt-v1"
SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1

_cipher = None
_derived_keys = {}


class DecryptionError(FieldGateError):
    """Raised when a stored value cannot be decrypted.

    Wrong length, bad base64, tag mismatch and key mismatch all collapse
    into this one error. The message never describes which check failed.
    """

    status_code = 500
    default_message = "Failed to decrypt sensitive data"


class EncryptionError(FieldGateError):
    status_code = 500
    default_message = "Failed to encrypt sensitive data"


def derive_key(master_key):
    """Derive the 256-bit AES key from the master secret (cached)."""
    key = _derived_keys.get(master_key)
    if key is None:
        kdf = Scrypt(
            salt=KEY_DERIVATION_SALT,
            length=KEY_LENGTH,
            n=SCRYPT_N,
            r=SCRYPT_R,
            p=SCRYPT_P,
        )
        key = kdf.derive(master_key.encode("utf-8"))
        _derived_keys[master_key] = key
    return key


class CipherStrategy:
    """One link in the cipher chain.

    handles() says whether a stored value belongs to this strategy,
    is_available() is the health gate, and fallback_errors lists the
    exceptions that hand control to the next strategy instead of failing
    the call. A strategy with no fallback errors is terminal.
    """

    name = ""
    fallback_errors = ()

    @property
    def terminal(self):
        return not self.fallback_errors

    def handles(self, blob):
        return True

    def is_available(self):
        return True

    def encrypt(self, plaintext, key_name):
        raise NotImplementedError

    def decrypt(self, blob, key_name):
        raise NotImplementedError


class LocalAESGCMStrategy(CipherStrategy):
    """AES-256-GCM with a scrypt-derived key."""

    name = "local"

    def __init__(self, master_key=None):
        self._master_key = master_key

    def _key(self):
        master_key = self._master_key or settings.FIELD_ENCRYPTION_MASTER_KEY
        if not master_key:
            raise ImproperlyConfigured(
                "FIELD_ENCRYPTION_MASTER_KEY is not set. "
                "Generate one with: python -c \"from fieldgate.encryption import "
                "generate_master_key; print(generate_master_key())\""
            )
        return derive_key(master_key)

    def encrypt(self, plaintext, key_name):
        key = self._key()
        try:
            salt = os.urandom(SALT_LENGTH)
            nonce = os.urandom(NONCE_LENGTH)
            sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
        except (ValueError, TypeError, UnicodeEncodeError):
            logger.error("Local encryption failed")
            raise EncryptionError()
        # AESGCM appends the tag; the stored layout puts it before the body.
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return base64.b64encode(salt + nonce + tag + ciphertext).decode("ascii")

    def decrypt(self, blob, key_name):
        key = self._key()
        try:
            combined = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError):
            logger.error("Decryption failed: stored value is not valid base64")
            raise DecryptionError()
        if len(combined) < HEADER_LENGTH:
            logger.error("Decryption failed: stored value is truncated")
            raise DecryptionError()

        nonce = combined[SALT_LENGTH:SALT_LENGTH + NONCE_LENGTH]
        tag = combined[SALT_LENGTH + NONCE_LENGTH:HEADER_LENGTH]
        ciphertext = combined[HEADER_LENGTH:]
        try:
            plaintext = AESGCM(key).decrypt(nonce, ciphertext + tag, None)
            return plaintext.decode("utf-8")
        except (InvalidTag, ValueError, UnicodeDecodeError):
            logger.error("Decryption failed: possible key mismatch or data corruption")
            raise DecryptionError()


class VaultTransitStrategy(CipherStrategy):
    """Delegate to Vault Transit, checking health before each call."""

    name = "vault"
    fallback_errors = (VaultError,)

    def __init__(self, client_factory=client_from_settings):
        self._client_factory = client_factory
        self._client = None

    def _get_client(self):
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    def handles(self, blob):
        return blob.startswith(VAULT_CIPHERTEXT_PREFIX)

    def is_available(self):
        try:
            return self._get_client().health()
        except VaultError as exc:
            logger.warning("Vault unavailable: %s", exc)
            return False

    def encrypt(self, plaintext, key_name):
        return self._get_client().encrypt(plaintext, key_name)

    def decrypt(self, blob, key_name):
        return self._get_client().decrypt(blob, key_name)


STRATEGIES = {
    LocalAESGCMStrategy.name: LocalAESGCMStrategy,
    VaultTransitStrategy.name: VaultTransitStrategy,
}


class FieldCipher:
    """Run an ordered list of strategies, falling back once per link."""

    def __init__(self, strategies, default_key_name="customer-data"):
        strategies = list(strategies)
        if not strategies or not strategies[-1].terminal:
            raise ImproperlyConfigured(
                "The cipher chain must end with a terminal strategy (\"local\")."
            )
        self.strategies = strategies
        self.default_key_name = default_key_name

    @property
    def strategy_names(self):
        return [s.name for s in self.strategies]

    def encrypt(self, plaintext, key_name=None):
        if plaintext is None or plaintext == "":
            return ""
        key_name = key_name or self.default_key_name
        for strategy in self.strategies:
            if not strategy.is_available():
                logger.warning("%s cipher unavailable, falling back", strategy.name)
                continue
            try:
                return strategy.encrypt(plaintext, key_name)
            except strategy.fallback_errors as exc:
                logger.error("%s encryption failed, falling back: %s", strategy.name, exc)
        raise EncryptionError()

    def decrypt(self, blob, key_name=None):
        if not blob:
            return ""
        key_name = key_name or self.default_key_name
        for strategy in self.strategies:
            if not strategy.handles(blob):
                continue
            if not strategy.is_available():
                logger.warning("%s cipher unavailable, falling back", strategy.name)
                continue
            try:
                return strategy.decrypt(blob, key_name)
            except strategy.fallback_errors as exc:
                logger.error("%s decryption failed, falling back: %s", strategy.name, exc)
        raise DecryptionError()


def build_cipher(names=None):
    """Build a FieldCipher from strategy names (defaults to settings)."""
    names = names if names is not None else settings.FIELD_CIPHER_STRATEGIES
    strategies = []
    for name in names:
        try:
            strategies.append(STRATEGIES[name]())
        except KeyError:
            raise ImproperlyConfigured(f"Unknown cipher strategy: {name!r}")
    return FieldCipher(strategies, default_key_name=settings.VAULT_TRANSIT_KEY)


def get_cipher():
    """Lazy-initialise the configured cipher chain."""
    global _cipher
    if _cipher is None:
        _cipher = build_cipher()
    return _cipher


def encrypt_field(plaintext, key_name=None):
    """Encrypt a string value. Returns text for storage in a TextField."""
    return get_cipher().encrypt(plaintext, key_name)


def decrypt_field(ciphertext, key_name=None):
    """Decrypt a stored value back to its string."""
    return get_cipher().decrypt(ciphertext, key_name)


def mask_field(value, field_type):
    """Return a display-safe version of a plaintext value.

    Never returns the full value; for identifiers, at most the last four
    characters survive.
    """
    if not value:
        return ""

    if field_type == "account_number":
        return f"************{value[-4:]}"
    if field_type == "ssn":
        return f"***-**-{value[-4:]}"
    if field_type == "phone":
        return f"***-***-{value[-4:]}"
    if field_type == "email":
        local, sep, domain = value.partition("@")
        if not sep or not local:
            return "***"
        stars = "*" * max(1, min(len(local) - 1, 8))
        return f"{local[0]}{stars}@{domain}"
    if field_type == "balance":
        return "$***,***.**"
    if field_type == "address":
        parts = value.split(",")
        return f"***, {parts[-1].strip()}" if len(parts) > 1 else "***"
    return "***"


def hash_for_deduplication(value):
    """One-way SHA-256 hash for duplicate checks on encrypted columns."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def generate_master_key():
    """Generate a new master secret for FIELD_ENCRYPTION_MASTER_KEY."""
    return base64.b64encode(os.urandom(32)).decode("ascii")


@register()
def check_encryption_key(app_configs, **kwargs):
    """Django system check: verify the local cipher round-trips.

    Runs on every `./manage.py check` (and on startup), so a missing or
    broken master key is found at boot, not when a teller opens a field.
    """
    errors = []
    try:
        strategy = LocalAESGCMStrategy()
        test_plaintext = "fieldgate-encryption-selftest"
        if strategy.decrypt(strategy.encrypt(test_plaintext, None), None) != test_plaintext:
            errors.append(
                Error(
                    "FIELD_ENCRYPTION_MASTER_KEY round-trip check failed.",
                    hint="Check that FIELD_ENCRYPTION_MASTER_KEY is set correctly.",
                    id="fieldgate.E001",
                )
            )
    except Exception as exc:
        errors.append(
            Error(
                f"FIELD_ENCRYPTION_MASTER_KEY is invalid or missing: {exc}",
                hint=(
                    "Generate a key with: python -c \"from fieldgate.encryption "
                    "import generate_master_key; print(generate_master_key())\""
                ),
                id="fieldgate.E001",
            )
        )
    return errors
