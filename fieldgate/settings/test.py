"""Test settings: SQLite for both databases.

The SQLite test databases are files in the temp directory rather than
in-memory, so threads in the concurrency tests each open a real connection
to the same data. CI can point DATABASE_URL and AUDIT_DATABASE_URL
elsewhere.
"""
import os
import tempfile

import dj_database_url

# Provide test defaults BEFORE importing base (which calls require_env).
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://:memory:")
os.environ.setdefault("AUDIT_DATABASE_URL", "sqlite://:memory:")
# Test-only master key, never use in development or production
os.environ.setdefault("FIELD_ENCRYPTION_MASTER_KEY", "dGVzdC1tYXN0ZXIta2V5LW5vdC1mb3ItcHJvZHVjdGlvbg==")
os.environ.setdefault("VAULT_ENABLED", "false")

from .base import *  # noqa: F401, F403

DEBUG = True
ALLOWED_HOSTS = ["*"]
SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False
SECURE_SSL_REDIRECT = False

DATABASES = {
    "default": dj_database_url.parse(
        os.environ["DATABASE_URL"],
        conn_max_age=0,
    ),
    "audit": dj_database_url.parse(
        os.environ["AUDIT_DATABASE_URL"],
        conn_max_age=0,
    ),
}

for _alias, _db in DATABASES.items():
    if _db["ENGINE"] == "django.db.backends.sqlite3":
        _db["TEST"] = {"NAME": os.path.join(tempfile.gettempdir(), f"fieldgate-test-{_alias}.sqlite3")}
        # Writers from other threads wait for the lock instead of failing
        _db.setdefault("OPTIONS", {})["timeout"] = 20

# Use fast password hasher for tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Disable per-IP login throttling in tests (prevents 403s from cumulative POSTs)
RATELIMIT_ENABLE = False

# No background sweeper thread during tests
RATE_LIMIT_CLEANUP_INTERVAL = 0

# Generous per-user submit limit; tests that exercise the limiter inject
# their own instance.
FIELD_REQUEST_RATE_LIMIT = 1000
