"""Base settings shared by every environment.

Secrets and connection strings come from the environment. Anything the
application cannot run without is read through require_env(), so a
misconfigured deployment fails at startup instead of on the first request.
"""
import os
from pathlib import Path

import dj_database_url
from django.core.exceptions import ImproperlyConfigured

BASE_DIR = Path(__file__).resolve().parent.parent.parent


def require_env(name):
    """Return an environment variable or stop the process with a clear error."""
    value = os.environ.get(name, "")
    if not value:
        raise ImproperlyConfigured(f"Environment variable {name} is required.")
    return value


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = require_env("SECRET_KEY")
DEBUG = False
ALLOWED_HOSTS = [h.strip() for h in os.environ.get("ALLOWED_HOSTS", "").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "django_ratelimit",
    "apps.auth_app",
    "apps.accounts",
    "apps.field_requests",
    "apps.audit",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "fieldgate.middleware.domain_errors.DomainErrorMiddleware",
]

ROOT_URLCONF = "fieldgate.urls"
WSGI_APPLICATION = "fieldgate.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

# Two databases: operational data and the append-only audit trail.
# The audit database user should only hold INSERT/SELECT privileges.
DATABASES = {
    "default": dj_database_url.parse(require_env("DATABASE_URL"), conn_max_age=600),
    "audit": dj_database_url.parse(require_env("AUDIT_DATABASE_URL"), conn_max_age=600),
}
DATABASE_ROUTERS = ["fieldgate.db_router.AuditRouter"]
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

AUTH_USER_MODEL = "auth_app.User"
AUTHENTICATION_BACKENDS = ["apps.auth_app.backends.LockoutBackend"]

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "fieldgate",
    },
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# Session security: short idle timeout for staff handling customer data
SESSION_COOKIE_AGE = 15 * 60
SESSION_SAVE_EVERY_REQUEST = True
SESSION_COOKIE_SECURE = True
SESSION_COOKIE_HTTPONLY = True
CSRF_COOKIE_SECURE = True
SECURE_SSL_REDIRECT = env_bool("SECURE_SSL_REDIRECT", True)

# --- Field encryption ---------------------------------------------------------

# Master secret for the local AES-256-GCM strategy. Never used as a key
# directly; fieldgate.encryption derives the key with scrypt.
FIELD_ENCRYPTION_MASTER_KEY = require_env("FIELD_ENCRYPTION_MASTER_KEY")

VAULT_ENABLED = env_bool("VAULT_ENABLED", False)
VAULT_ADDR = os.environ.get("VAULT_ADDR", "http://localhost:8200")
VAULT_ROLE_ID = os.environ.get("VAULT_ROLE_ID", "")
VAULT_SECRET_ID = os.environ.get("VAULT_SECRET_ID", "")
VAULT_NAMESPACE = os.environ.get("VAULT_NAMESPACE", "")
VAULT_TRANSIT_KEY = os.environ.get("VAULT_TRANSIT_KEY", "customer-data")
VAULT_TIMEOUT = int(os.environ.get("VAULT_TIMEOUT", "5"))

# Ordered cipher strategies. The first strategy that can handle a value
# (and passes its health check) wins; "local" must always be last.
FIELD_CIPHER_STRATEGIES = ["vault", "local"] if VAULT_ENABLED else ["local"]

# --- Field access requests ----------------------------------------------------

# Flat allow-list. Add a role here to let it approve; there is no hierarchy.
FIELD_REQUEST_APPROVER_ROLES = ["SUPERVISOR", "MANAGER", "VVIP", "ADMIN"]
FIELD_ACCESS_DEFAULT_DURATION_MINUTES = 30
FIELD_ACCESS_MAX_DURATION_MINUTES = 8 * 60

FIELD_REQUEST_RATE_LIMITER = "fieldgate.ratelimit.InMemoryRateLimiter"
FIELD_REQUEST_RATE_LIMIT = 10
FIELD_REQUEST_RATE_WINDOW = 60  # seconds
RATE_LIMIT_CLEANUP_INTERVAL = 5 * 60  # seconds; 0 disables the sweeper

RATELIMIT_ENABLE = True

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": os.environ.get("LOG_LEVEL", "INFO"),
    },
    "loggers": {
        "django.db.backends": {
            "level": "WARNING",
        },
    },
}
