"""Liveness endpoint for load balancers and uptime checks."""
import logging

from django.conf import settings
from django.db import DatabaseError, connections
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET

from fieldgate.vault import VaultError, client_from_settings

logger = logging.getLogger(__name__)


def _check_database(alias):
    try:
        with connections[alias].cursor() as cursor:
            cursor.execute("SELECT 1")
        return "healthy"
    except DatabaseError as exc:
        logger.error("Database health check failed (%s): %s", alias, exc)
        return "unhealthy"


def _check_vault():
    if not settings.VAULT_ENABLED:
        return "disabled"
    try:
        return "healthy" if client_from_settings().health() else "unhealthy"
    except VaultError as exc:
        logger.error("Vault health check failed: %s", exc)
        return "error"


@require_GET
def health(request):
    """Report database and Vault status. 200 when usable, 503 otherwise."""
    checks = {
        "timestamp": timezone.now().isoformat(),
        "database": _check_database("default"),
        "audit_database": _check_database("audit"),
        "vault": _check_vault(),
    }
    is_healthy = (
        checks["database"] == "healthy"
        and checks["vault"] in ("healthy", "disabled")
    )
    return JsonResponse(
        {"status": "healthy" if is_healthy else "unhealthy", "checks": checks},
        status=200 if is_healthy else 503,
    )
