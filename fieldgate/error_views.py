"""Custom error handlers that answer with JSON instead of HTML pages."""
from django.http import JsonResponse
from django_ratelimit.exceptions import Ratelimited

# Exception messages that are safe to display to users. Longer messages
# are assumed to come from third-party code and are replaced.
_SAFE_MESSAGE_MAX_LENGTH = 200


def permission_denied_view(request, exception):
    """403 handler. Also reached when django-ratelimit blocks a request."""
    if isinstance(exception, Ratelimited):
        return JsonResponse(
            {"error": "Too many attempts. Please try again later."}, status=429
        )

    message = str(exception) if exception else ""
    if not message or len(message) > _SAFE_MESSAGE_MAX_LENGTH:
        message = "Access denied."
    return JsonResponse({"error": message}, status=403)


def not_found_view(request, exception):
    return JsonResponse({"error": "Not found."}, status=404)
