"""Translate domain errors raised by views into JSON responses."""
import logging

from django.http import JsonResponse

from fieldgate.errors import FieldGateError, RateLimitError

logger = logging.getLogger(__name__)

_GENERIC_SERVER_MESSAGE = "Internal error."


class DomainErrorMiddleware:
    """
    Catch FieldGateError subclasses and answer with their status code.

    5xx errors (decryption, encryption) only ever return a generic message
    so cipher internals never reach the client. Other exceptions are left
    for Django's normal 500 handling.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if not isinstance(exception, FieldGateError):
            return None

        status = exception.status_code
        if status >= 500:
            logger.error(
                "%s on %s %s", exception.__class__.__name__, request.method, request.path
            )
            message = exception.default_message or _GENERIC_SERVER_MESSAGE
        else:
            message = exception.message

        response = JsonResponse({"error": message}, status=status)
        if isinstance(exception, RateLimitError) and exception.retry_after:
            response["Retry-After"] = str(int(exception.retry_after))
        return response
