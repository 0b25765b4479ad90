"""Domain errors shared by the field access apps.

Each error carries the HTTP status the JSON adapters should answer with.
DomainErrorMiddleware does the translation, so service functions raise
these freely and views stay thin.

Denied field access is NOT an error: the gateway returns a result with
granted=False so callers can offer the request path.
"""


class FieldGateError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    default_message = "Internal error."

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(FieldGateError):
    """Input has the wrong shape (unknown field, blank reason, bad id)."""

    status_code = 400
    default_message = "Invalid request."


class AuthenticationError(FieldGateError):
    """No valid session."""

    status_code = 401
    default_message = "Unauthorized"


class AuthorizationError(FieldGateError):
    """Authenticated, but the role does not allow the action."""

    status_code = 403
    default_message = "Insufficient permissions"


class NotFoundError(FieldGateError):
    """Entity is missing or already resolved.

    "Already approved/rejected" deliberately looks the same as "never
    existed" so callers cannot discover another reviewer's decisions.
    """

    status_code = 404
    default_message = "Not found."


class DuplicateRequestError(FieldGateError):
    """A PENDING request already exists for (requester, account, field)."""

    status_code = 409
    default_message = "A pending request already exists for this field."


class RateLimitError(FieldGateError):
    status_code = 429
    default_message = "Too many requests. Please try again later."

    def __init__(self, message=None, retry_after=None):
        super().__init__(message)
        self.retry_after = retry_after
