"""Small request helpers shared across apps."""
import json

from fieldgate.errors import ValidationError


def get_client_ip(request):
    """Best-effort client IP, honouring the first X-Forwarded-For hop."""
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.META.get("HTTP_X_REAL_IP") or request.META.get("REMOTE_ADDR") or None


def get_user_agent(request):
    return request.META.get("HTTP_USER_AGENT", "")[:500]


def read_json_body(request):
    """Parse a JSON object body; form-encoded bodies fall back to POST."""
    if request.content_type != "application/json":
        return request.POST.dict()
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise ValidationError("Request body is not valid JSON.")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def first_form_error(form):
    """Flatten a bound form's errors into one readable message."""
    for field, errors in form.errors.items():
        if field == "__all__":
            return errors[0]
        return f"{field}: {errors[0]}"
    return "Invalid request."
