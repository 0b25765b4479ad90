"""JSON endpoints for field access requests."""
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from apps.auth_app.decorators import api_login_required, approver_required
from fieldgate.errors import ValidationError
from fieldgate.utils import first_form_error, read_json_body

from . import lifecycle
from .forms import ApproveForm, FieldRequestForm, RejectForm


def _bound_form(form_class, request):
    form = form_class(read_json_body(request))
    if not form.is_valid():
        raise ValidationError(first_form_error(form))
    return form.cleaned_data


@require_POST
@api_login_required
def request_submit(request):
    """Submit a request to view one field on one account."""
    data = _bound_form(FieldRequestForm, request)
    field_request = lifecycle.submit_request(
        request.user,
        data["account_id"],
        data["field_name"],
        data["reason"],
        ticket_reference=data["ticket_reference"],
        request=request,
    )
    return JsonResponse({
        "success": True,
        "request_id": field_request.pk,
        "request_ref": field_request.request_ref,
        "status": field_request.status,
        "message": "Request submitted for approval.",
    }, status=201)


@require_GET
@api_login_required
def request_list_mine(request):
    return JsonResponse({"requests": lifecycle.list_my_requests(request.user)})


@require_GET
@api_login_required
@approver_required
def request_list_pending(request):
    return JsonResponse({"data": lifecycle.list_pending_requests(request.user)})


@require_POST
@api_login_required
def request_approve(request, request_id):
    # The approver is always the session user, never a request parameter.
    # Role checks happen in lifecycle so refused attempts are audited.
    data = _bound_form(ApproveForm, request)
    field_request = lifecycle.approve_request(
        request_id,
        request.user,
        duration_minutes=data["duration_minutes"],
        request=request,
    )
    return JsonResponse({
        "success": True,
        "message": "Request approved",
        "access_expires_at": field_request.access_expires_at.isoformat(),
    })


@require_POST
@api_login_required
def request_reject(request, request_id):
    data = _bound_form(RejectForm, request)
    lifecycle.reject_request(request_id, request.user, reason=data["reason"], request=request)
    return JsonResponse({"success": True, "message": "Request rejected"})
