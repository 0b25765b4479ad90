"""JSON endpoints for account lookup and gated field reads."""
from django.http import JsonResponse
from django.views.decorators.http import require_GET

from apps.auth_app.decorators import api_login_required

from .gateway import get_account_summary, read_field
from .models import Account

SEARCH_LIMIT = 50


@require_GET
@api_login_required
def account_search(request):
    """Find accounts by (part of) the last four digits of the account number."""
    digits = "".join(ch for ch in request.GET.get("q", "") if ch.isdigit())
    accounts = Account.objects.all()
    if digits:
        accounts = accounts.filter(account_number_last4__contains=digits)
    rows = accounts.order_by("-created_at")[:SEARCH_LIMIT]
    return JsonResponse({
        "data": [
            {
                "id": a.pk,
                "account_number_last4": a.account_number_last4,
                "holder_name_search": a.holder_name_search,
                "created_at": a.created_at.isoformat(),
            }
            for a in rows
        ],
    })


@require_GET
@api_login_required
def account_detail(request, account_id):
    """Account summary, plus one decrypted field when ?field= is given.

    Without an active grant the response still succeeds, with
    granted=False and requires_access_request=True, so the client can
    offer the request form.
    """
    field_name = request.GET.get("field")
    if not field_name:
        return JsonResponse({"account": get_account_summary(account_id)})

    result = read_field(request.user, account_id, field_name, request=request)
    return JsonResponse({
        "account": get_account_summary(account_id),
        "field_name": result.field_name,
        "granted": result.granted,
        "requires_access_request": not result.granted,
        "decrypted_field": result.value,
    })
