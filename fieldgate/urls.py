"""URL configuration for FieldGate."""
from django.contrib import admin
from django.urls import include, path

from fieldgate.error_views import not_found_view, permission_denied_view
from fieldgate.health_views import health

# Custom error handlers
handler403 = permission_denied_view
handler404 = not_found_view

urlpatterns = [
    path("auth/", include("apps.auth_app.urls")),
    path("api/accounts/", include("apps.accounts.urls")),
    path("api/requests/", include("apps.field_requests.urls")),
    path("api/health/", health, name="health"),
    path("django-admin/", admin.site.urls),
]
