from django.apps import AppConfig


class FieldRequestsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.field_requests"
    label = "field_requests"
    verbose_name = "Field Access Requests"
