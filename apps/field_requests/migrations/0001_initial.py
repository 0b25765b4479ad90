import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import apps.field_requests.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="FieldAccessRequest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("request_ref", models.CharField(default=apps.field_requests.models.generate_request_ref, max_length=40, unique=True)),
                ("field_name", models.CharField(choices=[("account_number", "Account number"), ("ssn", "Social security number"), ("balance", "Balance"), ("email", "Email"), ("phone", "Phone"), ("address", "Address")], max_length=20)),
                ("reason", models.TextField()),
                ("ticket_reference", models.CharField(blank=True, default="", max_length=100)),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("APPROVED", "Approved"), ("REJECTED", "Rejected")], default="PENDING", max_length=10)),
                ("reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True, default="")),
                ("access_expires_at", models.DateTimeField(blank=True, null=True)),
                ("access_duration_minutes", models.IntegerField(default=30)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("account", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="field_requests", to="accounts.account")),
                ("requester", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="field_requests", to=settings.AUTH_USER_MODEL)),
                ("reviewed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="field_requests_reviewed", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "field_access_requests",
                "ordering": ["-created_at"],
            },
        ),
        migrations.AddIndex(
            model_name="fieldaccessrequest",
            index=models.Index(fields=["requester", "account", "field_name", "status"], name="field_request_grant_idx"),
        ),
        migrations.AddConstraint(
            model_name="fieldaccessrequest",
            constraint=models.UniqueConstraint(condition=models.Q(("status", "PENDING")), fields=("requester", "account", "field_name"), name="unique_pending_field_request"),
        ),
    ]
