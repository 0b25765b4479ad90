from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_timestamp", models.DateTimeField()),
                ("user_id", models.IntegerField(blank=True, null=True)),
                ("username", models.CharField(blank=True, max_length=150, null=True)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("user_agent", models.CharField(blank=True, default="", max_length=500)),
                ("event_type", models.CharField(max_length=50)),
                ("event_category", models.CharField(max_length=50)),
                ("success", models.BooleanField()),
                ("table_name", models.CharField(blank=True, max_length=100, null=True)),
                ("record_id", models.BigIntegerField(blank=True, null=True)),
                ("accessed_fields", models.JSONField(blank=True, null=True)),
                ("details", models.JSONField(blank=True, null=True)),
            ],
            options={
                "db_table": "pci_audit_log",
                "ordering": ["-event_timestamp"],
                "indexes": [
                    models.Index(fields=["event_type", "event_timestamp"], name="audit_type_time_idx"),
                    models.Index(fields=["user_id", "event_timestamp"], name="audit_user_time_idx"),
                ],
            },
        ),
    ]
