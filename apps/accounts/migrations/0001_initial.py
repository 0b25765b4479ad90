from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("account_number_last4", models.CharField(blank=True, db_index=True, default="", max_length=4)),
                ("account_number_hash", models.CharField(blank=True, db_index=True, default="", max_length=64)),
                ("holder_name_search", models.CharField(blank=True, default="", max_length=255)),
                ("ssn_last4", models.CharField(blank=True, default="", max_length=4)),
                ("email_hint", models.CharField(blank=True, default="", max_length=255)),
                ("phone_last4", models.CharField(blank=True, default="", max_length=4)),
                ("status", models.CharField(choices=[("active", "Active"), ("dormant", "Dormant"), ("closed", "Closed")], default="active", max_length=20)),
                ("_account_number_encrypted", models.TextField(blank=True, default="")),
                ("_ssn_encrypted", models.TextField(blank=True, default="")),
                ("_balance_encrypted", models.TextField(blank=True, default="")),
                ("_email_encrypted", models.TextField(blank=True, default="")),
                ("_phone_encrypted", models.TextField(blank=True, default="")),
                ("_address_encrypted", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "accounts",
                "ordering": ["-created_at"],
            },
        ),
    ]
