from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                ("is_superuser", models.BooleanField(default=False, help_text="Designates that this user has all permissions without explicitly assigning them.", verbose_name="superuser status")),
                ("username", models.CharField(max_length=150, unique=True)),
                ("employee_id", models.CharField(blank=True, max_length=50, null=True, unique=True)),
                ("display_name", models.CharField(blank=True, default="", max_length=255)),
                ("role", models.CharField(choices=[("TELLER", "Teller"), ("SUPERVISOR", "Supervisor"), ("MANAGER", "Manager"), ("VVIP", "VVIP Relationship Manager"), ("ADMIN", "Administrator"), ("DBA", "Database Administrator")], default="TELLER", max_length=20)),
                ("branch_code", models.CharField(blank=True, default="", max_length=20)),
                ("is_active", models.BooleanField(default=True)),
                ("is_locked", models.BooleanField(default=False, help_text="Set after repeated failed logins. An administrator must unlock.")),
                ("failed_login_attempts", models.IntegerField(default=0)),
                ("is_staff", models.BooleanField(default=False, help_text="Django admin access.")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("last_login_at", models.DateTimeField(blank=True, null=True)),
                ("groups", models.ManyToManyField(blank=True, help_text="The groups this user belongs to. A user will get all permissions granted to each of their groups.", related_name="user_set", related_query_name="user", to="auth.group", verbose_name="groups")),
                ("user_permissions", models.ManyToManyField(blank=True, help_text="Specific permissions for this user.", related_name="user_set", related_query_name="user", to="auth.permission", verbose_name="user permissions")),
            ],
            options={
                "db_table": "users",
            },
        ),
    ]
