"""
Management command: lockdown_audit_db

Restricts the audit database role to INSERT + SELECT on the field access
audit table, so audit rows cannot be rewritten even with raw SQL. Run it
after migrations; it is idempotent (revoke, then re-grant).

Usage:
    python manage.py lockdown_audit_db
    python manage.py lockdown_audit_db --reader-role audit_reader
"""

from django.core.management.base import BaseCommand, CommandError
from django.db import connections
from psycopg.sql import SQL, Identifier

from apps.audit.models import AuditLog


class Command(BaseCommand):
    help = (
        "Lock down the audit database: revoke UPDATE/DELETE from the audit "
        "writer role, grant only SELECT + INSERT and USAGE on sequences."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--reader-role",
            default="audit_reader",
            help="Read-only role to grant SELECT to, if it exists.",
        )

    def handle(self, *args, **options):
        connection = connections["audit"]
        if connection.vendor != "postgresql":
            raise CommandError("lockdown_audit_db only supports PostgreSQL.")

        db_user = connection.settings_dict["USER"]
        table_name = AuditLog._meta.db_table
        table = Identifier(table_name)
        role = Identifier(db_user)

        self.stdout.write(f"Locking down {table_name} for role '{db_user}'...")

        with connection.cursor() as cursor:
            cursor.execute(
                "SELECT EXISTS ("
                "  SELECT FROM information_schema.tables"
                "  WHERE table_schema = 'public' AND table_name = %s"
                ")",
                [table_name],
            )
            if not cursor.fetchone()[0]:
                self.stdout.write(
                    self.style.WARNING(
                        f"{table_name} does not exist yet, skipping lockdown. "
                        "Run migrations first, then re-run this command."
                    )
                )
                return

            cursor.execute(SQL("REVOKE ALL ON {} FROM {};").format(table, role))
            self.stdout.write(f"  REVOKED all privileges on {table_name} from {db_user}")

            cursor.execute(SQL("GRANT SELECT, INSERT ON {} TO {};").format(table, role))
            self.stdout.write(f"  GRANTED SELECT, INSERT on {table_name} to {db_user}")

            # Sequences are needed for auto-increment primary keys
            cursor.execute(
                SQL("GRANT USAGE ON ALL SEQUENCES IN SCHEMA public TO {};").format(role)
            )
            self.stdout.write(f"  GRANTED USAGE on all sequences to {db_user}")

            reader = options["reader_role"]
            cursor.execute("SELECT EXISTS (SELECT FROM pg_roles WHERE rolname = %s)", [reader])
            if cursor.fetchone()[0]:
                cursor.execute(
                    SQL("GRANT SELECT ON {} TO {};").format(table, Identifier(reader))
                )
                self.stdout.write(f"  GRANTED SELECT on {table_name} to {reader}")

        self.stdout.write(
            self.style.SUCCESS(
                "Audit database locked down. "
                f"{db_user} can now only INSERT and SELECT."
            )
        )
