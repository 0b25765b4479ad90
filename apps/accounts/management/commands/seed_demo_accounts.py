"""Seed demo staff users and customer accounts for local development."""
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.accounts.models import Account
from apps.auth_app.models import ROLE_MANAGER, ROLE_SUPERVISOR, ROLE_TELLER, User


DEMO_USERS = [
    {"username": "teller1", "display_name": "Tina Teller", "role": ROLE_TELLER, "branch_code": "001"},
    {"username": "teller2", "display_name": "Tom Teller", "role": ROLE_TELLER, "branch_code": "002"},
    {"username": "supervisor1", "display_name": "Sam Supervisor", "role": ROLE_SUPERVISOR, "branch_code": "001"},
    {"username": "manager1", "display_name": "Maria Manager", "role": ROLE_MANAGER, "branch_code": "001"},
]

DEMO_ACCOUNTS = [
    {
        "holder_name_search": "alice anderson",
        "account_number": "1002003004",
        "ssn": "123-45-6789",
        "balance": "15234.50",
        "email": "alice@example.com",
        "phone": "555-010-1234",
        "address": "12 Main Street, Springfield",
    },
    {
        "holder_name_search": "bob brown",
        "account_number": "1002003005",
        "ssn": "987-65-4321",
        "balance": "820.00",
        "email": "bob@example.com",
        "phone": "555-010-5678",
        "address": "4 Elm Road, Shelbyville",
    },
]


class Command(BaseCommand):
    help = "Create demo users (password from --password) and encrypted demo accounts."

    def add_arguments(self, parser):
        parser.add_argument(
            "--password",
            default="",
            help="Password for every demo user. Required.",
        )

    def handle(self, *args, **options):
        if not settings.DEBUG:
            raise CommandError("Demo data can only be seeded with DEBUG=True.")
        password = options["password"]
        if not password:
            raise CommandError("--password is required.")

        for item in DEMO_USERS:
            if User.objects.filter(username=item["username"]).exists():
                self.stdout.write(f"  Already exists: {item['username']}")
                continue
            User.objects.create_user(password=password, **item)
            self.stdout.write(f"  Created user: {item['username']} ({item['role']})")

        created_count = 0
        for item in DEMO_ACCOUNTS:
            values = dict(item)
            holder = values.pop("holder_name_search")
            if Account.objects.filter(holder_name_search=holder).exists():
                self.stdout.write(f"  Already exists: {holder}")
                continue
            account = Account.objects.create_with_sensitive(holder_name_search=holder, **values)
            created_count += 1
            self.stdout.write(f"  Created account: {account}")

        self.stdout.write(self.style.SUCCESS(f"Done. {created_count} account(s) created."))
