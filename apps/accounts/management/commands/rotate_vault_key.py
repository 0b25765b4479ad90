"""Rotate the Vault Transit key used for customer field encryption."""
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from fieldgate.vault import VaultError, client_from_settings


class Command(BaseCommand):
    help = (
        "Rotate the Vault Transit key for customer data. Existing ciphertext "
        "stays readable; new writes use the latest key version."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--key-name",
            default=settings.VAULT_TRANSIT_KEY,
            help="Transit key to rotate (default: VAULT_TRANSIT_KEY).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show the current key version without rotating.",
        )

    def handle(self, *args, **options):
        key_name = options["key_name"]
        try:
            client = client_from_settings()
            before = client.get_key_config(key_name) or {}
            self.stdout.write(f"Key {key_name}: latest version {before.get('latest_version', '?')}")
            if options["dry_run"]:
                self.stdout.write("[DRY RUN] Not rotating.")
                return
            client.rotate_key(key_name)
            after = client.get_key_config(key_name) or {}
            client.revoke_self()
        except VaultError as exc:
            raise CommandError(f"Vault error: {exc}")

        self.stdout.write(self.style.SUCCESS(
            f"Rotated {key_name} to version {after.get('latest_version', '?')}."
        ))
