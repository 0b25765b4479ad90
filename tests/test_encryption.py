"""Tests for the field cipher chain, masking and the encryption system check."""
import base64
from unittest.mock import MagicMock

import requests

from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, override_settings

import fieldgate.encryption as enc_module
from fieldgate.encryption import (
    DecryptionError,
    EncryptionError,
    FieldCipher,
    LocalAESGCMStrategy,
    VaultTransitStrategy,
    build_cipher,
    check_encryption_key,
    decrypt_field,
    encrypt_field,
    generate_master_key,
    hash_for_deduplication,
    mask_field,
)
from fieldgate.vault import VaultClient, VaultError

TEST_KEY = generate_master_key()
OTHER_KEY = generate_master_key()


@override_settings(FIELD_ENCRYPTION_MASTER_KEY=TEST_KEY, FIELD_CIPHER_STRATEGIES=["local"])
class LocalCipherTest(SimpleTestCase):

    def setUp(self):
        enc_module._cipher = None

    def test_round_trip(self):
        stored = encrypt_field("123-45-6789")
        self.assertNotEqual(stored, "123-45-6789")
        self.assertEqual(decrypt_field(stored), "123-45-6789")

    def test_round_trip_unicode(self):
        value = "Rue de l'Église 7, Montréal"
        self.assertEqual(decrypt_field(encrypt_field(value)), value)

    def test_same_plaintext_encrypts_differently(self):
        """Random salt and nonce per call."""
        self.assertNotEqual(encrypt_field("4111111111111111"), encrypt_field("4111111111111111"))

    def test_stored_layout(self):
        stored = encrypt_field("hello")
        raw = base64.b64decode(stored)
        # salt(32) + nonce(16) + tag(16) + len("hello")
        self.assertEqual(len(raw), 32 + 16 + 16 + 5)

    def test_empty_values_pass_through(self):
        self.assertEqual(encrypt_field(""), "")
        self.assertEqual(encrypt_field(None), "")
        self.assertEqual(decrypt_field(""), "")

    def test_tampered_ciphertext_raises(self):
        raw = bytearray(base64.b64decode(encrypt_field("secret value")))
        raw[-1] ^= 0x01
        with self.assertRaises(DecryptionError):
            decrypt_field(base64.b64encode(bytes(raw)).decode())

    def test_truncated_ciphertext_raises(self):
        short = base64.b64encode(b"x" * 40).decode()
        with self.assertRaises(DecryptionError):
            decrypt_field(short)

    def test_invalid_base64_raises(self):
        with self.assertRaises(DecryptionError):
            decrypt_field("not base64 at all!!")

    def test_wrong_key_raises(self):
        stored = encrypt_field("secret value")
        enc_module._cipher = None
        with override_settings(FIELD_ENCRYPTION_MASTER_KEY=OTHER_KEY):
            with self.assertRaises(DecryptionError):
                decrypt_field(stored)

    def test_error_message_does_not_leak_details(self):
        with self.assertRaises(DecryptionError) as ctx:
            decrypt_field("not base64 at all!!")
        self.assertEqual(str(ctx.exception), "Failed to decrypt sensitive data")

    def test_missing_master_key_is_configuration_error(self):
        with override_settings(FIELD_ENCRYPTION_MASTER_KEY=""):
            with self.assertRaises(ImproperlyConfigured):
                LocalAESGCMStrategy().encrypt("x", None)


def _vault_strategy(client):
    return VaultTransitStrategy(client_factory=lambda: client)


def _vault_behind_html_proxy():
    """A real client whose Transit calls get a 200 HTML page from a proxy."""
    html = requests.Response()
    html.status_code = 200
    html._content = b"<html>proxy login</html>"
    login = MagicMock(status_code=200)
    login.json.return_value = {"auth": {"client_token": "tok"}}

    client = VaultClient("https://vault.test", "role", "secret")
    client._session = MagicMock(headers={})
    client._session.get.return_value = MagicMock(status_code=200)
    client._session.post.return_value = login
    client._session.request.return_value = html
    return client


@override_settings(FIELD_ENCRYPTION_MASTER_KEY=TEST_KEY)
class CipherChainTest(SimpleTestCase):

    def setUp(self):
        self.client = MagicMock()
        self.client.health.return_value = True
        self.client.encrypt.return_value = "vault:v1:abc"
        self.client.decrypt.return_value = "from vault"
        self.cipher = FieldCipher([_vault_strategy(self.client), LocalAESGCMStrategy()])

    def test_chain_must_end_with_terminal_strategy(self):
        with self.assertRaises(ImproperlyConfigured):
            FieldCipher([_vault_strategy(self.client)])
        with self.assertRaises(ImproperlyConfigured):
            FieldCipher([])

    def test_encrypt_uses_first_healthy_strategy(self):
        self.assertEqual(self.cipher.encrypt("secret"), "vault:v1:abc")
        self.client.encrypt.assert_called_once_with("secret", "customer-data")

    def test_encrypt_falls_back_when_vault_unhealthy(self):
        self.client.health.return_value = False
        stored = self.cipher.encrypt("secret")
        self.assertFalse(stored.startswith("vault:"))
        self.client.encrypt.assert_not_called()
        self.assertEqual(self.cipher.decrypt(stored), "secret")

    def test_encrypt_falls_back_on_vault_error(self):
        self.client.encrypt.side_effect = VaultError("boom", status_code=500)
        stored = self.cipher.encrypt("secret")
        self.assertEqual(LocalAESGCMStrategy().decrypt(stored, None), "secret")

    def test_vault_client_factory_error_counts_as_unavailable(self):
        def factory():
            raise VaultError("VAULT_ROLE_ID and VAULT_SECRET_ID must be set")
        cipher = FieldCipher([VaultTransitStrategy(client_factory=factory), LocalAESGCMStrategy()])
        stored = cipher.encrypt("secret")
        self.assertEqual(cipher.decrypt(stored), "secret")

    def test_decrypt_routes_vault_prefix_to_vault(self):
        self.assertEqual(self.cipher.decrypt("vault:v1:abc"), "from vault")
        self.client.decrypt.assert_called_once_with("vault:v1:abc", "customer-data")

    def test_decrypt_local_blob_skips_vault(self):
        stored = LocalAESGCMStrategy().encrypt("local only", None)
        self.assertEqual(self.cipher.decrypt(stored), "local only")
        self.client.decrypt.assert_not_called()

    def test_vault_blob_without_vault_raises(self):
        """Local cannot read Vault ciphertext; the chain reports failure."""
        self.client.decrypt.side_effect = VaultError("sealed", status_code=503)
        with self.assertRaises(DecryptionError):
            self.cipher.decrypt("vault:v1:abc")

    def test_custom_key_name(self):
        self.cipher.encrypt("secret", key_name="other-key")
        self.client.encrypt.assert_called_once_with("secret", "other-key")

    def test_local_encryption_error_is_not_swallowed(self):
        class BrokenLocal(LocalAESGCMStrategy):
            def encrypt(self, plaintext, key_name):
                raise EncryptionError()

        cipher = FieldCipher([BrokenLocal()])
        with self.assertRaises(EncryptionError):
            cipher.encrypt("secret")

    def test_encrypt_falls_back_on_non_json_vault_reply(self):
        cipher = FieldCipher([_vault_strategy(_vault_behind_html_proxy()), LocalAESGCMStrategy()])
        stored = cipher.encrypt("secret")
        self.assertFalse(stored.startswith("vault:"))
        self.assertEqual(LocalAESGCMStrategy().decrypt(stored, None), "secret")

    def test_non_json_vault_reply_on_decrypt_is_decryption_error(self):
        cipher = FieldCipher([_vault_strategy(_vault_behind_html_proxy()), LocalAESGCMStrategy()])
        with self.assertRaises(DecryptionError):
            cipher.decrypt("vault:v1:abc")


@override_settings(FIELD_ENCRYPTION_MASTER_KEY=TEST_KEY)
class BuildCipherTest(SimpleTestCase):

    def test_builds_named_strategies_in_order(self):
        cipher = build_cipher(["vault", "local"])
        self.assertEqual(cipher.strategy_names, ["vault", "local"])

    def test_unknown_strategy_name(self):
        with self.assertRaises(ImproperlyConfigured):
            build_cipher(["local", "rot13"])

    def test_system_check_passes_with_valid_key(self):
        self.assertEqual(check_encryption_key(None), [])

    def test_system_check_reports_missing_key(self):
        with override_settings(FIELD_ENCRYPTION_MASTER_KEY=""):
            errors = check_encryption_key(None)
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].id, "fieldgate.E001")


class MaskFieldTest(SimpleTestCase):

    def test_account_number(self):
        self.assertEqual(mask_field("1002003004", "account_number"), "************3004")

    def test_ssn(self):
        self.assertEqual(mask_field("123-45-6789", "ssn"), "***-**-6789")

    def test_phone(self):
        self.assertEqual(mask_field("555-010-1234", "phone"), "***-***-1234")

    def test_email(self):
        self.assertEqual(mask_field("alice@example.com", "email"), "a****@example.com")

    def test_email_star_count_is_capped(self):
        self.assertEqual(
            mask_field("averyveryverylongname@example.com", "email"),
            "a********@example.com",
        )

    def test_single_character_email_local_part(self):
        self.assertEqual(mask_field("a@example.com", "email"), "a*@example.com")

    def test_malformed_email(self):
        self.assertEqual(mask_field("no-at-sign", "email"), "***")

    def test_balance(self):
        self.assertEqual(mask_field("15234.50", "balance"), "$***,***.**")

    def test_address_keeps_last_part(self):
        self.assertEqual(mask_field("12 Main Street, Springfield", "address"), "***, Springfield")
        self.assertEqual(mask_field("12 Main Street", "address"), "***")

    def test_unknown_type_and_empty(self):
        self.assertEqual(mask_field("anything", "nickname"), "***")
        self.assertEqual(mask_field("", "ssn"), "")
        self.assertEqual(mask_field(None, "ssn"), "")


class HashTest(SimpleTestCase):

    def test_hash_is_stable_and_one_way(self):
        digest = hash_for_deduplication("1002003004")
        self.assertEqual(digest, hash_for_deduplication("1002003004"))
        self.assertEqual(len(digest), 64)
        self.assertNotIn("1002003004", digest)
