"""HashiCorp Vault Transit client.

Wraps the handful of Vault HTTP API calls the field cipher needs: AppRole
login, Transit encrypt/decrypt, and a health check. Key administration
helpers (rotate, read config, revoke token) are here for the
rotate_vault_key management command.

Vault API docs: https://developer.hashicorp.com/vault/api-docs
"""
import base64
import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

# Transit ciphertexts look like "vault:v1:...". The prefix is how stored
# values tell the cipher which strategy produced them.
VAULT_CIPHERTEXT_PREFIX = "vault:"

# /sys/health answers 429/472/473 for healthy standby and DR/perf nodes.
_HEALTHY_STATUS_CODES = {200, 429, 472, 473}


class VaultError(Exception):
    """Raised when a Vault API call fails."""

    def __init__(self, message, status_code=None, response_body=None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


def _section(resp, name):
    """Return the `name` object of a Vault JSON reply.

    Anything other than a JSON object holding an object under `name` (an
    HTML page from a proxy, a list, a string) raises VaultError, so the
    cipher chain treats it like any other remote failure.
    """
    try:
        section = resp.json().get(name) or {}
    except (ValueError, AttributeError) as exc:
        raise VaultError("Vault returned a malformed response", status_code=resp.status_code) from exc
    if not isinstance(section, dict):
        raise VaultError("Vault returned a malformed response", status_code=resp.status_code)
    return section


class VaultClient:
    """Client for the Vault Transit secrets engine using AppRole auth.

    Usage:
        client = VaultClient(
            base_url="https://vault.example.com",
            role_id="...",
            secret_id="...",
        )
        ciphertext = client.encrypt("4111111111111111", "customer-data")
    """

    def __init__(self, base_url, role_id, secret_id, namespace="", timeout=5):
        self.base_url = base_url.rstrip("/")
        self.role_id = role_id
        self.secret_id = secret_id
        self.namespace = namespace
        self.timeout = timeout
        self._session = requests.Session()
        if namespace:
            self._session.headers["X-Vault-Namespace"] = namespace
        self._token = None

    def _authenticate(self):
        """Obtain a client token with the AppRole credentials."""
        try:
            resp = self._session.post(
                f"{self.base_url}/v1/auth/approle/login",
                json={"role_id": self.role_id, "secret_id": self.secret_id},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise VaultError(f"Vault login request failed: {exc.__class__.__name__}") from exc
        if resp.status_code != 200:
            raise VaultError(
                f"Vault authentication failed: {resp.status_code}",
                status_code=resp.status_code,
                response_body=resp.text,
            )
        token = _section(resp, "auth").get("client_token")
        if not token:
            raise VaultError("Vault authentication failed: no token received")
        self._token = token
        self._session.headers["X-Vault-Token"] = token

    def _request(self, method, path, **kwargs):
        """Make an authenticated API request, logging in first if needed."""
        if not self._token:
            self._authenticate()

        kwargs.setdefault("timeout", self.timeout)
        url = f"{self.base_url}/v1{path}"
        try:
            resp = self._session.request(method, url, **kwargs)
            # Token expired or revoked: log in again and retry once
            if resp.status_code == 403:
                self._authenticate()
                resp = self._session.request(method, url, **kwargs)
        except requests.RequestException as exc:
            raise VaultError(f"Vault request failed: {method} {path}") from exc

        if resp.status_code >= 400:
            raise VaultError(
                f"Vault API error {resp.status_code}: {method} {path}",
                status_code=resp.status_code,
                response_body=resp.text,
            )
        return resp

    # ------------------------------------------------------------------
    # Transit
    # ------------------------------------------------------------------

    def encrypt(self, plaintext, key_name):
        """Encrypt a string with the named Transit key."""
        if not plaintext:
            return ""
        encoded = base64.b64encode(plaintext.encode("utf-8")).decode("ascii")
        data = _section(
            self._request("POST", f"/transit/encrypt/{key_name}", json={"plaintext": encoded}),
            "data",
        )
        ciphertext = data.get("ciphertext")
        if not ciphertext or not isinstance(ciphertext, str):
            raise VaultError("Vault encryption returned no ciphertext")
        return ciphertext

    def decrypt(self, ciphertext, key_name):
        """Decrypt a Transit ciphertext back to a string."""
        if not ciphertext:
            return ""
        data = _section(
            self._request("POST", f"/transit/decrypt/{key_name}", json={"ciphertext": ciphertext}),
            "data",
        )
        encoded = data.get("plaintext")
        if encoded is None:
            raise VaultError("Vault decryption returned no plaintext")
        try:
            return base64.b64decode(encoded).decode("utf-8")
        except (ValueError, TypeError, UnicodeDecodeError) as exc:
            raise VaultError("Vault returned malformed plaintext") from exc

    def health(self):
        """Return True when Vault is reachable, initialised and unsealed."""
        try:
            resp = self._session.get(
                f"{self.base_url}/v1/sys/health", timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Vault health check failed: %s", exc.__class__.__name__)
            return False
        if resp.status_code not in _HEALTHY_STATUS_CODES:
            logger.warning("Vault health check returned %s", resp.status_code)
            return False
        return True

    # ------------------------------------------------------------------
    # Key administration
    # ------------------------------------------------------------------

    def rotate_key(self, key_name):
        """Rotate a Transit key. Old versions remain able to decrypt."""
        self._request("POST", f"/transit/keys/{key_name}/rotate", json={})
        logger.info("Rotated Vault transit key %s", key_name)

    def get_key_config(self, key_name):
        """Return the Transit key configuration dict."""
        return _section(self._request("GET", f"/transit/keys/{key_name}"), "data")

    def revoke_self(self):
        """Revoke the current client token."""
        self._request("POST", "/auth/token/revoke-self", json={})
        self._token = None
        self._session.headers.pop("X-Vault-Token", None)


def client_from_settings():
    """Build a VaultClient from Django settings.

    Raises VaultError when AppRole credentials are missing so the cipher
    chain treats a half-configured Vault like an unreachable one.
    """
    if not settings.VAULT_ROLE_ID or not settings.VAULT_SECRET_ID:
        raise VaultError("VAULT_ROLE_ID and VAULT_SECRET_ID must be set")
    return VaultClient(
        base_url=settings.VAULT_ADDR,
        role_id=settings.VAULT_ROLE_ID,
        secret_id=settings.VAULT_SECRET_ID,
        namespace=settings.VAULT_NAMESPACE,
        timeout=settings.VAULT_TIMEOUT,
    )
