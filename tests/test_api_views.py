"""HTTP tests for the JSON endpoints: auth, field requests, accounts, health."""
from datetime import timedelta
from unittest.mock import patch

from django.test import Client, TestCase, override_settings
from django.utils import timezone

import fieldgate.encryption as enc_module
from apps.accounts.models import Account
from apps.audit import models as audit
from apps.audit.models import AuditLog
from apps.auth_app.models import LOCKOUT_THRESHOLD, User
from apps.field_requests.models import STATUS_APPROVED, STATUS_PENDING, STATUS_REJECTED, FieldAccessRequest
from fieldgate import ratelimit
from fieldgate.encryption import generate_master_key

TEST_KEY = generate_master_key()


@override_settings(FIELD_ENCRYPTION_MASTER_KEY=TEST_KEY, FIELD_CIPHER_STRATEGIES=["local"])
class ApiTestBase(TestCase):

    databases = {"default", "audit"}

    def setUp(self):
        enc_module._cipher = None
        ratelimit.reset_rate_limiter()
        self.http = Client()
        self.teller = User.objects.create_user(
            username="teller", password="testpass123", display_name="Tina Teller",
        )
        self.supervisor = User.objects.create_user(
            username="supervisor", password="testpass123", role="SUPERVISOR",
        )
        self.account = Account.objects.create_with_sensitive(
            holder_name_search="alice anderson",
            account_number="1002003004",
            ssn="123-45-6789",
        )

    def post_json(self, url, data=None):
        return self.http.post(url, data or {}, content_type="application/json")


class LoginViewTest(ApiTestBase):

    def test_login_success(self):
        resp = self.post_json("/auth/login/", {"username": "teller", "password": "testpass123"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["username"], "teller")
        self.assertEqual(resp.json()["user"]["role"], "TELLER")
        self.assertTrue(
            AuditLog.objects.using("audit").filter(event_type=audit.LOGIN_SUCCESS, success=True).exists()
        )
        me = self.http.get("/auth/me/")
        self.assertEqual(me.status_code, 200)
        self.assertFalse(me.json()["user"]["can_approve"])

    def test_wrong_password(self):
        resp = self.post_json("/auth/login/", {"username": "teller", "password": "wrong"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["error"], "Invalid username or password.")
        self.teller.refresh_from_db()
        self.assertEqual(self.teller.failed_login_attempts, 1)

    def test_unknown_user_gets_same_message(self):
        resp = self.post_json("/auth/login/", {"username": "nobody", "password": "x"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["error"], "Invalid username or password.")

    def test_missing_fields(self):
        resp = self.post_json("/auth/login/", {"username": "teller"})
        self.assertEqual(resp.status_code, 400)

    def test_lockout_after_repeated_failures(self):
        for _ in range(LOCKOUT_THRESHOLD):
            self.post_json("/auth/login/", {"username": "teller", "password": "wrong"})
        self.teller.refresh_from_db()
        self.assertTrue(self.teller.is_locked)
        resp = self.post_json("/auth/login/", {"username": "teller", "password": "testpass123"})
        self.assertEqual(resp.status_code, 401)
        self.assertTrue(
            AuditLog.objects.using("audit").filter(event_type=audit.ACCOUNT_LOCKED).exists()
        )

    def test_success_resets_failure_counter(self):
        self.post_json("/auth/login/", {"username": "teller", "password": "wrong"})
        self.post_json("/auth/login/", {"username": "teller", "password": "testpass123"})
        self.teller.refresh_from_db()
        self.assertEqual(self.teller.failed_login_attempts, 0)

    def test_inactive_user_refused(self):
        self.teller.is_active = False
        self.teller.save()
        resp = self.post_json("/auth/login/", {"username": "teller", "password": "testpass123"})
        self.assertEqual(resp.status_code, 401)

    def test_logout(self):
        self.http.force_login(self.teller)
        resp = self.post_json("/auth/logout/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.http.get("/auth/me/").status_code, 401)

    def test_login_requires_post(self):
        self.assertEqual(self.http.get("/auth/login/").status_code, 405)


class AuthRequiredTest(ApiTestBase):

    def test_anonymous_gets_401_json(self):
        for url in ("/auth/me/", "/api/accounts/", "/api/requests/mine/", "/api/requests/pending/"):
            resp = self.http.get(url)
            self.assertEqual(resp.status_code, 401, url)
            self.assertEqual(resp.json()["error"], "Unauthorized")

    def test_anonymous_cannot_submit(self):
        resp = self.post_json("/api/requests/", {"account_id": self.account.pk, "field_name": "ssn"})
        self.assertEqual(resp.status_code, 401)

    def test_unknown_url_is_json_404(self):
        with override_settings(DEBUG=False):
            resp = self.http.get("/no/such/page/")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"], "Not found.")


class FieldRequestApiTest(ApiTestBase):

    def submit(self, field_name="ssn", reason="Customer called about identity check"):
        return self.post_json("/api/requests/", {
            "account_id": self.account.pk,
            "field_name": field_name,
            "reason": reason,
            "ticket_reference": "INC-1",
        })

    def test_submit(self):
        self.http.force_login(self.teller)
        resp = self.submit()
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual(body["status"], STATUS_PENDING)
        self.assertTrue(body["request_ref"].startswith("FAR-"))

    def test_submit_validation(self):
        self.http.force_login(self.teller)
        self.assertEqual(self.submit(field_name="pin").status_code, 400)
        self.assertEqual(self.submit(reason="").status_code, 400)
        resp = self.post_json("/api/requests/", {"account_id": "abc", "field_name": "ssn"})
        self.assertEqual(resp.status_code, 400)

    def test_submit_invalid_json(self):
        self.http.force_login(self.teller)
        resp = self.http.post("/api/requests/", "{not json", content_type="application/json")
        self.assertEqual(resp.status_code, 400)

    def test_submit_unknown_account(self):
        self.http.force_login(self.teller)
        resp = self.post_json("/api/requests/", {
            "account_id": 999999, "field_name": "ssn", "reason": "x",
        })
        self.assertEqual(resp.status_code, 404)

    def test_duplicate_is_409(self):
        self.http.force_login(self.teller)
        self.submit()
        resp = self.submit()
        self.assertEqual(resp.status_code, 409)

    def test_rate_limit_is_429_with_retry_after(self):
        self.http.force_login(self.teller)
        with patch(
            "apps.field_requests.lifecycle.get_rate_limiter",
        ) as mock_get:
            mock_get.return_value.check.return_value = ratelimit.RateLimitResult(False, 0, 2000.0)
            mock_get.return_value.clock.return_value = 1970.0
            resp = self.submit()
        self.assertEqual(resp.status_code, 429)
        self.assertEqual(resp["Retry-After"], "30")
        self.assertFalse(FieldAccessRequest.objects.exists())

    def test_list_mine(self):
        self.http.force_login(self.teller)
        self.submit()
        resp = self.http.get("/api/requests/mine/")
        self.assertEqual(resp.status_code, 200)
        rows = resp.json()["requests"]
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["field_name"], "ssn")

    def test_pending_queue_for_approver_only(self):
        self.http.force_login(self.teller)
        self.submit()
        self.assertEqual(self.http.get("/api/requests/pending/").status_code, 403)

        self.http.force_login(self.supervisor)
        resp = self.http.get("/api/requests/pending/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.json()["data"]), 1)

    def test_approve_then_read_field(self):
        self.http.force_login(self.teller)
        request_id = self.submit().json()["request_id"]

        self.http.force_login(self.supervisor)
        resp = self.post_json(f"/api/requests/{request_id}/approve/", {"duration_minutes": 60})
        self.assertEqual(resp.status_code, 200)
        self.assertIn("access_expires_at", resp.json())
        self.assertEqual(FieldAccessRequest.objects.get(pk=request_id).status, STATUS_APPROVED)

        self.http.force_login(self.teller)
        resp = self.http.get(f"/api/accounts/{self.account.pk}/", {"field": "ssn"})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["granted"])
        self.assertEqual(body["decrypted_field"], "123-45-6789")

    def test_approve_ignores_approver_in_body(self):
        """The approver is the session user, whatever the body says."""
        self.http.force_login(self.teller)
        request_id = self.submit().json()["request_id"]
        resp = self.post_json(
            f"/api/requests/{request_id}/approve/", {"approver_id": self.supervisor.pk},
        )
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(FieldAccessRequest.objects.get(pk=request_id).status, STATUS_PENDING)

    def test_approve_bad_duration(self):
        self.http.force_login(self.teller)
        request_id = self.submit().json()["request_id"]
        self.http.force_login(self.supervisor)
        resp = self.post_json(f"/api/requests/{request_id}/approve/", {"duration_minutes": 0})
        self.assertEqual(resp.status_code, 400)

    def test_reject_then_second_decision_404(self):
        self.http.force_login(self.teller)
        request_id = self.submit().json()["request_id"]
        self.http.force_login(self.supervisor)
        resp = self.post_json(f"/api/requests/{request_id}/reject/", {"reason": "No ticket"})
        self.assertEqual(resp.status_code, 200)
        fr = FieldAccessRequest.objects.get(pk=request_id)
        self.assertEqual(fr.status, STATUS_REJECTED)
        self.assertEqual(fr.rejection_reason, "No ticket")

        resp = self.post_json(f"/api/requests/{request_id}/approve/")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"], "Request not found or already processed")


class AccountApiTest(ApiTestBase):

    def test_search_by_last_digits(self):
        Account.objects.create_with_sensitive(account_number="5555000011")
        self.http.force_login(self.teller)
        resp = self.http.get("/api/accounts/", {"q": "3004"})
        self.assertEqual(resp.status_code, 200)
        rows = resp.json()["data"]
        self.assertEqual([r["id"] for r in rows], [self.account.pk])
        self.assertNotIn("123-45-6789", resp.content.decode())

    def test_summary_without_field(self):
        self.http.force_login(self.teller)
        resp = self.http.get(f"/api/accounts/{self.account.pk}/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["account"]["account_number_last4"], "3004")

    def test_field_without_grant_is_not_an_error(self):
        self.http.force_login(self.teller)
        resp = self.http.get(f"/api/accounts/{self.account.pk}/", {"field": "ssn"})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertFalse(body["granted"])
        self.assertTrue(body["requires_access_request"])
        self.assertIsNone(body["decrypted_field"])
        self.assertNotIn("123-45-6789", resp.content.decode())

    def test_invalid_field_parameter(self):
        self.http.force_login(self.teller)
        resp = self.http.get(f"/api/accounts/{self.account.pk}/", {"field": "pin"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Invalid field parameter")

    def test_unknown_account(self):
        self.http.force_login(self.teller)
        resp = self.http.get("/api/accounts/999999/")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"], "Account not found")

    def test_decryption_failure_is_generic_500(self):
        FieldAccessRequest.objects.create(
            requester=self.teller,
            account=self.account,
            field_name="ssn",
            reason="x",
            status=STATUS_APPROVED,
            reviewed_by=self.supervisor,
            access_expires_at=timezone.now() + timedelta(minutes=30),
        )
        Account.objects.filter(pk=self.account.pk).update(_ssn_encrypted="corrupted!!")
        self.http.force_login(self.teller)
        resp = self.http.get(f"/api/accounts/{self.account.pk}/", {"field": "ssn"})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["error"], "Failed to decrypt sensitive data")


class HealthViewTest(ApiTestBase):

    def test_healthy_without_vault(self):
        resp = self.http.get("/api/health/")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["status"], "healthy")
        self.assertEqual(body["checks"]["vault"], "disabled")
        self.assertEqual(body["checks"]["audit_database"], "healthy")

    @override_settings(VAULT_ENABLED=True, VAULT_ROLE_ID="", VAULT_SECRET_ID="")
    def test_unconfigured_vault_is_unhealthy(self):
        resp = self.http.get("/api/health/")
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.json()["checks"]["vault"], "error")
