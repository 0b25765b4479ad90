"""Tests for admin registrations and the login form."""
from django.contrib import admin
from django.test import RequestFactory, SimpleTestCase, TestCase

from apps.accounts.admin import AccountAdmin
from apps.accounts.models import Account
from apps.auth_app.forms import LoginForm
from apps.auth_app.models import User


class AccountAdminTest(TestCase):

    databases = {"default", "audit"}

    def setUp(self):
        self.model_admin = AccountAdmin(Account, admin.site)
        self.request = RequestFactory().get("/admin/accounts/account/")
        self.request.user = User.objects.create_superuser(username="admin", password="testpass123")

    def test_superuser_cannot_delete_accounts(self):
        self.assertFalse(self.model_admin.has_delete_permission(self.request))
        self.assertFalse(self.model_admin.has_delete_permission(self.request, obj=Account()))

    def test_delete_action_not_offered(self):
        self.assertNotIn("delete_selected", self.model_admin.get_actions(self.request))

    def test_superuser_cannot_add_accounts(self):
        self.assertFalse(self.model_admin.has_add_permission(self.request))


class LoginFormTest(SimpleTestCase):

    def test_no_html_widget_attributes(self):
        form = LoginForm()
        self.assertEqual(form.fields["username"].widget.attrs, {"maxlength": "150"})
        self.assertEqual(form.fields["password"].widget.attrs, {})

    def test_validates_json_body(self):
        form = LoginForm({"username": "teller", "password": "testpass123"})
        self.assertTrue(form.is_valid())
        self.assertEqual(form.cleaned_data["password"], "testpass123")

    def test_missing_password(self):
        form = LoginForm({"username": "teller"})
        self.assertFalse(form.is_valid())
        self.assertIn("password", form.errors)
