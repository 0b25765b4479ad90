"""Forms for staff login.

Login is a JSON endpoint; the form only validates and coerces the body.
"""
from django import forms


class LoginForm(forms.Form):
    """Form for local username/password login."""

    username = forms.CharField(max_length=150)
    password = forms.CharField()
