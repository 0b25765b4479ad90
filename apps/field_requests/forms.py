"""Input shape for the field request endpoints.

Forms only coerce types. Domain rules (known field, non-blank reason,
duration bounds) are enforced in lifecycle.py so every caller gets them.
"""
from django import forms


class FieldRequestForm(forms.Form):
    account_id = forms.IntegerField(min_value=1)
    field_name = forms.CharField(max_length=50)
    reason = forms.CharField(required=False, max_length=2000)
    ticket_reference = forms.CharField(required=False, max_length=100)


class ApproveForm(forms.Form):
    duration_minutes = forms.IntegerField(required=False)


class RejectForm(forms.Form):
    reason = forms.CharField(required=False, max_length=2000)
