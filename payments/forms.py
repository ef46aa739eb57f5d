from decimal import Decimal

from django import forms
from django.conf import settings

from . import validation

PAYMENT_METHOD_CHOICES = [
    ('mobile_money', 'Mobile Money'),
    ('bank_transfer', 'Bank Transfer'),
]


class StyledFormMixin:
    """Common widget classes and ARIA labels for the donation forms."""

    def style_fields(self):
        for field_name, field in self.fields.items():
            if isinstance(field.widget, (forms.HiddenInput, forms.RadioSelect)):
                continue
            base_class = 'form-select' if isinstance(field.widget, forms.Select) else 'form-control'
            existing = field.widget.attrs.get('class', '')
            field.widget.attrs['class'] = (existing + ' ' + base_class + ' donate-field').strip()
            if 'aria-label' not in field.widget.attrs:
                field.widget.attrs['aria-label'] = field.label
            # Hook for the on-blur check posted to payments:validate
            field.widget.attrs['data-validate'] = field_name


class DonationDetailsForm(StyledFormMixin, forms.Form):
    # Every field is optional at the Django level so the donation rules
    # produce the messages, not Django's generic "This field is required."
    project_id = forms.TypedChoiceField(label='Select Project', coerce=int, empty_value=0, required=False)
    amount = forms.CharField(
        label='Donation Amount (USD)',
        required=False,
        widget=forms.TextInput(attrs={'inputmode': 'decimal', 'placeholder': '50.00'}),
    )
    donor_name = forms.CharField(
        label='Your Name', required=False,
        widget=forms.TextInput(attrs={'placeholder': 'John Doe'}),
    )
    email = forms.CharField(
        label='Email Address', required=False,
        widget=forms.EmailInput(attrs={'placeholder': 'john@example.com'}),
    )
    country = forms.CharField(label='Your Country', required=False, widget=forms.Select())
    payment_method = forms.ChoiceField(
        label='Payment Method', choices=PAYMENT_METHOD_CHOICES, initial='mobile_money',
        required=False, widget=forms.RadioSelect,
    )

    def __init__(self, *args, projects=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.projects = projects or []
        self.fields['project_id'].choices = [('', 'Choose a project to support')] + [
            (p['id'], f"{p.get('name', '')} ({p.get('country', '')})") for p in self.projects
        ]
        self.fields['country'].widget.choices = [('', 'Select your country')] + [
            (c, c) for c in settings.COUNTRIES
        ]
        self.style_fields()

    def _rule(self, name):
        value = self.cleaned_data.get(name)
        error = validation.validate_field(name, value)
        if error:
            raise forms.ValidationError(error)
        return value

    def clean_project_id(self):
        return self._rule('project_id')

    def clean_amount(self):
        return Decimal(self._rule('amount').strip())

    def clean_donor_name(self):
        return self._rule('donor_name')

    def clean_email(self):
        return self._rule('email').strip()

    def clean_country(self):
        return self._rule('country')

    def clean_payment_method(self):
        return self.cleaned_data.get('payment_method') or 'mobile_money'


class PaymentForm(StyledFormMixin, forms.Form):
    payment_method = forms.ChoiceField(
        label='Payment Method', choices=PAYMENT_METHOD_CHOICES, widget=forms.RadioSelect,
    )


class ConfirmationForm(StyledFormMixin, forms.Form):
    transaction_id = forms.CharField(
        label='Transaction ID', required=False, max_length=100,
        widget=forms.TextInput(attrs={'placeholder': 'e.g. MTN123456'}),
    )
    # Opaque handle returned by the media host's upload widget
    payment_proof_url = forms.CharField(required=False, max_length=500, widget=forms.HiddenInput)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.style_fields()

