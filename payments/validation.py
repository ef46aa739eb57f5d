"""Field rules for the donation form.

Each rule takes the raw value and returns an error message or None. Rules
keep no state, so checking the same value twice always gives the same answer.
They run on blur (through the validate endpoint) and again as the guard of
each workflow transition.
"""
import re
from decimal import Decimal, InvalidOperation

from django.conf import settings

NAME_PATTERN = re.compile(r'^[a-zA-Z\s]{2,50}$')
EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,6}$')
AMOUNT_PATTERN = re.compile(r'^\d+(\.\d{2})?$')

MIN_AMOUNT = Decimal('1.00')
CENTS = Decimal('0.01')
PAYMENT_METHODS = ('mobile_money', 'bank_transfer')

DETAILS_FIELDS = ('donor_name', 'email', 'amount', 'project_id', 'country')


def validate_donor_name(value):
    value = '' if value is None else str(value)
    if not value:
        return 'Donor name is required'
    if not NAME_PATTERN.match(value):
        return 'Name must be 2-50 characters, letters and spaces only'
    return None


def validate_email(value):
    email = ('' if value is None else str(value)).strip()
    if not email:
        return 'Email is required'
    if not EMAIL_PATTERN.match(email):
        return 'Invalid email format'
    return None


def validate_amount(value):
    text = ('' if value is None else str(value)).strip()
    if not text:
        return 'Amount is required'
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return 'Amount must be a number'
    if not amount.is_finite() or amount <= 0:
        return 'Amount is required'
    if amount < MIN_AMOUNT:
        return 'Minimum donation is $1.00'
    if not AMOUNT_PATTERN.match(text):
        return 'Invalid amount format (use XX.XX)'
    try:
        amount.quantize(CENTS)
    except InvalidOperation:
        # More digits than a cent-precise Decimal can hold
        return 'Amount is too large'
    return None


def validate_project_id(value):
    try:
        project_id = int(value or 0)
    except (TypeError, ValueError):
        project_id = 0
    if project_id <= 0:
        return 'Please select a project'
    return None


def validate_country(value):
    if not value:
        return 'Please select your country'
    if value not in settings.COUNTRIES:
        return 'Please select a country from the list'
    return None


def validate_payment_method(value):
    if value not in PAYMENT_METHODS:
        return 'Please choose Mobile Money or Bank Transfer'
    return None


def validate_transaction_id(value):
    if not ('' if value is None else str(value)).strip():
        return 'Transaction ID is required'
    return None


RULES = {
    'donor_name': validate_donor_name,
    'email': validate_email,
    'amount': validate_amount,
    'project_id': validate_project_id,
    'country': validate_country,
    'payment_method': validate_payment_method,
    'transaction_id': validate_transaction_id,
}


def validate_field(name, value):
    rule = RULES.get(name)
    if rule is None:
        return None
    return rule(value)


def validate_details(data):
    """Errors for every Details-step field, keyed by field name. Empty means valid."""
    errors = {}
    for name in DETAILS_FIELDS:
        error = validate_field(name, data.get(name))
        if error:
            errors[name] = error
    return errors
