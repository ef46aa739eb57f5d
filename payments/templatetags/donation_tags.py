from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django import template
from django.conf import settings

register = template.Library()

CENTS = Decimal('0.01')


def to_local(amount):
    """Amount in LOCAL_CURRENCY at the fixed display rate. Display only."""
    if amount in (None, ''):
        return None
    try:
        value = Decimal(str(amount)) * Decimal(str(settings.LOCAL_CURRENCY_RATE))
    except InvalidOperation:
        return None
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


@register.filter
def money(amount):
    if amount in (None, ''):
        return ''
    try:
        return f"{Decimal(str(amount)).quantize(CENTS, rounding=ROUND_HALF_UP):,}"
    except InvalidOperation:
        return str(amount)


@register.filter
def local_equivalent(amount):
    """``10.00`` -> ``"≈ GHS 120.00"``; empty when the amount is not a number."""
    value = to_local(amount)
    if value is None:
        return ''
    return f"≈ {settings.LOCAL_CURRENCY} {value:,}"
