"""Three-step donation wizard as an explicit state machine.

    Details -> Payment -> Confirmation -> Submitted

Payment and Confirmation can step back one state. Submitted is terminal.
Every state carries the draft so nothing typed is lost when going back or
when a submission fails.
"""
import logging
from dataclasses import asdict, dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Optional

from backend.exceptions import BackendError

from . import validation

logger = logging.getLogger(__name__)

DETAILS = 'details'
PAYMENT = 'payment'
CONFIRMATION = 'confirmation'
SUBMITTED = 'submitted'

DEFAULT_CURRENCY = 'USD'
SUBMIT_FALLBACK_ERROR = 'Failed to process donation. Please try again.'
PAYMENT_METHOD_LABELS = {'mobile_money': 'Mobile Money', 'bank_transfer': 'Bank Transfer'}


class InvalidTransition(Exception):
    def __init__(self, step, action):
        super().__init__(f"Cannot {action} from the {step} step")
        self.step = step
        self.action = action


def _to_amount(value):
    if value in (None, ''):
        return None
    try:
        return Decimal(str(value)).quantize(validation.CENTS)
    except InvalidOperation:
        return None


@dataclass
class DonationDraft:
    donor_name: str = ''
    email: str = ''
    amount: Optional[Decimal] = None
    project_id: int = 0
    country: str = ''
    payment_method: str = 'mobile_money'
    transaction_id: str = ''
    payment_proof_url: str = ''
    currency: str = DEFAULT_CURRENCY

    @property
    def payment_method_label(self):
        return PAYMENT_METHOD_LABELS.get(self.payment_method, self.payment_method)

    def as_payload(self):
        """Body of ``POST /api/donations``."""
        if self.amount is None:
            raise ValueError('Donation draft has no amount')
        payload = {
            'donor_name': self.donor_name,
            'email': self.email.strip(),
            'amount': float(self.amount),
            'project_id': self.project_id,
            'country': self.country,
            'payment_method': self.payment_method,
            'transaction_id': self.transaction_id.strip(),
            'currency': self.currency,
        }
        if self.payment_proof_url:
            payload['payment_proof_url'] = self.payment_proof_url
        return payload

    def to_dict(self):
        data = asdict(self)
        data['amount'] = None if self.amount is None else str(self.amount)
        return data

    @classmethod
    def from_dict(cls, data):
        known = {name: data[name] for name in cls.__dataclass_fields__ if name in data}
        known['amount'] = _to_amount(known.get('amount'))
        known['project_id'] = int(known.get('project_id') or 0)
        return cls(**known)


@dataclass(frozen=True)
class Details:
    draft: DonationDraft
    step = DETAILS


@dataclass(frozen=True)
class Payment:
    draft: DonationDraft
    step = PAYMENT


@dataclass(frozen=True)
class Confirmation:
    draft: DonationDraft
    error: str = ''
    step = CONFIRMATION


@dataclass(frozen=True)
class Submitted:
    draft: DonationDraft
    donation_id: Optional[int] = None
    step = SUBMITTED


STATES = {cls.step: cls for cls in (Details, Payment, Confirmation, Submitted)}


class DonationWorkflow:

    def __init__(self, state=None, currency=DEFAULT_CURRENCY):
        self.state = state or Details(DonationDraft(currency=currency))

    @property
    def step(self):
        return self.state.step

    @property
    def draft(self):
        return self.state.draft

    @property
    def done(self):
        return isinstance(self.state, Submitted)

    def _require(self, cls, action):
        if not isinstance(self.state, cls):
            raise InvalidTransition(self.step, action)

    def update(self, **fields):
        """Change draft fields in place; not allowed once submitted."""
        if self.done:
            raise InvalidTransition(self.step, 'edit')
        draft = self.state.draft
        for name, value in fields.items():
            if name not in DonationDraft.__dataclass_fields__:
                raise AttributeError(f"DonationDraft has no field {name!r}")
            if name == 'amount':
                value = _to_amount(value)
            elif name == 'project_id':
                value = int(value or 0)
            setattr(draft, name, value)

    def to_payment(self, data):
        """Details -> Payment. Returns field errors; any error keeps the wizard on Details."""
        self._require(Details, 'continue to payment')
        errors = validation.validate_details(data)
        if errors:
            return errors
        fields = {name: data[name] for name in validation.DETAILS_FIELDS}
        fields['email'] = str(fields['email']).strip()
        method = data.get('payment_method')
        if method and not validation.validate_payment_method(method):
            fields['payment_method'] = method
        self.update(**fields)
        self.state = Payment(self.draft)
        return {}

    def back(self):
        if isinstance(self.state, Payment):
            self.state = Details(self.draft)
        elif isinstance(self.state, Confirmation):
            self.state = Payment(self.draft)
        else:
            raise InvalidTransition(self.step, 'go back')

    def acknowledge_payment(self, payment_method=None):
        """Payment -> Confirmation once the donor says they have paid."""
        self._require(Payment, 'confirm payment')
        if payment_method and not validation.validate_payment_method(payment_method):
            self.update(payment_method=payment_method)
        self.state = Confirmation(self.draft)

    def submit(self, service, transaction_id, payment_proof_url=''):
        """Confirmation -> Submitted.

        Sends exactly one creation request through ``service`` (a
        DonationService, which invalidates the cached donation list and stats
        once the backend accepts). Returns field errors; on a backend failure
        the wizard stays on Confirmation with the error recorded on the state.
        """
        self._require(Confirmation, 'submit')
        transaction_id = (transaction_id or '').strip()
        self.update(transaction_id=transaction_id, payment_proof_url=payment_proof_url or '')
        error = validation.validate_transaction_id(transaction_id)
        if error:
            self.state = replace(self.state, error='')
            return {'transaction_id': error}
        try:
            donation_id = service.submit(self.draft.as_payload())
        except BackendError as exc:
            logger.warning('Donation submission failed: %s', exc)
            self.state = Confirmation(self.draft, error=exc.message or SUBMIT_FALLBACK_ERROR)
            return {}
        self.state = Submitted(self.draft, donation_id=donation_id)
        return {}

    def to_session(self):
        data = {'step': self.step, 'draft': self.draft.to_dict()}
        if isinstance(self.state, Confirmation):
            data['error'] = self.state.error
        if isinstance(self.state, Submitted):
            data['donation_id'] = self.state.donation_id
        return data

    @classmethod
    def from_session(cls, data, currency=DEFAULT_CURRENCY):
        if not data or data.get('step') not in STATES:
            return cls(currency=currency)
        draft = DonationDraft.from_dict(data.get('draft') or {})
        step = data['step']
        if step == CONFIRMATION:
            state = Confirmation(draft, error=data.get('error') or '')
        elif step == SUBMITTED:
            state = Submitted(draft, donation_id=data.get('donation_id'))
        else:
            state = STATES[step](draft)
        return cls(state)
