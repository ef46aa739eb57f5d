from decimal import Decimal

import requests
from django.test import SimpleTestCase, TestCase
from django.urls import reverse

from backend.exceptions import ApiError, NetworkError
from backend.testing import FakeBackendMixin
from payments import validation
from payments.templatetags.donation_tags import local_equivalent, to_local
from payments.views import SESSION_KEY
from payments.workflow import (
    CONFIRMATION, DETAILS, PAYMENT, SUBMITTED, DonationWorkflow, InvalidTransition,
)

VALID_DETAILS = {
    'donor_name': 'Jane Doe',
    'email': 'jane@example.com',
    'amount': '10.00',
    'project_id': 3,
    'country': 'Ghana',
    'payment_method': 'mobile_money',
}

PROJECTS = [
    {'id': 3, 'name': 'Clean Water Initiative', 'country': 'Ghana',
     'description': 'Boreholes for rural schools', 'beneficiaries_count': 1200, 'status': 'active'},
    {'id': 5, 'name': 'Girls Code Camp', 'country': 'Kenya',
     'description': 'Coding bootcamps', 'beneficiaries_count': 80, 'status': 'active'},
]

PAYMENT_ACCOUNTS = {
    'bank_account': {
        'account_name': 'Youths4Change Foundation', 'name': 'Ecobank Ghana',
        'account_number': '1441000123456', 'swift_code': 'ECOCGHAC', 'address': 'Accra, Ghana',
    },
    'mobile_money': {
        'ghana': {'number': '+233 24 000 0000', 'name': 'Youths4Change'},
        'cameroon': {'number': '+237 6 00 00 00 00', 'name': 'Youths4Change'},
    },
}


class FieldRuleTests(SimpleTestCase):
    def test_amount_boundaries(self):
        self.assertEqual(validation.validate_amount('0.99'), 'Minimum donation is $1.00')
        self.assertIsNone(validation.validate_amount('1.00'))
        self.assertIsNone(validation.validate_amount('25'))
        self.assertEqual(validation.validate_amount('10.005'), 'Invalid amount format (use XX.XX)')
        self.assertEqual(validation.validate_amount('0'), 'Amount is required')
        self.assertEqual(validation.validate_amount(''), 'Amount is required')
        self.assertEqual(validation.validate_amount('ten'), 'Amount must be a number')

    def test_amount_beyond_cent_precision_is_rejected(self):
        huge = '100000000000000000000000000.00'
        self.assertEqual(validation.validate_amount(huge), 'Amount is too large')
        self.assertIsNone(validation.validate_amount('99999999.99'))

    def test_rules_are_idempotent(self):
        for name, value in (('amount', '0.99'), ('email', 'jane@'), ('donor_name', 'Jane Doe')):
            self.assertEqual(validation.validate_field(name, value), validation.validate_field(name, value))

    def test_donor_name(self):
        self.assertIsNone(validation.validate_donor_name('Jo'))
        self.assertEqual(validation.validate_donor_name(''), 'Donor name is required')
        self.assertIsNotNone(validation.validate_donor_name('J'))
        self.assertIsNotNone(validation.validate_donor_name('Jane D0e'))
        self.assertIsNotNone(validation.validate_donor_name('J' * 51))

    def test_email_is_trimmed(self):
        self.assertIsNone(validation.validate_email('  jane@example.com '))
        self.assertEqual(validation.validate_email('   '), 'Email is required')
        self.assertEqual(validation.validate_email('jane.example.com'), 'Invalid email format')

    def test_project_and_country(self):
        self.assertEqual(validation.validate_project_id(0), 'Please select a project')
        self.assertEqual(validation.validate_project_id(''), 'Please select a project')
        self.assertIsNone(validation.validate_project_id(3))
        self.assertEqual(validation.validate_country(''), 'Please select your country')
        self.assertIsNotNone(validation.validate_country('Atlantis'))
        self.assertIsNone(validation.validate_country('Ghana'))

    def test_validate_details_reports_each_failing_field(self):
        errors = validation.validate_details({'donor_name': 'Jane Doe', 'amount': '0'})
        self.assertEqual(set(errors), {'email', 'amount', 'project_id', 'country'})


class LocalCurrencyTests(SimpleTestCase):
    def test_local_equivalent_is_display_only(self):
        with self.settings(LOCAL_CURRENCY='GHS', LOCAL_CURRENCY_RATE='12.00'):
            self.assertEqual(to_local(Decimal('10.00')), Decimal('120.00'))
            self.assertEqual(local_equivalent('10.50'), '≈ GHS 126.00')
            self.assertEqual(local_equivalent(None), '')


class RecordingService:
    def __init__(self, result=57, error=None):
        self.result = result
        self.error = error
        self.payloads = []

    def submit(self, payload):
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error
        return self.result


class DonationWorkflowTests(SimpleTestCase):
    def advance_to_confirmation(self, workflow):
        self.assertEqual(workflow.to_payment(VALID_DETAILS), {})
        workflow.acknowledge_payment()
        self.assertEqual(workflow.step, CONFIRMATION)

    def test_zero_amount_blocks_details(self):
        workflow = DonationWorkflow()
        errors = workflow.to_payment(dict(VALID_DETAILS, amount='0'))
        self.assertEqual(errors, {'amount': 'Amount is required'})
        self.assertEqual(workflow.step, DETAILS)

    def test_minimum_amount_advances(self):
        workflow = DonationWorkflow()
        self.assertEqual(workflow.to_payment(dict(VALID_DETAILS, amount='1.00')), {})
        self.assertEqual(workflow.step, PAYMENT)
        self.assertEqual(workflow.draft.amount, Decimal('1.00'))

    def test_unrepresentable_amount_stays_on_details(self):
        workflow = DonationWorkflow()
        errors = workflow.to_payment(dict(VALID_DETAILS, amount='100000000000000000000000000.00'))
        self.assertEqual(errors, {'amount': 'Amount is too large'})
        self.assertEqual(workflow.step, DETAILS)
        self.assertIsNone(workflow.draft.amount)

    def test_draft_without_amount_has_no_payload(self):
        workflow = DonationWorkflow()
        with self.assertRaises(ValueError):
            workflow.draft.as_payload()

    def test_back_keeps_draft(self):
        workflow = DonationWorkflow()
        self.advance_to_confirmation(workflow)
        workflow.back()
        self.assertEqual(workflow.step, PAYMENT)
        workflow.back()
        self.assertEqual(workflow.step, DETAILS)
        self.assertEqual(workflow.draft.donor_name, 'Jane Doe')
        with self.assertRaises(InvalidTransition):
            workflow.back()

    def test_illegal_transitions_raise(self):
        workflow = DonationWorkflow()
        with self.assertRaises(InvalidTransition):
            workflow.acknowledge_payment()
        with self.assertRaises(InvalidTransition):
            workflow.submit(RecordingService(), 'MTN123456')

    def test_blank_transaction_id_blocks_without_network(self):
        workflow = DonationWorkflow()
        self.advance_to_confirmation(workflow)
        service = RecordingService()
        errors = workflow.submit(service, '   ')
        self.assertEqual(errors, {'transaction_id': 'Transaction ID is required'})
        self.assertEqual(service.payloads, [])
        self.assertEqual(workflow.step, CONFIRMATION)

    def test_successful_submit_sends_full_draft_once(self):
        workflow = DonationWorkflow()
        self.advance_to_confirmation(workflow)
        service = RecordingService(result=57)
        self.assertEqual(workflow.submit(service, 'MTN123456', 'proofs/receipt_abc'), {})
        self.assertEqual(workflow.step, SUBMITTED)
        self.assertEqual(workflow.state.donation_id, 57)
        self.assertEqual(service.payloads, [{
            'donor_name': 'Jane Doe',
            'email': 'jane@example.com',
            'amount': 10.0,
            'project_id': 3,
            'country': 'Ghana',
            'payment_method': 'mobile_money',
            'transaction_id': 'MTN123456',
            'currency': 'USD',
            'payment_proof_url': 'proofs/receipt_abc',
        }])
        with self.assertRaises(InvalidTransition):
            workflow.update(amount='20.00')

    def test_failed_submit_stays_on_confirmation_with_message(self):
        workflow = DonationWorkflow()
        self.advance_to_confirmation(workflow)
        workflow.submit(RecordingService(error=ApiError(400, 'Project is closed')), 'MTN123456')
        self.assertEqual(workflow.step, CONFIRMATION)
        self.assertEqual(workflow.state.error, 'Project is closed')
        self.assertEqual(workflow.draft.transaction_id, 'MTN123456')

        workflow.submit(RecordingService(error=NetworkError()), 'MTN123456')
        self.assertEqual(workflow.state.error, NetworkError().message)

        workflow.submit(RecordingService(result=9), 'MTN123456')
        self.assertEqual(workflow.step, SUBMITTED)

    def test_session_round_trip(self):
        workflow = DonationWorkflow()
        self.advance_to_confirmation(workflow)
        workflow.submit(RecordingService(error=ApiError(500, 'Try later')), 'X1')
        restored = DonationWorkflow.from_session(workflow.to_session())
        self.assertEqual(restored.step, CONFIRMATION)
        self.assertEqual(restored.state.error, 'Try later')
        self.assertEqual(restored.draft, workflow.draft)

    def test_unknown_session_data_starts_fresh(self):
        self.assertEqual(DonationWorkflow.from_session({'step': 'bogus'}).step, DETAILS)
        self.assertEqual(DonationWorkflow.from_session(None).step, DETAILS)


class DonateViewTests(FakeBackendMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.url = reverse('payments:donate')
        self.backend.add('GET', '/api/projects', {'success': True, 'data': PROJECTS})
        self.backend.add('GET', '/api/payment-accounts', {'success': True, 'data': PAYMENT_ACCOUNTS})
        self.backend.add('POST', '/api/donations', {'success': True, 'id': 57, 'payment_status': 'pending'})

    def step(self):
        return self.client.session[SESSION_KEY]['step']

    def post_details(self, **overrides):
        data = dict(VALID_DETAILS, action='details', **overrides)
        return self.client.post(self.url, data)

    def test_details_page_lists_active_projects(self):
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.context['step'], DETAILS)
        self.assertContains(resp, 'Clean Water Initiative (Ghana)')
        self.assertEqual(self.backend.last('GET', '/api/projects').params, {'status': 'active'})
        self.assertEqual(self.backend.count('GET', '/api/payment-accounts'), 1)

    def test_reference_data_comes_from_cache_on_reload(self):
        self.client.get(self.url)
        self.client.get(self.url)
        self.assertEqual(self.backend.count('GET', '/api/projects'), 1)
        self.assertEqual(self.backend.count('GET', '/api/payment-accounts'), 1)

    def test_project_can_be_preselected(self):
        resp = self.client.get(self.url + '?project=5')
        self.assertEqual(resp.context['selected_project']['name'], 'Girls Code Camp')

    def test_zero_amount_does_not_advance(self):
        resp = self.post_details(amount='0')
        self.assertEqual(resp.status_code, 200)
        self.assertFormError(resp.context['form'], 'amount', 'Amount is required')
        self.assertNotIn(SESSION_KEY, self.client.session)

    def test_minimum_amount_advances_to_payment(self):
        resp = self.post_details(amount='1.00')
        self.assertRedirects(resp, self.url, fetch_redirect_response=False)
        self.assertEqual(self.step(), PAYMENT)
        resp = self.client.get(self.url)
        self.assertContains(resp, '1441000123456')
        self.assertContains(resp, '≈ GHS')

    def test_payment_step_renders_without_accounts(self):
        self.post_details()
        self.cache.clear_all()
        self.backend.add('GET', '/api/payment-accounts', exc=requests.Timeout())
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.context['step'], PAYMENT)
        self.assertContains(resp, 'Payment instructions are unavailable')

    def test_end_to_end_donation(self):
        self.client.get(self.url)
        self.post_details()
        self.client.post(self.url, {'action': 'paid', 'payment_method': 'mobile_money'})
        self.assertEqual(self.step(), CONFIRMATION)

        # Admin views have the list and stats cached
        self.cache.store('/api/donations', {'data': []})
        self.cache.store('/api/donations/stats', {'data': {}})

        resp = self.client.post(self.url, {'action': 'submit', 'transaction_id': 'MTN123456'})
        self.assertRedirects(resp, self.url, fetch_redirect_response=False)
        self.assertEqual(self.backend.count('POST', '/api/donations'), 1)
        self.assertEqual(self.backend.last('POST', '/api/donations').json, {
            'donor_name': 'Jane Doe',
            'email': 'jane@example.com',
            'amount': 10.0,
            'project_id': 3,
            'country': 'Ghana',
            'payment_method': 'mobile_money',
            'transaction_id': 'MTN123456',
            'currency': 'USD',
        })
        self.assertNotIn('/api/donations', self.cache)
        self.assertNotIn('/api/donations/stats', self.cache)
        self.assertEqual(self.step(), SUBMITTED)

        resp = self.client.get(self.url)
        self.assertTemplateUsed(resp, 'payments/donate_success.html')
        self.assertContains(resp, '#57')
        self.assertContains(resp, 'Clean Water Initiative')
        self.assertNotIn(SESSION_KEY, self.client.session)

    def test_missing_transaction_id_blocks_submission(self):
        self.post_details()
        self.client.post(self.url, {'action': 'paid', 'payment_method': 'bank_transfer'})
        resp = self.client.post(self.url, {'action': 'submit', 'transaction_id': ''})
        self.assertEqual(resp.status_code, 200)
        self.assertFormError(resp.context['form'], 'transaction_id', 'Transaction ID is required')
        self.assertEqual(self.backend.count('POST', '/api/donations'), 0)
        self.assertEqual(self.step(), CONFIRMATION)

    def test_server_error_is_shown_and_retry_keeps_data(self):
        self.post_details()
        self.client.post(self.url, {'action': 'paid', 'payment_method': 'mobile_money'})
        self.cache.store('/api/donations', {'data': []})
        self.backend.add('POST', '/api/donations', {'error': 'Transaction ID already used'}, status=409)

        resp = self.client.post(self.url, {'action': 'submit', 'transaction_id': 'MTN123456'})
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, 'Transaction ID already used')
        self.assertIn('/api/donations', self.cache)
        self.assertEqual(self.step(), CONFIRMATION)
        self.assertEqual(self.client.session[SESSION_KEY]['draft']['donor_name'], 'Jane Doe')

        self.backend.add('POST', '/api/donations', {'success': True, 'id': 58})
        self.client.post(self.url, {'action': 'submit', 'transaction_id': 'MTN654321'})
        self.assertEqual(self.step(), SUBMITTED)

    def test_back_from_payment_returns_to_filled_details(self):
        self.post_details()
        self.client.post(self.url, {'action': 'back'})
        resp = self.client.get(self.url)
        self.assertEqual(resp.context['step'], DETAILS)
        self.assertEqual(resp.context['form'].initial['donor_name'], 'Jane Doe')

    def test_out_of_order_action_is_ignored(self):
        resp = self.client.post(self.url, {'action': 'submit', 'transaction_id': 'MTN123456'}, follow=True)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.backend.count('POST', '/api/donations'), 0)
        self.assertEqual(resp.context['step'], DETAILS)


class ValidateEndpointTests(TestCase):
    def test_single_field_check(self):
        url = reverse('payments:validate')
        resp = self.client.post(url, {'field': 'amount', 'value': '0.99'})
        self.assertEqual(resp.json(), {'field': 'amount', 'error': 'Minimum donation is $1.00'})
        again = self.client.post(url, {'field': 'amount', 'value': '0.99'})
        self.assertEqual(again.json(), resp.json())
        ok = self.client.post(url, {'field': 'amount', 'value': '1.00'})
        self.assertIsNone(ok.json()['error'])

    def test_unknown_field_rejected(self):
        resp = self.client.post(reverse('payments:validate'), {'field': 'transaction_id', 'value': ''})
        self.assertEqual(resp.status_code, 400)


class AdminDonationViewTests(FakeBackendMixin, TestCase):
    def login(self):
        session = self.client.session
        session['admin'] = {'username': 'amina'}
        session.save()

    def test_requires_admin_session(self):
        resp = self.client.get(reverse('payments:donations_list'))
        self.assertEqual(resp.status_code, 302)
        self.assertIn(reverse('website:admin_login'), resp['Location'])

    def test_list_shows_donations_and_stats(self):
        self.login()
        self.backend.add('GET', '/api/donations', {'success': True, 'data': [
            {'id': 57, 'donor_name': 'Jane Doe', 'amount': 10.0, 'country': 'Ghana', 'project_id': 3},
        ]})
        self.backend.add('GET', '/api/donations/stats', {'success': True, 'data': {
            'total_amount': 10.0, 'total_count': 1, 'by_country': [], 'by_project': [],
        }})
        self.backend.add('GET', '/api/projects', {'success': True, 'data': PROJECTS})
        resp = self.client.get(reverse('payments:donations_list'), {'country': 'Ghana'})
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, 'Jane Doe')
        self.assertEqual(resp.context['stats']['total_count'], 1)
        self.assertEqual(self.backend.last('GET', '/api/donations').params, {'country': 'Ghana'})

    def test_expired_backend_login_returns_to_login(self):
        self.login()
        self.backend.add('GET', '/api/donations', {'error': 'Unauthorized'}, status=401)
        resp = self.client.get(reverse('payments:donations_list'))
        self.assertEqual(resp.status_code, 302)
        self.assertNotIn('admin', self.client.session)

    def test_missing_donation_is_404(self):
        self.login()
        resp = self.client.get(reverse('payments:donation_detail', args=[999]))
        self.assertEqual(resp.status_code, 404)
