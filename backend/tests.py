import requests
from django.test import SimpleTestCase

from backend.cache import ResponseCache
from backend.client import ApiClient
from backend.exceptions import ApiError, GENERIC_ERROR, NetworkError
from backend.services import (
    ApplicationService, AuthService, DonationService, ProjectService, unwrap,
)
from backend.testing import FakeBackend, FakeClock


class ResponseCacheTests(SimpleTestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.cache = ResponseCache(ttl=300, clock=self.clock)

    def test_fresh_entry_is_served_as_stored(self):
        payload = {'success': True, 'data': [{'id': 3}]}
        self.cache.store('/api/projects', payload)
        self.clock.advance(299)
        self.assertEqual(self.cache.lookup('/api/projects'), payload)

    def test_mutating_a_served_payload_leaves_the_entry_intact(self):
        payload = {'success': True, 'data': [{'id': 3, 'name': 'Clean Water'}]}
        self.cache.store('/api/projects', payload)
        payload['data'].append({'id': 4})
        served = self.cache.lookup('/api/projects')
        served['data'][0]['name'] = 'changed'
        self.assertEqual(
            self.cache.lookup('/api/projects'),
            {'success': True, 'data': [{'id': 3, 'name': 'Clean Water'}]},
        )

    def test_entry_is_stale_once_ttl_has_elapsed(self):
        self.cache.store('/api/projects', {'data': []})
        self.clock.advance(300)
        self.assertIsNone(self.cache.lookup('/api/projects'))
        # Not evicted, only skipped
        self.assertIn('/api/projects', self.cache)

    def test_stale_entry_is_overwritten_by_next_store(self):
        self.cache.store('/api/projects', {'data': ['old']})
        self.clock.advance(600)
        self.cache.store('/api/projects', {'data': ['new']})
        self.assertEqual(self.cache.lookup('/api/projects'), {'data': ['new']})
        self.assertEqual(len(self.cache), 1)

    def test_key_ignores_parameter_order_and_empty_values(self):
        self.assertEqual(
            ResponseCache.key_for('/api/donations', {'search': 'jane', 'country': 'Ghana'}),
            ResponseCache.key_for('/api/donations', {'country': 'Ghana', 'search': 'jane'}),
        )
        self.assertEqual(ResponseCache.key_for('/api/donations', {'country': None}), '/api/donations')
        self.assertEqual(ResponseCache.key_for('/api/donations'), '/api/donations')
        self.assertEqual(
            ResponseCache.key_for('/api/projects', {'status': 'active'}), '/api/projects?status=active')

    def test_invalidate_removes_every_variant_under_prefix(self):
        for key in ('/donations', '/donations?status=pending', '/donations/stats', '/donors'):
            self.cache.store(key, {'key': key})
        removed = self.cache.invalidate('/donations')
        self.assertEqual(removed, 3)
        self.assertNotIn('/donations', self.cache)
        self.assertNotIn('/donations?status=pending', self.cache)
        self.assertNotIn('/donations/stats', self.cache)
        self.assertEqual(self.cache.lookup('/donors'), {'key': '/donors'})

    def test_clear_all_drops_everything(self):
        self.cache.store('/a', 1)
        self.cache.store('/b', 2)
        self.cache.clear_all()
        self.assertEqual(len(self.cache), 0)


class ApiClientTests(SimpleTestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.cache = ResponseCache(ttl=300, clock=self.clock)
        self.backend = FakeBackend()
        self.client = ApiClient('http://backend.test/', self.cache, session=self.backend)

    def test_get_within_ttl_skips_network(self):
        self.backend.add('GET', '/api/payment-accounts', {'success': True, 'data': {'bank_account': {}}})
        first = self.client.get('/api/payment-accounts')
        self.clock.advance(120)
        second = self.client.get('/api/payment-accounts')
        self.assertEqual(first, second)
        self.assertEqual(self.backend.count('GET', '/api/payment-accounts'), 1)

    def test_get_after_ttl_goes_back_to_network(self):
        self.backend.add('GET', '/api/projects', {'data': [1]})
        self.client.get('/api/projects', {'status': 'active'})
        self.clock.advance(301)
        self.backend.add('GET', '/api/projects', {'data': [1, 2]})
        self.assertEqual(self.client.get('/api/projects', {'status': 'active'}), {'data': [1, 2]})
        self.assertEqual(self.backend.count('GET', '/api/projects'), 2)

    def test_distinct_params_are_distinct_entries(self):
        self.backend.add('GET', '/api/projects', {'data': []})
        self.client.get('/api/projects', {'status': 'active'})
        self.client.get('/api/projects', {'status': 'completed'})
        self.assertEqual(self.backend.count('GET', '/api/projects'), 2)

    def test_failed_read_is_not_cached(self):
        self.backend.add('GET', '/api/projects', {'error': 'Database unavailable'}, status=503)
        with self.assertRaises(ApiError):
            self.client.get('/api/projects')
        self.assertEqual(len(self.cache), 0)
        self.backend.add('GET', '/api/projects', {'data': []})
        self.assertEqual(self.client.get('/api/projects'), {'data': []})
        self.assertEqual(self.backend.count('GET', '/api/projects'), 2)

    def test_unsuccessful_envelope_is_not_cached(self):
        self.backend.add('GET', '/api/settings', {'success': False, 'error': 'Settings not initialised'})
        self.assertFalse(self.client.get('/api/settings')['success'])
        self.assertEqual(len(self.cache), 0)
        self.backend.add('GET', '/api/settings', {'success': True, 'data': {'site_name': 'Youths4Change'}})
        self.client.get('/api/settings')
        self.client.get('/api/settings')
        self.assertEqual(self.backend.count('GET', '/api/settings'), 2)

    def test_server_error_message_is_kept_verbatim(self):
        self.backend.add('POST', '/api/donations', {'error': 'Project is no longer accepting donations'}, status=400)
        with self.assertRaises(ApiError) as ctx:
            self.client.post('/api/donations', {'amount': 10})
        self.assertEqual(ctx.exception.status, 400)
        self.assertEqual(ctx.exception.message, 'Project is no longer accepting donations')

    def test_error_without_body_uses_fallback(self):
        self.backend.add('GET', '/api/settings', None, status=500)
        with self.assertRaises(ApiError) as ctx:
            self.client.get('/api/settings')
        self.assertEqual(ctx.exception.message, GENERIC_ERROR)

    def test_timeout_and_connection_failures_are_network_errors(self):
        self.backend.add('GET', '/api/projects', exc=requests.Timeout('slow'))
        with self.assertRaises(NetworkError):
            self.client.get('/api/projects')
        self.backend.add('GET', '/api/projects', exc=requests.ConnectionError('refused'))
        with self.assertRaises(NetworkError):
            self.client.get('/api/projects')
        self.assertEqual(len(self.cache), 0)

    def test_requests_carry_timeout(self):
        self.backend.add('GET', '/api/projects', {'data': []})
        self.client.get('/api/projects')
        self.assertEqual(self.backend.last('GET', '/api/projects').timeout, 30)

    def test_writes_are_never_cached(self):
        self.backend.add('POST', '/api/applications', {'success': True, 'data': {'id': 1}})
        self.client.post('/api/applications', {})
        self.client.post('/api/applications', {})
        self.assertEqual(self.backend.count('POST', '/api/applications'), 2)
        self.assertEqual(len(self.cache), 0)

    def test_fetch_bypasses_cache(self):
        self.backend.add('GET', '/api/auth/me', {'authenticated': False})
        self.client.fetch('/api/auth/me')
        self.client.fetch('/api/auth/me')
        self.assertEqual(self.backend.count('GET', '/api/auth/me'), 2)
        self.assertEqual(len(self.cache), 0)


class DonationServiceTests(SimpleTestCase):
    def setUp(self):
        self.cache = ResponseCache(ttl=300, clock=FakeClock())
        self.backend = FakeBackend()
        self.client = ApiClient('http://backend.test', self.cache, session=self.backend)
        self.service = DonationService(self.client)
        for key in ('/api/donations', '/api/donations?country=Ghana', '/api/donations/stats',
                    '/api/projects?status=active'):
            self.cache.store(key, {'data': key})

    def test_submit_returns_id_and_purges_donation_entries(self):
        self.backend.add('POST', '/api/donations', {'success': True, 'id': 42, 'payment_status': 'pending'})
        self.assertEqual(self.service.submit({'amount': 10.0}), 42)
        self.assertNotIn('/api/donations', self.cache)
        self.assertNotIn('/api/donations?country=Ghana', self.cache)
        self.assertNotIn('/api/donations/stats', self.cache)
        self.assertIn('/api/projects?status=active', self.cache)

    def test_id_inside_data_envelope_is_accepted(self):
        self.backend.add('POST', '/api/donations', {'success': True, 'data': {'id': 7}})
        self.assertEqual(self.service.submit({}), 7)

    def test_failed_submit_leaves_cache_untouched(self):
        self.backend.add('POST', '/api/donations', {'error': 'Invalid project'}, status=400)
        with self.assertRaises(ApiError):
            self.service.submit({})
        self.assertIn('/api/donations', self.cache)
        self.assertIn('/api/donations/stats', self.cache)

    def test_unsuccessful_envelope_is_an_error(self):
        self.backend.add('POST', '/api/donations', {'success': False, 'error': 'Duplicate transaction'})
        with self.assertRaises(ApiError) as ctx:
            self.service.submit({})
        self.assertEqual(ctx.exception.message, 'Duplicate transaction')
        self.assertIn('/api/donations', self.cache)

    def test_list_sends_only_given_filters(self):
        self.cache.clear_all()
        self.backend.add('GET', '/api/donations', {'success': True, 'data': [{'id': 1}], 'count': 1})
        self.assertEqual(self.service.list(country='Ghana'), [{'id': 1}])
        self.assertEqual(self.backend.last('GET', '/api/donations').params, {'country': 'Ghana'})


class OtherServiceTests(SimpleTestCase):
    def setUp(self):
        self.cache = ResponseCache(ttl=300, clock=FakeClock())
        self.backend = FakeBackend()
        self.client = ApiClient('http://backend.test', self.cache, session=self.backend)

    def test_unwrap(self):
        self.assertEqual(unwrap({'success': True, 'data': [1]}), [1])
        self.assertEqual(unwrap({'success': True, 'data': None}, []), [])
        self.assertEqual(unwrap({'authenticated': True}), {'authenticated': True})

    def test_project_delete_invalidates_project_lists(self):
        self.cache.store('/api/projects?status=active', {'data': []})
        self.cache.store('/api/projects/3', {'data': {}})
        self.backend.add('DELETE', '/api/projects/3', {'success': True})
        ProjectService(self.client).delete(3)
        self.assertEqual(len(self.cache), 0)

    def test_review_rejects_unknown_status(self):
        with self.assertRaises(ValueError):
            ApplicationService(self.client).review(1, 'maybe')
        self.assertEqual(self.backend.calls, [])

    def test_logout_clears_cache_even_if_backend_fails(self):
        self.cache.store('/api/donations', {'data': []})
        self.backend.add('POST', '/api/auth/logout', exc=requests.ConnectionError())
        with self.assertRaises(NetworkError):
            AuthService(self.client).logout()
        self.assertEqual(len(self.cache), 0)

    def test_login_keeps_backend_cookie(self):
        self.backend.add('POST', '/api/auth/login', {'success': True, 'user': {'username': 'amina'}},
                         cookies={'session': 'abc123'})
        user = AuthService(self.client).login('amina', 'secret')
        self.assertEqual(user, {'username': 'amina'})
        self.assertEqual(self.client.cookies(), {'session': 'abc123'})

    def test_bad_credentials_raise(self):
        self.backend.add('POST', '/api/auth/login', {'success': False, 'error': 'Invalid credentials'}, status=401)
        with self.assertRaises(ApiError) as ctx:
            AuthService(self.client).login('amina', 'wrong')
        self.assertEqual(ctx.exception.message, 'Invalid credentials')
