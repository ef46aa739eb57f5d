import requests
from django.test import TestCase
from django.urls import reverse

from backend.client import BACKEND_COOKIES_KEY
from backend.testing import FakeBackendMixin
from website.forms import ApplicationForm, count_words
from website.signals import FAIL_KEY, LOCK_UNTIL_KEY

PROJECT = {
    'id': 3, 'name': 'Clean Water Initiative', 'country': 'Ghana', 'status': 'active',
    'description': 'Boreholes for rural schools', 'beneficiaries_count': 1200,
}


def application_data(**overrides):
    data = {
        'full_name': 'Kwame Mensah',
        'email': 'kwame@example.com',
        'phone': '+233201234567',
        'country': 'Ghana',
        'motivation': ' '.join(['change'] * 120),
    }
    data.update(overrides)
    return data


class AdminSessionMixin:
    def login_admin(self):
        session = self.client.session
        session['admin'] = {'id': 1, 'username': 'amina'}
        session[BACKEND_COOKIES_KEY] = {'session': 'abc123'}
        session.save()


class PublicPageTests(FakeBackendMixin, TestCase):
    def test_home_page_shows_active_projects(self):
        self.backend.add('GET', '/api/projects', {'success': True, 'data': [PROJECT]})
        resp = self.client.get(reverse('website:home'))
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, 'Clean Water Initiative')
        self.assertEqual(self.backend.last('GET', '/api/projects').params, {'status': 'active'})

    def test_home_page_survives_backend_outage(self):
        resp = self.client.get(reverse('website:home'))
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, 'No projects to show yet.')

    def test_projects_list_ignores_unknown_country(self):
        self.backend.add('GET', '/api/projects', {'success': True, 'data': [PROJECT]})
        self.client.get(reverse('website:projects'), {'country': 'Atlantis'})
        self.assertEqual(self.backend.last('GET', '/api/projects').params, {'status': 'active'})
        self.client.get(reverse('website:projects'), {'country': 'Ghana'})
        self.assertEqual(self.backend.last('GET', '/api/projects').params, {'status': 'active', 'country': 'Ghana'})

    def test_project_detail_links_to_donation(self):
        self.backend.add('GET', '/api/projects/3', {'success': True, 'data': PROJECT})
        resp = self.client.get(reverse('website:project_detail', args=[3]))
        self.assertContains(resp, reverse('payments:donate') + '?project=3')

    def test_missing_or_deleted_project_is_404(self):
        resp = self.client.get(reverse('website:project_detail', args=[99]))
        self.assertEqual(resp.status_code, 404)
        self.backend.add('GET', '/api/projects/4', {'success': True, 'data': dict(PROJECT, id=4, status='deleted')})
        resp = self.client.get(reverse('website:project_detail', args=[4]))
        self.assertEqual(resp.status_code, 404)

    def test_pages_are_served_from_cache(self):
        self.client.get(reverse('website:home'))
        first = len(self.backend.calls)
        self.client.get(reverse('website:home'))
        # Failed reads are not cached, successful ones are
        self.assertEqual(len(self.backend.calls), first * 2)
        self.backend.add('GET', '/api/projects', {'success': True, 'data': [PROJECT]})
        self.client.get(reverse('website:home'))
        self.client.get(reverse('website:home'))
        self.assertEqual(self.backend.count('GET', '/api/projects'), 3)


class ApplicationFormTests(TestCase):
    def test_valid_application(self):
        self.assertTrue(ApplicationForm(application_data()).is_valid())

    def test_motivation_word_limits(self):
        form = ApplicationForm(application_data(motivation='too short'))
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors['motivation'], ['Motivation must be at least 100 words (current: 2)'])
        form = ApplicationForm(application_data(motivation=' '.join(['word'] * 501)))
        self.assertFalse(form.is_valid())
        self.assertIn('motivation', form.errors)

    def test_field_patterns(self):
        form = ApplicationForm(application_data(full_name='Al', phone='12345', email='kwame@'))
        self.assertFalse(form.is_valid())
        self.assertEqual(set(form.errors), {'full_name', 'phone', 'email'})

    def test_count_words(self):
        self.assertEqual(count_words('  one two\nthree  '), 3)
        self.assertEqual(count_words(None), 0)


class ApplyViewTests(FakeBackendMixin, TestCase):
    def test_submission_posts_application(self):
        self.backend.add('POST', '/api/applications', {'success': True, 'data': {'id': 12}})
        resp = self.client.post(reverse('website:apply'), application_data(), follow=True)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.backend.count('POST', '/api/applications'), 1)
        self.assertEqual(self.backend.last('POST', '/api/applications').json['full_name'], 'Kwame Mensah')
        messages = list(resp.context['messages'])
        self.assertTrue(any('submitted successfully' in m.message for m in messages))

    def test_invalid_submission_stays_local(self):
        resp = self.client.post(reverse('website:apply'), application_data(phone='abc'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.backend.count('POST', '/api/applications'), 0)

    def test_backend_error_is_shown(self):
        self.backend.add('POST', '/api/applications', {'error': 'Email already registered'}, status=409)
        resp = self.client.post(reverse('website:apply'), application_data())
        self.assertContains(resp, 'Email already registered')


class AdminLoginTests(FakeBackendMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.url = reverse('website:admin_login')

    def test_login_stores_admin_and_backend_cookies(self):
        self.backend.add('POST', '/api/auth/login', {'success': True, 'user': {'id': 1, 'username': 'amina'}},
                         cookies={'session': 'abc123'})
        resp = self.client.post(self.url, {'username': 'amina', 'password': 'secret'})
        self.assertRedirects(resp, reverse('website:admin_dashboard'), fetch_redirect_response=False)
        session = self.client.session
        self.assertEqual(session['admin']['username'], 'amina')
        self.assertEqual(session[BACKEND_COOKIES_KEY], {'session': 'abc123'})

    def test_login_rejects_offsite_next(self):
        self.backend.add('POST', '/api/auth/login', {'success': True, 'user': {'username': 'amina'}})
        resp = self.client.post(self.url + '?next=https://evil.example/', {'username': 'amina', 'password': 'x'})
        self.assertRedirects(resp, reverse('website:admin_dashboard'), fetch_redirect_response=False)

    def test_repeated_failures_lock_login(self):
        self.backend.add('POST', '/api/auth/login', {'success': False, 'error': 'Invalid credentials'}, status=401)
        for _ in range(3):
            resp = self.client.post(self.url, {'username': 'amina', 'password': 'wrong'})
            self.assertContains(resp, 'Invalid credentials')
        self.assertEqual(self.client.session[FAIL_KEY], 3)
        self.assertIn(LOCK_UNTIL_KEY, self.client.session)

        resp = self.client.post(self.url, {'username': 'amina', 'password': 'right'})
        self.assertContains(resp, 'Too many failed attempts')
        self.assertEqual(self.backend.count('POST', '/api/auth/login'), 3)

    def test_network_failure_does_not_count_as_attempt(self):
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, 200)
        self.backend.add('POST', '/api/auth/login', exc=requests.ConnectionError())
        resp = self.client.post(self.url, {'username': 'amina', 'password': 'x'})
        self.assertContains(resp, 'Unable to reach the server')
        self.assertNotIn(FAIL_KEY, self.client.session)


class AdminAreaTests(AdminSessionMixin, FakeBackendMixin, TestCase):
    def test_dashboard_requires_login(self):
        resp = self.client.get(reverse('website:admin_dashboard'))
        self.assertRedirects(
            resp, reverse('website:admin_login') + '?next=' + reverse('website:admin_dashboard'),
            fetch_redirect_response=False,
        )

    def test_dashboard_sends_backend_cookies(self):
        self.login_admin()
        self.backend.add('GET', '/api/analytics/overview', {'success': True, 'data': {'total_projects': 4}})
        self.backend.add('GET', '/api/donations/stats', {'success': True, 'data': {'total_amount': 10}})
        self.backend.add('GET', '/api/applications', {'success': True, 'data': []})
        resp = self.client.get(reverse('website:admin_dashboard'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.backend.cookies.get('session'), 'abc123')
        self.assertEqual(self.backend.last('GET', '/api/applications').params, {'status': 'pending'})

    def test_expired_backend_session_logs_out(self):
        self.login_admin()
        self.backend.add('GET', '/api/analytics/overview', {'error': 'Not authenticated'}, status=401)
        resp = self.client.get(reverse('website:admin_dashboard'))
        self.assertEqual(resp.status_code, 302)
        session = self.client.session
        self.assertNotIn('admin', session)
        self.assertNotIn(BACKEND_COOKIES_KEY, session)

    def test_logout_clears_cache_and_session(self):
        self.login_admin()
        self.cache.store('/api/projects', {'data': [PROJECT]})
        self.backend.add('POST', '/api/auth/logout', {'success': True})
        resp = self.client.post(reverse('website:admin_logout'))
        self.assertRedirects(resp, reverse('website:admin_login'), fetch_redirect_response=False)
        self.assertEqual(len(self.cache), 0)
        self.assertNotIn('admin', self.client.session)

    def test_review_application_invalidates_lists(self):
        self.login_admin()
        self.cache.store('/api/applications?status=pending', {'data': []})
        self.cache.store('/api/analytics/overview', {'data': {}})
        self.cache.store('/api/projects', {'data': [PROJECT]})
        self.backend.add('PUT', '/api/applications/12/review', {'success': True})
        resp = self.client.post(reverse('website:admin_application', args=[12]), {'status': 'approved'})
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(self.backend.last('PUT', '/api/applications/12/review').json, {'status': 'approved'})
        self.assertNotIn('/api/applications?status=pending', self.cache)
        self.assertNotIn('/api/analytics/overview', self.cache)
        self.assertIn('/api/projects', self.cache)

    def test_unknown_review_decision_is_not_sent(self):
        self.login_admin()
        self.client.post(reverse('website:admin_application', args=[12]), {'status': 'maybe'})
        self.assertEqual(self.backend.count('PUT', '/api/applications/12/review'), 0)

    def test_delete_project_purges_project_cache(self):
        self.login_admin()
        self.cache.store('/api/projects?status=active', {'data': [PROJECT]})
        self.cache.store('/api/projects/3', {'data': PROJECT})
        self.backend.add('DELETE', '/api/projects/3', {'success': True})
        resp = self.client.post(reverse('website:admin_project_delete', args=[3]))
        self.assertRedirects(resp, reverse('website:admin_projects'), fetch_redirect_response=False)
        self.assertEqual(len(self.cache), 0)

    def test_create_project(self):
        self.login_admin()
        self.backend.add('POST', '/api/projects', {'success': True, 'data': {'id': 9}})
        resp = self.client.post(reverse('website:admin_project_new'), {
            'name': 'Solar Classrooms', 'description': 'Panels for schools', 'country': 'Kenya',
            'beneficiaries_count': 300, 'budget': '15000.00', 'status': 'active',
        })
        self.assertRedirects(resp, reverse('website:admin_projects'), fetch_redirect_response=False)
        payload = self.backend.last('POST', '/api/projects').json
        self.assertEqual(payload['budget'], 15000.0)
        self.assertNotIn('cloudinary_public_id', payload)


class AdminContentTests(AdminSessionMixin, FakeBackendMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.login_admin()

    def test_collections_require_login(self):
        self.client.cookies.clear()
        resp = self.client.get(reverse('website:admin_collection', args=['social-media']))
        self.assertEqual(resp.status_code, 302)
        self.assertIn(reverse('website:admin_login'), resp['Location'])

    def test_unknown_collection_is_404(self):
        resp = self.client.get(reverse('website:admin_collection', args=['donors']))
        self.assertEqual(resp.status_code, 404)

    def test_social_media_list_includes_inactive_links(self):
        self.backend.add('GET', '/api/social-media/all', {'success': True, 'data': [
            {'id': 1, 'platform': 'facebook', 'platform_name': 'Facebook',
             'url': 'https://facebook.com/y4c', 'is_active': False},
        ]})
        resp = self.client.get(reverse('website:admin_collection', args=['social-media']))
        self.assertContains(resp, 'https://facebook.com/y4c')
        self.assertEqual(self.backend.count('GET', '/api/social-media'), 0)

    def test_create_social_media_purges_public_and_admin_lists(self):
        self.cache.store('/api/social-media', {'data': []})
        self.cache.store('/api/social-media/all', {'data': []})
        self.backend.add('POST', '/api/social-media', {'success': True, 'data': {'id': 7}})
        resp = self.client.post(reverse('website:admin_collection_new', args=['social-media']), {
            'platform': 'instagram', 'platform_name': 'Instagram',
            'url': 'https://instagram.com/y4c', 'is_active': 'on',
        })
        self.assertRedirects(
            resp, reverse('website:admin_collection', args=['social-media']), fetch_redirect_response=False)
        self.assertEqual(self.backend.last('POST', '/api/social-media').json, {
            'platform': 'instagram', 'platform_name': 'Instagram', 'url': 'https://instagram.com/y4c',
            'icon': None, 'color_class': None, 'is_active': True,
        })
        self.assertEqual(len(self.cache), 0)

    def test_contact_info_is_edit_only(self):
        resp = self.client.get(reverse('website:admin_collection_new', args=['contact-info']))
        self.assertEqual(resp.status_code, 404)
        resp = self.client.post(reverse('website:admin_collection_delete', args=['contact-info', 2]))
        self.assertEqual(resp.status_code, 404)

    def test_edit_contact_info(self):
        self.backend.add('GET', '/api/contact-info', {'success': True, 'data': [
            {'id': 2, 'contact_type': 'email', 'label': 'Email', 'value': 'info@youths4change.org',
             'link': None, 'icon': 'Mail', 'order_position': 1},
        ]})
        resp = self.client.get(reverse('website:admin_collection_edit', args=['contact-info', 2]))
        self.assertEqual(resp.context['form'].initial['value'], 'info@youths4change.org')
        missing = self.client.get(reverse('website:admin_collection_edit', args=['contact-info', 9]))
        self.assertEqual(missing.status_code, 404)

        self.backend.add('PUT', '/api/contact-info/2', {'success': True})
        self.client.post(reverse('website:admin_collection_edit', args=['contact-info', 2]), {
            'label': 'Email', 'value': 'hello@youths4change.org', 'link': '', 'icon': 'Mail', 'order_position': 1,
        })
        self.assertEqual(self.backend.last('PUT', '/api/contact-info/2').json['value'], 'hello@youths4change.org')
        self.assertIsNone(self.backend.last('PUT', '/api/contact-info/2').json['link'])
        self.assertNotIn('/api/contact-info', self.cache)

    def test_delete_regional_office(self):
        self.cache.store('/api/regional-offices/all', {'data': []})
        self.backend.add('DELETE', '/api/regional-offices/5', {'success': True})
        self.client.post(reverse('website:admin_collection_delete', args=['regional-offices', 5]))
        self.assertEqual(self.backend.count('DELETE', '/api/regional-offices/5'), 1)
        self.assertNotIn('/api/regional-offices/all', self.cache)

    def test_create_core_value(self):
        self.backend.add('POST', '/api/core-values', {'success': True, 'data': {'id': 4}})
        self.client.post(reverse('website:admin_collection_new', args=['core-values']), {
            'title': 'Integrity', 'description': 'We do what we say.', 'icon': 'Shield',
        })
        self.assertEqual(self.backend.last('POST', '/api/core-values').json, {
            'title': 'Integrity', 'description': 'We do what we say.', 'icon': 'Shield',
        })

    def test_team_member_write_refreshes_about_page_data(self):
        self.cache.store('/api/team/members', {'data': []})
        self.cache.store('/api/team/founder', {'data': {}})
        self.cache.store('/api/team-roles', {'data': []})
        self.backend.add('POST', '/api/team/admin/members', {'success': True, 'data': {'id': 8}})
        self.client.post(reverse('website:admin_collection_new', args=['team-members']), {
            'name': 'Ama Owusu', 'position': 'Programme Lead', 'role_type': 'executive',
            'country': 'Ghana', 'order_position': 2,
        })
        payload = self.backend.last('POST', '/api/team/admin/members').json
        self.assertEqual(payload['role_type'], 'executive')
        self.assertIsNone(payload['email'])
        self.assertNotIn('/api/team/members', self.cache)
        self.assertNotIn('/api/team/founder', self.cache)
        self.assertIn('/api/team-roles', self.cache)

    def test_founder_profile(self):
        self.backend.add('GET', '/api/team/admin/founder', {'success': True, 'data': {
            'id': 1, 'name': 'Kofi Asante', 'title': 'Founder', 'bio': 'Started Youths4Change in 2015.',
        }})
        resp = self.client.get(reverse('website:admin_founder'))
        self.assertEqual(resp.context['form'].initial['name'], 'Kofi Asante')
        self.backend.add('PUT', '/api/team/admin/founder', {'success': True})
        resp = self.client.post(reverse('website:admin_founder'), {
            'name': 'Kofi Asante', 'title': 'Founder & CEO', 'bio': 'Started Youths4Change in 2015.',
            'linkedin_url': 'https://linkedin.com/in/kofi',
        })
        self.assertRedirects(resp, reverse('website:admin_founder'), fetch_redirect_response=False)
        self.assertEqual(self.backend.last('PUT', '/api/team/admin/founder').json['title'], 'Founder & CEO')

    def test_about_page_content(self):
        self.backend.add('GET', '/api/content/about', {'success': True, 'data': {
            'story': 'Founded in Accra.', 'mission_intro': 'We train young leaders.',
        }})
        resp = self.client.get(reverse('website:admin_page_content', args=['about']))
        self.assertEqual(set(resp.context['form'].fields), {'story', 'mission_intro'})
        self.backend.add('PUT', '/api/content/about', {'success': True})
        self.client.post(reverse('website:admin_page_content', args=['about']), {
            'story': 'Founded in Accra in 2015.', 'mission_intro': 'We train young leaders.',
        })
        self.assertEqual(self.backend.last('PUT', '/api/content/about').json, {
            'story': 'Founded in Accra in 2015.', 'mission_intro': 'We train young leaders.',
        })
        self.assertNotIn('/api/content/about', self.cache)
        resp = self.client.get(reverse('website:admin_page_content', args=['home']))
        self.assertEqual(resp.status_code, 404)


class ProjectImageTests(AdminSessionMixin, FakeBackendMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.login_admin()
        self.url = reverse('website:admin_project_images', args=[3])
        self.backend.add('GET', '/api/projects/3', {'success': True, 'data': PROJECT})
        self.backend.add('GET', '/api/projects/3/images', {'success': True, 'data': [
            {'id': 11, 'cloudinary_public_id': 'y4c/water_1', 'caption': None, 'order_position': 0},
            {'id': 12, 'cloudinary_public_id': 'y4c/water_2', 'caption': 'Borehole', 'order_position': 1},
            {'id': 13, 'cloudinary_public_id': 'y4c/water_3', 'caption': None, 'order_position': 2},
        ]})

    def test_gallery_lists_images(self):
        resp = self.client.get(self.url)
        self.assertContains(resp, 'y4c/water_2')
        self.assertEqual(len(resp.context['images']), 3)

    def test_add_image(self):
        self.cache.store('/api/projects/3', {'data': PROJECT})
        self.backend.add('POST', '/api/projects/3/images', {'success': True, 'data': {'id': 14}})
        resp = self.client.post(self.url, {'action': 'add', 'cloudinary_public_id': 'y4c/water_4', 'caption': ''})
        self.assertRedirects(resp, self.url, fetch_redirect_response=False)
        self.assertEqual(self.backend.last('POST', '/api/projects/3/images').json,
                         {'cloudinary_public_id': 'y4c/water_4', 'caption': None})
        self.assertNotIn('/api/projects/3', self.cache)

    def test_move_down_sends_full_order(self):
        self.backend.add('PUT', '/api/projects/3/images/reorder', {'success': True})
        self.client.post(self.url, {'action': 'down', 'image_id': '11'})
        self.assertEqual(self.backend.last('PUT', '/api/projects/3/images/reorder').json, {'images': [
            {'id': 12, 'order_position': 0},
            {'id': 11, 'order_position': 1},
            {'id': 13, 'order_position': 2},
        ]})

    def test_move_past_the_end_is_a_no_op(self):
        self.client.post(self.url, {'action': 'down', 'image_id': '13'})
        self.assertEqual(self.backend.count('PUT', '/api/projects/3/images/reorder'), 0)

    def test_delete_image(self):
        self.backend.add('DELETE', '/api/projects/3/images/12', {'success': True})
        self.client.post(self.url, {'action': 'delete', 'image_id': '12'})
        self.assertEqual(self.backend.count('DELETE', '/api/projects/3/images/12'), 1)


__all__ = [
    'PublicPageTests',
    'ApplicationFormTests',
    'ApplyViewTests',
    'AdminLoginTests',
    'AdminAreaTests',
    'AdminContentTests',
    'ProjectImageTests',
]
