"""One small service per backend resource.

Reads unwrap the ``{success, data, error, message, count}`` envelope and
return ``data``. Writes invalidate the cache prefix of the resource they
touched, only after the backend has accepted them.
"""
import logging

from .exceptions import ApiError

logger = logging.getLogger(__name__)


def unwrap(payload, default=None):
    if isinstance(payload, dict) and 'data' in payload:
        data = payload['data']
        return default if data is None else data
    return default if payload is None else payload


def _filters(**kwargs):
    return {k: v for k, v in kwargs.items() if v not in (None, '', 0)}


class BaseService:
    def __init__(self, client):
        self.client = client

    # Create/update/delete on a plain collection, invalidating it afterwards
    def _create(self, path, data):
        payload = self.client.post(path, data)
        self.client.invalidate(path)
        return unwrap(payload, {}).get('id')

    def _update(self, path, item_id, data):
        payload = self.client.put(f"{path}/{item_id}", data)
        self.client.invalidate(path)
        return payload

    def _delete(self, path, item_id):
        payload = self.client.delete(f"{path}/{item_id}")
        self.client.invalidate(path)
        return payload


class ProjectService(BaseService):
    PATH = '/api/projects'

    def list(self, status=None, country=None, search=None):
        payload = self.client.get(self.PATH, _filters(status=status, country=country, search=search))
        return unwrap(payload, [])

    def active(self):
        return self.list(status='active')

    def get(self, project_id):
        return unwrap(self.client.get(f"{self.PATH}/{project_id}"))

    def create(self, data):
        payload = self.client.post(self.PATH, data)
        self.client.invalidate(self.PATH)
        return unwrap(payload, {}).get('id')

    def update(self, project_id, data):
        payload = self.client.put(f"{self.PATH}/{project_id}", data)
        self.client.invalidate(self.PATH)
        return payload

    def delete(self, project_id):
        # Soft delete on the backend: status becomes 'deleted'
        payload = self.client.delete(f"{self.PATH}/{project_id}")
        self.client.invalidate(self.PATH)
        return payload

    # Gallery images; the files themselves live on the media host. Writes
    # invalidate the project's own prefix, detail and gallery together.
    def images(self, project_id):
        return unwrap(self.client.get(f"{self.PATH}/{project_id}/images"), [])

    def add_image(self, project_id, data):
        payload = self.client.post(f"{self.PATH}/{project_id}/images", data)
        self.client.invalidate(f"{self.PATH}/{project_id}")
        return unwrap(payload, {}).get('id')

    def update_image(self, project_id, image_id, data):
        payload = self.client.put(f"{self.PATH}/{project_id}/images/{image_id}", data)
        self.client.invalidate(f"{self.PATH}/{project_id}")
        return payload

    def delete_image(self, project_id, image_id):
        payload = self.client.delete(f"{self.PATH}/{project_id}/images/{image_id}")
        self.client.invalidate(f"{self.PATH}/{project_id}")
        return payload

    def reorder_images(self, project_id, image_ids):
        """Store the gallery order; ``image_ids`` lists the images first to last."""
        images = [{'id': image_id, 'order_position': position} for position, image_id in enumerate(image_ids)]
        payload = self.client.put(f"{self.PATH}/{project_id}/images/reorder", {'images': images})
        self.client.invalidate(f"{self.PATH}/{project_id}")
        return payload


class DonationService(BaseService):
    PATH = '/api/donations'
    STATS_PATH = '/api/donations/stats'
    PAYMENT_ACCOUNTS_PATH = '/api/payment-accounts'

    def payment_accounts(self):
        return unwrap(self.client.get(self.PAYMENT_ACCOUNTS_PATH))

    def submit(self, data):
        """Create a donation and return the id the backend assigned to it."""
        payload = self.client.post(self.PATH, data)
        if isinstance(payload, dict) and payload.get('success') is False:
            raise ApiError(200, payload.get('error') or payload.get('message'), payload)
        donation_id = payload.get('id') if isinstance(payload, dict) else None
        if donation_id is None:
            donation_id = unwrap(payload, {}).get('id')
        # Two independent removals; the list first, then the stats
        self.client.invalidate(self.PATH)
        self.client.invalidate(self.STATS_PATH)
        logger.info('Donation %s created', donation_id)
        return donation_id

    def list(self, project_id=None, country=None, search=None):
        payload = self.client.get(self.PATH, _filters(project_id=project_id, country=country, search=search))
        return unwrap(payload, [])

    def get(self, donation_id):
        return unwrap(self.client.get(f"{self.PATH}/{donation_id}"))

    def stats(self):
        return unwrap(self.client.get(self.STATS_PATH), {})


class ApplicationService(BaseService):
    PATH = '/api/applications'

    def submit(self, data):
        payload = self.client.post(self.PATH, data)
        self.client.invalidate(self.PATH)
        return unwrap(payload, {}).get('id')

    def list(self, status=None, country=None, search=None):
        payload = self.client.get(self.PATH, _filters(status=status, country=country, search=search))
        return unwrap(payload, [])

    def get(self, application_id):
        return unwrap(self.client.get(f"{self.PATH}/{application_id}"))

    def review(self, application_id, status):
        if status not in ('approved', 'rejected'):
            raise ValueError(f"Unknown review status: {status}")
        payload = self.client.put(f"{self.PATH}/{application_id}/review", {'status': status})
        self.client.invalidate(self.PATH)
        self.client.invalidate('/api/analytics')
        return payload


class ContactService(BaseService):
    CONTACT_INFO_PATH = '/api/contact-info'
    SOCIAL_MEDIA_PATH = '/api/social-media'
    OFFICES_PATH = '/api/regional-offices'

    def contact_info(self):
        return unwrap(self.client.get(self.CONTACT_INFO_PATH), [])

    def update_contact_info(self, item_id, data):
        return self._update(self.CONTACT_INFO_PATH, item_id, data)

    def social_media(self):
        return unwrap(self.client.get(self.SOCIAL_MEDIA_PATH), [])

    def all_social_media(self):
        """Every link, inactive ones included (admin)."""
        return unwrap(self.client.get(f"{self.SOCIAL_MEDIA_PATH}/all"), [])

    def create_social_media(self, data):
        return self._create(self.SOCIAL_MEDIA_PATH, data)

    def update_social_media(self, item_id, data):
        return self._update(self.SOCIAL_MEDIA_PATH, item_id, data)

    def delete_social_media(self, item_id):
        return self._delete(self.SOCIAL_MEDIA_PATH, item_id)

    def regional_offices(self):
        return unwrap(self.client.get(self.OFFICES_PATH), [])

    def all_regional_offices(self):
        return unwrap(self.client.get(f"{self.OFFICES_PATH}/all"), [])

    def create_regional_office(self, data):
        return self._create(self.OFFICES_PATH, data)

    def update_regional_office(self, item_id, data):
        return self._update(self.OFFICES_PATH, item_id, data)

    def delete_regional_office(self, item_id):
        return self._delete(self.OFFICES_PATH, item_id)


class SettingsService(BaseService):
    PATH = '/api/settings'
    CORE_VALUES_PATH = '/api/core-values'
    TEAM_ROLES_PATH = '/api/team-roles'

    def settings(self):
        return unwrap(self.client.get(self.PATH), {})

    def update_settings(self, data):
        payload = self.client.put(self.PATH, data)
        self.client.invalidate(self.PATH)
        return payload

    def page_content(self, page_name):
        return unwrap(self.client.get(f"/api/content/{page_name}"), {})

    def update_page_content(self, page_name, data):
        path = f"/api/content/{page_name}"
        payload = self.client.put(path, data)
        self.client.invalidate(path)
        return payload

    def core_values(self):
        return unwrap(self.client.get(self.CORE_VALUES_PATH), [])

    def create_core_value(self, data):
        return self._create(self.CORE_VALUES_PATH, data)

    def update_core_value(self, item_id, data):
        return self._update(self.CORE_VALUES_PATH, item_id, data)

    def delete_core_value(self, item_id):
        return self._delete(self.CORE_VALUES_PATH, item_id)

    def team_roles(self):
        return unwrap(self.client.get(self.TEAM_ROLES_PATH), [])

    def create_team_role(self, data):
        return self._create(self.TEAM_ROLES_PATH, data)

    def update_team_role(self, item_id, data):
        return self._update(self.TEAM_ROLES_PATH, item_id, data)

    def delete_team_role(self, item_id):
        return self._delete(self.TEAM_ROLES_PATH, item_id)


class TeamService(BaseService):
    """Public reads under ``/api/team``, admin reads and writes under ``/api/team/admin``.

    Admin writes invalidate everything under ``/api/team/`` so the about page
    picks up the change as well. The trailing slash keeps ``/api/team-roles`` out.
    """
    PATH = '/api/team'
    PREFIX = '/api/team/'
    MEMBERS_PATH = '/api/team/admin/members'

    def founder(self):
        return unwrap(self.client.get(f"{self.PATH}/founder"))

    def members(self, role_type=None):
        return unwrap(self.client.get(f"{self.PATH}/members", _filters(role_type=role_type)), [])

    def admin_founder(self):
        return unwrap(self.client.get(f"{self.PATH}/admin/founder"))

    def update_founder(self, data):
        payload = self.client.put(f"{self.PATH}/admin/founder", data)
        self.client.invalidate(self.PREFIX)
        return payload

    def admin_members(self):
        return unwrap(self.client.get(self.MEMBERS_PATH), [])

    def create_member(self, data):
        payload = self.client.post(self.MEMBERS_PATH, data)
        self.client.invalidate(self.PREFIX)
        return unwrap(payload, {}).get('id')

    def update_member(self, member_id, data):
        payload = self.client.put(f"{self.MEMBERS_PATH}/{member_id}", data)
        self.client.invalidate(self.PREFIX)
        return payload

    def delete_member(self, member_id):
        payload = self.client.delete(f"{self.MEMBERS_PATH}/{member_id}")
        self.client.invalidate(self.PREFIX)
        return payload


class AnalyticsService(BaseService):
    def overview(self):
        return unwrap(self.client.get('/api/analytics/overview'), {})

    def projects_by_country(self):
        return unwrap(self.client.get('/api/analytics/projects-by-country'), [])


class AuthService(BaseService):
    def login(self, username, password):
        """Authenticate against the backend; returns the admin record.

        The backend answers with a session cookie, readable afterwards through
        ``client.cookies()``.
        """
        payload = self.client.post('/api/auth/login', {'username': username, 'password': password})
        if not payload.get('success'):
            raise ApiError(401, payload.get('error') or 'Invalid username or password', payload)
        return payload.get('user') or {}

    def me(self):
        # Per-visitor answer, must never be shared through the cache
        payload = self.client.fetch('/api/auth/me')
        if payload.get('authenticated'):
            return payload.get('user')
        return None

    def logout(self):
        try:
            self.client.post('/api/auth/logout')
        finally:
            self.client.clear_all()
