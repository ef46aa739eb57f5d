import logging

import requests
from django.apps import apps
from django.conf import settings

from .exceptions import ApiError, GENERIC_ERROR, NetworkError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30

# Session key holding the visitor's backend session cookies (set at admin login)
BACKEND_COOKIES_KEY = 'backend_cookies'


class ApiClient:
    """JSON client for the REST backend with a read-through response cache.

    Only GET goes through the cache. Writes always hit the network; callers
    invalidate whatever the write changed.
    """

    def __init__(self, base_url, cache, timeout=DEFAULT_TIMEOUT, cookies=None, session=None):
        self.base_url = base_url.rstrip('/')
        self.cache = cache
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'Accept': 'application/json'})
        if cookies:
            self.session.cookies.update(cookies)

    def get(self, path, params=None):
        key = self.cache.key_for(path, params)
        cached = self.cache.lookup(key)
        if cached is not None:
            return cached
        payload = self._request('GET', path, params=params)
        if isinstance(payload, dict) and payload.get('success') is False:
            # 2xx with a failure envelope is served once, never cached
            return payload
        self.cache.store(key, payload)
        return payload

    def fetch(self, path, params=None):
        """GET that bypasses the cache in both directions."""
        return self._request('GET', path, params=params)

    def post(self, path, payload=None):
        return self._request('POST', path, json=payload)

    def put(self, path, payload=None):
        return self._request('PUT', path, json=payload)

    def delete(self, path):
        return self._request('DELETE', path)

    def invalidate(self, path):
        return self.cache.invalidate(path)

    def clear_all(self):
        self.cache.clear_all()

    def cookies(self):
        return self.session.cookies.get_dict()

    def _request(self, method, path, params=None, json=None):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, params=params, json=json, timeout=self.timeout)
        except requests.Timeout as exc:
            logger.error('Network Error: %s %s timed out after %ss', method, path, self.timeout)
            raise NetworkError() from exc
        except requests.RequestException as exc:
            logger.error('Network Error: %s %s: %s', method, path, exc)
            raise NetworkError() from exc

        payload = self._decode(response)
        if not response.ok:
            body = payload if isinstance(payload, dict) else {}
            message = body.get('error') or body.get('message') or GENERIC_ERROR
            logger.error('API Error: %s %s -> %s %s', method, path, response.status_code, message)
            raise ApiError(response.status_code, message, body)
        return payload

    @staticmethod
    def _decode(response):
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}


def client_for(request):
    """ApiClient carrying this visitor's backend cookies and the process-wide cache."""
    cache = apps.get_app_config('backend').response_cache
    return ApiClient(
        settings.Y4C_API_URL,
        cache,
        timeout=settings.Y4C_API_TIMEOUT,
        cookies=request.session.get(BACKEND_COOKIES_KEY),
    )
